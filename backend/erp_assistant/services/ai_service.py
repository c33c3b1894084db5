"""
AI provider service.

Keeps the registry of configured AI providers, turns a query
plus its context into a single prompt, dispatches it to the
matching vendor adapter and coerces whatever comes back into
a ``NormalizedAIResponse``.

Vendors do not reliably honour the requested JSON shape, so a
reply without a parseable JSON object is downgraded to a
plain-text summary instead of being treated as an error.
"""

import json
import logging
import re
from typing import Any, Dict, Iterable, List, Optional

import httpx

from erp_assistant.config import settings
from erp_assistant.errors import AIProcessingError, ConfigurationError
from erp_assistant.schemas import (
    AIProviderConfig,
    NormalizedAIResponse,
    ProviderView,
)
from erp_assistant.services.providers import get_adapter

logger = logging.getLogger(__name__)


PROMPT = """\
You are an intelligent NetSuite ERP assistant. Analyze the following \
query and provide insights, data analysis, and recommendations.

Query: "{query}"

Context: {context}

Please provide your response in the following JSON format:
{{
  "data": "structured data or analysis results",
  "insights": ["key insight 1", "key insight 2", "key insight 3"],
  "summary": "executive summary of findings",
  "recommendations": ["recommendation 1", "recommendation 2"],
  "visualizations": [
    {{
      "type": "chart_type",
      "title": "chart_title",
      "data": "chart_data"
    }}
  ]
}}

Focus on providing actionable business intelligence and clear \
insights that help with decision-making."""

# Greedy: first "{" through last "}".
_JSON_SPAN_RE = re.compile(r"\{[\s\S]*\}")


class ProviderRegistry:
    """
    Configured providers plus the single active selection.

    The active provider is stored as an id next to the table,
    so at most one provider can ever be active.  Records are
    only ever replaced whole, keyed by id.
    """

    def __init__(self, providers: Iterable[AIProviderConfig] = ()):
        self._providers: Dict[str, AIProviderConfig] = {}
        self._active_id: Optional[str] = None
        for provider in providers:
            self.update(provider)

    def update(self, provider: AIProviderConfig) -> None:
        self._providers[provider.id] = provider

    def remove(self, provider_id: str) -> None:
        """Drop *provider_id*; removing the active one deactivates it."""
        self._providers.pop(provider_id, None)
        if self._active_id == provider_id:
            self._active_id = None

    def get(self, provider_id: str) -> Optional[AIProviderConfig]:
        return self._providers.get(provider_id)

    def all(self) -> List[AIProviderConfig]:
        return list(self._providers.values())

    @property
    def active_id(self) -> Optional[str]:
        return self._active_id

    def active(self) -> Optional[AIProviderConfig]:
        if self._active_id is None:
            return None
        return self._providers.get(self._active_id)

    def set_active(self, provider_id: str) -> None:
        """
        Make *provider_id* the only active provider.

        Raises:
            ConfigurationError: The id is not registered.
        """
        if provider_id not in self._providers:
            raise ConfigurationError(
                f"AI provider '{provider_id}' is not configured."
            )
        self._active_id = provider_id

    def clear_active(self) -> None:
        self._active_id = None

    def resolve(
        self,
        provider_id: Optional[str] = None,
    ) -> AIProviderConfig:
        """
        Pick the provider for a request.

        An explicit id wins; otherwise the active provider is
        used.  There is no fallback to an arbitrary provider.

        Raises:
            ConfigurationError: Nothing resolves.
        """
        if provider_id:
            provider = self._providers.get(provider_id)
            if provider is None:
                raise ConfigurationError(
                    f"AI provider '{provider_id}' is not configured."
                )
            return provider

        provider = self.active()
        if provider is None:
            raise ConfigurationError(
                "No active AI provider found. "
                "Please configure an AI provider in settings."
            )
        return provider

    def views(self) -> List[ProviderView]:
        """Providers with masked credentials and the active flag."""
        return [
            ProviderView(
                id=p.id,
                name=p.name,
                model=p.model,
                cost_per_token=p.cost_per_token,
                endpoint=p.endpoint,
                has_api_key=bool(p.api_key),
                is_active=p.id == self._active_id,
            )
            for p in self._providers.values()
        ]


def build_prompt(query: str, context: Dict[str, Any]) -> str:
    """
    Embed the query and serialised context in the JSON-shaped prompt.

    Parameters:
        query (str): Analysis prompt or raw user query.
        context (dict): JSON-serialisable request context.

    Returns:
        str: Prompt text.
    """
    return PROMPT.format(
        query=query,
        context=json.dumps(context, indent=2, default=str),
    )


def parse_ai_response(content: str) -> NormalizedAIResponse:
    """
    Coerce a vendor reply into the normalized response shape.

    The first ``{`` to last ``}`` span is parsed as JSON.  When
    it yields an object, its five known fields are passed
    through one by one: list entries of the wrong kind are
    converted or dropped and a field of the wrong type falls
    back to its empty default, so a single odd field never
    discards the rest.  Without a JSON object the raw text is
    used as both summary and sole insight.

    Parameters:
        content (str): Raw vendor reply text.

    Returns:
        NormalizedAIResponse: Never raises.
    """
    match = _JSON_SPAN_RE.search(content)
    if match:
        try:
            parsed = json.loads(match.group(0))
        except json.JSONDecodeError as exc:
            logger.warning(
                "[ai] reply JSON unusable, falling back to text: %s",
                exc,
            )
        else:
            if isinstance(parsed, dict):
                return NormalizedAIResponse(
                    data=_data_field(parsed.get("data")),
                    insights=_text_list(parsed.get("insights")),
                    visualizations=_dict_list(parsed.get("visualizations")),
                    summary=_text(parsed.get("summary")),
                    recommendations=_text_list(
                        parsed.get("recommendations"),
                    ),
                )

    return NormalizedAIResponse(
        data={},
        insights=[content],
        visualizations=[],
        summary=content,
        recommendations=[],
    )


def _data_field(value: Any) -> Any:
    return {} if value is None else value


def _text(value: Any) -> str:
    if isinstance(value, str):
        return value
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return str(value)
    return ""


def _text_list(value: Any) -> List[str]:
    """Strings kept, scalars stringified, objects serialised, nulls dropped."""
    if not isinstance(value, list):
        return []
    items: List[str] = []
    for item in value:
        if item is None:
            continue
        if isinstance(item, str):
            items.append(item)
        elif isinstance(item, (dict, list)):
            items.append(json.dumps(item, default=str))
        else:
            items.append(str(item))
    return items


def _dict_list(value: Any) -> List[Dict[str, Any]]:
    if not isinstance(value, list):
        return []
    return [item for item in value if isinstance(item, dict)]


class AIService:
    """
    Send prompts to the configured AI providers.

    Parameters:
        providers (iterable[AIProviderConfig]): Initial registry
            contents.
        http_client (httpx.AsyncClient, optional): Transport
            shared by all vendor calls; created lazily when
            omitted.
        use_cors_proxy (bool): Route vendor URLs through the
            development CORS relay.
    """

    def __init__(
        self,
        providers: Iterable[AIProviderConfig] = (),
        http_client: Optional[httpx.AsyncClient] = None,
        use_cors_proxy: bool = False,
    ):
        self.registry = ProviderRegistry(providers)
        self._http_client = http_client
        self._owns_client = http_client is None
        self.use_cors_proxy = use_cors_proxy

    # ----- transport --------------------------------------------------

    def set_use_cors_proxy(self, use_proxy: bool) -> None:
        self.use_cors_proxy = use_proxy

    @property
    def proxy_prefix(self) -> str:
        return settings.cors_proxy_url if self.use_cors_proxy else ""

    def _client(self) -> httpx.AsyncClient:
        if self._http_client is None:
            self._http_client = httpx.AsyncClient(
                timeout=settings.ai_timeout_seconds,
            )
        return self._http_client

    async def aclose(self) -> None:
        """Close the transport if this service created it."""
        if self._owns_client and self._http_client is not None:
            await self._http_client.aclose()
            self._http_client = None

    # ----- registry passthroughs ---------------------------------------

    def update_provider(self, provider: AIProviderConfig) -> None:
        self.registry.update(provider)

    def get_provider(
        self,
        provider_id: str,
    ) -> Optional[AIProviderConfig]:
        return self.registry.get(provider_id)

    def get_active_provider(self) -> Optional[AIProviderConfig]:
        return self.registry.active()

    def get_all_providers(self) -> List[AIProviderConfig]:
        return self.registry.all()

    # ----- main entry point -------------------------------------------

    async def send(
        self,
        query: str,
        context: Dict[str, Any],
        provider_id: Optional[str] = None,
    ) -> NormalizedAIResponse:
        """
        Run one AI analysis round-trip.

        Parameters:
            query (str): Prompt text for the analysis.
            context (dict): Request context embedded in the
                prompt.
            provider_id (str, optional): Explicit provider;
                defaults to the active one.

        Returns:
            NormalizedAIResponse: Parsed or fallback response.

        Raises:
            ConfigurationError: No provider resolves.
            UnsupportedProviderError: Unknown vendor name.
            AIProcessingError: The vendor call failed.
        """
        provider = self.registry.resolve(provider_id)
        adapter = get_adapter(provider.name)
        prompt = build_prompt(query, context)

        logger.info(
            "[ai] sending prompt to %s (model=%s, proxy=%s)",
            provider.name,
            provider.model,
            self.use_cors_proxy,
        )
        try:
            content = await adapter.complete(
                prompt,
                provider,
                self._client(),
                self.proxy_prefix,
            )
        except Exception as exc:
            logger.error(
                "[ai] %s call failed: %s",
                provider.name,
                exc,
            )
            raise AIProcessingError(
                f"AI processing failed: {exc}"
            ) from exc

        return parse_ai_response(content)
