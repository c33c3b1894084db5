"""
Assistant orchestrator.

Coordinates the request pipeline:

1. **Classify**   → intent, action, entities, parameters.
2. **Synthesize** → logical NetSuite queries for the intent.
3. **Fetch**      → one backend call per query; a failing
   query is isolated to its own data slot.
4. **Analyse**    → the AI provider adapter.
5. **Enrich**     → backend data and derived charts.

Also provides a streaming variant (``process_stream``) that
yields a loading placeholder before the final result, and the
provider-management entry points used by the settings API.
"""

import logging
import re
from typing import Any, AsyncIterator, Dict, List, Optional

from erp_assistant.config import settings
from erp_assistant.errors import QueryProcessingError
from erp_assistant.schemas import (
    AIProviderConfig,
    NormalizedAIResponse,
    ProcessingErrorResponse,
    ProviderView,
    QueryValidation,
    SynthesizedQuery,
)
from erp_assistant.services.ai_service import AIService
from erp_assistant.services.netsuite import DataSource, SampleDataSource
from erp_assistant.services.query_synthesizer import process_query
from erp_assistant.services.response_enricher import enrich

logger = logging.getLogger(__name__)

FETCH_ERROR_MARKER = {"error": "Failed to retrieve data"}
STREAM_ERROR_SUMMARY = "Error processing query"

# Write-style SQL that has no business in a chat question.
_HARMFUL_PATTERNS = (
    re.compile(r"drop\s+table", re.I),
    re.compile(r"delete\s+from", re.I),
    re.compile(r"insert\s+into", re.I),
    re.compile(r"update\s+.+\s+set", re.I),
)


class ERPAssistant:
    """
    Natural-language front door to ERP data.

    Parameters:
        ai_service (AIService, optional): Provider adapter;
            an empty one is created when omitted.
        data_source (DataSource, optional): Backend data
            collaborator; defaults to the sample dataset.
    """

    def __init__(
        self,
        ai_service: Optional[AIService] = None,
        data_source: Optional[DataSource] = None,
    ):
        self.ai_service = ai_service or AIService()
        self.data_source = data_source or SampleDataSource()

    async def aclose(self) -> None:
        await self.ai_service.aclose()
        await self.data_source.aclose()

    # ----- pipeline ---------------------------------------------------

    async def process(
        self,
        text: str,
        user_context: Optional[Dict[str, Any]] = None,
        provider_id: Optional[str] = None,
    ) -> NormalizedAIResponse:
        """
        Answer one natural-language query.

        Parameters:
            text (str): The user's question.
            user_context (dict, optional): Caller-supplied
                context forwarded to the provider.
            provider_id (str, optional): Explicit provider;
                defaults to the active one.

        Returns:
            NormalizedAIResponse: Enriched response.

        Raises:
            QueryProcessingError: Any stage failed; the cause
                is chained.
        """
        try:
            logger.info("[assistant] step 1 — classify")
            processed = process_query(text)
            logger.info(
                "[assistant] intent=%s action=%s queries=%s",
                processed.intent.type,
                processed.intent.action,
                [q.data_type for q in processed.queries],
            )

            logger.info("[assistant] step 2 — fetch backend data")
            backend_data = await self._fetch_backend_data(
                processed.queries,
            )

            logger.info("[assistant] step 3 — AI analysis")
            context = {
                "original_query": processed.original_query,
                "intent": processed.intent.model_dump(),
                "netsuite_data": backend_data,
                "user_context": user_context or {},
            }
            ai_response = await self.ai_service.send(
                processed.ai_prompt,
                context,
                provider_id,
            )

            logger.info("[assistant] step 4 — enrich")
            return enrich(ai_response, backend_data, processed)
        except Exception as exc:
            logger.error("[assistant] query processing failed: %s", exc)
            raise QueryProcessingError(
                f"Query processing failed: {exc}"
            ) from exc

    async def _fetch_backend_data(
        self,
        queries: List[SynthesizedQuery],
    ) -> Dict[str, Any]:
        """Fetch every query in turn, keyed by data type."""
        results: Dict[str, Any] = {}
        for query in queries:
            try:
                results[query.data_type] = await self.data_source.fetch(
                    query,
                )
            except Exception:
                logger.exception(
                    "[assistant] backend query %s failed",
                    query.endpoint,
                )
                results[query.data_type] = dict(FETCH_ERROR_MARKER)
        return results

    async def process_stream(
        self,
        text: str,
        user_context: Optional[Dict[str, Any]] = None,
        provider_id: Optional[str] = None,
    ) -> AsyncIterator[NormalizedAIResponse]:
        """
        Two-phase variant of ``process``.

        Yields a loading placeholder immediately, then either
        the final response or an error placeholder carrying
        the failure message.
        """
        yield NormalizedAIResponse(
            summary="Processing your query...",
            insights=["Analyzing NetSuite data..."],
            is_loading=True,
        )

        try:
            response = await self.process(text, user_context, provider_id)
        except QueryProcessingError as exc:
            yield ProcessingErrorResponse(
                summary=STREAM_ERROR_SUMMARY,
                insights=[f"Error: {exc.message}"],
                is_loading=False,
                error=exc.message,
            )
            return

        yield response.model_copy(update={"is_loading": False})

    # ----- validation -------------------------------------------------

    def validate_query(self, text: str) -> QueryValidation:
        """
        Pre-flight checks before running a query.

        Parameters:
            text (str): The user's question.

        Returns:
            QueryValidation: ``is_valid`` plus every problem
                found.
        """
        errors: List[str] = []
        text = text or ""

        if not text.strip():
            errors.append("Query cannot be empty")

        if len(text) > settings.max_query_length:
            errors.append(
                "Query is too long "
                f"(maximum {settings.max_query_length} characters)"
            )

        for pattern in _HARMFUL_PATTERNS:
            if pattern.search(text):
                errors.append(
                    "Query contains potentially harmful "
                    "SQL-like commands"
                )

        return QueryValidation(is_valid=not errors, errors=errors)

    # ----- provider management ----------------------------------------

    def update_ai_provider(
        self,
        provider: AIProviderConfig,
        activate: Optional[bool] = None,
    ) -> None:
        """
        Replace a provider record by id.

        ``activate=True`` makes it the active provider and
        ``activate=False`` deactivates it if it was active;
        ``None`` leaves the selection alone.
        """
        registry = self.ai_service.registry
        registry.update(provider)
        if activate:
            registry.set_active(provider.id)
        elif activate is False and registry.active_id == provider.id:
            registry.clear_active()

    def remove_ai_provider(self, provider_id: str) -> None:
        self.ai_service.registry.remove(provider_id)

    def set_active_ai_provider(self, provider_id: str) -> None:
        self.ai_service.registry.set_active(provider_id)

    def clear_active_ai_provider(self) -> None:
        self.ai_service.registry.clear_active()

    def get_ai_providers(self) -> List[ProviderView]:
        return self.ai_service.registry.views()

    def set_use_cors_proxy(self, use_proxy: bool) -> None:
        self.ai_service.set_use_cors_proxy(use_proxy)
