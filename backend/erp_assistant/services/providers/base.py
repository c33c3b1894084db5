"""
Base class for AI vendor adapters.

Each adapter knows one vendor's chat/completion API: where
to send the request, how to authenticate, how to shape the
payload and where the reply text lives in the response.
Adapters are stateless; credentials and model come from the
``AIProviderConfig`` passed to every call.
"""

from typing import Any, Dict, List, Optional, Tuple

import httpx

from erp_assistant.config import settings
from erp_assistant.schemas import AIProviderConfig


SYSTEM_PROMPT = (
    "You are a NetSuite ERP expert assistant. "
    "Provide accurate, actionable insights."
)


class BaseProvider:
    """
    Abstract base for vendor adapters.

    Subclasses set ``name`` and ``aliases`` and implement
    ``complete()``.

    Attributes:
        name (str): Canonical vendor key.
        aliases (tuple[str]): Lower-cased provider display
            names routed to this adapter.
    """

    name: str = "base"
    aliases: Tuple[str, ...] = ()

    # ----- shared helpers ---------------------------------------------

    @staticmethod
    def proxied(url: str, proxy_prefix: str) -> str:
        """Prefix *url* with the CORS relay when one is set."""
        return f"{proxy_prefix}{url}" if proxy_prefix else url

    @staticmethod
    def chat_messages(prompt: str) -> List[Dict[str, str]]:
        """System + user message pair for chat-style APIs."""
        return [
            {"role": "system", "content": SYSTEM_PROMPT},
            {"role": "user", "content": prompt},
        ]

    @staticmethod
    def generation_options() -> Dict[str, Any]:
        return {
            "temperature": settings.ai_temperature,
            "max_tokens": settings.ai_max_tokens,
        }

    async def _post_json(
        self,
        http_client: httpx.AsyncClient,
        url: str,
        payload: Dict[str, Any],
        headers: Optional[Dict[str, str]] = None,
        params: Optional[Dict[str, str]] = None,
    ) -> Dict[str, Any]:
        """
        POST *payload* as JSON and return the decoded body.

        Raises:
            httpx.HTTPError: On transport failure or a non-2xx
                status.
        """
        response = await http_client.post(
            url,
            json=payload,
            headers={"Content-Type": "application/json", **(headers or {})},
            params=params,
        )
        response.raise_for_status()
        return response.json()

    # ----- public interface (override in subclass) --------------------

    async def complete(
        self,
        prompt: str,
        provider: AIProviderConfig,
        http_client: httpx.AsyncClient,
        proxy_prefix: str = "",
    ) -> str:
        """
        Send *prompt* to the vendor and return its raw reply text.

        Parameters:
            prompt (str): Full prompt text.
            provider (AIProviderConfig): Credentials and model.
            http_client (httpx.AsyncClient): Shared transport.
            proxy_prefix (str): CORS relay prefix or ``""``.

        Returns:
            str: Vendor reply text, unparsed.
        """
        raise NotImplementedError
