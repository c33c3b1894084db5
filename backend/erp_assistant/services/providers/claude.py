"""Anthropic Claude adapter (Messages API)."""

import httpx

from erp_assistant.config import settings
from erp_assistant.schemas import AIProviderConfig
from erp_assistant.services.providers.base import BaseProvider


class ClaudeProvider(BaseProvider):
    """``x-api-key`` auth plus a pinned ``anthropic-version``."""

    name = "claude"
    aliases = ("claude", "anthropic", "anthropic claude")
    url = "https://api.anthropic.com/v1/messages"
    api_key_header = "x-api-key"
    version_header = "anthropic-version"

    async def complete(
        self,
        prompt: str,
        provider: AIProviderConfig,
        http_client: httpx.AsyncClient,
        proxy_prefix: str = "",
    ) -> str:
        body = await self._post_json(
            http_client,
            self.proxied(self.url, proxy_prefix),
            {
                "model": provider.model,
                "max_tokens": settings.ai_max_tokens,
                "messages": [{"role": "user", "content": prompt}],
            },
            headers={
                self.api_key_header: provider.api_key,
                self.version_header: settings.anthropic_version,
            },
        )
        return body["content"][0]["text"]
