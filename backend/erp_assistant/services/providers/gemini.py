"""Google Gemini adapter (generateContent, key in the query string)."""

import httpx

from erp_assistant.config import settings
from erp_assistant.schemas import AIProviderConfig
from erp_assistant.services.providers.base import BaseProvider


class GeminiProvider(BaseProvider):
    """Generative Language API v1beta."""

    name = "gemini"
    aliases = ("gemini", "google gemini")
    url_template = (
        "https://generativelanguage.googleapis.com/v1beta/"
        "models/{model}:generateContent"
    )
    api_key_param = "key"

    async def complete(
        self,
        prompt: str,
        provider: AIProviderConfig,
        http_client: httpx.AsyncClient,
        proxy_prefix: str = "",
    ) -> str:
        url = self.url_template.format(model=provider.model)
        body = await self._post_json(
            http_client,
            self.proxied(url, proxy_prefix),
            {
                "contents": [{"parts": [{"text": prompt}]}],
                "generationConfig": {
                    "temperature": settings.ai_temperature,
                    "maxOutputTokens": settings.ai_max_tokens,
                },
            },
            params={self.api_key_param: provider.api_key},
        )
        return body["candidates"][0]["content"]["parts"][0]["text"]
