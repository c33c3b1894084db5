"""
OpenAI and Azure OpenAI adapters.

Both go through the official ``openai`` SDK, sharing the
service-wide httpx client.  SDK retries are disabled: a
failed call is reported once and never repeated.
"""

from openai import AsyncAzureOpenAI, AsyncOpenAI
import httpx

from erp_assistant.config import settings
from erp_assistant.schemas import AIProviderConfig
from erp_assistant.services.providers.base import BaseProvider


class OpenAIProvider(BaseProvider):
    """Chat Completions API, bearer-token auth."""

    name = "openai"
    aliases = ("openai",)
    base_url = "https://api.openai.com/v1"

    async def complete(
        self,
        prompt: str,
        provider: AIProviderConfig,
        http_client: httpx.AsyncClient,
        proxy_prefix: str = "",
    ) -> str:
        client = AsyncOpenAI(
            api_key=provider.api_key,
            base_url=self.proxied(self.base_url, proxy_prefix),
            http_client=http_client,
            max_retries=0,
        )
        response = await client.chat.completions.create(
            model=provider.model,
            messages=self.chat_messages(prompt),
            **self.generation_options(),
        )
        return response.choices[0].message.content or ""


class AzureOpenAIProvider(BaseProvider):
    """
    Azure-hosted deployment, ``api-key`` header auth.

    The resource URL comes from ``provider.endpoint``.  Older
    saved settings stored the resource URL in the credential
    field, so the key doubles as the base path when no
    endpoint is configured.
    """

    name = "azure"
    aliases = ("azure", "azure openai")

    async def complete(
        self,
        prompt: str,
        provider: AIProviderConfig,
        http_client: httpx.AsyncClient,
        proxy_prefix: str = "",
    ) -> str:
        endpoint = (provider.endpoint or provider.api_key).rstrip("/")
        client = AsyncAzureOpenAI(
            api_key=provider.api_key,
            azure_endpoint=self.proxied(endpoint, proxy_prefix),
            azure_deployment=provider.model,
            api_version=settings.azure_api_version,
            http_client=http_client,
            max_retries=0,
        )
        response = await client.chat.completions.create(
            model=provider.model,
            messages=self.chat_messages(prompt),
            **self.generation_options(),
        )
        return response.choices[0].message.content or ""
