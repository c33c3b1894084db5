"""
AI vendor adapters.

The set of vendors is closed: one adapter per supported API,
looked up by the lower-cased provider display name.

- OpenAIProvider      → OpenAI Chat Completions (SDK)
- AzureOpenAIProvider → Azure OpenAI deployment (SDK)
- ClaudeProvider      → Anthropic Messages API
- GeminiProvider      → Google Generative Language API
"""

from typing import Dict

from erp_assistant.errors import UnsupportedProviderError
from erp_assistant.services.providers.base import BaseProvider
from erp_assistant.services.providers.claude import ClaudeProvider
from erp_assistant.services.providers.gemini import GeminiProvider
from erp_assistant.services.providers.openai_provider import (
    AzureOpenAIProvider,
    OpenAIProvider,
)

ADAPTERS = (
    OpenAIProvider(),
    ClaudeProvider(),
    GeminiProvider(),
    AzureOpenAIProvider(),
)

_BY_ALIAS: Dict[str, BaseProvider] = {
    alias: adapter
    for adapter in ADAPTERS
    for alias in adapter.aliases
}


def get_adapter(provider_name: str) -> BaseProvider:
    """
    Return the adapter serving *provider_name*.

    Raises:
        UnsupportedProviderError: No adapter claims the name.
    """
    adapter = _BY_ALIAS.get(provider_name.strip().lower())
    if adapter is None:
        raise UnsupportedProviderError(provider_name)
    return adapter


__all__ = [
    "ADAPTERS",
    "AzureOpenAIProvider",
    "BaseProvider",
    "ClaudeProvider",
    "GeminiProvider",
    "OpenAIProvider",
    "get_adapter",
]
