"""
Exception taxonomy for the assistant pipeline.

Configuration and unsupported-provider errors are user-facing
and end up as the assistant's reply text.  Transport failures
are wrapped in ``AIProcessingError``; anything escaping the
orchestrator is wrapped once more in ``QueryProcessingError``.
"""


class AssistantError(Exception):
    """Base class for every error raised by the assistant."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ConfigurationError(AssistantError):
    """No provider could be resolved for a request."""


class UnsupportedProviderError(AssistantError):
    """The resolved provider names a vendor we cannot talk to."""

    def __init__(self, provider_name: str):
        super().__init__(f"Unsupported AI provider: {provider_name}")
        self.provider_name = provider_name


class AIProcessingError(AssistantError):
    """The vendor call failed at the HTTP or payload level."""


class QueryProcessingError(AssistantError):
    """A chat turn could not be completed."""
