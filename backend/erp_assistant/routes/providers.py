"""
API routes for AI provider management.

Providers are replaced whole by id; activating one makes it
the only active provider.
"""

from typing import List
from fastapi import APIRouter, Depends, HTTPException

from erp_assistant.errors import ConfigurationError
from erp_assistant.routes import get_assistant
from erp_assistant.schemas import (
    AIProviderConfig,
    ProviderUpdate,
    ProviderView,
)
from erp_assistant.services.assistant import ERPAssistant

router = APIRouter(prefix="/api/providers", tags=["providers"])


@router.get(
    "",
    response_model=List[ProviderView],
    summary="List configured AI providers",
)
def list_providers(assistant: ERPAssistant = Depends(get_assistant)):
    """Retrieve all providers with the active flag and masked keys."""
    return assistant.get_ai_providers()


@router.put(
    "/{provider_id}",
    response_model=List[ProviderView],
    summary="Create or replace an AI provider",
)
def update_provider(
    provider_id: str,
    data: ProviderUpdate,
    assistant: ERPAssistant = Depends(get_assistant),
):
    """
    Replace the provider stored under *provider_id*.

    When ``is_active`` is set the provider also becomes the
    active one.
    """
    provider = AIProviderConfig(
        id=provider_id,
        **data.model_dump(exclude={"is_active"}),
    )
    assistant.update_ai_provider(provider, activate=data.is_active)
    return assistant.get_ai_providers()


@router.post(
    "/{provider_id}/activate",
    response_model=List[ProviderView],
    summary="Make a provider the active one",
)
def activate_provider(
    provider_id: str,
    assistant: ERPAssistant = Depends(get_assistant),
):
    """Select the provider used when a request names none."""
    try:
        assistant.set_active_ai_provider(provider_id)
    except ConfigurationError as exc:
        raise HTTPException(status_code=404, detail=exc.message)
    return assistant.get_ai_providers()
