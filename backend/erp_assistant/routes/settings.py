"""
API routes for the persisted settings blob.

The blob is read and written wholesale.  Credentials are
masked on the way out; a masked value sent back unchanged
keeps the stored credential.
"""

from typing import Any, Dict
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from erp_assistant.database import get_db
from erp_assistant.routes import get_assistant
from erp_assistant.schemas import SettingsPayload
from erp_assistant.services.assistant import ERPAssistant
from erp_assistant.services.settings_store import (
    apply_settings,
    load_settings,
    save_settings,
    settings_from_env,
)

router = APIRouter(prefix="/api/settings", tags=["settings"])

MASK = "********"

_SECRET_FIELDS = (
    "openai_api_key",
    "claude_api_key",
    "gemini_api_key",
    "azure_openai_api_key",
)


def _masked(blob: Dict[str, Any]) -> Dict[str, Any]:
    out = dict(blob)
    for field in _SECRET_FIELDS:
        if out.get(field):
            out[field] = MASK
    return out


def _current(db: Session) -> Dict[str, Any]:
    return load_settings(db) or settings_from_env()


@router.get(
    "",
    response_model=SettingsPayload,
    summary="Get saved settings",
)
def get_settings(db: Session = Depends(get_db)):
    """Return the saved blob, or environment defaults if none."""
    return _masked(_current(db))


@router.put(
    "",
    response_model=SettingsPayload,
    summary="Save settings",
)
def put_settings(
    data: SettingsPayload,
    db: Session = Depends(get_db),
    assistant: ERPAssistant = Depends(get_assistant),
):
    """
    Replace the saved blob and apply it to the assistant.

    Provider records are rebuilt from the vendor keys, the
    active provider is re-selected and the CORS relay flag
    toggled.
    """
    previous = _current(db)
    blob = data.model_dump()
    for field in _SECRET_FIELDS:
        if blob.get(field) == MASK:
            blob[field] = previous.get(field, "")

    save_settings(db, blob)
    apply_settings(assistant, blob)
    return _masked(blob)
