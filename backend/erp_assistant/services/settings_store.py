"""
Persisted settings.

The settings blob is a single JSON document loaded at startup
and written wholesale on save.  ``apply_settings`` is the only
place that interprets it, turning vendor keys into provider
records on the assistant.
"""

import json
import logging
from typing import Any, Dict, Tuple

from sqlalchemy.orm import Session

from erp_assistant.config import Settings, settings
from erp_assistant.models import SettingsBlob
from erp_assistant.schemas import AIProviderConfig

logger = logging.getLogger(__name__)


# vendor key → (provider id, display name, default model, cost per token)
PROVIDER_DEFAULTS: Dict[str, Tuple[str, str, str, float]] = {
    "openai": ("openai-1", "OpenAI", "gpt-4", 0.03),
    "claude": ("claude-1", "Claude", "claude-3-sonnet-20240229", 0.015),
    "gemini": ("gemini-1", "Google Gemini", "gemini-1.5-pro", 0.01),
    "azure": ("azure-1", "Azure OpenAI", "gpt-4", 0.03),
}

# vendor key → (credential field, model field) in the blob
_BLOB_FIELDS: Dict[str, Tuple[str, str]] = {
    "openai": ("openai_api_key", "openai_model"),
    "claude": ("claude_api_key", "claude_model"),
    "gemini": ("gemini_api_key", "gemini_model"),
    "azure": ("azure_openai_api_key", "azure_model"),
}


def settings_from_env(config: Settings = settings) -> Dict[str, Any]:
    """Build a settings blob from environment configuration."""
    return {
        "openai_api_key": config.openai_api_key,
        "openai_model": config.openai_model,
        "claude_api_key": config.claude_api_key,
        "claude_model": config.claude_model,
        "gemini_api_key": config.gemini_api_key,
        "gemini_model": config.gemini_model,
        "azure_openai_api_key": config.azure_openai_api_key,
        "azure_openai_endpoint": config.azure_openai_endpoint,
        "azure_model": config.azure_model,
        "active_provider": config.active_provider,
        "use_cors_proxy": config.use_cors_proxy,
    }


def load_settings(db: Session) -> Dict[str, Any]:
    """
    Read the stored blob.

    Returns:
        dict: The blob, or ``{}`` when nothing was saved or the
            stored text is not a JSON object.
    """
    row = db.get(SettingsBlob, 1)
    if row is None:
        return {}
    try:
        blob = json.loads(row.payload or "{}")
    except json.JSONDecodeError:
        logger.warning("[settings] stored blob is not valid JSON")
        return {}
    return blob if isinstance(blob, dict) else {}


def save_settings(db: Session, blob: Dict[str, Any]) -> None:
    """Replace the stored blob with *blob*."""
    row = db.get(SettingsBlob, 1)
    if row is None:
        row = SettingsBlob(id=1)
        db.add(row)
    row.payload = json.dumps(blob)
    db.commit()


def apply_settings(assistant, blob: Dict[str, Any]) -> None:
    """
    Configure *assistant* from a settings blob.

    The blob is authoritative for the vendors it knows: every
    vendor with a credential becomes a provider record and a
    vendor whose credential is blank loses its record.
    ``active_provider`` (a vendor key) selects the active one
    when that vendor is configured; otherwise no provider is
    active.  ``use_cors_proxy`` toggles the development relay.

    Parameters:
        assistant (ERPAssistant): Target assistant.
        blob (dict): Settings document.
    """
    for vendor, (key_field, model_field) in _BLOB_FIELDS.items():
        provider_id, name, default_model, cost = PROVIDER_DEFAULTS[vendor]
        api_key = blob.get(key_field) or ""
        if not api_key:
            assistant.remove_ai_provider(provider_id)
            continue
        assistant.update_ai_provider(AIProviderConfig(
            id=provider_id,
            name=name,
            api_key=api_key,
            model=blob.get(model_field) or default_model,
            cost_per_token=cost,
            endpoint=(
                blob.get("azure_openai_endpoint") or None
                if vendor == "azure" else None
            ),
        ))

    active_vendor = (blob.get("active_provider") or "").lower()
    provider_id = PROVIDER_DEFAULTS.get(active_vendor, ("",))[0]
    if provider_id and assistant.ai_service.get_provider(provider_id):
        assistant.set_active_ai_provider(provider_id)
    else:
        if active_vendor:
            logger.warning(
                "[settings] active provider %s has no credentials",
                active_vendor,
            )
        assistant.clear_active_ai_provider()

    if "use_cors_proxy" in blob:
        assistant.set_use_cors_proxy(bool(blob["use_cors_proxy"]))
