"""
SQLAlchemy models for the ERP Assistant.

Defines tables for chat transcripts and the persisted
settings blob.
"""

import uuid
from datetime import datetime, timezone
from sqlalchemy import (
    Column,
    String,
    Text,
    Boolean,
    DateTime,
    Integer,
)
from erp_assistant.database import Base


def generate_uuid() -> str:
    """Generate a new UUID string."""
    return str(uuid.uuid4())


def utcnow() -> datetime:
    """Return the current UTC datetime."""
    return datetime.now(timezone.utc)


class ChatMessage(Base):
    """
    One message of a chat session.

    Sessions are append-only; clearing a session deletes all
    of its rows at once.  ``data_json`` and
    ``visualizations_json`` hold the assistant's enriched
    payload for the frontend renderer.
    """

    __tablename__ = "chat_messages"

    id = Column(String, primary_key=True, default=generate_uuid)
    session_id = Column(String(64), nullable=False, index=True)
    seq = Column(Integer, nullable=False, default=0)
    role = Column(String(20), nullable=False)
    content = Column(Text, nullable=False, default="")
    data_json = Column(Text, nullable=True)
    visualizations_json = Column(Text, nullable=True)
    is_loading = Column(Boolean, default=False)
    created_at = Column(DateTime, default=utcnow)


class SettingsBlob(Base):
    """
    The single persisted settings document.

    Holds provider credentials, models, the active selection,
    backend credentials and feature flags as one JSON text,
    always written wholesale.
    """

    __tablename__ = "settings_blob"

    id = Column(Integer, primary_key=True, default=1)
    payload = Column(Text, nullable=False, default="{}")
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)
