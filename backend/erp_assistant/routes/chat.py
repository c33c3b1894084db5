"""
API routes for the assistant chat.

Runs natural-language queries through the assistant, keeps
each session's transcript, and exposes clearing and export.
A failed chat turn is not an HTTP error: its message is
stored as the assistant's reply so the session carries on.
"""

import json
import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import StreamingResponse
from sqlalchemy import func
from sqlalchemy.orm import Session

from erp_assistant.database import get_db, SessionLocal
from erp_assistant.errors import QueryProcessingError
from erp_assistant.models import ChatMessage, generate_uuid
from erp_assistant.routes import get_assistant
from erp_assistant.schemas import (
    ChatExport,
    ChatMessageResponse,
    ChatRequest,
    ChatResponse,
    NormalizedAIResponse,
    ProcessingErrorResponse,
    QueryValidation,
    ValidateRequest,
)
from erp_assistant.services.assistant import ERPAssistant

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/chat", tags=["chat"])


def _serialize_message(message: ChatMessage) -> Dict[str, Any]:
    """
    Serialize a chat message row with parsed JSON fields.

    Parameters:
        message (ChatMessage): The stored message.

    Returns:
        dict: Data matching ``ChatMessageResponse``.
    """
    return {
        "id": message.id,
        "session_id": message.session_id,
        "role": message.role,
        "content": message.content,
        "data": _loads(message.data_json),
        "visualizations": _loads(message.visualizations_json),
        "is_loading": bool(message.is_loading),
        "created_at": message.created_at,
    }


def _loads(text: Optional[str]) -> Any:
    if not text:
        return None
    try:
        return json.loads(text)
    except json.JSONDecodeError:
        return None


def _append_message(
    db: Session,
    session_id: str,
    role: str,
    content: str,
    response: Optional[NormalizedAIResponse] = None,
) -> ChatMessage:
    """Append one message to the end of a session."""
    last_seq = db.query(func.max(ChatMessage.seq)).filter(
        ChatMessage.session_id == session_id,
    ).scalar()
    message = ChatMessage(
        session_id=session_id,
        seq=(last_seq or 0) + 1,
        role=role,
        content=content,
    )
    if response is not None:
        message.data_json = json.dumps(response.data, default=str)
        message.visualizations_json = json.dumps(
            response.visualizations, default=str,
        )
    db.add(message)
    db.commit()
    db.refresh(message)
    return message


def _session_messages(db: Session, session_id: str) -> List[ChatMessage]:
    return (
        db.query(ChatMessage)
        .filter(ChatMessage.session_id == session_id)
        .order_by(ChatMessage.seq)
        .all()
    )


def _ensure_valid(assistant: ERPAssistant, message: str) -> None:
    validation = assistant.validate_query(message)
    if not validation.is_valid:
        raise HTTPException(
            status_code=400,
            detail={"errors": validation.errors},
        )


@router.post(
    "/validate",
    response_model=QueryValidation,
    summary="Validate a query without running it",
)
def validate_message(
    data: ValidateRequest,
    assistant: ERPAssistant = Depends(get_assistant),
):
    """Return the validation result for a prospective query."""
    return assistant.validate_query(data.message)


@router.post(
    "",
    response_model=ChatResponse,
    summary="Send a chat message to the assistant",
)
async def send_chat_message(
    data: ChatRequest,
    db: Session = Depends(get_db),
    assistant: ERPAssistant = Depends(get_assistant),
):
    """
    Answer a natural-language question.

    Stores the user's message and the assistant's reply.  When
    the pipeline fails the reply content is the error text and
    ``response`` is null.
    """
    _ensure_valid(assistant, data.message)
    session_id = data.session_id or generate_uuid()

    user_msg = _append_message(db, session_id, "user", data.message)

    response: Optional[NormalizedAIResponse] = None
    try:
        response = await assistant.process(
            data.message,
            data.user_context,
            data.provider_id,
        )
        assistant_msg = _append_message(
            db, session_id, "assistant", response.summary, response,
        )
    except QueryProcessingError as exc:
        assistant_msg = _append_message(
            db, session_id, "assistant", f"Error: {exc.message}",
        )

    return {
        "session_id": session_id,
        "messages": [
            _serialize_message(user_msg),
            _serialize_message(assistant_msg),
        ],
        "response": response,
    }


@router.post(
    "/stream",
    summary="Send a chat message (SSE stream)",
)
async def send_chat_message_stream(
    data: ChatRequest,
    assistant: ERPAssistant = Depends(get_assistant),
):
    """
    SSE streaming variant of the chat endpoint.

    Emits ``update`` with the loading placeholder, then
    ``result`` (or ``error``), then ``done`` with the stored
    user and assistant messages.

    The DB session is managed inside the generator because
    ``StreamingResponse`` consumes the iterator **after**
    FastAPI has cleaned up ``Depends``-based sessions.
    """
    _ensure_valid(assistant, data.message)
    session_id = data.session_id or generate_uuid()

    def _sse(event: str, data_obj: Any) -> str:
        """Format a Server-Sent Event string."""
        payload = json.dumps(data_obj, ensure_ascii=False, default=str)
        return f"event: {event}\ndata: {payload}\n\n"

    async def event_stream():
        """Yield SSE events from the assistant."""
        db = SessionLocal()
        try:
            user_msg = _append_message(
                db, session_id, "user", data.message,
            )

            final: Optional[NormalizedAIResponse] = None
            async for update in assistant.process_stream(
                data.message,
                data.user_context,
                data.provider_id,
            ):
                if update.is_loading:
                    yield _sse("update", update.model_dump())
                else:
                    final = update

            failed = final is None or isinstance(
                final, ProcessingErrorResponse,
            )
            if failed:
                error_text = (
                    final.insights[0] if final and final.insights
                    else "Error: Unknown error"
                )
                yield _sse("error", {"message": error_text})
                assistant_msg = _append_message(
                    db, session_id, "assistant", error_text,
                )
            else:
                yield _sse("result", final.model_dump())
                assistant_msg = _append_message(
                    db, session_id, "assistant", final.summary, final,
                )

            yield _sse("done", {
                "session_id": session_id,
                "messages": [
                    _serialize_message(user_msg),
                    _serialize_message(assistant_msg),
                ],
            })
        except Exception as exc:
            logger.exception("[chat] stream failed")
            yield _sse("error", {"message": str(exc)})
        finally:
            db.close()

    return StreamingResponse(
        event_stream(),
        media_type="text/event-stream",
        headers={
            "Cache-Control": "no-cache",
            "X-Accel-Buffering": "no",
        },
    )


@router.get(
    "/{session_id}/messages",
    response_model=List[ChatMessageResponse],
    summary="Get the transcript of a chat session",
)
def get_chat_history(
    session_id: str,
    db: Session = Depends(get_db),
):
    """Retrieve every message of a session in order."""
    return [
        _serialize_message(m)
        for m in _session_messages(db, session_id)
    ]


@router.delete(
    "/{session_id}",
    summary="Clear a chat session",
)
def clear_chat(
    session_id: str,
    db: Session = Depends(get_db),
):
    """Delete the whole transcript of a session."""
    deleted = db.query(ChatMessage).filter(
        ChatMessage.session_id == session_id,
    ).delete()
    db.commit()
    return {"session_id": session_id, "deleted": deleted}


@router.get(
    "/{session_id}/export",
    response_model=ChatExport,
    summary="Export a chat session as JSON",
)
def export_chat(
    session_id: str,
    user: Optional[str] = None,
    db: Session = Depends(get_db),
):
    """
    Build the downloadable transcript document.

    Format: ``{timestamp, messages, user}``.
    """
    messages = _session_messages(db, session_id)
    if not messages:
        raise HTTPException(
            status_code=404,
            detail="Chat session not found",
        )
    return {
        "timestamp": datetime.now(timezone.utc),
        "messages": [_serialize_message(m) for m in messages],
        "user": {"name": user} if user else None,
    }
