"""
Storage for chat transcripts and the saved settings blob.

One process-wide engine is built from ``settings.database_url``.
Routes get a session per request through ``get_db``; the SSE
stream opens its own ``SessionLocal`` because it outlives the
request scope.
"""

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker, DeclarativeBase
from erp_assistant.config import settings


def make_engine(url: str) -> Engine:
    """
    Create an engine for *url*.

    SQLite connections are shared with the threadpool FastAPI
    runs sync routes in, so the same-thread check is off there.
    """
    connect_args = {}
    if url.startswith("sqlite"):
        connect_args["check_same_thread"] = False
    return create_engine(url, connect_args=connect_args, echo=False)


engine = make_engine(settings.database_url)

SessionLocal = sessionmaker(
    autocommit=False,
    autoflush=False,
    bind=engine,
)


class Base(DeclarativeBase):
    """Declarative base for transcript and settings tables."""


def get_db():
    """
    Request-scoped session for route handlers.

    Yields:
        Session: Closed once the response is sent.
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def init_db(bind: Engine = None) -> None:
    """
    Create the ``chat_messages`` and ``settings_blob`` tables.

    Runs at startup against the app engine; tests pass their
    own engine.
    """
    from erp_assistant import models  # noqa: F401  registers tables

    Base.metadata.create_all(bind=bind or engine)
