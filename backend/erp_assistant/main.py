"""
ERP Assistant - FastAPI Application.

Main entry point for the backend API server.
Answers natural-language business questions by combining
NetSuite data with analysis from a configurable AI provider.
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from erp_assistant.config import settings
from erp_assistant.database import SessionLocal, init_db
from erp_assistant.routes import chat, providers
from erp_assistant.routes import settings as settings_routes
from erp_assistant.services.ai_service import AIService
from erp_assistant.services.assistant import ERPAssistant
from erp_assistant.services.netsuite import default_data_source
from erp_assistant.services.settings_store import (
    apply_settings,
    load_settings,
    settings_from_env,
)

logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    datefmt="%Y-%m-%dT%H:%M:%S",
)
logger = logging.getLogger("erp_assistant")


def build_assistant() -> ERPAssistant:
    """
    Create the process-wide assistant.

    Provider configuration comes from the saved settings blob
    when one exists, otherwise from the environment.
    """
    assistant = ERPAssistant(
        ai_service=AIService(use_cors_proxy=settings.use_cors_proxy),
        data_source=default_data_source(),
    )
    db = SessionLocal()
    try:
        blob = load_settings(db) or settings_from_env()
    finally:
        db.close()
    apply_settings(assistant, blob)
    return assistant


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Initialize the database and the assistant on startup."""
    init_db()
    app.state.assistant = build_assistant()
    logger.info(
        "ERP Assistant started with %d AI provider(s)",
        len(app.state.assistant.get_ai_providers()),
    )
    yield
    await app.state.assistant.aclose()
    logger.info("ERP Assistant shut down.")


app = FastAPI(
    title="ERP Assistant API",
    description=(
        "Natural-language questions over NetSuite data, "
        "analysed by a pluggable AI provider."
    ),
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
)

# CORS middleware for frontend development server
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Register API routes
app.include_router(chat.router)
app.include_router(providers.router)
app.include_router(settings_routes.router)


@app.get("/api/health", tags=["health"])
def health_check():
    """Health check endpoint to verify the API is running."""
    return {"status": "ok"}
