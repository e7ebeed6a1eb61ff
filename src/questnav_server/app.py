"""Application factory and CLI entry point.

``create_app()`` builds the FastAPI application with:
  - Lifespan handler that loads the questionnaire store once
  - CORS middleware
  - Global exception handlers (ValueError → 404/409/429/400,
    DefinitionError → 422, InvalidAnswerError → 400)
  - All API routes mounted under ``/api/v1``
  - A ``/health`` endpoint for readiness probes

The ``cli()`` function is the ``questnav-server`` console-script entry point.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from questnav.errors import DefinitionError, InvalidAnswerError
from questnav.store import QuestionnaireStore

from questnav_server.config import ServerSettings, load_settings
from questnav_server.errors import (
    definition_error_handler,
    generic_error_handler,
    invalid_answer_handler,
    key_error_handler,
    value_error_handler,
)
from questnav_server.registry import ResponseStorage, SessionRegistry
from questnav_server.routes import register_routes

logger = logging.getLogger(__name__)


# ------------------------------------------------------------------
# Lifespan — runs once at startup/shutdown
# ------------------------------------------------------------------

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Load the questionnaire store at startup unless one was injected.

    Sessions and stored responses are in-memory only and are dropped on
    shutdown.
    """
    settings: ServerSettings = app.state.settings

    if getattr(app.state, "store", None) is None:
        store = QuestionnaireStore(settings.questionnaire_dir)
        store.load()
        app.state.store = store
        logger.info("QuestionnaireStore loaded %d questionnaires", len(store))

    yield

    # --- Shutdown ---
    logger.info("Dropping %d in-memory sessions", len(app.state.registry))


# ------------------------------------------------------------------
# Factory
# ------------------------------------------------------------------

def create_app(
    settings: ServerSettings | None = None,
    store: QuestionnaireStore | None = None,
) -> FastAPI:
    """Build and return the configured FastAPI application.

    Passing a loaded ``store`` skips the startup load (used by tests and by
    hosts that assemble questionnaires in memory).
    """
    if settings is None:
        settings = load_settings()

    # --- Configure logging ---
    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )

    app = FastAPI(
        title="questnav API Server",
        description="REST API for skip-logic questionnaire interviews",
        version="0.1.0",
        lifespan=lifespan,
    )

    # Store settings so the lifespan handler can read them
    app.state.settings = settings
    app.state.store = store
    app.state.registry = SessionRegistry(settings.max_sessions)
    app.state.responses = ResponseStorage()

    # --- CORS ---
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # --- Exception handlers ---
    app.add_exception_handler(InvalidAnswerError, invalid_answer_handler)
    app.add_exception_handler(DefinitionError, definition_error_handler)
    app.add_exception_handler(ValueError, value_error_handler)
    app.add_exception_handler(KeyError, key_error_handler)
    app.add_exception_handler(Exception, generic_error_handler)

    # --- Health check (outside /api/v1 prefix) ---
    @app.get("/health")
    async def health() -> dict:
        """Readiness probe — reports whether questionnaires are loaded."""
        store = app.state.store
        if store is None:
            return {"status": "error", "detail": "questionnaires not loaded"}
        return {"status": "ok", "questionnaires": len(store), "sessions": len(app.state.registry)}

    # --- Mount all API routes ---
    register_routes(app)

    return app


# ------------------------------------------------------------------
# Module-level ASGI export (for uvicorn questnav_server.app:app)
# ------------------------------------------------------------------
app = create_app()


# ------------------------------------------------------------------
# CLI entry point
# ------------------------------------------------------------------

def cli() -> None:
    """Console-script entry point: ``questnav-server``."""
    import uvicorn

    settings = load_settings()
    uvicorn.run(
        "questnav_server.app:app",
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level.lower(),
        reload=False,
    )
