"""
Transcription Service Application Entry Point

This module defines the FastAPI application instance, registers all routers,
configures global exception handling, and provides a test-friendly application
factory.

Design Goals
------------
- Centralized router registration
- Domain errors rendered as deterministic JSON responses
- Global exception safety net
- Test-friendly via create_app()
"""

from __future__ import annotations

import logging

from fastapi import FastAPI

from .config import get_settings
from .core.errors import (
    TranscribeError,
    transcribe_exception_handler,
    unhandled_exception_handler,
)

from .api import (
    auth_routes,
    document_routes,
    health_routes,
    listing_routes,
)


logger = logging.getLogger("mw_transcribe.app")


# ---------------------------------------------------------------------
# Application Factory (Test-Friendly)
# ---------------------------------------------------------------------

def create_app() -> FastAPI:
    """
    Create and configure the FastAPI application.

    Returns
    -------
    FastAPI
        Fully configured FastAPI application.
    """
    app = FastAPI(
        title="mw-transcribe",
        version="1.0.0",
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
    )

    # --------------------------------------------------------------
    # Global Exception Handling
    # --------------------------------------------------------------

    app.add_exception_handler(TranscribeError, transcribe_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)

    # --------------------------------------------------------------
    # Router Registration
    # --------------------------------------------------------------

    app.include_router(health_routes.router)
    app.include_router(auth_routes.router)
    app.include_router(document_routes.router)
    app.include_router(listing_routes.router)

    # --------------------------------------------------------------
    # Startup Validation Hook
    # --------------------------------------------------------------

    @app.on_event("startup")
    async def _startup_validation() -> None:
        """
        Fail-fast validation at application startup.

        Loading the settings here surfaces a missing ``MW_API_URL`` before
        the first request is served.
        """
        settings = get_settings()
        logging.getLogger("mw_transcribe").setLevel(settings.log_level.upper())
        logger.info("Starting mw-transcribe against %s", settings.mw_api_url)

    @app.on_event("shutdown")
    async def _shutdown_cleanup() -> None:
        logger.info("Shutting down mw-transcribe")

    return app


# ---------------------------------------------------------------------
# Default Application Instance (for Uvicorn/Gunicorn)
# ---------------------------------------------------------------------

app = create_app()
