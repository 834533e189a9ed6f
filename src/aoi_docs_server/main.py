"""
Docs Server Application Entry Point

This module defines the FastAPI application instance, registers all routers,
configures global exception handling, and provides a test-friendly application
factory.

Design Goals
------------
- Deterministic startup
- Centralized router registration
- Error taxonomy mapped onto HTTP status codes in one place
- Test-friendly via create_app()
"""

from __future__ import annotations

import logging
from fastapi import FastAPI

from .config import settings
from .core.errors import (
    EmbeddingError,
    GenerationUnavailable,
    InvalidInputError,
    OperationCancelled,
    cancelled_handler,
    collaborator_error_handler,
    invalid_input_handler,
    unhandled_exception_handler,
)
from .db import init_db

from .api import (
    search_routes,
    query_routes,
    function_routes,
    validate_routes,
    health_routes,
)


logger = logging.getLogger("aoi.app")


# ---------------------------------------------------------------------
# Application Factory (Test-Friendly)
# ---------------------------------------------------------------------

def create_app(initialize_store: bool = True) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Parameters
    ----------
    initialize_store : bool
        Create the passage table on startup. Tests that override the store
        dependency pass False.

    Returns
    -------
    FastAPI
        Fully configured FastAPI application.
    """
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    app = FastAPI(
        title="aoi-docs-server",
        version="1.0.0",
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
    )

    # --------------------------------------------------------------
    # Global Exception Handling
    # --------------------------------------------------------------

    app.add_exception_handler(InvalidInputError, invalid_input_handler)
    app.add_exception_handler(EmbeddingError, collaborator_error_handler)
    app.add_exception_handler(GenerationUnavailable, collaborator_error_handler)
    app.add_exception_handler(OperationCancelled, cancelled_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)

    # --------------------------------------------------------------
    # Router Registration
    # --------------------------------------------------------------

    app.include_router(health_routes.router)
    app.include_router(search_routes.router)
    app.include_router(query_routes.router)
    app.include_router(function_routes.router)
    app.include_router(validate_routes.router)

    # --------------------------------------------------------------
    # Startup Hook
    # --------------------------------------------------------------

    @app.on_event("startup")
    async def _startup() -> None:
        logger.info("Starting aoi-docs-server")
        if initialize_store:
            await init_db()
            logger.info("Passage store ready")
        if settings.gemini_api_key is None:
            logger.warning("GEMINI_API_KEY is not set; retrieval requests will fail")

    @app.on_event("shutdown")
    async def _shutdown() -> None:
        logger.info("Shutting down aoi-docs-server")

    return app


# ---------------------------------------------------------------------
# Default Application Instance (for Uvicorn/Gunicorn)
# ---------------------------------------------------------------------

app = create_app()
