"""
Global Error Handling

This module defines the exception taxonomy shared by the retrieval and
validation layers, and the FastAPI handlers that map it onto HTTP responses.

Design Goals
------------
- Never leak internal exception details to clients
- Always return deterministic, machine-readable error responses
- Log full stack traces internally for debugging
- Keep DSL findings out of this module: they are collected, not raised
"""

from __future__ import annotations

import logging
from typing import Dict, Any

from fastapi import Request
from fastapi.responses import JSONResponse

logger = logging.getLogger("aoi.errors")


# ---------------------------------------------------------------------
# Exception Taxonomy
# ---------------------------------------------------------------------

class AoiDocsError(RuntimeError):
    """Base error for every failure raised by this package."""


class InvalidInputError(AoiDocsError, ValueError):
    """Raised for malformed request parameters or empty normalized DSL text."""


class EmbeddingError(AoiDocsError):
    """Base error for embedding collaborator failures."""


class EmbeddingUnavailable(EmbeddingError):
    """Raised when the embedding provider credential or service is unreachable."""


class EmbeddingMalformed(EmbeddingError):
    """Raised when the embedding payload does not contain a numeric vector."""


class GenerationUnavailable(AoiDocsError):
    """Raised when the generation provider credential or service is unreachable."""


class OperationCancelled(AoiDocsError):
    """Raised when a search or validation was cancelled or timed out."""


class VectorStoreError(AoiDocsError):
    """Raised when a passage violates the vector store contract."""


# ---------------------------------------------------------------------
# Public Exception Handlers
# ---------------------------------------------------------------------

def _error_response(status_code: int, error: str, detail: str) -> JSONResponse:
    payload: Dict[str, Any] = {
        "error": error,
        "detail": detail,
    }
    return JSONResponse(status_code=status_code, content=payload)


async def invalid_input_handler(
    request: Request,
    exc: InvalidInputError,
) -> JSONResponse:
    """
    Reject malformed input with a 400.

    The message of an InvalidInputError is written for end users, so it is
    the only exception text that is ever returned to the client.
    """
    return _error_response(400, "invalid_input", str(exc))


async def collaborator_error_handler(
    request: Request,
    exc: Exception,
) -> JSONResponse:
    """
    Map embedding/generation failures onto a single 502 response.

    Collaborator failures are not retried here; retry policy belongs to the
    provider boundary.
    """
    logger.error(
        "Collaborator failure during request %s %s: %s",
        request.method,
        request.url.path,
        type(exc).__name__,
    )
    return _error_response(502, "upstream_unavailable", "Upstream provider unavailable")


async def cancelled_handler(
    request: Request,
    exc: OperationCancelled,
) -> JSONResponse:
    logger.warning("Request cancelled: %s %s", request.method, request.url.path)
    return _error_response(504, "cancelled", "Operation cancelled before completion")


async def unhandled_exception_handler(
    request: Request,
    exc: Exception,
) -> JSONResponse:
    """
    Catch-all handler for uncaught exceptions.

    This handler should be registered with FastAPI as the final safety net
    for any exception not otherwise handled by route-level or framework-level
    handlers.

    Parameters
    ----------
    request : Request
        The incoming HTTP request that triggered the exception.

    exc : Exception
        The uncaught exception instance.

    Returns
    -------
    JSONResponse
        A JSON 500 response with a minimal error payload.
    """

    # Log full traceback internally (never returned to client)
    logger.exception(
        "Unhandled exception during request: %s %s",
        request.method,
        request.url.path,
        exc_info=exc,
    )

    return _error_response(500, "internal_server_error", "Internal server error")
