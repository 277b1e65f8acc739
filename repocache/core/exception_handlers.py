"""Centralized exception handlers for the FastAPI app.

Register with register_exception_handlers(app). Maps repository and cache
exceptions to JSON responses.
"""

import logging
from typing import Any

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from repocache.core.config import get_settings
from repocache.domain.exceptions import RepoCacheException

logger = logging.getLogger(__name__)

# Map error_code to HTTP status when applicable
_ERROR_CODE_STATUS: dict[str, int] = {
    "RESOURCE_NOT_FOUND": 404,
    "INVALID_ARGUMENT": 400,
    "UNSUPPORTED_OPERATION": 400,
    "SERVICE_UNAVAILABLE": 503,
    "CACHE_UNAVAILABLE": 503,
    "CACHE_OPERATION_ERROR": 500,
    "CACHE_CONFIGURATION_ERROR": 500,
}


def _repocache_exception_handler(
    request: Request, exc: RepoCacheException
) -> JSONResponse:
    """Return JSON (error, message, details) with the mapped status code."""
    status = _ERROR_CODE_STATUS.get(exc.error_code, 400)
    return JSONResponse(
        status_code=status,
        content={
            "error": exc.error_code,
            "message": exc.message,
            "details": exc.details,
        },
    )


def _generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Return 500; include detail only when debug is True."""
    logger.exception("Unhandled exception: %s", exc)
    settings = get_settings()
    detail: Any = str(exc) if settings.debug else "Internal server error"
    return JSONResponse(
        status_code=500,
        content={"error": "INTERNAL_ERROR", "message": detail},
    )


def register_exception_handlers(app: FastAPI) -> None:
    """Register exception handlers on the FastAPI app.

    Call once after creating the app. Handlers: RepoCacheException (and
    subclasses), generic Exception.
    """
    app.add_exception_handler(RepoCacheException, _repocache_exception_handler)
    app.add_exception_handler(Exception, _generic_exception_handler)
