"""
Translation of service-layer errors into HTTP responses.

Domain errors carry their own status code; storage connection failures
become 503; anything else is logged and reported as a generic 500.
"""
import asyncio

import structlog
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from sqlalchemy.exc import OperationalError, TimeoutError as SQLTimeoutError

from wav.core.exceptions import CooldownActiveError, WavError

logger = structlog.get_logger()


def is_database_connection_error(error: Exception) -> bool:
    """
    Check if an error is a database connection/pool issue.

    Args:
        error: Exception to check

    Returns:
        True if error is related to database connection/pool
    """
    if isinstance(error, (OperationalError, SQLTimeoutError, asyncio.TimeoutError)):
        return True

    error_str = str(error).lower()
    return "queuepool" in error_str or "connection pool" in error_str


async def wav_error_handler(request: Request, exc: WavError) -> JSONResponse:
    """Render a domain error as {"detail", "error_type", ...}."""
    log = logger.error if exc.status_code >= 500 else logger.info
    log(
        "request_failed",
        path=request.url.path,
        method=request.method,
        error_type=exc.error_type,
        status=exc.status_code,
        detail=exc.detail,
    )

    headers = None
    if isinstance(exc, CooldownActiveError):
        headers = {"Retry-After": str(exc.retry_after_seconds)}

    return JSONResponse(status_code=exc.status_code, content=exc.to_dict(), headers=headers)


async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Handle unhandled exceptions."""
    pool_error = is_database_connection_error(exc)

    logger.error(
        "unhandled_exception",
        path=request.url.path,
        method=request.method,
        error=str(exc),
        error_type=type(exc).__name__,
        is_pool_error=pool_error,
    )

    if pool_error:
        return JSONResponse(
            status_code=503,
            content={
                "detail": "Service temporarily unavailable. Please try again in a moment.",
                "error_type": "provider_unavailable",
            },
        )

    return JSONResponse(
        status_code=500,
        content={"detail": "Internal server error", "error_type": "internal_error"},
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(WavError, wav_error_handler)
    app.add_exception_handler(Exception, global_exception_handler)
