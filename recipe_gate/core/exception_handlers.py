"""Global exception handlers for consistent error responses.

Design:
- RateLimitAppError -> 429 with Retry-After / X-RateLimit-* headers
- Other AppError subclasses -> 400 (client fault)
- Unexpected Exception -> generic 500 (safety net)
- All responses carry request_id for log correlation
"""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from recipe_gate.core.errors import AppError, RateLimitAppError
from recipe_gate.core.logging import get_request_id

logger = logging.getLogger(__name__)

DEFAULT_RETRY_AFTER_SECONDS = 60


def _error_body(exc: AppError) -> dict:
    error_content = {
        "code": exc.code,
        "message": exc.message,
        "request_id": get_request_id(),
    }
    if exc.details:
        error_content["details"] = exc.details
    return {"error": error_content}


async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    """Handle domain application errors with consistent JSON format.

    Args:
        request: FastAPI request object.
        exc: AppError instance (or subclass).

    Returns:
        JSONResponse with status 400 and error details.
    """
    logger.warning(
        "app_error_handled",
        extra={
            "error_code": exc.code,
            "error_message": exc.message,
            "status_code": 400,
            "has_details": bool(exc.details),
        },
    )
    return JSONResponse(status_code=400, content=_error_body(exc))


async def rate_limit_error_handler(request: Request, exc: RateLimitAppError) -> JSONResponse:
    """Answer a rejected admission check with HTTP 429.

    ``Retry-After`` falls back to 60 seconds when the rejection carries no
    retry hint. ``X-RateLimit-Limit`` and ``X-RateLimit-Reset`` are only sent
    when the details include them.
    """
    details = exc.details or {}
    retry_after = details.get("retry_after")
    headers = {
        "Retry-After": str(retry_after if retry_after is not None else DEFAULT_RETRY_AFTER_SECONDS),
        "X-RateLimit-Remaining": "0",
    }
    if "limit" in details:
        headers["X-RateLimit-Limit"] = str(details["limit"])
    if "reset_at" in details:
        headers["X-RateLimit-Reset"] = str(details["reset_at"])

    return JSONResponse(status_code=429, content=_error_body(exc), headers=headers)


async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Fallback handler for unexpected errors; never leaks internals to the client."""
    logger.error(
        "unhandled_exception",
        extra={
            "error_type": type(exc).__name__,
            "error_msg": str(exc),
            "request_path": request.url.path,
            "request_method": request.method,
        },
    )

    return JSONResponse(
        status_code=500,
        content={
            "error": {
                "code": "internal_server_error",
                "message": "An unexpected error occurred. Please try again later.",
                "request_id": get_request_id(),
            }
        },
    )


def setup_exception_handlers(app: FastAPI) -> None:
    """Register all exception handlers with the FastAPI app.

    Starlette resolves handlers along the exception MRO, so the 429 handler
    takes precedence over the generic AppError one.
    """
    app.exception_handler(RateLimitAppError)(rate_limit_error_handler)
    app.exception_handler(AppError)(app_error_handler)
    app.exception_handler(Exception)(general_exception_handler)
