"""Global exception handlers for consistent error responses.

Design:
- TooManyAttemptsError → its own status (429/403) with Retry-After
- Other AppError subclasses → appropriate HTTP status (400, 401, 500, 503)
- Unexpected Exception → generic 500 (safety net)
- All responses include request_id for distributed tracing
"""

from __future__ import annotations

import logging

from fastapi import Request
from fastapi.responses import JSONResponse

from bruteguard.core.errors import (
    AppError,
    AuthenticationAppError,
    ConfigurationAppError,
    StoreAppError,
    TooManyAttemptsError,
)
from bruteguard.core.logging import get_request_id

logger = logging.getLogger(__name__)


def _status_for(exc: AppError) -> int:
    if isinstance(exc, AuthenticationAppError):
        return 401
    if isinstance(exc, StoreAppError):
        return 503
    if isinstance(exc, ConfigurationAppError):
        return 500
    return 400


async def too_many_attempts_handler(request: Request, exc: TooManyAttemptsError) -> JSONResponse:
    """Render a denied attempt with Retry-After and the retry date."""
    next_valid = exc.next_valid_request_date.isoformat() if exc.next_valid_request_date else None
    return JSONResponse(
        status_code=exc.status_code,
        content={
            "error": {
                "code": exc.code,
                "message": exc.message,
                "nextValidRequestDate": next_valid,
                "request_id": get_request_id(),
            }
        },
        headers={"Retry-After": str(exc.retry_after_seconds)},
    )


async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    """Handle application errors with consistent JSON format.

    Routes errors to HTTP status codes:
    - AuthenticationAppError → 401 Unauthorized
    - StoreAppError → 503 Service Unavailable (point store failed)
    - ConfigurationAppError → 500 Internal Server Error
    - anything else → 400 Bad Request

    Args:
        request: FastAPI request object.
        exc: AppError instance (or subclass).

    Returns:
        JSONResponse with appropriate status code and error details.
    """
    status_code = _status_for(exc)

    logger.warning(
        "app_error_handled",
        extra={
            "error_code": exc.code,
            "error_message": exc.message,
            "status_code": status_code,
            "has_details": bool(exc.details),
            "request_id": get_request_id(),
        },
    )

    error_content = {
        "code": exc.code,
        "message": exc.message,
        "request_id": get_request_id(),
    }
    if exc.details:
        error_content["details"] = exc.details

    return JSONResponse(
        status_code=status_code,
        content={"error": error_content},
    )


async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Fallback handler for unexpected errors (safety net).

    Logs the failure while returning a generic message, so no stack traces
    or internals reach the client.
    """
    logger.error(
        "unhandled_exception",
        extra={
            "error_type": type(exc).__name__,
            "error_msg": str(exc),
            "request_path": request.url.path,
            "request_method": request.method,
            "request_id": get_request_id(),
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


def setup_exception_handlers(app) -> None:
    """Register all exception handlers with a FastAPI app.

    Specific handlers are registered before the general fallback; Starlette
    picks the most specific class in the exception's MRO.
    """
    app.exception_handler(TooManyAttemptsError)(too_many_attempts_handler)
    app.exception_handler(AppError)(app_error_handler)
    app.exception_handler(Exception)(general_exception_handler)
