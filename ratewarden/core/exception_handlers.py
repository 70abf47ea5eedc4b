"""Global exception handlers for consistent error responses.

Design:
- ThrottledError → 429 with the throttling headers
- Other AppError subclasses → 400 / 403
- Unexpected Exception → generic 500 (safety net)
- All responses include request_id for tracing
"""

import logging

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from ratewarden.core.errors import AppError, AuthenticationAppError, ThrottledError
from ratewarden.core.logging import get_request_id

logger = logging.getLogger(__name__)


def _error_body(exc: AppError) -> dict:
    content = {
        "code": exc.code,
        "message": exc.message,
        "request_id": get_request_id(),
    }
    if exc.details:
        content["details"] = exc.details
    return {"error": content}


async def throttled_error_handler(request: Request, exc: ThrottledError) -> JSONResponse:
    """Render a rejection as 429 carrying every rate limit header."""
    return JSONResponse(
        status_code=status.HTTP_429_TOO_MANY_REQUESTS,
        content=_error_body(exc),
        headers=exc.headers,
    )


async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    """Handle domain application errors with consistent JSON format.

    - AuthenticationAppError → 403 Forbidden
    - anything else → 400 Bad Request
    """
    if isinstance(exc, ThrottledError):
        return await throttled_error_handler(request, exc)

    status_code = status.HTTP_400_BAD_REQUEST
    if isinstance(exc, AuthenticationAppError):
        status_code = status.HTTP_403_FORBIDDEN

    logger.warning(
        "app_error_handled",
        extra={
            "error_code": exc.code,
            "status_code": status_code,
            "request_path": request.url.path,
        },
    )
    return JSONResponse(status_code=status_code, content=_error_body(exc))


async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Fallback for unexpected errors. Never leaks internals to the client."""
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
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "error": {
                "code": "internal_server_error",
                "message": "An unexpected error occurred. Please try again later.",
                "request_id": get_request_id(),
            }
        },
    )


def setup_exception_handlers(app: FastAPI) -> None:
    """Register all exception handlers with the app.

    Starlette picks the most specific handler by MRO, so ThrottledError is
    routed to its own handler before the AppError one.
    """
    app.exception_handler(ThrottledError)(throttled_error_handler)
    app.exception_handler(AppError)(app_error_handler)
    app.exception_handler(Exception)(general_exception_handler)
