"""Request correlation middleware.

Every request runs with a correlation id bound into the logging context. A
client-supplied id is reused when it is short and printable; anything else is
replaced by a fresh one. The id and the handling time are echoed back, and a
single ``http.request`` access line is logged per request.

Usage:
    app.middleware("http")(request_id_middleware)
"""

from __future__ import annotations

import logging
import time
import uuid

from fastapi import Request, Response

from ratewarden.core.config import settings
from ratewarden.core.logging import clear_request_id, set_request_id

logger = logging.getLogger(__name__)

MAX_REQUEST_ID_LENGTH = 128
DURATION_HEADER = "X-Request-Duration-ms"


def _accept_request_id(value: str | None) -> str:
    if value and len(value) <= MAX_REQUEST_ID_LENGTH and value.isprintable():
        return value
    return uuid.uuid4().hex


def _request_id_header(request: Request) -> str:
    app_settings = getattr(request.app.state, "settings", None)
    return (app_settings or settings).log.request_id_header


async def request_id_middleware(request: Request, call_next) -> Response:
    header_name = _request_id_header(request)
    request_id = _accept_request_id(request.headers.get(header_name))
    set_request_id(request_id)

    started = time.perf_counter()
    status_code = 500
    try:
        response: Response = await call_next(request)
        status_code = response.status_code
    finally:
        elapsed_ms = (time.perf_counter() - started) * 1000
        logger.info(
            "http.request",
            extra={
                "method": request.method,
                "path": request.url.path,
                "status": status_code,
                "duration_ms": round(elapsed_ms, 2),
            },
        )
        clear_request_id()

    response.headers[header_name] = request_id
    response.headers.setdefault(DURATION_HEADER, f"{elapsed_ms:.2f}")
    return response
