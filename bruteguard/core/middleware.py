"""HTTP middleware for request ID propagation.

Usage:
    app.middleware("http")(request_id_middleware)
"""

from __future__ import annotations

import time
import uuid

from fastapi import Request, Response

from bruteguard.core.config import settings
from bruteguard.core.logging import clear_request_id, set_request_id


async def request_id_middleware(request: Request, call_next) -> Response:
    """Bind a correlation id to the request for logs and error bodies.

    The incoming header (``LOG_REQUEST_ID_HEADER``, default X-Request-ID) is
    reused when present, otherwise a UUID4 is generated. The id is stored in
    contextvars and on ``request.state.request_id``, echoed back in the
    response headers together with X-Request-Duration-ms, and cleared once
    the response is produced.
    """

    header_name = settings.log.request_id_header
    request_id = request.headers.get(header_name) or str(uuid.uuid4())
    request.state.request_id = request_id
    set_request_id(request_id)
    start = time.perf_counter()
    try:
        response: Response = await call_next(request)
    finally:
        clear_request_id()

    response.headers[header_name] = request_id
    response.headers.setdefault(
        "X-Request-Duration-ms", f"{(time.perf_counter() - start) * 1000:.2f}"
    )
    return response
