"""Request correlation middleware.

Every response, including 429 rejections produced by the rate limit
middleware, carries the request id and the time spent serving it.

Usage:
    app.middleware("http")(request_id_middleware)
"""

from __future__ import annotations

import time
import uuid
from typing import Awaitable, Callable

from fastapi import Request, Response

from recipe_gate.core.logging import clear_request_id, set_request_id

DEFAULT_REQUEST_ID_HEADER = "X-Request-ID"


async def request_id_middleware(
    request: Request, call_next: Callable[[Request], Awaitable[Response]]
) -> Response:
    """Accept or generate a request id and echo it back.

    The incoming ``X-Request-ID`` (header name taken from
    ``app.state.request_id_header``, set by ``create_app`` from
    ``LogSettings.request_id_header``) is reused when present, otherwise a UUID4 is
    generated. The id lives in a contextvar for the duration of the request
    so log records pick it up, and is cleared afterwards.

    Returns:
        Response with ``X-Request-ID`` and ``X-Request-Duration-ms`` headers.
    """

    header_name = getattr(request.app.state, "request_id_header", DEFAULT_REQUEST_ID_HEADER)
    request_id = request.headers.get(header_name) or str(uuid.uuid4())
    set_request_id(request_id)
    started = time.perf_counter()
    try:
        response = await call_next(request)
    finally:
        clear_request_id()

    response.headers[header_name] = request_id
    response.headers.setdefault(
        "X-Request-Duration-ms", f"{(time.perf_counter() - started) * 1000:.2f}"
    )
    return response
