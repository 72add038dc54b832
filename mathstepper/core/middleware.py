from __future__ import annotations

import logging
import time
from typing import Awaitable, Callable

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from mathstepper.core.logging import bind_request_id, current_request_id, unbind_request_id

logger = logging.getLogger("mathstepper.request")

REQUEST_ID_HEADER = "X-Request-ID"


class RequestIdMiddleware(BaseHTTPMiddleware):
    """Binds a request id for the duration of a request and times it."""

    async def dispatch(
        self, request: Request, call_next: Callable[[Request], Awaitable[Response]]
    ) -> Response:
        token = bind_request_id(request.headers.get(REQUEST_ID_HEADER))
        request_id = current_request_id() or ""
        started = time.perf_counter()
        extra: dict[str, object] = {"path": request.url.path, "method": request.method}
        logger.info("request.start", extra=extra)

        try:
            response = await call_next(request)
            extra["status_code"] = response.status_code
        finally:
            extra["duration_ms"] = round((time.perf_counter() - started) * 1000, 2)
            logger.info("request.end", extra=extra)
            unbind_request_id(token)

        response.headers[REQUEST_ID_HEADER] = request_id
        return response
