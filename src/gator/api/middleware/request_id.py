"""Request-ID middleware: injects ``X-Request-ID`` and logs each request.

The id is bound into the structlog context for the duration of the request,
so every event logged while handling it (model writes, bus publishes)
carries ``request_id``.
"""

from __future__ import annotations

import uuid

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from gator.core.logging import bind_context, get_logger, unbind_context

logger = get_logger(__name__)


class RequestIDMiddleware(BaseHTTPMiddleware):
    """Attach a unique request ID to every request/response cycle."""

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        request_id = request.headers.get("X-Request-ID", str(uuid.uuid4()))
        request.state.request_id = request_id
        bind_context(request_id=request_id)
        try:
            response = await call_next(request)
            logger.info(
                "request_handled",
                method=request.method,
                path=request.url.path,
                status=response.status_code,
            )
        finally:
            unbind_context("request_id")
        response.headers["X-Request-ID"] = request_id
        return response
