"""
Error handlers: map ``GatorError`` codes to RFC 7807 responses.
"""

from __future__ import annotations

from typing import Any

from fastapi import Request
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from gator.api.schemas.common import ErrorDetail, ProblemDetail
from gator.core.errors import GatorError, NodeFanOutError
from gator.core.logging import get_logger

logger = get_logger(__name__)

# ── Error code → HTTP status mapping ─────────────────────────────────────

ERROR_CODE_TO_STATUS: dict[str, int] = {
    "NOT_FOUND": 404,
    "INVALID_INPUT": 400,
    "PAYLOAD_TOO_LARGE": 413,
    "UNSUPPORTED_MEDIA_TYPE": 415,
    "UNAVAILABLE": 503,
    "INTERNAL": 500,
}


def status_for_error_code(code: str) -> int:
    """Resolve an error code to HTTP status, defaulting to 500."""
    return ERROR_CODE_TO_STATUS.get(code, 500)


def problem_response(
    *,
    status: int,
    title: str,
    detail: str = "",
    instance: str = "",
    code: str | None = None,
    errors: list[dict[str, Any]] | None = None,
) -> JSONResponse:
    """Build a RFC 7807 JSON error response."""
    body = ProblemDetail(
        title=title,
        status=status,
        detail=detail,
        instance=instance,
        code=code,
    )
    if errors:
        body.errors = [ErrorDetail(**e) for e in errors]
    return JSONResponse(
        status_code=status,
        content=body.model_dump(),
        media_type="application/problem+json",
    )


async def gator_error_handler(request: Request, exc: GatorError) -> JSONResponse:
    """Render any ``GatorError`` with the status its code maps to."""
    status = status_for_error_code(exc.code)
    log = logger.error if status >= 500 else logger.info
    log("request_failed", path=request.url.path, status=status, **exc.to_dict())

    errors = None
    if isinstance(exc, NodeFanOutError):
        errors = [
            {"code": "WRITTEN", "message": "write applied before the failure", "field": "/".join(path)}
            for path in exc.written
        ]
    return problem_response(
        status=status,
        title=type(exc).__name__,
        detail=exc.message,
        instance=str(request.url),
        code=exc.code,
        errors=errors,
    )


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Routing errors (404 unknown route, 405 wrong method) as problem documents."""
    response = problem_response(
        status=exc.status_code,
        title=str(exc.detail),
        instance=str(request.url),
    )
    if exc.headers:
        response.headers.update(exc.headers)
    return response


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Catch-all for unhandled exceptions: 500 with ProblemDetail."""
    logger.exception("unhandled_exception", path=request.url.path, error=str(exc))
    return problem_response(
        status=500,
        title="Internal Server Error",
        detail=str(exc) if request.app.state.settings.debug else "An unexpected error occurred.",
        instance=str(request.url),
        code="INTERNAL",
    )
