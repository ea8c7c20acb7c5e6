"""
Common API schemas: write acknowledgements, health, RFC 7807 errors.

Read endpoints return the resolved JSON value itself, without an envelope.
Write endpoints return :class:`StatusResponse`; every non-2xx response is a
:class:`ProblemDetail`.
"""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, Field

# ── RFC 7807 Problem Detail ─────────────────────────────────────────────


class ErrorDetail(BaseModel):
    """Structured error detail for field-level or nested errors."""

    code: str = Field(description="Machine-readable error code (e.g., 'NOT_FOUND')")
    message: str = Field(description="Human-readable error description")
    field: str | None = Field(default=None, description="Path or field the error concerns")


class ProblemDetail(BaseModel):
    """RFC 7807 «Problem Details for HTTP APIs».

    Error Codes:
        - ``NOT_FOUND`` (404): Path or node alias does not exist
        - ``INVALID_INPUT`` (400): Malformed JSON, path, definition or config
        - ``UNSUPPORTED_MEDIA_TYPE`` (415): Body is not ``application/json``
        - ``PAYLOAD_TOO_LARGE`` (413): Body exceeds the configured limit
        - ``UNAVAILABLE`` (503): Bus transport failure
        - ``INTERNAL`` (500): Transformation failure or unexpected error

    Example:
        {
            "type": "about:blank",
            "title": "PathNotFoundError",
            "status": 404,
            "detail": "path element 'east' not found",
            "instance": "/model/sales/east",
            "code": "NOT_FOUND",
            "errors": []
        }
    """

    type: str = Field(default="about:blank", description="Error type URI (usually 'about:blank')")
    title: str = Field(description="Short human-readable error summary")
    status: int = Field(description="HTTP status code (e.g., 400, 404, 500)")
    detail: str = Field(default="", description="Human-readable explanation of the error")
    instance: str = Field(default="", description="URI of the failing request")
    code: str | None = Field(default=None, description="Machine-readable error code")
    errors: list[ErrorDetail] = Field(
        default_factory=list,
        description="List of field-level or nested error details",
    )


# ── Success Envelopes ────────────────────────────────────────────────────


class PublishWarning(BaseModel):
    """A bus publish that failed after the write landed."""

    topic: str
    prefix: str
    error: str
    error_type: str


class StatusResponse(BaseModel):
    """Acknowledgement of a write.

    ``warnings`` lists bus publishes that failed; the write itself stands.
    """

    status: Literal["success"] = "success"
    warnings: list[PublishWarning] = Field(default_factory=list)


class HealthResponse(BaseModel):
    status: Literal["ok", "degraded"]
    version: str
    bus: str = Field(description="'connected' | 'unavailable' | 'stopped' | 'disabled'")
    transformations: int
    nodes: int
