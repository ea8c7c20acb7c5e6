"""API request/response schemas."""

from gator.api.schemas.common import (
    ErrorDetail,
    HealthResponse,
    ProblemDetail,
    PublishWarning,
    StatusResponse,
)

__all__ = ["ErrorDetail", "HealthResponse", "ProblemDetail", "PublishWarning", "StatusResponse"]
