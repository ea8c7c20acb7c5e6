"""
Structured error types for the gator hub.

Every failure the hub can surface is a ``GatorError`` subclass carrying a
category, a retry hint, structured context (path, alias, topic) and an
optional chained cause. The HTTP layer maps ``code`` to a status; the bus
bridge and the write path use the class to decide whether a failure is
fatal or degrades to "raw value stands".

Manifesto:
    - **Typed hierarchy:** One class per failure the document, the
      transformation engine, the node registry or the bus can produce
    - **Explicit propagation:** Structural errors propagate, transformation
      errors during a write degrade, transport errors are reported
    - **Rich context:** Errors carry the path or topic they concern
    - **Error chaining:** The original exception is kept as ``cause``

Architecture:
    ::

        GatorError (category, code, retryable, context, cause)
        ├── DocumentError          (DOCUMENT)
        │   ├── PathNotFoundError
        │   ├── NotTraversableError
        │   └── InvalidRootAssignmentError
        ├── TransformationError    (TRANSFORMATION)
        │   ├── CircularDependencyError
        │   ├── InvalidTransformationDefinitionError
        │   └── ScriptEvaluationError   (SCRIPT)
        ├── NodeError              (NODE)
        │   ├── UnknownNodeError
        │   └── NodeFanOutError
        ├── TransportError         (TRANSPORT, retryable)
        ├── ConfigError            (CONFIG)
        │   └── InvalidConfigError
        └── RequestError           (REQUEST)
            ├── UnsupportedMediaTypeError
            ├── InvalidPayloadError
            └── PayloadTooLargeError

Examples:
    >>> error = PathNotFoundError(("sales", "north"), token="north")
    >>> error.code
    'NOT_FOUND'
    >>> error.context.path
    'sales/north'

Tags:
    error-handling, exception-hierarchy, gator, http-mapping

Doc-Types:
    - API Reference
    - Error Handling Guide
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class ErrorCategory(str, Enum):
    """Standard error categories for classification and logging."""

    DOCUMENT = "DOCUMENT"              # Path lookups and structural writes
    TRANSFORMATION = "TRANSFORMATION"  # Definitions, resolution, cycles
    SCRIPT = "SCRIPT"                  # Scripting bridge evaluation
    NODE = "NODE"                      # Node alias fan-out
    TRANSPORT = "TRANSPORT"            # Bus connect/publish/subscribe
    CONFIG = "CONFIG"                  # Persisted configuration
    REQUEST = "REQUEST"                # Malformed inbound HTTP payloads
    INTERNAL = "INTERNAL"


@dataclass
class ErrorContext:
    """
    Structured metadata attached to an error.

    Only fields that are set are emitted by ``to_dict()``; anything that
    has no dedicated field goes into ``metadata``.

    Attributes:
        path: Slash-joined document path the error concerns
        alias: Node alias being fanned out
        topic: Bus topic being published or subscribed
        metadata: Additional key-value pairs
    """

    path: str | None = None
    alias: str | None = None
    topic: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for logging."""
        result = {}
        for key in ["path", "alias", "topic"]:
            value = getattr(self, key)
            if value is not None:
                result[key] = value
        if self.metadata:
            result.update(self.metadata)
        return result


class GatorError(Exception):
    """
    Base exception for all gator errors.

    Subclasses set ``default_category``, ``default_retryable`` and ``code``.
    ``code`` is a machine-readable identifier the HTTP layer maps to a
    status (``NOT_FOUND`` → 404, ``INVALID_INPUT`` → 400, ...).

    Examples:
        >>> error = GatorError("Something went wrong")
        >>> error.category
        <ErrorCategory.INTERNAL: 'INTERNAL'>
        >>> error.with_context(path="sales/total").context.path
        'sales/total'
    """

    default_category: ErrorCategory = ErrorCategory.INTERNAL
    default_retryable: bool = False
    code: str = "INTERNAL"

    def __init__(
        self,
        message: str,
        *,
        category: ErrorCategory | None = None,
        retryable: bool | None = None,
        context: ErrorContext | None = None,
        cause: BaseException | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.category = category or self.default_category
        self.retryable = retryable if retryable is not None else self.default_retryable
        self.context = context or ErrorContext()
        self.cause = cause

        if cause is not None:
            self.__cause__ = cause

    def with_context(self, **kwargs: Any) -> GatorError:
        """
        Add context to this error (fluent API).

        Usage:
            raise TransportError("publish failed").with_context(topic="sales")
        """
        for key, value in kwargs.items():
            if hasattr(self.context, key) and key != "metadata":
                setattr(self.context, key, value)
            else:
                self.context.metadata[key] = value
        return self

    def to_dict(self) -> dict[str, Any]:
        """Convert error to dictionary for logging/serialization."""
        result = {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "category": self.category.value,
            "code": self.code,
            "retryable": self.retryable,
        }
        context_dict = self.context.to_dict()
        if context_dict:
            result["context"] = context_dict
        if self.cause is not None:
            result["cause"] = str(self.cause)
        return result

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.message!r}, category={self.category.value})"


def _joined(path: Sequence[str]) -> str:
    return "/".join(path)


# =============================================================================
# DOCUMENT ERRORS
# =============================================================================


class DocumentError(GatorError):
    """Structural error reading or writing the document tree."""

    default_category = ErrorCategory.DOCUMENT
    code = "INVALID_INPUT"


class PathNotFoundError(DocumentError):
    """A path token is absent from the document."""

    code = "NOT_FOUND"

    def __init__(self, path: Sequence[str], token: str | None = None):
        self.path = tuple(path)
        self.token = token
        if token is None:
            message = f"path '{_joined(path)}' not found"
        else:
            message = f"path element '{token}' not found"
        super().__init__(message, context=ErrorContext(path=_joined(path)))


class NotTraversableError(DocumentError):
    """An intermediate path token addresses a scalar or a sequence."""

    def __init__(self, path: Sequence[str], token: str):
        self.path = tuple(path)
        self.token = token
        super().__init__(
            f"path element '{token}' does not point to an object",
            context=ErrorContext(path=_joined(path)),
        )


class InvalidRootAssignmentError(DocumentError):
    """The document root can only be replaced by a mapping."""

    def __init__(self, value: Any):
        self.value_type = type(value).__name__
        super().__init__(f"expected JSON object for root model update, got {self.value_type}")


# =============================================================================
# TRANSFORMATION ERRORS
# =============================================================================


class TransformationError(GatorError):
    """Base class for transformation definition and resolution failures."""

    default_category = ErrorCategory.TRANSFORMATION


class CircularDependencyError(TransformationError):
    """A path re-entered its own resolution."""

    def __init__(self, path: Sequence[str], chain: Sequence[str] = ()):
        self.path = tuple(path)
        self.chain = list(chain)
        cycle = " -> ".join([*self.chain, _joined(path)]) if self.chain else _joined(path)
        super().__init__(
            f"circular dependency while resolving '{_joined(path)}': {cycle}",
            context=ErrorContext(path=_joined(path)),
        )


class InvalidTransformationDefinitionError(TransformationError):
    """A transformation's implementation or parameters are malformed."""

    code = "INVALID_INPUT"

    def __init__(self, path: str, reason: str):
        self.path = path
        self.reason = reason
        super().__init__(
            f"invalid transformation at '{path}': {reason}",
            context=ErrorContext(path=path),
        )


class ScriptEvaluationError(TransformationError):
    """The scripting bridge failed to evaluate an expression."""

    default_category = ErrorCategory.SCRIPT


# =============================================================================
# NODE ERRORS
# =============================================================================


class NodeError(GatorError):
    """Node alias lookup or fan-out error."""

    default_category = ErrorCategory.NODE


class UnknownNodeError(NodeError):
    """The node alias is not registered."""

    code = "NOT_FOUND"

    def __init__(self, alias: str):
        self.alias = alias
        super().__init__(
            f"no match in the nodes list for the path \"{alias}\"",
            context=ErrorContext(alias=alias),
        )


class NodeFanOutError(NodeError):
    """
    One target of a fan-out failed.

    Writes to earlier targets are not rolled back; ``written`` lists them.
    The HTTP status follows the underlying cause.
    """

    def __init__(
        self,
        alias: str,
        *,
        written: Sequence[Sequence[str]],
        failed: Sequence[str],
        cause: BaseException,
    ):
        self.alias = alias
        self.written = [tuple(path) for path in written]
        self.failed = tuple(failed)
        if isinstance(cause, GatorError):
            self.code = cause.code
        super().__init__(
            f"node '{alias}' failed writing '{_joined(failed)}' after "
            f"{len(self.written)} successful write(s): {cause}",
            context=ErrorContext(alias=alias, path=_joined(failed)),
            cause=cause,
        )


# =============================================================================
# TRANSPORT ERRORS
# =============================================================================


class TransportError(GatorError):
    """Bus connect, publish or subscribe failure. Usually transient."""

    default_category = ErrorCategory.TRANSPORT
    default_retryable = True
    code = "UNAVAILABLE"


# =============================================================================
# CONFIGURATION ERRORS
# =============================================================================


class ConfigError(GatorError):
    """Configuration error. Never retryable."""

    default_category = ErrorCategory.CONFIG
    code = "INVALID_INPUT"


class InvalidConfigError(ConfigError):
    """The persisted configuration could not be read or validated."""

    def __init__(self, source: str, message: str, *, cause: BaseException | None = None):
        self.source = source
        super().__init__(f"invalid configuration from {source}: {message}", cause=cause)


# =============================================================================
# REQUEST ERRORS
# =============================================================================


class RequestError(GatorError):
    """Malformed inbound payload at the HTTP boundary."""

    default_category = ErrorCategory.REQUEST
    code = "INVALID_INPUT"


class UnsupportedMediaTypeError(RequestError):
    """Only ``application/json`` bodies are accepted."""

    code = "UNSUPPORTED_MEDIA_TYPE"

    def __init__(self, content_type: str):
        self.content_type = content_type
        super().__init__(
            f"unsupported Content-Type: {content_type}, only application/json is supported"
        )


class InvalidPayloadError(RequestError):
    """The request body is not valid JSON (or not the expected shape)."""


class PayloadTooLargeError(RequestError):
    """The request body exceeds the configured limit."""

    code = "PAYLOAD_TOO_LARGE"

    def __init__(self, limit: int):
        self.limit = limit
        super().__init__(f"request body exceeds {limit} bytes")


__all__ = [
    "ErrorCategory",
    "ErrorContext",
    "GatorError",
    "DocumentError",
    "PathNotFoundError",
    "NotTraversableError",
    "InvalidRootAssignmentError",
    "TransformationError",
    "CircularDependencyError",
    "InvalidTransformationDefinitionError",
    "ScriptEvaluationError",
    "NodeError",
    "UnknownNodeError",
    "NodeFanOutError",
    "TransportError",
    "ConfigError",
    "InvalidConfigError",
    "RequestError",
    "UnsupportedMediaTypeError",
    "InvalidPayloadError",
    "PayloadTooLargeError",
]
