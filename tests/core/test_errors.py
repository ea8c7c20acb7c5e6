"""Tests for gator.core.errors: hierarchy, codes, context and chaining."""

import pytest

from gator.core.errors import (
    CircularDependencyError,
    ConfigError,
    ErrorCategory,
    ErrorContext,
    GatorError,
    InvalidConfigError,
    InvalidPayloadError,
    InvalidRootAssignmentError,
    InvalidTransformationDefinitionError,
    NodeFanOutError,
    NotTraversableError,
    PathNotFoundError,
    PayloadTooLargeError,
    ScriptEvaluationError,
    TransformationError,
    TransportError,
    UnknownNodeError,
    UnsupportedMediaTypeError,
)


class TestErrorContext:
    def test_empty(self):
        assert ErrorContext().to_dict() == {}

    def test_only_set_fields(self):
        ctx = ErrorContext(path="sales/total", metadata={"attempt": 2})
        assert ctx.to_dict() == {"path": "sales/total", "attempt": 2}


class TestGatorError:
    def test_defaults(self):
        error = GatorError("boom")
        assert error.message == "boom"
        assert error.category == ErrorCategory.INTERNAL
        assert error.code == "INTERNAL"
        assert error.retryable is False

    def test_with_context(self):
        error = GatorError("boom").with_context(topic="factory/sales", attempt=3)
        assert error.context.topic == "factory/sales"
        assert error.context.metadata == {"attempt": 3}

    def test_chaining(self):
        cause = ValueError("bad")
        error = GatorError("wrapped", cause=cause)
        assert error.__cause__ is cause
        assert error.to_dict()["cause"] == "bad"

    def test_to_dict(self):
        data = PathNotFoundError(("a", "b"), token="b").to_dict()
        assert data["error_type"] == "PathNotFoundError"
        assert data["code"] == "NOT_FOUND"
        assert data["context"] == {"path": "a/b"}


class TestCodes:
    @pytest.mark.parametrize(
        ("error", "code"),
        [
            (PathNotFoundError(("a",)), "NOT_FOUND"),
            (NotTraversableError(("a", "b"), "a"), "INVALID_INPUT"),
            (InvalidRootAssignmentError(1), "INVALID_INPUT"),
            (CircularDependencyError(("a",)), "INTERNAL"),
            (InvalidTransformationDefinitionError("a", "bad"), "INVALID_INPUT"),
            (ScriptEvaluationError("bad"), "INTERNAL"),
            (UnknownNodeError("x"), "NOT_FOUND"),
            (TransportError("down"), "UNAVAILABLE"),
            (InvalidConfigError("file", "bad"), "INVALID_INPUT"),
            (UnsupportedMediaTypeError("text/plain"), "UNSUPPORTED_MEDIA_TYPE"),
            (InvalidPayloadError("bad"), "INVALID_INPUT"),
            (PayloadTooLargeError(10), "PAYLOAD_TOO_LARGE"),
        ],
    )
    def test_code(self, error, code):
        assert error.code == code

    def test_transport_errors_are_retryable(self):
        assert TransportError("down").retryable is True

    def test_script_errors_are_transformation_errors(self):
        assert issubclass(ScriptEvaluationError, TransformationError)
        assert ScriptEvaluationError("x").category == ErrorCategory.SCRIPT

    def test_config_error_category(self):
        assert InvalidConfigError("file", "bad").category == ErrorCategory.CONFIG
        assert issubclass(InvalidConfigError, ConfigError)


class TestNodeFanOutError:
    def test_takes_code_of_cause(self):
        cause = InvalidRootAssignmentError(1)
        error = NodeFanOutError("all", written=[("a",)], failed=("b",), cause=cause)
        assert error.code == "INVALID_INPUT"
        assert error.written == [("a",)]
        assert error.failed == ("b",)
        assert error.__cause__ is cause

    def test_non_gator_cause_is_internal(self):
        error = NodeFanOutError("all", written=[], failed=("b",), cause=RuntimeError("x"))
        assert error.code == "INTERNAL"

    def test_messages_match_wire_wording(self):
        assert str(PathNotFoundError(("a", "b"), token="b")) == "path element 'b' not found"
        assert "no match in the nodes list" in str(UnknownNodeError("x"))
