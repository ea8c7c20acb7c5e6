"""
Scripting bridge: evaluate a transformation expression against bindings.

The transformation engine only depends on the ``Evaluator`` protocol, a
single ``evaluate(expression, bindings)`` call where both the bindings and
the result are JSON values. ``JavaScriptEvaluator`` is the production
implementation, backed by an embedded V8 isolate (``mini-racer``).

Each evaluation runs inside an isolating function so bindings never leak
into the shared global scope::

    (function () {
        var self = <json>;
        var north = <json>;
        return JSON.stringify(eval(<expression as a JSON string>));
    })()

The expression is a script whose completion value is the result, so both
``self * 2`` and ``var t = north + south; t`` work. Only values that
survive ``JSON.stringify`` cross back; ``undefined`` or a function fails
the call.

Guardrails:
    - One V8 context per evaluator, evaluations serialised behind a lock
    - Optional per-evaluation timeout enforced by V8 itself
    - Every failure surfaces as ``ScriptEvaluationError``

Tags:
    scripting, javascript, v8, transformations, gator
"""

from __future__ import annotations

import json
import threading
from collections.abc import Mapping
from typing import Protocol, runtime_checkable

from py_mini_racer import MiniRacer

from gator.core.errors import ScriptEvaluationError
from gator.core.logging import get_logger
from gator.core.tree import JsonValue

logger = get_logger(__name__)


@runtime_checkable
class Evaluator(Protocol):
    """Evaluate an expression with named JSON bindings, returning a JSON value."""

    def evaluate(self, expression: str, bindings: Mapping[str, JsonValue]) -> JsonValue:
        """Raise ``ScriptEvaluationError`` when the expression cannot be evaluated."""
        ...


class JavaScriptEvaluator:
    """Evaluator backed by an embedded V8 isolate.

    Args:
        timeout_ms: Upper bound for a single evaluation. ``None`` disables it.
    """

    def __init__(self, timeout_ms: int | None = 1000):
        self.timeout_ms = timeout_ms
        self._context = MiniRacer()
        self._lock = threading.Lock()

    def _build_script(self, expression: str, bindings: Mapping[str, JsonValue]) -> str:
        declarations = "".join(
            f"var {name} = {json.dumps(value)};\n" for name, value in bindings.items()
        )
        return (
            "(function () {\n"
            f"{declarations}"
            f"return JSON.stringify(eval({json.dumps(expression)}));\n"
            "})()"
        )

    def evaluate(self, expression: str, bindings: Mapping[str, JsonValue]) -> JsonValue:
        try:
            script = self._build_script(expression, bindings)
        except (TypeError, ValueError) as exc:
            raise ScriptEvaluationError(
                f"bindings are not JSON-serialisable: {exc}", cause=exc
            ) from exc

        timeout_sec = self.timeout_ms / 1000 if self.timeout_ms is not None else None
        with self._lock:
            try:
                result = self._context.eval(script, timeout_sec=timeout_sec)
            except Exception as exc:
                logger.debug("script_failed", error=str(exc), error_type=type(exc).__name__)
                raise ScriptEvaluationError(
                    f"failed to execute JavaScript: {exc}", cause=exc
                ) from exc

        if not isinstance(result, str):
            raise ScriptEvaluationError(
                "transformation result is not a JSON value (got undefined or a function)"
            )
        try:
            return json.loads(result)
        except ValueError as exc:
            raise ScriptEvaluationError(
                f"failed to decode transformation result {result!r}", cause=exc
            ) from exc


__all__ = ["Evaluator", "JavaScriptEvaluator"]
