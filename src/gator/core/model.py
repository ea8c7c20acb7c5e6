"""
The hub's document: raw tree, transformation engine and one lock.

``Model`` is the only owner of the mutable document. Every public operation
takes the same re-entrant lock for its whole duration, so reads, writes and
resolutions are fully serialised. Values handed out are deep copies; values
taken in are deep-copied before they are stored.

Write state machine::

    received → cache-invalidated → stored-raw → transform-attempted
                                                   ├── stored-transformed
                                                   └── stored-raw-unchanged

A transformation failure during a write is logged and the raw value stands.
The same failure during a read propagates.

Tags:
    model, document, transformations, locking, gator
"""

from __future__ import annotations

import copy
import threading
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from typing import Any

from gator.core.errors import (
    NotTraversableError,
    PathNotFoundError,
    TransformationError,
)
from gator.core.logging import get_logger
from gator.core.paths import PathTokens, is_prefix, join_path
from gator.core.scripting import Evaluator
from gator.core.transformations import TransformationDefinition, TransformationEngine
from gator.core.tree import JsonValue, TreeStore

logger = get_logger(__name__)


@dataclass(frozen=True)
class WriteOutcome:
    """Result of a ``Model.write``.

    Attributes:
        path: Tokens that were written
        transformed: True when a transformation output replaced the raw value
        value: What is now stored at ``path``
    """

    path: PathTokens
    transformed: bool
    value: JsonValue


class Model:
    """Serialised access to the document and its transformations.

    Examples:
        >>> model = Model({"sales": {"north": 1}}, evaluator=my_evaluator)
        >>> model.write(("sales", "south"), 2).transformed
        False
        >>> model.read_raw(("sales",))
        {'north': 1, 'south': 2}
    """

    def __init__(
        self,
        document: dict[str, Any] | None = None,
        transformations: Iterable[TransformationDefinition] = (),
        *,
        evaluator: Evaluator,
    ):
        self._lock = threading.RLock()
        self._store = TreeStore(copy.deepcopy(document) if document is not None else None)
        self._engine = TransformationEngine(self._store, evaluator, transformations)

    @property
    def engine(self) -> TransformationEngine:
        return self._engine

    # ── Reads ────────────────────────────────────────────────────────────

    def resolve(self, tokens: PathTokens) -> JsonValue:
        with self._lock:
            return copy.deepcopy(self._engine.resolve(tuple(tokens)))

    def read_raw(self, tokens: PathTokens) -> JsonValue:
        with self._lock:
            return copy.deepcopy(self._store.get(tuple(tokens)))

    def read_resolved(self, tokens: PathTokens) -> JsonValue:
        """Return the value readers see at ``tokens``.

        A mapping is returned as a copy with every transformation defined at
        or below ``tokens`` overlaid at its relative position. A scalar or a
        sequence resolves like ``resolve``. With no raw value the path is
        readable only when a transformation is defined exactly there.
        """
        tokens = tuple(tokens)
        with self._lock:
            try:
                raw = self._store.get(tokens)
            except (PathNotFoundError, NotTraversableError):
                if not self._engine.has_definition(tokens):
                    raise
                return copy.deepcopy(self._engine.resolve(tokens))

            if not isinstance(raw, dict):
                return copy.deepcopy(self._engine.resolve(tokens))

            if self._engine.has_definition(tokens):
                return copy.deepcopy(self._engine.resolve(tokens))

            result = copy.deepcopy(raw)
            for path in sorted(self._engine.definitions, key=len):
                if path == tokens or not is_prefix(tokens, path):
                    continue
                value = copy.deepcopy(self._engine.resolve(path))
                _overlay(result, path[len(tokens):], value)
            return result

    # ── Writes ───────────────────────────────────────────────────────────

    def write(self, tokens: PathTokens, value: Any) -> WriteOutcome:
        """Store ``value`` at ``tokens`` and apply a transformation defined there.

        Raises:
            InvalidRootAssignmentError: root written with a non-mapping
        """
        tokens = tuple(tokens)
        value = copy.deepcopy(value)
        with self._lock:
            self._engine.invalidate(tokens)
            self._store.set(tokens, value)

            if not self._engine.has_definition(tokens):
                return WriteOutcome(tokens, transformed=False, value=copy.deepcopy(value))

            try:
                transformed = self._engine.resolve(tokens)
            except (TransformationError, PathNotFoundError, NotTraversableError) as exc:
                # A missing parameter source fails the transform, not the write.
                logger.warning(
                    "write_transform_failed",
                    path=join_path(tokens),
                    error=str(exc),
                    error_type=type(exc).__name__,
                )
                return WriteOutcome(tokens, transformed=False, value=copy.deepcopy(value))

            stored = copy.deepcopy(transformed)
            self._store.set(tokens, stored)
            return WriteOutcome(tokens, transformed=True, value=copy.deepcopy(stored))

    # ── Definitions ──────────────────────────────────────────────────────

    def define_transformation(self, definition: TransformationDefinition) -> None:
        with self._lock:
            self._engine.define(definition)

    def remove_transformation(self, tokens: PathTokens) -> bool:
        with self._lock:
            return self._engine.remove(tuple(tokens))

    @property
    def transformations(self) -> dict[PathTokens, TransformationDefinition]:
        with self._lock:
            return dict(self._engine.definitions)

    def clear_cache(self) -> None:
        """Drop every cached transformation result."""
        with self._lock:
            self._engine.clear_cache()

    def is_cached(self, tokens: PathTokens) -> bool:
        with self._lock:
            return self._engine.is_cached(tuple(tokens))

    # ── Import / export ──────────────────────────────────────────────────

    def export(self) -> dict[str, Any]:
        """Deep copy of the raw document."""
        with self._lock:
            return copy.deepcopy(self._store.document)

    def reset(
        self,
        document: Mapping[str, Any],
        transformations: Iterable[TransformationDefinition] = (),
    ) -> None:
        """Replace the document and every definition, clearing the cache."""
        with self._lock:
            self._store.set((), copy.deepcopy(dict(document)))
            self._engine.replace_definitions(transformations)
            logger.info("model_reset", transformations=len(self._engine.definitions))


def _overlay(target: dict[str, Any], relative: PathTokens, value: JsonValue) -> None:
    node = target
    for token in relative[:-1]:
        child = node.get(token)
        if not isinstance(child, dict):
            child = {}
            node[token] = child
        node = child
    node[relative[-1]] = value


__all__ = ["Model", "WriteOutcome"]
