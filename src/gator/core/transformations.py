"""
Transformation engine: lazy, memoised, cycle-guarded path resolution.

A transformation is registered at a path and computes the value readers see
there from the path's raw value (bound as ``self``) and the *resolved*
values of other paths (its parameters). Resolution is on demand and
recursive; results are cached per path.

Manifesto:
    - **Lazy:** Nothing is evaluated until a path is read or written
    - **Memoised:** A cached result is returned unconditionally
    - **Exact invalidation:** Only a write at the cached path itself drops
      the entry. Dependents of a changed leaf keep their cached value until
      ``clear_cache()``
    - **Fail closed on cycles:** A path already being resolved in the
      current call chain raises ``CircularDependencyError``

Architecture:
    ::

        resolve(path)
          ├── cache hit ──────────────────────────────► cached value
          ├── path in guard ──────────────────────────► CircularDependencyError
          ├── guard.add(path)            (removed in finally)
          ├── no definition ──────────────────────────► raw store value
          └── definition
                self  = raw value (None when absent)
                param = resolve(param path)   for every parameter
                value = evaluator.evaluate(implementation, bindings)
                cache[path] = value ─────────────────► value

The engine is not thread-safe on its own; the ``Model`` serialises every
call behind its lock.

Tags:
    transformations, cache, cycle-detection, lazy-evaluation, gator

Doc-Types:
    - API Reference
    - Architecture Documentation
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any

from gator.core.errors import (
    CircularDependencyError,
    GatorError,
    InvalidTransformationDefinitionError,
    NotTraversableError,
    PathNotFoundError,
    ScriptEvaluationError,
)
from gator.core.logging import get_logger
from gator.core.paths import PathTokens, join_path, split_path
from gator.core.scripting import Evaluator
from gator.core.tree import JsonValue, TreeStore, ensure_json_value

logger = get_logger(__name__)

SELF_BINDING = "self"

_MISSING = object()


@dataclass(frozen=True)
class TransformationDefinition:
    """A scripted expression registered at a path.

    Attributes:
        path: Tokens of the path the transformation produces
        implementation: Expression in the scripting dialect
        parameters: Binding name → source path (slash-joined)
    """

    path: PathTokens
    implementation: str
    parameters: Mapping[str, str] = field(default_factory=dict)

    @property
    def key(self) -> str:
        return join_path(self.path)

    def parameter_paths(self) -> dict[str, PathTokens]:
        return {name: split_path(source) for name, source in self.parameters.items()}

    @classmethod
    def build(
        cls,
        path: str | Iterable[str],
        implementation: Any,
        parameters: Any = None,
    ) -> TransformationDefinition:
        """Validate raw input and build a definition.

        Raises:
            InvalidTransformationDefinitionError: the implementation is not a
                non-empty string, or parameters are not a mapping of
                identifier → path string, or a parameter is named ``self``.
        """
        tokens = split_path(path) if isinstance(path, str) else tuple(path)
        key = join_path(tokens)

        if not isinstance(implementation, str) or not implementation.strip():
            raise InvalidTransformationDefinitionError(key, "implementation must be a non-empty string")

        if parameters is None:
            parameters = {}
        if not isinstance(parameters, Mapping):
            raise InvalidTransformationDefinitionError(key, "parameters must be a mapping")

        validated: dict[str, str] = {}
        for name, source in parameters.items():
            if not isinstance(name, str) or not name.isidentifier():
                raise InvalidTransformationDefinitionError(
                    key, f"parameter name {name!r} is not a valid identifier"
                )
            if name == SELF_BINDING:
                raise InvalidTransformationDefinitionError(
                    key, f"parameter name '{SELF_BINDING}' is reserved"
                )
            if not isinstance(source, str):
                raise InvalidTransformationDefinitionError(
                    key, f"parameter '{name}' must map to a path string"
                )
            validated[name] = source

        return cls(path=tokens, implementation=implementation, parameters=MappingProxyType(validated))


class TransformationEngine:
    """Definition registry, result cache and cycle guard over a ``TreeStore``."""

    def __init__(
        self,
        store: TreeStore,
        evaluator: Evaluator,
        definitions: Iterable[TransformationDefinition] = (),
    ):
        self.store = store
        self.evaluator = evaluator
        self._definitions: dict[PathTokens, TransformationDefinition] = {}
        self._cache: dict[PathTokens, JsonValue] = {}
        # Ordered so the in-flight chain can be reported on a cycle.
        self._guard: dict[PathTokens, None] = {}
        for definition in definitions:
            self.define(definition)

    # ── Registry ─────────────────────────────────────────────────────────

    def define(self, definition: TransformationDefinition) -> None:
        self._definitions[definition.path] = definition
        self._cache.pop(definition.path, None)

    def remove(self, tokens: PathTokens) -> bool:
        self._cache.pop(tokens, None)
        return self._definitions.pop(tokens, None) is not None

    def get(self, tokens: PathTokens) -> TransformationDefinition | None:
        return self._definitions.get(tokens)

    def has_definition(self, tokens: PathTokens) -> bool:
        return tokens in self._definitions

    @property
    def definitions(self) -> Mapping[PathTokens, TransformationDefinition]:
        return MappingProxyType(self._definitions)

    def replace_definitions(self, definitions: Iterable[TransformationDefinition]) -> None:
        self._definitions = {definition.path: definition for definition in definitions}
        self._cache.clear()

    # ── Cache ────────────────────────────────────────────────────────────

    def invalidate(self, tokens: PathTokens) -> None:
        """Drop the cached result at exactly ``tokens``."""
        self._cache.pop(tokens, None)

    def clear_cache(self) -> None:
        self._cache.clear()

    def cached(self, tokens: PathTokens, default: Any = None) -> Any:
        return self._cache.get(tokens, default)

    def is_cached(self, tokens: PathTokens) -> bool:
        return tokens in self._cache

    # ── Resolution ───────────────────────────────────────────────────────

    def resolve(self, tokens: PathTokens) -> JsonValue:
        """Resolve ``tokens`` to its transformation output or its raw value.

        Raises:
            PathNotFoundError / NotTraversableError: no definition and no raw value
            CircularDependencyError: ``tokens`` is already being resolved
            ScriptEvaluationError: the evaluator failed
        """
        tokens = tuple(tokens)
        if tokens in self._cache:
            return self._cache[tokens]

        if tokens in self._guard:
            chain = [join_path(path) for path in self._guard]
            logger.warning("circular_dependency", path=join_path(tokens), chain=chain)
            raise CircularDependencyError(tokens, chain)

        self._guard[tokens] = None
        try:
            definition = self._definitions.get(tokens)
            if definition is None:
                return self.store.get(tokens)
            return self._evaluate(definition)
        finally:
            self._guard.pop(tokens, None)

    def _evaluate(self, definition: TransformationDefinition) -> JsonValue:
        raw = self._raw_or_missing(definition.path)
        bindings: dict[str, JsonValue] = {SELF_BINDING: None if raw is _MISSING else raw}
        for name, source in definition.parameter_paths().items():
            bindings[name] = self.resolve(source)

        try:
            value = ensure_json_value(self.evaluator.evaluate(definition.implementation, bindings))
        except GatorError:
            logger.warning("transformation_failed", path=definition.key)
            raise
        except Exception as exc:
            logger.warning("transformation_failed", path=definition.key, error=str(exc))
            raise ScriptEvaluationError(
                f"transformation at '{definition.key}' failed: {exc}", cause=exc
            ).with_context(path=definition.key) from exc

        self._cache[definition.path] = value
        logger.debug("transformation_evaluated", path=definition.key, parameters=list(definition.parameters))
        return value

    def _raw_or_missing(self, tokens: PathTokens) -> Any:
        try:
            return self.store.get(tokens)
        except (PathNotFoundError, NotTraversableError):
            return _MISSING


__all__ = ["SELF_BINDING", "TransformationDefinition", "TransformationEngine"]
