"""
In-memory JSON document addressed by path tokens.

The tree store knows nothing about transformations. It only answers
"what raw value lives at this path" and "put this raw value here".

Read semantics:
    - The root always exists.
    - A missing token is ``PathNotFoundError``.
    - An intermediate token that addresses a scalar or a sequence is
      ``NotTraversableError``. Sequences are leaves: they are never
      indexed into by path.

Write semantics:
    - Missing intermediate mappings are created.
    - A non-mapping ancestor is replaced by an empty mapping.
    - The root can only be replaced by a mapping.

Tags:
    document, tree, json, gator
"""

from __future__ import annotations

import math
from collections.abc import Mapping, Sequence
from typing import Any, Union

from gator.core.errors import (
    InvalidRootAssignmentError,
    NotTraversableError,
    PathNotFoundError,
)

JsonValue = Union[None, bool, int, float, str, list["JsonValue"], dict[str, "JsonValue"]]


def ensure_json_value(value: Any) -> JsonValue:
    """Return ``value`` unchanged when it is JSON-representable, else raise ``TypeError``.

    Tuples are accepted and converted to lists.
    """
    if value is None or isinstance(value, (bool, int, str)):
        return value
    if isinstance(value, float):
        if math.isnan(value) or math.isinf(value):
            raise TypeError(f"non-finite float {value!r} is not a JSON value")
        return value
    if isinstance(value, (list, tuple)):
        return [ensure_json_value(item) for item in value]
    if isinstance(value, Mapping):
        result: dict[str, JsonValue] = {}
        for key, item in value.items():
            if not isinstance(key, str):
                raise TypeError(f"object key {key!r} is not a string")
            result[key] = ensure_json_value(item)
        return result
    raise TypeError(f"{type(value).__name__} is not a JSON value")


class TreeStore:
    """Mutable JSON document with path-token access.

    Examples:
        >>> store = TreeStore()
        >>> store.set(("sales", "north"), 10)
        >>> store.get(("sales",))
        {'north': 10}
        >>> store.exists(("sales", "south"))
        False
    """

    def __init__(self, document: dict[str, Any] | None = None):
        if document is not None and not isinstance(document, dict):
            raise InvalidRootAssignmentError(document)
        self._root: dict[str, Any] = document if document is not None else {}

    @property
    def document(self) -> dict[str, Any]:
        """The live root mapping. Callers that hand it out must copy it."""
        return self._root

    def get(self, tokens: Sequence[str]) -> Any:
        node: Any = self._root
        for index, token in enumerate(tokens):
            if not isinstance(node, dict):
                raise NotTraversableError(tokens, tokens[index - 1])
            if token not in node:
                raise PathNotFoundError(tokens, token)
            node = node[token]
        return node

    def exists(self, tokens: Sequence[str]) -> bool:
        try:
            self.get(tokens)
        except (PathNotFoundError, NotTraversableError):
            return False
        return True

    def set(self, tokens: Sequence[str], value: Any) -> None:
        if not tokens:
            if not isinstance(value, dict):
                raise InvalidRootAssignmentError(value)
            self._root = value
            return

        node = self._root
        for token in tokens[:-1]:
            child = node.get(token)
            if not isinstance(child, dict):
                child = {}
                node[token] = child
            node = child
        node[tokens[-1]] = value


__all__ = ["JsonValue", "TreeStore", "ensure_json_value"]
