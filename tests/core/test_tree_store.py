"""Tests for gator.core.tree: TreeStore reads/writes and JSON value checks."""

import math

import pytest

from gator.core.errors import InvalidRootAssignmentError, NotTraversableError, PathNotFoundError
from gator.core.tree import TreeStore, ensure_json_value


class TestTreeStoreGet:
    @pytest.fixture
    def store(self):
        return TreeStore({"sales": {"north": 10, "regions": ["n", "s"]}, "flag": True})

    def test_root_always_exists(self):
        assert TreeStore().get(()) == {}

    def test_nested_value(self, store):
        assert store.get(("sales", "north")) == 10

    def test_missing_token(self, store):
        with pytest.raises(PathNotFoundError) as exc_info:
            store.get(("sales", "east"))
        assert exc_info.value.token == "east"
        assert exc_info.value.code == "NOT_FOUND"

    def test_through_scalar_is_not_traversable(self, store):
        with pytest.raises(NotTraversableError) as exc_info:
            store.get(("sales", "north", "q1"))
        assert exc_info.value.token == "north"
        assert "does not point to an object" in str(exc_info.value)

    def test_sequences_are_leaves(self, store):
        with pytest.raises(NotTraversableError):
            store.get(("sales", "regions", "0"))

    def test_exists(self, store):
        assert store.exists(("flag",))
        assert not store.exists(("sales", "east"))
        assert not store.exists(("flag", "x"))


class TestTreeStoreSet:
    def test_creates_intermediate_mappings(self):
        store = TreeStore()
        store.set(("a", "b", "c"), 1)
        assert store.document == {"a": {"b": {"c": 1}}}

    def test_replaces_scalar_ancestor(self):
        store = TreeStore({"a": 5})
        store.set(("a", "b"), 1)
        assert store.get(("a",)) == {"b": 1}

    def test_replaces_sequence_ancestor(self):
        store = TreeStore({"a": [1, 2]})
        store.set(("a", "b"), 1)
        assert store.get(("a",)) == {"b": 1}

    def test_overwrite_leaf(self):
        store = TreeStore({"a": {"b": 1}})
        store.set(("a", "b"), {"nested": True})
        assert store.get(("a", "b", "nested")) is True

    def test_replace_root_with_mapping(self):
        store = TreeStore({"old": 1})
        store.set((), {"new": 2})
        assert store.document == {"new": 2}

    def test_replace_root_with_scalar_fails(self):
        store = TreeStore({"old": 1})
        with pytest.raises(InvalidRootAssignmentError):
            store.set((), [1, 2])
        assert store.document == {"old": 1}

    def test_constructor_rejects_non_mapping(self):
        with pytest.raises(InvalidRootAssignmentError):
            TreeStore([1])  # type: ignore[arg-type]


class TestEnsureJsonValue:
    def test_accepts_json_values(self):
        value = {"a": [1, 2.5, "x", None, True], "b": {"c": False}}
        assert ensure_json_value(value) == value

    def test_converts_tuples(self):
        assert ensure_json_value((1, 2)) == [1, 2]

    def test_rejects_non_string_keys(self):
        with pytest.raises(TypeError):
            ensure_json_value({1: "x"})

    def test_rejects_objects(self):
        with pytest.raises(TypeError):
            ensure_json_value(object())

    def test_rejects_non_finite_floats(self):
        with pytest.raises(TypeError):
            ensure_json_value(math.nan)
