"""
Slash-separated document paths.

A path is a tuple of non-empty string tokens. The empty tuple addresses the
document root. Tokens are opaque: no escaping is supported, so a token can
never contain ``/``.

Examples:
    >>> split_path("/sales//north/")
    ('sales', 'north')
    >>> join_path(("sales", "north"))
    'sales/north'
    >>> is_prefix(("sale",), ("sales", "north"))
    False
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence

PathTokens = tuple[str, ...]

ROOT: PathTokens = ()
SEPARATOR = "/"


def split_path(path: str) -> PathTokens:
    """Split a slash-separated path into tokens, dropping empty ones."""
    return tuple(token for token in path.strip(SEPARATOR).split(SEPARATOR) if token)


def join_path(tokens: Iterable[str]) -> str:
    """Canonical key form of a path. The root joins to ``""``."""
    return SEPARATOR.join(tokens)


def as_tokens(path: str | Sequence[str]) -> PathTokens:
    """Accept either a path string or a token sequence."""
    if isinstance(path, str):
        return split_path(path)
    return tuple(path)


def is_prefix(prefix: Sequence[str], tokens: Sequence[str]) -> bool:
    """Token-wise prefix test. Every path has the root as a prefix."""
    if len(prefix) > len(tokens):
        return False
    return tuple(tokens[: len(prefix)]) == tuple(prefix)


__all__ = ["PathTokens", "ROOT", "SEPARATOR", "split_path", "join_path", "as_tokens", "is_prefix"]
