"""Node aliases: one name, many document paths written together.

A fan-out writes the same value to every target path in order. There is no
atomicity across targets: when one write fails, the targets already written
stay written and ``NodeFanOutError`` reports which ones they were.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable, Mapping, Sequence
from typing import Any, TypeVar

from gator.core.errors import NodeFanOutError, UnknownNodeError
from gator.core.logging import get_logger
from gator.core.paths import PathTokens, join_path, split_path

logger = get_logger(__name__)

T = TypeVar("T")

WriteFn = Callable[[PathTokens, Any], Awaitable[T]]


class NodeRegistry:
    """Alias → ordered list of target paths."""

    def __init__(self, nodes: Mapping[str, Sequence[str]] | None = None):
        self._nodes: dict[str, list[PathTokens]] = {}
        self.replace(nodes or {})

    @property
    def aliases(self) -> list[str]:
        return list(self._nodes)

    def targets(self, alias: str) -> list[PathTokens]:
        try:
            return list(self._nodes[alias])
        except KeyError:
            raise UnknownNodeError(alias) from None

    def replace(self, nodes: Mapping[str, Sequence[str]]) -> None:
        self._nodes = {
            alias: [split_path(path) for path in paths] for alias, paths in nodes.items()
        }

    def as_dict(self) -> dict[str, list[str]]:
        return {alias: [join_path(path) for path in paths] for alias, paths in self._nodes.items()}

    async def fan_out(self, alias: str, value: Any, write: WriteFn[T]) -> list[T]:
        """Await ``write(path, value)`` for every target of ``alias`` in order.

        Raises:
            UnknownNodeError: alias is not registered
            NodeFanOutError: a target write failed; earlier writes stay applied
        """
        targets = self.targets(alias)
        written: list[PathTokens] = []
        results: list[T] = []
        for path in targets:
            try:
                results.append(await write(path, value))
            except Exception as exc:
                logger.warning(
                    "node_fan_out_failed",
                    alias=alias,
                    path=join_path(path),
                    written=len(written),
                    error=str(exc),
                )
                raise NodeFanOutError(alias, written=written, failed=path, cause=exc) from exc
            written.append(path)

        logger.info("node_fan_out_completed", alias=alias, targets=len(targets))
        return results


__all__ = ["NodeRegistry"]
