"""Dependency graph over linked modules.

Forward edges are resolved local imports in written order. Two reverse
indexes are kept next to them: importers of a path, and importers that
*tried* a path while resolving (including paths that did not exist yet).
Invalidation walks both, so creating a missing file re-links the modules
that failed to find it.
"""

from __future__ import annotations

from collections import deque
from enum import Enum, auto
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Iterable


class Color(Enum):
    """Colors for the DFS that computes load order."""

    WHITE = auto()  # Unvisited
    GRAY = auto()  # On the current DFS path
    BLACK = auto()  # Emitted


class ModuleGraph:
    """Forward and reverse edges between module paths."""

    def __init__(self) -> None:
        self._edges: dict[str, tuple[str, ...]] = {}
        self._tried: dict[str, frozenset[str]] = {}
        self._importers: dict[str, set[str]] = {}
        self._tried_by: dict[str, set[str]] = {}

    def __contains__(self, path: object) -> bool:
        return path in self._edges

    def __len__(self) -> int:
        return len(self._edges)

    def set_module(
        self, path: str, dependencies: Iterable[str], tried: Iterable[str] = ()
    ) -> None:
        """Record (or replace) the outgoing edges of ``path``."""
        self.remove(path)
        self._edges[path] = tuple(dict.fromkeys(dependencies))
        self._tried[path] = frozenset(tried)
        for target in self._edges[path]:
            self._importers.setdefault(target, set()).add(path)
        for target in self._tried[path]:
            self._tried_by.setdefault(target, set()).add(path)

    def remove(self, path: str) -> None:
        """Drop the outgoing edges of ``path``; edges pointing at it stay."""
        for target in self._edges.pop(path, ()):
            _discard(self._importers, target, path)
        for target in self._tried.pop(path, frozenset()):
            _discard(self._tried_by, target, path)

    def clear(self) -> None:
        self._edges.clear()
        self._tried.clear()
        self._importers.clear()
        self._tried_by.clear()

    def dependencies(self, path: str) -> tuple[str, ...]:
        return self._edges.get(path, ())

    def dependents(self, path: str) -> frozenset[str]:
        """Modules that import ``path`` directly."""
        return frozenset(self._importers.get(path, ()))

    def invalidation_set(self, changed: Iterable[str]) -> frozenset[str]:
        """Changed paths plus every module that can reach one of them.

        Reachability runs backwards over import edges and lookup edges.

        Examples
        --------
        >>> graph = ModuleGraph()
        >>> graph.set_module("/App.jsx", ["/Button.jsx"])
        >>> graph.set_module("/Button.jsx", [])
        >>> sorted(graph.invalidation_set(["/Button.jsx"]))
        ['/App.jsx', '/Button.jsx']
        """
        result: set[str] = set()
        queue = deque(changed)
        while queue:
            path = queue.popleft()
            if path in result:
                continue
            result.add(path)
            queue.extend(self._importers.get(path, ()))
            queue.extend(self._tried_by.get(path, ()))
        return frozenset(result)

    def reachable(self, entry: str) -> set[str]:
        """Paths reachable from ``entry`` over forward edges, ``entry`` included."""
        seen: set[str] = set()
        stack = [entry]
        while stack:
            path = stack.pop()
            if path in seen:
                continue
            seen.add(path)
            stack.extend(self._edges.get(path, ()))
        return seen

    def load_order(self, entry: str) -> tuple[list[str], list[tuple[str, ...]]]:
        """Dependency-first order from ``entry`` and the cycles met on the way.

        Dependencies are visited in written import order. A back edge does not
        stop ordering; it is recorded as a cycle ``(a, b, ..., a)`` and the
        module already on the path is emitted when its own visit finishes.
        """
        colors: dict[str, Color] = {}
        order: list[str] = []
        cycles: list[tuple[str, ...]] = []

        def dfs(node: str, path: list[str]) -> None:
            color = colors.get(node, Color.WHITE)
            if color is Color.GRAY:
                cycle_start = path.index(node)
                cycles.append((*path[cycle_start:], node))
                return
            if color is Color.BLACK:
                return

            colors[node] = Color.GRAY
            path.append(node)
            for dependency in self._edges.get(node, ()):
                dfs(dependency, path)
            path.pop()
            colors[node] = Color.BLACK
            order.append(node)

        if entry in self._edges:
            dfs(entry, [])
        return order, cycles


def _discard(index: dict[str, set[str]], key: str, value: str) -> None:
    members = index.get(key)
    if members is None:
        return
    members.discard(value)
    if not members:
        del index[key]


__all__ = ["Color", "ModuleGraph"]
