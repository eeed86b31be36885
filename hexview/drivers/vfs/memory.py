"""In-memory VFS driver.

Nodes live in a flat arena keyed by normalized path; there are no parent
pointers, so a rename is a re-keying of the moved subtree. Every mutation is
staged on a shallow copy of the arena and swapped in only after all of its
preconditions have passed.

Example
-------
.. code-block:: python

    vfs = InMemoryVFS()
    vfs.write("/components/Button.jsx", "export default () => null;")
    vfs.list("/components")
    vfs.rename("/components", "/ui")
"""

from __future__ import annotations

from contextlib import contextmanager
from typing import TYPE_CHECKING

from hexview.kernel.domain.vfs import (
    DirEntry,
    EntryType,
    SnapshotEntry,
    VFSChange,
    VFSSnapshot,
    VirtualFile,
)
from hexview.kernel.exceptions import (
    CyclicMoveError,
    InvalidPathError,
    PathConflictError,
    PathNotFoundError,
    VFSError,
)
from hexview.kernel.logging import get_logger
from hexview.kernel.paths import ROOT, ancestors, basename, is_descendant, normalize_path, parent_of

if TYPE_CHECKING:
    from collections.abc import Callable, Iterator

    Arena = dict[str, VirtualFile]

logger = get_logger(__name__)


class InMemoryVFS:
    """Arena-backed implementation of the VirtualFileSystem port."""

    def __init__(self, files: dict[str, str] | None = None) -> None:
        """Create an empty VFS, optionally seeded with ``files``.

        Args
        ----
            files: Mapping of path to content written as one transaction.
        """
        self._nodes: Arena = {ROOT: VirtualFile(ROOT, "", EntryType.DIRECTORY, 0)}
        self._revision = 0
        self._listeners: list[Callable[[VFSChange], None]] = []
        self._staged: Arena | None = None
        self._pending: set[str] = set()
        if files:
            with self.batch():
                for path, content in files.items():
                    self.write(path, content)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    @property
    def revision(self) -> int:
        return self._revision

    @property
    def _view(self) -> Arena:
        return self._staged if self._staged is not None else self._nodes

    def _get(self, path: str) -> VirtualFile:
        node = self._view.get(path)
        if node is None:
            raise PathNotFoundError(path)
        return node

    def read(self, path: str) -> str:
        node = self._get(normalize_path(path))
        if node.is_directory:
            raise VFSError(node.path, "is a directory")
        return node.content

    def exists(self, path: str) -> bool:
        return normalize_path(path) in self._view

    def stat(self, path: str) -> VirtualFile:
        return self._get(normalize_path(path))

    def list(self, path: str = ROOT) -> list[DirEntry]:
        directory = self._get(normalize_path(path))
        if not directory.is_directory:
            raise VFSError(directory.path, "not a directory")
        children = [
            DirEntry(name=basename(node.path), entry_type=node.kind, path=node.path)
            for node in self._view.values()
            if node.path != ROOT and parent_of(node.path) == directory.path
        ]
        return sorted(children, key=lambda entry: entry.name)

    def files(self) -> list[VirtualFile]:
        return sorted(
            (node for node in self._view.values() if not node.is_directory),
            key=lambda node: node.path,
        )

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def _apply(self, operation: Callable[[Arena, int], set[str]]) -> None:
        """Run ``operation`` on a copy of the arena and commit it if it succeeds.

        ``operation`` receives the working arena and the revision to stamp,
        and returns the set of changed paths.
        """
        base = self._view
        working = dict(base)
        changed = operation(working, self._revision + 1)
        if not changed:
            return
        if self._staged is not None:
            self._staged = working
            self._pending.update(changed)
            return
        self._commit(working, changed)

    def _commit(self, nodes: Arena, changed: set[str]) -> None:
        self._nodes = nodes
        self._revision += 1
        change = VFSChange(paths=frozenset(changed), revision=self._revision)
        logger.debug(
            "VFS revision {rev}: {count} path(s) changed", rev=self._revision, count=len(changed)
        )
        self._notify(change)

    def _ensure_parents(self, nodes: Arena, path: str, revision: int) -> set[str]:
        """Create missing ancestors of ``path``; fail if any ancestor is a file."""
        missing = []
        for ancestor in ancestors(path):
            node = nodes.get(ancestor)
            if node is None:
                missing.append(ancestor)
            elif not node.is_directory:
                raise PathConflictError(ancestor, "is a file, not a directory")
        for ancestor in missing:
            nodes[ancestor] = VirtualFile(ancestor, "", EntryType.DIRECTORY, revision)
        return set(missing)

    def write(self, path: str, content: str) -> None:
        target = normalize_path(path)

        def operation(nodes: Arena, revision: int) -> set[str]:
            existing = nodes.get(target)
            if existing is not None and existing.is_directory:
                raise PathConflictError(target, "is a directory")
            created = self._ensure_parents(nodes, target, revision)
            nodes[target] = VirtualFile(target, content, EntryType.FILE, revision)
            return created | {target}

        self._apply(operation)

    def create(self, path: str, content: str = "") -> None:
        target = normalize_path(path)
        if target in self._view:
            raise PathConflictError(target)
        self.write(target, content)

    def mkdir(self, path: str) -> None:
        target = normalize_path(path)

        def operation(nodes: Arena, revision: int) -> set[str]:
            existing = nodes.get(target)
            if existing is not None:
                if not existing.is_directory:
                    raise PathConflictError(target, "is a file")
                return set()
            created = self._ensure_parents(nodes, target, revision)
            nodes[target] = VirtualFile(target, "", EntryType.DIRECTORY, revision)
            return created | {target}

        self._apply(operation)

    def delete(self, path: str) -> frozenset[str]:
        target = normalize_path(path)
        if target == ROOT:
            raise VFSError(ROOT, "cannot delete the root directory")
        self._get(target)
        removed = frozenset(
            p for p in self._view if p == target or is_descendant(p, target)
        )

        def operation(nodes: Arena, revision: int) -> set[str]:
            for p in removed:
                del nodes[p]
            return set(removed)

        self._apply(operation)
        return removed

    def rename(self, source: str, destination: str) -> dict[str, str]:
        src = normalize_path(source)
        dst = normalize_path(destination)
        if src == ROOT:
            raise VFSError(ROOT, "cannot move the root directory")
        self._get(src)
        if is_descendant(dst, src):
            raise CyclicMoveError(src, dst)
        if dst in self._view:
            raise PathConflictError(dst)

        moves = {
            p: dst + p[len(src) :]
            for p in self._view
            if p == src or is_descendant(p, src)
        }

        def operation(nodes: Arena, revision: int) -> set[str]:
            created = self._ensure_parents(nodes, dst, revision)
            moved = {old: nodes.pop(old) for old in moves}
            for old, node in moved.items():
                new = moves[old]
                nodes[new] = VirtualFile(new, node.content, node.kind, revision)
            return created | set(moves) | set(moves.values())

        self._apply(operation)
        return moves

    # ------------------------------------------------------------------
    # Whole-state serialization
    # ------------------------------------------------------------------

    def snapshot(self) -> VFSSnapshot:
        return VFSSnapshot(
            {
                node.path: SnapshotEntry(
                    content=node.content, kind=node.kind, last_modified=node.last_modified
                )
                for node in sorted(self._view.values(), key=lambda n: n.path)
                if node.path != ROOT
            }
        )

    def restore(self, snapshot: VFSSnapshot) -> None:
        """Replace the whole state with ``snapshot``.

        Missing ancestor directories are recreated.

        Raises
        ------
        InvalidPathError
            If a snapshot key is not a normalized absolute path
        PathConflictError
            If a file sits where the snapshot needs a directory
        """
        entries = snapshot.root
        for path in entries:
            if normalize_path(path) != path:
                raise InvalidPathError(path, "snapshot key is not a normalized path")

        top = max((entry.last_modified for entry in entries.values()), default=0)
        revision = max(self._revision, top) + 1

        nodes: Arena = {ROOT: VirtualFile(ROOT, "", EntryType.DIRECTORY, 0)}
        for path in sorted(entries):
            entry = entries[path]
            content = "" if entry.kind is EntryType.DIRECTORY else entry.content
            nodes[path] = VirtualFile(path, content, entry.kind, entry.last_modified)
        for path in list(nodes):
            for ancestor in ancestors(path):
                node = nodes.get(ancestor)
                if node is None:
                    nodes[ancestor] = VirtualFile(ancestor, "", EntryType.DIRECTORY, revision)
                elif not node.is_directory:
                    raise PathConflictError(ancestor, "is a file, not a directory")

        if self._staged is not None:
            raise VFSError(ROOT, "cannot restore inside a batch")
        changed = set(self._nodes) | set(nodes)
        changed.discard(ROOT)
        self._revision = revision - 1
        self._commit(nodes, changed)

    # ------------------------------------------------------------------
    # Notifications and transactions
    # ------------------------------------------------------------------

    def subscribe(self, listener: Callable[[VFSChange], None]) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _notify(self, change: VFSChange) -> None:
        for listener in list(self._listeners):
            try:
                listener(change)
            except Exception:
                # A failing listener must not undo a committed mutation
                logger.exception(
                    "VFS change listener {name} failed",
                    name=getattr(listener, "__qualname__", repr(listener)),
                )

    @contextmanager
    def batch(self) -> Iterator[None]:
        if self._staged is not None:
            yield
            return
        self._staged = dict(self._nodes)
        self._pending = set()
        try:
            yield
        except BaseException:
            self._staged = None
            self._pending = set()
            raise
        staged, pending = self._staged, self._pending
        self._staged = None
        self._pending = set()
        if pending:
            self._commit(staged, pending)


__all__ = ["InMemoryVFS"]
