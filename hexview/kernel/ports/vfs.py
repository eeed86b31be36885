"""VFS port: the path-addressed, in-memory project store.

Every mutating operation is atomic. It either fully succeeds and emits a
single :class:`~hexview.kernel.domain.vfs.VFSChange`, or raises and leaves
the store untouched.

Drivers
-------
- ``InMemoryVFS``: arena of nodes keyed by normalized path.
"""

from __future__ import annotations

from abc import abstractmethod
from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from collections.abc import Callable
    from contextlib import AbstractContextManager

    from hexview.kernel.domain.vfs import DirEntry, VFSChange, VFSSnapshot, VirtualFile


@runtime_checkable
class VirtualFileSystem(Protocol):
    """In-memory virtual filesystem port."""

    @property
    @abstractmethod
    def revision(self) -> int:
        """Monotonic revision counter; bumps once per committed mutation."""
        ...

    @abstractmethod
    def read(self, path: str) -> str:
        """Return file content.

        Raises
        ------
        PathNotFoundError
            If the path does not exist.
        VFSError
            If the path is a directory.
        """
        ...

    @abstractmethod
    def write(self, path: str, content: str) -> None:
        """Create or overwrite a file, creating missing ancestor directories.

        Raises
        ------
        PathConflictError
            If the path is a directory, or an ancestor is a file.
        """
        ...

    @abstractmethod
    def create(self, path: str, content: str = "") -> None:
        """Create a new file; fails with ``PathConflictError`` if it exists."""
        ...

    @abstractmethod
    def mkdir(self, path: str) -> None:
        """Create a directory and any missing ancestors."""
        ...

    @abstractmethod
    def delete(self, path: str) -> frozenset[str]:
        """Delete a file or a directory subtree; return every removed path."""
        ...

    @abstractmethod
    def rename(self, source: str, destination: str) -> dict[str, str]:
        """Move a file or subtree; return the old-to-new path mapping.

        Raises
        ------
        PathNotFoundError
            If ``source`` does not exist.
        PathConflictError
            If ``destination`` already exists.
        CyclicMoveError
            If ``destination`` lies inside ``source``.
        """
        ...

    @abstractmethod
    def list(self, path: str = "/") -> list[DirEntry]:
        """List direct children of a directory, ordered by name."""
        ...

    @abstractmethod
    def exists(self, path: str) -> bool: ...

    @abstractmethod
    def stat(self, path: str) -> VirtualFile: ...

    @abstractmethod
    def files(self) -> list[VirtualFile]:
        """All file nodes, ordered by path."""
        ...

    @abstractmethod
    def snapshot(self) -> VFSSnapshot: ...

    @abstractmethod
    def restore(self, snapshot: VFSSnapshot) -> None:
        """Replace the whole state with ``snapshot``."""
        ...

    @abstractmethod
    def subscribe(self, listener: Callable[[VFSChange], None]) -> Callable[[], None]:
        """Register a change listener; return a function that unregisters it."""
        ...

    @abstractmethod
    def batch(self) -> AbstractContextManager[None]:
        """Apply several operations as one transaction with one notification.

        If the block raises, none of its operations are committed.
        """
        ...


__all__ = ["VirtualFileSystem"]
