"""Domain models for the virtual filesystem.

``VirtualFile`` is the stored node; ``VFSSnapshot`` is the serialized
whole-state form exchanged with external project storage.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum

from pydantic import BaseModel, ConfigDict, Field, RootModel


class EntryType(StrEnum):
    """Type of a VFS entry."""

    FILE = "file"
    DIRECTORY = "directory"


@dataclass(frozen=True, slots=True)
class VirtualFile:
    """A single VFS node.

    Attributes
    ----------
    path : str
        Absolute, normalized path; the unique key of the node.
    content : str
        Text content (always empty for directories).
    kind : EntryType
        File or directory.
    last_modified : int
        VFS revision at which this node was last written.
    """

    path: str
    content: str
    kind: EntryType
    last_modified: int

    @property
    def is_directory(self) -> bool:
        return self.kind is EntryType.DIRECTORY


class DirEntry(BaseModel):
    """A single entry in a VFS directory listing."""

    name: str
    entry_type: EntryType
    path: str


@dataclass(frozen=True, slots=True)
class VFSChange:
    """Change notification emitted after a committed mutation.

    ``paths`` holds every path whose content or existence changed, including
    both the old and new locations of a rename.
    """

    paths: frozenset[str]
    revision: int


class SnapshotEntry(BaseModel):
    """Serialized form of one node: ``{content, kind, lastModified}``."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    content: str = ""
    kind: EntryType = EntryType.FILE
    last_modified: int = Field(default=0, alias="lastModified", ge=0)


class VFSSnapshot(RootModel[dict[str, SnapshotEntry]]):
    """Mapping of path to :class:`SnapshotEntry`, enough to rebuild a VFS.

    Examples
    --------
    >>> snap = VFSSnapshot.model_validate({"/App.jsx": {"content": "x", "kind": "file"}})
    >>> snap.to_json_dict()["/App.jsx"]["lastModified"]
    0
    """

    def to_json_dict(self) -> dict[str, dict[str, object]]:
        """Dump using the wire field names (``lastModified``)."""
        return self.model_dump(mode="json", by_alias=True)


__all__ = ["DirEntry", "EntryType", "SnapshotEntry", "VFSChange", "VFSSnapshot", "VirtualFile"]
