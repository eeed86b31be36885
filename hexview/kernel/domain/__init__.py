"""Domain models for hexview."""

from hexview.kernel.domain.commands import (
    CommandResult,
    CreateFile,
    DeleteFile,
    EditFile,
    InsertText,
    RenameOrMove,
    ToolCommand,
    ViewFile,
    parse_command,
    parse_commands,
)
from hexview.kernel.domain.modules import (
    EXTERNAL,
    Bundle,
    Diagnostic,
    ImportEntry,
    ImportKind,
    ModuleKind,
    ModuleRecord,
    ModuleStatus,
    TransformedModule,
)
from hexview.kernel.domain.vfs import (
    DirEntry,
    EntryType,
    SnapshotEntry,
    VFSChange,
    VFSSnapshot,
    VirtualFile,
)

__all__ = [
    "EXTERNAL",
    "Bundle",
    "CommandResult",
    "CreateFile",
    "DeleteFile",
    "Diagnostic",
    "DirEntry",
    "EditFile",
    "EntryType",
    "ImportEntry",
    "ImportKind",
    "InsertText",
    "ModuleKind",
    "ModuleRecord",
    "ModuleStatus",
    "RenameOrMove",
    "SnapshotEntry",
    "ToolCommand",
    "TransformedModule",
    "VFSChange",
    "VFSSnapshot",
    "ViewFile",
    "VirtualFile",
    "parse_command",
    "parse_commands",
]
