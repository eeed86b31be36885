"""hexview kernel: the public API of the preview core.

User-space code (``hexview.api``, ``hexview.cli``, ``hexview.studio`` and
applications embedding the preview) imports from ``hexview.kernel``.
Kernel-space code (``hexview.kernel.*``, ``hexview.compiler``,
``hexview.drivers.*``, ``hexview.stdlib.*``) may import submodules freely.

Exports are grouped by category:
- Configuration
- Domain types
- Port protocols
- Linking
- Orchestration
- Exceptions
- Logging
"""

import importlib
from typing import TYPE_CHECKING, Any

# ============================================================================
# 1. Configuration
# ============================================================================
from hexview.kernel.config import (
    ExecutionMode,
    ExecutorConfig,
    HexViewConfig,
    LinkerConfig,
    LoggingConfig,
    PreviewConfig,
    ProviderConfig,
    RenamePolicy,
    load_config,
)

# ============================================================================
# 2. Domain types
# ============================================================================
from hexview.kernel.domain import (
    Bundle,
    CommandResult,
    CreateFile,
    DeleteFile,
    Diagnostic,
    EditFile,
    InsertText,
    ModuleRecord,
    RenameOrMove,
    ToolCommand,
    VFSChange,
    VFSSnapshot,
    ViewFile,
    VirtualFile,
    parse_command,
)

# ============================================================================
# 6. Exceptions
# ============================================================================
from hexview.kernel.exceptions import (
    AmbiguousEditError,
    CommandParseError,
    ConfigurationError,
    CyclicMoveError,
    HexViewError,
    InvalidPathError,
    PathConflictError,
    PathNotFoundError,
    SandboxRuntimeError,
    StepLimitExceededError,
    TransformSyntaxError,
    UnresolvedImportError,
    ValidationError,
    VFSError,
)

# ============================================================================
# 7. Logging
# ============================================================================
from hexview.kernel.logging import configure_logging, get_logger

# ============================================================================
# 3. Port protocols
# ============================================================================
from hexview.kernel.ports import (
    CommandSource,
    ObserverManager,
    PreviewArtifact,
    Sandbox,
    SandboxReport,
    TurnContext,
    VirtualFileSystem,
)

if TYPE_CHECKING:
    from hexview.kernel.linking import ModuleGraphLinker, ModuleResolver
    from hexview.kernel.orchestration.tool_executor import ToolExecutor, TurnSession
    from hexview.kernel.orchestration.turn_runner import TurnOutcome, TurnRunner

# Linking and orchestration depend on hexview.compiler, which imports kernel
# submodules; they load on first access.
_LAZY_EXPORTS = {
    "ModuleGraphLinker": "hexview.kernel.linking",
    "ModuleResolver": "hexview.kernel.linking",
    "ToolExecutor": "hexview.kernel.orchestration.tool_executor",
    "TurnSession": "hexview.kernel.orchestration.tool_executor",
    "TurnOutcome": "hexview.kernel.orchestration.turn_runner",
    "TurnRunner": "hexview.kernel.orchestration.turn_runner",
}


def __getattr__(name: str) -> Any:
    """Lazy import for linking and orchestration components.

    Raises
    ------
    AttributeError
        If the requested attribute does not exist
    """
    module_name = _LAZY_EXPORTS.get(name)
    if module_name is None:
        raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
    return getattr(importlib.import_module(module_name), name)


__all__ = [
    # Configuration
    "ExecutionMode",
    "ExecutorConfig",
    "HexViewConfig",
    "LinkerConfig",
    "LoggingConfig",
    "PreviewConfig",
    "ProviderConfig",
    "RenamePolicy",
    "load_config",
    # Domain
    "Bundle",
    "CommandResult",
    "CreateFile",
    "DeleteFile",
    "Diagnostic",
    "EditFile",
    "InsertText",
    "ModuleRecord",
    "RenameOrMove",
    "ToolCommand",
    "VFSChange",
    "VFSSnapshot",
    "ViewFile",
    "VirtualFile",
    "parse_command",
    # Ports
    "CommandSource",
    "ObserverManager",
    "PreviewArtifact",
    "Sandbox",
    "SandboxReport",
    "TurnContext",
    "VirtualFileSystem",
    # Linking
    "ModuleGraphLinker",
    "ModuleResolver",
    # Orchestration
    "ToolExecutor",
    "TurnOutcome",
    "TurnRunner",
    "TurnSession",
    # Exceptions
    "AmbiguousEditError",
    "CommandParseError",
    "ConfigurationError",
    "CyclicMoveError",
    "HexViewError",
    "InvalidPathError",
    "PathConflictError",
    "PathNotFoundError",
    "SandboxRuntimeError",
    "StepLimitExceededError",
    "TransformSyntaxError",
    "UnresolvedImportError",
    "ValidationError",
    "VFSError",
    # Logging
    "configure_logging",
    "get_logger",
]
