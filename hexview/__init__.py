"""hexview: live preview for generated React projects.

An in-memory file system edited through tool commands, a JSX module
transformer, an incrementally relinked module graph and a sandboxed preview
renderer, wired together by :class:`~hexview.api.project.PreviewProject`.
"""

from typing import TYPE_CHECKING, Any

try:
    from importlib.metadata import PackageNotFoundError, version

    __version__ = version("hexview")
except PackageNotFoundError:
    __version__ = "0.0.0.dev0"

from hexview.drivers.vfs.memory import InMemoryVFS
from hexview.kernel.config import HexViewConfig, load_config
from hexview.kernel.domain.commands import CommandResult, parse_command

if TYPE_CHECKING:
    from hexview.api.project import PreviewProject, TurnReport
    from hexview.preview.renderer import PreviewRenderer, RenderOutcome

_LAZY_EXPORTS = {
    "PreviewProject": "hexview.api.project",
    "TurnReport": "hexview.api.project",
    "PreviewRenderer": "hexview.preview.renderer",
    "RenderOutcome": "hexview.preview.renderer",
}


def __getattr__(name: str) -> Any:
    """Lazy import for the session and renderer layers.

    Raises
    ------
    AttributeError
        If the attribute is not a known export
    """
    if name in _LAZY_EXPORTS:
        import importlib

        return getattr(importlib.import_module(_LAZY_EXPORTS[name]), name)
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")


__all__ = [
    "CommandResult",
    "HexViewConfig",
    "InMemoryVFS",
    "PreviewProject",
    "PreviewRenderer",
    "RenderOutcome",
    "TurnReport",
    "__version__",
    "load_config",
    "parse_command",
]
