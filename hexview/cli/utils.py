"""CLI helper utilities for hexview commands."""

from __future__ import annotations

import json
from pathlib import Path
from typing import TYPE_CHECKING, Any, Protocol

import typer
import yaml
from rich.console import Console

from hexview.api.project import PreviewProject
from hexview.kernel.config import HexViewConfig, LoggingConfig, load_config
from hexview.kernel.domain.vfs import VFSSnapshot
from hexview.kernel.exceptions import HexViewError
from hexview.kernel.logging import configure_logging
from hexview.stdlib.adapters.mock import ScriptedCommandSource

if TYPE_CHECKING:
    from hexview.kernel.domain.modules import Bundle

# Files picked up when a project is loaded from a directory
PROJECT_SUFFIXES = frozenset({".jsx", ".js", ".mjs", ".css"})
_SKIPPED_DIRS = frozenset({"node_modules", "__pycache__", ".git", ".venv", "dist"})


class ContextProtocol(Protocol):
    """Protocol for common interface between Click and Typer contexts."""

    @property
    def obj(self) -> dict[str, Any] | None: ...


console = Console()


def wants_json(ctx: ContextProtocol | None) -> bool:
    obj = getattr(ctx, "obj", None)
    return isinstance(obj, dict) and obj.get("output_format") == "json"


def print_output(obj: Any, ctx: ContextProtocol | None = None) -> None:
    """Print ``obj`` according to ``ctx.obj['output_format']``.

    If ctx is None or no format specified, pretty-print using rich.console.
    """
    fmt = None
    settings = getattr(ctx, "obj", None)
    if isinstance(settings, dict):
        fmt = settings.get("output_format")

    if fmt == "json":
        typer.echo(json.dumps(obj, default=str, indent=2))
    elif fmt == "yaml":
        typer.echo(yaml.safe_dump(obj, sort_keys=False))
    elif isinstance(obj, (str, int, float)):
        typer.echo(str(obj))
    else:
        console.print(obj)


def config_from_context(ctx: ContextProtocol | None) -> HexViewConfig:
    """Load the configuration selected by the global ``--config`` option."""
    settings = getattr(ctx, "obj", None)
    path = settings.get("config_path") if isinstance(settings, dict) else None
    try:
        config = load_config(path)
    except HexViewError as e:
        console.print(f"[red]Configuration error:[/red] {e}")
        raise typer.Exit(1) from e
    configure_cli_logging(ctx, config)
    return config


def configure_cli_logging(
    ctx: ContextProtocol | None, config: HexViewConfig, *, enable_stdlib_bridge: bool = False
) -> None:
    """Apply the ``logging`` section of ``config`` on top of the global flags.

    A section left at its defaults keeps the Rich stderr handler set up by
    the callback. ``--log-level``, ``-q`` and ``-V`` win over the section's level.
    """
    settings = getattr(ctx, "obj", None)
    settings = settings if isinstance(settings, dict) else {}
    custom = config.logging != LoggingConfig()
    if not custom and not enable_stdlib_bridge:
        return

    level = settings.get("log_level", "WARNING")
    if custom and not settings.get("log_level_explicit"):
        level = config.logging.level
    section = config.logging if custom else LoggingConfig(format="rich")
    configure_logging(
        level=level,
        format=section.format,
        output_file=section.output_file,
        use_color=section.use_color,
        include_timestamp=section.include_timestamp,
        enable_stdlib_bridge=enable_stdlib_bridge,
    )


def read_project_files(source: Path) -> dict[str, str]:
    """Read project files from a directory tree or a snapshot file.

    A directory is walked for script and style files; paths become
    absolute VFS paths relative to ``source``. A ``.json`` file is parsed as
    a VFS snapshot.

    Raises
    ------
    typer.Exit
        If the source cannot be read
    """
    if source.is_dir():
        files: dict[str, str] = {}
        for item in sorted(source.rglob("*")):
            relative = item.relative_to(source)
            if any(part in _SKIPPED_DIRS or part.startswith(".") for part in relative.parts):
                continue
            if item.is_file() and item.suffix in PROJECT_SUFFIXES:
                files["/" + relative.as_posix()] = item.read_text(encoding="utf-8")
        return files

    snapshot = read_snapshot(source)
    return {
        path: entry.content for path, entry in snapshot.root.items() if entry.kind == "file"
    }


def read_snapshot(path: Path) -> VFSSnapshot:
    """Parse a snapshot file written by ``--save``.

    Raises
    ------
    typer.Exit
        If the file is not valid JSON or not a snapshot
    """
    try:
        with path.open(encoding="utf-8") as f:
            return VFSSnapshot.model_validate(json.load(f))
    except (OSError, ValueError) as e:
        console.print(f"[red]Cannot read snapshot {path}:[/red] {e}")
        raise typer.Exit(1) from e


def write_snapshot(snapshot: VFSSnapshot, path: Path) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(snapshot.to_json_dict(), indent=2) + "\n", encoding="utf-8")


def load_command_file(path: Path) -> list[dict[str, Any]]:
    """Read a JSON or YAML list of ``{name, args}`` command records.

    A mapping with a ``commands`` key is accepted too.

    Raises
    ------
    typer.Exit
        If the file cannot be parsed or does not hold a list
    """
    try:
        with path.open(encoding="utf-8") as f:
            data = json.load(f) if path.suffix == ".json" else yaml.safe_load(f)
    except (OSError, ValueError, yaml.YAMLError) as e:
        console.print(f"[red]Cannot read command file {path}:[/red] {e}")
        raise typer.Exit(1) from e

    if isinstance(data, dict):
        data = data.get("commands")
    if not isinstance(data, list) or not all(isinstance(item, dict) for item in data):
        console.print(f"[red]{path} must contain a list of command mappings[/red]")
        raise typer.Exit(1)
    return data


def open_project(files: dict[str, str], config: HexViewConfig) -> PreviewProject:
    """Project over ``files`` that is only linked and rendered, never driven by turns."""
    return PreviewProject.from_files(files, config=config, source=ScriptedCommandSource([]))


def bundle_to_dict(bundle: Bundle) -> dict[str, Any]:
    return {
        "entry": bundle.entry,
        "revision": bundle.revision,
        "fingerprint": bundle.fingerprint,
        "load_order": bundle.load_order,
        "styles": [record.path for record in bundle.styles],
        "diagnostics": [diagnostic.format() for diagnostic in bundle.diagnostics],
        "cycles": [list(cycle) for cycle in bundle.cycles],
    }


__all__ = [
    "PROJECT_SUFFIXES",
    "bundle_to_dict",
    "config_from_context",
    "configure_cli_logging",
    "console",
    "load_command_file",
    "open_project",
    "print_output",
    "read_project_files",
    "read_snapshot",
    "wants_json",
    "write_snapshot",
]
