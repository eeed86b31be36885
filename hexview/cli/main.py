"""hexview CLI - Main entrypoint."""

from __future__ import annotations

import typer
from rich.console import Console

from hexview import __version__
from hexview.cli.commands import apply_cmd, build_cmd, demo_cmd, graph_cmd, serve_cmd
from hexview.kernel.logging import configure_logging

app = typer.Typer(
    name="hexview",
    help="hexview - live preview for generated React projects.",
    no_args_is_help=True,
    rich_markup_mode="rich",
    pretty_exceptions_enable=False,
)

console = Console()

_LEVELS = {
    "debug": "DEBUG",
    "info": "INFO",
    "warn": "WARNING",
    "warning": "WARNING",
    "error": "ERROR",
}

app.command("build", help="Link and render a project once")(build_cmd.build)
app.command("apply", help="Apply a command file to a project")(apply_cmd.apply)
app.command("graph", help="Show the module graph of a project")(graph_cmd.graph)
app.command("demo", help="Run one generation turn end to end")(demo_cmd.demo)
app.command("serve", help="Start the preview studio server")(serve_cmd.serve)


def _show_version(value: bool) -> None:
    if value:
        console.print(f"[bold blue]hexview[/bold blue] version [green]{__version__}[/green]")
        raise typer.Exit()


@app.callback()
def callback(
    ctx: typer.Context,
    *,
    quiet: bool = typer.Option(False, "-q", "--quiet", help="Only log errors"),
    verbose: bool = typer.Option(False, "-V", "--verbose", help="Enable debug logging"),
    json_out: bool = typer.Option(False, "--json", help="Output machine-readable JSON"),
    config: str | None = typer.Option(
        None, "--config", "-c", help="Configuration file (hexview.toml, YAML or pyproject.toml)"
    ),
    log_level: str | None = typer.Option(
        None, "--log-level", help="debug|info|warning|error (default: warning)"
    ),
    version: bool = typer.Option(
        False,
        "--version",
        "-v",
        callback=_show_version,
        is_eager=True,
        help="Show version and exit",
    ),
) -> None:
    """hexview - live preview for generated React projects.

    Global flags are parsed here and stored on `ctx.obj` for subcommands.
    """
    if ctx.obj is None:
        ctx.obj = {}

    effective_level = log_level or "warning"
    if quiet:
        effective_level = "error"
    elif verbose:
        effective_level = "debug"

    ctx.obj.update({
        "quiet": quiet,
        "verbose": verbose,
        "output_format": "json" if json_out else "pretty",
        "config_path": config,
        "log_level": _LEVELS.get(effective_level.lower(), "WARNING"),
        "log_level_explicit": bool(quiet or verbose or log_level),
        "version": __version__,
    })

    configure_logging(level=ctx.obj["log_level"], format="rich")


def main() -> None:
    """Main CLI entrypoint."""
    app()


if __name__ == "__main__":
    main()
