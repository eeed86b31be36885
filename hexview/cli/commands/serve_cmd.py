"""hexview serve - local preview studio.

Usage:
    hexview serve
    hexview serve ./my-app/ --port 8080
"""

from __future__ import annotations

from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console

from hexview.cli.utils import config_from_context, configure_cli_logging, read_project_files

console = Console()


def serve(
    ctx: typer.Context,
    source: Annotated[
        Path | None,
        typer.Argument(
            help="Project directory or VFS snapshot (.json) to start from",
            exists=True,
            resolve_path=True,
        ),
    ] = None,
    host: Annotated[str, typer.Option("--host", "-h", help="Host to bind to")] = "127.0.0.1",
    port: Annotated[int, typer.Option("--port", "-p", help="Port to bind to")] = 3141,
    no_browser: Annotated[
        bool, typer.Option("--no-browser", help="Don't open browser automatically")
    ] = False,
) -> None:
    """Start the preview studio server.

    The preview document is served at ``/api/preview`` inside a sandboxed
    iframe; turns and commands are posted to ``/api/turns`` and
    ``/api/commands``.

    Examples
    --------
    hexview serve
    hexview serve ./my-app/ --port 8080 --no-browser
    """
    try:
        import fastapi  # noqa: F401
        import uvicorn  # noqa: F401
    except ImportError:
        console.print(
            "[red]Error:[/red] Studio dependencies not installed.\n"
            "Please install with:\n"
            "  [cyan]pip install hexview\\[studio][/cyan]"
        )
        raise typer.Exit(code=1)

    from hexview import __version__
    from hexview.api.project import PreviewProject
    from hexview.drivers.sandbox.iframe import IframeSandbox
    from hexview.kernel.exceptions import HexViewError
    from hexview.studio.server.main import run_server

    config = config_from_context(ctx)
    files = read_project_files(source) if source is not None else {}
    try:
        project = PreviewProject.from_files(files, config=config, sandbox=IframeSandbox())
    except HexViewError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1) from e

    url = f"http://{host}:{port}"
    console.print()
    console.print(f"[bold blue]hexview studio[/bold blue] v{__version__}")
    console.print()
    console.print(f"  [dim]Files:[/dim]     {len(files)}")
    console.print(f"  [dim]Provider:[/dim]  {config.provider.kind}")
    console.print(f"  [dim]Local:[/dim]     [link={url}]{url}[/link]")
    console.print()
    console.print("  [dim]Press Ctrl+C to stop[/dim]")
    console.print()

    if not no_browser:
        import threading
        import webbrowser

        def open_browser() -> None:
            import time

            time.sleep(1)
            webbrowser.open(url)

        threading.Thread(target=open_browser, daemon=True).start()

    configure_cli_logging(ctx, config, enable_stdlib_bridge=True)
    run_server(project, host=host, port=port)
