"""Link and render a project once.

Usage:
    hexview build ./my-app/
    hexview build snapshot.json --output preview.html
"""

from __future__ import annotations

import asyncio
from dataclasses import replace
from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console
from rich.table import Table

from hexview.cli.utils import (
    bundle_to_dict,
    config_from_context,
    open_project,
    print_output,
    read_project_files,
    wants_json,
)

console = Console()


def build(
    ctx: typer.Context,
    source: Annotated[
        Path,
        typer.Argument(
            help="Project directory or VFS snapshot (.json)",
            exists=True,
            resolve_path=True,
        ),
    ],
    entry: Annotated[
        str | None,
        typer.Option("--entry", "-e", help="Entry module path (default: /App.jsx)"),
    ] = None,
    output: Annotated[
        Path | None,
        typer.Option("--output", "-o", help="Write the preview document to this file"),
    ] = None,
) -> None:
    """Link the project, print its load order and render it in the mock sandbox.

    Exits with code 1 when the render fails.

    Examples
    --------
    hexview build ./my-app/
    hexview build ./my-app/ --entry /main.jsx -o preview.html
    """
    config = config_from_context(ctx)
    if entry:
        config = replace(config, linker=replace(config.linker, entry=entry))
    files = read_project_files(source)
    project = open_project(files, config)

    async def _run() -> None:
        await project.flush()
        await project.aclose()

    asyncio.run(_run())
    bundle, outcome = project.bundle, project.outcome
    if bundle is None or outcome is None:
        console.print("[red]Nothing was built[/red]")
        raise typer.Exit(1)

    if output is not None:
        artifact = project.renderer.active
        html = artifact.html if artifact else project.renderer.render_error_document(outcome)
        output.write_text(html, encoding="utf-8")

    if wants_json(ctx):
        print_output({**bundle_to_dict(bundle), "render": outcome.to_dict()}, ctx)
    else:
        console.print(f"[cyan]Linked {len(files)} file(s) from {source}[/cyan]")
        table = Table(title=f"Load order (r{bundle.revision})")
        table.add_column("#", justify="right")
        table.add_column("Module", style="green")
        table.add_column("Exports")
        table.add_column("Imports", style="dim")
        for index, record in enumerate(bundle.modules, 1):
            table.add_row(
                str(index),
                record.path,
                ", ".join(sorted(record.exports)),
                ", ".join(record.import_specifiers),
            )
        console.print(table)

        for cycle in bundle.cycles:
            console.print(f"[yellow]Cycle:[/yellow] {' -> '.join(cycle)}")
        for diagnostic in bundle.diagnostics:
            console.print(f"  [red]✗[/red] {diagnostic.format()}")

        if outcome.ok:
            console.print(f"[green]✓ Rendered {outcome.artifact_id}[/green]")
        else:
            console.print(f"[red]✗ Render failed ({outcome.error_kind}):[/red] {outcome.error}")
        if output is not None:
            console.print(f"[dim]Preview written to {output}[/dim]")

    if not outcome.ok:
        raise typer.Exit(1)
