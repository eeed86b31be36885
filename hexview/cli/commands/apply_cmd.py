"""Apply a command file to a project.

Usage:
    hexview apply ./my-app/ commands.yaml
    hexview apply snapshot.json commands.json --save snapshot.json
"""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from hexview.cli.utils import (
    bundle_to_dict,
    config_from_context,
    load_command_file,
    open_project,
    print_output,
    read_project_files,
    wants_json,
    write_snapshot,
)
from hexview.kernel.domain.commands import CommandResult

console = Console()


def apply(
    ctx: typer.Context,
    source: Annotated[
        Path,
        typer.Argument(
            help="Project directory or VFS snapshot (.json)",
            exists=True,
            resolve_path=True,
        ),
    ],
    commands_file: Annotated[
        Path,
        typer.Argument(
            help="JSON or YAML list of {name, args} commands",
            exists=True,
            dir_okay=False,
            readable=True,
        ),
    ],
    save: Annotated[
        Path | None,
        typer.Option("--save", "-s", help="Write the resulting VFS snapshot to this file"),
    ] = None,
) -> None:
    """Apply commands in order, then relink and render once.

    Failed commands are reported and do not stop the ones after them. Exits
    with code 1 if any command failed.

    Examples
    --------
    hexview apply ./my-app/ commands.yaml
    hexview apply snapshot.json fix.json --save snapshot.json
    """
    config = config_from_context(ctx)
    raw = load_command_file(commands_file)
    project = open_project(read_project_files(source), config)

    async def _run() -> list[CommandResult]:
        results, _ = await project.apply(raw)
        await project.aclose()
        return results

    results = asyncio.run(_run())
    if save is not None:
        write_snapshot(project.snapshot(), save)

    failed = [result for result in results if not result.ok]
    if wants_json(ctx):
        outcome = project.outcome
        print_output(
            {
                "results": [
                    {**result.to_wire(), "error": result.error} for result in results
                ],
                "bundle": bundle_to_dict(project.bundle) if project.bundle else None,
                "render": outcome.to_dict() if outcome else None,
            },
            ctx,
        )
    else:
        table = Table(title=f"Applied {len(results) - len(failed)}/{len(results)} command(s)")
        table.add_column("#", justify="right")
        table.add_column("Command")
        table.add_column("Result")
        for index, (record, result) in enumerate(zip(raw, results, strict=True), 1):
            name = record.get("name", "?")
            first_line = next(iter(result.message.splitlines()), "")
            status = "[green]✓[/green]" if result.ok else f"[red]✗ {result.error}[/red]"
            table.add_row(str(index), str(name), f"{status} {escape(first_line)}")
        console.print(table)

        if project.outcome is not None and not project.outcome.ok:
            reason = escape(project.outcome.error or "")
            console.print(f"[yellow]Preview not updated:[/yellow] {reason}")
        if save is not None:
            console.print(f"[dim]Snapshot written to {save}[/dim]")

    if failed:
        raise typer.Exit(1)
