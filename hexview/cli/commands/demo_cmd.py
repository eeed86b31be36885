"""Run one generation turn end to end.

With the default ``scripted`` provider the turn creates a Button component
and an App that imports it through the ``@/`` alias; with ``anthropic`` the
instruction goes to Claude.

Usage:
    hexview demo
    hexview --config hexview.toml demo "Make a todo list" --mode full
"""

from __future__ import annotations

import asyncio
from dataclasses import replace
from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel

from hexview.api.project import PreviewProject, TurnReport
from hexview.cli.utils import (
    bundle_to_dict,
    config_from_context,
    print_output,
    wants_json,
    write_snapshot,
)
from hexview.kernel.config import ExecutionMode
from hexview.kernel.exceptions import HexViewError

console = Console()


def demo(
    ctx: typer.Context,
    instruction: Annotated[
        str,
        typer.Argument(help="What the generated app should do"),
    ] = "Make a counter button",
    mode: Annotated[
        ExecutionMode | None,
        typer.Option("--mode", "-m", help="Step ceiling to apply (constrained or full)"),
    ] = None,
    output: Annotated[
        Path | None,
        typer.Option("--output", "-o", help="Write the preview document to this file"),
    ] = None,
    save: Annotated[
        Path | None,
        typer.Option("--save", "-s", help="Write the resulting VFS snapshot to this file"),
    ] = None,
) -> None:
    """Run a turn on an empty project and render the result.

    Examples
    --------
    hexview demo
    hexview demo -o preview.html --save demo.json
    """
    config = config_from_context(ctx)
    if mode is not None:
        config = replace(config, executor=replace(config.executor, mode=mode))
    try:
        project = PreviewProject(config)
    except HexViewError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1) from e

    async def _run() -> TurnReport:
        try:
            return await project.run_turn(instruction)
        finally:
            await project.aclose()

    report = asyncio.run(_run())
    if output is not None:
        artifact = project.renderer.active
        html = artifact.html if artifact else project.renderer.render_error_document()
        output.write_text(html, encoding="utf-8")
    if save is not None:
        write_snapshot(project.snapshot(), save)

    render = report.render
    if wants_json(ctx):
        data = report.to_dict()
        data["bundle"] = bundle_to_dict(project.bundle) if project.bundle else None
        print_output(data, ctx)
    else:
        console.print(Panel(escape(instruction), title="Instruction", border_style="blue"))
        for command, result in report.turn.history:
            marker = "[green]✓[/green]" if result.ok else "[red]✗[/red]"
            first_line = next(iter(result.message.splitlines()), "")
            console.print(f"  {marker} {command.name}: {escape(first_line)}")
        console.print(
            f"[dim]Turn ended ({report.turn.reason}) after "
            f"{report.turn.steps}/{report.turn.max_steps} step(s)[/dim]"
        )
        if project.bundle is not None:
            console.print(f"Load order: {' -> '.join(project.bundle.load_order) or '(empty)'}")
        if render is not None and render.ok:
            console.print(f"[green]✓ Rendered {render.artifact_id}[/green]")
        elif render is not None:
            console.print(f"[red]✗ Render failed:[/red] {escape(render.error or '')}")

    if render is None or not render.ok:
        raise typer.Exit(1)
