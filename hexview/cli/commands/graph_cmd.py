"""Show the module graph of a project.

Usage:
    hexview graph ./my-app/
    hexview graph ./my-app/ --changed /components/Button.jsx
"""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import TYPE_CHECKING, Annotated

import typer
from rich.console import Console
from rich.tree import Tree

from hexview.cli.utils import (
    bundle_to_dict,
    config_from_context,
    open_project,
    print_output,
    read_project_files,
    wants_json,
)
from hexview.kernel.domain.modules import EXTERNAL

if TYPE_CHECKING:
    from hexview.kernel.domain.modules import ModuleRecord
    from hexview.kernel.linking.linker import ModuleGraphLinker

console = Console()


def _add_imports(
    tree: Tree, linker: ModuleGraphLinker, record: ModuleRecord, ancestry: tuple[str, ...]
) -> None:
    for entry in record.imports:
        target = record.resolved_imports.get(entry.specifier)
        if target == EXTERNAL:
            tree.add(f"[dim]{entry.specifier} (external)[/dim]")
        elif target is None:
            tree.add(f"[red]{entry.specifier} (unresolved)[/red]")
        elif target in ancestry:
            tree.add(f"[yellow]{target} (cycle)[/yellow]")
        elif (child := linker.records.get(target)) is None:
            tree.add(f"[red]{target} (missing)[/red]")
        else:
            label = f"[green]{target}[/green]" if child.ok else f"[red]{target} ✗[/red]"
            _add_imports(tree.add(label), linker, child, (*ancestry, target))


def graph(
    ctx: typer.Context,
    source: Annotated[
        Path,
        typer.Argument(
            help="Project directory or VFS snapshot (.json)",
            exists=True,
            resolve_path=True,
        ),
    ],
    changed: Annotated[
        list[str] | None,
        typer.Option(
            "--changed",
            "-c",
            help="Show which modules a change to this path would rebuild (repeatable)",
        ),
    ] = None,
) -> None:
    """Print the import tree rooted at the entry module.

    Examples
    --------
    hexview graph ./my-app/
    hexview graph ./my-app/ -c /components/Button.jsx
    """
    config = config_from_context(ctx)
    project = open_project(read_project_files(source), config)

    async def _run() -> None:
        await project.flush()
        await project.aclose()

    asyncio.run(_run())
    linker = project.linker
    affected: list[str] = []
    if changed:
        affected = sorted(linker.graph.invalidation_set(changed) & set(linker.records))

    if wants_json(ctx):
        data = bundle_to_dict(project.bundle) if project.bundle else {}
        data["edges"] = {path: list(linker.graph.dependencies(path)) for path in linker.records}
        if changed:
            data["invalidated"] = affected
        print_output(data, ctx)
        return

    tree = Tree(f"[bold]{linker.entry}[/bold]")
    record = linker.records.get(linker.entry)
    if record is None:
        tree.add("[red]entry module not found[/red]")
    else:
        _add_imports(tree, linker, record, (linker.entry,))
    console.print(tree)

    if changed:
        console.print()
        console.print(f"[cyan]Changing {', '.join(changed)} rebuilds:[/cyan]")
        for path in affected:
            console.print(f"  • {path}")
        if not affected:
            console.print("  [dim](nothing linked)[/dim]")
