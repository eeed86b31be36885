"""Command API for the hexview studio.

Applies tool commands outside any turn (no step ceiling), then relinks and
renders once.
"""

from typing import Any

from fastapi import APIRouter
from pydantic import BaseModel

from hexview.studio.server.state import get_project

router = APIRouter(prefix="/commands", tags=["commands"])


class CommandsRequest(BaseModel):
    """Commands to apply in order, as ``{name, args}`` records."""

    commands: list[dict[str, Any]]


class CommandResultModel(BaseModel):
    """Outcome of one command."""

    ok: bool
    message: str
    error: str | None = None
    changed_paths: list[str] = []


class CommandsResponse(BaseModel):
    """Per-command results and the render that followed."""

    results: list[CommandResultModel]
    render: dict[str, Any] | None = None


@router.post("", response_model=CommandsResponse)
async def apply_commands(request: CommandsRequest) -> CommandsResponse:
    """Apply commands; failed ones are reported and do not stop the rest."""
    project = get_project()
    results, outcome = await project.apply(request.commands)
    return CommandsResponse(
        results=[
            CommandResultModel(
                ok=result.ok,
                message=result.message,
                error=result.error,
                changed_paths=sorted(result.changed_paths),
            )
            for result in results
        ],
        render=outcome.to_dict() if outcome else None,
    )
