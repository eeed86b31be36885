"""Turn API for the hexview studio.

One turn at a time: a second request while a turn is running gets 409.
"""

import asyncio
from typing import Any

from fastapi import APIRouter, HTTPException
from pydantic import BaseModel, Field

from hexview.studio.server.state import get_project

router = APIRouter(prefix="/turns", tags=["turns"])

_turn_lock = asyncio.Lock()


class TurnRequest(BaseModel):
    """Instruction for the command source."""

    instruction: str = Field(min_length=1)


class TurnResponse(BaseModel):
    """Finished turn summary."""

    reason: str
    steps: int
    max_steps: int
    dropped: int
    results: list[dict[str, Any]]
    render: dict[str, Any] | None = None


@router.post("", response_model=TurnResponse)
async def run_turn(request: TurnRequest) -> TurnResponse:
    """Run one turn and rebuild the preview."""
    project = get_project()
    if _turn_lock.locked():
        raise HTTPException(status_code=409, detail="A turn is already running")
    async with _turn_lock:
        report = await project.run_turn(request.instruction)
    return TurnResponse(**report.to_dict())
