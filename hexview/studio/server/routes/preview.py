"""Preview API for the hexview studio.

``GET /preview`` serves the active artifact as a standalone document with
the sandbox headers; the studio page embeds it in an
``<iframe sandbox="allow-scripts">``. The running document posts runtime
errors back, and the page forwards them to ``POST /preview/events``.
"""

from typing import Any

from fastapi import APIRouter, HTTPException
from fastapi.responses import HTMLResponse
from pydantic import ValidationError

from hexview.drivers.sandbox.iframe import IframeSandbox
from hexview.studio.server.state import get_project

router = APIRouter(prefix="/preview", tags=["preview"])


@router.get("", response_class=HTMLResponse)
async def preview_document() -> HTMLResponse:
    """The active artifact, or the error page while nothing has rendered."""
    renderer = get_project().renderer
    artifact = renderer.active
    html = artifact.html if artifact is not None else renderer.render_error_document()
    return HTMLResponse(html, headers=IframeSandbox.response_headers())


@router.get("/status")
async def preview_status() -> dict[str, Any]:
    """Last render outcome, active artifact and its reported runtime errors."""
    project = get_project()
    renderer = project.renderer
    outcome = renderer.last_outcome
    bundle = project.bundle
    return {
        "active": renderer.active.artifact_id if renderer.active else None,
        "outcome": outcome.to_dict() if outcome else None,
        "load_order": bundle.load_order if bundle else [],
        "pending": sorted(project.pending_paths),
        "runtime_errors": [event.model_dump() for event in renderer.runtime_errors()],
    }


@router.post("/events")
async def sandbox_event(payload: dict[str, Any]) -> dict[str, bool]:
    """Record a message posted by the running preview."""
    renderer = get_project().renderer
    try:
        accepted = await renderer.handle_sandbox_event(payload)
    except ValidationError as e:
        detail = e.errors(include_url=False, include_context=False)
        raise HTTPException(status_code=422, detail=detail) from e
    return {"accepted": accepted}
