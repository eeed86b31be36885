"""Project shared by the studio routes, set by the server on startup."""

from __future__ import annotations

from typing import TYPE_CHECKING

from fastapi import HTTPException

if TYPE_CHECKING:
    from hexview.api.project import PreviewProject

_project: PreviewProject | None = None


def set_project(project: PreviewProject | None) -> None:
    """Set the project the routes operate on."""
    global _project
    _project = project


def get_project() -> PreviewProject:
    """Get the active project.

    Raises
    ------
    HTTPException
        500 if the server started without a project
    """
    if _project is None:
        raise HTTPException(status_code=500, detail="Project not configured")
    return _project
