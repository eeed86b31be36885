"""File API for the hexview studio.

Read-only views of the project's VFS plus whole-state snapshot export and
restore. Mutations go through ``/api/commands`` and ``/api/turns``.
"""

from typing import Annotated, Any

from fastapi import APIRouter, HTTPException, Query
from pydantic import BaseModel

from hexview.kernel.domain.vfs import VFSSnapshot
from hexview.kernel.exceptions import InvalidPathError, PathNotFoundError, VFSError
from hexview.studio.server.state import get_project

router = APIRouter(tags=["files"])


class FileInfo(BaseModel):
    """File or directory metadata."""

    name: str
    path: str
    is_directory: bool
    size: int | None = None
    last_modified: int | None = None


class FileContent(BaseModel):
    """File content with metadata."""

    path: str
    content: str
    last_modified: int


class FileListResponse(BaseModel):
    """Directory listing."""

    path: str
    revision: int
    files: list[FileInfo]


@router.get("/files", response_model=FileListResponse)
async def list_files(
    path: Annotated[str, Query(description="Absolute directory path in the VFS")] = "/",
) -> FileListResponse:
    """List a VFS directory."""
    vfs = get_project().vfs
    try:
        entries = vfs.list(path)
    except PathNotFoundError as e:
        raise HTTPException(status_code=404, detail=f"Path not found: {path}") from e
    except VFSError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e

    files: list[FileInfo] = []
    for entry in entries:
        node = vfs.stat(entry.path)
        files.append(
            FileInfo(
                name=entry.name,
                path=entry.path,
                is_directory=node.is_directory,
                size=None if node.is_directory else len(node.content),
                last_modified=node.last_modified,
            )
        )
    return FileListResponse(path=path, revision=vfs.revision, files=files)


@router.get("/files/{file_path:path}", response_model=FileContent)
async def read_file(file_path: str) -> FileContent:
    """Read one file."""
    vfs = get_project().vfs
    path = "/" + file_path.lstrip("/")
    try:
        node = vfs.stat(path)
    except PathNotFoundError as e:
        raise HTTPException(status_code=404, detail=f"File not found: {path}") from e
    except InvalidPathError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    if node.is_directory:
        raise HTTPException(status_code=400, detail=f"Cannot read directory: {path}")
    return FileContent(path=node.path, content=node.content, last_modified=node.last_modified)


@router.get("/snapshot")
async def export_snapshot() -> dict[str, Any]:
    """Whole VFS state as ``{path: {content, kind, lastModified}}``."""
    return get_project().snapshot().to_json_dict()


@router.put("/snapshot")
async def restore_snapshot(snapshot: VFSSnapshot) -> dict[str, Any]:
    """Replace the VFS state and rebuild the preview from scratch."""
    project = get_project()
    try:
        outcome = await project.restore(snapshot)
    except VFSError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    return {
        "revision": project.vfs.revision,
        "render": outcome.to_dict() if outcome else None,
    }
