"""API routes for the hexview studio."""

from hexview.studio.server.routes.commands import router as commands_router
from hexview.studio.server.routes.files import router as files_router
from hexview.studio.server.routes.preview import router as preview_router
from hexview.studio.server.routes.turns import router as turns_router

__all__ = ["commands_router", "files_router", "preview_router", "turns_router"]
