"""FastAPI server for the hexview studio.

Serves one :class:`~hexview.api.project.PreviewProject`: a studio page with
the sandboxed preview iframe, and the JSON API under ``/api``.
"""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import HTMLResponse
from jinja2 import Environment, PackageLoader, select_autoescape

from hexview import __version__
from hexview.api.project import PreviewProject
from hexview.drivers.sandbox.iframe import IframeSandbox
from hexview.kernel.logging import get_logger
from hexview.kernel.ports.sandbox import MESSAGE_SOURCE
from hexview.studio.server.routes import (
    commands_router,
    files_router,
    preview_router,
    turns_router,
)
from hexview.studio.server.state import set_project

logger = get_logger(__name__)

_templates = Environment(
    loader=PackageLoader("hexview.studio.server", "templates"),
    autoescape=select_autoescape(["html", "j2"]),
)


def create_app(project: PreviewProject) -> FastAPI:
    """Create the FastAPI application for the hexview studio.

    Args:
        project: The preview session the API operates on
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
        set_project(project)
        await project.flush()
        logger.info("Studio ready with {n} file(s)", n=len(project.vfs.files()))
        yield
        await project.aclose()
        set_project(None)

    app = FastAPI(
        title="hexview studio",
        description="Live preview for generated React projects",
        version=__version__,
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["http://localhost:3141", "http://127.0.0.1:3141"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(commands_router, prefix="/api")
    app.include_router(turns_router, prefix="/api")
    app.include_router(files_router, prefix="/api")
    app.include_router(preview_router, prefix="/api")

    @app.get("/api/health")
    async def health() -> dict[str, object]:
        return {"status": "ok", "session": project.session_id, "revision": project.vfs.revision}

    @app.get("/", response_class=HTMLResponse)
    async def index() -> HTMLResponse:
        html = _templates.get_template("index.html.j2").render(
            version=__version__,
            message_source=MESSAGE_SOURCE,
            iframe=IframeSandbox.iframe_tag("api/preview"),
        )
        return HTMLResponse(html)

    return app


def run_server(project: PreviewProject, host: str = "127.0.0.1", port: int = 3141) -> None:
    """Run the studio server.

    Args:
        project: The preview session to serve
        host: Host to bind to
        port: Port to bind to
    """
    import uvicorn

    app = create_app(project)
    uvicorn.run(app, host=host, port=port, log_level="info")
