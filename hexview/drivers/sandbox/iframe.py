"""Browser iframe sandbox driver.

The artifact is served as its own document with a ``sandbox`` CSP and
embedded in an ``<iframe sandbox="allow-scripts">``. The frame gets an
opaque origin: no same-origin access to the host, no top-level navigation,
no storage, no forms or popups. Runtime errors cannot be observed at load
time; the document posts them back with ``postMessage`` and the host
forwards them to :meth:`PreviewRenderer.handle_sandbox_event`.
"""

from __future__ import annotations

from html import escape

from hexview.kernel.logging import get_logger
from hexview.kernel.ports.sandbox import SANDBOX_POLICY, PreviewArtifact, Sandbox, SandboxReport

logger = get_logger(__name__)


class IframeSandbox(Sandbox):
    """Holds the artifact a browser iframe should display."""

    def __init__(self) -> None:
        self.current: PreviewArtifact | None = None
        self.loads = 0

    async def aload(self, artifact: PreviewArtifact) -> SandboxReport:
        self.current = artifact
        self.loads += 1
        logger.debug("Serving artifact {artifact}", artifact=artifact.artifact_id)
        return SandboxReport(ok=True, artifact_id=artifact.artifact_id, output="served")

    @staticmethod
    def response_headers() -> dict[str, str]:
        """Headers the preview document must be served with."""
        return {
            "Content-Security-Policy": f"sandbox {SANDBOX_POLICY}",
            "Cache-Control": "no-store",
            "X-Content-Type-Options": "nosniff",
        }

    @staticmethod
    def iframe_tag(src: str, title: str = "Preview") -> str:
        """Markup embedding the document at ``src`` with the sandbox policy."""
        return (
            f'<iframe src="{escape(src)}" title="{escape(title)}" '
            f'sandbox="{SANDBOX_POLICY}" style="border:0;width:100%;height:100%"></iframe>'
        )


__all__ = ["IframeSandbox"]
