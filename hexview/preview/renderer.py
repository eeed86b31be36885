"""Preview renderer: bundle in, sandboxed document out.

Every module of a bundle becomes a base64 ``data:`` URL in the document's
import map, keyed by its alias specifier (``@/components/Button.jsx``).
Local specifiers inside module code are rewritten to those keys, since a
``data:`` module has no base URL to resolve relative paths against.
External specifiers map onto the configured ESM CDN.

The document is fully determined by the bundle and the preview config,
so rendering the same bundle twice produces the same bytes.
"""

from __future__ import annotations

import base64
import json
import re
from collections import deque
from dataclasses import dataclass
from typing import TYPE_CHECKING

from jinja2 import Environment, PackageLoader, select_autoescape

from hexview.kernel.config.models import LinkerConfig, PreviewConfig
from hexview.kernel.domain.modules import EXTERNAL
from hexview.kernel.exceptions import HexViewError, SandboxRuntimeError
from hexview.kernel.logging import get_logger
from hexview.kernel.orchestration.events import PreviewRendered, SandboxErrorReported
from hexview.kernel.ports.sandbox import (
    MESSAGE_SOURCE,
    PreviewArtifact,
    SandboxEvent,
    SandboxReport,
)

if TYPE_CHECKING:
    from collections.abc import Mapping

    from hexview.kernel.domain.modules import Bundle, Diagnostic, ModuleRecord
    from hexview.kernel.orchestration.events import Event
    from hexview.kernel.ports.observer_manager import ObserverManager
    from hexview.kernel.ports.sandbox import Sandbox

logger = get_logger(__name__)

# Always mapped; the bootstrap script imports them to mount the entry
RUNTIME_EXTERNALS = ("react", "react-dom/client")

STUB_MARKER = "/* hexview:failed-module */"

# Runtime errors kept for the active artifact
MAX_RUNTIME_ERRORS = 50

_STYLE_CLOSE = re.compile(r"</(style)", re.IGNORECASE)


def data_url(code: str) -> str:
    """Encode module code as a base64 JavaScript ``data:`` URL.

    >>> data_url("export default 1;")
    'data:text/javascript;base64,ZXhwb3J0IGRlZmF1bHQgMTs='
    """
    return "data:text/javascript;base64," + base64.b64encode(code.encode()).decode("ascii")


def failed_module_stub(diagnostic: Diagnostic) -> str:
    """Module code that throws ``diagnostic`` when imported."""
    return f"{STUB_MARKER}throw new Error({json.dumps(diagnostic.format())});\n"


@dataclass(frozen=True, slots=True)
class RenderOutcome:
    """Structured result of one render attempt.

    Attributes
    ----------
    ok : bool
        The artifact loaded and is now active
    artifact_id : str | None
        Artifact built for this attempt (``None`` if building failed)
    bundle_revision : int
        Revision of the bundle that was rendered
    error : str | None
        Why the attempt failed
    error_kind : str | None
        Exception type name behind ``error``
    diagnostics : tuple[str, ...]
        Formatted module diagnostics carried by the bundle
    report : SandboxReport | None
        What the sandbox reported, when it was reached
    """

    ok: bool
    artifact_id: str | None
    bundle_revision: int
    error: str | None = None
    error_kind: str | None = None
    diagnostics: tuple[str, ...] = ()
    report: SandboxReport | None = None

    def to_dict(self) -> dict[str, object]:
        return {
            "ok": self.ok,
            "artifact_id": self.artifact_id,
            "bundle_revision": self.bundle_revision,
            "error": self.error,
            "error_kind": self.error_kind,
            "diagnostics": list(self.diagnostics),
        }


class PreviewRenderer:
    """Builds preview artifacts and swaps them into a sandbox.

    Parameters
    ----------
    sandbox : Sandbox
        Isolated execution surface the artifacts are loaded into
    config : PreviewConfig | None
        CDN, head scripts and title
    linker_config : LinkerConfig | None
        Alias prefix used for import map keys
    observer_manager : ObserverManager | None
        Receives render and sandbox error events
    """

    def __init__(
        self,
        sandbox: Sandbox,
        config: PreviewConfig | None = None,
        linker_config: LinkerConfig | None = None,
        observer_manager: ObserverManager | None = None,
    ) -> None:
        self.sandbox = sandbox
        self.config = config or PreviewConfig()
        self.linker_config = linker_config or LinkerConfig()
        self.observer_manager = observer_manager
        self.env = Environment(
            loader=PackageLoader("hexview.preview", "templates"),
            autoescape=select_autoescape(["html", "j2"]),
            keep_trailing_newline=True,
        )
        self._active: PreviewArtifact | None = None
        self._last_outcome: RenderOutcome | None = None
        self._runtime_errors: deque[SandboxEvent] = deque(maxlen=MAX_RUNTIME_ERRORS)

    @property
    def active(self) -> PreviewArtifact | None:
        """The artifact currently running in the sandbox."""
        return self._active

    @property
    def last_outcome(self) -> RenderOutcome | None:
        return self._last_outcome

    def runtime_errors(self, artifact_id: str | None = None) -> list[SandboxEvent]:
        """Runtime errors reported for the active artifact.

        Only the active artifact keeps errors, so any other ``artifact_id``
        gets an empty list.
        """
        if self._active is None:
            return []
        if artifact_id is not None and artifact_id != self._active.artifact_id:
            return []
        return list(self._runtime_errors)

    # ------------------------------------------------------------------
    # Artifact construction
    # ------------------------------------------------------------------

    def specifier_key(self, path: str) -> str:
        """Import map key of a local module path."""
        return self.linker_config.alias + path.lstrip("/")

    def build_artifact(self, bundle: Bundle) -> PreviewArtifact:
        """Build the self-contained document for ``bundle``. Pure."""
        import_map: dict[str, str] = {}
        externals: set[str] = set(RUNTIME_EXTERNALS)

        for record in bundle.modules:
            import_map[self.specifier_key(record.path)] = data_url(self._rewrite(record))
            externals.update(
                specifier
                for specifier, target in record.resolved_imports.items()
                if target == EXTERNAL
            )
        for record in bundle.styles:
            # The stylesheet itself is inlined; its import just has to succeed
            import_map[self.specifier_key(record.path)] = data_url("")
        for diagnostic in bundle.diagnostics:
            import_map.setdefault(
                self.specifier_key(diagnostic.path), data_url(failed_module_stub(diagnostic))
            )
        for specifier in externals:
            if "://" not in specifier and not specifier.startswith("data:"):
                import_map[specifier] = self.external_url(specifier)

        import_map = dict(sorted(import_map.items()))
        artifact_id = f"a-{bundle.fingerprint}"
        template = self.env.get_template("preview.html.j2")
        html = template.render(
            title=self.config.title,
            head_scripts=self.config.head_scripts,
            import_map=import_map,
            styles=[
                {"path": record.path, "css": _STYLE_CLOSE.sub(r"<\\/\1", record.transformed_code)}
                for record in bundle.styles
            ],
            diagnostics=[diagnostic.format() for diagnostic in bundle.diagnostics],
            message_source=MESSAGE_SOURCE,
            artifact_id=artifact_id,
            entry=bundle.entry,
            entry_key=self.specifier_key(bundle.entry),
        )
        return PreviewArtifact(
            artifact_id=artifact_id,
            html=html,
            import_map=import_map,
            entry=bundle.entry,
            bundle_revision=bundle.revision,
            entry_specifier=self.specifier_key(bundle.entry),
        )

    def external_url(self, specifier: str) -> str:
        return f"{self.config.cdn_base.rstrip('/')}/{specifier}"

    def _rewrite(self, record: ModuleRecord) -> str:
        """Replace local specifiers in ``record``'s code with import map keys."""
        code = record.transformed_code
        for entry in sorted(record.imports, key=lambda e: e.start, reverse=True):
            target = record.resolved_imports.get(entry.specifier)
            if target is None or target == EXTERNAL:
                continue
            code = code[: entry.start] + self.specifier_key(target) + code[entry.end :]
        return code

    def render_error_document(self, outcome: RenderOutcome | None = None) -> str:
        """Document shown while no artifact has ever rendered successfully."""
        outcome = outcome or self._last_outcome
        return self.env.get_template("error.html.j2").render(
            title=self.config.title,
            error=(outcome.error if outcome else None) or "Nothing has been rendered yet",
            diagnostics=outcome.diagnostics if outcome else (),
        )

    # ------------------------------------------------------------------
    # Rendering
    # ------------------------------------------------------------------

    def check_entry(self, bundle: Bundle) -> None:
        """Enforce the entry contract: the entry module exists and default-exports.

        Raises
        ------
        SandboxRuntimeError
            If the entry is missing, failed to build, or has no default export
        """
        record = bundle.entry_record
        if record is None:
            reasons = [d.format() for d in bundle.diagnostics if d.path == bundle.entry]
            detail = reasons[0] if reasons else "entry module is not part of the bundle"
            raise SandboxRuntimeError(f"Cannot render {bundle.entry}: {detail}")
        if "default" not in record.exports:
            raise SandboxRuntimeError(f"{bundle.entry} must default-export a component")

    async def render(self, bundle: Bundle) -> RenderOutcome:
        """Render ``bundle`` into the sandbox.

        Never raises for bundle or sandbox failures: they come back as a
        failed :class:`RenderOutcome` and the previous artifact stays active.
        """
        diagnostics = tuple(diagnostic.format() for diagnostic in bundle.diagnostics)
        artifact: PreviewArtifact | None = None
        try:
            self.check_entry(bundle)
            artifact = self.build_artifact(bundle)
            report = await self._load(artifact)
        except HexViewError as e:
            outcome = RenderOutcome(
                ok=False,
                artifact_id=artifact.artifact_id if artifact else None,
                bundle_revision=bundle.revision,
                error=str(e),
                error_kind=type(e).__name__,
                diagnostics=diagnostics,
            )
            return await self._finish(outcome)

        if not report.ok:
            outcome = RenderOutcome(
                ok=False,
                artifact_id=artifact.artifact_id,
                bundle_revision=bundle.revision,
                error=report.error,
                error_kind=SandboxRuntimeError.__name__,
                diagnostics=diagnostics,
                report=report,
            )
            return await self._finish(outcome)

        if self._active is None or self._active.artifact_id != artifact.artifact_id:
            self._runtime_errors.clear()
        self._active = artifact
        outcome = RenderOutcome(
            ok=True,
            artifact_id=artifact.artifact_id,
            bundle_revision=bundle.revision,
            diagnostics=diagnostics,
            report=report,
        )
        return await self._finish(outcome)

    async def _load(self, artifact: PreviewArtifact) -> SandboxReport:
        """Load into the sandbox; any driver failure becomes a failed report."""
        try:
            return await self.sandbox.aload(artifact)
        except Exception as e:
            logger.exception("Sandbox failed to load {artifact}", artifact=artifact.artifact_id)
            return SandboxReport(ok=False, artifact_id=artifact.artifact_id, error=str(e))

    async def _finish(self, outcome: RenderOutcome) -> RenderOutcome:
        self._last_outcome = outcome
        if not outcome.ok:
            logger.warning(
                "Render of r{rev} failed: {error}", rev=outcome.bundle_revision, error=outcome.error
            )
        await self._notify(
            PreviewRendered(artifact_id=outcome.artifact_id, ok=outcome.ok, error=outcome.error)
        )
        return outcome

    async def handle_sandbox_event(self, payload: SandboxEvent | Mapping[str, object]) -> bool:
        """Record a message posted back by a running artifact.

        Returns
        -------
        bool
            True if the event was an error for the active artifact
        """
        event = (
            payload if isinstance(payload, SandboxEvent) else SandboxEvent.model_validate(payload)
        )
        if not event.is_error:
            return False
        if self._active is None or event.artifact != self._active.artifact_id:
            logger.debug("Ignoring error for stale artifact {artifact}", artifact=event.artifact)
            return False
        self._runtime_errors.append(event)
        await self._notify(
            SandboxErrorReported(artifact_id=event.artifact, message=event.message or "")
        )
        return True

    async def _notify(self, event: Event) -> None:
        logger.debug(event.log_message())
        if self.observer_manager is not None:
            await self.observer_manager.notify(event)


__all__ = [
    "MAX_RUNTIME_ERRORS",
    "RUNTIME_EXTERNALS",
    "STUB_MARKER",
    "PreviewRenderer",
    "RenderOutcome",
    "data_url",
    "failed_module_stub",
]
