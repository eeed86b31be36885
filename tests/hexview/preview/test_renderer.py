"""Tests for PreviewRenderer."""

from __future__ import annotations

import base64

import pytest

from hexview.drivers.observer_manager.local import LocalObserverManager
from hexview.drivers.vfs.memory import InMemoryVFS
from hexview.kernel.config.models import PreviewConfig
from hexview.kernel.linking.linker import ModuleGraphLinker
from hexview.kernel.orchestration.events import Event, PreviewRendered, SandboxErrorReported
from hexview.preview.renderer import (
    MAX_RUNTIME_ERRORS,
    RUNTIME_EXTERNALS,
    STUB_MARKER,
    PreviewRenderer,
    data_url,
)
from hexview.stdlib.adapters.mock.mock_sandbox import MockSandbox


def decode(url: str) -> str:
    return base64.b64decode(url.split(",", 1)[1]).decode()


@pytest.fixture
def vfs(project_files: dict[str, str]) -> InMemoryVFS:
    files = dict(project_files)
    files["/styles.css"] = "body { color: red; } </style><script>"
    files["/App.jsx"] = 'import "./styles.css";\nimport { clsx } from "clsx";\n' + files["/App.jsx"]
    return InMemoryVFS(files)


@pytest.fixture
def linker(vfs: InMemoryVFS) -> ModuleGraphLinker:
    return ModuleGraphLinker(vfs)


@pytest.fixture
def sandbox() -> MockSandbox:
    return MockSandbox()


@pytest.fixture
def renderer(sandbox: MockSandbox) -> PreviewRenderer:
    return PreviewRenderer(sandbox)


class TestBuildArtifact:
    def test_import_map(self, renderer: PreviewRenderer, linker: ModuleGraphLinker) -> None:
        artifact = renderer.build_artifact(linker.link())
        import_map = artifact.import_map
        assert set(import_map) == {
            "@/App.jsx",
            "@/components/Button.jsx",
            "@/styles.css",
            "clsx",
            *RUNTIME_EXTERNALS,
        }
        assert import_map["react"] == "https://esm.sh/react"
        assert import_map["clsx"] == "https://esm.sh/clsx"
        assert import_map["@/styles.css"] == data_url("")
        assert artifact.entry_specifier == "@/App.jsx"

    def test_local_specifiers_rewritten(
        self, renderer: PreviewRenderer, linker: ModuleGraphLinker
    ) -> None:
        artifact = renderer.build_artifact(linker.link())
        app = decode(artifact.import_map["@/App.jsx"])
        assert 'import Button from "@/components/Button.jsx";' in app
        assert 'import "@/styles.css";' in app
        assert 'from "clsx"' in app

    def test_styles_inlined_and_escaped(
        self, renderer: PreviewRenderer, linker: ModuleGraphLinker
    ) -> None:
        html = renderer.build_artifact(linker.link()).html
        assert "body { color: red; } <\\/style><script>" in html
        assert "https://cdn.tailwindcss.com" in html

    def test_deterministic(self, renderer: PreviewRenderer, linker: ModuleGraphLinker) -> None:
        bundle = linker.link()
        first = renderer.build_artifact(bundle)
        second = renderer.build_artifact(bundle)
        assert first == second
        assert first.artifact_id == f"a-{bundle.fingerprint}"

    def test_custom_cdn(self, sandbox: MockSandbox, linker: ModuleGraphLinker) -> None:
        renderer = PreviewRenderer(sandbox, PreviewConfig(cdn_base="https://cdn.example/"))
        artifact = renderer.build_artifact(linker.link())
        assert artifact.import_map["react"] == "https://cdn.example/react"

    def test_failed_module_stub(
        self, renderer: PreviewRenderer, linker: ModuleGraphLinker, vfs: InMemoryVFS
    ) -> None:
        vfs.write("/components/Button.jsx", "export default () => <div>;")
        artifact = renderer.build_artifact(linker.link())
        stub = decode(artifact.import_map["@/components/Button.jsx"])
        assert stub.startswith(STUB_MARKER)
        assert "TransformSyntaxError" in stub


class TestRender:
    @pytest.mark.asyncio
    async def test_successful_render_activates(
        self, renderer: PreviewRenderer, linker: ModuleGraphLinker, sandbox: MockSandbox
    ) -> None:
        outcome = await renderer.render(linker.link())
        assert outcome.ok
        assert renderer.active is sandbox.current
        assert outcome.report is not None
        assert outcome.report.output == "rendered /App.jsx (3 module(s))"

    @pytest.mark.asyncio
    async def test_same_bundle_same_artifact(
        self, renderer: PreviewRenderer, linker: ModuleGraphLinker, sandbox: MockSandbox
    ) -> None:
        bundle = linker.link()
        first = await renderer.render(bundle)
        second = await renderer.render(bundle)
        assert first.artifact_id == second.artifact_id
        assert sandbox.loaded[0].html == sandbox.loaded[1].html

    @pytest.mark.asyncio
    async def test_entry_without_default_export(
        self, renderer: PreviewRenderer, linker: ModuleGraphLinker, vfs: InMemoryVFS
    ) -> None:
        vfs.write("/App.jsx", "export const App = () => null;")
        outcome = await renderer.render(linker.link())
        assert not outcome.ok
        assert outcome.error_kind == "SandboxRuntimeError"
        assert "must default-export" in (outcome.error or "")
        assert renderer.active is None

    @pytest.mark.asyncio
    async def test_failure_keeps_previous_artifact(
        self, renderer: PreviewRenderer, linker: ModuleGraphLinker, vfs: InMemoryVFS
    ) -> None:
        good = await renderer.render(linker.link())
        vfs.write("/components/Button.jsx", "export default () => <div>;")
        bad = await renderer.render(linker.link({"/components/Button.jsx"}))
        assert not bad.ok
        assert bad.diagnostics
        assert renderer.active is not None
        assert renderer.active.artifact_id == good.artifact_id
        assert renderer.last_outcome is bad

    @pytest.mark.asyncio
    async def test_missing_entry(self, renderer: PreviewRenderer) -> None:
        bundle = ModuleGraphLinker(InMemoryVFS()).link()
        outcome = await renderer.render(bundle)
        assert not outcome.ok
        assert outcome.artifact_id is None
        assert "Cannot render /App.jsx" in (outcome.error or "")

    @pytest.mark.asyncio
    async def test_sandbox_failure_reported(self, linker: ModuleGraphLinker) -> None:
        renderer = PreviewRenderer(MockSandbox(fail_with="ReferenceError: x is not defined"))
        outcome = await renderer.render(linker.link())
        assert not outcome.ok
        assert outcome.error == "ReferenceError: x is not defined"
        assert renderer.active is None

    @pytest.mark.asyncio
    async def test_events_emitted(self, sandbox: MockSandbox, linker: ModuleGraphLinker) -> None:
        observers = LocalObserverManager()
        seen: list[Event] = []
        observers.register(seen.append)
        renderer = PreviewRenderer(sandbox, observer_manager=observers)
        outcome = await renderer.render(linker.link())
        (event,) = seen
        assert isinstance(event, PreviewRendered)
        assert event.ok
        assert event.artifact_id == outcome.artifact_id

    @pytest.mark.asyncio
    async def test_outcome_to_dict(
        self, renderer: PreviewRenderer, linker: ModuleGraphLinker
    ) -> None:
        bundle = linker.link()
        data = (await renderer.render(bundle)).to_dict()
        assert data == {
            "ok": True,
            "artifact_id": f"a-{bundle.fingerprint}",
            "bundle_revision": bundle.revision,
            "error": None,
            "error_kind": None,
            "diagnostics": [],
        }


class TestSandboxEvents:
    @pytest.mark.asyncio
    async def test_error_for_active_artifact(
        self, sandbox: MockSandbox, linker: ModuleGraphLinker
    ) -> None:
        observers = LocalObserverManager()
        seen: list[Event] = []
        observers.register(seen.append, event_types=SandboxErrorReported)
        renderer = PreviewRenderer(sandbox, observer_manager=observers)
        outcome = await renderer.render(linker.link())

        accepted = await renderer.handle_sandbox_event(
            {"artifact": outcome.artifact_id, "kind": "error", "message": "boom"}
        )
        assert accepted
        assert [e.message for e in renderer.runtime_errors()] == ["boom"]
        assert len(seen) == 1

    @pytest.mark.asyncio
    async def test_stale_and_ready_events_ignored(
        self, renderer: PreviewRenderer, linker: ModuleGraphLinker
    ) -> None:
        outcome = await renderer.render(linker.link())
        assert not await renderer.handle_sandbox_event(
            {"artifact": outcome.artifact_id, "kind": "ready"}
        )
        assert not await renderer.handle_sandbox_event(
            {"artifact": "a-old", "kind": "error", "message": "late"}
        )
        assert renderer.runtime_errors() == []
        assert renderer.runtime_errors("a-old") == []

    @pytest.mark.asyncio
    async def test_errors_without_active_artifact_are_dropped(
        self, renderer: PreviewRenderer
    ) -> None:
        for n in range(200):
            event = {"artifact": f"a-{n}", "kind": "error", "message": "x"}
            assert not await renderer.handle_sandbox_event(event)
        assert renderer.active is None
        assert renderer.runtime_errors() == []
        assert renderer.runtime_errors("a-0") == []

    @pytest.mark.asyncio
    async def test_active_errors_are_bounded(
        self, renderer: PreviewRenderer, linker: ModuleGraphLinker
    ) -> None:
        outcome = await renderer.render(linker.link())
        for n in range(MAX_RUNTIME_ERRORS + 10):
            await renderer.handle_sandbox_event(
                {"artifact": outcome.artifact_id, "kind": "error", "message": str(n)}
            )
        errors = renderer.runtime_errors()
        assert len(errors) == MAX_RUNTIME_ERRORS
        assert errors[-1].message == str(MAX_RUNTIME_ERRORS + 9)

    @pytest.mark.asyncio
    async def test_new_artifact_drops_previous_errors(
        self, renderer: PreviewRenderer, linker: ModuleGraphLinker, vfs: InMemoryVFS
    ) -> None:
        first = await renderer.render(linker.link())
        await renderer.handle_sandbox_event(
            {"artifact": first.artifact_id, "kind": "error", "message": "old"}
        )
        again = await renderer.render(linker.link())
        assert again.artifact_id == first.artifact_id
        assert len(renderer.runtime_errors()) == 1

        vfs.write("/components/Button.jsx", vfs.read("/components/Button.jsx") + "\n")
        second = await renderer.render(linker.link(["/components/Button.jsx"]))
        assert second.artifact_id != first.artifact_id
        assert renderer.runtime_errors() == []
        assert renderer.runtime_errors(first.artifact_id) == []


class TestErrorDocument:
    @pytest.mark.asyncio
    async def test_shows_last_error(self, renderer: PreviewRenderer) -> None:
        await renderer.render(ModuleGraphLinker(InMemoryVFS()).link())
        html = renderer.render_error_document()
        assert "Cannot render /App.jsx" in html

    def test_nothing_rendered_yet(self, renderer: PreviewRenderer) -> None:
        assert "Nothing has been rendered yet" in renderer.render_error_document()
