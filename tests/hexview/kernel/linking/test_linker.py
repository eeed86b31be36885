"""Tests for ModuleGraphLinker."""

from __future__ import annotations

import pytest

from hexview.drivers.vfs.memory import InMemoryVFS
from hexview.kernel.config.models import LinkerConfig
from hexview.kernel.domain.modules import EXTERNAL, ModuleKind
from hexview.kernel.linking.linker import MISSING_ENTRY, ModuleGraphLinker, fingerprint

BUTTON = "export default function Button() { return <button>Click</button>; }"
APP = """import Button from "@/components/Button";
import "./styles.css";

export default function App() {
  return <Button />;
}"""


@pytest.fixture
def vfs() -> InMemoryVFS:
    return InMemoryVFS(
        {
            "/App.jsx": APP,
            "/components/Button.jsx": BUTTON,
            "/components/Unused.jsx": "export default 1;",
            "/styles.css": "body { margin: 0; }",
        }
    )


@pytest.fixture
def linker(vfs: InMemoryVFS) -> ModuleGraphLinker:
    return ModuleGraphLinker(vfs)


class TestFullLink:
    def test_load_order_and_styles(self, linker: ModuleGraphLinker) -> None:
        bundle = linker.link()
        assert bundle.ok
        assert bundle.load_order == ["/components/Button.jsx", "/App.jsx"]
        assert [s.path for s in bundle.styles] == ["/styles.css"]
        assert bundle.styles[0].kind is ModuleKind.STYLE
        assert bundle.entry_record is not None
        assert bundle.entry_record.resolved_imports["react"] == EXTERNAL

    def test_unreachable_modules_not_linked(self, linker: ModuleGraphLinker) -> None:
        linker.link()
        assert "/components/Unused.jsx" not in linker.records

    def test_dependents(self, linker: ModuleGraphLinker) -> None:
        linker.link()
        assert linker.dependents("/components/Button.jsx") == frozenset({"/App.jsx"})

    def test_revision_increases(self, linker: ModuleGraphLinker) -> None:
        first = linker.link()
        second = linker.link(set())
        assert second.revision == first.revision + 1
        assert second.fingerprint == first.fingerprint


class TestIncremental:
    def test_leaf_change_rebuilds_importers_only(
        self, linker: ModuleGraphLinker, vfs: InMemoryVFS
    ) -> None:
        linker.link()
        css = linker.records["/styles.css"]
        vfs.write("/components/Button.jsx", BUTTON.replace("Click", "Press"))
        bundle = linker.link({"/components/Button.jsx"})
        assert linker.last_invalidated == frozenset({"/components/Button.jsx", "/App.jsx"})
        assert linker.records["/styles.css"] is css
        assert '"Press"' in bundle.modules[0].transformed_code

    def test_untouched_records_keep_identity(
        self, linker: ModuleGraphLinker, vfs: InMemoryVFS
    ) -> None:
        linker.link()
        button = linker.records["/components/Button.jsx"]
        vfs.write("/App.jsx", APP + "\n")
        linker.link({"/App.jsx"})
        assert linker.records["/components/Button.jsx"] is button
        assert linker.last_invalidated == frozenset({"/App.jsx"})

    def test_unrelated_change_rebuilds_nothing(
        self, linker: ModuleGraphLinker, vfs: InMemoryVFS
    ) -> None:
        first = linker.link()
        vfs.write("/components/Unused.jsx", "export default 2;")
        bundle = linker.link({"/components/Unused.jsx"})
        assert linker.last_invalidated == frozenset()
        assert bundle.fingerprint == first.fingerprint

    def test_missing_import_recovers_when_created(self, vfs: InMemoryVFS) -> None:
        vfs.write("/App.jsx", 'import Card from "./Card";\nexport default () => <Card />;')
        linker = ModuleGraphLinker(vfs)
        bundle = linker.link()
        assert not bundle.ok
        assert bundle.diagnostics[0].kind == "UnresolvedImportError"
        assert bundle.load_order == []

        vfs.write("/Card.jsx", "export default () => null;")
        bundle = linker.link({"/Card.jsx"})
        assert bundle.ok
        assert bundle.load_order == ["/Card.jsx", "/App.jsx"]

    def test_syntax_error_is_diagnostic(self, linker: ModuleGraphLinker, vfs: InMemoryVFS) -> None:
        linker.link()
        vfs.write("/components/Button.jsx", "export default () => <div>;")
        bundle = linker.link({"/components/Button.jsx"})
        assert not bundle.ok
        (diagnostic,) = bundle.diagnostics
        assert diagnostic.kind == "TransformSyntaxError"
        assert diagnostic.path == "/components/Button.jsx"
        assert diagnostic.line == 1
        assert "/components/Button.jsx" not in bundle.load_order

    def test_deleted_dependency_fails_importer(
        self, linker: ModuleGraphLinker, vfs: InMemoryVFS
    ) -> None:
        linker.link()
        vfs.delete("/components/Button.jsx")
        bundle = linker.link({"/components/Button.jsx"})
        assert not linker.records["/App.jsx"].ok
        assert bundle.entry_record is None


class TestEntry:
    def test_missing_entry(self) -> None:
        linker = ModuleGraphLinker(InMemoryVFS({"/Other.jsx": "export default 1;"}))
        bundle = linker.link()
        assert bundle.modules == ()
        assert bundle.diagnostics[0].kind == MISSING_ENTRY
        assert not linker.records

    def test_configured_entry(self, vfs: InMemoryVFS) -> None:
        linker = ModuleGraphLinker(vfs, LinkerConfig(entry="/components/Button.jsx"))
        assert linker.link().load_order == ["/components/Button.jsx"]

    def test_cycle_still_links(self) -> None:
        vfs = InMemoryVFS(
            {
                "/App.jsx": 'import { b } from "./b";\nexport const a = 1;\nexport default b;',
                "/b.js": 'import { a } from "./App";\nexport const b = () => a;',
            }
        )
        bundle = ModuleGraphLinker(vfs).link()
        assert bundle.ok
        assert bundle.load_order == ["/b.js", "/App.jsx"]
        assert bundle.cycles == (("/App.jsx", "/b.js", "/App.jsx"),)


class TestFingerprint:
    def test_depends_on_content(self, linker: ModuleGraphLinker, vfs: InMemoryVFS) -> None:
        first = linker.link()
        vfs.write("/styles.css", "body { margin: 1px; }")
        second = linker.link({"/styles.css"})
        assert first.fingerprint != second.fingerprint

    def test_empty(self) -> None:
        assert fingerprint(()) == fingerprint([])
