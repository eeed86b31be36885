"""Tests for ToolExecutor and TurnSession."""

from __future__ import annotations

import pytest

from hexview.drivers.vfs.memory import InMemoryVFS
from hexview.kernel.config.models import ExecutionMode, ExecutorConfig, RenamePolicy
from hexview.kernel.domain.commands import (
    CreateFile,
    DeleteFile,
    EditFile,
    InsertText,
    RenameOrMove,
    ViewFile,
)
from hexview.kernel.exceptions import AmbiguousEditError, StepLimitExceededError
from hexview.kernel.orchestration.tool_executor import (
    ToolExecutor,
    count_occurrences,
    format_numbered,
)

APP = """import Button from "./components/Button";
import Icon from "@/components/Icon";

export default function App() {
  return <Button />;
}"""


@pytest.fixture
def vfs() -> InMemoryVFS:
    return InMemoryVFS(
        {
            "/App.jsx": APP,
            "/components/Button.jsx": "export default function Button() { return null; }",
            "/components/Icon.jsx": "export default function Icon() { return null; }",
        }
    )


@pytest.fixture
def executor(vfs: InMemoryVFS) -> ToolExecutor:
    return ToolExecutor(vfs)


class TestCountOccurrences:
    def test_counts_overlapping(self) -> None:
        assert count_occurrences("aaa", "aa") == 2

    def test_absent(self) -> None:
        assert count_occurrences("abc", "x") == 0


class TestFormatNumbered:
    def test_cat_n_layout(self) -> None:
        assert format_numbered("a\nb") == "     1\ta\n     2\tb"

    def test_range(self) -> None:
        assert format_numbered("a\nb\nc", 2, 3) == "     2\tb\n     3\tc"


class TestCreate:
    def test_create(self, executor: ToolExecutor, vfs: InMemoryVFS) -> None:
        result = executor.execute(CreateFile.of("/lib/util.js", "export const x = 1;", "c1"))
        assert result.ok
        assert result.message == "File created: /lib/util.js"
        assert result.call_id == "c1"
        assert result.changed_paths == frozenset({"/lib/util.js"})
        assert vfs.read("/lib/util.js") == "export const x = 1;"

    def test_create_existing_fails(self, executor: ToolExecutor, vfs: InMemoryVFS) -> None:
        result = executor.execute(CreateFile.of("/App.jsx", "x"))
        assert not result.ok
        assert result.error == "PathConflictError"
        assert result.message.startswith("Error: ")
        assert vfs.read("/App.jsx") == APP


class TestEdit:
    def test_unique_replacement(self, executor: ToolExecutor, vfs: InMemoryVFS) -> None:
        result = executor.execute(EditFile.of("/App.jsx", "<Button />", "<Button label=\"hi\" />"))
        assert result.ok
        assert result.message == "Replaced text in /App.jsx"
        assert '<Button label="hi" />' in vfs.read("/App.jsx")

    def test_missing_fragment(self, executor: ToolExecutor, vfs: InMemoryVFS) -> None:
        revision = vfs.revision
        result = executor.execute(EditFile.of("/App.jsx", "<Missing />", "x"))
        assert not result.ok
        assert result.error == "AmbiguousEditError"
        assert "fragment not found" in result.message
        assert vfs.revision == revision

    def test_repeated_fragment(self, executor: ToolExecutor, vfs: InMemoryVFS) -> None:
        with pytest.raises(AmbiguousEditError) as excinfo:
            executor.apply(EditFile.of("/App.jsx", "import", "export"))
        assert excinfo.value.occurrences == 2
        assert vfs.read("/App.jsx") == APP

    def test_overlapping_occurrences_are_ambiguous(self, executor: ToolExecutor) -> None:
        executor.apply(CreateFile.of("/a.js", "aaa"))
        with pytest.raises(AmbiguousEditError) as excinfo:
            executor.apply(EditFile.of("/a.js", "aa", "b"))
        assert excinfo.value.occurrences == 2

    def test_empty_fragment_rejected(self, executor: ToolExecutor) -> None:
        with pytest.raises(AmbiguousEditError, match="must not be empty"):
            executor.apply(EditFile.of("/App.jsx", "", "x"))

    def test_edit_missing_file(self, executor: ToolExecutor) -> None:
        result = executor.execute(EditFile.of("/nope.jsx", "a", "b"))
        assert result.error == "PathNotFoundError"


class TestInsert:
    def test_insert_at_top(self, executor: ToolExecutor, vfs: InMemoryVFS) -> None:
        result = executor.execute(InsertText.of("/components/Icon.jsx", 0, "// icon"))
        assert result.message == "Text inserted at line 0 in /components/Icon.jsx"
        assert vfs.read("/components/Icon.jsx").startswith("// icon\nexport default")

    def test_insert_after_line(self, executor: ToolExecutor, vfs: InMemoryVFS) -> None:
        executor.apply(InsertText.of("/App.jsx", 2, "import './styles.css';"))
        assert vfs.read("/App.jsx").split("\n")[2] == "import './styles.css';"

    def test_insert_past_end(self, executor: ToolExecutor) -> None:
        result = executor.execute(InsertText.of("/App.jsx", 99, "x"))
        assert not result.ok
        assert result.error == "VFSError"


class TestDelete:
    def test_delete_file(self, executor: ToolExecutor) -> None:
        result = executor.execute(DeleteFile.of("/components/Icon.jsx"))
        assert result.message == "Deleted /components/Icon.jsx"

    def test_delete_directory_counts_descendants(
        self, executor: ToolExecutor, vfs: InMemoryVFS
    ) -> None:
        result = executor.execute(DeleteFile.of("/components"))
        assert result.message == "Deleted /components and 2 descendant(s)"
        assert not vfs.exists("/components/Button.jsx")


class TestView:
    def test_view_file(self, executor: ToolExecutor) -> None:
        result = executor.execute(ViewFile.of("/components/Icon.jsx"))
        assert result.message == "     1\texport default function Icon() { return null; }"
        assert result.changed_paths == frozenset()

    def test_view_range(self, executor: ToolExecutor) -> None:
        result = executor.execute(ViewFile.of("/App.jsx", (4, -1)))
        lines = result.message.split("\n")
        assert lines[0] == "     4\texport default function App() {"
        assert len(lines) == 3

    def test_invalid_view_range(self, executor: ToolExecutor) -> None:
        result = executor.execute(ViewFile.of("/App.jsx", (5, 2)))
        assert not result.ok

    def test_view_directory(self, executor: ToolExecutor) -> None:
        result = executor.execute(ViewFile.of("/"))
        assert result.message == "[FILE] App.jsx\n[DIR] components"

    def test_view_empty_directory(self, executor: ToolExecutor, vfs: InMemoryVFS) -> None:
        vfs.mkdir("/empty")
        assert executor.execute(ViewFile.of("/empty")).message == "/empty is empty"


class TestRename:
    def test_preserve_leaves_importers(self, executor: ToolExecutor, vfs: InMemoryVFS) -> None:
        result = executor.execute(RenameOrMove.of("/components/Button.jsx", "/ui/Button.jsx"))
        assert result.ok
        assert result.message == "Renamed /components/Button.jsx to /ui/Button.jsx"
        assert vfs.read("/App.jsx") == APP
        assert {"/components/Button.jsx", "/ui/Button.jsx"} <= result.changed_paths

    def test_rewrite_updates_specifiers(self, vfs: InMemoryVFS) -> None:
        executor = ToolExecutor(vfs, ExecutorConfig(rename_policy=RenamePolicy.REWRITE))
        revision = vfs.revision
        result = executor.execute(RenameOrMove.of("/components", "/ui"))
        assert result.ok
        assert result.message.endswith("; updated imports in /App.jsx")
        app = vfs.read("/App.jsx")
        assert 'from "./ui/Button"' in app
        assert 'from "@/ui/Icon"' in app
        assert vfs.revision == revision + 1

    def test_rewrite_moves_importer(self, vfs: InMemoryVFS) -> None:
        executor = ToolExecutor(vfs, ExecutorConfig(rename_policy=RenamePolicy.REWRITE))
        executor.apply(RenameOrMove.of("/App.jsx", "/src/App.jsx"))
        app = vfs.read("/src/App.jsx")
        assert 'from "../components/Button"' in app
        assert 'from "@/components/Icon"' in app

    def test_cyclic_move(self, executor: ToolExecutor) -> None:
        result = executor.execute(RenameOrMove.of("/components", "/components/inner"))
        assert result.error == "CyclicMoveError"


class TestExecuteRaw:
    def test_parses_and_executes(self, executor: ToolExecutor, vfs: InMemoryVFS) -> None:
        result = executor.execute_raw(
            {"name": "rename", "args": {"from": "/App.jsx", "to": "/Main.jsx"}}
        )
        assert result.ok
        assert vfs.exists("/Main.jsx")

    def test_unknown_command(self, executor: ToolExecutor) -> None:
        result = executor.execute_raw({"name": "format_disk", "args": {}})
        assert not result.ok
        assert result.error == "CommandParseError"


class TestTurnSession:
    def test_ceiling_counts_every_command(self, executor: ToolExecutor) -> None:
        session = executor.begin_turn(max_steps=2)
        session.execute(ViewFile.of("/App.jsx"))
        session.execute(EditFile.of("/App.jsx", "missing", "x"))
        assert session.exhausted
        with pytest.raises(StepLimitExceededError, match="Step limit of 2"):
            session.execute(CreateFile.of("/new.jsx"))
        assert not executor.vfs.exists("/new.jsx")

    def test_default_ceiling_from_config(self, vfs: InMemoryVFS) -> None:
        assert ToolExecutor(vfs).begin_turn().max_steps == 4
        executor = ToolExecutor(vfs, ExecutorConfig(mode=ExecutionMode.FULL))
        assert executor.begin_turn().max_steps == 40
