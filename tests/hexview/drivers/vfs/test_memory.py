"""Tests for the InMemoryVFS driver."""

from __future__ import annotations

import pytest

from hexview.drivers.vfs.memory import InMemoryVFS
from hexview.kernel.domain.vfs import EntryType, VFSChange, VFSSnapshot
from hexview.kernel.exceptions import (
    CyclicMoveError,
    InvalidPathError,
    PathConflictError,
    PathNotFoundError,
    VFSError,
)
from hexview.kernel.ports.vfs import VirtualFileSystem


@pytest.fixture
def vfs() -> InMemoryVFS:
    return InMemoryVFS(
        {
            "/App.jsx": "export default function App() { return null; }",
            "/components/Button.jsx": "export default function Button() {}",
            "/components/ui/Icon.jsx": "export const Icon = 1;",
        }
    )


class TestProtocol:
    def test_satisfies_port(self) -> None:
        assert isinstance(InMemoryVFS(), VirtualFileSystem)


class TestReadWrite:
    def test_seed_is_one_revision(self, vfs: InMemoryVFS) -> None:
        assert vfs.revision == 1

    def test_write_creates_missing_parents(self) -> None:
        vfs = InMemoryVFS()
        vfs.write("/a/b/c.jsx", "x")
        assert vfs.stat("/a").kind is EntryType.DIRECTORY
        assert vfs.stat("/a/b").kind is EntryType.DIRECTORY
        assert vfs.read("/a/b/c.jsx") == "x"

    def test_write_stamps_revision(self, vfs: InMemoryVFS) -> None:
        vfs.write("/App.jsx", "changed")
        assert vfs.revision == 2
        assert vfs.stat("/App.jsx").last_modified == 2
        assert vfs.stat("/components/Button.jsx").last_modified == 1

    def test_read_normalizes_path(self, vfs: InMemoryVFS) -> None:
        assert vfs.read("/components//Button.jsx").startswith("export default")

    def test_read_missing_raises(self, vfs: InMemoryVFS) -> None:
        with pytest.raises(PathNotFoundError):
            vfs.read("/nope.jsx")

    def test_read_directory_raises(self, vfs: InMemoryVFS) -> None:
        with pytest.raises(VFSError, match="is a directory"):
            vfs.read("/components")

    def test_write_over_directory_is_conflict(self, vfs: InMemoryVFS) -> None:
        with pytest.raises(PathConflictError):
            vfs.write("/components", "x")

    def test_write_under_file_is_conflict_and_atomic(self, vfs: InMemoryVFS) -> None:
        before = vfs.snapshot()
        with pytest.raises(PathConflictError):
            vfs.write("/App.jsx/inner.jsx", "x")
        assert vfs.snapshot() == before
        assert vfs.revision == 1

    def test_invalid_path_rejected(self, vfs: InMemoryVFS) -> None:
        with pytest.raises(InvalidPathError):
            vfs.write("relative.jsx", "x")

    def test_create_is_exclusive(self, vfs: InMemoryVFS) -> None:
        with pytest.raises(PathConflictError):
            vfs.create("/App.jsx", "again")
        assert vfs.read("/App.jsx").startswith("export default function App")


class TestListing:
    def test_list_is_sorted_and_typed(self, vfs: InMemoryVFS) -> None:
        entries = vfs.list("/components")
        assert [e.name for e in entries] == ["Button.jsx", "ui"]
        assert entries[1].entry_type is EntryType.DIRECTORY
        assert entries[0].path == "/components/Button.jsx"

    def test_list_file_raises(self, vfs: InMemoryVFS) -> None:
        with pytest.raises(VFSError, match="not a directory"):
            vfs.list("/App.jsx")

    def test_files_excludes_directories(self, vfs: InMemoryVFS) -> None:
        assert [f.path for f in vfs.files()] == [
            "/App.jsx",
            "/components/Button.jsx",
            "/components/ui/Icon.jsx",
        ]


class TestDelete:
    def test_delete_subtree(self, vfs: InMemoryVFS) -> None:
        removed = vfs.delete("/components")
        assert removed == frozenset(
            {
                "/components",
                "/components/Button.jsx",
                "/components/ui",
                "/components/ui/Icon.jsx",
            }
        )
        assert not vfs.exists("/components/ui/Icon.jsx")
        assert vfs.exists("/App.jsx")

    def test_delete_root_refused(self, vfs: InMemoryVFS) -> None:
        with pytest.raises(VFSError):
            vfs.delete("/")

    def test_delete_missing(self, vfs: InMemoryVFS) -> None:
        with pytest.raises(PathNotFoundError):
            vfs.delete("/ghost")


class TestRename:
    def test_rename_moves_subtree(self, vfs: InMemoryVFS) -> None:
        moves = vfs.rename("/components", "/ui")
        assert moves["/components/ui/Icon.jsx"] == "/ui/ui/Icon.jsx"
        assert vfs.read("/ui/Button.jsx") == "export default function Button() {}"
        assert not vfs.exists("/components")

    def test_rename_creates_destination_parents(self, vfs: InMemoryVFS) -> None:
        vfs.rename("/App.jsx", "/src/App.jsx")
        assert vfs.stat("/src").is_directory
        assert vfs.exists("/src/App.jsx")

    def test_move_into_own_subtree_is_cyclic(self, vfs: InMemoryVFS) -> None:
        before = vfs.snapshot()
        with pytest.raises(CyclicMoveError):
            vfs.rename("/components", "/components/ui/inner")
        assert vfs.snapshot() == before

    def test_rename_onto_existing_is_conflict(self, vfs: InMemoryVFS) -> None:
        before = vfs.snapshot()
        revision = vfs.revision
        with pytest.raises(PathConflictError):
            vfs.rename("/App.jsx", "/components/Button.jsx")
        assert vfs.snapshot() == before
        assert vfs.revision == revision

    def test_move_root_refused(self, vfs: InMemoryVFS) -> None:
        with pytest.raises(VFSError):
            vfs.rename("/", "/elsewhere")


class TestSnapshot:
    def test_restore_round_trip(self, vfs: InMemoryVFS) -> None:
        snap = vfs.snapshot()
        other = InMemoryVFS()
        other.restore(snap)
        assert other.snapshot() == snap
        assert other.revision > 1

    def test_wire_form_uses_last_modified(self, vfs: InMemoryVFS) -> None:
        wire = vfs.snapshot().to_json_dict()
        assert wire["/App.jsx"]["lastModified"] == 1
        assert wire["/components"]["kind"] == "directory"

    def test_restore_recreates_missing_parents(self) -> None:
        vfs = InMemoryVFS()
        vfs.restore(VFSSnapshot.model_validate({"/a/b.jsx": {"content": "x"}}))
        assert vfs.stat("/a").is_directory

    def test_restore_rejects_unnormalized_keys(self) -> None:
        vfs = InMemoryVFS()
        with pytest.raises(InvalidPathError):
            vfs.restore(VFSSnapshot.model_validate({"/a//b.jsx": {"content": "x"}}))

    def test_restore_file_parent_conflict(self) -> None:
        vfs = InMemoryVFS()
        snap = VFSSnapshot.model_validate(
            {"/a": {"content": "file"}, "/a/b.jsx": {"content": "x"}}
        )
        with pytest.raises(PathConflictError):
            vfs.restore(snap)
        assert vfs.files() == []


class TestNotifications:
    def test_subscribe_receives_changes(self, vfs: InMemoryVFS) -> None:
        seen: list[VFSChange] = []
        unsubscribe = vfs.subscribe(seen.append)
        vfs.write("/App.jsx", "new")
        assert seen == [VFSChange(paths=frozenset({"/App.jsx"}), revision=2)]
        unsubscribe()
        vfs.write("/App.jsx", "newer")
        assert len(seen) == 1

    def test_rename_reports_both_locations(self, vfs: InMemoryVFS) -> None:
        seen: list[VFSChange] = []
        vfs.subscribe(seen.append)
        vfs.rename("/App.jsx", "/Main.jsx")
        assert {"/App.jsx", "/Main.jsx"} <= seen[0].paths

    def test_failing_listener_does_not_undo_commit(self, vfs: InMemoryVFS) -> None:
        def broken(change: VFSChange) -> None:
            raise RuntimeError("boom")

        vfs.subscribe(broken)
        vfs.write("/App.jsx", "kept")
        assert vfs.read("/App.jsx") == "kept"

    def test_no_change_no_notification(self, vfs: InMemoryVFS) -> None:
        seen: list[VFSChange] = []
        vfs.subscribe(seen.append)
        vfs.mkdir("/components")
        assert seen == []
        assert vfs.revision == 1


class TestBatch:
    def test_batch_commits_once(self, vfs: InMemoryVFS) -> None:
        seen: list[VFSChange] = []
        vfs.subscribe(seen.append)
        with vfs.batch():
            vfs.write("/a.jsx", "a")
            vfs.write("/b.jsx", "b")
            assert vfs.read("/a.jsx") == "a"
        assert len(seen) == 1
        assert seen[0].paths == frozenset({"/a.jsx", "/b.jsx"})
        assert vfs.revision == 2

    def test_batch_rolls_back_on_error(self, vfs: InMemoryVFS) -> None:
        before = vfs.snapshot()
        with pytest.raises(PathConflictError), vfs.batch():
            vfs.write("/a.jsx", "a")
            vfs.create("/App.jsx", "dup")
        assert vfs.snapshot() == before
        assert not vfs.exists("/a.jsx")

    def test_restore_inside_batch_refused(self, vfs: InMemoryVFS) -> None:
        snap = vfs.snapshot()
        with pytest.raises(VFSError), vfs.batch():
            vfs.restore(snap)
