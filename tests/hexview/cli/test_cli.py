"""Tests for the hexview CLI."""

from __future__ import annotations

import json
from pathlib import Path

import pytest
from typer.testing import CliRunner

from hexview import __version__
from hexview.cli.main import app
from hexview.kernel.config import clear_config_cache

runner = CliRunner()


@pytest.fixture(autouse=True)
def fresh_config(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    for name in (
        "HEXVIEW_CONFIG_PATH",
        "HEXVIEW_MODE",
        "HEXVIEW_PROVIDER",
        "HEXVIEW_LOG_LEVEL",
        "HEXVIEW_LOG_FORMAT",
        "HEXVIEW_LOG_FILE",
    ):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.chdir(tmp_path)
    clear_config_cache()


@pytest.fixture
def project_dir(tmp_path: Path, project_files: dict[str, str]) -> Path:
    root = tmp_path / "app"
    for path, content in project_files.items():
        target = root / path.lstrip("/")
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(content)
    (root / "node_modules" / "react").mkdir(parents=True)
    (root / "node_modules" / "react" / "index.js").write_text("ignored")
    (root / "README.md").write_text("not a module")
    return root


class TestVersion:
    def test_version_flag(self) -> None:
        result = runner.invoke(app, ["--version"])
        assert result.exit_code == 0
        assert __version__ in result.stdout


class TestBuild:
    def test_json_output(self, project_dir: Path) -> None:
        result = runner.invoke(app, ["--json", "build", str(project_dir)])
        assert result.exit_code == 0, result.output
        data = json.loads(result.stdout)
        assert data["load_order"] == ["/components/Button.jsx", "/App.jsx"]
        assert data["render"]["ok"] is True
        assert data["diagnostics"] == []

    def test_writes_preview_document(self, project_dir: Path, tmp_path: Path) -> None:
        output = tmp_path / "preview.html"
        result = runner.invoke(app, ["build", str(project_dir), "--output", str(output)])
        assert result.exit_code == 0, result.output
        html = output.read_text()
        assert '<script type="importmap">' in html
        assert "@/components/Button.jsx" in html
        assert "Rendered" in result.stdout

    def test_missing_entry_fails(self, project_dir: Path) -> None:
        result = runner.invoke(app, ["-q", "--json", "build", str(project_dir), "-e", "/main.jsx"])
        assert result.exit_code == 1
        data = json.loads(result.stdout)
        assert data["render"]["ok"] is False
        assert data["diagnostics"] == ["MissingEntryError: /main.jsx: entry module does not exist"]

    def test_missing_source(self, tmp_path: Path) -> None:
        result = runner.invoke(app, ["build", str(tmp_path / "nope")])
        assert result.exit_code != 0

    def test_bad_config(self, project_dir: Path, tmp_path: Path) -> None:
        result = runner.invoke(
            app, ["--config", str(tmp_path / "missing.toml"), "build", str(project_dir)]
        )
        assert result.exit_code == 1


class TestApply:
    def test_apply_and_save(self, project_dir: Path, tmp_path: Path) -> None:
        commands = tmp_path / "commands.yaml"
        commands.write_text(
            "commands:\n"
            "  - name: edit_file\n"
            "    args:\n"
            "      path: /App.jsx\n"
            '      old_fragment: \'label="Click me"\'\n'
            '      new_fragment: \'label="Go"\'\n'
            "  - name: create_file\n"
            "    args:\n"
            "      path: /styles.css\n"
            "      content: 'body { margin: 0; }'\n"
        )
        snapshot = tmp_path / "out" / "snapshot.json"
        result = runner.invoke(
            app, ["--json", "apply", str(project_dir), str(commands), "--save", str(snapshot)]
        )
        assert result.exit_code == 0, result.output
        data = json.loads(result.stdout)
        assert [r["ok"] for r in data["results"]] == [True, True]
        assert data["render"]["ok"] is True

        saved = json.loads(snapshot.read_text())
        assert 'label="Go"' in saved["/App.jsx"]["content"]
        assert saved["/components"]["kind"] == "directory"

    def test_apply_to_snapshot(self, project_dir: Path, tmp_path: Path) -> None:
        snapshot = tmp_path / "snapshot.json"
        noop = tmp_path / "noop.json"
        noop.write_text("[]")
        runner.invoke(app, ["apply", str(project_dir), str(noop), "--save", str(snapshot)])

        commands = tmp_path / "delete.json"
        commands.write_text(
            json.dumps([{"name": "delete_file", "args": {"path": "/components"}}])
        )
        result = runner.invoke(app, ["-q", "--json", "apply", str(snapshot), str(commands)])
        assert result.exit_code == 0, result.output
        data = json.loads(result.stdout)
        assert data["results"][0]["message"] == "Deleted /components and 1 descendant(s)"

    def test_failed_command_exit_code(self, project_dir: Path, tmp_path: Path) -> None:
        commands = tmp_path / "bad.json"
        commands.write_text(
            json.dumps(
                [{"name": "edit_file", "args": {"path": "/App.jsx", "old_fragment": "Button",
                                                "new_fragment": "Btn"}}]
            )
        )
        result = runner.invoke(app, ["--json", "apply", str(project_dir), str(commands)])
        assert result.exit_code == 1
        data = json.loads(result.stdout)
        assert data["results"][0]["ok"] is False
        assert data["results"][0]["error"] == "AmbiguousEditError"

    def test_command_file_must_be_list(self, project_dir: Path, tmp_path: Path) -> None:
        commands = tmp_path / "bad.yaml"
        commands.write_text("name: create_file\n")
        result = runner.invoke(app, ["apply", str(project_dir), str(commands)])
        assert result.exit_code == 1


class TestGraph:
    def test_json_edges_and_invalidation(self, project_dir: Path) -> None:
        result = runner.invoke(
            app, ["--json", "graph", str(project_dir), "-c", "/components/Button.jsx"]
        )
        assert result.exit_code == 0, result.output
        data = json.loads(result.stdout)
        assert data["edges"]["/App.jsx"] == ["/components/Button.jsx"]
        assert data["invalidated"] == ["/App.jsx", "/components/Button.jsx"]

    def test_tree_output(self, project_dir: Path) -> None:
        result = runner.invoke(app, ["graph", str(project_dir)])
        assert result.exit_code == 0, result.output
        assert "/App.jsx" in result.stdout
        assert "/components/Button.jsx" in result.stdout
        assert "react (external)" in result.stdout


class TestDemo:
    def test_demo_json(self, tmp_path: Path) -> None:
        save = tmp_path / "demo.json"
        result = runner.invoke(app, ["--json", "demo", "--save", str(save)])
        assert result.exit_code == 0, result.output
        data = json.loads(result.stdout)
        assert data["reason"] == "done"
        assert data["bundle"]["load_order"] == ["/components/Button.jsx", "/App.jsx"]
        assert set(json.loads(save.read_text())) == {
            "/App.jsx",
            "/components",
            "/components/Button.jsx",
        }

    def test_demo_pretty(self) -> None:
        result = runner.invoke(app, ["demo", "Make a button", "--mode", "full"])
        assert result.exit_code == 0, result.output
        assert "after 2/40 step(s)" in result.stdout
