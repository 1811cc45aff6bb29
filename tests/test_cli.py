"""Integration tests for CLI commands."""

import logging
from pathlib import Path

import pytest
from rich.console import Console
from typer.testing import CliRunner

from conftest import APP, HEADER
from editscope_cli import __version__
from editscope_cli.cli import app
from editscope_cli.conversation import new_message
from editscope_cli.conversation_memory import update_conversation_memory
from editscope_cli.session_store import save_state

runner = CliRunner()


@pytest.fixture(autouse=True)
def wide_console(monkeypatch):
    """Keep rich from wrapping long paths in captured output."""
    monkeypatch.setattr("editscope_cli.cli.console", Console(width=200))


class TestGlobalOptions:
    """Tests for --version and --verbose."""

    def test_version(self):
        result = runner.invoke(app, ["--version"])
        assert result.exit_code == 0
        assert __version__ in result.stdout

    def test_verbose(self, manifest_path: Path, monkeypatch):
        monkeypatch.setattr(logging.root, "handlers", [])
        monkeypatch.setattr(logging.root, "level", logging.root.level)
        result = runner.invoke(app, ["--verbose", "resolve", str(manifest_path), APP, "./components/Hero"])
        assert result.exit_code == 0
        assert "Hero.jsx" in result.stdout


class TestSelectCommand:
    """Tests for 'editscope select'."""

    def test_select(self, manifest_path: Path):
        result = runner.invoke(app, ["select", str(manifest_path), "make the header background black"])
        assert result.exit_code == 0
        assert "update-style" in result.stdout
        assert HEADER in result.stdout
        assert APP in result.stdout

    def test_show_prompt(self, manifest_path: Path):
        result = runner.invoke(app, ["select", str(manifest_path), "fix the footer", "--show-prompt"])
        assert result.exit_code == 0
        assert "## Edit Intent" in result.stdout

    def test_bad_manifest(self, tmp_path: Path):
        bad = tmp_path / "manifest.json"
        bad.write_text("{not json")
        result = runner.invoke(app, ["select", str(bad), "anything"])
        assert result.exit_code != 0

    def test_missing_manifest(self):
        result = runner.invoke(app, ["select", "/nonexistent/manifest.json", "anything"])
        assert result.exit_code != 0


class TestContextAndResolve:
    """Tests for 'editscope context' and 'editscope resolve'."""

    def test_context(self, manifest_path: Path):
        result = runner.invoke(app, ["context", str(manifest_path), HEADER])
        assert result.exit_code == 0
        assert "tailwind.config.js" in result.stdout
        assert "index.css" in result.stdout

    def test_context_unknown_file(self, manifest_path: Path):
        result = runner.invoke(app, ["context", str(manifest_path), "/nope.jsx"])
        assert result.exit_code != 0

    def test_context_with_null_fields(self, tmp_path: Path):
        path = tmp_path / "manifest.json"
        path.write_text('{"files": {"/A.jsx": {"content": "x"}}, "routes": null, "entryPoint": null, '
                        '"componentTree": {"A": {"file": "/A.jsx", "imports": null}}}')
        result = runner.invoke(app, ["context", str(path), "/A.jsx"])
        assert result.exit_code == 0

    def test_resolve(self, manifest_path: Path):
        result = runner.invoke(app, ["resolve", str(manifest_path), APP, "./components/Header"])
        assert result.exit_code == 0
        assert result.stdout.strip().splitlines()[-1] == HEADER

    def test_resolve_unresolved(self, manifest_path: Path):
        result = runner.invoke(app, ["resolve", str(manifest_path), APP, "./Missing"])
        assert result.exit_code == 1
        assert "Unresolved" in result.stdout


class TestSearchCommand:
    """Tests for 'editscope search'."""

    def test_search_selects_target(self, manifest_path: Path, search_plan_path: Path):
        result = runner.invoke(app, ["search", str(manifest_path), str(search_plan_path)])
        assert result.exit_code == 0
        assert "bg-blue-500" in result.stdout
        assert f"{HEADER}:5" in result.stdout
        assert "Target:" in result.stdout

    def test_broad_edit_type_has_no_target(self, manifest_path: Path, search_plan_path: Path):
        result = runner.invoke(app, ["search", str(manifest_path), str(search_plan_path), "-t", "add-feature"])
        assert result.exit_code == 0
        assert "No single target for add-feature" in result.stdout

    def test_unknown_edit_type(self, manifest_path: Path, search_plan_path: Path):
        result = runner.invoke(app, ["search", str(manifest_path), str(search_plan_path), "-t", "paint"])
        assert result.exit_code != 0

    def test_malformed_plan(self, manifest_path: Path, tmp_path: Path):
        plan = tmp_path / "plan.json"
        plan.write_text('{"editType": "FIX_ISSUE", "searchTerms": {"term": "x"}}')
        result = runner.invoke(app, ["search", str(manifest_path), str(plan)])
        assert result.exit_code == 2

    def test_infinite_expected_matches(self, manifest_path: Path, tmp_path: Path):
        plan = tmp_path / "plan.json"
        plan.write_text('{"editType": "UPDATE_STYLE", "searchTerms": ["bg-blue-500"], "expectedMatches": Infinity}')
        result = runner.invoke(app, ["search", str(manifest_path), str(plan)])
        assert result.exit_code == 0
        assert "Target:" in result.stdout

    def test_no_matches(self, manifest_path: Path, tmp_path: Path):
        plan = tmp_path / "plan.json"
        plan.write_text('{"editType": "FIX_ISSUE", "searchTerms": ["does-not-exist"]}')
        result = runner.invoke(app, ["search", str(manifest_path), str(plan)])
        assert result.exit_code == 0
        assert "No matches" in result.stdout


class TestMemoryCommand:
    """Tests for 'editscope memory'."""

    def test_memory_digest(self, state, ai_result, tmp_path: Path):
        update_conversation_memory(state, new_message("user", "add a pricing section"), ai_result)
        path = tmp_path / "state.json"
        save_state(state, path)

        result = runner.invoke(app, ["memory", str(path)])
        assert result.exit_code == 0
        assert "CONVERSATION MEMORY" in result.stdout
        assert "add a pricing section" in result.stdout

    def test_memory_too_short(self, state, tmp_path: Path):
        path = tmp_path / "state.json"
        save_state(state, path)
        result = runner.invoke(app, ["memory", str(path)])
        assert result.exit_code == 0
        assert "Not enough conversation history" in result.stdout

    def test_memory_invalid_state(self, tmp_path: Path):
        path = tmp_path / "state.json"
        path.write_text('{"messages": []}')
        result = runner.invoke(app, ["memory", str(path)])
        assert result.exit_code != 0


class TestLimitsCommands:
    """Tests for show-limits, set-limit and unset-limits."""

    def test_show_limits(self, temp_config):
        result = runner.invoke(app, ["show-limits"])
        assert result.exit_code == 0
        assert "max_messages" in result.stdout

    def test_set_and_unset(self, temp_config):
        result = runner.invoke(app, ["set-limit", "memory", "max_messages", "30"])
        assert result.exit_code == 0
        assert "memory.max_messages = 30" in result.stdout
        assert "max_messages = 30" in temp_config.read_text()

        result = runner.invoke(app, ["set-limit", "search", "code_extensions", ".tsx, .jsx"])
        assert result.exit_code == 0
        assert '".tsx"' in temp_config.read_text()

        result = runner.invoke(app, ["unset-limits", "memory"])
        assert result.exit_code == 0
        assert "max_messages" not in temp_config.read_text()

    @pytest.mark.parametrize("args", [
        ["set-limit", "llm", "model", "x"],
        ["set-limit", "memory", "nope", "1"],
        ["set-limit", "memory", "max_messages", "many"],
        ["unset-limits", "llm"],
    ])
    def test_invalid_arguments(self, temp_config, args):
        result = runner.invoke(app, args)
        assert result.exit_code != 0
