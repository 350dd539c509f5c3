"""Tests for the llm-grid command line."""

import json

from typer.testing import CliRunner

from llm_grid import __version__
from llm_grid.cli.commands import app

runner = CliRunner()


def _state(tmp_path, **data):
    path = tmp_path / "state.json"
    path.write_text(json.dumps(data))
    return path


def test_version() -> None:
    result = runner.invoke(app, ["--version"])
    assert result.exit_code == 0
    assert __version__ in result.stdout


def test_layout_prints_grid() -> None:
    result = runner.invoke(app, ["layout", "5", "--width", "900", "--height", "600"])

    assert result.exit_code == 0
    assert "3 column(s) x 2 row(s)" in result.stdout
    assert "control" in result.stdout
    assert "300" in result.stdout


def test_history_list_and_show(tmp_path) -> None:
    state = _state(
        tmp_path,
        conversations=[{
            "id": "conv_1",
            "rootPrompt": "Compare sorting algorithms",
            "createdAt": 1_700_000_000_000,
            "lastUpdated": 1_700_000_000_000,
            "linksByProvider": {"claude": ["https://claude.ai/chat/9"]},
            "messages": [{"id": "msg_1", "prompt": "Compare sorting algorithms", "createdAt": 1_700_000_000_000}],
        }],
        activeConversationId="conv_1",
    )

    listed = runner.invoke(app, ["history", "list", "--state", str(state)])
    shown = runner.invoke(app, ["history", "show", "conv_1", "--state", str(state)])
    missing = runner.invoke(app, ["history", "show", "conv_2", "--state", str(state)])

    assert listed.exit_code == 0 and "conv_1" in listed.stdout
    assert shown.exit_code == 0
    assert "https://claude.ai/chat/9" in shown.stdout
    assert missing.exit_code == 1


def test_history_empty(tmp_path) -> None:
    result = runner.invoke(app, ["history", "list", "--state", str(tmp_path / "state.json")])
    assert result.exit_code == 0
    assert "No conversations yet" in result.stdout


def test_history_delete_and_new(tmp_path) -> None:
    state = _state(
        tmp_path,
        conversations=[{"id": "conv_1", "rootPrompt": "x", "createdAt": 1, "lastUpdated": 1}],
        activeConversationId="conv_1",
    )

    deleted = runner.invoke(app, ["history", "delete", "conv_1", "--yes", "--state", str(state)])
    again = runner.invoke(app, ["history", "delete", "conv_1", "--yes", "--state", str(state)])
    fresh = runner.invoke(app, ["history", "new", "--state", str(state)])

    assert deleted.exit_code == 0
    assert again.exit_code == 1
    assert fresh.exit_code == 0
    data = json.loads(state.read_text())
    assert data["conversations"] == []
    assert data["activeConversationId"] is None


def test_settings_set_normalises(tmp_path) -> None:
    state = tmp_path / "state.json"

    result = runner.invoke(app, [
        "settings", "set",
        "--providers", "Grok, claude, bogus",
        "--theme", "neon",
        "--history-limit", "10",
        "--state", str(state),
    ])
    shown = runner.invoke(app, ["settings", "show", "--state", str(state)])

    assert result.exit_code == 0
    assert json.loads(state.read_text())["settings"] == {
        "historyLimit": 10,
        "defaultProviders": ["claude", "grok"],
        "theme": "system",
    }
    assert "defaultProviders: claude, grok" in shown.stdout


def test_demo_runs_against_memory_host() -> None:
    result = runner.invoke(app, ["demo", "Hello there", "--providers", "chatgpt,claude"])

    assert result.exit_code == 0, result.stdout
    assert "2/2 delivered" in result.stdout
    assert "/c/demo-" in result.stdout
