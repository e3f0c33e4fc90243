import json
from pathlib import Path

from typer.testing import CliRunner

from memory_buddy.cli import app

runner = CliRunner()


def test_root_help_lists_commands() -> None:
    result = runner.invoke(app, ["--help"])
    assert result.exit_code == 0
    for command in ("init", "status", "search", "context", "remember", "end-session", "mcp"):
        assert command in result.stdout


def test_init_writes_config(tmp_path: Path) -> None:
    result = runner.invoke(app, ["init"])
    assert result.exit_code == 0
    data = json.loads((tmp_path / "config.json").read_text())
    assert data["memory_path"] == str(tmp_path / "memory")
    assert data["triggered_memories_tokens"] == 1500
    assert (tmp_path / "memory" / "events").is_dir()

    again = runner.invoke(app, ["init"])
    assert again.exit_code == 0
    assert "already present" in again.stdout


def test_status_json_on_empty_memory() -> None:
    result = runner.invoke(app, ["status", "--json"])
    assert result.exit_code == 0
    status = json.loads(result.stdout)
    assert status["eventCount"] == 0
    assert status["semanticSearch"] == "disabled"


def test_remember_search_and_context() -> None:
    stored = runner.invoke(app, ["remember", "My name is Anna and I work as a chef in Berlin"])
    assert stored.exit_code == 0
    assert "Stored evt_" in stored.stdout

    found = runner.invoke(app, ["search", "Anna"])
    assert found.exit_code == 0
    assert "chef in Berlin" in found.stdout

    context = runner.invoke(app, ["context", "Where does Anna work?"])
    assert context.exit_code == 0
    assert "## Relevant Memories" in context.stdout
    assert "## Recent Sessions" in context.stdout


def test_remember_rejects_acknowledgment() -> None:
    result = runner.invoke(app, ["remember", "ok"])
    assert result.exit_code == 1
    assert "Skipped" in result.stdout


def test_search_without_matches() -> None:
    result = runner.invoke(app, ["search", "nothing"])
    assert result.exit_code == 0
    assert "No matching memories" in result.stdout


def test_end_session_unknown() -> None:
    result = runner.invoke(app, ["end-session", "session_missing"])
    assert result.exit_code == 0
    assert "unknown or already closed" in result.stdout


def test_compact_and_reindex() -> None:
    runner.invoke(app, ["remember", "Notes about the garden shed build"])
    compacted = runner.invoke(app, ["compact"])
    assert compacted.exit_code == 0
    assert "Compacted 0 sessions" in compacted.stdout

    reindexed = runner.invoke(app, ["reindex"])
    assert reindexed.exit_code == 0
    assert "Reindexed 2 events" in reindexed.stdout

    listed = runner.invoke(app, ["compacted"])
    assert listed.exit_code == 0
    assert "No compacted sessions" in listed.stdout


def test_doctor_reports_invalid_config(tmp_path: Path) -> None:
    (tmp_path / "config.json").write_text("{broken")
    result = runner.invoke(app, ["doctor"])
    assert result.exit_code == 1
    assert "Invalid config file" in result.stdout


def test_doctor_healthy() -> None:
    runner.invoke(app, ["init"])
    result = runner.invoke(app, ["doctor"])
    assert result.exit_code == 0
    assert "keyword retrieval" in result.stdout
