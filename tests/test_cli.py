"""Tests for CLI commands."""

import json
from pathlib import Path

import pytest

from cinder.cli.app import app
from cinder.cli.commands.sessions import format_size, preview_content
from cinder.sessions import Message, ToolCall
from cinder.sessions.scanner import find_problems


def _write_session(sessions_dir: Path, key: str, messages: list[dict]) -> Path:
    sessions_dir.mkdir(parents=True, exist_ok=True)
    path = sessions_dir / (key.replace(":", "_") + ".json")
    path.write_text(
        json.dumps(
            {
                "key": key,
                "messages": messages,
                "created": "2026-01-01T00:00:00Z",
                "updated": "2026-01-01T00:00:00Z",
            }
        )
    )
    return path


def _orphan_call_messages() -> list[dict]:
    return [
        {"role": "user", "content": "run it"},
        {
            "role": "assistant",
            "content": "",
            "tool_calls": [{"id": "c1", "name": "exec"}],
        },
    ]


class TestHelpers:
    def test_format_size(self):
        assert format_size(512) == "512 B"
        assert format_size(2048) == "2.0 KB"
        assert format_size(3 * 1024 * 1024) == "3.0 MB"

    def test_preview_collapses_and_truncates(self):
        message = Message.user("line one\nline two " + "x" * 100)

        preview = preview_content(message)

        assert "\n" not in preview
        assert len(preview) == 80
        assert preview.endswith("...")

    def test_preview_shows_tool_calls(self):
        message = Message.assistant("", [ToolCall(id="c1", name="exec")])
        assert preview_content(message) == "(tool calls: exec)"


class TestSessionsCommand:
    """Tests for 'cinder sessions' commands."""

    def test_list_empty(self, cli_runner):
        result = cli_runner.invoke(app, ["sessions", "list"])
        assert result.exit_code == 0
        assert "No sessions found" in result.stdout

    def test_list_shows_sessions(self, cli_runner, sessions_dir):
        _write_session(sessions_dir, "tg:1", [{"role": "user", "content": "hi"}])
        (sessions_dir / "bad.json").write_text("{broken")

        result = cli_runner.invoke(app, ["sessions", "list"])

        assert result.exit_code == 0
        assert "tg:1" in result.stdout
        assert "bad" in result.stdout
        assert "(corrupt)" in result.stdout
        assert "2 session(s) found" in result.stdout

    def test_list_with_undecodable_file(self, cli_runner, sessions_dir):
        _write_session(sessions_dir, "tg:1", [{"role": "user", "content": "hi"}])
        (sessions_dir / "bad.json").write_bytes(b"\xff garbage")

        result = cli_runner.invoke(app, ["sessions", "list"])

        assert result.exit_code == 0
        assert "(corrupt)" in result.stdout
        assert "2 session(s) found" in result.stdout

    def test_list_uses_config_path(self, cli_runner, tmp_path):
        custom = tmp_path / "elsewhere"
        _write_session(custom, "custom", [])
        config = tmp_path / "custom.toml"
        config.write_text(f'[sessions]\npath = "{custom}"\n')

        result = cli_runner.invoke(app, ["sessions", "list", "--config", str(config)])

        assert result.exit_code == 0
        assert "custom" in result.stdout

    def test_list_bad_config_exits(self, cli_runner, tmp_path):
        config = tmp_path / "bad.toml"
        config.write_text("[sessions]\nmax_messages = 1\nkeep_last = 2\n")

        result = cli_runner.invoke(app, ["sessions", "list", "--config", str(config)])

        assert result.exit_code == 1
        assert "validation failed" in result.stdout

    def test_show(self, cli_runner, sessions_dir):
        _write_session(
            sessions_dir,
            "tg:1",
            [
                {"role": "user", "content": "first"},
                {"role": "assistant", "content": "second"},
                {"role": "user", "content": "third\nline"},
                {"role": "assistant", "content": "fourth"},
            ],
        )

        result = cli_runner.invoke(app, ["sessions", "show", "tg:1"])

        assert result.exit_code == 0
        assert "Session: tg:1" in result.stdout
        assert "Messages: 4" in result.stdout
        assert "Last messages:" in result.stdout
        assert "first" not in result.stdout
        assert "[user] third line" in result.stdout
        assert "[assistant] fourth" in result.stdout

    def test_show_corrupt(self, cli_runner, sessions_dir):
        sessions_dir.mkdir(parents=True)
        (sessions_dir / "bad.json").write_text("{broken")

        result = cli_runner.invoke(app, ["sessions", "show", "bad"])

        assert result.exit_code == 0
        assert "Status: corrupt (invalid JSON)" in result.stdout

    def test_show_not_found(self, cli_runner):
        result = cli_runner.invoke(app, ["sessions", "show", "ghost"])
        assert result.exit_code == 1
        assert "Session 'ghost' not found" in result.stdout

    def test_delete_with_force(self, cli_runner, sessions_dir):
        path = _write_session(sessions_dir, "tg:1", [])

        result = cli_runner.invoke(app, ["sessions", "delete", "tg:1", "--force"])

        assert result.exit_code == 0
        assert "Deleted session tg:1" in result.stdout
        assert not path.exists()

    def test_delete_declined(self, cli_runner, sessions_dir):
        path = _write_session(sessions_dir, "tg:1", [])

        result = cli_runner.invoke(app, ["sessions", "delete", "tg:1"], input="n\n")

        assert result.exit_code == 0
        assert "Cancelled" in result.stdout
        assert path.exists()

    def test_delete_not_found(self, cli_runner):
        result = cli_runner.invoke(app, ["sessions", "delete", "ghost", "--force"])
        assert result.exit_code == 1
        assert "not found" in result.stdout

    def test_clear_confirmed(self, cli_runner, sessions_dir):
        _write_session(sessions_dir, "a", [])
        _write_session(sessions_dir, "b", [])

        result = cli_runner.invoke(app, ["sessions", "clear"], input="y\n")

        assert result.exit_code == 0
        assert "Cleared 2 session(s)." in result.stdout
        assert list(sessions_dir.glob("*.json")) == []

    def test_repair(self, cli_runner, sessions_dir):
        _write_session(sessions_dir, "tg:1", _orphan_call_messages())

        result = cli_runner.invoke(app, ["sessions", "repair", "tg:1"])

        assert result.exit_code == 0
        assert "2 -> 3 messages" in result.stdout
        repaired = json.loads((sessions_dir / "tg_1.json").read_text())
        assert repaired["messages"][-1]["tool_call_id"] == "c1"
        assert [p.name for p in sessions_dir.iterdir()] == ["tg_1.json"]

    def test_repair_corrupt_fails(self, cli_runner, sessions_dir):
        sessions_dir.mkdir(parents=True)
        (sessions_dir / "bad.json").write_text("{broken")

        result = cli_runner.invoke(app, ["sessions", "repair", "bad"])

        assert result.exit_code == 1
        assert "corrupt" in result.stdout

    def test_truncate(self, cli_runner, sessions_dir):
        messages = [{"role": "user", "content": f"m{i}"} for i in range(6)]
        _write_session(sessions_dir, "tg:1", messages)

        result = cli_runner.invoke(app, ["sessions", "truncate", "tg:1", "--keep", "2"])

        assert result.exit_code == 0
        assert "6 -> 2 messages" in result.stdout
        stored = json.loads((sessions_dir / "tg_1.json").read_text())
        assert [m["content"] for m in stored["messages"]] == ["m4", "m5"]


class TestDoctorCommand:
    """Tests for 'cinder doctor'."""

    def test_clean(self, cli_runner):
        result = cli_runner.invoke(app, ["doctor"])
        assert result.exit_code == 0
        assert "Doctor checks passed" in result.stdout or "non-blocking" in result.stdout

    def test_reports_problems_without_fixing(self, cli_runner, sessions_dir):
        path = _write_session(sessions_dir, "tg:1", _orphan_call_messages())
        before = path.read_text()

        result = cli_runner.invoke(app, ["doctor"])

        assert result.exit_code == 1
        assert "orphan tool_call" in result.stdout
        assert "cinder doctor --fix" in result.stdout
        assert path.read_text() == before

    def test_fix_repairs_and_deletes(self, cli_runner, sessions_dir):
        path = _write_session(sessions_dir, "tg:1", _orphan_call_messages())
        corrupt = sessions_dir / "bad.json"
        corrupt.write_text("{broken")

        result = cli_runner.invoke(app, ["doctor", "--fix"])

        assert result.exit_code == 0
        assert "FIXED" in result.stdout
        assert not corrupt.exists()
        stored = json.loads(path.read_text())
        assert find_problems([Message.from_dict(m) for m in stored["messages"]]) == []

    @pytest.mark.parametrize(
        "messages",
        [
            [{"role": "user", "content": "a"}, {"role": "user", "content": "b"}],
            [{"role": "assistant", "content": ""}],
        ],
    )
    def test_unfixable_problems_still_fail(self, cli_runner, sessions_dir, messages):
        _write_session(sessions_dir, "tg:1", messages)

        result = cli_runner.invoke(app, ["doctor", "--fix"])

        assert result.exit_code == 1
        assert "blocking issues" in result.stdout

    def test_invalid_config_is_error(self, cli_runner, tmp_path):
        config = tmp_path / "bad.toml"
        config.write_text("not toml [[[")

        result = cli_runner.invoke(app, ["doctor", "--config", str(config)])

        assert result.exit_code == 1
        assert "config.load" in result.stdout
