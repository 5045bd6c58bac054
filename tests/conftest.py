"""Shared test fixtures and factories."""

import logging
from pathlib import Path

import pytest
from typer.testing import CliRunner

from cinder.cli.console import console
from cinder.config.paths import ENV_VAR, get_cinder_home
from cinder.sessions import Message, SessionStore, ToolCall

# =============================================================================
# Environment Fixtures
# =============================================================================


@pytest.fixture(autouse=True)
def cinder_home(monkeypatch, tmp_path: Path) -> Path:
    """Point CINDER_HOME at a temporary directory for every test."""
    home = tmp_path / "cinder-home"
    monkeypatch.setenv(ENV_VAR, str(home))
    monkeypatch.delenv("CINDER_LOG_LEVEL", raising=False)
    # Keep ./config.toml out of the search path
    monkeypatch.chdir(tmp_path)
    get_cinder_home.cache_clear()
    yield home
    get_cinder_home.cache_clear()


@pytest.fixture
def restore_root_logger():
    """Undo configure_logging() calls made during a test."""
    root = logging.getLogger()
    handlers = root.handlers[:]
    level = root.level
    yield
    for handler in root.handlers[:]:
        if handler not in handlers:
            handler.close()
    root.handlers[:] = handlers
    root.setLevel(level)


@pytest.fixture
def cli_runner(monkeypatch, restore_root_logger) -> CliRunner:
    """Typer CLI test runner with colors disabled and a wide console."""
    # Keep rich from wrapping table cells mid-phrase
    monkeypatch.setattr(console, "width", 200)
    return CliRunner(env={"NO_COLOR": "1"})


# =============================================================================
# Session Fixtures
# =============================================================================


@pytest.fixture
def sessions_dir(cinder_home: Path) -> Path:
    """The default sessions directory under the temporary home."""
    return cinder_home / "sessions"


@pytest.fixture
def store(sessions_dir: Path) -> SessionStore:
    return SessionStore(sessions_dir)


# =============================================================================
# Message Factories
# =============================================================================


def user(content: str = "hi") -> Message:
    return Message.user(content)


def assistant(content: str = "", *call_ids: str, tool: str = "exec") -> Message:
    """Assistant message issuing one tool call per id."""
    return Message.assistant(
        content, [ToolCall(id=call_id, name=tool) for call_id in call_ids]
    )


def result(call_id: str, content: str = "ok") -> Message:
    return Message.tool_result(call_id, content)


def assert_pairing_invariant(messages: list[Message]) -> None:
    """Every non-empty call id has exactly one later result and vice versa."""
    issued: set[str] = set()
    answered: list[str] = []
    for msg in messages:
        if msg.tool_call_id:
            assert msg.tool_call_id in issued, f"orphan result {msg.tool_call_id!r}"
            answered.append(msg.tool_call_id)
        if msg.has_tool_calls:
            issued.update(tc.id for tc in msg.tool_calls if tc.id)
    assert sorted(answered) == sorted(issued), (answered, issued)
