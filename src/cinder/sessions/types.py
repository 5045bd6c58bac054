"""Message, session and error types for JSON session storage."""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from pathlib import Path
from typing import Any


def now_utc() -> datetime:
    return datetime.now(UTC)


def _parse_datetime(value: str | datetime | None) -> datetime:
    if value is None or value == "":
        return now_utc()
    if isinstance(value, datetime):
        return value
    # RFC 3339 timestamps may use a trailing Z
    if value.endswith("Z"):
        value = value[:-1] + "+00:00"
    return datetime.fromisoformat(value)


class SessionError(Exception):
    """Base class for session errors."""


class InvalidKeyError(SessionError, ValueError):
    """Session key is unsafe to use as a filename."""

    def __init__(self, key: str) -> None:
        super().__init__(f"Invalid session key: {key!r}")
        self.key = key


class SessionNotFoundError(SessionError, LookupError):
    """No stored session matches the requested id."""

    def __init__(self, session_id: str) -> None:
        super().__init__(f"Session '{session_id}' not found")
        self.session_id = session_id


class CorruptSessionError(SessionError, ValueError):
    """Stored session file could not be parsed."""

    def __init__(self, path: Path, reason: str) -> None:
        super().__init__(f"{path.name}: invalid JSON: {reason}")
        self.path = path
        self.reason = reason


class Role(str, Enum):
    """Message role."""

    USER = "user"
    ASSISTANT = "assistant"
    TOOL = "tool"
    SYSTEM = "system"


@dataclass
class ToolFunction:
    """Nested function descriptor used by OpenAI-style payloads."""

    name: str
    arguments: str = ""

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {"name": self.name}
        if self.arguments:
            result["arguments"] = self.arguments
        return result

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ToolFunction:
        return cls(name=data.get("name") or "", arguments=data.get("arguments") or "")


@dataclass
class ToolCall:
    """Tool invocation requested by the assistant."""

    id: str
    name: str = ""
    function: ToolFunction | None = None
    arguments: dict[str, Any] | None = None

    @property
    def tool_name(self) -> str:
        """Resolve the tool identifier: direct name first, then function name."""
        if self.name:
            return self.name
        if self.function is not None:
            return self.function.name
        return ""

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {"id": self.id, "name": self.name}
        if self.function is not None:
            result["function"] = self.function.to_dict()
        if self.arguments:
            result["arguments"] = self.arguments
        return result

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ToolCall:
        function = data.get("function")
        return cls(
            id=data.get("id") or "",
            name=data.get("name") or "",
            function=ToolFunction.from_dict(function)
            if isinstance(function, dict)
            else None,
            arguments=data.get("arguments") or None,
        )


@dataclass
class Message:
    """One turn in a conversation."""

    role: Role
    content: str = ""
    tool_calls: list[ToolCall] = field(default_factory=list)
    tool_call_id: str = ""

    @property
    def has_tool_calls(self) -> bool:
        return self.role == Role.ASSISTANT and bool(self.tool_calls)

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {"role": self.role.value, "content": self.content}
        if self.tool_calls:
            result["tool_calls"] = [tc.to_dict() for tc in self.tool_calls]
        if self.tool_call_id:
            result["tool_call_id"] = self.tool_call_id
        return result

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Message:
        return cls(
            role=Role(data["role"]),
            content=data.get("content") or "",
            tool_calls=[ToolCall.from_dict(tc) for tc in data.get("tool_calls") or []],
            tool_call_id=data.get("tool_call_id") or "",
        )

    @classmethod
    def user(cls, content: str) -> Message:
        return cls(role=Role.USER, content=content)

    @classmethod
    def system(cls, content: str) -> Message:
        return cls(role=Role.SYSTEM, content=content)

    @classmethod
    def assistant(
        cls, content: str = "", tool_calls: list[ToolCall] | None = None
    ) -> Message:
        return cls(role=Role.ASSISTANT, content=content, tool_calls=tool_calls or [])

    @classmethod
    def tool_result(cls, tool_call_id: str, content: str) -> Message:
        return cls(role=Role.TOOL, content=content, tool_call_id=tool_call_id)


@dataclass
class Session:
    """Full persisted message history for one conversation key."""

    key: str
    messages: list[Message] = field(default_factory=list)
    summary: str = ""
    created: datetime = field(default_factory=now_utc)
    updated: datetime = field(default_factory=now_utc)

    def touch(self) -> None:
        self.updated = now_utc()

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {
            "key": self.key,
            "messages": [m.to_dict() for m in self.messages],
            "created": self.created.isoformat(),
            "updated": self.updated.isoformat(),
        }
        if self.summary:
            result["summary"] = self.summary
        return result

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Session:
        return cls(
            key=data.get("key") or "",
            messages=[Message.from_dict(m) for m in data.get("messages") or []],
            summary=data.get("summary") or "",
            created=_parse_datetime(data.get("created")),
            updated=_parse_datetime(data.get("updated")),
        )

    @classmethod
    def create(cls, key: str) -> Session:
        return cls(key=key)


@dataclass
class SessionEntry:
    """Display metadata for one stored session file."""

    id: str
    path: Path
    message_count: int
    modified: datetime
    size: int
    corrupt: bool = False


FixAction = Callable[[], Awaitable[None]]


@dataclass
class CorruptionFinding:
    """A problem found in a stored session, with an optional fix.

    The fix is never applied by the scanner; callers invoke ``fix_action``
    explicitly.
    """

    session_id: str
    description: str
    fixable: bool = False
    fix: str | None = None
    fix_action: FixAction | None = field(default=None, repr=False)
