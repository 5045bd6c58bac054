"""JSON-file session persistence with tool pairing repair.

This module provides:
- types: messages, tool calls, sessions and session errors
- repair: restore the tool call / tool result pairing before provider calls
- truncation: shrink long histories without splitting tool groups
- store: one JSON file per session under ~/.cinder/sessions/
- scanner: read-only corruption findings with optional fix actions
"""

from cinder.sessions.manager import SessionManager
from cinder.sessions.repair import (
    SYNTHETIC_RESULT_CONTENT,
    RepairAction,
    RepairEvent,
    repair_tool_pairs,
    sanitize_history,
)
from cinder.sessions.scanner import (
    Problem,
    ProblemKind,
    find_problems,
    scan_messages,
    scan_sessions,
)
from cinder.sessions.store import SessionStore, session_filename, validate_key
from cinder.sessions.truncation import truncate_history
from cinder.sessions.types import (
    CorruptionFinding,
    CorruptSessionError,
    InvalidKeyError,
    Message,
    Role,
    Session,
    SessionEntry,
    SessionError,
    SessionNotFoundError,
    ToolCall,
    ToolFunction,
)

__all__ = [
    "SYNTHETIC_RESULT_CONTENT",
    "CorruptSessionError",
    "CorruptionFinding",
    "InvalidKeyError",
    "Message",
    "Problem",
    "ProblemKind",
    "RepairAction",
    "RepairEvent",
    "Role",
    "Session",
    "SessionEntry",
    "SessionError",
    "SessionManager",
    "SessionNotFoundError",
    "SessionStore",
    "ToolCall",
    "ToolFunction",
    "find_problems",
    "repair_tool_pairs",
    "sanitize_history",
    "scan_messages",
    "scan_sessions",
    "session_filename",
    "truncate_history",
    "validate_key",
]
