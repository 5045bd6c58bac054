"""Read-only corruption scanner for session histories.

``find_problems`` classifies structural problems in a message list;
``scan_sessions`` runs it over every stored session and attaches fix actions
the caller may choose to run. Nothing here mutates a session or a file.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass
from enum import Enum

from cinder.sessions.repair import repair_tool_pairs
from cinder.sessions.store import SessionStore, is_valid_key
from cinder.sessions.types import (
    CorruptionFinding,
    CorruptSessionError,
    FixAction,
    Message,
    Role,
    ToolCall,
)

logger = logging.getLogger(__name__)

DELETE_FIX = "delete the corrupt file"
REPAIR_FIX = "repair and re-save"


class ProblemKind(str, Enum):
    EMPTY_TOOL_CALL_ID = "empty_tool_call_id"
    ORPHAN_TOOL_CALL = "orphan_tool_call"
    ORPHAN_TOOL_RESULT = "orphan_tool_result"
    EMPTY_ASSISTANT = "empty_assistant"
    CONSECUTIVE_USER = "consecutive_user"


# Problems that repair_tool_pairs resolves
REPAIRABLE_KINDS = frozenset(
    {ProblemKind.ORPHAN_TOOL_CALL, ProblemKind.ORPHAN_TOOL_RESULT}
)


@dataclass(frozen=True)
class Problem:
    kind: ProblemKind
    index: int
    message: str

    @property
    def fixable(self) -> bool:
        return self.kind in REPAIRABLE_KINDS

    def __str__(self) -> str:
        return self.message


def _display_name(call: ToolCall) -> str:
    return call.tool_name or "?"


def find_problems(messages: Sequence[Message]) -> list[Problem]:
    """Classify every structural problem in a history.

    Each check runs independently per message index; all problems are
    returned in index order.
    """
    problems: list[Problem] = []

    # Last index at which each call id is answered
    last_result_at: dict[str, int] = {}
    for i, msg in enumerate(messages):
        if msg.role == Role.TOOL and msg.tool_call_id:
            last_result_at[msg.tool_call_id] = i

    issued: set[str] = set()
    for i, msg in enumerate(messages):
        if msg.has_tool_calls:
            for call in msg.tool_calls:
                if not call.id:
                    problems.append(
                        Problem(
                            ProblemKind.EMPTY_TOOL_CALL_ID,
                            i,
                            f"message[{i}]: tool_call has empty ID "
                            f"(tool: {_display_name(call)})",
                        )
                    )
                    continue
                if last_result_at.get(call.id, -1) <= i:
                    problems.append(
                        Problem(
                            ProblemKind.ORPHAN_TOOL_CALL,
                            i,
                            f'message[{i}]: orphan tool_call "{call.id}" '
                            f"(tool: {_display_name(call)}) "
                            "- no matching tool result",
                        )
                    )

        if (
            msg.role == Role.TOOL
            and msg.tool_call_id
            and msg.tool_call_id not in issued
        ):
            problems.append(
                Problem(
                    ProblemKind.ORPHAN_TOOL_RESULT,
                    i,
                    f'message[{i}]: orphan tool_result "{msg.tool_call_id}" '
                    "- no matching tool_call",
                )
            )

        if msg.role == Role.ASSISTANT and not msg.content and not msg.tool_calls:
            problems.append(
                Problem(
                    ProblemKind.EMPTY_ASSISTANT,
                    i,
                    f"message[{i}]: assistant message with empty content "
                    "and no tool_calls",
                )
            )

        if i > 0 and msg.role == Role.USER and messages[i - 1].role == Role.USER:
            problems.append(
                Problem(
                    ProblemKind.CONSECUTIVE_USER,
                    i,
                    f"message[{i}]: consecutive user messages "
                    "(some providers reject this)",
                )
            )

        if msg.role == Role.ASSISTANT:
            issued.update(tc.id for tc in msg.tool_calls if tc.id)

    return problems


def scan_messages(messages: Sequence[Message]) -> list[str]:
    """Describe every structural problem in a history as a readable string."""
    return [problem.message for problem in find_problems(messages)]


def _delete_action(store: SessionStore, session_id: str) -> FixAction:
    async def fix() -> None:
        await store.delete(session_id)

    return fix


def _repair_action(store: SessionStore, key: str) -> FixAction:
    async def fix() -> None:
        session = await store.load(key)
        session.messages = repair_tool_pairs(session.messages)
        session.touch()
        await store.save(session)

    return fix


async def scan_sessions(store: SessionStore) -> list[CorruptionFinding]:
    """Scan every stored session and report findings.

    Corrupt files yield a single finding whose fix deletes the file.
    Structural problems yield one finding each; repairable ones carry a
    repair-and-save fix. Fixes are never applied here.
    """
    findings: list[CorruptionFinding] = []

    for entry in await store.list_sessions():
        if entry.corrupt:
            try:
                await store.read(entry.path)
            except CorruptSessionError as e:
                description = f"{entry.path.name}: invalid JSON: {e.reason}"
            except FileNotFoundError:
                continue
            else:
                # Rewritten between listing and re-reading
                continue
            findings.append(
                CorruptionFinding(
                    session_id=entry.id,
                    description=description,
                    fixable=True,
                    fix=DELETE_FIX,
                    fix_action=_delete_action(store, entry.id),
                )
            )
            continue

        try:
            session = await store.read(entry.path)
        except (CorruptSessionError, FileNotFoundError):
            # Changed between listing and re-reading; the next scan sees it
            continue
        problems = find_problems(session.messages)
        if problems:
            logger.info(
                "session_problems_found",
                extra={"session.id": entry.id, "problem_count": len(problems)},
            )

        # Repair reloads by key, so the key must be valid and map back to
        # this same file.
        can_save = (
            is_valid_key(session.key) and store.path_for(session.key) == entry.path
        )
        for problem in problems:
            fixable = problem.fixable and can_save
            findings.append(
                CorruptionFinding(
                    session_id=entry.id,
                    description=f"{entry.path.name}: {problem.message}",
                    fixable=fixable,
                    fix=REPAIR_FIX if fixable else None,
                    fix_action=(
                        _repair_action(store, session.key) if fixable else None
                    ),
                )
            )

    return findings
