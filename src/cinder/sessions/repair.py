"""Tool call / tool result pairing repair.

Providers reject histories where a tool call has no result or a result has
no call. Histories get into that shape through crashes mid-turn, hand-edited
session files and truncation. ``repair_tool_pairs`` restores the pairing:

1. Tool results whose call id was not issued by an earlier assistant message
   are dropped, as are repeat results for an already-answered call.
2. Calls that never received a result get a synthetic placeholder result,
   inserted right after the run of tool messages that follows the call.

Calls with an empty id cannot be matched and are left for the scanner to
report.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from enum import Enum

from cinder.sessions.types import Message, Role, ToolCall

logger = logging.getLogger(__name__)

SYNTHETIC_RESULT_CONTENT = "[tool result unavailable - session history was compressed]"


class RepairAction(str, Enum):
    DROP_ORPHAN_RESULT = "drop_orphan_result"
    DROP_DUPLICATE_RESULT = "drop_duplicate_result"
    INJECT_SYNTHETIC_RESULT = "inject_synthetic_result"


@dataclass(frozen=True)
class RepairEvent:
    """A single drop or injection decision made during repair."""

    action: RepairAction
    tool_call_id: str
    index: int | None = None  # Position in the input, for drops
    tool_name: str | None = None  # Resolved tool name, for injections


RepairObserver = Callable[[RepairEvent], None]


def log_repair_event(event: RepairEvent) -> None:
    """Default observer: record each repair decision at DEBUG."""
    logger.debug(
        "tool_pair_repair",
        extra={
            "repair.action": event.action.value,
            "tool.call_id": event.tool_call_id,
            "tool.name": event.tool_name,
            "message.index": event.index,
        },
    )


def _synthetic_result(call: ToolCall) -> Message:
    return Message.tool_result(call.id, SYNTHETIC_RESULT_CONTENT)


def repair_tool_pairs(
    messages: Sequence[Message],
    observer: RepairObserver | None = None,
) -> list[Message]:
    """Restore the tool call / tool result pairing invariant.

    Pure and deterministic: the input is never mutated and the same input
    always yields the same output. Never raises.

    Args:
        messages: Conversation history in order.
        observer: Called once per drop or injection. Defaults to logging.

    Returns:
        A new list where every call with a non-empty id has exactly one later
        result and every result answers an earlier call.
    """
    if not messages:
        return []

    notify = observer or log_repair_event

    # Pass 1: drop results that answer nothing issued so far, or were
    # already answered.
    issued: set[str] = set()
    answered: set[str] = set()
    filtered: list[Message] = []
    for i, msg in enumerate(messages):
        if msg.role == Role.ASSISTANT:
            issued.update(tc.id for tc in msg.tool_calls if tc.id)
        elif msg.role == Role.TOOL and msg.tool_call_id:
            if msg.tool_call_id not in issued:
                notify(
                    RepairEvent(RepairAction.DROP_ORPHAN_RESULT, msg.tool_call_id, i)
                )
                continue
            if msg.tool_call_id in answered:
                notify(
                    RepairEvent(
                        RepairAction.DROP_DUPLICATE_RESULT, msg.tool_call_id, i
                    )
                )
                continue
            answered.add(msg.tool_call_id)
        filtered.append(msg)

    # Pass 2: flush synthetic results for unanswered calls once the run of
    # tool messages following their assistant message ends.
    repaired: list[Message] = []
    pending: list[ToolCall] = []

    def flush_pending() -> None:
        for call in pending:
            if not call.id or call.id in answered:
                continue
            notify(
                RepairEvent(
                    RepairAction.INJECT_SYNTHETIC_RESULT,
                    call.id,
                    tool_name=call.tool_name,
                )
            )
            repaired.append(_synthetic_result(call))
            answered.add(call.id)
        pending.clear()

    for msg in filtered:
        if msg.role != Role.TOOL:
            flush_pending()
        repaired.append(msg)
        if msg.has_tool_calls:
            pending.extend(msg.tool_calls)

    flush_pending()
    return repaired


def sanitize_history(
    messages: Sequence[Message],
    observer: RepairObserver | None = None,
) -> list[Message]:
    """Prepare a history for a provider call.

    Called immediately before any message sequence goes to a provider.
    """
    return repair_tool_pairs(messages, observer)
