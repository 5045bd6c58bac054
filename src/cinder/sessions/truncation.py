"""Size-based history truncation that keeps tool groups intact."""

from __future__ import annotations

import logging
from collections.abc import Sequence

from cinder.sessions.repair import RepairObserver, repair_tool_pairs
from cinder.sessions.types import Message, Role

logger = logging.getLogger(__name__)


def find_group_start(messages: Sequence[Message], index: int) -> int:
    """Move a cut point back so it does not land inside a tool group.

    A tool group is an assistant message with tool calls followed by its run
    of tool result messages. If ``index`` points into the result run, the
    boundary moves back to the owning assistant message. If the run has no
    owning assistant (orphan results), the boundary stays put and repair
    drops the orphans.
    """
    start = index
    while start > 0 and messages[start].role == Role.TOOL:
        start -= 1
    if start < index and messages[start].has_tool_calls:
        return start
    return index


def truncate_history(
    messages: Sequence[Message],
    keep_last: int,
    observer: RepairObserver | None = None,
) -> list[Message]:
    """Keep roughly the last ``keep_last`` messages without splitting tool groups.

    The result can be longer than ``keep_last``: a group straddling the cut
    is kept whole, and repair may add placeholder results for calls whose
    results lived further back.

    Args:
        messages: Conversation history in order.
        keep_last: Target number of messages to retain.
        observer: Passed through to the final repair pass.

    Returns:
        A new list satisfying the tool pairing invariant.
    """
    if keep_last <= 0:
        return []
    if len(messages) <= keep_last:
        return list(messages)

    naive_start = len(messages) - keep_last
    start = find_group_start(messages, naive_start)
    if start != naive_start:
        logger.debug(
            "truncation_boundary_snapped",
            extra={"truncate.naive_start": naive_start, "truncate.start": start},
        )

    return repair_tool_pairs(messages[start:], observer)
