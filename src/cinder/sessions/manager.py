"""Session manager: in-process cache of sessions in front of the store."""

from __future__ import annotations

import logging
from pathlib import Path

from cinder.config.paths import get_sessions_path
from cinder.sessions.repair import sanitize_history
from cinder.sessions.store import SessionStore, validate_key
from cinder.sessions.truncation import truncate_history
from cinder.sessions.types import Message, Role, Session

logger = logging.getLogger(__name__)


class SessionManager:
    """Manages session lifecycle for the agent loop.

    Sessions are loaded lazily on first access and kept in memory until
    ``forget`` is called. Mutations only touch the cached copy; ``save``
    persists it. One mutator per key at a time is the caller's job.
    """

    def __init__(
        self,
        store: SessionStore | None = None,
        sessions_path: Path | None = None,
    ) -> None:
        """Initialize session manager.

        Args:
            store: Store to load from and save to.
            sessions_path: Override sessions directory when no store is given.
        """
        self.store = store or SessionStore(sessions_path or get_sessions_path())
        self._sessions: dict[str, Session] = {}

    async def get_or_create(self, key: str) -> Session:
        """Get the cached session for ``key``, loading or creating it."""
        session = self._sessions.get(key)
        if session is None:
            session = await self.store.load(key)
            self._sessions[key] = session
        return session

    async def add_message(self, key: str, role: Role | str, content: str) -> None:
        await self.add_full_message(key, Message(role=Role(role), content=content))

    async def add_full_message(self, key: str, message: Message) -> None:
        session = await self.get_or_create(key)
        session.messages.append(message)
        session.touch()

    async def get_history(self, key: str) -> list[Message]:
        """Get a copy of the message list for ``key``."""
        session = await self.get_or_create(key)
        return list(session.messages)

    async def set_history(self, key: str, messages: list[Message]) -> None:
        session = await self.get_or_create(key)
        session.messages = list(messages)
        session.touch()

    async def history_for_provider(self, key: str) -> list[Message]:
        """Get a repaired copy of the history, ready to send to a provider.

        The cached session is left as-is.
        """
        return sanitize_history(await self.get_history(key))

    async def get_summary(self, key: str) -> str:
        session = await self.get_or_create(key)
        return session.summary

    async def set_summary(self, key: str, summary: str) -> None:
        session = await self.get_or_create(key)
        session.summary = summary
        session.touch()

    async def truncate_history(self, key: str, keep_last: int) -> int:
        """Shrink the history for ``key`` to roughly ``keep_last`` messages.

        Returns:
            Number of messages in the history afterwards.
        """
        session = await self.get_or_create(key)
        before = len(session.messages)
        session.messages = truncate_history(session.messages, keep_last)
        session.touch()
        logger.info(
            "session_truncated",
            extra={
                "session.key": key,
                "messages.before": before,
                "messages.after": len(session.messages),
            },
        )
        return len(session.messages)

    async def enforce_limit(self, key: str, max_messages: int, keep_last: int) -> bool:
        """Truncate the history once it grows past ``max_messages``.

        Returns:
            True if the history was truncated.
        """
        session = await self.get_or_create(key)
        if len(session.messages) <= max_messages:
            return False
        await self.truncate_history(key, keep_last)
        return True

    async def save(self, key: str) -> None:
        """Persist the cached session for ``key``.

        Raises:
            InvalidKeyError: If the key is unsafe, before any file access.
        """
        validate_key(key)
        session = await self.get_or_create(key)
        await self.store.save(session)

    def forget(self, key: str) -> None:
        """Drop ``key`` from the cache without touching storage."""
        self._sessions.pop(key, None)
