"""JSON file store for sessions.

Each session lives in ``<sessions_dir>/<sanitized-key>.json``. The filename
is the key with every ``:`` replaced by ``_``. That mapping is one-way: two
keys differing only in ``:`` versus ``_`` share a file, and lookups by id
match on the key stored inside each file before guessing filenames.
"""

from __future__ import annotations

import json
import logging
import tempfile
from datetime import UTC, datetime
from pathlib import Path

import aiofiles

from cinder.sessions.types import (
    CorruptSessionError,
    InvalidKeyError,
    Session,
    SessionEntry,
    SessionNotFoundError,
)

logger = logging.getLogger(__name__)

SESSION_SUFFIX = ".json"


def validate_key(key: str) -> None:
    """Reject keys that could escape the sessions directory.

    Raises:
        InvalidKeyError: For empty, ``.``, ``..`` or separator-bearing keys.
    """
    if key in ("", ".", "..") or "/" in key or "\\" in key:
        raise InvalidKeyError(key)


def is_valid_key(key: str) -> bool:
    try:
        validate_key(key)
    except InvalidKeyError:
        return False
    return True


def session_filename(key: str) -> str:
    return key.replace(":", "_") + SESSION_SUFFIX


class SessionStore:
    """Durable per-key session persistence.

    Single writer per key is assumed; nothing here locks. Filesystem errors
    propagate, parse errors become data (fresh sessions, corrupt entries).
    """

    def __init__(self, sessions_dir: Path) -> None:
        self.sessions_dir = sessions_dir

    def path_for(self, key: str) -> Path:
        """Get the file path for a key. Does not validate the key."""
        return self.sessions_dir / session_filename(key)

    async def read(self, path: Path) -> Session:
        """Parse a session file.

        Raises:
            CorruptSessionError: If the file is not a valid session object.
            OSError: If the file cannot be read.
        """
        try:
            async with aiofiles.open(path, encoding="utf-8") as f:
                raw = await f.read()
            data = json.loads(raw)
            if not isinstance(data, dict):
                raise TypeError(f"expected object, got {type(data).__name__}")
            return Session.from_dict(data)
        except (
            json.JSONDecodeError,
            UnicodeDecodeError,
            KeyError,
            TypeError,
            ValueError,
            AttributeError,
        ) as e:
            raise CorruptSessionError(path, str(e)) from e

    async def load(self, key: str) -> Session:
        """Load the session for ``key``, or a fresh one if none is stored.

        Corrupt files are not fatal: a warning is logged and an empty session
        is returned. Use ``list_sessions`` or the scanner to see corruption.
        """
        if not is_valid_key(key):
            return Session.create(key)

        path = self.path_for(key)
        if not path.exists():
            return Session.create(key)

        try:
            session = await self.read(path)
        except CorruptSessionError as e:
            logger.warning(
                "session_load_corrupt",
                extra={
                    "session.key": key,
                    "file": str(path),
                    "error.message": e.reason,
                },
            )
            return Session.create(key)

        if session.key != key:
            # Shared filename after sanitization, or a hand-edited key
            logger.warning(
                "session_key_mismatch",
                extra={"session.key": key, "stored_key": session.key},
            )
            session.key = key
        return session

    async def save(self, session: Session) -> None:
        """Write the whole session file, replacing any previous version.

        Raises:
            InvalidKeyError: Checked before any filesystem access.
        """
        validate_key(session.key)

        self.sessions_dir.mkdir(parents=True, exist_ok=True)
        path = self.path_for(session.key)
        payload = json.dumps(session.to_dict(), ensure_ascii=False, indent=2)

        temp_fd, temp_path = tempfile.mkstemp(
            dir=self.sessions_dir,
            prefix=f".{path.stem}_",
            suffix=".tmp",
        )
        try:
            async with aiofiles.open(temp_fd, "w", encoding="utf-8") as f:
                await f.write(payload)
            Path(temp_path).replace(path)
        except Exception:
            Path(temp_path).unlink(missing_ok=True)
            raise

        logger.debug(
            "session_saved",
            extra={"session.key": session.key, "message_count": len(session.messages)},
        )

    def _session_files(self) -> list[Path]:
        if not self.sessions_dir.is_dir():
            return []
        return sorted(
            p
            for p in self.sessions_dir.iterdir()
            if p.is_file() and p.suffix == SESSION_SUFFIX
        )

    async def list_sessions(self) -> list[SessionEntry]:
        """Enumerate stored sessions, most recently modified first.

        Files that fail to parse are listed with ``corrupt=True`` and an id
        taken from the filename. No file is modified.
        """
        entries: list[SessionEntry] = []
        for path in self._session_files():
            try:
                stat = path.stat()
            except FileNotFoundError:
                continue  # Deleted between listing and stat
            modified = datetime.fromtimestamp(stat.st_mtime, UTC)

            try:
                session = await self.read(path)
            except CorruptSessionError:
                entries.append(
                    SessionEntry(
                        id=path.stem,
                        path=path,
                        message_count=0,
                        modified=modified,
                        size=stat.st_size,
                        corrupt=True,
                    )
                )
                continue

            entries.append(
                SessionEntry(
                    id=session.key or path.stem,
                    path=path,
                    message_count=len(session.messages),
                    modified=modified,
                    size=stat.st_size,
                )
            )

        entries.sort(key=lambda e: e.modified, reverse=True)
        return entries

    async def find_by_id(self, session_id: str) -> Path | None:
        """Resolve a session id to its file.

        Matches the key stored inside each file first (corrupt files match by
        filename), then falls back to ``id + ".json"`` and the sanitized
        filename.
        """
        for path in self._session_files():
            try:
                session = await self.read(path)
            except CorruptSessionError:
                if path.stem == session_id:
                    return path
                continue
            if session.key == session_id:
                return path

        if not is_valid_key(session_id):
            return None

        for candidate in (
            self.sessions_dir / f"{session_id}{SESSION_SUFFIX}",
            self.path_for(session_id),
        ):
            if candidate.is_file():
                return candidate
        return None

    async def inspect(self, session_id: str) -> tuple[SessionEntry, Session | None]:
        """Get display metadata and contents for one stored session.

        Returns:
            The entry and the parsed session, or ``None`` for a corrupt file.

        Raises:
            SessionNotFoundError: If no file resolves from the id.
        """
        path = await self.find_by_id(session_id)
        if path is None:
            raise SessionNotFoundError(session_id)

        stat = path.stat()
        try:
            session: Session | None = await self.read(path)
        except CorruptSessionError:
            session = None

        entry = SessionEntry(
            id=session.key if session and session.key else path.stem,
            path=path,
            message_count=len(session.messages) if session else 0,
            modified=datetime.fromtimestamp(stat.st_mtime, UTC),
            size=stat.st_size,
            corrupt=session is None,
        )
        return entry, session

    async def delete(self, session_id: str) -> Path:
        """Delete the stored session for ``session_id``.

        Returns:
            The path that was removed.

        Raises:
            SessionNotFoundError: If no file resolves from the id.
        """
        path = await self.find_by_id(session_id)
        if path is None:
            raise SessionNotFoundError(session_id)
        path.unlink()
        logger.info("session_deleted", extra={"session.id": session_id})
        return path

    async def clear(self) -> int:
        """Delete every stored session file.

        Returns:
            Number of files deleted.
        """
        deleted = 0
        for entry in await self.list_sessions():
            try:
                entry.path.unlink()
            except FileNotFoundError:
                continue
            deleted += 1
        logger.info("sessions_cleared", extra={"count": deleted})
        return deleted
