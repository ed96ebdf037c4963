"""
Session store for conversation state.

Sessions expire after a fixed inactivity window. Expiry is checked lazily
on every read; :meth:`SessionStore.purge_expired` is the periodic safety
net. Writes carry an optimistic version check so a stale copy of a session
can never overwrite a newer one.
"""

import asyncio
import sqlite3
from abc import ABC, abstractmethod
from datetime import datetime, timedelta, timezone
from typing import Callable, Dict, List, Optional

from pydantic import ValidationError

from ...core.exceptions import SessionStoreError
from ...core.models import ConversationState
from ...utils.logging import get_logger

logger = get_logger("clinic.sessions")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class SessionStore(ABC):
    """Key-value store of ConversationState keyed by session id."""

    def __init__(self, ttl_seconds: int = 1800, clock: Optional[Callable[[], datetime]] = None):
        self.ttl = timedelta(seconds=ttl_seconds)
        self.clock = clock or _utcnow

    def is_expired(self, state: ConversationState, now: Optional[datetime] = None) -> bool:
        now = now or self.clock()
        return now - state.last_activity > self.ttl

    async def get(self, session_id: str) -> Optional[ConversationState]:
        """Load a live session; expired sessions are deleted and reported missing."""
        state = await self._read(session_id)
        if state is None:
            return None
        if self.is_expired(state):
            logger.info(f"sessions: {session_id} expired after inactivity")
            await self.delete(session_id)
            return None
        return state

    async def save(self, state: ConversationState) -> ConversationState:
        """Persist ``state``, bumping its version and activity timestamp."""
        expected = state.version
        state.last_activity = self.clock()
        state.version = expected + 1
        try:
            await self._write(state, expected)
        except SessionStoreError:
            state.version = expected
            raise
        return state

    @abstractmethod
    async def _read(self, session_id: str) -> Optional[ConversationState]:
        ...

    @abstractmethod
    async def _write(self, state: ConversationState, expected_version: int) -> None:
        """Store ``state`` if the stored version equals ``expected_version`` (or no row exists)."""

    @abstractmethod
    async def delete(self, session_id: str) -> None:
        ...

    @abstractmethod
    async def purge_expired(self) -> int:
        """Delete every expired session; returns how many were removed."""


class InMemorySessionStore(SessionStore):
    """Process-local store; sessions are kept as serialized JSON."""

    def __init__(self, ttl_seconds: int = 1800, clock: Optional[Callable[[], datetime]] = None):
        super().__init__(ttl_seconds, clock)
        self._data: Dict[str, str] = {}
        self._versions: Dict[str, int] = {}
        self._lock = asyncio.Lock()

    async def _read(self, session_id: str) -> Optional[ConversationState]:
        payload = self._data.get(session_id)
        if payload is None:
            return None
        return ConversationState.model_validate_json(payload)

    async def _write(self, state: ConversationState, expected_version: int) -> None:
        async with self._lock:
            current = self._versions.get(state.session_id)
            if current is not None and current != expected_version:
                raise SessionStoreError(
                    f"session {state.session_id} changed concurrently "
                    f"(stored v{current}, expected v{expected_version})"
                )
            self._data[state.session_id] = state.model_dump_json()
            self._versions[state.session_id] = state.version

    async def delete(self, session_id: str) -> None:
        async with self._lock:
            self._data.pop(session_id, None)
            self._versions.pop(session_id, None)

    async def purge_expired(self) -> int:
        now = self.clock()
        expired: List[str] = []
        for session_id in list(self._data):
            state = await self._read(session_id)
            if state is not None and self.is_expired(state, now):
                expired.append(session_id)
        for session_id in expired:
            await self.delete(session_id)
        return len(expired)


class SQLiteSessionStore(SessionStore):
    """Manages persistent conversation state using SQLite."""

    def __init__(
        self,
        db_path: str,
        ttl_seconds: int = 1800,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        super().__init__(ttl_seconds, clock)
        self.db_path = db_path
        self._lock = asyncio.Lock()
        self._ready = False

    async def _ensure_table(self) -> None:
        """Ensure the state table exists."""
        if self._ready:
            return

        def _create_table():
            conn = sqlite3.connect(self.db_path)
            try:
                conn.execute(
                    """
                    CREATE TABLE IF NOT EXISTS conversation_state (
                        session_id TEXT PRIMARY KEY,
                        state TEXT NOT NULL,
                        version INTEGER NOT NULL,
                        last_activity TEXT NOT NULL
                    )
                    """
                )
                conn.commit()
            finally:
                conn.close()

        await asyncio.to_thread(_create_table)
        self._ready = True

    async def _read(self, session_id: str) -> Optional[ConversationState]:
        await self._ensure_table()

        async with self._lock:
            def _fetch() -> Optional[str]:
                conn = sqlite3.connect(self.db_path)
                try:
                    cur = conn.execute(
                        "SELECT state FROM conversation_state WHERE session_id = ?", (session_id,)
                    )
                    row = cur.fetchone()
                finally:
                    conn.close()
                return row[0] if row else None

            payload = await asyncio.to_thread(_fetch)

        if payload is None:
            return None
        try:
            return ConversationState.model_validate_json(payload)
        except ValidationError as e:
            logger.error(f"sessions: discarding unreadable state for {session_id}: {e}")
            await self.delete(session_id)
            return None

    async def _write(self, state: ConversationState, expected_version: int) -> None:
        await self._ensure_table()
        payload = state.model_dump_json()
        last_activity = state.last_activity.astimezone(timezone.utc).isoformat()

        async with self._lock:
            def _write_row() -> int:
                conn = sqlite3.connect(self.db_path)
                try:
                    cur = conn.execute(
                        "UPDATE conversation_state SET state = ?, version = ?, last_activity = ? "
                        "WHERE session_id = ? AND version = ?",
                        (payload, state.version, last_activity, state.session_id, expected_version),
                    )
                    if cur.rowcount == 0:
                        cur = conn.execute(
                            "INSERT OR IGNORE INTO conversation_state "
                            "(session_id, state, version, last_activity) VALUES (?, ?, ?, ?)",
                            (state.session_id, payload, state.version, last_activity),
                        )
                    conn.commit()
                    return cur.rowcount
                finally:
                    conn.close()

            written = await asyncio.to_thread(_write_row)

        if written == 0:
            raise SessionStoreError(f"session {state.session_id} changed concurrently")

    async def delete(self, session_id: str) -> None:
        """Remove stored state."""
        await self._ensure_table()

        async with self._lock:
            def _delete() -> None:
                conn = sqlite3.connect(self.db_path)
                try:
                    conn.execute(
                        "DELETE FROM conversation_state WHERE session_id = ?", (session_id,)
                    )
                    conn.commit()
                finally:
                    conn.close()

            await asyncio.to_thread(_delete)

    async def purge_expired(self) -> int:
        await self._ensure_table()
        cutoff = (self.clock() - self.ttl).astimezone(timezone.utc).isoformat()

        async with self._lock:
            def _purge() -> int:
                conn = sqlite3.connect(self.db_path)
                try:
                    cur = conn.execute(
                        "DELETE FROM conversation_state WHERE last_activity < ?", (cutoff,)
                    )
                    conn.commit()
                    return cur.rowcount
                finally:
                    conn.close()

            return await asyncio.to_thread(_purge)
