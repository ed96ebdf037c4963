"""
Periodic sweep of expired sessions.
"""

import asyncio
from typing import Optional

from ...utils.logging import get_logger
from .session_store import SessionStore

logger = get_logger("clinic.sweeper")


class SessionSweeper:
    """Runs ``store.purge_expired()`` every ``interval_seconds`` in the background."""

    def __init__(self, store: SessionStore, interval_seconds: float = 1800):
        self.store = store
        self.interval = interval_seconds
        self._task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        if self.running:
            return
        self._task = asyncio.create_task(self._loop(), name="session-sweeper")
        logger.info(f"sweeper: started (every {self.interval}s)")

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
        logger.info("sweeper: stopped")

    async def run_once(self) -> int:
        removed = await self.store.purge_expired()
        if removed:
            logger.info(f"sweeper: removed {removed} expired sessions")
        return removed

    async def _loop(self) -> None:
        while True:
            await asyncio.sleep(self.interval)
            try:
                await self.run_once()
            except Exception as e:
                logger.error(f"sweeper: purge failed: {e}")
