"""Periodic removal of abandoned sessions and their rounds."""

from __future__ import annotations

import asyncio
import contextlib
import time
from typing import TYPE_CHECKING

import structlog

if TYPE_CHECKING:
    from shared.dal import SessionRepository

logger = structlog.get_logger()

_SECONDS_PER_DAY = 86_400


class SessionJanitor:
    """Purges sessions older than `max_age_days` every `interval_seconds`."""

    def __init__(self, sessions: SessionRepository, *, max_age_days: int, interval_seconds: float) -> None:
        self._sessions = sessions
        self._max_age_seconds = max_age_days * _SECONDS_PER_DAY
        self._interval_seconds = interval_seconds
        self._task: asyncio.Task[None] | None = None

    async def purge_once(self) -> int:
        cutoff = int(time.time()) - self._max_age_seconds
        return await self._sessions.purge_stale(cutoff)

    def start(self) -> None:
        """Start the periodic purge task. Idempotent."""
        if self._task is not None and not self._task.done():
            return
        self._task = asyncio.create_task(self._loop())

    async def stop(self) -> None:
        if self._task is not None:
            self._task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._task
            self._task = None

    async def _loop(self) -> None:
        while True:
            await asyncio.sleep(self._interval_seconds)
            try:
                await self.purge_once()
            except Exception:
                logger.exception("session janitor encountered an error")
