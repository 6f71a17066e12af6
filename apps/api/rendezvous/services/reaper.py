"""Periodic cleanup of expired, empty rooms."""
from __future__ import annotations

import asyncio
import contextlib
import logging
import time

from .rooms import Clock, RoomDirectory

logger = logging.getLogger(__name__)


class Reaper:
    """Sweep the room directory on a fixed interval."""

    def __init__(
        self,
        directory: RoomDirectory,
        lock: asyncio.Lock,
        max_age_seconds: float,
        interval_seconds: float,
        clock: Clock = time.time,
    ) -> None:
        self._directory = directory
        self._lock = lock
        self._max_age = max_age_seconds
        self._interval = interval_seconds
        self._clock = clock
        self._task: asyncio.Task[None] | None = None

    @property
    def max_age_seconds(self) -> float:
        return self._max_age

    @property
    def interval_seconds(self) -> float:
        return self._interval

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def sweep(self) -> list[str]:
        async with self._lock:
            removed = self._directory.sweep_expired(self._max_age, self._clock())
        if removed:
            logger.info("Room sweep removed %d expired room(s)", len(removed))
        return removed

    def start(self) -> None:
        if self.running:
            return
        self._task = asyncio.create_task(self._run(), name="room-reaper")

    async def stop(self) -> None:
        task, self._task = self._task, None
        if task is None:
            return
        task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await task

    async def _run(self) -> None:
        while True:
            await asyncio.sleep(self._interval)
            try:
                await self.sweep()
            except Exception as exc:  # noqa: BLE001 - keep the timer alive
                logger.exception("Room sweep failed: %s", exc)
