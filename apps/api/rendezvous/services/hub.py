"""Signaling service object owning all in-memory state for one server process."""
from __future__ import annotations

import logging
import time

from fastapi.requests import HTTPConnection

from ..core.config import Settings
from .reaper import Reaper
from .registry import ConnectionRegistry
from .rooms import Clock, RoomDirectory
from .signaling import RelayDispatcher

logger = logging.getLogger(__name__)


class SignalingHub:
    """Registry, room directory, dispatcher and reaper wired together.

    Nothing is persisted; a new hub starts empty.
    """

    def __init__(
        self,
        max_room_age_seconds: float = 24 * 60 * 60,
        reaper_interval_seconds: float = 60 * 60,
        clock: Clock = time.time,
    ) -> None:
        self.registry = ConnectionRegistry()
        self.directory = RoomDirectory(clock=clock)
        self.dispatcher = RelayDispatcher(self.registry, self.directory, clock=clock)
        self.reaper = Reaper(
            self.directory,
            self.dispatcher.lock,
            max_age_seconds=max_room_age_seconds,
            interval_seconds=reaper_interval_seconds,
            clock=clock,
        )
        self._started_at = time.monotonic()

    @classmethod
    def from_settings(cls, settings: Settings) -> "SignalingHub":
        return cls(
            max_room_age_seconds=settings.room_max_age_seconds,
            reaper_interval_seconds=settings.reaper_interval_seconds,
        )

    async def start(self) -> None:
        self.reaper.start()

    async def stop(self) -> None:
        await self.reaper.stop()
        logger.info(
            "Signaling hub stopped with %d room(s) and %d connection(s)",
            len(self.directory),
            len(self.registry),
        )

    @property
    def active_rooms(self) -> int:
        return len(self.directory)

    @property
    def active_peers(self) -> int:
        return len(self.registry)

    def uptime(self) -> float:
        return time.monotonic() - self._started_at


def get_hub(connection: HTTPConnection) -> SignalingHub:
    """FastAPI dependency resolving the hub for HTTP and WebSocket routes."""

    return connection.app.state.hub
