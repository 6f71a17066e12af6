"""Room directory: room lifecycle and membership bookkeeping."""
from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import Callable, Dict, Optional

from .errors import RoomNotFound

logger = logging.getLogger(__name__)

Clock = Callable[[], float]


@dataclass(slots=True)
class Membership:
    peer_id: str
    is_host: bool
    joined_at: float


@dataclass(slots=True)
class Room:
    """A named group of connections exchanging signaling messages.

    ``host_connection_id`` is set once at creation and never reassigned, even
    after the host leaves.
    """

    room_id: str
    host_connection_id: str
    created_at: float
    members: Dict[str, Membership] = field(default_factory=dict)

    @property
    def is_empty(self) -> bool:
        return not self.members


class RoomDirectory:
    """Map room IDs to room state."""

    def __init__(self, clock: Clock = time.time) -> None:
        self._rooms: Dict[str, Room] = {}
        self._clock = clock

    def __len__(self) -> int:
        return len(self._rooms)

    def __contains__(self, room_id: object) -> bool:
        return room_id in self._rooms

    def get(self, room_id: str) -> Optional[Room]:
        return self._rooms.get(room_id)

    def create_or_get(self, room_id: str, creator_connection_id: str, creator_peer_id: str) -> Room:
        """Create the room with the creator as host, or return the existing room unchanged."""

        room = self._rooms.get(room_id)
        if room is not None:
            return room

        now = self._clock()
        room = Room(room_id=room_id, host_connection_id=creator_connection_id, created_at=now)
        room.members[creator_connection_id] = Membership(peer_id=creator_peer_id, is_host=True, joined_at=now)
        self._rooms[room_id] = room
        return room

    def join(self, room_id: str, connection_id: str, peer_id: str) -> Room:
        room = self._rooms.get(room_id)
        if room is None:
            raise RoomNotFound(room_id)
        room.members[connection_id] = Membership(peer_id=peer_id, is_host=False, joined_at=self._clock())
        return room

    def leave(self, room_id: str, connection_id: str) -> bool:
        """Remove the membership entry and report whether the room is now empty.

        Missing rooms count as empty; missing members leave the room untouched.
        """

        room = self._rooms.get(room_id)
        if room is None:
            return True
        room.members.pop(connection_id, None)
        return room.is_empty

    def list_members_except(self, room_id: str, connection_id: str) -> list[tuple[str, str]]:
        """Return ``(peer_id, connection_id)`` pairs for every other member."""

        room = self._rooms.get(room_id)
        if room is None:
            return []
        return [
            (membership.peer_id, member_id)
            for member_id, membership in room.members.items()
            if member_id != connection_id
        ]

    def member_ids(self, room_id: str) -> list[str]:
        room = self._rooms.get(room_id)
        if room is None:
            return []
        return list(room.members)

    def delete_if_empty(self, room_id: str) -> bool:
        room = self._rooms.get(room_id)
        if room is None or not room.is_empty:
            return False
        del self._rooms[room_id]
        logger.info("Room deleted (empty): %s", room_id)
        return True

    def sweep_expired(self, max_age: float, now: float | None = None) -> list[str]:
        """Delete empty rooms older than ``max_age`` seconds; return their IDs."""

        current = self._clock() if now is None else now
        expired = [
            room_id
            for room_id, room in self._rooms.items()
            if current - room.created_at > max_age and room.is_empty
        ]
        for room_id in expired:
            self._rooms.pop(room_id, None)
            logger.info("Cleaned up expired room: %s", room_id)
        return expired
