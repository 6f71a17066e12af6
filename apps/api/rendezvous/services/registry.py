"""In-memory registry of live signaling connections."""
from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import Awaitable, Callable, Dict, Optional

SendCallable = Callable[[dict], Awaitable[None]]


@dataclass(slots=True)
class Connection:
    """One live transport session."""

    connection_id: str
    send: SendCallable
    room_id: Optional[str] = None
    peer_id: Optional[str] = None
    connected_at: float = field(default_factory=time.time)


class ConnectionRegistry:
    """Map transport connection IDs to their room and peer identity."""

    def __init__(self) -> None:
        self._connections: Dict[str, Connection] = {}

    def __len__(self) -> int:
        return len(self._connections)

    def __contains__(self, connection_id: object) -> bool:
        return connection_id in self._connections

    def register(self, connection_id: str, send: SendCallable) -> Connection:
        connection = Connection(connection_id=connection_id, send=send)
        self._connections[connection_id] = connection
        return connection

    def lookup(self, connection_id: str) -> Optional[Connection]:
        return self._connections.get(connection_id)

    def set_room_and_peer(self, connection_id: str, room_id: str, peer_id: str) -> None:
        """Bind the connection to a room; unknown connection IDs are ignored."""

        connection = self._connections.get(connection_id)
        if connection is None:
            return
        connection.room_id = room_id
        connection.peer_id = peer_id

    def unregister(self, connection_id: str) -> Optional[Connection]:
        return self._connections.pop(connection_id, None)
