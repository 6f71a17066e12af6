"""Wire contracts for the signaling WebSocket.

Every frame is a JSON object whose ``type`` names the message; the remaining
keys are camelCase on the wire.
"""
from __future__ import annotations

import enum
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class MessageType(str, enum.Enum):
    CREATE_ROOM = "create_room"
    JOIN_ROOM = "join_room"
    OFFER = "offer"
    ANSWER = "answer"
    ICE_CANDIDATE = "ice_candidate"
    PING = "ping"


RELAY_PAYLOAD_KEYS: dict[MessageType, str] = {
    MessageType.OFFER: "offer",
    MessageType.ANSWER: "answer",
    MessageType.ICE_CANDIDATE: "candidate",
}


class WireModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_wire(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True)


class RoomRequest(WireModel):
    """Body of ``create_room`` and ``join_room``."""

    room_id: str = Field(..., min_length=1)
    peer_id: str = Field(..., min_length=1)


class RelayRequest(WireModel):
    """Addressing part of ``offer``, ``answer`` and ``ice_candidate``; the payload stays opaque."""

    model_config = ConfigDict(extra="allow")

    room_id: str | None = None
    target_peer: str | None = None


class PingRequest(WireModel):
    timestamp: Any = None


class PeerInfo(WireModel):
    peer_id: str
    connection_id: str


class RoomCreated(WireModel):
    type: Literal["room_created"] = "room_created"
    room_id: str
    peer_id: str
    is_host: bool = True


class RoomJoined(WireModel):
    type: Literal["room_joined"] = "room_joined"
    room_id: str
    peer_id: str
    is_host: bool = False
    existing_peers: list[PeerInfo] = Field(default_factory=list)


class PeerJoined(WireModel):
    type: Literal["peer_joined"] = "peer_joined"
    peer_id: str
    connection_id: str


class PeerLeft(WireModel):
    type: Literal["peer_left"] = "peer_left"
    peer_id: str | None
    connection_id: str


class Pong(WireModel):
    type: Literal["pong"] = "pong"
    timestamp: Any = None
    server_time: int


class ErrorMessage(WireModel):
    type: Literal["error"] = "error"
    message: str


class StatusResponse(WireModel):
    status: str
    version: str
    timestamp: str
    active_rooms: int
    active_peers: int


class HealthResponse(WireModel):
    status: str
    uptime: float
