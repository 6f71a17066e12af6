"""Relay dispatcher: the signaling message state machine."""
from __future__ import annotations

import asyncio
import logging
import time
from typing import Any, Awaitable, Callable, Dict, Iterable

from pydantic import ValidationError as PayloadValidationError

from ..schemas.signaling import (
    RELAY_PAYLOAD_KEYS,
    ErrorMessage,
    MessageType,
    PeerInfo,
    PeerJoined,
    PeerLeft,
    PingRequest,
    Pong,
    RelayRequest,
    RoomCreated,
    RoomJoined,
    RoomRequest,
)
from .errors import AlreadyInRoom, RoomExists, SignalingError, ValidationError
from .registry import Connection, ConnectionRegistry, SendCallable
from .rooms import Clock, RoomDirectory

logger = logging.getLogger(__name__)

MISSING_ROOM_FIELDS = "roomId and peerId are required"

Handler = Callable[[str, dict], Awaitable[None]]


class RelayDispatcher:
    """Route inbound signaling messages between the connections of a room.

    Registry and directory mutations run under a single lock. Room membership
    notices (room_created, peer_joined, room_joined, peer_left) are sent before
    the lock is released, so every connection sees them in the order the
    mutations happened. Relayed payloads go out after the lock is released,
    against a recipient snapshot taken while it was held.
    """

    def __init__(
        self,
        registry: ConnectionRegistry,
        directory: RoomDirectory,
        clock: Clock = time.time,
    ) -> None:
        self._registry = registry
        self._directory = directory
        self._clock = clock
        self._lock = asyncio.Lock()
        self._handlers: Dict[MessageType, Handler] = {
            MessageType.CREATE_ROOM: self.handle_create_room,
            MessageType.JOIN_ROOM: self.handle_join_room,
            MessageType.OFFER: self.handle_relay,
            MessageType.ANSWER: self.handle_relay,
            MessageType.ICE_CANDIDATE: self.handle_relay,
            MessageType.PING: self.handle_ping,
        }

    @property
    def lock(self) -> asyncio.Lock:
        return self._lock

    async def connect(self, connection_id: str, send: SendCallable) -> Connection:
        async with self._lock:
            connection = self._registry.register(connection_id, send)
        logger.info("Client connected: %s", connection_id)
        return connection

    async def dispatch(self, connection_id: str, message: Any) -> None:
        """Handle one inbound frame; faults never escape to the receive loop."""

        if not isinstance(message, dict):
            await self.reject(connection_id, "Invalid message format")
            return

        raw_type = message.get("type")
        try:
            kind = MessageType(raw_type)
        except ValueError:
            await self.reject(connection_id, f"Unsupported message type: {raw_type}")
            return

        try:
            await self._handlers[kind](connection_id, message)
        except Exception as exc:  # noqa: BLE001 - one connection must not take down the loop
            logger.exception("Unhandled error processing %s from %s: %s", kind.value, connection_id, exc)

    async def reject(self, connection_id: str, reason: str) -> None:
        await self._deliver(connection_id, ErrorMessage(message=reason).to_wire())

    async def handle_create_room(self, connection_id: str, message: dict) -> None:
        try:
            request = _parse_room_request(message)
            logger.info("Creating room %s for peer %s (%s)", request.room_id, request.peer_id, connection_id)
            async with self._lock:
                reply = self._create_room(connection_id, request)
                await self._deliver(connection_id, reply.to_wire())
        except SignalingError as exc:
            await self.reject(connection_id, exc.message)
            return
        except Exception as exc:  # noqa: BLE001
            logger.exception("Error creating room for %s: %s", connection_id, exc)
            await self.reject(connection_id, "Failed to create room")
            return

    def _create_room(self, connection_id: str, request: RoomRequest) -> RoomCreated:
        connection = self._require_connection(connection_id)
        existing = self._directory.get(request.room_id)

        if connection.room_id is not None:
            if (
                connection.room_id == request.room_id
                and existing is not None
                and existing.host_connection_id == connection_id
            ):
                return RoomCreated(room_id=existing.room_id, peer_id=connection.peer_id or request.peer_id)
            raise AlreadyInRoom()
        if existing is not None:
            raise RoomExists()

        room = self._directory.create_or_get(request.room_id, connection_id, request.peer_id)
        self._registry.set_room_and_peer(connection_id, room.room_id, request.peer_id)
        logger.info("Room created successfully: %s (host %s)", room.room_id, connection_id)
        return RoomCreated(room_id=room.room_id, peer_id=request.peer_id, is_host=True)

    async def handle_join_room(self, connection_id: str, message: dict) -> None:
        try:
            request = _parse_room_request(message)
            logger.info("Joining room %s as peer %s (%s)", request.room_id, request.peer_id, connection_id)
            async with self._lock:
                connection = self._require_connection(connection_id)
                if connection.room_id is not None:
                    raise AlreadyInRoom()
                room = self._directory.join(request.room_id, connection_id, request.peer_id)
                self._registry.set_room_and_peer(connection_id, room.room_id, request.peer_id)
                existing = self._directory.list_members_except(room.room_id, connection_id)
                room_size = len(room.members)

                notice = PeerJoined(peer_id=request.peer_id, connection_id=connection_id)
                await self._broadcast((member_id for _, member_id in existing), notice.to_wire())

                reply = RoomJoined(
                    room_id=request.room_id,
                    peer_id=request.peer_id,
                    existing_peers=[
                        PeerInfo(peer_id=peer_id, connection_id=member_id) for peer_id, member_id in existing
                    ],
                )
                await self._deliver(connection_id, reply.to_wire())
        except SignalingError as exc:
            await self.reject(connection_id, exc.message)
            return
        except Exception as exc:  # noqa: BLE001
            logger.exception("Error joining room for %s: %s", connection_id, exc)
            await self.reject(connection_id, "Failed to join room")
            return

        logger.info("Joined room successfully: %s (%s, size %d)", request.room_id, connection_id, room_size)

    async def handle_relay(self, connection_id: str, message: dict) -> None:
        """Forward an offer, answer or ICE candidate without looking at its payload."""

        kind = MessageType(message["type"])
        payload_key = RELAY_PAYLOAD_KEYS[kind]
        try:
            request = RelayRequest.model_validate(message)
        except PayloadValidationError as exc:
            logger.warning("Dropping malformed %s from %s: %s", kind.value, connection_id, exc)
            return

        async with self._lock:
            recipients = self._resolve_recipients(connection_id, request)

        logger.debug(
            "Forwarding %s from %s (room=%s, target=%s) to %d recipient(s)",
            kind.value,
            connection_id,
            request.room_id,
            request.target_peer,
            len(recipients),
        )
        envelope: dict[str, Any] = {"type": kind.value}
        if payload_key in message:
            envelope[payload_key] = message[payload_key]
        envelope["fromPeer"] = connection_id
        await self._broadcast(recipients, envelope)

    def _resolve_recipients(self, connection_id: str, request: RelayRequest) -> list[str]:
        if request.target_peer:
            if request.target_peer == connection_id:
                return []
            if request.target_peer not in self._registry:
                logger.warning("Relay target %s from %s is not connected", request.target_peer, connection_id)
                return []
            return [request.target_peer]

        room_id = request.room_id
        if not room_id:
            sender = self._registry.lookup(connection_id)
            room_id = sender.room_id if sender is not None else None
        if not room_id:
            logger.warning("Relay from %s has neither targetPeer nor room; dropping", connection_id)
            return []
        return [member_id for member_id in self._directory.member_ids(room_id) if member_id != connection_id]

    async def handle_ping(self, connection_id: str, message: dict) -> None:
        request = PingRequest.model_validate(message)
        pong = Pong(timestamp=request.timestamp, server_time=int(self._clock() * 1000))
        await self._deliver(connection_id, pong.to_wire())

    async def disconnect(self, connection_id: str, reason: str | None = None) -> None:
        """Tear down a connection's state; safe against missing rooms and members."""

        logger.info("Client disconnected: %s (%s)", connection_id, reason or "unknown")
        try:
            async with self._lock:
                connection = self._registry.unregister(connection_id)
                if connection is None or connection.room_id is None:
                    return
                room_id = connection.room_id
                empty = self._directory.leave(room_id, connection_id)
                remaining = self._directory.member_ids(room_id)
                if empty:
                    self._directory.delete_if_empty(room_id)

                notice = PeerLeft(peer_id=connection.peer_id, connection_id=connection_id)
                await self._broadcast(remaining, notice.to_wire())
        except Exception as exc:  # noqa: BLE001 - teardown never raises
            logger.exception("Error handling disconnect for %s: %s", connection_id, exc)

    async def _broadcast(self, recipients: Iterable[str], message: dict) -> None:
        """Attempt delivery to every recipient; one failure never stops the rest."""

        tasks = [self._deliver(recipient, message) for recipient in recipients]
        if tasks:
            await asyncio.gather(*tasks)

    async def _deliver(self, connection_id: str, message: dict) -> bool:
        connection = self._registry.lookup(connection_id)
        if connection is None:
            logger.debug("Skipping %s for departed connection %s", message.get("type"), connection_id)
            return False
        try:
            await connection.send(message)
        except Exception as exc:  # noqa: BLE001 - delivery is best-effort
            logger.warning("Failed to deliver %s to %s: %s", message.get("type"), connection_id, exc)
            return False
        return True

    def _require_connection(self, connection_id: str) -> Connection:
        connection = self._registry.lookup(connection_id)
        if connection is None:
            raise ValidationError("Unknown connection")
        return connection


def _parse_room_request(message: dict) -> RoomRequest:
    try:
        return RoomRequest.model_validate(message)
    except PayloadValidationError as exc:
        raise ValidationError(MISSING_ROOM_FIELDS) from exc
