"""Errors surfaced to the connection that sent the offending message."""
from __future__ import annotations


class SignalingError(Exception):
    """Base class for failures reported back as ``error{message}``."""

    default_message = "Signaling error"

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationError(SignalingError):
    """Raised when an inbound message is missing required fields or is malformed."""

    default_message = "Invalid message"


class RoomNotFound(SignalingError):
    """Raised when joining a room that does not exist."""

    default_message = "Room not found"

    def __init__(self, room_id: str) -> None:
        self.room_id = room_id
        super().__init__(self.default_message)


class RoomExists(SignalingError):
    """Raised when a connection other than the host tries to create an existing room."""

    default_message = "Room already exists"


class AlreadyInRoom(SignalingError):
    """Raised when a connection that already belongs to a room tries to enter another one."""

    default_message = "Already in a room"
