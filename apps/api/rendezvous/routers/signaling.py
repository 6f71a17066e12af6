"""Signaling WebSocket endpoint."""
from __future__ import annotations

import asyncio
from uuid import uuid4

from fastapi import APIRouter, Depends, WebSocket, WebSocketDisconnect

from ..services.hub import SignalingHub, get_hub

router = APIRouter()

_pending_teardowns: set[asyncio.Task[None]] = set()


@router.websocket("/ws")
async def signaling_endpoint(websocket: WebSocket, hub: SignalingHub = Depends(get_hub)) -> None:
    """Relay room and negotiation messages between peers."""

    connection_id = uuid4().hex
    await websocket.accept()
    await hub.dispatcher.connect(connection_id, websocket.send_json)

    reason = "server shutdown"
    try:
        while True:
            try:
                message = await websocket.receive_json()
            except (ValueError, KeyError):
                # non-JSON text or a binary frame
                await hub.dispatcher.reject(connection_id, "Invalid message format")
                continue
            await hub.dispatcher.dispatch(connection_id, message)
    except WebSocketDisconnect as exc:
        reason = f"client disconnect (code {exc.code})"
    except asyncio.CancelledError:
        reason = "endpoint cancelled"
        raise
    finally:
        # teardown outlives cancellation so remaining members still get peer_left
        teardown = asyncio.create_task(hub.dispatcher.disconnect(connection_id, reason))
        _pending_teardowns.add(teardown)
        teardown.add_done_callback(_pending_teardowns.discard)
        await asyncio.shield(teardown)
