"""End-to-end tests for the signaling WebSocket endpoint."""
from __future__ import annotations

from fastapi.testclient import TestClient

from rendezvous.main import create_app
from rendezvous.services.hub import SignalingHub


def test_signaling_websocket_room_flow():
    hub = SignalingHub()

    with TestClient(create_app(hub=hub)) as client:
        with client.websocket_connect("/ws") as ws_b:
            with client.websocket_connect("/ws") as ws_a:
                ws_a.send_json({"type": "create_room", "roomId": "movie1", "peerId": "alice"})
                assert ws_a.receive_json() == {
                    "type": "room_created",
                    "roomId": "movie1",
                    "peerId": "alice",
                    "isHost": True,
                }

                ws_b.send_json({"type": "join_room", "roomId": "movie1", "peerId": "bob"})
                joined = ws_b.receive_json()
                assert joined["type"] == "room_joined"
                assert joined["isHost"] is False
                assert [peer["peerId"] for peer in joined["existingPeers"]] == ["alice"]
                alice_id = joined["existingPeers"][0]["connectionId"]

                notice = ws_a.receive_json()
                assert notice["type"] == "peer_joined"
                assert notice["peerId"] == "bob"
                bob_id = notice["connectionId"]
                assert bob_id != alice_id

                ws_b.send_json({"type": "offer", "roomId": "movie1", "offer": {"sdp": "hello"}})
                forwarded = ws_a.receive_json()
                assert forwarded == {"type": "offer", "offer": {"sdp": "hello"}, "fromPeer": bob_id}

                ws_a.send_json({"type": "answer", "targetPeer": bob_id, "answer": {"sdp": "hi"}})
                assert ws_b.receive_json() == {"type": "answer", "answer": {"sdp": "hi"}, "fromPeer": alice_id}

                status = client.get("/").json()
                assert status["activeRooms"] == 1
                assert status["activePeers"] == 2

                ws_a.close()
                left_notice = ws_b.receive_json()
                assert left_notice == {"type": "peer_left", "peerId": "alice", "connectionId": alice_id}


def test_signaling_websocket_errors_and_ping():
    with TestClient(create_app(hub=SignalingHub())) as client:
        with client.websocket_connect("/ws") as ws:
            ws.send_json({"type": "join_room", "roomId": "ghost", "peerId": "bob"})
            assert ws.receive_json() == {"type": "error", "message": "Room not found"}

            ws.send_json({"type": "create_room", "peerId": "bob"})
            assert ws.receive_json() == {"type": "error", "message": "roomId and peerId are required"}

            ws.send_text("definitely not json")
            assert ws.receive_json() == {"type": "error", "message": "Invalid message format"}

            ws.send_json({"type": "ping", "timestamp": 42})
            pong = ws.receive_json()
            assert pong["type"] == "pong"
            assert pong["timestamp"] == 42
            assert pong["serverTime"] >= 42
