"""Tests for the signaling websocket endpoint."""
from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from relay.core.config import Settings
from relay.main import create_app


@pytest.fixture
def client():
    app = create_app(Settings(sweep_interval_seconds=3600))
    with TestClient(app) as test_client:
        yield test_client


def _join(ws, username: str) -> str:
    hello = ws.receive_json()
    assert hello["type"] == "connected"
    ws.send_json({"type": "register", "username": username})
    return hello["connection_id"]


def test_signaling_websocket_relay(client):
    with client.websocket_connect("/ws") as ws_a:
        id_a = _join(ws_a, "alice")
        update = ws_a.receive_json()
        assert update == {"type": "users_updated", "users": [{"username": "alice", "connection_id": id_a}]}

        with client.websocket_connect("/ws") as ws_b:
            id_b = _join(ws_b, "bob")

            expected = [
                {"username": "alice", "connection_id": id_a},
                {"username": "bob", "connection_id": id_b},
            ]
            assert ws_a.receive_json() == {"type": "users_updated", "users": expected}
            assert ws_b.receive_json() == {"type": "users_updated", "users": expected}

            ws_b.send_json({"type": "offer", "target": id_a, "offer": {"sdp": "hello"}})
            forwarded = ws_a.receive_json()
            assert forwarded == {"type": "offer", "offer": {"sdp": "hello"}, "from": id_b, "username": "bob"}

            ws_a.send_json({"type": "answer", "target": id_b, "answer": {"sdp": "hi"}})
            assert ws_b.receive_json()["answer"] == {"sdp": "hi"}

        assert ws_a.receive_json() == {"type": "user-disconnected", "connection_id": id_b}
        assert ws_a.receive_json() == {
            "type": "users_updated",
            "users": [{"username": "alice", "connection_id": id_a}],
        }


def test_malformed_frames_keep_connection_open(client):
    with client.websocket_connect("/ws") as ws:
        hello = ws.receive_json()
        ws.send_text("{not json")
        ws.send_bytes(b"\x00\x01")
        ws.send_json({"type": "offer"})
        ws.send_json({"type": "offer", "target": "nobody", "offer": {}})
        ws.send_json({"type": "register", "username": "still-here"})

        assert ws.receive_json() == {
            "type": "users_updated",
            "users": [{"username": "still-here", "connection_id": hello["connection_id"]}],
        }


def test_app_state_tracks_connections(client):
    manager = client.app.state.signaling

    with client.websocket_connect("/ws") as ws:
        connection_id = _join(ws, "carol")
        ws.receive_json()
        assert manager.registry.lookup(connection_id).display_name == "carol"
        ws.send_json({"type": "heartbeat"})
        ws.send_json({"type": "register", "username": "caroline"})
        ws.receive_json()
        assert manager.registry.connection(connection_id).last_heartbeat is not None

    assert connection_id not in manager.registry
