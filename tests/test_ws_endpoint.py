from __future__ import annotations

import pytest
from fastapi.testclient import TestClient
from fastapi.websockets import WebSocketDisconnect

from soundboard.realtime.hub import BroadcastHub

SNAPSHOT_LENGTH = 8


async def _join(hub: BroadcastHub, transport, room_id: str = "111") -> None:
    transport.join(room_id)
    await hub.drain()


def test_snapshot_then_play(client: TestClient, transport, token: str) -> None:
    hub = client.app.state.hub
    client.portal.call(_join, hub, transport)

    with client.websocket_connect("/ws") as websocket:
        snapshot = [websocket.receive_json() for _ in range(SNAPSHOT_LENGTH)]
        assert [message["type"] for message in snapshot] == [
            "sounds",
            "rooms",
            "status",
            "nowPlaying",
            "status",
            "nowPlaying",
            "history",
            "volume",
        ]
        assert snapshot[2]["connected"] is True

        websocket.send_json({"type": "play", "name": "airhorn.mp3", "token": token})

        assert websocket.receive_json() == {"type": "nowPlaying", "roomId": "111", "name": "airhorn.mp3"}
        assert websocket.receive_json()["type"] == "history"
        ack = websocket.receive_json()
        assert ack["type"] == "ack"
        assert ack["roomName"] == "Guild One"


def test_errors_go_only_to_sender(client: TestClient) -> None:
    with client.websocket_connect("/ws") as first, client.websocket_connect("/ws") as second:
        for connection in (first, second):
            for _ in range(SNAPSHOT_LENGTH):
                connection.receive_json()

        first.send_text("not json")
        assert first.receive_json()["code"] == "malformed_message"

        second.send_json({"type": "ping"})
        assert second.receive_json() == {"type": "pong"}


def test_binary_frames_are_accepted(client: TestClient) -> None:
    with client.websocket_connect("/ws") as websocket:
        for _ in range(SNAPSHOT_LENGTH):
            websocket.receive_json()

        websocket.send_bytes(b'{"type": "list"}')

        assert websocket.receive_json() == {"type": "sounds", "sounds": ["airhorn.mp3", "Bruh.wav"]}


def test_silent_observer_is_closed(client: TestClient) -> None:
    hub = client.app.state.hub

    with client.websocket_connect("/ws") as websocket:
        for _ in range(SNAPSHOT_LENGTH):
            websocket.receive_json()

        client.portal.call(hub.sweep)
        assert websocket.receive_json() == {"type": "ping"}

        client.portal.call(hub.sweep)
        with pytest.raises(WebSocketDisconnect) as excinfo:
            websocket.receive_json()
        assert excinfo.value.code == 1001
