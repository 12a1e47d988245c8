"""Shared pytest fixtures for soundboard tests."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Callable, Iterator

import httpx
import pytest
from fastapi.testclient import TestClient
from fastapi.websockets import WebSocketState

from soundboard.config import Settings
from soundboard.core.security import SessionTokenService
from soundboard.main import create_app
from soundboard.monitoring.registry import registry
from soundboard.realtime.hub import BroadcastHub
from soundboard.schemas.messages import RoomInfo
from soundboard.services.history import HistoryBuffer
from soundboard.services.oauth import DiscordOAuthClient
from soundboard.services.sounds import SoundLibrary

SECRET = "test-signing-secret"
NOW_MS = 1_700_000_000_000
DISCORD_USER = {
    "id": "4242",
    "username": "tester",
    "global_name": "Test User",
    "discriminator": "0",
    "avatar": "abc123",
}
ROOM_NAMES = {"111": "Guild One", "222": "Guild Two"}


class FakePlayback:
    def __init__(self, room_id: str, path: Path, volume: float) -> None:
        self.room_id = room_id
        self.path = path
        self.volume = volume
        self.stopped = False

    def set_volume(self, volume: float) -> None:
        self.volume = volume

    def stop(self) -> None:
        self.stopped = True


class FakeTransport:
    """In-memory voice transport. Rooms are joined with :meth:`join`."""

    def __init__(self, names: dict[str, str] | None = None) -> None:
        self.names = dict(names or {})
        self.connections: dict[str, object] = {}
        self.playbacks: list[FakePlayback] = []
        self.listener: Any = None
        self.started = False
        self.stopped = False
        self.play_error: Exception | None = None

    def set_listener(self, listener: Any) -> None:
        self.listener = listener

    async def start(self) -> None:
        self.started = True

    async def stop(self) -> None:
        self.stopped = True

    def join(self, room_id: str, channel: str = "General") -> None:
        self.connections[room_id] = object()
        self.listener.on_connection_changed(room_id, True, channel)

    def leave(self, room_id: str) -> None:
        self.connections.pop(room_id, None)
        self.listener.on_connection_changed(room_id, False, None)

    def connection_for(self, room_id: str) -> object | None:
        return self.connections.get(room_id)

    def play(self, handle: object, path: Path, volume: float, *, room_id: str) -> FakePlayback:
        if self.play_error is not None:
            error, self.play_error = self.play_error, None
            raise error
        playback = FakePlayback(room_id, path, volume)
        self.playbacks.append(playback)
        return playback

    def describe_room(self, room_id: str) -> RoomInfo:
        return RoomInfo(id=room_id, name=self.names.get(room_id, room_id))


class DummyWebSocket:
    def __init__(self) -> None:
        self.application_state = WebSocketState.CONNECTED
        self.sent: list[dict[str, Any]] = []
        self.close_code: int | None = None

    async def send_text(self, data: str) -> None:
        self.sent.append(json.loads(data))

    async def close(self, code: int = 1000) -> None:
        self.close_code = code
        self.application_state = WebSocketState.DISCONNECTED

    def types(self) -> list[str]:
        return [message["type"] for message in self.sent]

    def of_type(self, message_type: str) -> list[dict[str, Any]]:
        return [message for message in self.sent if message["type"] == message_type]


@pytest.fixture()
def anyio_backend() -> str:
    return "asyncio"


@pytest.fixture(autouse=True)
def reset_metrics() -> Iterator[None]:
    for metric in registry._metrics.values():
        metric.clear()
    yield
    for metric in registry._metrics.values():
        metric.clear()


@pytest.fixture()
def sound_dir(tmp_path: Path) -> Path:
    directory = tmp_path / "sounds"
    directory.mkdir()
    for name in ("airhorn.mp3", "Bruh.wav", "notes.txt"):
        (directory / name).write_bytes(b"\x00")
    return directory


@pytest.fixture()
def tokens() -> SessionTokenService:
    return SessionTokenService(SECRET)


@pytest.fixture()
def token(tokens: SessionTokenService) -> str:
    return tokens.sign(DISCORD_USER, issued_at=NOW_MS)


@pytest.fixture()
def transport() -> FakeTransport:
    return FakeTransport(ROOM_NAMES)


@pytest.fixture()
def make_hub(
    sound_dir: Path, tokens: SessionTokenService, transport: FakeTransport
) -> Callable[..., BroadcastHub]:
    def factory(*, room_ids=("111", "222"), capacity: int = 200, volume: float = 0.5) -> BroadcastHub:
        return BroadcastHub(
            sounds=SoundLibrary([sound_dir]),
            tokens=tokens,
            history=HistoryBuffer(capacity),
            transport=transport,
            room_ids=room_ids,
            volume=volume,
            heartbeat_interval=0,
            clock=lambda: NOW_MS,
        )

    return factory


@pytest.fixture()
def hub(make_hub: Callable[..., BroadcastHub]) -> BroadcastHub:
    return make_hub()


@pytest.fixture()
def settings(sound_dir: Path) -> Settings:
    return Settings(
        _env_file=None,
        discord_token="bot-token",
        discord_client_id="client-id",
        discord_client_secret="client-secret",
        session_secret=SECRET,
        room_ids=["111", "222"],
        sound_dirs=[str(sound_dir)],
        heartbeat_interval_seconds=0,
        environment="test",
    )


def discord_handler(request: httpx.Request) -> httpx.Response:
    if request.url.path.endswith("/oauth2/token"):
        return httpx.Response(200, json={"access_token": "discord-access", "token_type": "Bearer"})
    if request.url.path.endswith("/users/@me"):
        assert request.headers["Authorization"] == "Bearer discord-access"
        return httpx.Response(200, json=DISCORD_USER)
    return httpx.Response(404)


@pytest.fixture()
def oauth_handler() -> list[Callable[[httpx.Request], httpx.Response]]:
    """Mutable holder so a test can swap the upstream behaviour."""

    return [discord_handler]


@pytest.fixture()
def oauth(oauth_handler) -> DiscordOAuthClient:
    return DiscordOAuthClient(
        client_id="client-id",
        client_secret="client-secret",
        redirect_uri="http://localhost:3000/auth/callback",
        transport=httpx.MockTransport(lambda request: oauth_handler[0](request)),
    )


@pytest.fixture()
def client(settings: Settings, transport: FakeTransport, oauth: DiscordOAuthClient) -> Iterator[TestClient]:
    app = create_app(settings, transport=transport, oauth=oauth)
    with TestClient(app) as test_client:
        yield test_client
