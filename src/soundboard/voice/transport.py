"""Interfaces between the playback coordinator and a voice backend."""

from __future__ import annotations

from pathlib import Path
from typing import Any, Iterable, Protocol, runtime_checkable

from soundboard.schemas.messages import RoomInfo


@runtime_checkable
class Playback(Protocol):
    """An active playback resource inside one room."""

    def set_volume(self, volume: float) -> None: ...

    def stop(self) -> None: ...


class TransportListener(Protocol):
    """Callbacks a transport delivers on the event loop thread."""

    def allows_room(self, room_id: str) -> bool: ...

    def on_rooms_discovered(self, room_ids: Iterable[str]) -> None: ...

    def on_connection_changed(self, room_id: str, connected: bool, channel: str | None) -> None: ...

    def on_idle(self, room_id: str, playback: Playback) -> None: ...

    def on_error(self, room_id: str, error: BaseException) -> None: ...


class VoiceTransport(Protocol):
    """Voice backend providing per-room connections and audio playback."""

    def set_listener(self, listener: TransportListener) -> None: ...

    async def start(self) -> None: ...

    async def stop(self) -> None: ...

    def connection_for(self, room_id: str) -> Any | None:
        """Return the active connection handle for *room_id*, if any."""

    def play(self, handle: Any, path: Path, volume: float, *, room_id: str) -> Playback:
        """Start playing *path* on *handle* and return the playback resource."""

    def describe_room(self, room_id: str) -> RoomInfo: ...
