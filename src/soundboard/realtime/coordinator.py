"""Per-room playback state and the global volume."""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Iterable

from soundboard.errors import ClipNotFound, InvalidVolume, NoRoomsConfigured, NotConnected
from soundboard.monitoring.metrics import playback_total
from soundboard.schemas.messages import (
    ErrorEvent,
    Event,
    NowPlayingEvent,
    RoomInfo,
    RoomsEvent,
    StatusEvent,
    VolumeEvent,
)
from soundboard.services.sounds import SoundLibrary
from soundboard.voice.transport import Playback, VoiceTransport

logger = logging.getLogger(__name__)

EventSink = Callable[[Event], None]


class RoomStatus(str, Enum):
    DISCONNECTED = "disconnected"
    IDLE = "idle"
    PLAYING = "playing"


@dataclass
class RoomState:
    room_id: str
    connected: bool = False
    channel: str | None = None
    now_playing: str | None = None
    playback: Playback | None = None

    @property
    def status(self) -> RoomStatus:
        if not self.connected:
            return RoomStatus.DISCONNECTED
        if self.now_playing is not None:
            return RoomStatus.PLAYING
        return RoomStatus.IDLE


def clamp_volume(value: float) -> float | None:
    if not math.isfinite(value):
        return None
    return max(0.0, min(1.0, value))


class PlaybackCoordinator:
    """Own the room registry and mediate playback against the voice transport.

    Every state change is reported through *emit*. The coordinator is not
    thread-safe; callers serialize access (see ``BroadcastHub``).
    """

    def __init__(
        self,
        *,
        sounds: SoundLibrary,
        transport: VoiceTransport,
        emit: EventSink,
        room_ids: Iterable[str] = (),
        volume: float = 0.5,
    ) -> None:
        self._sounds = sounds
        self._transport = transport
        self._emit = emit
        self._rooms: list[str] = list(dict.fromkeys(room_ids))
        self._states: dict[str, RoomState] = {}
        self._volume = clamp_volume(volume)
        if self._volume is None:
            self._volume = 0.5

    # ------------------------------------------------------------------
    # Read accessors
    # ------------------------------------------------------------------
    @property
    def rooms(self) -> tuple[str, ...]:
        return tuple(self._rooms)

    @property
    def volume(self) -> float:
        return self._volume

    def has_room(self, room_id: str) -> bool:
        return room_id in self._rooms

    def room_state(self, room_id: str) -> RoomState:
        state = self._states.get(room_id)
        if state is None:
            state = self._states[room_id] = RoomState(room_id=room_id)
        return state

    def room_name(self, room_id: str) -> str:
        return self._transport.describe_room(room_id).name

    def list_rooms(self) -> list[RoomInfo]:
        return [self._transport.describe_room(room_id) for room_id in self._rooms]

    def target_room(self, requested: str | None) -> str:
        if not self._rooms:
            raise NoRoomsConfigured()
        if requested is not None and requested in self._rooms:
            return requested
        return self._rooms[0]

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------
    def set_rooms(self, room_ids: Iterable[str]) -> None:
        self._rooms = list(dict.fromkeys(str(room_id) for room_id in room_ids))
        logger.info("Room set updated", extra={"rooms": len(self._rooms)})
        self._emit(RoomsEvent(rooms=self.list_rooms()))

    def play(self, room_id: str | None, clip_name: str) -> str:
        """Play *clip_name* in *room_id* and return the canonical clip name."""

        target = self.target_room(room_id)
        handle = self._transport.connection_for(target)
        if handle is None:
            raise NotConnected()
        clip = self._sounds.resolve(clip_name)
        if clip is None:
            raise ClipNotFound()

        state = self.room_state(target)
        previous = state.playback
        state.playback = None
        if previous is not None:
            previous.stop()
        try:
            state.playback = self._transport.play(handle, clip.path, self._volume, room_id=target)
        except Exception:
            playback_total.labels("failed").inc()
            if state.now_playing is not None:
                state.now_playing = None
                self._emit(NowPlayingEvent(room_id=target, name=None))
            raise
        if not state.connected:
            # the transport holds a handle before its connection callback arrived
            state.connected = True
            self._emit(StatusEvent(room_id=target, connected=True, channel=state.channel))
        state.now_playing = clip.name
        playback_total.labels("started").inc()
        self._emit(NowPlayingEvent(room_id=target, name=clip.name))
        return clip.name

    def set_volume(self, value: float) -> float:
        volume = clamp_volume(value)
        if volume is None:
            raise InvalidVolume()
        self._volume = volume
        for state in self._states.values():
            if state.playback is not None:
                state.playback.set_volume(volume)
        self._emit(VolumeEvent(value=volume))
        return volume

    # ------------------------------------------------------------------
    # Transport callbacks
    # ------------------------------------------------------------------
    def handle_idle(self, room_id: str, playback: Playback | None = None) -> None:
        state = self._states.get(room_id)
        if state is None:
            return
        if playback is not None and state.playback is not playback:
            # completion of a clip that was already replaced
            return
        state.playback = None
        if state.now_playing is None:
            return
        state.now_playing = None
        playback_total.labels("finished").inc()
        self._emit(NowPlayingEvent(room_id=room_id, name=None))

    def handle_error(self, room_id: str, error: BaseException) -> None:
        logger.error(
            "Audio playback failed",
            exc_info=(type(error), error, error.__traceback__),
            extra={"room_id": room_id},
        )
        playback_total.labels("failed").inc()
        self._emit(ErrorEvent(message="Audio playback failed.", code="playback_failed"))

    def handle_connection_changed(
        self, room_id: str, connected: bool, channel: str | None = None
    ) -> None:
        state = self.room_state(room_id)
        if connected:
            if state.connected and state.channel == channel:
                return
            state.connected = True
            state.channel = channel
            self._emit(StatusEvent(room_id=room_id, connected=True, channel=channel))
            return

        if not state.connected and state.playback is None and state.now_playing is None:
            return
        playback = state.playback
        state.playback = None
        if playback is not None:
            playback.stop()
        state.connected = False
        state.channel = None
        state.now_playing = None
        self._emit(StatusEvent(room_id=room_id, connected=False))
        self._emit(NowPlayingEvent(room_id=room_id, name=None))
