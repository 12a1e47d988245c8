"""Fan-out of soundboard state to websocket observers."""

from __future__ import annotations

import asyncio
import contextlib
import logging
import time
import uuid
from dataclasses import dataclass, field
from typing import Any, AsyncIterator, Callable, Coroutine, Iterable

from fastapi import status
from fastapi.websockets import WebSocket, WebSocketDisconnect, WebSocketState

from soundboard.core.security import Session, SessionTokenService
from soundboard.errors import AuthenticationRequired, InvalidVolume, MalformedMessage, SoundboardError
from soundboard.monitoring.metrics import (
    commands_total,
    events_broadcast_total,
    heartbeat_terminations_total,
    observer_connections,
)
from soundboard.realtime.coordinator import PlaybackCoordinator
from soundboard.schemas.messages import (
    ErrorEvent,
    Event,
    HistoryEvent,
    ListCommand,
    NowPlayingEvent,
    PingCommand,
    PingEvent,
    PlayAck,
    PlayCommand,
    PongCommand,
    PongEvent,
    RoomsEvent,
    SetVolumeCommand,
    SoundsEvent,
    StatusEvent,
    VolumeAck,
    VolumeEvent,
    parse_command,
)
from soundboard.services.history import HistoryBuffer, HistoryEntry
from soundboard.services.sounds import SoundLibrary
from soundboard.voice.transport import Playback, VoiceTransport

logger = logging.getLogger(__name__)


def _now_ms() -> int:
    return int(time.time() * 1000)


@dataclass(eq=False)
class Observer:
    """A connected control surface."""

    websocket: WebSocket
    id: str = field(default_factory=lambda: uuid.uuid4().hex)
    alive: bool = True

    @property
    def writable(self) -> bool:
        return self.websocket.application_state == WebSocketState.CONNECTED


class BroadcastHub:
    """Serialize every state change and fan the resulting events out.

    One lock guards the coordinator, the history buffer and the observer set.
    Commands from observers and callbacks from the voice transport both run
    inside it, and the events a change produces are broadcast before the lock
    is released.
    """

    def __init__(
        self,
        *,
        sounds: SoundLibrary,
        tokens: SessionTokenService,
        history: HistoryBuffer,
        transport: VoiceTransport,
        room_ids: Iterable[str] = (),
        volume: float = 0.5,
        heartbeat_interval: float = 30.0,
        clock: Callable[[], int] = _now_ms,
    ) -> None:
        self._sounds = sounds
        self._tokens = tokens
        self._history = history
        self._heartbeat_interval = heartbeat_interval
        self._clock = clock
        self._observers: set[Observer] = set()
        self._outbox: list[Event] = []
        self._lock = asyncio.Lock()
        self._tasks: set[asyncio.Task[Any]] = set()
        self._heartbeat_task: asyncio.Task[None] | None = None
        self.coordinator = PlaybackCoordinator(
            sounds=sounds,
            transport=transport,
            emit=self._outbox.append,
            room_ids=room_ids,
            volume=volume,
        )
        transport.set_listener(self)

    @property
    def observers(self) -> frozenset[Observer]:
        return frozenset(self._observers)

    @property
    def history(self) -> HistoryBuffer:
        return self._history

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------
    async def start(self) -> None:
        if self._heartbeat_interval > 0 and self._heartbeat_task is None:
            self._heartbeat_task = asyncio.create_task(
                self._heartbeat(), name="soundboard-heartbeat"
            )

    async def stop(self) -> None:
        if self._heartbeat_task is not None:
            self._heartbeat_task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._heartbeat_task
            self._heartbeat_task = None
        for task in list(self._tasks):
            task.cancel()
        await self.drain()

    async def drain(self) -> None:
        """Wait until every scheduled transport callback has been applied."""

        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    # ------------------------------------------------------------------
    # Observer management
    # ------------------------------------------------------------------
    async def connect(self, observer: Observer) -> None:
        async with self._lock:
            self._observers.add(observer)
            observer_connections.inc()
            for event in self._snapshot_events():
                if not await self._send(observer, event):
                    break
        logger.info("Observer connected", extra={"observer": observer.id})

    async def disconnect(self, observer: Observer) -> None:
        async with self._lock:
            if observer not in self._observers:
                return
            self._observers.discard(observer)
            observer_connections.dec()
        logger.info("Observer disconnected", extra={"observer": observer.id})

    async def broadcast(self, event: Event) -> None:
        async with self._lock:
            await self._broadcast_locked(event)

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------
    async def handle_command(self, observer: Observer, raw: str | bytes) -> None:
        try:
            command = parse_command(raw)
        except SoundboardError as exc:
            commands_total.labels("invalid", exc.code).inc()
            await self._send_error(observer, exc)
            return

        if isinstance(command, PongCommand):
            observer.alive = True
            return
        if isinstance(command, PingCommand):
            await self._send(observer, PongEvent())
            return

        try:
            if isinstance(command, ListCommand):
                await self._send(observer, SoundsEvent(sounds=self._sounds.list_sounds()))
            elif isinstance(command, PlayCommand):
                await self._play(observer, command)
            elif isinstance(command, SetVolumeCommand):
                await self._set_volume(observer, command)
        except SoundboardError as exc:
            commands_total.labels(command.type, exc.code).inc()
            await self._send_error(observer, exc)
            return
        except Exception:
            commands_total.labels(command.type, "internal_error").inc()
            logger.exception("Command failed", extra={"command": command.type})
            await self._send(
                observer, ErrorEvent(message="Audio playback failed.", code="internal_error")
            )
            return
        commands_total.labels(command.type, "ok").inc()

    async def _play(self, observer: Observer, command: PlayCommand) -> None:
        if not command.name:
            raise MalformedMessage("Missing sound name.")
        self.coordinator.target_room(command.room_id)
        session = self._require_session(command.token)

        async with self._transaction():
            room_id = self.coordinator.target_room(command.room_id)
            sound = self.coordinator.play(room_id, command.name)
            entry = HistoryEntry(sound=sound, room_id=room_id, user=session.user, at=self._clock())
            self._history.add(entry)
            self._outbox.append(self._history_event())
            ack = PlayAck(
                name=sound,
                user=session.user,
                at=entry.at,
                room_id=room_id,
                room_name=self.coordinator.room_name(room_id),
            )
            await self._flush()
            await self._send(observer, ack)

    async def _set_volume(self, observer: Observer, command: SetVolumeCommand) -> None:
        self.coordinator.target_room(command.room_id)
        self._require_session(command.token)
        try:
            value = float(command.value)
        except (TypeError, ValueError, OverflowError) as exc:
            raise InvalidVolume() from exc

        async with self._transaction():
            room_id = self.coordinator.target_room(command.room_id)
            applied = self.coordinator.set_volume(value)
            await self._flush()
            await self._send(observer, VolumeAck(value=applied, room_id=room_id))

    def _require_session(self, token: str | None) -> Session:
        session = self._tokens.verify(token)
        if session is None:
            raise AuthenticationRequired()
        return session

    # ------------------------------------------------------------------
    # Transport listener
    # ------------------------------------------------------------------
    def allows_room(self, room_id: str) -> bool:
        return self.coordinator.has_room(room_id)

    def on_rooms_discovered(self, room_ids: Iterable[str]) -> None:
        self._schedule(self._apply(self.coordinator.set_rooms, list(room_ids)))

    def on_connection_changed(self, room_id: str, connected: bool, channel: str | None) -> None:
        self._schedule(
            self._apply(self.coordinator.handle_connection_changed, room_id, connected, channel)
        )

    def on_idle(self, room_id: str, playback: Playback) -> None:
        self._schedule(self._apply(self.coordinator.handle_idle, room_id, playback))

    def on_error(self, room_id: str, error: BaseException) -> None:
        self._schedule(self._apply(self.coordinator.handle_error, room_id, error))

    async def _apply(self, handler: Callable[..., None], *args: Any) -> None:
        async with self._transaction():
            handler(*args)

    def _schedule(self, coro: Coroutine[Any, Any, None]) -> None:
        task = asyncio.get_running_loop().create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._task_done)

    def _task_done(self, task: asyncio.Task[Any]) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error("Transport callback failed", exc_info=exc)

    # ------------------------------------------------------------------
    # Liveness
    # ------------------------------------------------------------------
    async def _heartbeat(self) -> None:
        while True:
            await asyncio.sleep(self._heartbeat_interval)
            await self.sweep()

    async def sweep(self) -> None:
        """Drop observers that missed the previous probe and probe the rest."""

        async with self._lock:
            for observer in list(self._observers):
                if not observer.alive:
                    await self._terminate(observer)
                    continue
                observer.alive = False
                await self._send(observer, PingEvent())

    async def _terminate(self, observer: Observer) -> None:
        self._observers.discard(observer)
        observer_connections.dec()
        heartbeat_terminations_total.inc()
        logger.info("Terminating unresponsive observer", extra={"observer": observer.id})
        with contextlib.suppress(RuntimeError, WebSocketDisconnect):
            await observer.websocket.close(code=status.WS_1001_GOING_AWAY)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------
    @contextlib.asynccontextmanager
    async def _transaction(self) -> AsyncIterator[None]:
        async with self._lock:
            try:
                yield
            finally:
                await self._flush()

    async def _flush(self) -> None:
        while self._outbox:
            await self._broadcast_locked(self._outbox.pop(0))

    async def _broadcast_locked(self, event: Event) -> None:
        data = event.to_json()
        events_broadcast_total.labels(event.type).inc()
        for observer in list(self._observers):
            await self._send_raw(observer, data)

    def _history_event(self) -> HistoryEvent:
        return HistoryEvent(entries=self._history.serialize(self.coordinator.room_name))

    def _snapshot_events(self) -> list[Event]:
        coordinator = self.coordinator
        events: list[Event] = [
            SoundsEvent(sounds=self._sounds.list_sounds()),
            RoomsEvent(rooms=coordinator.list_rooms()),
        ]
        for room_id in coordinator.rooms:
            state = coordinator.room_state(room_id)
            events.append(
                StatusEvent(room_id=room_id, connected=state.connected, channel=state.channel)
            )
            events.append(NowPlayingEvent(room_id=room_id, name=state.now_playing))
        events.append(self._history_event())
        events.append(VolumeEvent(value=coordinator.volume))
        return events

    async def _send_error(self, observer: Observer, exc: SoundboardError) -> None:
        await self._send(observer, ErrorEvent(message=exc.message, code=exc.code))

    async def _send(self, observer: Observer, event: Event) -> bool:
        return await self._send_raw(observer, event.to_json())

    async def _send_raw(self, observer: Observer, data: str) -> bool:
        if not observer.writable:
            return False
        try:
            await observer.websocket.send_text(data)
        except (WebSocketDisconnect, RuntimeError) as exc:
            logger.debug("Failed to send websocket message: %s", exc)
            return False
        return True
