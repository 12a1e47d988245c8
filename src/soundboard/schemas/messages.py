"""Websocket message schemas exchanged with observers.

Outbound events are tagged by their ``type`` literal and serialized with
camelCase keys. Inbound commands are looked up by ``type`` and validated with
the matching model.
"""

from __future__ import annotations

import json
from typing import Any, Literal, Union

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, ValidationError
from pydantic.alias_generators import to_camel

from soundboard.errors import MalformedMessage, UnknownCommand
from soundboard.schemas.users import UserSnapshot


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ---------------------------------------------------------------------------
# Shared payload fragments
# ---------------------------------------------------------------------------


class RoomInfo(_CamelModel):
    """Display data for a room as shown in the room catalog."""

    id: str
    name: str
    icon: str | None = None


class HistoryRecord(_CamelModel):
    """History entry as sent to observers, with the room name resolved."""

    sound: str
    at: int
    user: UserSnapshot
    room_id: str
    room_name: str


# ---------------------------------------------------------------------------
# Outbound events
# ---------------------------------------------------------------------------


class Event(_CamelModel):
    """Base class for every message sent to observers."""

    type: str

    def to_json(self) -> str:
        return self.model_dump_json(by_alias=True)


class SoundsEvent(Event):
    type: Literal["sounds"] = "sounds"
    sounds: list[str]


class RoomsEvent(Event):
    type: Literal["rooms"] = "rooms"
    rooms: list[RoomInfo]


class StatusEvent(Event):
    type: Literal["status"] = "status"
    room_id: str
    connected: bool
    channel: str | None = None


class NowPlayingEvent(Event):
    type: Literal["nowPlaying"] = "nowPlaying"
    room_id: str
    name: str | None = None


class HistoryEvent(Event):
    type: Literal["history"] = "history"
    entries: list[HistoryRecord]


class VolumeEvent(Event):
    type: Literal["volume"] = "volume"
    value: float


class PlayAck(Event):
    type: Literal["ack"] = "ack"
    action: Literal["play"] = "play"
    ok: bool = True
    name: str
    user: UserSnapshot
    at: int
    room_id: str
    room_name: str


class VolumeAck(Event):
    type: Literal["ack"] = "ack"
    action: Literal["setVolume"] = "setVolume"
    ok: bool = True
    value: float
    room_id: str


class ErrorEvent(Event):
    type: Literal["error"] = "error"
    message: str
    code: str | None = None


class PingEvent(Event):
    type: Literal["ping"] = "ping"


class PongEvent(Event):
    type: Literal["pong"] = "pong"


OutboundEvent = Union[
    SoundsEvent,
    RoomsEvent,
    StatusEvent,
    NowPlayingEvent,
    HistoryEvent,
    VolumeEvent,
    PlayAck,
    VolumeAck,
    ErrorEvent,
    PingEvent,
    PongEvent,
]


# ---------------------------------------------------------------------------
# Inbound commands
# ---------------------------------------------------------------------------


class _Command(BaseModel):
    model_config = ConfigDict(coerce_numbers_to_str=True, extra="ignore")


class PlayCommand(_Command):
    type: Literal["play"]
    name: str | None = None
    token: str | None = None
    room_id: str | None = Field(
        default=None, validation_alias=AliasChoices("roomId", "guildId", "room_id")
    )


class SetVolumeCommand(_Command):
    type: Literal["setVolume"]
    value: Any = None
    token: str | None = None
    room_id: str | None = Field(
        default=None, validation_alias=AliasChoices("roomId", "guildId", "room_id")
    )


class ListCommand(_Command):
    type: Literal["list"]


class PingCommand(_Command):
    type: Literal["ping"]


class PongCommand(_Command):
    type: Literal["pong"]


Command = Union[PlayCommand, SetVolumeCommand, ListCommand, PingCommand, PongCommand]

_COMMANDS: dict[str, type[_Command]] = {
    "play": PlayCommand,
    "setVolume": SetVolumeCommand,
    "list": ListCommand,
    "ping": PingCommand,
    "pong": PongCommand,
}


def parse_command(raw: str | bytes) -> Command:
    """Decode an observer message into a command model."""

    try:
        payload = json.loads(raw)
    except (json.JSONDecodeError, UnicodeDecodeError) as exc:
        raise MalformedMessage("Invalid JSON payload.") from exc
    if not isinstance(payload, dict):
        raise MalformedMessage("Message must be a JSON object.")

    command_type = payload.get("type")
    model = _COMMANDS.get(command_type) if isinstance(command_type, str) else None
    if model is None:
        raise UnknownCommand()
    try:
        return model.model_validate(payload)  # type: ignore[return-value]
    except ValidationError as exc:
        raise MalformedMessage("Invalid command payload.") from exc


__all__ = [
    "RoomInfo",
    "HistoryRecord",
    "Event",
    "SoundsEvent",
    "RoomsEvent",
    "StatusEvent",
    "NowPlayingEvent",
    "HistoryEvent",
    "VolumeEvent",
    "PlayAck",
    "VolumeAck",
    "ErrorEvent",
    "PingEvent",
    "PongEvent",
    "OutboundEvent",
    "PlayCommand",
    "SetVolumeCommand",
    "ListCommand",
    "PingCommand",
    "PongCommand",
    "Command",
    "parse_command",
]
