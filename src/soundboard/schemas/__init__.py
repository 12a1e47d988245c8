"""Pydantic schemas for websocket and HTTP payloads."""

from .messages import (
    Command,
    ErrorEvent,
    Event,
    HistoryEvent,
    HistoryRecord,
    ListCommand,
    NowPlayingEvent,
    OutboundEvent,
    PingCommand,
    PingEvent,
    PlayAck,
    PlayCommand,
    PongCommand,
    PongEvent,
    RoomInfo,
    RoomsEvent,
    SetVolumeCommand,
    SoundsEvent,
    StatusEvent,
    VolumeAck,
    VolumeEvent,
    parse_command,
)
from .users import UserSnapshot

__all__ = [
    "UserSnapshot",
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
    "Command",
    "PlayCommand",
    "SetVolumeCommand",
    "ListCommand",
    "PingCommand",
    "PongCommand",
    "parse_command",
]
