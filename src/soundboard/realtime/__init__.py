"""Playback coordination and observer fan-out."""

from .coordinator import PlaybackCoordinator, RoomState, RoomStatus, clamp_volume
from .hub import BroadcastHub, Observer

__all__ = [
    "BroadcastHub",
    "Observer",
    "PlaybackCoordinator",
    "RoomState",
    "RoomStatus",
    "clamp_volume",
]
