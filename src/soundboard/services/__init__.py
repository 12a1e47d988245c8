"""Application service helpers."""

from .history import HistoryBuffer, HistoryEntry
from .oauth import DiscordOAuthClient
from .sounds import ResolvedClip, SoundLibrary

__all__ = [
    "HistoryBuffer",
    "HistoryEntry",
    "DiscordOAuthClient",
    "ResolvedClip",
    "SoundLibrary",
]
