"""Bounded, newest-first log of playback actions."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable

from soundboard.schemas.messages import HistoryRecord
from soundboard.schemas.users import UserSnapshot


@dataclass(slots=True, frozen=True)
class HistoryEntry:
    """A clip played by a user into a room."""

    sound: str
    room_id: str
    user: UserSnapshot
    at: int


class HistoryBuffer:
    """Keeps the most recent *capacity* entries, newest first.

    A capacity of zero or less disables pruning and the log grows without
    bound.
    """

    def __init__(self, capacity: int) -> None:
        self._capacity = capacity
        self._entries: list[HistoryEntry] = []

    @property
    def capacity(self) -> int:
        return self._capacity

    def __len__(self) -> int:
        return len(self._entries)

    def add(self, entry: HistoryEntry) -> None:
        self._entries.insert(0, entry)
        if self._capacity > 0 and len(self._entries) > self._capacity:
            del self._entries[self._capacity :]

    def entries(self) -> list[HistoryEntry]:
        return list(self._entries)

    def serialize(self, resolve_room_name: Callable[[str], str]) -> list[HistoryRecord]:
        """Return the client view, looking room names up at read time."""

        return [
            HistoryRecord(
                sound=entry.sound,
                at=entry.at,
                user=entry.user,
                room_id=entry.room_id,
                room_name=resolve_room_name(entry.room_id),
            )
            for entry in self._entries
        ]
