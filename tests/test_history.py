from __future__ import annotations

from soundboard.schemas.users import UserSnapshot
from soundboard.services.history import HistoryBuffer, HistoryEntry

USER = UserSnapshot(id="1", username="tester")


def _entry(sound: str, at: int = 0, room_id: str = "111") -> HistoryEntry:
    return HistoryEntry(sound=sound, room_id=room_id, user=USER, at=at)


def test_entries_are_newest_first() -> None:
    history = HistoryBuffer(10)
    history.add(_entry("a.mp3", 1))
    history.add(_entry("b.mp3", 2))

    assert [entry.sound for entry in history.entries()] == ["b.mp3", "a.mp3"]


def test_capacity_prunes_oldest() -> None:
    history = HistoryBuffer(2)
    for index, name in enumerate(["a.mp3", "b.mp3", "c.mp3"]):
        history.add(_entry(name, index))

    assert len(history) == 2
    assert [entry.sound for entry in history.entries()] == ["c.mp3", "b.mp3"]


def test_zero_capacity_keeps_everything() -> None:
    history = HistoryBuffer(0)
    for index in range(300):
        history.add(_entry(f"{index}.mp3", index))

    assert len(history) == 300


def test_entries_returns_copy() -> None:
    history = HistoryBuffer(5)
    history.add(_entry("a.mp3"))

    history.entries().clear()

    assert len(history) == 1


def test_serialize_resolves_room_names_at_read_time() -> None:
    history = HistoryBuffer(5)
    history.add(_entry("a.mp3", 7, room_id="222"))
    names = {"222": "Old"}

    names["222"] = "Renamed"
    records = history.serialize(lambda room_id: names[room_id])

    assert records[0].room_name == "Renamed"
    assert records[0].model_dump(by_alias=True)["roomId"] == "222"
