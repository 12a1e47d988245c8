"""Clip catalog backed by one or more sound directories."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable

logger = logging.getLogger(__name__)

SOUND_FILE_PATTERN = re.compile(r"\.(mp3|wav|ogg|flac)\Z", re.IGNORECASE)


@dataclass(slots=True, frozen=True)
class ResolvedClip:
    name: str
    path: Path


def _base_name(name: str) -> str:
    return name.replace("\\", "/").rsplit("/", 1)[-1].strip()


class SoundLibrary:
    """List and resolve playable clips across the configured directories.

    When the same file name exists in several directories the first directory
    wins, both for listing and for resolution.
    """

    def __init__(self, directories: Iterable[Path | str]) -> None:
        self._directories = [Path(directory).resolve() for directory in directories]

    @property
    def directories(self) -> list[Path]:
        return list(self._directories)

    def list_sounds(self) -> list[str]:
        seen: set[str] = set()
        for directory in self._directories:
            try:
                children = list(directory.iterdir())
            except OSError:
                logger.exception("Error reading sounds directory %s", directory)
                continue
            for child in children:
                if SOUND_FILE_PATTERN.search(child.name) and child.is_file():
                    seen.add(child.name)
        return sorted(seen, key=str.casefold)

    def resolve(self, name: object) -> ResolvedClip | None:
        """Map a clip name to a file inside one of the sound directories."""

        if not isinstance(name, str):
            return None
        safe_name = _base_name(name)
        if safe_name in {"", ".", ".."} or "\x00" in safe_name:
            return None
        if not SOUND_FILE_PATTERN.search(safe_name):
            return None

        for directory in self._directories:
            candidate = directory / safe_name
            if candidate.parent != directory:
                continue
            if candidate.is_file():
                return ResolvedClip(name=safe_name, path=candidate)
        return None
