"""Output folder bucketing for Song Picker.

The ordered songs are copied into numbered folders (``01``, ``02``,
...) that each stay within a fixed size budget, e.g. one CD worth of
MP3s.  Inside a folder every file is renamed with its position so that
players which sort by file name keep the play order::

    01/001 - Song One.mp3
    01/002 - Another Song.mp3
    02/001 - Next Disc Opener.mp3

Leading track numbers, dashes and spaces of the original file name are
dropped before the position prefix is added (``"07 - Song.mp3"`` becomes
``"001 - Song.mp3"``).

A new folder is opened for the first song and whenever adding the next
song would push the current folder past ``max_folder_bytes``.  A single
song larger than the budget ends up alone in its own folder.
"""

from __future__ import annotations

import os
import re
import shutil
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, List

from . import tuning
from .library import Song

# Digits/dashes up to the first space, then any run of spaces/dashes.
_LEADING_TRACK_RE = re.compile(r"^[\d-]*(?: [ -]*)?")


def clean_file_name(name: str) -> str:
    """Strip a leading track number and separators from ``name``."""
    return _LEADING_TRACK_RE.sub("", name, count=1)


def copy_file(src: Path, dst: Path) -> None:
    """Copy the bytes of ``src`` to ``dst``, creating parent folders.

    The data goes to a ``.part`` sibling first and is renamed into place
    only once complete, so a failed copy never leaves a truncated ``dst``.
    """
    dst.parent.mkdir(parents=True, exist_ok=True)
    partial = dst.with_name(dst.name + ".part")
    try:
        shutil.copyfile(str(src), str(partial))
        os.replace(str(partial), str(dst))
    except BaseException:
        partial.unlink(missing_ok=True)
        raise


@dataclass(frozen=True)
class PlannedCopy:
    index: int
    folder: int
    song: Song
    dest: Path

    @property
    def source(self) -> Path:
        return self.song.source_path


@dataclass
class BucketService:
    """Split an ordered song sequence into size-bounded numbered folders."""

    dest_dir: Path
    max_folder_bytes: int = tuning.MAX_FOLDER_BYTES
    folder_name_width: int = tuning.FOLDER_NAME_WIDTH
    file_index_width: int = tuning.FILE_INDEX_WIDTH

    def __post_init__(self) -> None:
        self.dest_dir = Path(self.dest_dir)
        if self.max_folder_bytes <= 0:
            raise ValueError(f"max_folder_bytes must be positive, got {self.max_folder_bytes}")

    def folder_name(self, folder: int) -> str:
        return f"{folder:0{self.folder_name_width}d}"

    def file_name(self, position: int, source: Path) -> str:
        return f"{position:0{self.file_index_width}d} - {clean_file_name(source.name)}"

    def plan(self, songs: Iterable[Song]) -> List[PlannedCopy]:
        """Return the destination of every song, in play order.

        ``songs`` is consumed exactly once.
        """
        planned: List[PlannedCopy] = []
        folder = 0
        folder_bytes = 0
        position = 0
        for index, song in enumerate(songs, start=1):
            if folder == 0 or (position > 0 and folder_bytes + song.size_bytes > self.max_folder_bytes):
                folder += 1
                folder_bytes = 0
                position = 0
            position += 1
            folder_bytes += song.size_bytes
            dest = self.dest_dir / self.folder_name(folder) / self.file_name(position, song.source_path)
            planned.append(PlannedCopy(index=index, folder=folder, song=song, dest=dest))
        return planned
