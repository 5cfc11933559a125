"""ID3v1 tag reading for Song Picker.

An ID3v1 tag is a fixed 128 byte block at the very end of an MP3 file::

    offset  size  field
    0       3     "TAG" marker
    3       30    title
    33      30    artist
    63      30    album
    93      4     year
    97      29    comment
    126     1     track number (ID3v1.1, not decoded here)
    127     1     genre code

Text fields are padded with NULs or spaces.  They are decoded as
ISO-8859-1 so that any byte sequence yields a string; no further
validation is done.  A block without the marker is not an error, it
simply means the file carries no tag and :func:`parse_id3v1` returns
``None``.

Failing to read the block at all (missing file, file shorter than the
tag, I/O error) raises :class:`UnreadableFileError`.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Union

from . import tuning
from .library import Song

PathLike = Union[str, os.PathLike]

_PADDING = " \t\n\v\f\r\x00"
_FORMAT_ORDER = ("album", "artist", "title", "genre", "year", "comment")


class UnreadableFileError(OSError):
    """Raised when the trailing tag window of a file cannot be read."""

    def __init__(self, path: PathLike, reason: str) -> None:
        super().__init__(f"{path}: {reason}")
        self.path = Path(path)
        self.reason = reason


@dataclass(frozen=True)
class ID3v1Tag:
    title: str = ""
    artist: str = ""
    album: str = ""
    year: str = ""
    comment: str = ""
    genre: int = 0

    def __str__(self) -> str:
        return default_format(self)


def read_trailing_bytes(path: PathLike, n: int = tuning.TAG_SIZE) -> bytes:
    """Return exactly the last ``n`` bytes of ``path``."""
    try:
        with open(path, "rb") as f:
            size = f.seek(0, os.SEEK_END)
            if size < n:
                raise UnreadableFileError(path, f"file is {size} bytes, need at least {n}")
            f.seek(-n, os.SEEK_END)
            data = f.read(n)
    except UnreadableFileError:
        raise
    except OSError as exc:
        raise UnreadableFileError(path, exc.strerror or str(exc)) from exc
    if len(data) != n:
        raise UnreadableFileError(path, f"short read ({len(data)} of {n} bytes)")
    return data


def _text(raw: bytes) -> str:
    return raw.decode("latin-1").strip(_PADDING)


def parse_id3v1(data: bytes) -> Optional[ID3v1Tag]:
    """Decode a 128 byte ID3v1 block, or return ``None`` if it has no marker."""
    if len(data) < tuning.TAG_SIZE:
        raise ValueError(f"ID3v1 block must be {tuning.TAG_SIZE} bytes, got {len(data)}")
    if data[:3] != tuning.TAG_MARKER:
        return None
    return ID3v1Tag(
        title=_text(data[3:33]),
        artist=_text(data[33:63]),
        album=_text(data[63:93]),
        year=_text(data[93:97]),
        comment=_text(data[97:126]),
        genre=data[127],
    )


def default_format(tag: ID3v1Tag) -> str:
    """Render the tag as ``key=value`` lines (album, artist, title, genre, year, comment)."""
    return "".join(f"{key}={getattr(tag, key)}\n" for key in _FORMAT_ORDER)


def read_tag(path: PathLike) -> Optional[ID3v1Tag]:
    return parse_id3v1(read_trailing_bytes(path))


def read_song(path: PathLike) -> Song:
    """Build a :class:`Song` for ``path`` from its ID3v1 tag.

    Untagged files still produce a song, with empty artist, album and
    title.
    """
    tag = read_tag(path) or ID3v1Tag()
    p = Path(path)
    try:
        size = p.stat().st_size
    except OSError as exc:
        raise UnreadableFileError(p, exc.strerror or str(exc)) from exc
    return Song(
        artist=tag.artist,
        album=tag.album,
        title=tag.title,
        source_path=p,
        size_bytes=size,
    )
