import sys
from pathlib import Path
from typing import Callable

import pytest

# Add the src directory to sys.path so that song_picker can be imported
SRC_DIR = Path(__file__).resolve().parents[1] / "src"
sys.path.insert(0, str(SRC_DIR))


def build_id3v1(
    title: str = "",
    artist: str = "",
    album: str = "",
    year: str = "",
    comment: str = "",
    genre: int = 0,
    track: int = 0,
) -> bytes:
    """Return a 128 byte ID3v1.1 block with NUL padded fields."""

    def pad(text: str, size: int) -> bytes:
        raw = text.encode("latin-1")[:size]
        return raw + b"\x00" * (size - len(raw))

    block = (
        b"TAG"
        + pad(title, 30)
        + pad(artist, 30)
        + pad(album, 30)
        + pad(year, 4)
        + pad(comment, 28)
        + b"\x00"
        + bytes([track])
        + bytes([genre])
    )
    assert len(block) == 128
    return block


@pytest.fixture
def write_mp3() -> Callable[..., Path]:
    """Factory writing a fake MP3 (audio bytes + ID3v1 trailer)."""

    def _write(path: Path, audio_bytes: int = 512, tagged: bool = True, **fields) -> Path:
        path.parent.mkdir(parents=True, exist_ok=True)
        body = b"\xff\xfb" + b"\x00" * max(0, audio_bytes - 2)
        trailer = build_id3v1(**fields) if tagged else b"\x00" * 128
        path.write_bytes(body + trailer)
        return path

    return _write
