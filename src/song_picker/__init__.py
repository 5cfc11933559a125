"""Song Picker package

This package contains the ID3v1 reader, the song library, the weighted
shuffle that interleaves artists and albums, the folder bucketing used
to split the result into disc-sized folders, and a command-line
interface tying them together.

Public classes are re-exported here for convenience.
"""

from .engine import SongPickerEngine  # noqa: F401
from .config_service import ConfigService  # noqa: F401
from .bucket_service import BucketService  # noqa: F401
from .library import Album, Artist, LibraryIndex, Song  # noqa: F401
from .shuffle_service import basic_random, distribute  # noqa: F401
from .tag_service import ID3v1Tag, UnreadableFileError, read_song  # noqa: F401

__all__ = [
    "SongPickerEngine",
    "ConfigService",
    "BucketService",
    "Album",
    "Artist",
    "LibraryIndex",
    "Song",
    "basic_random",
    "distribute",
    "ID3v1Tag",
    "UnreadableFileError",
    "read_song",
]
