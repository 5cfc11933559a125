"""In-memory song library for Song Picker.

Songs are grouped two levels deep: artist -> album -> songs.  The
:class:`LibraryIndex` is built once per run by the engine and then read
by the shuffle service.  Nothing is ever removed from it.

Album and artist buckets are created lazily the first time a song for
them arrives, so every bucket holds at least one song.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Iterator, List


@dataclass(frozen=True)
class Song:
    """One audio track and the metadata it was filed under."""

    artist: str
    album: str
    title: str
    source_path: Path
    size_bytes: int = 0

    def __post_init__(self) -> None:
        if self.size_bytes < 0:
            raise ValueError(f"size_bytes must be >= 0, got {self.size_bytes}")


@dataclass
class Album:
    name: str
    songs: List[Song] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.songs)


@dataclass
class Artist:
    name: str
    albums: Dict[str, Album] = field(default_factory=dict)

    def get_or_create_album(self, name: str) -> Album:
        """Return the album called ``name``, creating it if needed."""
        album = self.albums.get(name)
        if album is None:
            album = Album(name=name)
            self.albums[name] = album
        return album

    def add_song(self, song: Song) -> None:
        self.get_or_create_album(song.album).songs.append(song)

    @property
    def song_count(self) -> int:
        return sum(len(album) for album in self.albums.values())


@dataclass
class LibraryIndex:
    """Artist name -> :class:`Artist` mapping for a single run."""

    artists: Dict[str, Artist] = field(default_factory=dict)

    def __len__(self) -> int:
        return len(self.artists)

    def get_or_create_artist(self, name: str) -> Artist:
        artist = self.artists.get(name)
        if artist is None:
            artist = Artist(name=name)
            self.artists[name] = artist
        return artist

    def add_song(self, song: Song) -> None:
        self.get_or_create_artist(song.artist).add_song(song)

    @property
    def song_count(self) -> int:
        return sum(artist.song_count for artist in self.artists.values())

    def songs(self) -> Iterator[Song]:
        """Yield every song in ingestion order, grouped by artist and album."""
        for artist in self.artists.values():
            for album in artist.albums.values():
                yield from album.songs

    def list_all_sorted(self) -> List[Artist]:
        """Return artists (and their albums) sorted by name.

        This ordering exists for display and debugging only; the shuffle
        service never relies on it.
        """
        result: List[Artist] = []
        for name in sorted(self.artists):
            artist = self.artists[name]
            albums = {key: artist.albums[key] for key in sorted(artist.albums)}
            result.append(Artist(name=artist.name, albums=albums))
        return result

    def format_listing(self) -> str:
        lines: List[str] = []
        for artist in self.list_all_sorted():
            lines.append(f"Artist: {artist.name}")
            for album in artist.albums.values():
                lines.append(f"  {album.name}")
                for song in album.songs:
                    lines.append(f"    {song.title}")
        return "\n".join(lines)
