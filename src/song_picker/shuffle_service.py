"""Play-order generation for Song Picker.

The weighted shuffle spreads songs of the same album and artist apart.
Every group (an album, then an artist) gets its members placed into
roughly even slots across the unit interval with a random offset inside
each slot::

    distribution = 1 / (n + 1)
    variability  = distribution / 2
    distribution -= variability      # fixed part of each step
    variability  *= 2                # random part of each step

    weight_i = sum(distribution + U[0, 1) * variability for the first i items)

Albums are weighted in a random permutation of their songs.  An
artist's albums are then merged by that weight and the merged sequence
is weighted again over all of the artist's songs.  Sorting every
artist's songs together by the second weight gives the play order.
Because each group was already spread over the whole interval, merging
groups by position keeps siblings apart.

Randomness comes from an explicit :class:`numpy.random.Generator` so
callers (and tests) can pin a seed.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple

import numpy as np

from .library import Album, Artist, LibraryIndex, Song


@dataclass
class WeightedSong:
    song: Song
    weight: float


def make_rng(seed: Optional[int] = None) -> np.random.Generator:
    """Return a generator; ``None`` seeds from OS entropy."""
    return np.random.default_rng(seed)


def slot_parameters(n: int) -> Tuple[float, float]:
    """Return ``(distribution, variability)`` for a group of ``n`` items."""
    if n < 1:
        raise ValueError(f"group size must be >= 1, got {n}")
    distribution = 1.0 / float(n + 1)
    variability = distribution / 2.0
    distribution -= variability
    variability *= 2.0
    return distribution, variability


def assign_weights(songs: Sequence[Song], rng: np.random.Generator) -> List[WeightedSong]:
    """Give each song an increasing, jittered weight in visiting order."""
    if not songs:
        return []
    distribution, variability = slot_parameters(len(songs))
    steps = distribution + rng.random(len(songs)) * variability
    weights = np.cumsum(steps)
    return [WeightedSong(song=song, weight=float(w)) for song, w in zip(songs, weights)]


def _sort_by_weight(pool: List[WeightedSong]) -> List[WeightedSong]:
    # Python's sort is stable, so equal weights keep their pool order.
    return sorted(pool, key=lambda ws: ws.weight)


def weight_album(album: Album, rng: np.random.Generator) -> List[WeightedSong]:
    order = rng.permutation(len(album.songs))
    return assign_weights([album.songs[i] for i in order], rng)


def weight_artist(artist: Artist, rng: np.random.Generator) -> List[WeightedSong]:
    """Merge an artist's albums and re-weight the merged sequence."""
    pool: List[WeightedSong] = []
    for album in artist.albums.values():
        pool.extend(weight_album(album, rng))
    merged = _sort_by_weight(pool)
    return assign_weights([ws.song for ws in merged], rng)


def distribute_weighted(library: LibraryIndex, rng: np.random.Generator) -> List[WeightedSong]:
    pool: List[WeightedSong] = []
    for artist in library.artists.values():
        pool.extend(weight_artist(artist, rng))
    return _sort_by_weight(pool)


def distribute(library: LibraryIndex, rng: Optional[np.random.Generator] = None) -> List[Song]:
    """Return every song of ``library`` in interleaved play order."""
    if rng is None:
        rng = make_rng()
    return [ws.song for ws in distribute_weighted(library, rng)]


def basic_random(songs: Sequence[Song], rng: Optional[np.random.Generator] = None) -> List[Song]:
    """Plain uniform shuffle, with no artist or album spreading."""
    if rng is None:
        rng = make_rng()
    return [songs[i] for i in rng.permutation(len(songs))]
