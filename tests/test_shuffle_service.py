"""Tests for the weighted interleaving shuffle."""

import math
from collections import Counter
from pathlib import Path
from typing import List

import numpy as np
import pytest

from song_picker.library import Album, Artist, LibraryIndex, Song
from song_picker.shuffle_service import (
    assign_weights,
    basic_random,
    distribute,
    distribute_weighted,
    make_rng,
    slot_parameters,
    weight_album,
    weight_artist,
)


def make_song(artist: str, album: str, title: str) -> Song:
    return Song(artist=artist, album=album, title=title, source_path=Path(f"/music/{artist}/{album}/{title}.mp3"))


def build_library(layout: dict) -> LibraryIndex:
    """``layout`` maps artist -> album -> number of songs."""
    library = LibraryIndex()
    for artist, albums in layout.items():
        for album, count in albums.items():
            for i in range(count):
                library.add_song(make_song(artist, album, f"{album}-{i + 1}"))
    return library


# ============================================================================
# Slot parameters
# ============================================================================

def test_slot_parameters_single_item():
    distribution, variability = slot_parameters(1)
    # 1/2 halved, then jitter doubled
    assert distribution == pytest.approx(0.25)
    assert variability == pytest.approx(0.5)


@pytest.mark.parametrize("n", [1, 2, 3, 10, 1000])
def test_slot_parameters_finite_and_positive(n):
    distribution, variability = slot_parameters(n)
    assert math.isfinite(distribution) and distribution > 0
    assert math.isfinite(variability) and variability > 0
    # Mean step equals the nominal slot width 1/(n+1).
    assert distribution + variability / 2 == pytest.approx(1.0 / (n + 1))


def test_slot_parameters_rejects_empty_group():
    with pytest.raises(ValueError):
        slot_parameters(0)


# ============================================================================
# Weight assignment
# ============================================================================

@pytest.mark.parametrize("n", [1, 2, 5, 30])
def test_weights_strictly_increasing_in_visiting_order(n):
    songs = [make_song("A", "X", str(i)) for i in range(n)]
    for seed in range(20):
        weighted = assign_weights(songs, make_rng(seed))
        assert [ws.song for ws in weighted] == songs
        weights = [ws.weight for ws in weighted]
        assert weights[0] > 0
        assert all(a < b for a, b in zip(weights, weights[1:]))
        assert weights[-1] < 1.5


@pytest.mark.parametrize("n", [1, 2])
def test_small_group_weights_inside_unit_interval(n):
    songs = [make_song("A", "X", str(i)) for i in range(n)]
    for seed in range(50):
        for ws in assign_weights(songs, make_rng(seed)):
            assert 0.0 < ws.weight < 1.0


def test_assign_weights_empty():
    assert assign_weights([], make_rng(0)) == []


def test_weight_album_is_permutation_of_album():
    album = Album(name="X", songs=[make_song("A", "X", str(i)) for i in range(8)])
    weighted = weight_album(album, make_rng(3))
    assert Counter(ws.song for ws in weighted) == Counter(album.songs)
    weights = [ws.weight for ws in weighted]
    assert weights == sorted(weights)


def test_weight_album_visits_in_random_order():
    album = Album(name="X", songs=[make_song("A", "X", str(i)) for i in range(6)])
    orders = {tuple(ws.song.title for ws in weight_album(album, make_rng(seed))) for seed in range(30)}
    assert len(orders) > 1


def test_weight_artist_preserves_songs_and_reweights():
    artist = Artist(name="A")
    for album, count in (("X", 4), ("Y", 2), ("Z", 1)):
        for i in range(count):
            artist.add_song(make_song("A", album, str(i)))
    weighted = weight_artist(artist, make_rng(11))
    all_songs = [s for album in artist.albums.values() for s in album.songs]
    assert len(weighted) == len(all_songs) == 7
    assert set(ws.song for ws in weighted) == set(all_songs)
    weights = [ws.weight for ws in weighted]
    assert all(a < b for a, b in zip(weights, weights[1:]))


def test_single_song_artist_has_finite_weight():
    library = build_library({"Solo": {"Only": 1}})
    weighted = distribute_weighted(library, make_rng(0))
    assert len(weighted) == 1
    assert math.isfinite(weighted[0].weight)
    assert 0.25 <= weighted[0].weight < 0.75


# ============================================================================
# Global distribution
# ============================================================================

def test_distribute_is_permutation_of_library():
    library = build_library({"A": {"X": 5, "Y": 3}, "B": {"Z": 4}, "C": {"W": 1}})
    songs = distribute(library, make_rng(5))
    expected = list(library.songs())
    assert len(songs) == len(expected)
    assert set(songs) == set(expected)


def test_distribute_sorted_by_final_weight():
    library = build_library({"A": {"X": 5}, "B": {"Z": 4}})
    weighted = distribute_weighted(library, make_rng(8))
    weights = [ws.weight for ws in weighted]
    assert weights == sorted(weights)


def test_same_seed_same_order():
    library = build_library({"A": {"X": 6, "Y": 4}, "B": {"Z": 5}, "C": {"W": 3}})
    assert distribute(library, make_rng(1234)) == distribute(library, make_rng(1234))


def test_different_seeds_differ():
    library = build_library({"A": {"X": 6, "Y": 4}, "B": {"Z": 5}, "C": {"W": 3}})
    orders = {tuple(s.title for s in distribute(library, make_rng(seed))) for seed in range(5)}
    assert len(orders) > 1


def test_distribute_without_rng():
    library = build_library({"A": {"X": 3}})
    assert set(distribute(library)) == set(library.songs())


def test_empty_library():
    assert distribute(LibraryIndex(), make_rng(0)) == []


def test_two_artist_scenario():
    library = LibraryIndex()
    s1 = make_song("A", "X", "s1")
    s2 = make_song("A", "X", "s2")
    s3 = make_song("A", "Y", "s3")
    s4 = make_song("B", "Z", "s4")
    for song in (s1, s2, s3, s4):
        library.add_song(song)

    ordered = distribute(library, make_rng(42))
    assert sorted(ordered, key=lambda s: s.title) == [s1, s2, s3, s4]

    saw_apart = False
    for seed in range(200):
        order = distribute(library, make_rng(seed))
        if abs(order.index(s1) - order.index(s2)) > 1:
            saw_apart = True
            break
    assert saw_apart


def _max_same_artist_run(songs: List[Song]) -> int:
    best = run = 1
    for prev, cur in zip(songs, songs[1:]):
        run = run + 1 if cur.artist == prev.artist else 1
        best = max(best, run)
    return best


def test_weighted_spreads_artists_better_than_basic_random():
    library = build_library({"A": {"X": 10}, "B": {"Y": 10}})
    weighted_runs = []
    random_runs = []
    for seed in range(100):
        weighted_runs.append(_max_same_artist_run(distribute(library, make_rng(seed))))
        random_runs.append(_max_same_artist_run(basic_random(list(library.songs()), make_rng(seed))))
    assert np.mean(weighted_runs) < np.mean(random_runs)


# ============================================================================
# Basic random
# ============================================================================

def test_basic_random_is_permutation():
    songs = [make_song("A", "X", str(i)) for i in range(10)]
    shuffled = basic_random(songs, make_rng(0))
    assert sorted(shuffled, key=lambda s: int(s.title)) == songs


def test_basic_random_deterministic_under_seed():
    songs = [make_song("A", "X", str(i)) for i in range(10)]
    assert basic_random(songs, make_rng(9)) == basic_random(songs, make_rng(9))
