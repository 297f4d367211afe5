"""Shared fixtures for PlaylistGraph tests."""

import matplotlib
import pytest

from playlistgraph.build import build_graph

# headless test runs; the library itself leaves the backend alone
matplotlib.use("Agg")


def make_track(uri, name, artist_ids=None, artist=None):
    track = {"uri": uri, "name": name, "album": "Album", "duration": 200000, "url": f"https://x/{uri}"}
    if artist_ids is not None:
        track["artistIds"] = artist_ids
    if artist is not None:
        track["artist"] = artist
    return track


@pytest.fixture
def scenario_library():
    """
    P1: T1, T2 (both by A1, genres pop + rock)
    P2: T1
    """
    t1 = make_track("spotify:track:t1", "Track One", ["A1"], "Artist One")
    t2 = make_track("spotify:track:t2", "Track Two", ["A1"], "Artist One")
    playlists = [
        {"id": "P1", "name": "Playlist One", "tracks": [t1, t2]},
        {"id": "P2", "name": "Playlist Two", "tracks": [dict(t1)]},
    ]
    artists = [{"id": "A1", "name": "Artist One", "genres": ["pop", "rock"]}]
    genres = [{"name": "pop", "count": 1}, {"name": "rock", "count": 1}]
    return playlists, artists, genres


@pytest.fixture
def scenario_graph(scenario_library):
    return build_graph(*scenario_library)


@pytest.fixture
def legacy_library():
    """Tracks with only the comma-joined artist string (no catalog ids)."""
    playlists = [
        {
            "id": "L1",
            "name": "Legacy",
            "tracks": [
                make_track("spotify:track:l1", "Duet", artist="Guns N' Roses, A$AP Rocky"),
                make_track("spotify:track:l2", "Solo", artist="guns n roses"),
            ],
        }
    ]
    return playlists, [], []


@pytest.fixture
def two_artist_library():
    """Same genre display name reached through two different artists."""
    playlists = [
        {
            "id": "P1",
            "name": "Mix",
            "tracks": [
                make_track("spotify:track:x", "X", ["A1"]),
                make_track("spotify:track:y", "Y", ["A2"]),
            ],
        }
    ]
    artists = [
        {"id": "A1", "name": "One", "genres": ["Hip Hop"]},
        {"id": "A2", "name": "Two", "genres": ["hip-hop", "Jazz"]},
    ]
    return playlists, artists, []
