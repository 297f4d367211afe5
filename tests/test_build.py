"""Tests for graph construction."""

import pytest

from conftest import make_track
from playlistgraph.build import (
    ARTIST_GENRE,
    PLAYLIST_SONG,
    SONG_ARTIST,
    SONG_GENRE,
    BuilderClosed,
    GraphBuilder,
    build_graph,
    edge_id,
)
from playlistgraph.normalize import normalize
from playlistgraph.sizing import ARTIST, GENRE, PLAYLIST, SONG


class TestScenario:
    def test_node_counts(self, scenario_graph):
        pg = scenario_graph
        assert len(pg.nodes_of_type(PLAYLIST)) == 2
        assert len(pg.nodes_of_type(SONG)) == 2
        assert len(pg.nodes_of_type(ARTIST)) == 1
        assert len(pg.nodes_of_type(GENRE)) == 2

    def test_song_playlist_count(self, scenario_graph):
        assert scenario_graph.node("s_spotify:track:t1")["playlist_count"] == 2
        assert scenario_graph.node("s_spotify:track:t2")["playlist_count"] == 1

    def test_artist_connection_count(self, scenario_graph):
        assert scenario_graph.node("a_A1")["connection_count"] == 2

    def test_song_genre_shortcuts(self, scenario_graph):
        shortcuts = set(scenario_graph.edges_of_relation(SONG_GENRE))
        assert shortcuts == {
            ("s_spotify:track:t1", "g_pop"),
            ("s_spotify:track:t1", "g_rock"),
            ("s_spotify:track:t2", "g_pop"),
            ("s_spotify:track:t2", "g_rock"),
        }

    def test_edge_counts_per_relation(self, scenario_graph):
        pg = scenario_graph
        assert len(pg.edges_of_relation(PLAYLIST_SONG)) == 3
        assert len(pg.edges_of_relation(SONG_ARTIST)) == 2
        assert len(pg.edges_of_relation(ARTIST_GENRE)) == 2
        assert len(pg.edges_of_relation(SONG_GENRE)) == 4

    def test_genre_degree_counts_artist_and_song_edges(self, scenario_graph):
        # 1 artist-genre edge + 2 song-genre shortcuts
        assert scenario_graph.node("g_pop")["count"] == 3

    def test_playlist_track_count(self, scenario_graph):
        assert scenario_graph.node("p_P1")["track_count"] == 2
        assert scenario_graph.node("p_P2")["track_count"] == 1

    def test_edge_ids(self, scenario_graph):
        assert edge_id("p_P1", "s_spotify:track:t1", PLAYLIST_SONG) in scenario_graph.edge_ids()
        assert "a_A1-g_pop-artist-genre" in scenario_graph.edge_ids()

    def test_everything_starts_visible_and_unhighlighted(self, scenario_graph):
        for _, attrs in scenario_graph.graph.nodes(data=True):
            assert attrs["hidden"] is False
            assert attrs["scale"] == 1.0
            assert attrs["display_color"] == attrs["color"]


class TestDedup:
    def test_song_in_n_playlists_is_one_node(self):
        track = make_track("spotify:track:same", "Same")
        playlists = [{"id": f"P{i}", "name": str(i), "tracks": [dict(track)]} for i in range(5)]
        pg = build_graph(playlists)
        assert pg.nodes_of_type(SONG) == ["s_spotify:track:same"]
        assert pg.node("s_spotify:track:same")["playlist_count"] == 5

    def test_song_listed_twice_in_one_playlist(self):
        track = make_track("spotify:track:dup", "Dup")
        pg = build_graph([{"id": "P", "tracks": [track, dict(track)]}])
        assert pg.node("s_spotify:track:dup")["playlist_count"] == 1
        assert len(pg.edges_of_relation(PLAYLIST_SONG)) == 1

    def test_genre_collapse_across_artists(self, two_artist_library):
        pg = build_graph(*two_artist_library)
        genres = pg.nodes_of_type(GENRE)
        assert sorted(genres) == ["g_hip-hop", "g_jazz"]
        # first sighting keeps its label
        assert pg.node("g_hip-hop")["label"] == "Hip Hop"

    def test_first_playlist_metadata_wins(self):
        pg = build_graph(
            [
                {"id": "P", "name": "First", "tracks": [make_track("u1", "a")]},
                {"id": "P", "name": "Second", "tracks": [make_track("u2", "b"), make_track("u3", "c")]},
            ]
        )
        assert pg.node("p_P")["label"] == "First"
        assert pg.node("p_P")["track_count"] == 1
        # tracks from the repeat sighting are still linked
        assert len(pg.edges_of_relation(PLAYLIST_SONG)) == 3

    def test_legacy_artists_share_identity_by_name(self, legacy_library):
        pg = build_graph(*legacy_library)
        assert sorted(pg.nodes_of_type(ARTIST)) == ["a_a-ap-rocky", "a_guns-n-roses"]
        assert pg.node("a_guns-n-roses")["connection_count"] == 2
        assert pg.nodes_of_type(GENRE) == []


class TestDeterminism:
    def test_rebuild_same_sets(self, scenario_library):
        a = build_graph(*scenario_library)
        b = build_graph(*scenario_library)
        assert a.node_ids() == b.node_ids()
        assert a.edge_ids() == b.edge_ids()
        assert dict(a.graph.nodes(data=True)) == dict(b.graph.nodes(data=True))

    def test_rebuild_does_not_share_state(self, scenario_library):
        a = build_graph(*scenario_library)
        b = build_graph(*scenario_library)
        assert a.graph is not b.graph
        a.graph.nodes["p_P1"]["hidden"] = True
        assert b.graph.nodes["p_P1"]["hidden"] is False


class TestErrorHandling:
    def test_empty_input_is_empty_graph(self):
        pg = build_graph([], [], [])
        assert len(pg) == 0
        assert pg.edge_ids() == set()
        assert pg.skipped == 0

    def test_unknown_artist_keeps_song(self):
        playlists = [{"id": "P", "tracks": [make_track("u1", "Song", ["missing", "A1"])]}]
        artists = [{"id": "A1", "name": "Known", "genres": ["pop"]}]
        pg = build_graph(playlists, artists)
        assert "s_u1" in pg.graph
        assert ("p_P", "s_u1") in pg.edges_of_relation(PLAYLIST_SONG)
        assert pg.nodes_of_type(ARTIST) == ["a_A1"]
        assert pg.unresolved_artists == 1

    def test_all_artists_unknown(self):
        playlists = [{"id": "P", "tracks": [make_track("u1", "Song", ["missing"])]}]
        pg = build_graph(playlists, [])
        assert pg.nodes_of_type(ARTIST) == []
        assert pg.nodes_of_type(SONG) == ["s_u1"]

    def test_malformed_entries_counted(self):
        playlists = [
            {"name": "no id"},
            {"id": "P", "tracks": [{"name": "no uri"}, make_track("u1", "ok")]},
        ]
        pg = build_graph(playlists)
        assert pg.skipped == 2
        assert pg.nodes_of_type(SONG) == ["s_u1"]

    def test_genre_hints_do_not_drive_degree(self, scenario_library):
        playlists, artists, _ = scenario_library
        pg = build_graph(playlists, artists, [{"name": "Pop", "count": 999}])
        assert pg.node("g_pop")["hint_count"] == 999
        assert pg.node("g_pop")["count"] == 3


class TestGraphBuilder:
    def test_add_edge_idempotent(self):
        builder = GraphBuilder()
        builder.add_node("p_1", PLAYLIST, "P")
        builder.add_node("s_1", SONG, "S")
        assert builder.add_edge("p_1", "s_1", PLAYLIST_SONG) is True
        assert builder.add_edge("p_1", "s_1", PLAYLIST_SONG) is False
        assert builder.graph.number_of_edges() == 1

    def test_add_node_first_wins(self):
        builder = GraphBuilder()
        assert builder.add_node("p_1", PLAYLIST, "First") is True
        assert builder.add_node("p_1", PLAYLIST, "Second") is False
        assert builder.graph.nodes["p_1"]["label"] == "First"

    def test_rediscovered_artist_genre_still_records_shortcut(self, scenario_library):
        playlists, artists, _ = scenario_library
        normalized = normalize(playlists, artists)
        builder = GraphBuilder(normalized.artists)
        for p in normalized.playlists:
            builder.add_playlist(p)
        # t2 reached A1's genres only via edges that already existed
        assert set(builder.song_genres["s_spotify:track:t2"]) == {"g_pop", "g_rock"}

    def test_finished_builder_refuses_reuse(self):
        builder = GraphBuilder()
        builder.finish()
        with pytest.raises(BuilderClosed):
            builder.add_node("p_1", PLAYLIST, "P")
        with pytest.raises(BuilderClosed):
            builder.finish()
