"""Tests for the per-view session lifecycle."""

import pytest

from playlistgraph.layers import LayerState
from playlistgraph.session import GraphSession


class FakeRenderer:
    def __init__(self):
        self.closed = 0

    def close(self):
        self.closed += 1


class TestUpdate:
    def test_same_inputs_do_not_rebuild(self, scenario_library):
        playlists, artists, genres = scenario_library
        session = GraphSession()
        first = session.update(playlists, artists, genres)
        second = session.update(playlists, artists, genres)
        assert first is second
        assert session.build_count == 1

    def test_new_collection_identity_rebuilds(self, scenario_library):
        playlists, artists, genres = scenario_library
        session = GraphSession()
        first = session.update(playlists, artists, genres)
        second = session.update(list(playlists), artists, genres)
        assert first is not second
        assert session.build_count == 2
        assert first.node_ids() == second.node_ids()

    def test_layer_state_survives_rebuild(self, scenario_library):
        playlists, artists, genres = scenario_library
        session = GraphSession()
        session.update(playlists, artists, genres)
        session.set_artists_visible(True)
        pg = session.update(list(playlists), artists, genres)
        assert session.layers.state() == LayerState(True, False)
        assert pg.node("a_A1")["hidden"] is False
        assert pg.node("g_pop")["hidden"] is True

    def test_rebuild_drops_selection(self, scenario_library):
        playlists, artists, genres = scenario_library
        session = GraphSession()
        session.update(playlists, artists, genres)
        session.select("p_P1")
        pg = session.update(list(playlists), artists, genres)
        assert session.highlighter.selected is None
        assert all(a["scale"] == 1.0 for _, a in pg.graph.nodes(data=True))

    def test_initial_layers(self, scenario_library):
        session = GraphSession(artists_visible=True, genres_visible=True)
        pg = session.update(*scenario_library)
        assert pg.node("g_pop")["hidden"] is False

    def test_actions_before_build(self):
        session = GraphSession()
        with pytest.raises(RuntimeError):
            session.set_artists_visible(True)
        with pytest.raises(RuntimeError):
            session.select("p_P1")
        session.clear_selection()  # no-op


class TestClose:
    def test_close_releases_everything(self, scenario_library):
        renderer = FakeRenderer()
        session = GraphSession(renderer=renderer)
        session.update(*scenario_library)
        session.close()
        assert renderer.closed == 1
        assert session.renderer is None
        assert session.graph is None
        assert session.layers is None
        assert session.highlighter is None

    def test_rebuild_after_close_starts_clean(self, scenario_library):
        playlists, artists, genres = scenario_library
        session = GraphSession()
        session.update(playlists, artists, genres)
        session.set_artists_visible(True)
        session.select("a_A1")
        session.close()

        pg = session.update(playlists, artists, genres)
        assert session.build_count == 1
        assert session.layers.state() == LayerState(False, False)
        assert pg.node("a_A1")["hidden"] is True
        assert pg.node("a_A1")["scale"] == 1.0

    def test_close_twice_closes_renderer_once(self, scenario_library):
        renderer = FakeRenderer()
        session = GraphSession(renderer=renderer)
        session.update(*scenario_library)
        session.close()
        session.close()
        assert renderer.closed == 1

    def test_context_manager(self, scenario_library):
        renderer = FakeRenderer()
        with GraphSession(renderer=renderer) as session:
            session.update(*scenario_library)
        assert renderer.closed == 1
        assert session.graph is None
