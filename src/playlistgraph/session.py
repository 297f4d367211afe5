"""
session.py

What a hosting view holds on to between interactions.

- update(): full rebuild, but only when one of the input collections is a
  different object than last time (no incremental patching)
- layer toggles and selection act on the live graph without rebuilding
- close(): drops the graph, controllers and renderer handle so the next
  build starts from nothing
"""

from __future__ import annotations

from typing import Optional, Sequence

from playlistgraph.build import PlaylistGraph, build_graph
from playlistgraph.highlight import Highlighter
from playlistgraph.layers import LayerState, LayerVisibility


class GraphSession:
    def __init__(self, renderer=None, artists_visible: bool = False, genres_visible: bool = False):
        self.renderer = renderer
        self._initial_layers = LayerState(artists_visible, genres_visible)
        self._reset()

    def _reset(self) -> None:
        self.graph: Optional[PlaylistGraph] = None
        self.layers: Optional[LayerVisibility] = None
        self.highlighter: Optional[Highlighter] = None
        self._inputs = (None, None, None)
        self.build_count = 0

    def update(self, playlists: Sequence, artists: Sequence = (), genres: Sequence = ()) -> PlaylistGraph:
        """
        Rebuild when any input collection changed identity. Returns the live graph.
        """
        prev = self._inputs
        unchanged = (
            self.graph is not None
            and playlists is prev[0]
            and artists is prev[1]
            and genres is prev[2]
        )
        if unchanged:
            return self.graph

        state = self.layers.state() if self.layers is not None else self._initial_layers
        pg = build_graph(playlists, artists, genres)

        self.graph = pg
        self.layers = LayerVisibility(pg.graph, *state)
        self.highlighter = Highlighter(pg.graph)
        self._inputs = (playlists, artists, genres)
        self.build_count += 1
        return pg

    # ---- interaction ----

    def set_artists_visible(self, visible: bool) -> LayerState:
        return self._require_layers().set_artists_visible(visible)

    def set_genres_visible(self, visible: bool) -> LayerState:
        return self._require_layers().set_genres_visible(visible)

    def select(self, node: Optional[str]) -> None:
        if self.highlighter is None:
            raise RuntimeError("No graph built yet. Call update() first.")
        self.highlighter.select(node)

    def clear_selection(self) -> None:
        if self.highlighter is not None:
            self.highlighter.clear()

    def _require_layers(self) -> LayerVisibility:
        if self.layers is None:
            raise RuntimeError("No graph built yet. Call update() first.")
        return self.layers

    # ---- teardown ----

    def close(self) -> None:
        renderer = self.renderer
        if renderer is not None and hasattr(renderer, "close"):
            renderer.close()
        self.renderer = None
        self._reset()

    def __enter__(self) -> "GraphSession":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()
