"""
layers.py

Optional artist / genre layers on top of the playlist-song skeleton.

Rules:
- Both layers start hidden.
- Hiding artists also hides genres (genres sit under the artist layer).
- Showing genres does NOT show artists: song-genre shortcut edges let genres
  be explored without the artist nodes.

Only the `hidden` attribute is touched, and only on the affected type:

  edge relation   visible when
  playlist-song   always
  song-artist     artists_visible
  artist-genre    genres_visible
  song-genre      genres_visible
"""

from __future__ import annotations

from typing import NamedTuple

import networkx as nx

from playlistgraph.build import ARTIST_GENRE, SONG_ARTIST, SONG_GENRE
from playlistgraph.sizing import ARTIST, GENRE


# layer -> (node type, governed edge relations)
LAYER_MEMBERS = {
    ARTIST: (ARTIST, (SONG_ARTIST,)),
    GENRE: (GENRE, (ARTIST_GENRE, SONG_GENRE)),
}


class LayerState(NamedTuple):
    artists_visible: bool
    genres_visible: bool


class LayerVisibility:
    def __init__(self, G: nx.Graph, artists_visible: bool = False, genres_visible: bool = False):
        self.G = G
        # initial flags are taken as given; the cascade only fires on transitions
        self.artists_visible = bool(artists_visible)
        self.genres_visible = bool(genres_visible)
        self._apply(ARTIST)
        self._apply(GENRE)

    def state(self) -> LayerState:
        return LayerState(self.artists_visible, self.genres_visible)

    def set_artists_visible(self, visible: bool) -> LayerState:
        visible = bool(visible)
        self.artists_visible = visible
        self._apply(ARTIST)
        if not visible:
            self.genres_visible = False
            self._apply(GENRE)
        return self.state()

    def set_genres_visible(self, visible: bool) -> LayerState:
        self.genres_visible = bool(visible)
        self._apply(GENRE)
        return self.state()

    def toggle_artists(self) -> LayerState:
        return self.set_artists_visible(not self.artists_visible)

    def toggle_genres(self) -> LayerState:
        return self.set_genres_visible(not self.genres_visible)

    def _apply(self, layer: str) -> None:
        visible = self.artists_visible if layer == ARTIST else self.genres_visible
        node_type, relations = LAYER_MEMBERS[layer]

        for _, attrs in self.G.nodes(data=True):
            if attrs["type"] == node_type:
                attrs["hidden"] = not visible

        for _, _, attrs in self.G.edges(data=True):
            if attrs["relation"] in relations:
                attrs["hidden"] = not visible
