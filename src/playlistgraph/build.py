"""
build.py

Build the playlist / song / artist / genre graph from normalized entities.

Layers and relations:
- playlist -> song   (playlist-song)
- song -> artist     (song-artist)
- artist -> genre    (artist-genre)
- song -> genre      (song-genre, a shortcut synthesized after the main pass
                      from every genre reachable through any of the song's artists)

Every node/edge add is create-or-fetch: rediscovering a song in a second
playlist, or a genre through a second artist, never creates a duplicate.
Degrees are counted inline; sizes are assigned in a second pass (sizing.py).

Usage:
  pg = build_graph(playlists, artists, genres)
  pg.graph  # networkx.Graph holding every node/edge attribute
"""

from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass
from typing import Dict, Iterable, List, Mapping, Optional, Set, Tuple

import networkx as nx

from playlistgraph.highlight import Highlighter
from playlistgraph.normalize import (
    ArtistEntity,
    CatalogArtists,
    NamedArtists,
    PlaylistEntity,
    TrackEntity,
    genre_key,
    named_artist_entity,
    normalize,
)
from playlistgraph.sizing import (
    ARTIST,
    EDGE_SIZE,
    GENRE,
    NODE_TYPES,
    PLAYLIST,
    SONG,
    apply_sizes,
    edge_color,
)


PLAYLIST_SONG = "playlist-song"
SONG_ARTIST = "song-artist"
ARTIST_GENRE = "artist-genre"
SONG_GENRE = "song-genre"

RELATIONS = (PLAYLIST_SONG, SONG_ARTIST, ARTIST_GENRE, SONG_GENRE)

# Per-type name of the derived degree attribute in the output.
DEGREE_FIELDS = {
    PLAYLIST: "track_count",
    SONG: "playlist_count",
    ARTIST: "connection_count",
    GENRE: "count",
}


class BuilderClosed(Exception):
    """Raised when a GraphBuilder is used after finish()."""


def node_id(node_type: str, key: str) -> str:
    return NODE_TYPES[node_type]["prefix"] + key


def edge_id(source: str, target: str, relation: str) -> str:
    return f"{source}-{target}-{relation}"


# ----------------------------
# Result
# ----------------------------

@dataclass
class PlaylistGraph:
    graph: nx.Graph
    skipped: int = 0
    unresolved_artists: int = 0

    def node_ids(self) -> Set[str]:
        return set(self.graph.nodes)

    def edge_ids(self) -> Set[str]:
        return {attrs["id"] for _, _, attrs in self.graph.edges(data=True)}

    def nodes_of_type(self, node_type: str) -> List[str]:
        return [n for n, t in self.graph.nodes(data="type") if t == node_type]

    def edges_of_relation(self, relation: str) -> List[Tuple[str, str]]:
        return [
            (attrs["source"], attrs["target"])
            for _, _, attrs in self.graph.edges(data=True)
            if attrs["relation"] == relation
        ]

    def node(self, nid: str) -> Dict:
        return self.graph.nodes[nid]

    def neighbors(self, nid: str) -> Set[str]:
        return set(self.graph.neighbors(nid))

    def __len__(self) -> int:
        return self.graph.number_of_nodes()


# ----------------------------
# Builder (one instance per build)
# ----------------------------

class GraphBuilder:
    """
    Holds all mutable state of a single build. Create a new one for every
    rebuild; finish() hands the graph over and closes the builder.
    """

    def __init__(
        self,
        artists: Optional[Mapping[str, ArtistEntity]] = None,
        genre_hints: Optional[Mapping[str, int]] = None,
    ):
        self.graph = nx.Graph()
        self.artists: Mapping[str, ArtistEntity] = artists or {}
        self.genre_hints: Mapping[str, int] = genre_hints or {}

        # song node -> distinct playlist nodes containing it
        self.song_playlists: Dict[str, Set[str]] = defaultdict(set)
        # song node -> genre nodes reached through its artists (insertion ordered)
        self.song_genres: Dict[str, Dict[str, None]] = defaultdict(dict)

        self.unresolved_artists = 0
        self._closed = False

    def _check_open(self) -> None:
        if self._closed:
            raise BuilderClosed("GraphBuilder already finished; create a new one per build.")

    # ---- primitive create-or-fetch ----

    def add_node(self, nid: str, node_type: str, label: str, **attrs) -> bool:
        """Returns False if the node already existed (first sighting wins)."""
        self._check_open()
        if nid in self.graph:
            return False
        self.graph.add_node(
            nid,
            label=label,
            type=node_type,
            degree=0,
            color=NODE_TYPES[node_type]["color"],
            size=NODE_TYPES[node_type]["base_size"],
            hidden=False,
            **attrs,
        )
        return True

    def add_edge(self, source: str, target: str, relation: str) -> bool:
        """Returns False if the (source, target, relation) edge already existed."""
        self._check_open()
        if self.graph.has_edge(source, target):
            return False
        source_type = self.graph.nodes[source]["type"]
        self.graph.add_edge(
            source,
            target,
            id=edge_id(source, target, relation),
            source=source,
            target=target,
            relation=relation,
            color=edge_color(source_type),
            size=EDGE_SIZE,
            hidden=False,
        )
        return True

    # ---- layers ----

    def add_playlist(self, playlist: PlaylistEntity) -> str:
        pid = node_id(PLAYLIST, playlist.playlist_id)
        if self.add_node(pid, PLAYLIST, playlist.name):
            self.graph.nodes[pid]["degree"] = playlist.track_count
        for track in playlist.tracks:
            self.add_track(pid, track)
        return pid

    def add_track(self, pid: str, track: TrackEntity) -> str:
        sid = node_id(SONG, track.uri)
        self.add_node(sid, SONG, track.name, album=track.album, url=track.url)

        if self.add_edge(pid, sid, PLAYLIST_SONG):
            self.song_playlists[sid].add(pid)
            self.graph.nodes[sid]["degree"] = len(self.song_playlists[sid])

        ref = track.artists
        if isinstance(ref, CatalogArtists):
            for artist_id in ref.artist_ids:
                artist = self.artists.get(artist_id)
                if artist is None:
                    # genres unknown for this id; keep the song, drop the expansion
                    self.unresolved_artists += 1
                    continue
                self.add_artist(sid, artist)
        elif isinstance(ref, NamedArtists):
            for name in ref.names:
                self.add_artist(sid, named_artist_entity(name))
        return sid

    def add_artist(self, sid: str, artist: ArtistEntity) -> str:
        aid = node_id(ARTIST, artist.artist_id)
        self.add_node(aid, ARTIST, artist.name)

        if self.add_edge(sid, aid, SONG_ARTIST):
            self.graph.nodes[aid]["degree"] += 1

        for genre_name in artist.genres:
            self.add_genre(sid, aid, genre_name)
        return aid

    def add_genre(self, sid: str, aid: str, genre_name: str) -> str:
        key = genre_key(genre_name)
        gid = node_id(GENRE, key)
        self.add_node(gid, GENRE, genre_name, hint_count=self.genre_hints.get(key, 0))

        if self.add_edge(aid, gid, ARTIST_GENRE):
            self.graph.nodes[gid]["degree"] += 1

        # recorded even when the artist-genre edge is a rediscovery
        self.song_genres[sid][gid] = None
        return gid

    # ---- finishing passes ----

    def add_song_genre_shortcuts(self) -> int:
        added = 0
        for sid, genre_ids in self.song_genres.items():
            for gid in genre_ids:
                if self.add_edge(sid, gid, SONG_GENRE):
                    self.graph.nodes[gid]["degree"] += 1
                    added += 1
        return added

    def finish(self, skipped: int = 0) -> PlaylistGraph:
        self._check_open()
        self.add_song_genre_shortcuts()

        for _, attrs in self.graph.nodes(data=True):
            attrs[DEGREE_FIELDS[attrs["type"]]] = attrs["degree"]
        apply_sizes(self.graph)
        Highlighter(self.graph).clear()

        self._closed = True
        pg = PlaylistGraph(
            graph=self.graph,
            skipped=skipped,
            unresolved_artists=self.unresolved_artists,
        )
        # drop references so nothing leaks into the next build
        self.graph = nx.Graph()
        self.song_playlists = defaultdict(set)
        self.song_genres = defaultdict(dict)
        return pg


# ----------------------------
# Public entry point
# ----------------------------

def genre_hint_counts(genres: Iterable[Mapping]) -> Dict[str, int]:
    """
    Aggregate GenreRecord hints by genre key. Used for tooltips only;
    the authoritative genre degree comes from the built graph.
    """
    hints: Dict[str, int] = defaultdict(int)
    for g in genres or []:
        if not isinstance(g, Mapping) or not g.get("name"):
            continue
        key = genre_key(g["name"])
        if not key:
            continue
        try:
            hints[key] += int(g.get("count") or 0)
        except (TypeError, ValueError):
            continue
    return dict(hints)


def build_graph(
    playlists: Iterable[Mapping],
    artists: Iterable[Mapping] = (),
    genres: Iterable[Mapping] = (),
) -> PlaylistGraph:
    """
    Pure function: (playlists, artists, genres) -> PlaylistGraph.
    Same input always gives the same node and edge sets.
    """
    normalized = normalize(playlists, artists)
    builder = GraphBuilder(normalized.artists, genre_hint_counts(genres))

    for playlist in normalized.playlists:
        builder.add_playlist(playlist)

    return builder.finish(skipped=normalized.skipped)
