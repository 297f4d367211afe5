"""
normalize.py

Turn raw playlist / track / artist records into canonical entities:
- Playlists keep their first-seen name and track count
- Each track's artist reference is resolved once into either
  CatalogArtists (Spotify artist ids) or NamedArtists (legacy "A, B" string)
- Malformed records are skipped and counted, never raised

Input records are the dicts produced by fetch.py (or loaded from a saved
snapshot), e.g.:
  { "id": ..., "name": ..., "tracks": [ { "uri", "name", "artist", "artistIds", ... } ] }
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Mapping, Optional, Tuple, Union


# ----------------------------
# Identity helpers
# ----------------------------

def slugify(text: str) -> str:
    """
    Stable id fragment for a display name.
    Example: "Guns N' Roses" -> "guns-n-roses"
    Example: "A$AP Rocky" -> "a-ap-rocky"
    """
    text = str(text).strip().lower()
    text = re.sub(r"[^a-z0-9]+", "-", text)  # non-alnum runs -> single separator
    return text.strip("-")


def genre_key(name: str) -> str:
    """
    Genre identity. "Hip Hop", "hip-hop" and "hip  hop" all collapse to "hip-hop".
    """
    return slugify(name)


# ----------------------------
# Canonical entities
# ----------------------------

@dataclass(frozen=True)
class CatalogArtists:
    """Rich artist reference: catalog ids, resolved against the artist lookup."""
    artist_ids: Tuple[str, ...]


@dataclass(frozen=True)
class NamedArtists:
    """Legacy artist reference: display names only (ids are slugs of the names)."""
    names: Tuple[str, ...]


ArtistRef = Union[CatalogArtists, NamedArtists]


@dataclass(frozen=True)
class ArtistEntity:
    artist_id: str
    name: str
    genres: Tuple[str, ...] = ()


@dataclass(frozen=True)
class TrackEntity:
    uri: str
    name: str
    artists: ArtistRef
    album: Optional[str] = None
    duration: Optional[int] = None
    url: Optional[str] = None


@dataclass(frozen=True)
class PlaylistEntity:
    playlist_id: str
    name: str
    track_count: int
    tracks: Tuple[TrackEntity, ...]


@dataclass
class NormalizedInput:
    playlists: List[PlaylistEntity] = field(default_factory=list)
    artists: Dict[str, ArtistEntity] = field(default_factory=dict)
    skipped: int = 0


# ----------------------------
# Normalization
# ----------------------------

def split_artist_names(artist_field: Optional[str]) -> Tuple[str, ...]:
    if not artist_field:
        return ()
    names = [n.strip() for n in str(artist_field).split(",")]
    # dedup, keep order
    return tuple(dict.fromkeys(n for n in names if n and slugify(n)))


def resolve_artist_ref(track: Mapping) -> ArtistRef:
    artist_ids = track.get("artistIds")
    if artist_ids is None:
        artist_ids = track.get("artist_ids")

    ids = [str(a).strip() for a in (artist_ids or []) if a and str(a).strip()]
    if ids:
        return CatalogArtists(tuple(dict.fromkeys(ids)))
    return NamedArtists(split_artist_names(track.get("artist")))


def normalize_artists(artists: Iterable[Mapping]) -> Tuple[Dict[str, ArtistEntity], int]:
    """
    Build the artist lookup table (catalog id -> ArtistEntity).
    First record per id wins.
    """
    lookup: Dict[str, ArtistEntity] = {}
    skipped = 0
    for a in artists or []:
        if not isinstance(a, Mapping) or not a.get("id"):
            skipped += 1
            continue
        artist_id = str(a["id"])
        if artist_id in lookup:
            continue
        genres = tuple(g for g in (a.get("genres") or []) if g and genre_key(g))
        lookup[artist_id] = ArtistEntity(
            artist_id=artist_id,
            name=a.get("name") or "Unknown Artist",
            genres=genres,
        )
    return lookup, skipped


def normalize_track(track: Mapping) -> Optional[TrackEntity]:
    if not isinstance(track, Mapping) or not track.get("uri"):
        return None
    return TrackEntity(
        uri=str(track["uri"]),
        name=track.get("name") or "Unknown Track",
        artists=resolve_artist_ref(track),
        album=track.get("album"),
        duration=track.get("duration"),
        url=track.get("url"),
    )


def normalize(playlists: Iterable[Mapping], artists: Iterable[Mapping] = ()) -> NormalizedInput:
    """
    Normalize a whole library. Never raises on malformed entries;
    each skipped playlist / track / artist adds one to `skipped`.
    """
    lookup, skipped = normalize_artists(artists)
    result = NormalizedInput(artists=lookup, skipped=skipped)

    for playlist in playlists or []:
        if not isinstance(playlist, Mapping) or not playlist.get("id"):
            result.skipped += 1
            continue

        raw_tracks = playlist.get("tracks") or []
        tracks: List[TrackEntity] = []
        for raw in raw_tracks:
            track = normalize_track(raw)
            if track is None:
                result.skipped += 1
                continue
            tracks.append(track)

        result.playlists.append(
            PlaylistEntity(
                playlist_id=str(playlist["id"]),
                name=playlist.get("name") or "Unnamed Playlist",
                track_count=len(raw_tracks),
                tracks=tuple(tracks),
            )
        )

    return result


def named_artist_entity(name: str) -> ArtistEntity:
    """Synthetic artist for legacy tracks (no catalog id, no genres)."""
    return ArtistEntity(artist_id=slugify(name), name=name)
