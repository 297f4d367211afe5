"""
fetch.py

Fetch the logged-in user's library from the Spotify Web API:
- playlists owned by the user (deduped, capped at a few pages)
- tracks per playlist (uri, name, artist names, artist ids, album, duration, url)
- artist details (genres) in bulk, 50 ids per call
- genre counts across those artists (a hint only; the graph recounts)

Also saves/loads the fetched library as JSON so graphs can be rebuilt
without any API calls.

Credentials come from .env:
  SPOTIPY_CLIENT_ID, SPOTIPY_CLIENT_SECRET, SPOTIPY_REDIRECT_URI
"""

from __future__ import annotations

import json
import os
import re
import time
from collections import Counter
from typing import Dict, Iterable, List, Optional, Tuple

import spotipy
from dotenv import load_dotenv
from spotipy.exceptions import SpotifyException
from spotipy.oauth2 import SpotifyOAuth

from playlistgraph.normalize import slugify


SCOPE = "playlist-read-private playlist-read-collaborative"

# Playlist listing pages (50 per page) to scan before stopping
MAX_PLAYLIST_PAGES = 4

# Spotify bulk endpoints accept at most 50 ids
CHUNK_SIZE = 50

# If Spotify tells us to wait longer than this, fail fast instead of sleeping.
HUGE_RETRY_AFTER_SECONDS = 120

# Only these fields are needed per playlist item
TRACK_FIELDS = "items(track(album(name),artists(id,name),duration_ms,external_urls,id,name,uri)),next"

SPOTIFY_CALL_COUNT = 0


class HardRateLimit(Exception):
    """
    Raised when Spotify answers 429 without a usable Retry-After,
    or with one too long to wait out.
    """


# ----------------------------
# Progress output
# ----------------------------

def status(message: str) -> None:
    print(f"⏳ {message}")


def done(message: str) -> None:
    print(f"✅ {message}")


def warn(message: str) -> None:
    print(f"⚠️ {message}")


# ----------------------------
# Spotify client + safe call wrapper
# ----------------------------

def make_spotify_client() -> spotipy.Spotify:
    load_dotenv()

    client_id = os.getenv("SPOTIPY_CLIENT_ID")
    client_secret = os.getenv("SPOTIPY_CLIENT_SECRET")
    redirect_uri = os.getenv("SPOTIPY_REDIRECT_URI", "http://127.0.0.1:8888/callback")

    if not client_id or not client_secret:
        raise RuntimeError(
            "Missing Spotify credentials in .env: "
            "SPOTIPY_CLIENT_ID and SPOTIPY_CLIENT_SECRET"
        )

    auth_manager = SpotifyOAuth(
        client_id=client_id,
        client_secret=client_secret,
        redirect_uri=redirect_uri,
        scope=SCOPE,
    )
    return spotipy.Spotify(
        auth_manager=auth_manager,
        retries=0,  # we handle retries ourselves
        status_retries=0,
        backoff_factor=0,
    )


def retry_after_seconds(e: SpotifyException) -> Optional[float]:
    header_val = None
    if getattr(e, "headers", None):
        header_val = e.headers.get("Retry-After")

    # Sometimes the wait time is only embedded in the exception message
    if header_val is None:
        m = re.search(r"retry\s*will\s*occur\s*after:\s*([0-9]+)\s*s", str(e), flags=re.IGNORECASE)
        if m:
            header_val = m.group(1)

    if header_val is None:
        return None
    try:
        return float(header_val)
    except ValueError:
        return None


def spotify_call(fn, *args, max_retries: int = 3, sleep=time.sleep, **kwargs):
    """
    Retry/backoff wrapper for Spotify API calls (429 and 5xx only).
    """
    global SPOTIFY_CALL_COUNT

    delay_seconds = 1.0

    for attempt in range(1, max_retries + 1):
        SPOTIFY_CALL_COUNT += 1
        try:
            return fn(*args, **kwargs)

        except SpotifyException as e:
            if e.http_status == 429:
                retry_after = retry_after_seconds(e)

                if retry_after is None:
                    raise HardRateLimit(
                        "Spotify 429 received but Retry-After could not be determined. "
                        "Stopping to avoid making a long ban worse."
                    )
                if retry_after > HUGE_RETRY_AFTER_SECONDS:
                    raise HardRateLimit(
                        f"Spotify rate limit hit. Retry-After={retry_after:.0f}s (too large). "
                        "Try again later."
                    )

                print(f"[rate-limit] 429 from Spotify. Sleeping {retry_after:.1f}s (attempt {attempt}/{max_retries})")
                sleep(retry_after)
                continue

            if e.http_status and 500 <= e.http_status < 600 and attempt < max_retries:
                print(f"[spotify] {e.http_status} server error. Sleeping {delay_seconds:.1f}s (attempt {attempt}/{max_retries})")
                sleep(delay_seconds)
                delay_seconds = min(delay_seconds * 2, 30.0)
                continue

            raise

    raise RuntimeError(
        f"Spotify call failed after {max_retries} retries: {getattr(fn, '__name__', str(fn))}"
    )


def iter_paged(sp: spotipy.Spotify, first_page: dict, max_pages: Optional[int] = None) -> Iterable[dict]:
    """
    Generator over Spotify paged results:
    { "items": [...], "next": "url" or None, ... }
    """
    page = first_page
    pages = 0
    while page:
        pages += 1
        for item in page.get("items", []):
            yield item
        if page.get("next") and (max_pages is None or pages < max_pages):
            page = spotify_call(sp.next, page)
        else:
            break


# ----------------------------
# Library fetch
# ----------------------------

def get_user_playlists(
    sp: spotipy.Spotify,
    max_pages: int = MAX_PLAYLIST_PAGES,
    user: Optional[dict] = None,
) -> List[dict]:
    """
    Playlists owned by the current user, deduped by id.
    Pass `user` (from sp.current_user) to skip fetching it again.
    """
    if user is None:
        user = spotify_call(sp.current_user)
    user_id = user["id"]

    first_page = spotify_call(sp.current_user_playlists, limit=50)

    playlists_by_id: Dict[str, dict] = {}
    for item in iter_paged(sp, first_page, max_pages=max_pages):
        if not item or item.get("type", "playlist") != "playlist":
            continue
        if (item.get("owner") or {}).get("id") != user_id:
            continue
        playlists_by_id.setdefault(item["id"], item)

    return [
        {
            "id": p["id"],
            "name": p.get("name"),
            "owner": (p.get("owner") or {}).get("display_name"),
            "description": p.get("description"),
            "url": (p.get("external_urls") or {}).get("spotify"),
        }
        for p in playlists_by_id.values()
    ]


def track_record(track: dict) -> dict:
    artists = track.get("artists") or []
    return {
        "uri": track.get("uri"),
        "name": track.get("name"),
        "artist": ", ".join(a.get("name") for a in artists if a.get("name")),
        "artistIds": [a["id"] for a in artists if a.get("id")],
        "album": (track.get("album") or {}).get("name"),
        "duration": track.get("duration_ms"),
        "url": (track.get("external_urls") or {}).get("spotify"),
    }


def get_playlist_tracks(sp: spotipy.Spotify, playlist_id: str) -> List[dict]:
    first_page = spotify_call(sp.playlist_items, playlist_id, fields=TRACK_FIELDS, limit=100)
    tracks: List[dict] = []
    for item in iter_paged(sp, first_page):
        track = (item or {}).get("track")
        if not track:
            continue  # removed / unavailable tracks come back as null
        tracks.append(track_record(track))
    return tracks


def get_artists_details_bulk(sp: spotipy.Spotify, artist_ids: List[str]) -> List[dict]:
    """
    Spotify artists endpoint: up to 50 per call. Unknown ids come back as null.

    A batch that fails with a SpotifyException is skipped (its artists simply
    have no genres); HardRateLimit still stops everything.
    """
    results: List[dict] = []
    batches = range(0, len(artist_ids), CHUNK_SIZE)
    failed = 0
    for i in batches:
        chunk = artist_ids[i : i + CHUNK_SIZE]
        try:
            response = spotify_call(sp.artists, chunk)
        except SpotifyException as e:
            failed += 1
            warn(f"Artist batch {i // CHUNK_SIZE + 1} failed: {e}")
            continue
        for a in response.get("artists", []):
            if not a:
                continue
            results.append({"id": a["id"], "name": a.get("name"), "genres": a.get("genres") or []})

    if failed:
        warn(f"{failed}/{len(batches)} artist batches had errors; building with the artists we got")
    return results


def unique_artist_ids(playlists: List[dict]) -> List[str]:
    ids: List[str] = []
    for p in playlists:
        for t in p.get("tracks") or []:
            ids.extend(a for a in (t.get("artistIds") or []) if a and a.strip())
    return list(dict.fromkeys(ids))


def count_genres(artists: List[dict]) -> List[dict]:
    """
    GenreRecord { name, count }: how many artists list each genre, most common first.
    """
    counter: Counter = Counter()
    for a in artists:
        counter.update(g for g in (a.get("genres") or []) if g)
    return [
        {"name": name, "count": count}
        for name, count in sorted(counter.items(), key=lambda kv: (-kv[1], kv[0]))
    ]


def fetch_library(sp: spotipy.Spotify, user: Optional[dict] = None) -> Tuple[List[dict], List[dict], List[dict]]:
    status("Fetching your playlists…")
    playlists = get_user_playlists(sp, user=user)
    done(f"Found {len(playlists)} playlists")

    for idx, playlist in enumerate(playlists, start=1):
        if idx == 1 or idx % 10 == 0 or idx == len(playlists):
            status(f"Fetching tracks: {idx}/{len(playlists)} playlists…")
        try:
            playlist["tracks"] = get_playlist_tracks(sp, playlist["id"])
        except SpotifyException as e:
            # keep the playlist; an empty track list is still a valid node
            warn(f"Could not fetch tracks for {playlist.get('name')}: {e}")
            playlist["tracks"] = []

    artist_ids = unique_artist_ids(playlists)
    status(f"Fetching genres for {len(artist_ids)} artists…")
    artists = get_artists_details_bulk(sp, artist_ids) if artist_ids else []
    genres = count_genres(artists)
    done(f"Fetched {len(artists)} artists, {len(genres)} genres ({SPOTIFY_CALL_COUNT} Spotify calls)")

    return playlists, artists, genres


# ----------------------------
# Local snapshot
# ----------------------------

LIBRARY_FILES = ("playlists.json", "artists.json", "genres.json")


def get_output_dir(user_name: str, base: str = "outputs") -> str:
    return os.path.join(base, slugify(user_name) or "me")


def save_library(data_dir: str, playlists: List[dict], artists: List[dict], genres: List[dict]) -> List[str]:
    os.makedirs(data_dir, exist_ok=True)
    paths = []
    for filename, payload in zip(LIBRARY_FILES, (playlists, artists, genres)):
        path = os.path.join(data_dir, filename)
        with open(path, "w", encoding="utf-8") as f:
            json.dump(payload, f, indent=2, ensure_ascii=False)
        paths.append(path)
    return paths


def load_library(data_dir: str) -> Tuple[List[dict], List[dict], List[dict]]:
    """
    Only playlists.json is required; artists/genres default to empty.
    """
    playlists_path = os.path.join(data_dir, LIBRARY_FILES[0])
    if not os.path.exists(playlists_path):
        raise FileNotFoundError(
            f"Missing {LIBRARY_FILES[0]} in {data_dir}. Run without --input first to fetch from Spotify."
        )

    loaded = []
    for filename in LIBRARY_FILES:
        path = os.path.join(data_dir, filename)
        if not os.path.exists(path):
            loaded.append([])
            continue
        with open(path, "r", encoding="utf-8") as f:
            loaded.append(json.load(f))
    return loaded[0], loaded[1], loaded[2]
