"""
run.py

One-command runner for PlaylistGraph.

Examples:
  python -m playlistgraph.run                          # fetch from Spotify, then render
  python -m playlistgraph.run --input outputs/me/data  # re-render a saved library, no API calls
  python -m playlistgraph.run --input outputs/me/data --show-artists --show-genres
  python -m playlistgraph.run --input outputs/me/data --select p_37i9dQZF1DXcBWIGoYBM5M
"""

from __future__ import annotations

import argparse
import os
from typing import List, Optional

from playlistgraph.analyze import compute_summary_stats
from playlistgraph.fetch import (
    done,
    fetch_library,
    get_output_dir,
    load_library,
    make_spotify_client,
    save_library,
    spotify_call,
    status,
    warn,
)
from playlistgraph.session import GraphSession
from playlistgraph.visualize import (
    CsvRenderer,
    JsonRenderer,
    PyVisRenderer,
    StaticPngRenderer,
    render_all,
)


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="PlaylistGraph runner (fetch + graph + visualization)")
    parser.add_argument(
        "--input",
        type=str,
        default=None,
        help="Folder with playlists.json / artists.json / genres.json. If omitted, fetch from Spotify.",
    )
    parser.add_argument(
        "--out",
        type=str,
        default=None,
        help="Output folder (default: outputs/<user> or the parent of --input).",
    )
    parser.add_argument("--show-artists", action="store_true", help="Start with the artist layer visible")
    parser.add_argument("--show-genres", action="store_true", help="Start with the genre layer visible")
    parser.add_argument("--select", type=str, default=None, help="Node id to highlight (e.g. p_<playlist id>)")
    parser.add_argument("--no-png", action="store_true", help="Skip the static PNG")
    return parser.parse_args(argv)


def load_or_fetch(args: argparse.Namespace):
    if args.input:
        status(f"Loading saved library from {args.input}…")
        playlists, artists, genres = load_library(args.input)
        out_dir = args.out or os.path.dirname(os.path.abspath(args.input))
        return playlists, artists, genres, out_dir

    sp = make_spotify_client()
    user = spotify_call(sp.current_user)
    playlists, artists, genres = fetch_library(sp, user=user)

    out_dir = args.out or get_output_dir(user.get("display_name") or user["id"])
    paths = save_library(os.path.join(out_dir, "data"), playlists, artists, genres)
    print("\nData outputs written:")
    for p in paths:
        print(f"- {p}")
    return playlists, artists, genres, out_dir


def main(argv: Optional[List[str]] = None):
    args = parse_args(argv)
    playlists, artists, genres, out_dir = load_or_fetch(args)

    renderers = [JsonRenderer(), CsvRenderer(), PyVisRenderer()]
    if not args.no_png:
        renderers.append(StaticPngRenderer())

    with GraphSession() as session:
        status("Building graph…")
        pg = session.update(playlists, artists, genres)

        # --show-genres alone keeps artists hidden (genres hang off songs directly)
        session.set_artists_visible(args.show_artists)
        session.set_genres_visible(args.show_genres)

        if args.select:
            if args.select in pg.graph:
                session.select(args.select)
            else:
                warn(f"Node {args.select} not in graph; rendering without a selection.")

        summary = compute_summary_stats(pg, top_n=5)
        done(
            f"Graph built: nodes={summary['num_nodes']}, edges={summary['num_edges']}, "
            f"skipped={summary['skipped_records']}"
        )
        for node_type, count in summary["nodes_by_type"].items():
            print(f"  {node_type}s: {count}")

        paths = render_all(pg, out_dir, renderers)

    print("\nVisualizations written:")
    for p in paths:
        print(f"- {p}")
    print("\nDone.")


if __name__ == "__main__":
    main()
