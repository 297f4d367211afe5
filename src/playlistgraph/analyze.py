"""
analyze.py

Degree summary of a playlist graph, WITHOUT making any Spotify API calls.

Inputs (from outputs/<user>/data/):
- playlists.json (+ artists.json, genres.json if present)

Outputs:
- node_metrics.csv
- network_summary.json
"""

from __future__ import annotations

import argparse
import json
import os
from typing import Dict, List, Optional

import pandas as pd

from playlistgraph.build import DEGREE_FIELDS, RELATIONS, PlaylistGraph, build_graph
from playlistgraph.fetch import done, load_library, status
from playlistgraph.sizing import NODE_TYPES


# ----------------------------
# Helper Functions
# ----------------------------

def percentile_rank(series: pd.Series) -> pd.Series:
    """
    Rank-based percentile in (0, 1], handles ties nicely.
    """
    return series.rank(pct=True, method="average")


def bucket_5(p: float) -> str:
    """
    Map percentile to 5 buckets.
    """
    if pd.isna(p):
        return "Unknown"
    if p <= 0.20:
        return "Very Low"
    if p <= 0.40:
        return "Low"
    if p <= 0.60:
        return "Medium"
    if p <= 0.80:
        return "High"
    return "Very High"


# ----------------------------
# Metrics
# ----------------------------

def degree_table(pg: PlaylistGraph) -> pd.DataFrame:
    """
    One row per node. Percentiles are ranked within the node's own type,
    since a playlist's track count and a genre's edge count are not comparable.
    """
    rows = []
    for nid, attrs in pg.graph.nodes(data=True):
        rows.append(
            {
                "id": nid,
                "label": attrs["label"],
                "type": attrs["type"],
                "degree": attrs["degree"],
                "edges": pg.graph.degree(nid),
                "size": attrs["size"],
            }
        )
    df = pd.DataFrame(rows, columns=["id", "label", "type", "degree", "edges", "size"])
    if df.empty:
        df["degree_pct"] = pd.Series(dtype=float)
        df["degree_category"] = pd.Series(dtype=str)
        return df

    df["degree_pct"] = df.groupby("type")["degree"].transform(percentile_rank)
    df["degree_category"] = df["degree_pct"].apply(bucket_5)
    return df.sort_values(["type", "degree", "label"], ascending=[True, False, True]).reset_index(drop=True)


def top_nodes(pg: PlaylistGraph, node_type: str, n: int = 10) -> List[Dict]:
    field = DEGREE_FIELDS[node_type]
    nodes = [
        {"id": nid, "label": attrs["label"], field: attrs[field]}
        for nid, attrs in pg.graph.nodes(data=True)
        if attrs["type"] == node_type
    ]
    nodes.sort(key=lambda d: (-d[field], d["label"]))
    return nodes[:n]


def compute_summary_stats(pg: PlaylistGraph, top_n: int = 10) -> Dict:
    G = pg.graph
    degrees = dict(G.degree())

    return {
        "num_nodes": G.number_of_nodes(),
        "num_edges": G.number_of_edges(),
        "nodes_by_type": {t: len(pg.nodes_of_type(t)) for t in NODE_TYPES},
        "edges_by_relation": {r: len(pg.edges_of_relation(r)) for r in RELATIONS},
        "skipped_records": pg.skipped,
        "unresolved_artists": pg.unresolved_artists,
        "average_degree": sum(degrees.values()) / max(len(degrees), 1),
        "top": {t: top_nodes(pg, t, top_n) for t in NODE_TYPES},
    }


# ----------------------------
# Main entry point
# ----------------------------

def main(argv: Optional[List[str]] = None):
    parser = argparse.ArgumentParser()
    parser.add_argument(
        "--output-dir",
        required=True,
        help="Path to outputs/<user_folder>",
    )
    args = parser.parse_args(argv)

    data_dir = os.path.join(args.output_dir, "data")

    status("Loading library…")
    playlists, artists, genres = load_library(data_dir)

    status("Building graph…")
    pg = build_graph(playlists, artists, genres)

    metrics_path = os.path.join(data_dir, "node_metrics.csv")
    degree_table(pg).to_csv(metrics_path, index=False)

    summary_path = os.path.join(data_dir, "network_summary.json")
    with open(summary_path, "w", encoding="utf-8") as f:
        json.dump(compute_summary_stats(pg), f, indent=2, ensure_ascii=False)

    done("Analysis complete")
    print(f"- {metrics_path}")
    print(f"- {summary_path}")


if __name__ == "__main__":
    main()
