"""
sizing.py

Per-type visual configuration and the second (sizing) pass.

Node size grows with sqrt(degree) so a 500-track playlist does not dwarf a
20-track one, but hubs still read as hubs:
  size = clamp(base_size + k * sqrt(degree), base_size, max_size)
"""

from __future__ import annotations

import math
from typing import Dict

import networkx as nx


PLAYLIST = "playlist"
SONG = "song"
ARTIST = "artist"
GENRE = "genre"

NODE_TYPES: Dict[str, Dict] = {
    PLAYLIST: {"prefix": "p_", "color": "#FF6384", "base_size": 10.0, "k": 1.5, "max_size": 30.0},
    SONG:     {"prefix": "s_", "color": "#4CA3FD", "base_size": 5.0,  "k": 1.0, "max_size": 15.0},
    ARTIST:   {"prefix": "a_", "color": "#36A2EB", "base_size": 8.0,  "k": 0.8, "max_size": 20.0},
    GENRE:    {"prefix": "g_", "color": "#FFCE56", "base_size": 8.0,  "k": 1.2, "max_size": 25.0},
}

EDGE_SIZE = 1.0
EDGE_ALPHA_HEX = "80"


def node_size(node_type: str, degree: float) -> float:
    cfg = NODE_TYPES[node_type]
    d = max(0.0, float(degree))
    size = cfg["base_size"] + cfg["k"] * math.sqrt(d)
    return max(cfg["base_size"], min(cfg["max_size"], size))


def edge_color(source_type: str) -> str:
    """Edges take their source layer's colour, half transparent."""
    return NODE_TYPES[source_type]["color"] + EDGE_ALPHA_HEX


def apply_sizes(G: nx.Graph) -> None:
    """
    Second pass: only run once every playlist has been scanned, because a
    node's final degree is unknown until then.
    """
    for _, attrs in G.nodes(data=True):
        attrs["size"] = node_size(attrs["type"], attrs.get("degree", 0))
