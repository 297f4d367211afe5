"""
highlight.py

Neighbourhood highlighting for a selected node.

- selected node: scale x1.3, label on, own colour, drawn on top
- direct neighbours (N1): scale x1.1, label on, own colour, drawn above the rest
- everything else (incl. 2-hop N2): gray, no label, scale x0.8
- edges are faded unless both ends are in {selected} + N1; edges touching
  the selected node are thicker and green

Clearing the selection recomputes every display attribute from the base
attributes, so repeated hover/select sequences cannot drift.
Base attributes (`size`, `color`, `hidden`) are never modified here.
"""

from __future__ import annotations

from typing import Optional, Set, Tuple

import networkx as nx


SELECTED_SCALE = 1.3
NEIGHBOR_SCALE = 1.1
FADED_SCALE = 0.8

FADED_COLOR = "rgba(200,200,200,0.5)"
EMPHASIS_EDGE_COLOR = "#1ED760"
EMPHASIS_EDGE_FACTOR = 3.0

Z_SELECTED = 2
Z_NEIGHBOR = 1
Z_BASE = 0


def neighborhoods(G: nx.Graph, node: str) -> Tuple[Set[str], Set[str]]:
    """
    Returns (N1, N2): direct neighbours, and neighbours of N1 that are
    neither in N1 nor the node itself.
    """
    n1 = set(G.neighbors(node))
    n2: Set[str] = set()
    for n in n1:
        n2.update(G.neighbors(n))
    n2 -= n1
    n2.discard(node)
    return n1, n2


def _node_display(attrs: dict, scale: float, color: str, label_visible: bool, z: int) -> None:
    attrs["scale"] = scale
    attrs["display_color"] = color
    attrs["label_visible"] = label_visible
    attrs["z"] = z


class Highlighter:
    def __init__(self, G: nx.Graph):
        self.G = G
        self.selected: Optional[str] = None
        self.neighbors: Set[str] = set()
        self.second_degree: Set[str] = set()

    def select(self, node: Optional[str]) -> None:
        if node is None:
            self.clear()
            return
        if node not in self.G:
            raise KeyError(f"Unknown node: {node}")

        n1, n2 = neighborhoods(self.G, node)
        self.selected, self.neighbors, self.second_degree = node, n1, n2
        focus = n1 | {node}

        for nid, attrs in self.G.nodes(data=True):
            if nid == node:
                _node_display(attrs, SELECTED_SCALE, attrs["color"], True, Z_SELECTED)
            elif nid in n1:
                _node_display(attrs, NEIGHBOR_SCALE, attrs["color"], True, Z_NEIGHBOR)
            else:
                _node_display(attrs, FADED_SCALE, FADED_COLOR, False, Z_BASE)

        for u, v, attrs in self.G.edges(data=True):
            attrs["faded"] = not (u in focus and v in focus)
            if node in (u, v):
                attrs["display_color"] = EMPHASIS_EDGE_COLOR
                attrs["display_size"] = attrs["size"] * EMPHASIS_EDGE_FACTOR
            else:
                attrs["display_color"] = attrs["color"]
                attrs["display_size"] = attrs["size"]

    def clear(self) -> None:
        self.selected = None
        self.neighbors = set()
        self.second_degree = set()

        for _, attrs in self.G.nodes(data=True):
            _node_display(attrs, 1.0, attrs["color"], True, Z_BASE)

        for _, _, attrs in self.G.edges(data=True):
            attrs["faded"] = False
            attrs["display_color"] = attrs["color"]
            attrs["display_size"] = attrs["size"]
