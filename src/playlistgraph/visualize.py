"""
visualize.py

Turns a built PlaylistGraph into the render contract and hands it to a
rendering backend.

Contract (all backends consume only this):
- nodes: { id, label, type, size, color, hidden }
- edges: { id, from, to, hidden, color, size }

Backends (swap freely, none of them re-derives the graph):
- JsonRenderer       -> graph.json
- CsvRenderer        -> nodes.csv + edges.csv
- PyVisRenderer      -> interactive network.html (vis-network)
- StaticPngRenderer  -> network.png (NetworkX + Matplotlib)
"""

from __future__ import annotations

import json
import os
import re
from typing import Dict, Iterable, List, Tuple

import matplotlib.pyplot as plt
import networkx as nx
import pandas as pd
from pyvis.network import Network

from playlistgraph.build import DEGREE_FIELDS, PlaylistGraph
from playlistgraph.sizing import NODE_TYPES

THEME = {
    "bg": "#121212",
    "text": "#FFFFFF",
    "node_border": "#121212",  # official Spotify black
    "panel": "rgba(18,18,18,0.92)",
    "panel_border": "rgba(255,255,255,0.10)",
}

NODE_COLUMNS = ["id", "label", "type", "size", "color", "hidden"]
EDGE_COLUMNS = ["id", "from", "to", "hidden", "color", "size"]


# ----------------------------
# Contract
# ----------------------------

def node_records(pg: PlaylistGraph) -> List[Dict]:
    """
    Node contract with the current highlight folded in
    (size x scale, display colour, empty label when suppressed).
    Records are ordered by draw order so later entries paint on top.
    """
    records = []
    for nid, attrs in pg.graph.nodes(data=True):
        records.append(
            {
                "id": nid,
                "label": attrs["label"] if attrs.get("label_visible", True) else "",
                "type": attrs["type"],
                "size": round(attrs["size"] * attrs.get("scale", 1.0), 4),
                "color": attrs.get("display_color", attrs["color"]),
                "hidden": bool(attrs["hidden"]),
                "_z": attrs.get("z", 0),
            }
        )
    records.sort(key=lambda r: r["_z"])  # stable: insertion order within a level
    for r in records:
        del r["_z"]
    return records


def edge_records(pg: PlaylistGraph) -> List[Dict]:
    records = []
    for _, _, attrs in pg.graph.edges(data=True):
        records.append(
            {
                "id": attrs["id"],
                "from": attrs["source"],
                "to": attrs["target"],
                "hidden": bool(attrs["hidden"] or attrs.get("faded", False)),
                "color": attrs.get("display_color", attrs["color"]),
                "size": attrs.get("display_size", attrs["size"]),
            }
        )
    return records


def to_dataframes(pg: PlaylistGraph) -> Tuple[pd.DataFrame, pd.DataFrame]:
    nodes_df = pd.DataFrame(node_records(pg), columns=NODE_COLUMNS)
    edges_df = pd.DataFrame(edge_records(pg), columns=EDGE_COLUMNS)
    return nodes_df, edges_df


# ----------------------------
# Colour helpers
# ----------------------------

_RGBA_RE = re.compile(r"rgba?\(\s*([\d.]+)\s*,\s*([\d.]+)\s*,\s*([\d.]+)\s*(?:,\s*([\d.]+)\s*)?\)")


def parse_color(color: str) -> Tuple[int, int, int, float]:
    """
    "#RRGGBB", "#RRGGBBAA" or "rgba(r,g,b,a)" -> (r, g, b, alpha 0..1)
    """
    color = str(color).strip()
    m = _RGBA_RE.fullmatch(color)
    if m:
        r, g, b = (int(float(x)) for x in m.groups()[:3])
        a = float(m.group(4)) if m.group(4) is not None else 1.0
        return r, g, b, a

    hex_part = color.lstrip("#")
    if len(hex_part) not in (6, 8):
        raise ValueError(f"Unsupported colour: {color}")
    r, g, b = (int(hex_part[i : i + 2], 16) for i in (0, 2, 4))
    a = int(hex_part[6:8], 16) / 255.0 if len(hex_part) == 8 else 1.0
    return r, g, b, a


def css_color(color: str) -> str:
    """vis-network does not read 8-digit hex; use rgba() instead."""
    r, g, b, a = parse_color(color)
    return f"rgba({r}, {g}, {b}, {round(a, 3)})"


def mpl_color(color: str) -> Tuple[float, float, float, float]:
    r, g, b, a = parse_color(color)
    return r / 255.0, g / 255.0, b / 255.0, a


def safe_matplotlib_label(text: str) -> str:
    """
    Matplotlib treats '$' as math-mode. Escape it so track/artist names render safely.
    """
    if text is None:
        return ""
    return str(text).replace("$", r"\$")


# ----------------------------
# Backends
# ----------------------------

class Renderer:
    """Base adapter. render() writes one artifact and returns its path."""

    filename = ""

    def render(self, pg: PlaylistGraph, out_dir: str) -> str:
        raise NotImplementedError

    def close(self) -> None:
        pass

    def _out_path(self, out_dir: str) -> str:
        os.makedirs(out_dir, exist_ok=True)
        return os.path.join(out_dir, self.filename)


class JsonRenderer(Renderer):
    filename = "graph.json"

    def render(self, pg: PlaylistGraph, out_dir: str) -> str:
        out_path = self._out_path(out_dir)
        payload = {"nodes": node_records(pg), "edges": edge_records(pg)}
        with open(out_path, "w", encoding="utf-8") as f:
            json.dump(payload, f, indent=2, ensure_ascii=False)
        return out_path


class CsvRenderer(Renderer):
    filename = "nodes.csv"
    edges_filename = "edges.csv"

    def render(self, pg: PlaylistGraph, out_dir: str) -> str:
        nodes_path = self._out_path(out_dir)
        edges_path = os.path.join(out_dir, self.edges_filename)
        nodes_df, edges_df = to_dataframes(pg)
        nodes_df.to_csv(nodes_path, index=False)
        edges_df.to_csv(edges_path, index=False)
        return nodes_path


class PyVisRenderer(Renderer):
    """
    Interactive HTML graph. Physics/camera are vis-network's job;
    we only feed it the contract.
    """

    filename = "network.html"

    def __init__(self, height: str = "800px"):
        self.height = height
        self.net = None

    def render(self, pg: PlaylistGraph, out_dir: str) -> str:
        net = Network(
            height=self.height,
            width="100%",
            bgcolor=THEME["bg"],
            font_color=THEME["text"],
            cdn_resources="remote",  # don't copy lib/ into the working directory
        )
        self.net = net

        # Physics makes it readable; users can drag nodes around.
        net.set_options("""
        var options = {
          "interaction": {
            "hover": true,
            "tooltipDelay": 200,
            "navigationButtons": true,
            "hideEdgesOnDrag": false
          },
          "edges": {
            "smooth": { "enabled": true, "type": "continuous", "roundness": 0.5 }
          },
          "physics": {
            "barnesHut": {
              "gravitationalConstant": -10000,
              "springConstant": 0.001,
              "springLength": 200
            },
            "solver": "barnesHut",
            "stabilization": { "enabled": true, "iterations": 200, "fit": true }
          }
        }
        """)

        for n in node_records(pg):
            attrs = pg.graph.nodes[n["id"]]
            degree_field = DEGREE_FIELDS[n["type"]]
            fill = css_color(n["color"])
            net.add_node(
                n["id"],
                # pyvis falls back to the id for an empty label
                label=n["label"] or " ",
                title=f"{attrs['label']} ({n['type']}, {degree_field.replace('_', ' ')}: {attrs[degree_field]})",
                size=n["size"],
                hidden=n["hidden"],
                group=n["type"],
                color={
                    "background": fill,
                    "border": THEME["node_border"],
                    "highlight": {"background": fill, "border": THEME["text"]},
                    "hover": {"background": fill, "border": THEME["text"]},
                },
                font={"color": THEME["text"], "size": 16, "face": "system-ui"},
            )

        for e in edge_records(pg):
            net.add_edge(
                e["from"],
                e["to"],
                width=e["size"],
                color=css_color(e["color"]),
                hidden=e["hidden"],
            )

        out_path = self._out_path(out_dir)
        net.write_html(out_path)
        inject_legend(out_path, layer_counts(pg))
        return out_path

    def close(self) -> None:
        self.net = None


class StaticPngRenderer(Renderer):
    """
    Static PNG using matplotlib and a force-directed layout (spring_layout).
    Hidden nodes/edges are left out.
    """

    filename = "network.png"

    def __init__(self, max_labels: int = 15):
        self.max_labels = max_labels
        self.figure = None

    def render(self, pg: PlaylistGraph, out_dir: str) -> str:
        nodes = [n for n in node_records(pg) if not n["hidden"]]
        edges = [e for e in edge_records(pg) if not e["hidden"]]

        G = nx.Graph()
        for n in nodes:
            G.add_node(n["id"])
        for e in edges:
            if e["from"] in G and e["to"] in G:
                G.add_edge(e["from"], e["to"])

        # Layout: deterministic for the same graph
        pos = nx.spring_layout(G, seed=42, k=0.6) if len(G) else {}

        self.figure = plt.figure(figsize=(18, 12), dpi=200)
        ax = plt.gca()
        ax.set_facecolor(THEME["bg"])
        self.figure.patch.set_facecolor(THEME["bg"])

        drawn_edges = [e for e in edges if G.has_edge(e["from"], e["to"])]
        if drawn_edges:
            nx.draw_networkx_edges(
                G,
                pos,
                edgelist=[(e["from"], e["to"]) for e in drawn_edges],
                width=[e["size"] for e in drawn_edges],
                edge_color=[mpl_color(e["color"]) for e in drawn_edges],
            )
        if nodes:
            nx.draw_networkx_nodes(
                G,
                pos,
                nodelist=[n["id"] for n in nodes],
                node_size=[n["size"] * 20 for n in nodes],  # scale for matplotlib
                node_color=[mpl_color(n["color"]) for n in nodes],
                linewidths=1.0,
                edgecolors=THEME["node_border"],
            )

        # Labels: playlists + the biggest visible nodes to keep it readable
        labelled = [n for n in nodes if n["label"]]
        top = {n["id"] for n in sorted(labelled, key=lambda n: n["size"], reverse=True)[: self.max_labels]}
        label_subset = {
            n["id"]: safe_matplotlib_label(n["label"])
            for n in labelled
            if n["type"] == "playlist" or n["id"] in top
        }
        if label_subset:
            nx.draw_networkx_labels(G, pos, labels=label_subset, font_size=8, font_color=THEME["text"])

        plt.axis("off")
        out_path = self._out_path(out_dir)
        plt.tight_layout()
        plt.savefig(out_path, facecolor=THEME["bg"])
        self.close()
        return out_path

    def close(self) -> None:
        if self.figure is not None:
            plt.close(self.figure)
            self.figure = None


def render_all(pg: PlaylistGraph, out_dir: str, renderers: Iterable[Renderer]) -> List[str]:
    paths = []
    for renderer in renderers:
        try:
            paths.append(renderer.render(pg, out_dir))
        finally:
            renderer.close()
    return paths


# ----------------------------
# HTML post-processing
# ----------------------------

def layer_counts(pg: PlaylistGraph) -> Dict[str, int]:
    counts = {t: 0 for t in NODE_TYPES}
    for _, t in pg.graph.nodes(data="type"):
        counts[t] += 1
    return counts


def inject_legend(html_path: str, counts: Dict[str, int]) -> None:
    """
    Post-process the PyVis HTML to add a small legend
    (node-type colours + how many nodes of each type were built).
    """
    with open(html_path, "r", encoding="utf-8") as f:
        s = f.read()

    start_marker = "<!-- PG_LEGEND_START -->"
    end_marker = "<!-- PG_LEGEND_END -->"
    if start_marker in s and end_marker in s:
        s = s.split(start_marker)[0] + s.split(end_marker)[1]

    rows = "".join(
        f'<div class="pgRow"><span class="pgDot" style="background:{cfg["color"]}"></span>'
        f"{node_type.capitalize()}s <b>{counts.get(node_type, 0)}</b></div>"
        for node_type, cfg in NODE_TYPES.items()
    )

    legend = f"""
{start_marker}
<style>
  #pgLegend{{
    position: fixed;
    top: 16px;
    left: 16px;
    z-index: 9999;
    padding: 12px 14px;
    border-radius: 12px;
    border: 1px solid {THEME["panel_border"]};
    background: {THEME["panel"]};
    color: {THEME["text"]};
    font-family: system-ui, -apple-system, Segoe UI, Roboto, Helvetica, Arial, sans-serif;
    font-size: 13px;
  }}
  .pgRow{{ display:flex; align-items:center; gap:8px; margin: 4px 0; }}
  .pgDot{{ width: 12px; height: 12px; border-radius: 999px; display:inline-block; }}
</style>
<div id="pgLegend">{rows}</div>
{end_marker}
"""

    if "</body>" in s:
        s = s.replace("</body>", legend + "\n</body>", 1)
    else:
        s += "\n" + legend

    with open(html_path, "w", encoding="utf-8") as f:
        f.write(s)
