"""Render a laid-out method graph (clusters, edges, nodes) to PNG/JPEG bytes."""

from __future__ import annotations

import io
import re
from typing import Literal

from methodgraph.services.graph_service import GraphSnapshot
from methodgraph.viz.interaction import DIMMED_NODE_OPACITY
from methodgraph.viz.tokens import DEFAULT_VISUAL_CONFIG, VisualConfig

_RGBA = re.compile(r"rgba?\(\s*([\d.]+)\s*,\s*([\d.]+)\s*,\s*([\d.]+)\s*(?:,\s*([\d.]+)\s*)?\)")


def mpl_color(css: str) -> str | tuple[float, float, float, float]:
    """CSS ``rgba(...)`` strings as Matplotlib RGBA tuples; hex passes through."""
    m = _RGBA.fullmatch(css.strip())
    if m is None:
        return css
    r, g, b, a = m.groups()
    return (float(r) / 255, float(g) / 255, float(b) / 255, float(a) if a is not None else 1.0)


def render_graph_image(
    snap: GraphSnapshot,
    format: Literal["png", "jpeg", "jpg"] = "png",
    dpi: int = 100,
    figsize: tuple[float, float] = (12, 8),
    selected_id: str | None = None,
    visual: VisualConfig = DEFAULT_VISUAL_CONFIG,
) -> bytes:
    """Render the snapshot to image bytes using NetworkX + Matplotlib.

    Node positions come from the settled force layout, so the image matches
    the SVG and JSON exports of the same snapshot.

    Args:
        snap: Laid-out graph with cluster outlines.
        format: Output format: "png", "jpeg", or "jpg".
        dpi: Dots per inch for the image.
        figsize: Figure size (width, height) in inches.
        selected_id: Node to outline; non-neighbours are dimmed.

    Returns:
        Image bytes (PNG or JPEG).
    """
    import matplotlib
    matplotlib.use("Agg")
    import matplotlib.pyplot as plt
    import networkx as nx
    from matplotlib.patches import Polygon

    tokens = visual.tokens
    if not snap.graph.nodes:
        return _empty_image_bytes(format, dpi, tokens.bg, tokens.text)

    G = snap.graph.to_networkx()
    pos = {node_id: (p.x, p.y) for node_id, p in snap.positions.items()}

    fig, ax = plt.subplots(figsize=figsize, dpi=dpi)
    fig.patch.set_facecolor(tokens.bg)
    ax.set_facecolor(tokens.bg)

    for cluster in snap.clusters:
        if cluster.boundary is None:
            continue
        outline = [(p.x, p.y) for p in cluster.boundary.outline]
        ax.add_patch(Polygon(
            outline,
            closed=True,
            facecolor=mpl_color(cluster.region.color),
            edgecolor=mpl_color(cluster.region.color),
            alpha=0.15,
            linewidth=2,
        ))
        if cluster.label_at is not None:
            ax.text(
                cluster.label_at.x,
                cluster.label_at.y,
                cluster.region.name,
                ha="center",
                va="center",
                fontsize=10,
                fontweight="bold",
                color=mpl_color(cluster.region.color),
            )

    for edge in snap.graph.edges:
        style = edge.style
        nx.draw_networkx_edges(
            G,
            pos,
            edgelist=[(edge.source, edge.target)],
            edge_color=[mpl_color(style.color)],
            width=style.stroke_width,
            style="solid" if style.dash_array is None else "dashed",
            connectionstyle="arc3" if not edge.type.curved else "arc3,rad=0.2",
            arrows=edge.type.has_arrow or edge.type.curved,
            arrowstyle="-|>" if edge.type.has_arrow else "-",
            arrowsize=10,
            ax=ax,
        )

    focus = None
    if selected_id is not None and snap.graph.node(selected_id) is not None:
        focus = snap.graph.neighbors(selected_id) | {selected_id}
    node_ids = [n.id for n in snap.graph.nodes]
    nx.draw_networkx_nodes(
        G,
        pos,
        nodelist=node_ids,
        node_color=[n.color for n in snap.graph.nodes],
        node_size=[(n.radius * 2) ** 2 for n in snap.graph.nodes],
        alpha=[1.0 if focus is None or n.id in focus else DIMMED_NODE_OPACITY for n in snap.graph.nodes],
        edgecolors=[tokens.accent if n.id == selected_id else tokens.bg for n in snap.graph.nodes],
        linewidths=[3.0 if n.id == selected_id else 1.5 for n in snap.graph.nodes],
        ax=ax,
    )
    nx.draw_networkx_labels(
        G,
        {k: (x, y - 22) for k, (x, y) in pos.items()},
        labels={n.id: n.short_name for n in snap.graph.nodes},
        font_size=7,
        font_color=tokens.text_secondary,
        ax=ax,
    )

    # Screen coordinates grow downwards.
    ax.invert_yaxis()
    ax.set_aspect("equal")
    ax.axis("off")
    plt.tight_layout(pad=0.5)

    buf = io.BytesIO()
    save_fmt = "jpg" if format in ("jpeg", "jpg") else "png"
    plt.savefig(buf, format=save_fmt, bbox_inches="tight", facecolor=tokens.bg, dpi=dpi)
    plt.close(fig)
    buf.seek(0)
    return buf.read()


def _empty_image_bytes(format: Literal["png", "jpeg", "jpg"], dpi: int, bg: str, fg: str) -> bytes:
    """Return a small placeholder image when the graph has no nodes."""
    import matplotlib
    matplotlib.use("Agg")
    import matplotlib.pyplot as plt

    fig, ax = plt.subplots(figsize=(4, 2), dpi=dpi)
    fig.patch.set_facecolor(bg)
    ax.set_facecolor(bg)
    ax.text(0.5, 0.5, "No methods to display", ha="center", va="center", fontsize=12, color=fg)
    ax.axis("off")
    buf = io.BytesIO()
    save_fmt = "jpg" if format in ("jpeg", "jpg") else "png"
    plt.savefig(buf, format=save_fmt, bbox_inches="tight", facecolor=bg, dpi=dpi)
    plt.close(fig)
    buf.seek(0)
    return buf.read()
