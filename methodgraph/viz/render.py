"""Per-frame scene snapshots and their SVG serialisation."""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Mapping, Sequence

from methodgraph.models.schemas import PipelineStep
from methodgraph.viz.builder import GraphEdge, MethodGraph
from methodgraph.viz.geometry import (
    VIEW_PADDING,
    Point,
    cluster_boundary,
    compute_cluster_regions,
    label_anchor,
    region_points,
)
from methodgraph.viz.interaction import InteractionState
from methodgraph.viz.tokens import DEFAULT_VISUAL_CONFIG, RelationshipType, VisualConfig
from methodgraph.viz.zoom import HINT_TEXT, BandStyle, DetailCard, ViewTransform, ZoomBand, ZoomIndicator, detail_card

MAX_MODALITY_DOTS = 4
NODE_FADE = 0.5
NODE_STAGGER = 0.02
EDGE_FADE = 0.8
EDGE_DELAY = 0.5


@dataclass(frozen=True)
class ModalityDot:
    cx: float
    cy: float
    r: float
    color: str
    opacity: float


@dataclass(frozen=True)
class NodeFrame:
    id: str
    x: float
    y: float
    radius: float
    color: str
    opacity: float
    stroke: str
    stroke_width: float
    glow: bool
    label: str
    label_visible: bool
    dots: tuple[ModalityDot, ...]
    card: DetailCard | None


@dataclass(frozen=True)
class EdgeFrame:
    source: str
    target: str
    type: RelationshipType
    path: str
    color: str
    width: float
    dash: str | None
    opacity: float


@dataclass(frozen=True)
class HullFrame:
    id: str
    name: str
    color: str
    path: str
    fill_opacity: float
    stroke_opacity: float
    stroke_width: float
    label_at: Point
    label_size: float
    label_opacity: float


@dataclass(frozen=True)
class Frame:
    width: float
    height: float
    transform: ViewTransform
    nodes: tuple[NodeFrame, ...]
    edges: tuple[EdgeFrame, ...]
    hulls: tuple[HullFrame, ...]
    indicator: ZoomIndicator
    hint_opacity: float
    tick: int


def edge_path(edge: GraphEdge, a: Point, b: Point) -> str:
    """Straight line for explicit relations, a sweeping arc otherwise."""
    if not edge.type.curved:
        return f"M{a.x:.2f},{a.y:.2f}L{b.x:.2f},{b.y:.2f}"
    dr = math.hypot(b.x - a.x, b.y - a.y) * 1.5
    return f"M{a.x:.2f},{a.y:.2f}A{dr:.2f},{dr:.2f} 0 0,1 {b.x:.2f},{b.y:.2f}"


def _fade(elapsed: float | None, delay: float, duration: float) -> float:
    if elapsed is None:
        return 1.0
    return max(0.0, min(1.0, (elapsed - delay) / duration))


def build_frame(
    graph: MethodGraph,
    pipeline_steps: Sequence[PipelineStep],
    positions: Mapping[str, Point],
    interaction: InteractionState,
    style: BandStyle,
    band: ZoomBand,
    transform: ViewTransform,
    indicator: ZoomIndicator,
    hint_opacity: float = 1.0,
    width: float = 0,
    height: float = 0,
    show_clusters: bool = True,
    show_labels: bool = True,
    entrance_elapsed: float | None = None,
    tick: int = 0,
    visual: VisualConfig = DEFAULT_VISUAL_CONFIG,
) -> Frame:
    """Snapshot everything needed to draw one frame.

    ``entrance_elapsed`` is the time since the view was mounted when the
    animated entrance is on, None otherwise.
    """
    tokens = visual.tokens
    nodes = []
    for i, node in enumerate(graph.nodes):
        p = positions[node.id]
        nv = interaction.node_visual(node.id)
        base_r = node.radius
        r = base_r * style.node_radius_factor * nv.radius_factor
        mods = node.modalities[:MAX_MODALITY_DOTS]
        dots = []
        for j, mod in enumerate(mods):
            angle = (j / len(mods)) * 2 * math.pi - math.pi / 2
            dist = base_r + 4 + 2
            dots.append(ModalityDot(
                cx=math.cos(angle) * dist,
                cy=math.sin(angle) * dist,
                r=style.modality_radius,
                color=visual.modality_color(mod),
                opacity=style.modality_opacity,
            ))
        nodes.append(NodeFrame(
            id=node.id,
            x=p.x,
            y=p.y,
            radius=r,
            color=node.color,
            opacity=nv.opacity * _fade(entrance_elapsed, i * NODE_STAGGER, NODE_FADE),
            stroke=tokens.accent if nv.outlined else tokens.surface,
            stroke_width=3.0 if nv.outlined else style.node_stroke_width,
            glow=nv.glow,
            label=node.short_name,
            label_visible=show_labels and nv.label_visible,
            dots=tuple(dots),
            card=detail_card(node, band, pipeline_steps, visual),
        ))

    edge_fade = _fade(entrance_elapsed, EDGE_DELAY, EDGE_FADE)
    edges = []
    for edge in graph.edges:
        ev = interaction.edge_visual(edge)
        s = edge.style
        edges.append(EdgeFrame(
            source=edge.source,
            target=edge.target,
            type=edge.type,
            path=edge_path(edge, positions[edge.source], positions[edge.target]),
            color=s.color,
            width=style.edge_width(s.stroke_width) * ev.width_factor,
            dash=s.dash_array,
            opacity=(style.edge_opacity if ev.opacity is None else ev.opacity) * edge_fade,
        ))

    hulls = []
    if show_clusters:
        for region in compute_cluster_regions(graph.nodes, pipeline_steps, visual):
            points = region_points(region, positions)
            boundary = cluster_boundary(points, VIEW_PADDING)
            if boundary is None:
                continue
            hulls.append(HullFrame(
                id=region.id,
                name=region.name,
                color=region.color,
                path=boundary.path,
                fill_opacity=style.hull_fill_opacity,
                stroke_opacity=style.hull_stroke_opacity,
                stroke_width=style.hull_stroke_width,
                label_at=label_anchor(points),
                label_size=style.cluster_label_size,
                label_opacity=style.cluster_label_opacity,
            ))

    return Frame(
        width=width,
        height=height,
        transform=transform,
        nodes=tuple(nodes),
        edges=tuple(edges),
        hulls=tuple(hulls),
        indicator=indicator,
        hint_opacity=hint_opacity,
        tick=tick,
    )


def render_svg(frame: Frame, visual: VisualConfig = DEFAULT_VISUAL_CONFIG) -> str:
    """Serialise a frame to a standalone SVG document."""
    t = visual.tokens
    w, h = frame.width, frame.height
    lines = [
        f'<svg xmlns="http://www.w3.org/2000/svg" width="{w:g}" height="{h:g}" viewBox="0 0 {w:g} {h:g}" '
        f'role="img" aria-label="Method relationship graph visualization" '
        f'style="font-family: {xml_escape(t.font_family)}; background: {t.bg}">',
        "  <defs>",
        '    <filter id="glow" x="-50%" y="-50%" width="200%" height="200%">',
        '      <feGaussianBlur stdDeviation="3" result="coloredBlur"/>',
        '      <feMerge><feMergeNode in="coloredBlur"/><feMergeNode in="SourceGraphic"/></feMerge>',
        "    </filter>",
    ]
    for rel in RelationshipType:
        lines.append(
            f'    <marker id="arrow-{rel.value}" viewBox="0 -5 10 10" refX="20" refY="0" '
            f'markerWidth="6" markerHeight="6" orient="auto">'
            f'<path d="M0,-4L10,0L0,4" fill="{rel.style.color}"/></marker>'
        )
    lines.append("  </defs>")
    lines.append(f'  <g class="graph-container" transform="{frame.transform.svg()}">')

    lines.append('    <g class="hulls">')
    for hull in frame.hulls:
        lines.append(
            f'      <path class="cluster-hull" d="{hull.path}" fill="{hull.color}" '
            f'fill-opacity="{hull.fill_opacity:.3f}" stroke="{hull.color}" '
            f'stroke-opacity="{hull.stroke_opacity:.3f}" stroke-width="{hull.stroke_width:g}" '
            f'stroke-dasharray="5,5"/>'
        )
        lines.append(
            f'      <text class="cluster-label" x="{hull.label_at.x:.2f}" y="{hull.label_at.y:.2f}" '
            f'text-anchor="middle" fill="{hull.color}" font-size="{hull.label_size:.0f}px" '
            f'font-weight="600" opacity="{hull.label_opacity:.2f}">{xml_escape(hull.name)}</text>'
        )
    lines.append("    </g>")

    lines.append('    <g class="links">')
    for edge in frame.edges:
        dash = f' stroke-dasharray="{edge.dash}"' if edge.dash else ""
        marker = f' marker-end="url(#arrow-{edge.type.value})"' if edge.type.has_arrow else ""
        lines.append(
            f'      <path class="link link--{edge.type.value}" d="{edge.path}" stroke="{edge.color}" '
            f'stroke-width="{edge.width:.2f}" fill="none" opacity="{edge.opacity:.2f}"{dash}{marker}/>'
        )
    lines.append("    </g>")

    lines.append('    <g class="nodes">')
    for node in frame.nodes:
        glow = ' filter="url(#glow)"' if node.glow else ""
        lines.append(
            f'      <g class="node" data-id="{xml_escape(node.id)}" transform="translate({node.x:.2f},{node.y:.2f})" '
            f'opacity="{node.opacity:.2f}">'
        )
        lines.append(
            f'        <circle class="node-circle" r="{node.radius:.2f}" fill="{node.color}" '
            f'stroke="{node.stroke}" stroke-width="{node.stroke_width:g}"{glow}/>'
        )
        for dot in node.dots:
            lines.append(
                f'        <circle class="modality-indicator" cx="{dot.cx:.2f}" cy="{dot.cy:.2f}" '
                f'r="{dot.r:g}" fill="{dot.color}" stroke="{t.bg}" stroke-width="1" '
                f'opacity="{dot.opacity:.2f}"/>'
            )
        if node.card is not None:
            lines.extend(_card_lines(node, node.card, t.surface, t.text, t.text_muted, t.text_secondary))
        lines.append("      </g>")
    lines.append("    </g>")

    lines.append('    <g class="labels">')
    for node in frame.nodes:
        if not node.label_visible:
            continue
        lines.append(
            f'      <text class="node-label" x="{node.x:.2f}" y="{node.y - node.radius - 15:.2f}" '
            f'text-anchor="middle" dy="0.35em" fill="{t.text}" font-size="11px" '
            f'font-weight="500">{xml_escape(node.label)}</text>'
        )
    lines.append("    </g>")
    lines.append("  </g>")

    lines.append(f'  <g class="zoom-indicator" transform="translate({w - 140:g}, 20)">')
    lines.append(
        f'    <rect width="130" height="50" rx="8" fill="{t.surface}" stroke="{t.border}" opacity="0.9"/>'
    )
    lines.append(
        f'    <text x="65" y="20" text-anchor="middle" fill="{t.text}" font-size="11px" '
        f'font-weight="600">{frame.indicator.label}</text>'
    )
    lines.append(
        f'    <text x="65" y="38" text-anchor="middle" fill="{t.text_muted}" '
        f'font-size="10px">{frame.indicator.percent}</text>'
    )
    lines.append("  </g>")
    if frame.hint_opacity > 0:
        lines.append(
            f'  <text class="zoom-hint" x="{w / 2:g}" y="{h - 25:g}" text-anchor="middle" '
            f'fill="{t.text_muted}" font-size="10px" opacity="{0.7 * frame.hint_opacity:.2f}">'
            f"{xml_escape(HINT_TEXT)}</text>"
        )
    lines.append("</svg>")
    return "\n".join(lines)


def _card_lines(node: NodeFrame, card: DetailCard, surface: str, text: str, muted: str, secondary: str) -> list[str]:
    body: list[str] = []
    y = 0.0
    for i, line in enumerate(card.title_lines):
        body.append(
            f'<text class="detail-name" y="{y + i * 14:g}" fill="{text}" font-size="12px" '
            f'font-weight="600">{xml_escape(line)}</text>'
        )
    y += len(card.title_lines) * 14 + 6
    if card.meta:
        body.append(f'<text class="detail-meta" y="{y:g}" fill="{muted}" font-size="10px">{xml_escape(card.meta)}</text>')
        y += 14
    if card.modality_badges:
        y += 4
        x = 0.0
        for mod, color in card.modality_badges:
            badge_w = len(mod) * 5.5
            body.append(
                f'<g transform="translate({x:g},{y:g})"><rect x="-4" width="{badge_w + 8:g}" height="14" '
                f'rx="3" fill="{color}" opacity="0.15"/><text y="9" fill="{color}" font-size="9px" '
                f'font-weight="500">{xml_escape(mod)}</text></g>'
            )
            x += badge_w + 12
        y += 20
    if card.step_badge:
        name, color = card.step_badge
        y += 2
        body.append(
            f'<g transform="translate(0,{y:g})"><circle cx="5" cy="6" r="4" fill="{color}"/>'
            f'<text x="12" y="9" fill="{secondary}" font-size="10px">{xml_escape(name)}</text></g>'
        )
        y += 16
    if card.evidence:
        body.append(
            f'<text y="{y:g}" fill="{muted}" font-size="9px" font-style="italic">{xml_escape(card.evidence)}</text>'
        )
        y += 12

    longest = max([len(s) for s in card.title_lines] + [len(card.meta or ""), len(card.evidence or "")])
    card_w = longest * 6.5 + 20
    card_h = y + 16
    return [
        f'        <g class="detail-card" transform="translate({card.offset.x:.2f},{card.offset.y:.2f})">',
        f'          <rect class="detail-card-bg" rx="6" ry="6" width="{card_w:g}" height="{card_h:g}" '
        f'fill="{surface}" stroke="{node.color}" stroke-width="1.5" opacity="0.95"/>',
        '          <g class="detail-card-content" transform="translate(10, 12)">',
        *("            " + b for b in body),
        "          </g>",
        "        </g>",
    ]


def xml_escape(s: str) -> str:
    return s.replace("&", "&amp;").replace("<", "&lt;").replace(">", "&gt;").replace('"', "&quot;")
