"""Graph API endpoints: laid-out graph, exports, similarity, zoom bands, live layout."""

from __future__ import annotations

import json
from dataclasses import asdict
from typing import Literal

from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.responses import Response
from sse_starlette.sse import EventSourceResponse

from methodgraph.api.dependencies import get_graph_service
from methodgraph.api.graph_image import render_graph_image
from methodgraph.api.v1.schemas.graph import (
    ClusterOut,
    EdgeOut,
    GraphResponse,
    NodeOut,
    SimilarityResponse,
    ZoomResponse,
)
from methodgraph.services.graph_service import GraphService, GraphSnapshot
from methodgraph.utils.exceptions import UnknownMethodError
from methodgraph.utils.logging import get_logger
from methodgraph.viz.builder import LinkOptions
from methodgraph.viz.render import xml_escape
from methodgraph.viz.zoom import SCALE_EXTENT, SemanticZoom

logger = get_logger(__name__)
router = APIRouter(prefix="/graph", tags=["graph"])


class ViewQuery:
    """Query parameters shared by every endpoint that builds a graph."""

    def __init__(
        self,
        show_explicit: bool = True,
        show_same_step: bool = False,
        show_shared_modality: bool = False,
        show_shared_task: bool = False,
        show_similar: bool = True,
        similarity_threshold: float | None = Query(default=None, ge=0.0, le=1.0),
        max_similar_links: int | None = Query(default=None, ge=0),
        node_spacing: float | None = Query(default=None, ge=0.5, le=3.0),
        width: float | None = Query(default=None, gt=0),
        height: float | None = Query(default=None, gt=0),
        method_ids: list[str] | None = Query(default=None),
        graphs: GraphService = Depends(get_graph_service),
    ) -> None:
        defaults = graphs.default_options()
        self.options = LinkOptions(
            show_explicit=show_explicit,
            show_same_step=show_same_step,
            show_shared_modality=show_shared_modality,
            show_shared_task=show_shared_task,
            show_similar=show_similar,
            similarity_threshold=(
                defaults.similarity_threshold if similarity_threshold is None else similarity_threshold
            ),
            max_similar_links=defaults.max_similar_links if max_similar_links is None else max_similar_links,
        )
        self.node_spacing = node_spacing
        self.width = width
        self.height = height
        self.method_ids = method_ids

    def snapshot(self, graphs: GraphService) -> GraphSnapshot:
        return graphs.snapshot(
            self.options,
            method_ids=self.method_ids,
            node_spacing=self.node_spacing,
            width=self.width,
            height=self.height,
        )


def graph_response(snap: GraphSnapshot) -> GraphResponse:
    nodes = [
        NodeOut(
            id=n.id,
            name=n.name,
            short_name=n.short_name,
            pipeline_step=n.pipeline_step,
            modalities=list(n.modalities),
            tasks=list(n.tasks),
            maturity=n.maturity,
            evidence_type=n.evidence_type,
            year=n.year,
            color=n.color,
            degree=n.degree,
            radius=n.radius,
            x=round(snap.positions[n.id].x, 2),
            y=round(snap.positions[n.id].y, 2),
        )
        for n in snap.graph.nodes
    ]
    edges = [
        EdgeOut(
            source=e.source,
            target=e.target,
            type=e.type.value,
            label=e.style.label,
            strength=round(e.strength, 4),
            color=e.style.color,
            stroke_width=e.style.stroke_width,
            dash_array=e.style.dash_array,
        )
        for e in snap.graph.edges
    ]
    clusters = [
        ClusterOut(
            id=c.region.id,
            name=c.region.name,
            color=c.region.color,
            members=[m.id for m in c.region.members],
            kind=c.boundary.kind if c.boundary else None,
            path=c.boundary.path if c.boundary else None,
            label_x=round(c.label_at.x, 2) if c.label_at else None,
            label_y=round(c.label_at.y, 2) if c.label_at else None,
        )
        for c in snap.clusters
    ]
    return GraphResponse(
        nodes=nodes,
        edges=edges,
        clusters=clusters,
        node_count=len(nodes),
        edge_count=len(edges),
        width=snap.width,
        height=snap.height,
        ticks=snap.ticks,
    )


@router.get("", response_model=GraphResponse)
def get_graph(
    view: ViewQuery = Depends(),
    graphs: GraphService = Depends(get_graph_service),
) -> GraphResponse:
    """Build the relationship graph, settle its layout, and return it as JSON."""
    return graph_response(view.snapshot(graphs))


@router.get("/export")
def export_graph(
    format: Literal["json", "graphml", "svg", "png"] = "json",
    zoom: float = Query(default=0.85, ge=SCALE_EXTENT[0], le=SCALE_EXTENT[1]),
    selected_id: str | None = None,
    view: ViewQuery = Depends(),
    graphs: GraphService = Depends(get_graph_service),
) -> Response:
    """Export the laid-out graph as JSON, GraphML, SVG or PNG."""
    snap = view.snapshot(graphs)
    logger.info("graph_export", format=format, nodes=len(snap.graph.nodes))

    if format == "json":
        content = json.dumps(graph_response(snap).model_dump(), indent=2)
        return Response(
            content=content,
            media_type="application/json",
            headers={"Content-Disposition": "attachment; filename=method_graph.json"},
        )
    if format == "svg":
        return Response(
            content=graphs.render_svg(snap, zoom=zoom, selected_id=selected_id),
            media_type="image/svg+xml",
            headers={"Content-Disposition": "attachment; filename=method_graph.svg"},
        )
    if format == "png":
        return Response(
            content=render_graph_image(snap, selected_id=selected_id),
            media_type="image/png",
            headers={"Content-Disposition": "attachment; filename=method_graph.png"},
        )

    return Response(
        content=to_graphml(snap),
        media_type="application/xml",
        headers={"Content-Disposition": "attachment; filename=method_graph.graphml"},
    )


@router.get("/similarity", response_model=SimilarityResponse)
async def get_similarity(
    a: str,
    b: str,
    graphs: GraphService = Depends(get_graph_service),
) -> SimilarityResponse:
    try:
        value = graphs.similarity(a, b)
    except UnknownMethodError as exc:
        raise HTTPException(status_code=404, detail=str(exc))
    return SimilarityResponse(a=a, b=b, score=round(value, 6))


@router.get("/zoom", response_model=ZoomResponse)
async def get_zoom_band(scale: float = Query(gt=0)) -> ZoomResponse:
    """Semantic zoom band, settled band style and indicator text for a scale."""
    semantic = SemanticZoom(initial_scale=scale, duration=0)
    indicator = semantic.indicator
    return ZoomResponse(
        scale=scale,
        band=semantic.band.name.lower(),
        label=indicator.label,
        percent=indicator.percent,
        shows_detail_cards=semantic.band.shows_detail_cards,
        style=asdict(semantic.style()),
    )


@router.get("/stream")
async def stream_layout(
    max_ticks: int | None = Query(default=None, ge=1),
    view: ViewQuery = Depends(),
    graphs: GraphService = Depends(get_graph_service),
) -> EventSourceResponse:
    """SSE endpoint: one ``frame`` event per simulation step, then ``done``."""

    async def event_generator():
        async for event_type, data in graphs.stream_layout(
            view.options,
            method_ids=view.method_ids,
            node_spacing=view.node_spacing,
            width=view.width,
            height=view.height,
            max_ticks=max_ticks,
        ):
            yield {"event": event_type, "data": json.dumps(data)}

    return EventSourceResponse(event_generator())


def to_graphml(snap: GraphSnapshot) -> str:
    """Convert a laid-out graph to GraphML XML."""
    lines = [
        '<?xml version="1.0" encoding="UTF-8"?>',
        '<graphml xmlns="http://graphml.graphdrawing.org/xmlns">',
        '  <key id="name" for="node" attr.name="name" attr.type="string"/>',
        '  <key id="step" for="node" attr.name="pipeline_step" attr.type="string"/>',
        '  <key id="degree" for="node" attr.name="degree" attr.type="int"/>',
        '  <key id="x" for="node" attr.name="x" attr.type="double"/>',
        '  <key id="y" for="node" attr.name="y" attr.type="double"/>',
        '  <key id="type" for="edge" attr.name="type" attr.type="string"/>',
        '  <key id="strength" for="edge" attr.name="strength" attr.type="double"/>',
        '  <graph id="G" edgedefault="undirected">',
    ]

    for node in snap.graph.nodes:
        p = snap.positions[node.id]
        lines.append(f'    <node id="{xml_escape(node.id)}">')
        lines.append(f'      <data key="name">{xml_escape(node.name)}</data>')
        lines.append(f'      <data key="step">{xml_escape(node.pipeline_step)}</data>')
        lines.append(f'      <data key="degree">{node.degree}</data>')
        lines.append(f'      <data key="x">{p.x:.2f}</data>')
        lines.append(f'      <data key="y">{p.y:.2f}</data>')
        lines.append("    </node>")

    for i, edge in enumerate(snap.graph.edges):
        lines.append(
            f'    <edge id="e{i}" source="{xml_escape(edge.source)}" target="{xml_escape(edge.target)}">'
        )
        lines.append(f'      <data key="type">{edge.type.value}</data>')
        lines.append(f'      <data key="strength">{edge.strength:.4f}</data>')
        lines.append("    </edge>")

    lines.append("  </graph>")
    lines.append("</graphml>")
    return "\n".join(lines)
