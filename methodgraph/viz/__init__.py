"""Relationship graph core: scoring, graph building, layout, zoom and interaction."""

from __future__ import annotations

from methodgraph.viz.builder import GraphEdge, GraphNode, LinkOptions, MethodGraph, build_graph
from methodgraph.viz.geometry import Boundary, ClusterRegion, cluster_boundary, compute_cluster_regions
from methodgraph.viz.graph_view import (
    GraphHost,
    GraphViewConfig,
    NoopGraphHandle,
    RelationshipGraphView,
    SvgSurface,
    create_relationship_graph,
)
from methodgraph.viz.interaction import InteractionState
from methodgraph.viz.layout import ForceLayout, LayoutParams
from methodgraph.viz.similarity import score
from methodgraph.viz.tokens import RelationshipType, VisualConfig
from methodgraph.viz.zoom import SemanticZoom, ZoomBand, ZoomController, ZoomThresholds

__all__ = [
    "Boundary",
    "ClusterRegion",
    "ForceLayout",
    "GraphEdge",
    "GraphHost",
    "GraphNode",
    "GraphViewConfig",
    "InteractionState",
    "LayoutParams",
    "LinkOptions",
    "MethodGraph",
    "NoopGraphHandle",
    "RelationshipGraphView",
    "RelationshipType",
    "SemanticZoom",
    "SvgSurface",
    "VisualConfig",
    "ZoomBand",
    "ZoomController",
    "ZoomThresholds",
    "build_graph",
    "cluster_boundary",
    "compute_cluster_regions",
    "create_relationship_graph",
    "score",
]
