"""Unit tests for frame building and SVG output."""

from __future__ import annotations

import pytest

from methodgraph.viz.builder import LinkOptions, build_graph
from methodgraph.viz.geometry import Point
from methodgraph.viz.interaction import InteractionState
from methodgraph.viz.render import build_frame, edge_path, render_svg
from methodgraph.viz.tokens import RelationshipType
from methodgraph.viz.zoom import ViewTransform, ZoomBand, ZoomIndicator, band_style


@pytest.fixture
def graph(sample_catalog):
    return build_graph(
        sample_catalog.methods,
        sample_catalog.pipeline_steps,
        LinkOptions(show_same_step=True, similarity_threshold=0.2),
    )


@pytest.fixture
def positions(graph):
    return {node.id: Point(100.0 + 90 * i, 80.0 + 40 * (i % 3)) for i, node in enumerate(graph.nodes)}


def _frame(graph, sample_catalog, positions, band=ZoomBand.NORMAL, interaction=None, **kwargs):
    return build_frame(
        graph,
        sample_catalog.pipeline_steps,
        positions,
        interaction or InteractionState(graph),
        band_style(band),
        band,
        ViewTransform.centered(800, 600),
        ZoomIndicator(band.label, "85%"),
        width=800,
        height=600,
        **kwargs,
    )


def test_edge_path_shapes(graph):
    a, b = Point(0, 0), Point(30, 40)
    explicit = next(e for e in graph.edges if e.type is RelationshipType.EXPLICIT)
    curved = next(e for e in graph.edges if e.type is not RelationshipType.EXPLICIT)
    assert edge_path(explicit, a, b) == "M0.00,0.00L30.00,40.00"
    assert edge_path(curved, a, b).startswith("M0.00,0.00A75.00,75.00")


def test_only_explicit_edges_get_arrowheads(graph, sample_catalog, positions):
    svg = render_svg(_frame(graph, sample_catalog, positions))
    explicit = sum(1 for e in graph.edges if e.type is RelationshipType.EXPLICIT)
    assert explicit > 0
    assert svg.count('marker-end="url(#arrow-explicit)"') == explicit
    assert svg.count("marker-end=") == explicit
    assert svg.count("<marker ") == len(RelationshipType)


def test_one_svg_element_per_node_and_edge(graph, sample_catalog, positions):
    frame = _frame(graph, sample_catalog, positions)
    svg = render_svg(frame)
    assert svg.count('class="node"') == len(graph.nodes)
    assert svg.count('class="link link--') == len(graph.edges)
    assert svg.count('class="cluster-hull"') == len(frame.hulls) == 4


def test_clusters_can_be_hidden(graph, sample_catalog, positions):
    frame = _frame(graph, sample_catalog, positions, show_clusters=False)
    assert frame.hulls == ()
    assert "cluster-hull" not in render_svg(frame)


def test_detail_cards_follow_band(graph, sample_catalog, positions):
    normal = _frame(graph, sample_catalog, positions, ZoomBand.NORMAL)
    assert all(n.card is None for n in normal.nodes)
    assert "detail-card" not in render_svg(normal)

    full = _frame(graph, sample_catalog, positions, ZoomBand.FULL)
    assert all(n.card is not None for n in full.nodes)
    svg = render_svg(full)
    assert svg.count('class="detail-card"') == len(graph.nodes)
    assert "Evidence: case_study" in svg


def test_hover_shows_label_unless_labels_disabled(graph, sample_catalog, positions):
    interaction = InteractionState(graph)
    interaction.hover("imu")
    frame = _frame(graph, sample_catalog, positions, interaction=interaction)
    visible = [n.id for n in frame.nodes if n.label_visible]
    assert visible == ["imu"]
    assert render_svg(frame).count('class="node-label"') == 1

    hidden = _frame(graph, sample_catalog, positions, interaction=interaction, show_labels=False)
    assert not any(n.label_visible for n in hidden.nodes)


def test_selected_node_is_outlined(graph, sample_catalog, positions):
    interaction = InteractionState(graph, selected_id="har")
    frame = _frame(graph, sample_catalog, positions, interaction=interaction)
    har = next(n for n in frame.nodes if n.id == "har")
    assert har.stroke_width == 3.0
    assert har.glow


def test_entrance_fades_nodes_then_edges(graph, sample_catalog, positions):
    start = _frame(graph, sample_catalog, positions, entrance_elapsed=0.0)
    assert start.nodes[0].opacity == 0.0
    assert all(e.opacity == 0.0 for e in start.edges)

    halfway = _frame(graph, sample_catalog, positions, entrance_elapsed=0.25)
    assert halfway.nodes[0].opacity == pytest.approx(0.5)
    assert all(e.opacity == 0.0 for e in halfway.edges)

    done = _frame(graph, sample_catalog, positions, entrance_elapsed=5.0)
    assert all(n.opacity == 1.0 for n in done.nodes)
    assert all(e.opacity == pytest.approx(0.6) for e in done.edges)


def test_abstract_band_shrinks_nodes_and_hides_modalities(graph, sample_catalog, positions):
    frame = _frame(graph, sample_catalog, positions, ZoomBand.ABSTRACT)
    imu = next(n for n in frame.nodes if n.id == "imu")
    assert imu.radius == pytest.approx(graph.node("imu").radius * 0.6)
    assert all(d.opacity == 0 for d in imu.dots)
    assert all(e.width == 0.5 for e in frame.edges)


def test_hint_and_indicator(graph, sample_catalog, positions):
    svg = render_svg(_frame(graph, sample_catalog, positions))
    assert 'class="zoom-hint"' in svg
    assert ">Normal</text>" in svg
    hidden = render_svg(_frame(graph, sample_catalog, positions, hint_opacity=0.0))
    assert "zoom-hint" not in hidden
