"""Unit tests for hover, selection, click and drag handling."""

from __future__ import annotations

from unittest.mock import MagicMock

import pytest

from methodgraph.viz.builder import LinkOptions, build_graph
from methodgraph.viz.interaction import EdgeVisual, InteractionState, NodeVisual
from methodgraph.viz.layout import ForceLayout


@pytest.fixture
def graph(sample_catalog):
    # imu - filtering - har; the rest unconnected
    return build_graph(sample_catalog.methods, sample_catalog.pipeline_steps, LinkOptions(show_similar=False))


def _edge(graph, a, b):
    return next(e for e in graph.edges if {e.source, e.target} == {a, b})


def test_hover_highlights_neighbourhood(graph):
    state = InteractionState(graph)
    state.hover("imu")

    hovered = state.node_visual("imu")
    assert hovered.radius_factor == 1.3
    assert hovered.glow and hovered.label_visible
    assert state.node_visual("filtering").opacity == 1.0
    assert state.node_visual("har").opacity == 0.3
    assert state.node_visual("video").opacity == 0.3

    assert state.edge_visual(_edge(graph, "imu", "filtering")) == EdgeVisual(opacity=1.0, width_factor=1.5)
    assert state.edge_visual(_edge(graph, "filtering", "har")) == EdgeVisual(opacity=0.15)


def test_hover_exit_reverts(graph):
    state = InteractionState(graph)
    state.hover("imu")
    state.hover(None)
    for node in graph.nodes:
        assert state.node_visual(node.id) == NodeVisual()
    for edge in graph.edges:
        assert state.edge_visual(edge) == EdgeVisual()


def test_hover_callback_fires_on_change_only(graph):
    seen = []
    state = InteractionState(graph, on_node_hover=seen.append)
    state.hover("har")
    state.hover("har")
    state.hover("not-a-node")
    assert [n.id if n else None for n in seen] == ["har", None]


def test_click_emits_selection_and_is_consumed(graph):
    on_click = MagicMock()
    state = InteractionState(graph, on_node_click=on_click)
    assert state.click("video") is True
    on_click.assert_called_once_with(graph.node("video"))

    assert state.click("nope") is False
    on_click.assert_called_once()


def test_selection_dims_non_neighbours(graph):
    state = InteractionState(graph, selected_id="filtering")
    selected = state.node_visual("filtering")
    assert selected.outlined and selected.glow
    assert state.node_visual("imu").opacity == 1.0
    assert state.node_visual("har").opacity == 1.0
    assert state.node_visual("video").opacity == 0.3
    assert not state.node_visual("imu").outlined


def test_hover_takes_precedence_over_selection(graph):
    state = InteractionState(graph, selected_id="filtering")
    state.hover("video")
    assert state.node_visual("video").opacity == 1.0
    assert state.node_visual("filtering").opacity == 0.3
    assert state.node_visual("filtering").outlined
    state.hover(None)
    assert state.node_visual("video").opacity == 0.3


def test_unknown_selection_is_ignored(graph):
    state = InteractionState(graph, selected_id="ghost")
    assert state.selected_id is None
    state.select("har")
    assert state.selected_id == "har"
    state.select(None)
    assert state.selected_id is None


def test_drag_goes_through_pin_contract(graph):
    layout = MagicMock(spec=ForceLayout)
    state = InteractionState(graph, layout)

    state.drag_start("har")
    layout.pin.assert_called_once_with("har")
    state.drag_move("har", 5.0, 6.0)
    state.drag_move("imu", 1.0, 1.0)
    layout.drag.assert_called_once_with("har", 5.0, 6.0)
    state.drag_end("har")
    layout.release.assert_called_once_with("har")
    assert state.dragging_id is None


def test_drag_without_layout_is_noop(graph):
    state = InteractionState(graph)
    state.drag_start("har")
    assert state.dragging_id is None


def test_clear_callbacks(graph):
    on_click = MagicMock()
    on_hover = MagicMock()
    state = InteractionState(graph, on_node_click=on_click, on_node_hover=on_hover)
    state.clear_callbacks()
    state.click("imu")
    state.hover("imu")
    on_click.assert_not_called()
    on_hover.assert_not_called()
