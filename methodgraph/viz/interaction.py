"""Hover, selection, click and drag state for one graph view."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Optional

from methodgraph.utils.logging import get_logger
from methodgraph.viz.builder import GraphEdge, GraphNode, MethodGraph
from methodgraph.viz.layout import ForceLayout

logger = get_logger(__name__)

HOVER_RADIUS_FACTOR = 1.3
DIMMED_NODE_OPACITY = 0.3
DIMMED_EDGE_OPACITY = 0.15
HIGHLIGHT_EDGE_WIDTH_FACTOR = 1.5

NodeCallback = Callable[[GraphNode], None]
HoverCallback = Callable[[Optional[GraphNode]], None]


@dataclass(frozen=True)
class NodeVisual:
    opacity: float = 1.0
    radius_factor: float = 1.0
    glow: bool = False
    label_visible: bool = False
    outlined: bool = False


@dataclass(frozen=True)
class EdgeVisual:
    # None keeps the zoom band's edge opacity.
    opacity: float | None = None
    width_factor: float = 1.0


class InteractionState:
    def __init__(
        self,
        graph: MethodGraph,
        layout: ForceLayout | None = None,
        on_node_click: NodeCallback | None = None,
        on_node_hover: HoverCallback | None = None,
        selected_id: str | None = None,
    ) -> None:
        self.graph = graph
        self.layout = layout
        self._on_click = on_node_click
        self._on_hover = on_node_hover
        self.selected_id = selected_id if graph.node(selected_id or "") else None
        self.hovered_id: str | None = None
        self.dragging_id: str | None = None
        self._adjacent: dict[str, set[str]] = {n.id: set() for n in graph.nodes}
        for e in graph.edges:
            self._adjacent[e.source].add(e.target)
            self._adjacent[e.target].add(e.source)

    def adjacent(self, a: str, b: str) -> bool:
        return b in self._adjacent.get(a, set())

    # ── events ───────────────────────────────────────────────────────

    def hover(self, node_id: str | None) -> None:
        if node_id is not None and node_id not in self._adjacent:
            node_id = None
        if node_id == self.hovered_id:
            return
        self.hovered_id = node_id
        if self._on_hover is not None:
            self._on_hover(self.graph.node(node_id) if node_id else None)

    def click(self, node_id: str) -> bool:
        """Emit the selection event. Returns True: the click is consumed."""
        node = self.graph.node(node_id)
        if node is None:
            return False
        logger.debug("node_clicked", node_id=node_id)
        if self._on_click is not None:
            self._on_click(node)
        return True

    def select(self, node_id: str | None) -> None:
        self.selected_id = node_id if node_id and node_id in self._adjacent else None

    def drag_start(self, node_id: str) -> None:
        if self.layout is None or node_id not in self._adjacent:
            return
        self.dragging_id = node_id
        self.layout.pin(node_id)

    def drag_move(self, node_id: str, x: float, y: float) -> None:
        if self.layout is not None and node_id == self.dragging_id:
            self.layout.drag(node_id, x, y)

    def drag_end(self, node_id: str) -> None:
        if self.layout is not None and node_id == self.dragging_id:
            self.layout.release(node_id)
            self.dragging_id = None

    def clear_callbacks(self) -> None:
        self._on_click = None
        self._on_hover = None

    # ── derived visuals ──────────────────────────────────────────────

    def _focus_opacity(self, focus: str, node_id: str) -> float:
        if node_id == focus or self.adjacent(focus, node_id):
            return 1.0
        return DIMMED_NODE_OPACITY

    def node_visual(self, node_id: str) -> NodeVisual:
        if self.hovered_id is not None:
            opacity = self._focus_opacity(self.hovered_id, node_id)
        elif self.selected_id is not None:
            opacity = self._focus_opacity(self.selected_id, node_id)
        else:
            opacity = 1.0
        hovered = node_id == self.hovered_id
        selected = node_id == self.selected_id
        return NodeVisual(
            opacity=opacity,
            radius_factor=HOVER_RADIUS_FACTOR if hovered else 1.0,
            glow=hovered or selected,
            label_visible=hovered,
            outlined=selected,
        )

    def edge_visual(self, edge: GraphEdge) -> EdgeVisual:
        if self.hovered_id is None:
            return EdgeVisual()
        if edge.touches(self.hovered_id):
            return EdgeVisual(opacity=1.0, width_factor=HIGHLIGHT_EDGE_WIDTH_FACTOR)
        return EdgeVisual(opacity=DIMMED_EDGE_OPACITY)
