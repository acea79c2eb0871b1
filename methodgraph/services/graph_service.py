"""Server-side graph operations: build, settle, snapshot, stream and query."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Any, AsyncIterator, Mapping

from methodgraph.config import Settings
from methodgraph.models.schemas import Catalog
from methodgraph.services.catalog_service import CatalogService
from methodgraph.utils.exceptions import UnknownMethodError
from methodgraph.utils.logging import get_logger
from methodgraph.viz.builder import LinkOptions, MethodGraph, build_graph
from methodgraph.viz.geometry import (
    VIEW_PADDING,
    Boundary,
    ClusterRegion,
    Point,
    cluster_boundary,
    compute_cluster_regions,
    label_anchor,
    region_points,
)
from methodgraph.viz.interaction import InteractionState
from methodgraph.viz.layout import ForceLayout, LayoutParams
from methodgraph.viz.render import build_frame, render_svg
from methodgraph.viz.scheduler import FrameLoop
from methodgraph.viz.similarity import score
from methodgraph.viz.tokens import DEFAULT_VISUAL_CONFIG, VisualConfig
from methodgraph.viz.zoom import SemanticZoom, ViewTransform

logger = get_logger(__name__)


@dataclass(frozen=True)
class ClusterShape:
    region: ClusterRegion
    boundary: Boundary | None
    label_at: Point | None


@dataclass(frozen=True)
class GraphSnapshot:
    """A built graph with settled positions and cluster outlines."""

    catalog: Catalog
    graph: MethodGraph
    positions: Mapping[str, Point]
    clusters: tuple[ClusterShape, ...]
    width: float
    height: float
    ticks: int
    alpha: float


class _BoundedStepper:
    """Stops a layout after ``max_ticks`` frames even if it has not cooled."""

    def __init__(self, layout: ForceLayout, max_ticks: int) -> None:
        self.layout = layout
        self.max_ticks = max_ticks
        self.ticks = 0

    def advance(self, elapsed: float) -> bool:
        if self.ticks >= self.max_ticks:
            return False
        self.ticks += 1
        return self.layout.advance(elapsed) and self.ticks < self.max_ticks


class GraphService:
    """Builds and lays out relationship graphs for the API and CLI."""

    def __init__(
        self,
        catalogs: CatalogService,
        settings: Settings,
        visual: VisualConfig = DEFAULT_VISUAL_CONFIG,
    ) -> None:
        self._catalogs = catalogs
        self._settings = settings
        self._visual = visual

    @property
    def catalogs(self) -> CatalogService:
        return self._catalogs

    def default_options(self) -> LinkOptions:
        return LinkOptions(
            similarity_threshold=self._settings.SIMILARITY_THRESHOLD,
            max_similar_links=self._settings.MAX_SIMILAR_LINKS,
        )

    def build(self, options: LinkOptions | None = None, method_ids: list[str] | None = None) -> MethodGraph:
        catalog = self._catalogs.select(method_ids)
        return build_graph(catalog.methods, catalog.pipeline_steps, options or self.default_options(), self._visual)

    def _layout(
        self,
        graph: MethodGraph,
        catalog: Catalog,
        node_spacing: float | None,
        width: float | None,
        height: float | None,
    ) -> ForceLayout:
        params = LayoutParams(
            node_spacing or self._settings.NODE_SPACING,
            width or self._settings.VIEWPORT_WIDTH,
            height or self._settings.VIEWPORT_HEIGHT,
        )
        return ForceLayout(graph, catalog.pipeline_steps, params, seed=self._settings.LAYOUT_SEED)

    def snapshot(
        self,
        options: LinkOptions | None = None,
        method_ids: list[str] | None = None,
        node_spacing: float | None = None,
        width: float | None = None,
        height: float | None = None,
    ) -> GraphSnapshot:
        """Build the graph, settle its layout synchronously and outline its clusters."""
        catalog = self._catalogs.select(method_ids)
        graph = build_graph(catalog.methods, catalog.pipeline_steps, options or self.default_options(), self._visual)
        layout = self._layout(graph, catalog, node_spacing, width, height)
        ticks = layout.settle(self._settings.LAYOUT_MAX_TICKS)
        positions = dict(layout.positions)

        clusters = []
        for region in compute_cluster_regions(graph.nodes, catalog.pipeline_steps, self._visual):
            points = region_points(region, positions)
            clusters.append(
                ClusterShape(
                    region=region,
                    boundary=cluster_boundary(points, VIEW_PADDING),
                    label_at=label_anchor(points) if points else None,
                )
            )

        logger.info("graph_snapshot", nodes=len(graph.nodes), edges=len(graph.edges), ticks=ticks)
        return GraphSnapshot(
            catalog=catalog,
            graph=graph,
            positions=positions,
            clusters=tuple(clusters),
            width=layout.params.width,
            height=layout.params.height,
            ticks=ticks,
            alpha=layout.alpha,
        )

    def render_svg(self, snap: GraphSnapshot, zoom: float = 0.85, selected_id: str | None = None) -> str:
        """Static SVG of a snapshot at a given zoom scale."""
        semantic = SemanticZoom(initial_scale=zoom, duration=0)
        interaction = InteractionState(snap.graph, selected_id=selected_id)
        frame = build_frame(
            snap.graph,
            snap.catalog.pipeline_steps,
            snap.positions,
            interaction,
            semantic.style(),
            semantic.band,
            ViewTransform.centered(snap.width, snap.height, zoom),
            semantic.indicator,
            hint_opacity=0.0,
            width=snap.width,
            height=snap.height,
            tick=snap.ticks,
            visual=self._visual,
        )
        return render_svg(frame, self._visual)

    def similarity(self, a_id: str, b_id: str) -> float:
        a = self._catalogs.get_method(a_id)
        b = self._catalogs.get_method(b_id)
        return score(a, b, self._catalogs.catalog.pipeline_steps)

    def neighbors(self, method_id: str, options: LinkOptions | None = None) -> dict[str, Any]:
        """Hover-card details of one method in the full-catalog graph."""
        graph = self.build(options)
        node = graph.node(method_id)
        if node is None:
            raise UnknownMethodError(method_id)
        neighbors = []
        for edge in graph.incident(method_id):
            other_id = edge.target if edge.source == method_id else edge.source
            other = graph.node(other_id)
            neighbors.append({
                "id": other_id,
                "name": other.name if other else other_id,
                "type": edge.type.value,
                "label": edge.style.label,
                "strength": edge.strength,
            })
        return {
            "id": node.id,
            "name": node.name,
            "pipeline_step": node.pipeline_step,
            "step_name": self._catalogs.step_name(node.pipeline_step),
            "degree": node.degree,
            "color": node.color,
            "neighbors": neighbors,
        }

    async def stream_layout(
        self,
        options: LinkOptions | None = None,
        method_ids: list[str] | None = None,
        node_spacing: float | None = None,
        width: float | None = None,
        height: float | None = None,
        max_ticks: int | None = None,
    ) -> AsyncIterator[tuple[str, dict[str, Any]]]:
        """Yield ``("frame", ...)`` per simulation step from the frame loop, then ``("done", ...)``."""
        catalog = self._catalogs.select(method_ids)
        graph = build_graph(catalog.methods, catalog.pipeline_steps, options or self.default_options(), self._visual)
        layout = self._layout(graph, catalog, node_spacing, width, height)
        stepper = _BoundedStepper(layout, max_ticks or self._settings.LAYOUT_MAX_TICKS)
        queue: asyncio.Queue[tuple[str, dict[str, Any]] | None] = asyncio.Queue()

        def on_frame() -> None:
            queue.put_nowait(("frame", _frame_payload(layout)))

        loop = FrameLoop(stepper, on_frame=on_frame, fps=self._settings.FRAME_RATE)
        loop.start()

        async def finish() -> None:
            await loop.wait_idle()
            queue.put_nowait(None)

        waiter = asyncio.create_task(finish())
        try:
            while True:
                item = await queue.get()
                if item is None:
                    break
                yield item
            yield "done", {"ticks": stepper.ticks, "alpha": round(layout.alpha, 6)}
        finally:
            loop.stop()
            waiter.cancel()
            logger.debug("layout_stream_closed", ticks=stepper.ticks)


def _frame_payload(layout: ForceLayout) -> dict[str, Any]:
    return {
        "tick": layout.simulation.ticks,
        "alpha": round(layout.alpha, 6),
        "positions": {k: [round(p.x, 2), round(p.y, 2)] for k, p in layout.positions.items()},
    }
