"""The relationship graph view: construction, control handle and rebuild host.

``create_relationship_graph`` mounts one view on a render surface and
returns a handle (zoom in/out/fit, restart layout, destroy). ``GraphHost``
owns the surface across rebuilds: it debounces resizes, never lets two
views run against the same surface, and retries initialisation with a
bounded backoff while the surface has no measurable width.
"""

from __future__ import annotations

import asyncio
import time
from typing import Any, Callable, Protocol

from pydantic import BaseModel, ConfigDict, Field

from methodgraph.config import Settings
from methodgraph.models.schemas import Catalog
from methodgraph.utils.exceptions import SurfaceNotReadyError
from methodgraph.utils.logging import get_logger
from methodgraph.utils.retry import async_retry
from methodgraph.viz.builder import LinkOptions, MethodGraph, build_graph
from methodgraph.viz.geometry import Point
from methodgraph.viz.interaction import HoverCallback, InteractionState, NodeCallback
from methodgraph.viz.layout import ForceLayout, LayoutParams
from methodgraph.viz.render import Frame, build_frame, render_svg
from methodgraph.viz.scheduler import Debouncer, FrameLoop
from methodgraph.viz.tokens import DEFAULT_VISUAL_CONFIG, VisualConfig
from methodgraph.viz.zoom import SemanticZoom, ZoomController

logger = get_logger(__name__)

DEFAULT_HEIGHT = 600
MIN_HEIGHT = 500

Listener = Callable[..., Any]


def view_link_options() -> LinkOptions:
    return LinkOptions(similarity_threshold=0.3, max_similar_links=4)


class GraphViewConfig(BaseModel):
    model_config = ConfigDict(frozen=True)

    width: float | None = None
    height: float | None = None
    selected_id: str | None = None
    show_clusters: bool = True
    show_labels: bool = True
    node_spacing: float = Field(default=1.5, ge=0.5, le=3.0)
    link_options: LinkOptions = Field(default_factory=view_link_options)
    animated: bool = True
    fps: int = 60
    seed: int | None = None


# ── Surfaces ─────────────────────────────────────────────────────────


class RenderSurface(Protocol):
    width: float
    height: float

    def mount(self, frame: Frame) -> None: ...

    def clear(self) -> None: ...

    def add_listener(self, event: str, listener: Listener) -> None: ...

    def remove_listener(self, event: str, listener: Listener) -> None: ...


class SvgSurface:
    """In-memory surface holding the latest frame and its SVG markup."""

    def __init__(self, width: float, height: float = 0, visual: VisualConfig = DEFAULT_VISUAL_CONFIG) -> None:
        self.width = width
        self.height = height
        self.visual = visual
        self.frame: Frame | None = None
        self.svg: str | None = None
        self.mounts = 0
        self._listeners: dict[str, list[Listener]] = {}

    def mount(self, frame: Frame) -> None:
        self.frame = frame
        self.svg = render_svg(frame, self.visual)
        self.mounts += 1

    def clear(self) -> None:
        self.frame = None
        self.svg = None

    def resize(self, width: float, height: float) -> None:
        self.width = width
        self.height = height

    def add_listener(self, event: str, listener: Listener) -> None:
        self._listeners.setdefault(event, []).append(listener)

    def remove_listener(self, event: str, listener: Listener) -> None:
        handlers = self._listeners.get(event, [])
        if listener in handlers:
            handlers.remove(listener)
        if not handlers:
            self._listeners.pop(event, None)

    def listener_count(self) -> int:
        return sum(len(v) for v in self._listeners.values())

    def dispatch(self, event: str, *args: Any) -> list[Any]:
        return [listener(*args) for listener in list(self._listeners.get(event, []))]


# ── Handles ──────────────────────────────────────────────────────────


class GraphHandle(Protocol):
    def zoom_in(self) -> None: ...

    def zoom_out(self) -> None: ...

    def zoom_to_fit(self) -> None: ...

    def restart_layout(self) -> None: ...

    def destroy(self) -> None: ...


class NoopGraphHandle:
    """Returned for degenerate input; every operation is a safe no-op."""

    active = False

    def zoom_in(self) -> None:
        pass

    def zoom_out(self) -> None:
        pass

    def zoom_to_fit(self) -> None:
        pass

    def restart_layout(self) -> None:
        pass

    def handle_key(self, key: str, ctrl: bool = False, meta: bool = False) -> bool:
        return False

    def start(self) -> None:
        pass

    def destroy(self) -> None:
        pass


class RelationshipGraphView:
    """A live, mounted graph: layout, zoom, interaction and frame loop."""

    active = True

    def __init__(
        self,
        surface: RenderSurface,
        catalog: Catalog,
        graph: MethodGraph,
        config: GraphViewConfig,
        width: float,
        height: float,
        on_node_click: NodeCallback | None = None,
        on_node_hover: HoverCallback | None = None,
        visual: VisualConfig = DEFAULT_VISUAL_CONFIG,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.surface = surface
        self.catalog = catalog
        self.graph = graph
        self.config = config
        self.width = width
        self.height = height
        self.visual = visual
        self._clock = clock
        self._destroyed = False
        self._mounted_at = clock()
        self._listeners: list[tuple[str, Listener]] = []

        self.layout = ForceLayout(
            graph,
            catalog.pipeline_steps,
            LayoutParams(config.node_spacing, width, height),
            seed=config.seed,
        )
        self.semantic = SemanticZoom(clock=clock)
        self.zoom = ZoomController(width, height, self.semantic, clock=clock)
        self.interaction = InteractionState(
            graph,
            self.layout,
            on_node_click=on_node_click,
            on_node_hover=on_node_hover,
            selected_id=config.selected_id,
        )
        self.loop = FrameLoop(self.layout, on_frame=self.render, fps=config.fps)
        self._bind_events()

    # ── lifecycle ────────────────────────────────────────────────────

    @property
    def destroyed(self) -> bool:
        return self._destroyed

    def start(self) -> None:
        """Run the frame loop on the current event loop."""
        if not self._destroyed:
            self.loop.start()

    def step(self) -> bool:
        """Advance one frame synchronously (no event loop needed)."""
        if self._destroyed:
            return False
        active = self.layout.advance(0.0)
        self.render()
        return active

    def render(self) -> None:
        if self._destroyed:
            return
        entrance = self._clock() - self._mounted_at if self.config.animated else None
        frame = build_frame(
            self.graph,
            self.catalog.pipeline_steps,
            self.layout.positions,
            self.interaction,
            self.semantic.style(),
            self.semantic.band,
            self.zoom.transform,
            self.zoom.indicator,
            hint_opacity=self.semantic.hint_opacity,
            width=self.width,
            height=self.height,
            show_clusters=self.config.show_clusters,
            show_labels=self.config.show_labels,
            entrance_elapsed=entrance,
            tick=self.layout.simulation.ticks,
            visual=self.visual,
        )
        self.surface.mount(frame)

    def destroy(self) -> None:
        """Stop the simulation and release the surface and every listener."""
        if self._destroyed:
            return
        self._destroyed = True
        self.loop.stop()
        self.layout.stop()
        for event, listener in self._listeners:
            self.surface.remove_listener(event, listener)
        self._listeners.clear()
        self.interaction.clear_callbacks()
        self.semantic.clear_listeners()
        self.surface.clear()
        logger.debug("graph_view_destroyed", nodes=len(self.graph.nodes))

    # ── controls ─────────────────────────────────────────────────────

    def zoom_in(self) -> None:
        if not self._destroyed:
            self.zoom.zoom_in()
            self.render()

    def zoom_out(self) -> None:
        if not self._destroyed:
            self.zoom.zoom_out()
            self.render()

    def zoom_to_fit(self) -> None:
        if not self._destroyed:
            self.zoom.zoom_to_fit()
            self.render()

    def restart_layout(self) -> None:
        if not self._destroyed:
            self.layout.restart()
            self.loop.wake()

    def handle_key(self, key: str, ctrl: bool = False, meta: bool = False) -> bool:
        """Keyboard shortcuts; returns True when the key was handled."""
        if key in ("+", "="):
            self.zoom_in()
        elif key in ("-", "_"):
            self.zoom_out()
        elif key == "0":
            self.zoom_to_fit()
        elif key in ("r", "R") and not (ctrl or meta):
            self.restart_layout()
        else:
            return False
        return True

    # ── surface events ───────────────────────────────────────────────

    def _listen(self, event: str, listener: Listener) -> None:
        self.surface.add_listener(event, listener)
        self._listeners.append((event, listener))

    def _bind_events(self) -> None:
        self._listen("mouseenter", self._on_enter)
        self._listen("mouseleave", self._on_leave)
        self._listen("click", self._on_click)
        self._listen("dragstart", self._on_drag_start)
        self._listen("drag", self._on_drag)
        self._listen("dragend", self._on_drag_end)
        self._listen("wheel", self._on_wheel)
        self._listen("keydown", self.handle_key)

    def _on_enter(self, node_id: str) -> None:
        self.interaction.hover(node_id)
        self.render()

    def _on_leave(self, node_id: str) -> None:
        if self.interaction.hovered_id == node_id:
            self.interaction.hover(None)
            self.render()

    def _on_click(self, node_id: str) -> bool:
        return self.interaction.click(node_id)

    def _on_drag_start(self, node_id: str) -> None:
        self.interaction.drag_start(node_id)
        self.loop.wake()

    def _on_drag(self, node_id: str, x: float, y: float) -> None:
        world = self.zoom.transform.invert(Point(x, y))
        self.interaction.drag_move(node_id, world.x, world.y)

    def _on_drag_end(self, node_id: str) -> None:
        self.interaction.drag_end(node_id)

    def _on_wheel(self, delta_y: float, x: float, y: float) -> None:
        self.zoom.wheel(delta_y, Point(x, y))
        self.render()


def create_relationship_graph(
    surface: RenderSurface,
    catalog: Catalog,
    config: GraphViewConfig | None = None,
    on_node_click: NodeCallback | None = None,
    on_node_hover: HoverCallback | None = None,
    visual: VisualConfig = DEFAULT_VISUAL_CONFIG,
    clock: Callable[[], float] = time.monotonic,
) -> RelationshipGraphView | NoopGraphHandle:
    """Build, lay out and mount a graph view on ``surface``.

    Returns a :class:`NoopGraphHandle` when there is nothing to draw or the
    surface has no width. Anything that fails during construction releases
    what was already acquired before the error propagates.
    """
    config = config or GraphViewConfig()
    width = config.width or surface.width
    height = max(config.height or surface.height or DEFAULT_HEIGHT, MIN_HEIGHT)
    if not catalog.methods or not width:
        logger.info("graph_view_degenerate", methods=len(catalog.methods), width=width)
        return NoopGraphHandle()

    # Old visuals go before new ones are attached.
    surface.clear()
    view: RelationshipGraphView | None = None
    try:
        graph = build_graph(catalog.methods, catalog.pipeline_steps, config.link_options, visual)
        view = RelationshipGraphView(
            surface,
            catalog,
            graph,
            config,
            width,
            height,
            on_node_click=on_node_click,
            on_node_hover=on_node_hover,
            visual=visual,
            clock=clock,
        )
        view.render()
    except BaseException:
        if view is not None:
            view.destroy()
        else:
            surface.clear()
        raise
    logger.info("graph_view_created", nodes=len(graph.nodes), edges=len(graph.edges))
    return view


class GraphHost:
    """Keeps at most one live view on a surface and rebuilds it on change."""

    def __init__(
        self,
        surface: SvgSurface,
        catalog: Catalog,
        config: GraphViewConfig | None = None,
        on_node_click: NodeCallback | None = None,
        on_node_hover: HoverCallback | None = None,
        debounce: float = 0.15,
        retry_attempts: int = 5,
        retry_delay: float = 0.05,
        autostart: bool = True,
        visual: VisualConfig = DEFAULT_VISUAL_CONFIG,
    ) -> None:
        self.surface = surface
        self.catalog = catalog
        self.config = config or GraphViewConfig()
        self._on_click = on_node_click
        self._on_hover = on_node_hover
        self._autostart = autostart
        self._visual = visual
        self._retry_attempts = retry_attempts
        self._retry_delay = retry_delay
        self._retry_task: asyncio.Task | None = None
        self._resize = Debouncer(debounce, self._apply_resize)
        self.handle: RelationshipGraphView | NoopGraphHandle = NoopGraphHandle()
        self.rebuilds = 0

    @classmethod
    def from_settings(
        cls,
        surface: SvgSurface,
        catalog: Catalog,
        settings: Settings,
        config: GraphViewConfig | None = None,
        **kwargs: Any,
    ) -> GraphHost:
        """Host with debounce, init retry and frame rate taken from ``settings``."""
        config = config or GraphViewConfig(fps=settings.FRAME_RATE, seed=settings.LAYOUT_SEED)
        return cls(
            surface,
            catalog,
            config,
            debounce=settings.REBUILD_DEBOUNCE_MS / 1000,
            retry_attempts=settings.INIT_RETRY_ATTEMPTS,
            retry_delay=settings.INIT_RETRY_DELAY_MS / 1000,
            **kwargs,
        )

    @property
    def debounce(self) -> float:
        return self._resize.delay

    @property
    def retry_policy(self) -> tuple[int, float]:
        return self._retry_attempts, self._retry_delay

    def _create(self) -> RelationshipGraphView | NoopGraphHandle:
        return create_relationship_graph(
            self.surface,
            self.catalog,
            self.config,
            on_node_click=self._on_click,
            on_node_hover=self._on_hover,
            visual=self._visual,
        )

    def _start(self) -> None:
        if not self._autostart:
            return
        try:
            asyncio.get_running_loop()
        except RuntimeError:
            return
        self.handle.start()

    def rebuild(self, catalog: Catalog | None = None, config: GraphViewConfig | None = None) -> None:
        """Tear down the current view, then build a fresh one."""
        if catalog is not None:
            self.catalog = catalog
        if config is not None:
            self.config = config
        self._cancel_retry()
        self.handle.destroy()
        self.handle = self._create()
        self.rebuilds += 1
        self._start()
        if not self.handle.active and self.catalog.methods and not self.surface.width:
            self._schedule_retry()

    def resize(self, width: float, height: float) -> None:
        """Debounced: only the latest size within the window triggers a rebuild."""
        self._resize((width, height))

    def _apply_resize(self, size: tuple[float, float]) -> None:
        width, height = size
        self.surface.resize(width, height)
        logger.debug("surface_resized", width=width, height=height)
        # Pinned dimensions follow the surface.
        pinned = {
            key: value
            for key, value in (("width", width), ("height", height))
            if getattr(self.config, key) is not None
        }
        self.rebuild(config=self.config.model_copy(update=pinned) if pinned else None)

    def _schedule_retry(self) -> None:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            return
        logger.info("surface_not_ready", retry_attempts=self._retry_attempts)
        self._retry_task = loop.create_task(self._retry_init())

    async def _retry_init(self) -> None:
        @async_retry(
            max_attempts=self._retry_attempts,
            base_delay=self._retry_delay,
            retryable_exceptions=(SurfaceNotReadyError,),
            jitter=False,
        )
        async def attempt() -> None:
            if not self.surface.width:
                raise SurfaceNotReadyError("surface has zero width")
            self.handle.destroy()
            self.handle = self._create()
            self.rebuilds += 1
            self._start()

        try:
            await attempt()
        except SurfaceNotReadyError:
            logger.warning("surface_never_ready", attempts=self._retry_attempts)

    def _cancel_retry(self) -> None:
        if self._retry_task is not None and not self._retry_task.done():
            self._retry_task.cancel()
        self._retry_task = None

    def close(self) -> None:
        self._resize.cancel()
        self._cancel_retry()
        self.handle.destroy()
        self.handle = NoopGraphHandle()
