"""Semantic zoom: discrete detail bands driven by a continuous zoom scale."""

from __future__ import annotations

import time
from dataclasses import dataclass, fields, replace
from enum import IntEnum
from typing import Callable, Sequence

from methodgraph.models.schemas import PipelineStep
from methodgraph.viz.builder import GraphNode
from methodgraph.viz.geometry import Point
from methodgraph.viz.tokens import DEFAULT_VISUAL_CONFIG, VisualConfig

INITIAL_SCALE = 0.85
SCALE_EXTENT = (0.2, 4.0)
ZOOM_IN_FACTOR = 1.3
ZOOM_OUT_FACTOR = 0.7
STYLE_DURATION = 0.15
HINT_FADE_DURATION = 0.3
BUTTON_ZOOM_DURATION = 0.3
FIT_DURATION = 0.5
HINT_TEXT = "Scroll to zoom • Zoom in for more details"

Clock = Callable[[], float]


class ZoomBand(IntEnum):
    ABSTRACT = 0
    MINIMAL = 1
    NORMAL = 2
    DETAILED = 3
    FULL = 4

    @property
    def label(self) -> str:
        return _BAND_LABELS[self]

    @property
    def shows_detail_cards(self) -> bool:
        return self >= ZoomBand.DETAILED


_BAND_LABELS = {
    ZoomBand.ABSTRACT: "Abstract",
    ZoomBand.MINIMAL: "Minimal",
    ZoomBand.NORMAL: "Normal",
    ZoomBand.DETAILED: "Detailed",
    ZoomBand.FULL: "Full Detail",
}


@dataclass(frozen=True)
class ZoomThresholds:
    """Lower bounds of the bands above Abstract."""

    minimal: float = 0.45
    normal: float = 0.7
    detailed: float = 1.5
    full: float = 2.2

    def band(self, scale: float) -> ZoomBand:
        if scale < self.minimal:
            return ZoomBand.ABSTRACT
        if scale < self.normal:
            return ZoomBand.MINIMAL
        if scale < self.detailed:
            return ZoomBand.NORMAL
        if scale < self.full:
            return ZoomBand.DETAILED
        return ZoomBand.FULL


@dataclass(frozen=True)
class BandStyle:
    """Visual density for one band. Every field interpolates linearly."""

    node_radius_factor: float
    node_stroke_width: float
    modality_opacity: float
    modality_radius: float
    edge_opacity: float
    # Edge width is base_width * edge_width_factor + edge_width_offset.
    edge_width_factor: float
    edge_width_offset: float
    hull_fill_opacity: float
    hull_stroke_opacity: float
    hull_stroke_width: float
    cluster_label_size: float
    cluster_label_opacity: float

    def edge_width(self, base: float) -> float:
        return base * self.edge_width_factor + self.edge_width_offset

    def lerp(self, other: BandStyle, t: float) -> BandStyle:
        t = max(0.0, min(1.0, t))
        values = {
            f.name: getattr(self, f.name) + (getattr(other, f.name) - getattr(self, f.name)) * t
            for f in fields(self)
        }
        return BandStyle(**values)


def band_style(band: ZoomBand) -> BandStyle:
    abstract = band is ZoomBand.ABSTRACT
    minimal = band is ZoomBand.MINIMAL
    return BandStyle(
        node_radius_factor=0.6 if abstract else 0.8 if minimal else 1.0,
        node_stroke_width=1.0 if abstract else 2.0,
        modality_opacity=0.0 if band < ZoomBand.NORMAL else 0.8,
        modality_radius={ZoomBand.DETAILED: 5.0, ZoomBand.FULL: 6.0}.get(band, 4.0),
        edge_opacity=0.2 if abstract else 0.4 if minimal else 0.6,
        edge_width_factor=0.0 if abstract else 1.0,
        edge_width_offset=0.5 if abstract else 0.0,
        hull_fill_opacity=0.15 if abstract else 0.12 if minimal else 0.08,
        hull_stroke_opacity=0.5 if abstract else 0.4 if minimal else 0.3,
        hull_stroke_width=3.0 if abstract else 2.0,
        cluster_label_size=16.0 if abstract else 14.0 if minimal else 12.0,
        cluster_label_opacity=(
            0.9 if abstract else 0.8 if minimal else 0.4 if band is ZoomBand.FULL else 0.7
        ),
    )


@dataclass(frozen=True)
class ZoomIndicator:
    label: str
    percent: str


class SemanticZoom:
    """Maps zoom-scale changes to a band and eases the band style in.

    Re-evaluation happens only when the scale moved by more than
    ``update_delta`` since the last evaluation or crossed a band boundary.
    """

    def __init__(
        self,
        thresholds: ZoomThresholds | None = None,
        initial_scale: float = INITIAL_SCALE,
        update_delta: float = 0.05,
        duration: float = STYLE_DURATION,
        clock: Clock = time.monotonic,
    ) -> None:
        self.thresholds = thresholds or ZoomThresholds()
        self.initial_scale = initial_scale
        self.update_delta = update_delta
        self.duration = duration
        self._clock = clock
        self.scale = initial_scale
        self.band = self.thresholds.band(initial_scale)
        self._from = band_style(self.band)
        self._to = self._from
        self._changed_at = clock()
        self._hint_dismissed_at: float | None = None
        self._listeners: list[Callable[[ZoomBand], None]] = []

    def subscribe(self, listener: Callable[[ZoomBand], None]) -> None:
        self._listeners.append(listener)

    def clear_listeners(self) -> None:
        self._listeners.clear()

    def update(self, scale: float) -> bool:
        """Feed a new zoom scale; returns True when the style was re-evaluated."""
        now = self._clock()
        if self._hint_dismissed_at is None and scale != self.initial_scale:
            self._hint_dismissed_at = now

        band = self.thresholds.band(scale)
        if abs(scale - self.scale) <= self.update_delta and band == self.band:
            return False

        self._from = self.style()
        self._to = band_style(band)
        self._changed_at = now
        self.scale = scale
        previous, self.band = self.band, band
        if band != previous:
            for listener in list(self._listeners):
                listener(band)
        return True

    def style(self) -> BandStyle:
        """Band style at the current time, mid-transition if one is running."""
        if self.duration <= 0:
            return self._to
        t = (self._clock() - self._changed_at) / self.duration
        return self._to if t >= 1 else self._from.lerp(self._to, t)

    @property
    def target_style(self) -> BandStyle:
        return self._to

    @property
    def indicator(self) -> ZoomIndicator:
        return ZoomIndicator(self.band.label, f"{round(self.scale * 100)}%")

    @property
    def hint_opacity(self) -> float:
        """1 until the first non-default zoom, then fades out once and stays hidden."""
        if self._hint_dismissed_at is None:
            return 1.0
        elapsed = self._clock() - self._hint_dismissed_at
        return max(0.0, 1.0 - elapsed / HINT_FADE_DURATION)


# ── View transform ───────────────────────────────────────────────────


@dataclass(frozen=True)
class ViewTransform:
    k: float = 1.0
    x: float = 0.0
    y: float = 0.0

    @classmethod
    def centered(cls, width: float, height: float, scale: float = INITIAL_SCALE) -> ViewTransform:
        """translate(w/2, h/2) scale(k) translate(-w/2, -h/2)."""
        return cls(scale, width / 2 - scale * width / 2, height / 2 - scale * height / 2)

    def apply(self, p: Point) -> Point:
        return Point(p.x * self.k + self.x, p.y * self.k + self.y)

    def invert(self, p: Point) -> Point:
        return Point((p.x - self.x) / self.k, (p.y - self.y) / self.k)

    def scaled_to(self, k: float, anchor: Point) -> ViewTransform:
        """Rescale keeping the screen point ``anchor`` fixed."""
        world = self.invert(anchor)
        return ViewTransform(k, anchor.x - world.x * k, anchor.y - world.y * k)

    def lerp(self, other: ViewTransform, t: float) -> ViewTransform:
        t = max(0.0, min(1.0, t))
        return ViewTransform(
            self.k + (other.k - self.k) * t,
            self.x + (other.x - self.x) * t,
            self.y + (other.y - self.y) * t,
        )

    def svg(self) -> str:
        return f"translate({self.x:.2f},{self.y:.2f}) scale({self.k:.4f})"


class ZoomController:
    """Pan/zoom state of one view, feeding its semantic zoom."""

    def __init__(
        self,
        width: float,
        height: float,
        semantic: SemanticZoom,
        clock: Clock = time.monotonic,
        extent: tuple[float, float] = SCALE_EXTENT,
    ) -> None:
        self.width = width
        self.height = height
        self.semantic = semantic
        self.extent = extent
        self._clock = clock
        self.initial = ViewTransform.centered(width, height, semantic.initial_scale)
        self._start = self.initial
        self._end = self.initial
        self._started_at = clock()
        self._duration = 0.0

    @property
    def transform(self) -> ViewTransform:
        if self._duration <= 0:
            return self._end
        t = (self._clock() - self._started_at) / self._duration
        return self._end if t >= 1 else self._start.lerp(self._end, t)

    @property
    def target(self) -> ViewTransform:
        return self._end

    @property
    def indicator(self) -> ZoomIndicator:
        """Band label plus the live scale, including steps below the re-evaluation delta."""
        return ZoomIndicator(self.semantic.band.label, f"{round(self.transform.k * 100)}%")

    def _clamp(self, k: float) -> float:
        lo, hi = self.extent
        return max(lo, min(hi, k))

    def _go(self, target: ViewTransform, duration: float) -> None:
        self._start = self.transform
        self._end = target
        self._started_at = self._clock()
        self._duration = duration
        self.semantic.update(target.k)

    def scale_by(self, factor: float, anchor: Point | None = None, duration: float = 0.0) -> None:
        anchor = anchor or Point(self.width / 2, self.height / 2)
        current = self._end
        self._go(current.scaled_to(self._clamp(current.k * factor), anchor), duration)

    def zoom_in(self) -> None:
        self.scale_by(ZOOM_IN_FACTOR, duration=BUTTON_ZOOM_DURATION)

    def zoom_out(self) -> None:
        self.scale_by(ZOOM_OUT_FACTOR, duration=BUTTON_ZOOM_DURATION)

    def zoom_to_fit(self) -> None:
        self._go(self.initial, FIT_DURATION)

    def wheel(self, delta_y: float, at: Point) -> None:
        """Scroll zoom about the cursor (negative delta zooms in)."""
        self.scale_by(2 ** (-delta_y * 0.002), anchor=at)

    def pan(self, dx: float, dy: float) -> None:
        t = self._end
        self._go(ViewTransform(t.k, t.x + dx, t.y + dy), 0.0)


# ── Detail cards ─────────────────────────────────────────────────────


@dataclass(frozen=True)
class DetailCard:
    node_id: str
    offset: Point
    title_lines: tuple[str, ...]
    meta: str | None = None
    modality_badges: tuple[tuple[str, str], ...] = ()
    step_badge: tuple[str, str] | None = None
    evidence: str | None = None


def wrap_text(text: str, max_width: float, char_width: float = 6.5, max_lines: int = 3) -> list[str]:
    lines: list[str] = []
    current = ""
    for word in text.split():
        candidate = f"{current} {word}" if current else word
        if len(candidate) * char_width > max_width and current:
            lines.append(current)
            current = word
        else:
            current = candidate
    if current:
        lines.append(current)
    return lines[:max_lines]


def detail_card(
    node: GraphNode,
    band: ZoomBand,
    pipeline_steps: Sequence[PipelineStep],
    visual: VisualConfig = DEFAULT_VISUAL_CONFIG,
) -> DetailCard | None:
    if not band.shows_detail_cards:
        return None
    full = band is ZoomBand.FULL
    r = node.radius
    meta_parts = [str(v) for v in (node.year, node.maturity) if v]
    card = DetailCard(
        node_id=node.id,
        offset=Point(r + 8, -r - 5),
        title_lines=tuple(wrap_text(node.name if full else node.short_name, 200 if full else 150)),
        meta=" · ".join(meta_parts) or None,
    )
    if not full:
        return card

    step_name = next((s.name for s in pipeline_steps if s.id == node.pipeline_step), node.pipeline_step)
    return replace(
        card,
        modality_badges=tuple((m, visual.modality_color(m)) for m in node.modalities),
        step_badge=(step_name, node.color),
        evidence=f"Evidence: {node.evidence_type}" if node.evidence_type else None,
    )


def detail_cards(
    nodes: Sequence[GraphNode],
    band: ZoomBand,
    pipeline_steps: Sequence[PipelineStep],
    visual: VisualConfig = DEFAULT_VISUAL_CONFIG,
) -> list[DetailCard]:
    if not band.shows_detail_cards:
        return []
    return [c for n in nodes if (c := detail_card(n, band, pipeline_steps, visual)) is not None]
