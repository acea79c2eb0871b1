"""Cluster regions and their smooth enclosing boundaries.

Regions group nodes by pipeline step. Each region gets a closed boundary:
a circle for one member, a rotated ellipse for two, and for three or more
a padded convex hull smoothed with a closed centripetal Catmull-Rom curve.
Boundaries carry both an SVG path and a sampled polygon of the same curve.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Iterable, Literal, Mapping, NamedTuple, Sequence

import numpy as np
from scipy.spatial import ConvexHull, QhullError

from methodgraph.models.schemas import PipelineStep
from methodgraph.viz.builder import GraphNode
from methodgraph.viz.tokens import DEFAULT_VISUAL_CONFIG, VisualConfig

DEFAULT_PADDING = 30.0
VIEW_PADDING = 25.0
CURVE_ALPHA = 0.5
_EPSILON = 1e-12


class Point(NamedTuple):
    x: float
    y: float


@dataclass(frozen=True)
class ClusterRegion:
    id: str
    name: str
    color: str
    members: tuple[GraphNode, ...]


@dataclass(frozen=True)
class Boundary:
    kind: Literal["circle", "ellipse", "hull"]
    path: str
    outline: tuple[Point, ...]

    @property
    def closed(self) -> bool:
        return self.path.rstrip().endswith("Z")

    def contains(self, p: Point, tolerance: float = 1e-6) -> bool:
        """Inside-or-on test against the sampled outline."""
        return point_in_polygon(p, self.outline, tolerance)


def compute_cluster_regions(
    nodes: Sequence[GraphNode],
    pipeline_steps: Sequence[PipelineStep],
    visual: VisualConfig = DEFAULT_VISUAL_CONFIG,
) -> list[ClusterRegion]:
    """Partition nodes by pipeline step into non-empty regions.

    Regions follow ``pipeline_steps`` order; nodes whose step is not listed
    get a region of their own (named by the step id) after the known ones.
    """
    buckets: dict[str, list[GraphNode]] = {s.id: [] for s in pipeline_steps}
    names = {s.id: s.name for s in pipeline_steps}
    for n in nodes:
        buckets.setdefault(n.pipeline_step, []).append(n)

    return [
        ClusterRegion(
            id=step_id,
            name=names.get(step_id, step_id),
            color=visual.step_color(step_id),
            members=tuple(members),
        )
        for step_id, members in buckets.items()
        if members
    ]


def region_points(region: ClusterRegion, positions: Mapping[str, Point]) -> list[Point]:
    return [positions[n.id] for n in region.members if n.id in positions]


def label_anchor(points: Sequence[Point], offset: float = 40.0) -> Point:
    """Cluster label position: mean x, above the topmost member."""
    return Point(sum(p.x for p in points) / len(points), min(p.y for p in points) - offset)


def cluster_boundary(points: Sequence[Point], padding: float = DEFAULT_PADDING) -> Boundary | None:
    if not points:
        return None
    if len(points) == 1:
        return circle_boundary(points[0], padding + 15)
    if len(points) == 2:
        return ellipse_boundary(points[0], points[1], padding)

    try:
        hull = convex_hull(points)
    except QhullError:
        # Collinear members: enclose the two extremes.
        ordered = sorted(Point(float(p[0]), float(p[1])) for p in points)
        return ellipse_boundary(ordered[0], ordered[-1], padding)
    if len(hull) < 3:
        return ellipse_boundary(hull[0], hull[-1], padding)
    expanded = expand_hull(hull, padding)
    path, outline = catmull_rom_closed(expanded, CURVE_ALPHA)
    return Boundary("hull", path, outline)


def circle_boundary(center: Point, r: float, samples: int = 48) -> Boundary:
    path = (
        f"M {_f(center.x - r)},{_f(center.y)} "
        f"a {_f(r)},{_f(r)} 0 1,0 {_f(r * 2)},0 "
        f"a {_f(r)},{_f(r)} 0 1,0 {_f(-r * 2)},0 Z"
    )
    outline = tuple(
        Point(center.x + r * math.cos(t), center.y + r * math.sin(t))
        for t in (2 * math.pi * i / samples for i in range(samples))
    )
    return Boundary("circle", path, outline)


def ellipse_boundary(a: Point, b: Point, padding: float, samples: int = 48) -> Boundary:
    mid = Point((a.x + b.x) / 2, (a.y + b.y) / 2)
    dx, dy = b.x - a.x, b.y - a.y
    rx = math.hypot(dx, dy) / 2 + padding
    ry = padding + 20
    angle = math.atan2(dy, dx)
    cos_a, sin_a = math.cos(angle), math.sin(angle)

    start = Point(mid.x - rx * cos_a, mid.y - rx * sin_a)
    end = Point(mid.x + rx * cos_a, mid.y + rx * sin_a)
    deg = math.degrees(angle)
    path = (
        f"M {_f(start.x)},{_f(start.y)} "
        f"A {_f(rx)},{_f(ry)} {_f(deg)} 1,0 {_f(end.x)},{_f(end.y)} "
        f"A {_f(rx)},{_f(ry)} {_f(deg)} 1,0 {_f(start.x)},{_f(start.y)} Z"
    )
    outline = []
    for i in range(samples):
        t = 2 * math.pi * i / samples
        ex, ey = rx * math.cos(t), ry * math.sin(t)
        outline.append(Point(mid.x + ex * cos_a - ey * sin_a, mid.y + ex * sin_a + ey * cos_a))
    return Boundary("ellipse", path, tuple(outline))


def convex_hull(points: Iterable[Point]) -> list[Point]:
    """Hull vertices, counter-clockwise. Raises ``QhullError`` for collinear input."""
    pts = sorted(set(Point(float(p[0]), float(p[1])) for p in points))
    if len(pts) <= 2:
        return pts
    hull = ConvexHull(np.asarray(pts, dtype=float))
    return [pts[i] for i in hull.vertices]


def signed_area(polygon: Sequence[Point]) -> float:
    total = 0.0
    for i, p in enumerate(polygon):
        q = polygon[(i + 1) % len(polygon)]
        total += p.x * q.y - q.x * p.y
    return total / 2


def expand_hull(hull: Sequence[Point], padding: float) -> list[Point]:
    """Push each vertex outward along the mean of its two edge normals."""
    # Outward normal of edge (dx, dy) is (dy, -dx) for positive area.
    sign = 1.0 if signed_area(hull) >= 0 else -1.0
    count = len(hull)
    expanded = []
    for i, p in enumerate(hull):
        prev = hull[i - 1]
        nxt = hull[(i + 1) % count]
        dx1, dy1 = p.x - prev.x, p.y - prev.y
        dx2, dy2 = nxt.x - p.x, nxt.y - p.y
        len1 = math.hypot(dx1, dy1) or 1.0
        len2 = math.hypot(dx2, dy2) or 1.0
        nx = sign * (dy1 / len1 + dy2 / len2) / 2
        ny = sign * (-dx1 / len1 - dx2 / len2) / 2
        nlen = math.hypot(nx, ny) or 1.0
        expanded.append(Point(p.x + nx / nlen * padding, p.y + ny / nlen * padding))
    return expanded


def catmull_rom_closed(
    points: Sequence[Point],
    alpha: float = CURVE_ALPHA,
    samples_per_segment: int = 12,
) -> tuple[str, tuple[Point, ...]]:
    """Closed Catmull-Rom spline through ``points`` as cubic Bezier segments.

    Control points use the parameterised form with exponent ``alpha``
    (0.5 is centripetal). Returns the SVG path and a sampled outline.
    """
    n = len(points)
    parts = [f"M{_f(points[0].x)},{_f(points[0].y)}"]
    outline: list[Point] = []
    for i in range(n):
        p0, p1, p2, p3 = points[i - 1], points[i], points[(i + 1) % n], points[(i + 2) % n]
        c1, c2 = _bezier_controls(p0, p1, p2, p3, alpha)
        parts.append(f"C{_f(c1.x)},{_f(c1.y)},{_f(c2.x)},{_f(c2.y)},{_f(p2.x)},{_f(p2.y)}")
        for s in range(samples_per_segment):
            outline.append(_cubic(p1, c1, c2, p2, s / samples_per_segment))
    parts.append("Z")
    return "".join(parts), tuple(outline)


def _bezier_controls(p0: Point, p1: Point, p2: Point, p3: Point, alpha: float) -> tuple[Point, Point]:
    l01_2a = (_sq(p0, p1)) ** alpha
    l12_2a = (_sq(p1, p2)) ** alpha
    l23_2a = (_sq(p2, p3)) ** alpha
    l01_a, l12_a, l23_a = math.sqrt(l01_2a), math.sqrt(l12_2a), math.sqrt(l23_2a)

    c1 = p1
    if l01_a > _EPSILON:
        a = 2 * l01_2a + 3 * l01_a * l12_a + l12_2a
        k = 3 * l01_a * (l01_a + l12_a)
        c1 = Point(
            (p1.x * a - p0.x * l12_2a + p2.x * l01_2a) / k,
            (p1.y * a - p0.y * l12_2a + p2.y * l01_2a) / k,
        )
    c2 = p2
    if l23_a > _EPSILON:
        b = 2 * l23_2a + 3 * l23_a * l12_a + l12_2a
        m = 3 * l23_a * (l23_a + l12_a)
        c2 = Point(
            (p2.x * b + p1.x * l23_2a - p3.x * l12_2a) / m,
            (p2.y * b + p1.y * l23_2a - p3.y * l12_2a) / m,
        )
    return c1, c2


def _cubic(p0: Point, c1: Point, c2: Point, p1: Point, t: float) -> Point:
    u = 1 - t
    return Point(
        u**3 * p0.x + 3 * u**2 * t * c1.x + 3 * u * t**2 * c2.x + t**3 * p1.x,
        u**3 * p0.y + 3 * u**2 * t * c1.y + 3 * u * t**2 * c2.y + t**3 * p1.y,
    )


def _sq(a: Point, b: Point) -> float:
    return (a.x - b.x) ** 2 + (a.y - b.y) ** 2


def point_in_polygon(p: Point, polygon: Sequence[Point], tolerance: float = 1e-6) -> bool:
    """Even-odd ray cast; points within ``tolerance`` of an edge count as inside."""
    inside = False
    count = len(polygon)
    for i in range(count):
        a, b = polygon[i], polygon[(i + 1) % count]
        if _segment_distance(p, a, b) <= tolerance:
            return True
        if (a.y > p.y) != (b.y > p.y):
            x_cross = a.x + (p.y - a.y) * (b.x - a.x) / (b.y - a.y)
            if p.x < x_cross:
                inside = not inside
    return inside


def _segment_distance(p: Point, a: Point, b: Point) -> float:
    dx, dy = b.x - a.x, b.y - a.y
    length_sq = dx * dx + dy * dy
    if length_sq == 0:
        return math.hypot(p.x - a.x, p.y - a.y)
    t = max(0.0, min(1.0, ((p.x - a.x) * dx + (p.y - a.y) * dy) / length_sq))
    return math.hypot(p.x - (a.x + t * dx), p.y - (a.y + t * dy))


def _f(v: float) -> str:
    return f"{v:.2f}".rstrip("0").rstrip(".") if v != 0 else "0"
