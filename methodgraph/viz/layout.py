"""Force-directed layout of a method graph.

The simulation integrates damped velocity steps with a cooling ``alpha``:
link springs, many-body repulsion, centering, collision,
weak axis pulls and a per-step cluster pull. Node positions live in
:class:`Body` objects owned by the simulation; everything outside this
module sees them only through :attr:`ForceLayout.positions`. Dragging goes
through :meth:`ForceLayout.pin` / :meth:`ForceLayout.release`.
"""

from __future__ import annotations

import math
import random
from dataclasses import dataclass
from types import MappingProxyType
from typing import Callable, Mapping, Protocol, Sequence

from methodgraph.models.schemas import PipelineStep
from methodgraph.utils.exceptions import LayoutError
from methodgraph.utils.logging import get_logger
from methodgraph.viz.builder import GraphEdge, MethodGraph
from methodgraph.viz.geometry import Point
from methodgraph.viz.tokens import RelationshipType

logger = get_logger(__name__)

ALPHA_MIN = 0.001
ALPHA_DECAY = 1 - ALPHA_MIN ** (1 / 300)
VELOCITY_DECAY = 0.4
DRAG_ALPHA_TARGET = 0.3
INITIAL_RADIUS = 10.0
INITIAL_ANGLE = math.pi * (3 - math.sqrt(5))


@dataclass
class Body:
    id: str
    index: int
    x: float = 0.0
    y: float = 0.0
    vx: float = 0.0
    vy: float = 0.0
    fx: float | None = None
    fy: float | None = None

    @property
    def pinned(self) -> bool:
        return self.fx is not None


class Force(Protocol):
    def __call__(self, alpha: float) -> None: ...


@dataclass(frozen=True)
class LayoutParams:
    """Force constants derived from the node-spacing multiplier and viewport."""

    spacing: float
    width: float
    height: float

    def __post_init__(self) -> None:
        if self.spacing <= 0:
            raise LayoutError(f"node spacing must be positive, got {self.spacing}")
        if self.width <= 0 or self.height <= 0:
            raise LayoutError(f"viewport must be positive, got {self.width}x{self.height}")

    def link_distance(self, edge: GraphEdge) -> float:
        if edge.type is RelationshipType.EXPLICIT:
            return 150 * self.spacing
        if edge.type is RelationshipType.SIMILAR:
            return 200 * self.spacing
        return 250 * self.spacing

    def link_strength(self, edge: GraphEdge) -> float:
        return edge.strength * (0.4 / self.spacing)

    @property
    def charge(self) -> float:
        return -500 * self.spacing

    @property
    def charge_distance_max(self) -> float:
        return 800.0

    @property
    def collide_radius(self) -> float:
        return 40 * self.spacing

    @property
    def axis_strength(self) -> float:
        return 0.015 / self.spacing

    @property
    def cluster_radius(self) -> float:
        return min(self.width, self.height) * (0.25 + self.spacing * 0.1)

    @property
    def cluster_strength(self) -> float:
        return 0.12

    @property
    def center(self) -> Point:
        return Point(self.width / 2, self.height / 2)


def cluster_centers(steps: Sequence[PipelineStep], params: LayoutParams) -> dict[str, Point]:
    """Evenly spaced angular slots, the first at the top of the circle."""
    centers: dict[str, Point] = {}
    cx, cy = params.center
    count = len(steps)
    for i, step in enumerate(steps):
        angle = (i / count) * 2 * math.pi - math.pi / 2
        centers[step.id] = Point(
            cx + math.cos(angle) * params.cluster_radius,
            cy + math.sin(angle) * params.cluster_radius,
        )
    return centers


# ── Forces ───────────────────────────────────────────────────────────


class LinkForce:
    def __init__(
        self,
        bodies: Mapping[str, Body],
        edges: Sequence[GraphEdge],
        distance: Callable[[GraphEdge], float],
        strength: Callable[[GraphEdge], float],
        jiggle: Callable[[], float],
    ) -> None:
        self._jiggle = jiggle
        count: dict[str, int] = {}
        for e in edges:
            count[e.source] = count.get(e.source, 0) + 1
            count[e.target] = count.get(e.target, 0) + 1
        self._links = [
            (
                bodies[e.source],
                bodies[e.target],
                distance(e),
                strength(e),
                count[e.source] / (count[e.source] + count[e.target]),
            )
            for e in edges
            if e.source in bodies and e.target in bodies
        ]

    def __call__(self, alpha: float) -> None:
        for source, target, distance, strength, bias in self._links:
            x = target.x + target.vx - source.x - source.vx or self._jiggle()
            y = target.y + target.vy - source.y - source.vy or self._jiggle()
            length = math.sqrt(x * x + y * y)
            k = (length - distance) / length * alpha * strength
            x *= k
            y *= k
            target.vx -= x * bias
            target.vy -= y * bias
            source.vx += x * (1 - bias)
            source.vy += y * (1 - bias)


class ManyBodyForce:
    """Pairwise repulsion, exact rather than Barnes-Hut approximated."""

    def __init__(
        self,
        bodies: Sequence[Body],
        strength: float,
        distance_max: float,
        jiggle: Callable[[], float],
        distance_min: float = 1.0,
    ) -> None:
        self._bodies = bodies
        self._strength = strength
        self._max2 = distance_max * distance_max
        self._min2 = distance_min * distance_min
        self._jiggle = jiggle

    def __call__(self, alpha: float) -> None:
        for node in self._bodies:
            for other in self._bodies:
                if other is node:
                    continue
                x = other.x - node.x
                y = other.y - node.y
                l2 = x * x + y * y
                if l2 >= self._max2:
                    continue
                if x == 0:
                    x = self._jiggle()
                    l2 += x * x
                if y == 0:
                    y = self._jiggle()
                    l2 += y * y
                if l2 < self._min2:
                    l2 = math.sqrt(self._min2 * l2)
                node.vx += x * self._strength * alpha / l2
                node.vy += y * self._strength * alpha / l2


class CenterForce:
    """Translates the whole graph so its mean sits on the viewport centre."""

    def __init__(self, bodies: Sequence[Body], center: Point, strength: float = 1.0) -> None:
        self._bodies = bodies
        self._center = center
        self._strength = strength

    def __call__(self, alpha: float) -> None:
        if not self._bodies:
            return
        n = len(self._bodies)
        sx = (sum(b.x for b in self._bodies) / n - self._center.x) * self._strength
        sy = (sum(b.y for b in self._bodies) / n - self._center.y) * self._strength
        for b in self._bodies:
            b.x -= sx
            b.y -= sy


class CollideForce:
    def __init__(
        self,
        bodies: Sequence[Body],
        radius: float,
        jiggle: Callable[[], float],
        strength: float = 1.0,
    ) -> None:
        self._bodies = bodies
        self._radius = radius
        self._jiggle = jiggle
        self._strength = strength

    def __call__(self, alpha: float) -> None:
        r = self._radius * 2
        # Equal radii split every correction half and half.
        share = 0.5
        bodies = self._bodies
        for i, node in enumerate(bodies):
            xi = node.x + node.vx
            yi = node.y + node.vy
            for other in bodies[i + 1:]:
                x = xi - other.x - other.vx
                y = yi - other.y - other.vy
                l2 = x * x + y * y
                if l2 >= r * r:
                    continue
                if x == 0:
                    x = self._jiggle()
                    l2 += x * x
                if y == 0:
                    y = self._jiggle()
                    l2 += y * y
                length = math.sqrt(l2)
                k = (r - length) / length * self._strength
                x *= k
                y *= k
                node.vx += x * share
                node.vy += y * share
                other.vx -= x * share
                other.vy -= y * share


class PositionForce:
    """Pull along one axis towards a per-body target coordinate."""

    def __init__(
        self,
        bodies: Sequence[Body],
        axis: str,
        target: Callable[[Body], float],
        strength: float,
    ) -> None:
        self._bodies = bodies
        self._axis = axis
        self._targets = [target(b) for b in bodies]
        self._strength = strength

    def __call__(self, alpha: float) -> None:
        k = self._strength * alpha
        if self._axis == "x":
            for b, tx in zip(self._bodies, self._targets):
                b.vx += (tx - b.x) * k
        else:
            for b, ty in zip(self._bodies, self._targets):
                b.vy += (ty - b.y) * k


# ── Simulation ───────────────────────────────────────────────────────


class ForceSimulation:
    """Cooling integrator over a set of bodies and named forces."""

    def __init__(self, bodies: Sequence[Body]) -> None:
        self.bodies = list(bodies)
        self.forces: dict[str, Force] = {}
        self.alpha = 1.0
        self.alpha_target = 0.0
        self.alpha_min = ALPHA_MIN
        self.alpha_decay = ALPHA_DECAY
        self.velocity_decay = 1 - VELOCITY_DECAY
        self.running = True
        self.ticks = 0

    def force(self, name: str, force: Force) -> ForceSimulation:
        self.forces[name] = force
        return self

    def tick(self) -> None:
        self.alpha += (self.alpha_target - self.alpha) * self.alpha_decay
        for force in self.forces.values():
            force(self.alpha)
        for b in self.bodies:
            if b.fx is None:
                b.vx *= self.velocity_decay
                b.x += b.vx
            else:
                b.x = b.fx
                b.vx = 0.0
            if b.fy is None:
                b.vy *= self.velocity_decay
                b.y += b.vy
            else:
                b.y = b.fy
                b.vy = 0.0
        self.ticks += 1

    def step(self) -> bool:
        """Advance one frame; returns whether the simulation is still active."""
        if not self.running:
            return False
        self.tick()
        if self.alpha < self.alpha_min:
            self.running = False
        return self.running

    def restart(self) -> None:
        self.running = True

    def stop(self) -> None:
        self.running = False


class ForceLayout:
    """Owns the simulation for one graph and exposes read-only positions."""

    def __init__(
        self,
        graph: MethodGraph,
        pipeline_steps: Sequence[PipelineStep],
        params: LayoutParams,
        seed: int | None = None,
    ) -> None:
        self.graph = graph
        self.params = params
        self._random = random.Random(seed)
        self._bodies: dict[str, Body] = {}
        cx, cy = params.center
        for i, node in enumerate(graph.nodes):
            radius = INITIAL_RADIUS * math.sqrt(0.5 + i)
            angle = i * INITIAL_ANGLE
            self._bodies[node.id] = Body(
                id=node.id,
                index=i,
                x=cx + radius * math.cos(angle),
                y=cy + radius * math.sin(angle),
            )
        self.centers = cluster_centers(pipeline_steps, params)
        self.simulation = self._build_simulation()

    def _jiggle(self) -> float:
        return (self._random.random() - 0.5) * 1e-6

    def _build_simulation(self) -> ForceSimulation:
        p = self.params
        bodies = list(self._bodies.values())
        steps = {n.id: n.pipeline_step for n in self.graph.nodes}

        def cluster_x(b: Body) -> float:
            return self.centers.get(steps[b.id], p.center).x

        def cluster_y(b: Body) -> float:
            return self.centers.get(steps[b.id], p.center).y

        sim = ForceSimulation(bodies)
        sim.force(
            "link",
            LinkForce(self._bodies, self.graph.edges, p.link_distance, p.link_strength, self._jiggle),
        )
        sim.force("charge", ManyBodyForce(bodies, p.charge, p.charge_distance_max, self._jiggle))
        sim.force("center", CenterForce(bodies, p.center))
        sim.force("collision", CollideForce(bodies, p.collide_radius, self._jiggle))
        sim.force("x", PositionForce(bodies, "x", lambda b: p.center.x, p.axis_strength))
        sim.force("y", PositionForce(bodies, "y", lambda b: p.center.y, p.axis_strength))
        sim.force("cluster", PositionForce(bodies, "x", cluster_x, p.cluster_strength))
        sim.force("cluster_y", PositionForce(bodies, "y", cluster_y, p.cluster_strength))
        return sim

    @property
    def positions(self) -> Mapping[str, Point]:
        return MappingProxyType({k: Point(b.x, b.y) for k, b in self._bodies.items()})

    @property
    def alpha(self) -> float:
        return self.simulation.alpha

    @property
    def running(self) -> bool:
        return self.simulation.running

    def is_pinned(self, node_id: str) -> bool:
        body = self._bodies.get(node_id)
        return body is not None and body.pinned

    def advance(self, elapsed: float) -> bool:
        """One simulation step per frame, independent of ``elapsed``."""
        return self.simulation.step()

    def settle(self, max_ticks: int = 300) -> int:
        """Step synchronously until the simulation cools or ``max_ticks`` run."""
        ticks = 0
        while ticks < max_ticks and self.simulation.step():
            ticks += 1
        logger.debug("layout_settled", ticks=self.simulation.ticks, alpha=round(self.alpha, 5))
        return ticks

    def pin(self, node_id: str, x: float | None = None, y: float | None = None) -> None:
        """Fix a node in place (drag start) and reheat towards the drag target."""
        body = self._bodies.get(node_id)
        if body is None:
            return
        body.fx = body.x if x is None else x
        body.fy = body.y if y is None else y
        self.simulation.alpha_target = DRAG_ALPHA_TARGET
        self.simulation.restart()

    def drag(self, node_id: str, x: float, y: float) -> None:
        body = self._bodies.get(node_id)
        if body is None or not body.pinned:
            return
        body.fx = x
        body.fy = y

    def release(self, node_id: str) -> None:
        body = self._bodies.get(node_id)
        if body is None:
            return
        body.fx = None
        body.fy = None
        self.simulation.alpha_target = 0.0

    def restart(self) -> None:
        """Reheat to full energy without resetting positions."""
        self.simulation.alpha = 1.0
        self.simulation.restart()

    def stop(self) -> None:
        self.simulation.stop()
