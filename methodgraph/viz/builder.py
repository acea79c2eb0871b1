"""Derive a deduplicated, typed relationship graph from the method catalog."""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, replace
from itertools import combinations
from typing import Sequence

import networkx as nx
from pydantic import BaseModel, ConfigDict, Field

from methodgraph.models.schemas import MethodRecord, PipelineStep
from methodgraph.utils.logging import get_logger
from methodgraph.viz import similarity
from methodgraph.viz.tokens import DEFAULT_VISUAL_CONFIG, EdgeStyle, RelationshipType, VisualConfig

logger = get_logger(__name__)

SHORT_NAME_MAX = 30

SAME_STEP_STRENGTH = 0.3


class LinkOptions(BaseModel):
    """Which link-generation stages run, and how similarity links are sparsified."""

    model_config = ConfigDict(frozen=True)

    show_explicit: bool = True
    show_same_step: bool = False
    show_shared_modality: bool = False
    show_shared_task: bool = False
    show_similar: bool = True
    similarity_threshold: float = Field(default=0.35, ge=0.0, le=1.0)
    max_similar_links: int = Field(default=3, ge=0)


@dataclass(frozen=True)
class GraphNode:
    id: str
    name: str
    short_name: str
    pipeline_step: str
    modalities: tuple[str, ...]
    tasks: tuple[str, ...]
    tags: tuple[str, ...]
    maturity: str | None
    evidence_type: str | None
    related_ids: tuple[str, ...]
    year: int | None
    color: str
    degree: int = 0

    @property
    def radius(self) -> float:
        """Base circle radius, growing with degree between 8 and 18."""
        return max(8.0, min(18.0, 8 + self.degree * 1.5))


@dataclass(frozen=True)
class GraphEdge:
    source: str
    target: str
    type: RelationshipType
    strength: float

    @property
    def style(self) -> EdgeStyle:
        return self.type.style

    @property
    def key(self) -> tuple[str, str]:
        return edge_key(self.source, self.target)

    def touches(self, node_id: str) -> bool:
        return self.source == node_id or self.target == node_id


def edge_key(a: str, b: str) -> tuple[str, str]:
    """Unordered pair key: the same for (a, b) and (b, a)."""
    return (a, b) if a <= b else (b, a)


def truncate_name(name: str, limit: int = SHORT_NAME_MAX) -> str:
    if len(name) <= limit:
        return name
    return name[: limit - 3] + "..."


@dataclass(frozen=True)
class MethodGraph:
    nodes: tuple[GraphNode, ...]
    edges: tuple[GraphEdge, ...]

    def node(self, node_id: str) -> GraphNode | None:
        for n in self.nodes:
            if n.id == node_id:
                return n
        return None

    def neighbors(self, node_id: str) -> set[str]:
        result: set[str] = set()
        for e in self.edges:
            if e.source == node_id:
                result.add(e.target)
            elif e.target == node_id:
                result.add(e.source)
        return result

    def incident(self, node_id: str) -> list[GraphEdge]:
        return [e for e in self.edges if e.touches(node_id)]

    def to_networkx(self) -> nx.Graph:
        g = nx.Graph()
        for n in self.nodes:
            g.add_node(
                n.id,
                name=n.name,
                pipeline_step=n.pipeline_step,
                color=n.color,
                degree=n.degree,
            )
        for e in self.edges:
            g.add_edge(e.source, e.target, type=e.type.value, strength=e.strength)
        return g


class _EdgeCollector:
    """First writer wins per unordered endpoint pair."""

    def __init__(self) -> None:
        self.edges: list[GraphEdge] = []
        self._keys: set[tuple[str, str]] = set()

    def add(self, source: str, target: str, rel: RelationshipType, strength: float) -> bool:
        if source == target:
            return False
        key = edge_key(source, target)
        if key in self._keys:
            return False
        self._keys.add(key)
        self.edges.append(GraphEdge(source, target, rel, strength))
        return True


def _make_node(method: MethodRecord, visual: VisualConfig) -> GraphNode:
    return GraphNode(
        id=method.id,
        name=method.name,
        short_name=truncate_name(method.name),
        pipeline_step=method.pipeline_step,
        modalities=tuple(method.modalities),
        tasks=tuple(method.tasks),
        tags=tuple(method.tags),
        maturity=method.maturity,
        evidence_type=method.evidence_type,
        related_ids=tuple(method.related_method_ids),
        year=method.year,
        color=visual.step_color(method.pipeline_step),
    )


def build_graph(
    methods: Sequence[MethodRecord],
    pipeline_steps: Sequence[PipelineStep],
    options: LinkOptions | None = None,
    visual: VisualConfig = DEFAULT_VISUAL_CONFIG,
) -> MethodGraph:
    """Build nodes and deduplicated edges for ``methods``.

    Stages run in priority order (explicit, same step, shared modality,
    shared task, similarity); a stage never overwrites a pair an earlier
    stage already connected. Related ids that do not resolve are dropped.
    """
    options = options or LinkOptions()
    known = {m.id for m in methods}
    collector = _EdgeCollector()

    if options.show_explicit:
        for method in methods:
            for related_id in method.related_method_ids:
                if related_id in known:
                    collector.add(method.id, related_id, RelationshipType.EXPLICIT, 1.0)

    if options.show_same_step:
        for step in pipeline_steps:
            members = [m for m in methods if m.pipeline_step == step.id]
            for a, b in combinations(members, 2):
                collector.add(a.id, b.id, RelationshipType.SAME_STEP, SAME_STEP_STRENGTH)

    if options.show_shared_modality:
        for a, b in combinations(methods, 2):
            if a.pipeline_step == b.pipeline_step:
                continue
            count = len(similarity.shared(a.modalities, b.modalities))
            if count:
                collector.add(a.id, b.id, RelationshipType.SHARED_MODALITY, 0.4 + 0.1 * count)

    if options.show_shared_task:
        for a, b in combinations(methods, 2):
            if a.pipeline_step == b.pipeline_step:
                continue
            count = len(similarity.shared(a.tasks, b.tasks))
            if count:
                collector.add(a.id, b.id, RelationshipType.SHARED_TASK, 0.3 + 0.15 * count)

    if options.show_similar:
        _add_similarity_links(collector, methods, pipeline_steps, options)

    degree: Counter[str] = Counter()
    for e in collector.edges:
        degree[e.source] += 1
        degree[e.target] += 1

    nodes = tuple(replace(_make_node(m, visual), degree=degree[m.id]) for m in methods)
    graph = MethodGraph(nodes=nodes, edges=tuple(collector.edges))
    logger.debug("graph_built", nodes=len(graph.nodes), edges=len(graph.edges))
    return graph


def _add_similarity_links(
    collector: _EdgeCollector,
    methods: Sequence[MethodRecord],
    pipeline_steps: Sequence[PipelineStep],
    options: LinkOptions,
) -> None:
    candidates: list[tuple[float, str, str]] = []
    for a, b in combinations(methods, 2):
        sim = similarity.score(a, b, pipeline_steps)
        if sim > 0 and sim >= options.similarity_threshold:
            candidates.append((sim, a.id, b.id))

    # Stable sort keeps catalog order among equal scores.
    candidates.sort(key=lambda c: c[0], reverse=True)
    counts: Counter[str] = Counter()
    for sim, source, target in candidates:
        if counts[source] >= options.max_similar_links or counts[target] >= options.max_similar_links:
            continue
        # A pair already claimed by an earlier stage still spends the budget.
        collector.add(source, target, RelationshipType.SIMILAR, sim)
        counts[source] += 1
        counts[target] += 1
