"""Request/response models for the graph API."""

from __future__ import annotations

from pydantic import BaseModel, Field


class NodeOut(BaseModel):
    id: str
    name: str
    short_name: str
    pipeline_step: str
    modalities: list[str] = Field(default_factory=list)
    tasks: list[str] = Field(default_factory=list)
    maturity: str | None = None
    evidence_type: str | None = None
    year: int | None = None
    color: str
    degree: int = 0
    radius: float
    x: float
    y: float


class EdgeOut(BaseModel):
    source: str
    target: str
    type: str
    label: str
    strength: float
    color: str
    stroke_width: float
    dash_array: str | None = None


class ClusterOut(BaseModel):
    id: str
    name: str
    color: str
    members: list[str] = Field(default_factory=list)
    kind: str | None = None
    path: str | None = None
    label_x: float | None = None
    label_y: float | None = None


class GraphResponse(BaseModel):
    nodes: list[NodeOut] = Field(default_factory=list)
    edges: list[EdgeOut] = Field(default_factory=list)
    clusters: list[ClusterOut] = Field(default_factory=list)
    node_count: int = 0
    edge_count: int = 0
    width: float
    height: float
    ticks: int = 0


class SimilarityResponse(BaseModel):
    a: str
    b: str
    score: float


class ZoomResponse(BaseModel):
    scale: float
    band: str
    label: str
    percent: str
    shows_detail_cards: bool
    style: dict[str, float] = Field(default_factory=dict)


class NeighborOut(BaseModel):
    id: str
    name: str
    type: str
    label: str
    strength: float


class NeighborsResponse(BaseModel):
    id: str
    name: str
    pipeline_step: str
    step_name: str
    degree: int
    color: str
    neighbors: list[NeighborOut] = Field(default_factory=list)
