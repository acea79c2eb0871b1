"""Pydantic models for the method catalog consumed by the graph core."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class References(BaseModel):
    model_config = ConfigDict(extra="ignore", frozen=True)

    year: int | None = None


class MethodRecord(BaseModel):
    """One catalog method. Immutable for the lifetime of a graph build."""

    model_config = ConfigDict(extra="ignore", frozen=True)

    id: str
    name: str
    pipeline_step: str
    modalities: list[str] = Field(default_factory=list)
    tasks: list[str] = Field(default_factory=list)
    tags: list[str] = Field(default_factory=list)
    maturity: str | None = None
    evidence_type: str | None = None
    related_method_ids: list[str] = Field(default_factory=list)
    references: References = Field(default_factory=References)

    @property
    def year(self) -> int | None:
        return self.references.year


class PipelineStep(BaseModel):
    model_config = ConfigDict(extra="ignore", frozen=True)

    id: str
    name: str
    order: int


class Catalog(BaseModel):
    model_config = ConfigDict(extra="ignore")

    pipeline_steps: list[PipelineStep] = Field(default_factory=list)
    methods: list[MethodRecord] = Field(default_factory=list)

    def method(self, method_id: str) -> MethodRecord | None:
        for m in self.methods:
            if m.id == method_id:
                return m
        return None

    def subset(self, method_ids: list[str]) -> Catalog:
        """Catalog restricted to ``method_ids`` (unknown ids are ignored)."""
        wanted = set(method_ids)
        return Catalog(
            pipeline_steps=list(self.pipeline_steps),
            methods=[m for m in self.methods if m.id in wanted],
        )
