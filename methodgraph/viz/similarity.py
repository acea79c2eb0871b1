"""Pairwise similarity between catalog methods."""

from __future__ import annotations

from typing import Sequence

from methodgraph.models.schemas import MethodRecord, PipelineStep

MODALITY_WEIGHT = 0.25
TASK_WEIGHT = 0.20
TAG_WEIGHT = 0.10
SAME_STEP_BONUS = 0.15
ADJACENT_STEP_BONUS = 0.05
MATURITY_BONUS = 0.05
EVIDENCE_BONUS = 0.05


def shared(a: Sequence[str], b: Sequence[str]) -> list[str]:
    """Distinct items of ``a`` also present in ``b``, in ``a``'s order."""
    other = set(b)
    return [x for x in dict.fromkeys(a) if x in other]


def _step_order(step_id: str, steps: Sequence[PipelineStep]) -> int | None:
    for step in steps:
        if step.id == step_id:
            return step.order
    return None


def score(a: MethodRecord, b: MethodRecord, steps: Sequence[PipelineStep]) -> float:
    """Similarity of two methods in [0, 1].

    Shared modalities, tasks and tags each count per shared item, then
    pipeline proximity, maturity and evidence type add small bonuses. The
    raw sum is capped at 1.
    """
    if a.id == b.id:
        return 0.0

    total = 0.0
    total += len(shared(a.modalities, b.modalities)) * MODALITY_WEIGHT
    total += len(shared(a.tasks, b.tasks)) * TASK_WEIGHT
    total += len(shared(a.tags, b.tags)) * TAG_WEIGHT

    order_a = _step_order(a.pipeline_step, steps)
    order_b = _step_order(b.pipeline_step, steps)
    if order_a is not None and order_b is not None:
        diff = abs(order_a - order_b)
        if diff == 0:
            total += SAME_STEP_BONUS
        elif diff == 1:
            total += ADJACENT_STEP_BONUS

    if a.maturity == b.maturity:
        total += MATURITY_BONUS
    if a.evidence_type == b.evidence_type:
        total += EVIDENCE_BONUS

    return min(total, 1.0)
