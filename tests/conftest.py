"""Shared test fixtures."""

from __future__ import annotations

from pathlib import Path

import pytest

from methodgraph.models.schemas import Catalog, MethodRecord, PipelineStep

SAMPLE_CATALOG_PATH = Path(__file__).resolve().parent.parent / "data" / "methods.json"


@pytest.fixture(autouse=True)
def _env_setup(monkeypatch):
    """Set environment variables for tests."""
    monkeypatch.setenv("CATALOG_PATH", str(SAMPLE_CATALOG_PATH))
    monkeypatch.setenv("LOG_LEVEL", "WARNING")
    monkeypatch.setenv("LOG_FORMAT", "console")
    monkeypatch.setenv("FRAME_RATE", "1000")
    monkeypatch.setenv("LAYOUT_MAX_TICKS", "120")
    monkeypatch.setenv("LAYOUT_SEED", "7")


@pytest.fixture
def settings():
    from methodgraph.config import Settings

    return Settings()


@pytest.fixture
def steps() -> list[PipelineStep]:
    return [
        PipelineStep(id="data_capture", name="Data Capture", order=1),
        PipelineStep(id="preprocessing", name="Preprocessing", order=2),
        PipelineStep(id="activity_recognition", name="Activity Recognition", order=3),
        PipelineStep(id="process_analysis", name="Process Analysis", order=6),
    ]


def make_method(method_id: str, step: str = "data_capture", **kwargs) -> MethodRecord:
    return MethodRecord(id=method_id, name=kwargs.pop("name", method_id.replace("-", " ").title()), pipeline_step=step, **kwargs)


@pytest.fixture
def method_factory():
    return make_method


@pytest.fixture
def sample_catalog(steps) -> Catalog:
    """Small catalog spread over four steps, with one stale cross-reference."""
    methods = [
        make_method(
            "imu", "data_capture",
            modalities=["sensor"], tasks=["recording"], tags=["wearables"],
            maturity="established", evidence_type="case_study",
            related_method_ids=["filtering"], references={"year": 2018},
        ),
        make_method(
            "video", "data_capture",
            modalities=["video"], tasks=["recording"], tags=["camera"],
            maturity="emerging", evidence_type="experiment",
        ),
        make_method(
            "filtering", "preprocessing",
            modalities=["sensor", "realtime"], tasks=["denoising"], tags=["signal"],
            maturity="established", evidence_type="benchmark",
            related_method_ids=["har", "does-not-exist"],
        ),
        make_method(
            "har", "activity_recognition",
            modalities=["sensor"], tasks=["classification"], tags=["wearables", "deep-learning"],
            maturity="established", evidence_type="benchmark",
        ),
        make_method(
            "segmentation", "activity_recognition",
            modalities=["video"], tasks=["classification"], tags=["deep-learning"],
            maturity="emerging", evidence_type="benchmark",
        ),
        make_method(
            "discovery", "process_analysis",
            modalities=["text"], tasks=["discovery"], tags=["event-log"],
            maturity="established", evidence_type="benchmark",
        ),
    ]
    return Catalog(pipeline_steps=steps, methods=methods)
