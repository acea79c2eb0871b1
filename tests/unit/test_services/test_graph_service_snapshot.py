"""Unit tests for the graph service: snapshots, queries and layout streaming."""

from __future__ import annotations

import math

import pytest

from methodgraph.services.catalog_service import CatalogService
from methodgraph.services.graph_service import GraphService
from methodgraph.utils.exceptions import LayoutError, UnknownMethodError
from methodgraph.viz.builder import LinkOptions


@pytest.fixture
def service(sample_catalog, settings):
    return GraphService(CatalogService(sample_catalog), settings)


def test_default_options_come_from_settings(service, settings):
    options = service.default_options()
    assert options.similarity_threshold == settings.SIMILARITY_THRESHOLD
    assert options.max_similar_links == settings.MAX_SIMILAR_LINKS


def test_snapshot_positions_and_clusters(service, settings):
    snap = service.snapshot()
    assert set(snap.positions) == {n.id for n in snap.graph.nodes}
    assert all(math.isfinite(p.x) and math.isfinite(p.y) for p in snap.positions.values())
    assert (snap.width, snap.height) == (settings.VIEWPORT_WIDTH, settings.VIEWPORT_HEIGHT)
    assert 0 < snap.ticks <= settings.LAYOUT_MAX_TICKS

    assert [c.region.id for c in snap.clusters] == [
        "data_capture", "preprocessing", "activity_recognition", "process_analysis",
    ]
    for cluster in snap.clusters:
        assert cluster.boundary is not None
        assert all(cluster.boundary.contains(snap.positions[m.id]) for m in cluster.region.members)


def test_snapshot_is_deterministic(service):
    first = service.snapshot()
    second = service.snapshot()
    assert dict(first.positions) == dict(second.positions)


def test_snapshot_subset_and_viewport(service):
    snap = service.snapshot(method_ids=["imu", "filtering"], width=640, height=480, node_spacing=1.0)
    assert [n.id for n in snap.graph.nodes] == ["imu", "filtering"]
    assert (snap.width, snap.height) == (640, 480)
    assert len(snap.clusters) == 2


def test_snapshot_rejects_bad_viewport(service):
    with pytest.raises(LayoutError):
        service.snapshot(width=-10)


def test_render_svg_static(service):
    snap = service.snapshot(LinkOptions(show_similar=False))
    svg = service.render_svg(snap)
    assert svg.startswith("<svg")
    assert "zoom-hint" not in svg
    assert "detail-card" not in svg
    assert ">Normal</text>" in svg

    detailed = service.render_svg(snap, zoom=3.0, selected_id="har")
    assert "detail-card" in detailed
    assert ">Full Detail</text>" in detailed


def test_similarity_scores_and_unknown(service):
    assert service.similarity("imu", "imu") == 0.0
    # sensor + wearables + established
    assert service.similarity("imu", "har") == pytest.approx(0.4)
    with pytest.raises(UnknownMethodError):
        service.similarity("imu", "ghost")


def test_neighbors(service):
    info = service.neighbors("filtering", LinkOptions(show_similar=False))
    assert info["step_name"] == "Preprocessing"
    assert info["degree"] == 2
    assert {(n["id"], n["type"]) for n in info["neighbors"]} == {("imu", "explicit"), ("har", "explicit")}
    assert all(n["label"] == "Explicitly Related" for n in info["neighbors"])

    with pytest.raises(UnknownMethodError):
        service.neighbors("ghost")


@pytest.mark.asyncio
async def test_stream_layout_yields_frames_then_done(service):
    events = [item async for item in service.stream_layout(max_ticks=10)]
    kinds = [kind for kind, _ in events]
    assert kinds == ["frame"] * 10 + ["done"]

    ticks = [payload["tick"] for kind, payload in events if kind == "frame"]
    assert ticks == list(range(1, 11))
    assert set(events[0][1]["positions"]) == {"imu", "video", "filtering", "har", "segmentation", "discovery"}
    assert events[-1] == ("done", {"ticks": 10, "alpha": events[-2][1]["alpha"]})


@pytest.mark.asyncio
async def test_stream_layout_can_be_abandoned(service):
    stream = service.stream_layout(max_ticks=50)
    kind, payload = await stream.__anext__()
    assert kind == "frame"
    assert payload["tick"] == 1
    await stream.aclose()
