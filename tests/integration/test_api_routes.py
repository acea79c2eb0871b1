"""Integration tests for the FastAPI application against the bundled catalog."""

from __future__ import annotations

import json

import pytest
from fastapi.testclient import TestClient

from methodgraph.main import app

IMU = "wearable-imu-capture"
FILTERING = "sensor-signal-filtering"
HAR = "har-deep-learning"


@pytest.fixture
def client():
    with TestClient(app) as c:
        yield c


@pytest.fixture
def client_without_catalog(monkeypatch, tmp_path):
    monkeypatch.setenv("CATALOG_PATH", str(tmp_path / "missing.json"))
    with TestClient(app) as c:
        yield c


def test_health_endpoint(client):
    resp = client.get("/api/v1/health")
    assert resp.status_code == 200
    assert resp.json()["status"] == "healthy"
    assert "X-Request-ID" in resp.headers


def test_request_id_is_echoed(client):
    resp = client.get("/api/v1/health", headers={"X-Request-ID": "abc-123"})
    assert resp.headers["X-Request-ID"] == "abc-123"


def test_ready_with_catalog(client):
    body = client.get("/api/v1/ready").json()
    assert body == {"status": "ready", "catalog": True, "methods": 13, "pipeline_steps": 6}


def test_missing_catalog_degrades_gracefully(client_without_catalog):
    assert client_without_catalog.get("/api/v1/ready").json() == {"status": "not_ready", "catalog": False}
    resp = client_without_catalog.get("/api/v1/graph")
    assert resp.status_code == 503
    assert resp.json()["detail"] == "Graph service not initialized"


def test_get_graph(client):
    resp = client.get("/api/v1/graph")
    assert resp.status_code == 200
    body = resp.json()
    assert body["node_count"] == len(body["nodes"]) == 13
    assert body["edge_count"] == len(body["edges"])
    assert (body["width"], body["height"]) == (1200, 800)

    ids = {n["id"] for n in body["nodes"]}
    for edge in body["edges"]:
        assert edge["source"] in ids and edge["target"] in ids
        assert edge["source"] != edge["target"]
    pairs = [frozenset((e["source"], e["target"])) for e in body["edges"]]
    assert len(pairs) == len(set(pairs))
    assert all(e["source"] != "missing-method-id" and e["target"] != "missing-method-id" for e in body["edges"])

    members = [m for c in body["clusters"] for m in c["members"]]
    assert sorted(members) == sorted(ids)


def test_get_graph_filters_and_subset(client):
    resp = client.get(
        "/api/v1/graph",
        params={"show_similar": "false", "method_ids": [IMU, FILTERING, HAR], "width": 600, "height": 500},
    )
    body = resp.json()
    assert {n["id"] for n in body["nodes"]} == {IMU, FILTERING, HAR}
    assert {e["type"] for e in body["edges"]} == {"explicit"}
    assert body["edge_count"] == 2
    assert body["width"] == 600


def test_get_graph_validates_view_params(client):
    assert client.get("/api/v1/graph", params={"node_spacing": 0.1}).status_code == 422
    assert client.get("/api/v1/graph", params={"similarity_threshold": 2}).status_code == 422
    assert client.get("/api/v1/graph", params={"width": 0}).status_code == 422


@pytest.mark.parametrize(
    "fmt,media_type,marker",
    [
        ("json", "application/json", b'"nodes"'),
        ("graphml", "application/xml", b"<graphml"),
        ("svg", "image/svg+xml", b"<svg"),
        ("png", "image/png", b"\x89PNG"),
    ],
)
def test_export_formats(client, fmt, media_type, marker):
    resp = client.get("/api/v1/graph/export", params={"format": fmt})
    assert resp.status_code == 200
    assert resp.headers["content-type"].startswith(media_type)
    assert f"method_graph.{fmt}" in resp.headers["content-disposition"]
    assert marker in resp.content


def test_export_json_matches_graph(client):
    exported = json.loads(client.get("/api/v1/graph/export", params={"format": "json"}).content)
    assert exported == client.get("/api/v1/graph").json()


def test_export_rejects_unknown_format(client):
    assert client.get("/api/v1/graph/export", params={"format": "bmp"}).status_code == 422


def test_similarity(client):
    resp = client.get("/api/v1/graph/similarity", params={"a": IMU, "b": HAR})
    assert resp.status_code == 200
    body = resp.json()
    assert body["a"] == IMU and body["b"] == HAR
    assert 0 < body["score"] <= 1

    missing = client.get("/api/v1/graph/similarity", params={"a": IMU, "b": "ghost"})
    assert missing.status_code == 404
    assert missing.json()["detail"] == "Unknown method: ghost"


@pytest.mark.parametrize(
    "scale,band,label,cards",
    [
        (0.3, "abstract", "Abstract", False),
        (0.85, "normal", "Normal", False),
        (2.5, "full", "Full Detail", True),
    ],
)
def test_zoom_band(client, scale, band, label, cards):
    body = client.get("/api/v1/graph/zoom", params={"scale": scale}).json()
    assert body["band"] == band
    assert body["label"] == label
    assert body["shows_detail_cards"] is cards
    assert body["percent"] == f"{round(scale * 100)}%"
    assert "node_radius_factor" in body["style"]


def test_zoom_requires_positive_scale(client):
    assert client.get("/api/v1/graph/zoom", params={"scale": 0}).status_code == 422


def test_list_and_get_methods(client):
    methods = client.get("/api/v1/methods").json()
    assert len(methods) == 13
    one = client.get(f"/api/v1/methods/{IMU}").json()
    assert one["pipeline_step"] == "data_capture"
    assert client.get("/api/v1/methods/ghost").status_code == 404


def test_neighbors(client):
    resp = client.get(f"/api/v1/methods/{FILTERING}/neighbors", params={"show_similar": "false"})
    assert resp.status_code == 200
    body = resp.json()
    assert body["step_name"] == "Preprocessing"
    linked = {n["id"] for n in body["neighbors"]}
    assert {IMU, HAR} <= linked
    assert body["degree"] == len(body["neighbors"])
    assert client.get("/api/v1/methods/ghost/neighbors").status_code == 404
