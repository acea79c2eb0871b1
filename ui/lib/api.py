"""API client for the method graph backend."""

from __future__ import annotations

from typing import Any

import requests


def get_base_url() -> str:
    """Backend API base URL (no trailing slash)."""
    import os
    return (os.environ.get("METHODGRAPH_API_URL") or "http://localhost:8000").rstrip("/")


def view_params(
    show_explicit: bool = True,
    show_same_step: bool = False,
    show_shared_modality: bool = False,
    show_shared_task: bool = False,
    show_similar: bool = True,
    similarity_threshold: float = 0.3,
    max_similar_links: int = 4,
    node_spacing: float = 1.5,
    method_ids: list[str] | None = None,
) -> dict[str, Any]:
    """Query parameters understood by every graph-building endpoint."""
    params: dict[str, Any] = {
        "show_explicit": show_explicit,
        "show_same_step": show_same_step,
        "show_shared_modality": show_shared_modality,
        "show_shared_task": show_shared_task,
        "show_similar": show_similar,
        "similarity_threshold": similarity_threshold,
        "max_similar_links": max_similar_links,
        "node_spacing": node_spacing,
    }
    if method_ids:
        params["method_ids"] = method_ids
    return params


def get_graph(params: dict[str, Any]) -> dict[str, Any]:
    """GET /api/v1/graph — laid-out graph (nodes, edges, clusters, counts)."""
    r = requests.get(f"{get_base_url()}/api/v1/graph", params=params, timeout=60)
    r.raise_for_status()
    return r.json()


def export_graph(params: dict[str, Any], format: str = "svg", zoom: float = 0.85, selected_id: str | None = None) -> bytes:
    """GET /api/v1/graph/export — JSON, GraphML, SVG or PNG bytes."""
    query = dict(params, format=format, zoom=zoom)
    if selected_id:
        query["selected_id"] = selected_id
    r = requests.get(f"{get_base_url()}/api/v1/graph/export", params=query, timeout=60)
    r.raise_for_status()
    return r.content


def get_zoom(scale: float) -> dict[str, Any]:
    """GET /api/v1/graph/zoom — band, label and style for a zoom scale."""
    r = requests.get(f"{get_base_url()}/api/v1/graph/zoom", params={"scale": scale}, timeout=10)
    r.raise_for_status()
    return r.json()


def get_similarity(a: str, b: str) -> dict[str, Any]:
    r = requests.get(f"{get_base_url()}/api/v1/graph/similarity", params={"a": a, "b": b}, timeout=10)
    r.raise_for_status()
    return r.json()


def get_neighbors(method_id: str, params: dict[str, Any]) -> dict[str, Any]:
    """GET /api/v1/methods/{id}/neighbors — hover-card details."""
    r = requests.get(f"{get_base_url()}/api/v1/methods/{method_id}/neighbors", params=params, timeout=30)
    r.raise_for_status()
    return r.json()


def list_methods() -> list[dict[str, Any]]:
    r = requests.get(f"{get_base_url()}/api/v1/methods", timeout=10)
    r.raise_for_status()
    return r.json()


def stream_layout(params: dict[str, Any], timeout: int = 120):
    """GET /api/v1/graph/stream — SSE stream. Returns response with stream=True."""
    return requests.get(f"{get_base_url()}/api/v1/graph/stream", params=params, stream=True, timeout=timeout)


def health() -> dict[str, Any]:
    """GET /api/v1/health."""
    r = requests.get(f"{get_base_url()}/api/v1/health", timeout=5)
    r.raise_for_status()
    return r.json()


def ready() -> dict[str, Any]:
    """GET /api/v1/ready."""
    r = requests.get(f"{get_base_url()}/api/v1/ready", timeout=5)
    r.raise_for_status()
    return r.json()
