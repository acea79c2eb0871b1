"""Shared FastAPI dependency injection."""

from __future__ import annotations

from methodgraph.config import get_settings
from methodgraph.services.catalog_service import CatalogService
from methodgraph.services.graph_service import GraphService
from methodgraph.utils.exceptions import CatalogError

_catalog_service: CatalogService | None = None
_graph_service: GraphService | None = None


def set_catalog_service(service: CatalogService | None) -> None:
    global _catalog_service, _graph_service
    _catalog_service = service
    _graph_service = GraphService(service, get_settings()) if service is not None else None


def get_catalog_service() -> CatalogService:
    if _catalog_service is None:
        raise CatalogError("Catalog not loaded")
    return _catalog_service


def get_graph_service() -> GraphService:
    if _graph_service is None:
        raise CatalogError("Graph service not initialized")
    return _graph_service


def catalog_loaded() -> bool:
    return _catalog_service is not None
