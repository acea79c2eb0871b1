"""Health and readiness probe endpoints."""

from __future__ import annotations

from fastapi import APIRouter

from methodgraph.api import dependencies

router = APIRouter(tags=["health"])


@router.get("/health")
async def health() -> dict:
    return {"status": "healthy"}


@router.get("/ready")
async def ready() -> dict:
    if not dependencies.catalog_loaded():
        return {"status": "not_ready", "catalog": False}
    catalog = dependencies.get_catalog_service().catalog
    return {
        "status": "ready" if catalog.methods else "degraded",
        "catalog": True,
        "methods": len(catalog.methods),
        "pipeline_steps": len(catalog.pipeline_steps),
    }
