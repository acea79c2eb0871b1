"""Method lookup endpoints backing the hover card."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException

from methodgraph.api.dependencies import get_catalog_service, get_graph_service
from methodgraph.api.v1.graph import ViewQuery
from methodgraph.api.v1.schemas.graph import NeighborsResponse
from methodgraph.models.schemas import MethodRecord
from methodgraph.services.catalog_service import CatalogService
from methodgraph.services.graph_service import GraphService
from methodgraph.utils.exceptions import UnknownMethodError

router = APIRouter(prefix="/methods", tags=["methods"])


@router.get("", response_model=list[MethodRecord])
async def list_methods(catalogs: CatalogService = Depends(get_catalog_service)) -> list[MethodRecord]:
    return catalogs.catalog.methods


@router.get("/{method_id}", response_model=MethodRecord)
async def get_method(
    method_id: str,
    catalogs: CatalogService = Depends(get_catalog_service),
) -> MethodRecord:
    try:
        return catalogs.get_method(method_id)
    except UnknownMethodError as exc:
        raise HTTPException(status_code=404, detail=str(exc))


@router.get("/{method_id}/neighbors", response_model=NeighborsResponse)
def get_neighbors(
    method_id: str,
    view: ViewQuery = Depends(),
    graphs: GraphService = Depends(get_graph_service),
) -> NeighborsResponse:
    """Degree, step name and linked methods of one method under the given link options."""
    try:
        info = graphs.neighbors(method_id, view.options)
    except UnknownMethodError as exc:
        raise HTTPException(status_code=404, detail=str(exc))
    return NeighborsResponse(**info)
