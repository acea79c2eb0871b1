"""FastAPI application factory with lifespan events."""

from __future__ import annotations

import uuid
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from methodgraph.api.dependencies import set_catalog_service
from methodgraph.api.router import api_router
from methodgraph.config import get_settings
from methodgraph.services.catalog_service import CatalogService
from methodgraph.utils.exceptions import CatalogError, LayoutError, UnknownMethodError
from methodgraph.utils.logging import bind_request, get_logger, setup_logging

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Load the catalog on startup; release it on shutdown."""
    settings = get_settings()
    setup_logging(settings.LOG_LEVEL, settings.LOG_FORMAT)

    try:
        set_catalog_service(CatalogService.from_path(settings.CATALOG_PATH))
    except CatalogError as exc:
        logger.warning("catalog_unavailable", path=settings.CATALOG_PATH, error=str(exc))
        set_catalog_service(None)

    logger.info("app_started")
    yield

    set_catalog_service(None)
    logger.info("app_stopped")


def create_app() -> FastAPI:
    settings = get_settings()
    setup_logging(settings.LOG_LEVEL, settings.LOG_FORMAT)

    application = FastAPI(
        title="Method Graph",
        description="Relationship graph of the process-mining method catalog",
        version="0.1.0",
        lifespan=lifespan,
    )

    application.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    application.include_router(api_router)

    @application.middleware("http")
    async def request_id_middleware(request: Request, call_next) -> Response:
        request_id = request.headers.get("X-Request-ID", str(uuid.uuid4()))
        bind_request(request_id)
        response = await call_next(request)
        response.headers["X-Request-ID"] = request_id
        return response

    @application.exception_handler(UnknownMethodError)
    async def unknown_method_handler(request: Request, exc: UnknownMethodError) -> JSONResponse:
        return JSONResponse(status_code=404, content={"detail": str(exc)})

    @application.exception_handler(CatalogError)
    async def catalog_error_handler(request: Request, exc: CatalogError) -> JSONResponse:
        logger.error("catalog_error", error=str(exc), path=request.url.path)
        return JSONResponse(status_code=503, content={"detail": str(exc)})

    @application.exception_handler(LayoutError)
    async def layout_error_handler(request: Request, exc: LayoutError) -> JSONResponse:
        return JSONResponse(status_code=422, content={"detail": str(exc)})

    @application.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        logger.error("unhandled_exception", error=str(exc), path=request.url.path)
        return JSONResponse(
            status_code=500,
            content={"detail": "Internal server error", "type": type(exc).__name__},
        )

    return application


app = create_app()
