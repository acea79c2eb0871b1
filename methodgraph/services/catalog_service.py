"""Loads and validates the method catalog JSON file."""

from __future__ import annotations

import json
from pathlib import Path

from pydantic import ValidationError

from methodgraph.models.schemas import Catalog, MethodRecord
from methodgraph.utils.exceptions import CatalogError, UnknownMethodError
from methodgraph.utils.logging import get_logger

logger = get_logger(__name__)


class CatalogService:
    """Read-only access to the catalog the graph is built from."""

    def __init__(self, catalog: Catalog, source: str | None = None) -> None:
        self._catalog = catalog
        self.source = source

    @classmethod
    def from_path(cls, path: str | Path) -> CatalogService:
        return cls(load_catalog(path), source=str(path))

    @property
    def catalog(self) -> Catalog:
        return self._catalog

    def get_method(self, method_id: str) -> MethodRecord:
        method = self._catalog.method(method_id)
        if method is None:
            raise UnknownMethodError(method_id)
        return method

    def step_name(self, step_id: str) -> str:
        for step in self._catalog.pipeline_steps:
            if step.id == step_id:
                return step.name
        return step_id

    def select(self, method_ids: list[str] | None) -> Catalog:
        """The full catalog, or the subset named by ``method_ids``."""
        if not method_ids:
            return self._catalog
        return self._catalog.subset(method_ids)


def load_catalog(path: str | Path) -> Catalog:
    """Parse a catalog file with ``pipeline_steps`` and ``methods`` arrays."""
    path = Path(path)
    try:
        raw = path.read_text(encoding="utf-8")
    except OSError as exc:
        logger.error("catalog_unreadable", path=str(path), error=str(exc))
        raise CatalogError(f"Cannot read catalog {path}: {exc}") from exc

    try:
        catalog = Catalog.model_validate(json.loads(raw))
    except json.JSONDecodeError as exc:
        raise CatalogError(f"Catalog {path} is not valid JSON: {exc}") from exc
    except ValidationError as exc:
        raise CatalogError(f"Catalog {path} failed validation: {exc.error_count()} errors") from exc

    logger.info(
        "catalog_loaded",
        path=str(path),
        methods=len(catalog.methods),
        pipeline_steps=len(catalog.pipeline_steps),
    )
    return catalog
