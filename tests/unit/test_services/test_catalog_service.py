"""Unit tests for catalog loading and lookup."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from methodgraph.services.catalog_service import CatalogService, load_catalog
from methodgraph.utils.exceptions import CatalogError, UnknownMethodError

SAMPLE_CATALOG_PATH = Path(__file__).resolve().parents[3] / "data" / "methods.json"


def test_bundled_catalog_loads():
    catalog = load_catalog(SAMPLE_CATALOG_PATH)
    assert len(catalog.pipeline_steps) == 6
    assert len(catalog.methods) == 13
    ids = [m.id for m in catalog.methods]
    assert len(ids) == len(set(ids))


def test_missing_file_raises_catalog_error(tmp_path):
    with pytest.raises(CatalogError, match="Cannot read catalog"):
        load_catalog(tmp_path / "nope.json")


def test_invalid_json_raises_catalog_error(tmp_path):
    path = tmp_path / "broken.json"
    path.write_text("{not json", encoding="utf-8")
    with pytest.raises(CatalogError, match="not valid JSON"):
        load_catalog(path)


def test_schema_violation_raises_catalog_error(tmp_path):
    path = tmp_path / "bad.json"
    path.write_text(json.dumps({"methods": [{"id": "x"}]}), encoding="utf-8")
    with pytest.raises(CatalogError, match="failed validation"):
        load_catalog(path)


def test_unknown_fields_are_ignored(tmp_path):
    path = tmp_path / "extra.json"
    path.write_text(
        json.dumps({
            "version": 2,
            "pipeline_steps": [{"id": "s", "name": "S", "order": 1, "icon": "x"}],
            "methods": [{"id": "m", "name": "M", "pipeline_step": "s", "summary": "..."}],
        }),
        encoding="utf-8",
    )
    service = CatalogService.from_path(path)
    assert service.source == str(path)
    assert service.get_method("m").name == "M"


def test_get_method_and_unknown(sample_catalog):
    service = CatalogService(sample_catalog)
    assert service.get_method("har").pipeline_step == "activity_recognition"
    with pytest.raises(UnknownMethodError, match="Unknown method: ghost") as exc:
        service.get_method("ghost")
    assert exc.value.method_id == "ghost"


def test_step_name_falls_back_to_id(sample_catalog):
    service = CatalogService(sample_catalog)
    assert service.step_name("preprocessing") == "Preprocessing"
    assert service.step_name("mystery") == "mystery"


def test_select_subset(sample_catalog):
    service = CatalogService(sample_catalog)
    assert service.select(None) is sample_catalog
    assert service.select([]) is sample_catalog
    subset = service.select(["imu", "har", "ghost"])
    assert [m.id for m in subset.methods] == ["imu", "har"]
    assert subset.pipeline_steps == sample_catalog.pipeline_steps
