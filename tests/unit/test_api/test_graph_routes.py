"""Unit tests for the graph routes: GraphML export and handler dispatch."""

from __future__ import annotations

import inspect
import xml.etree.ElementTree as ET

import pytest

from methodgraph.api.v1 import graph as graph_routes
from methodgraph.api.v1 import methods as method_routes
from methodgraph.models.schemas import Catalog
from methodgraph.services.catalog_service import CatalogService
from methodgraph.services.graph_service import GraphService
from methodgraph.viz import render

NS = {"g": "http://graphml.graphdrawing.org/xmlns"}


@pytest.fixture
def snapshot(steps, method_factory, settings):
    catalog = Catalog(
        pipeline_steps=steps,
        methods=[
            method_factory("fusion", "data_capture", name='Fusion & <Filtering> "v2"', related_method_ids=["imu"]),
            method_factory("imu", "data_capture", name="IMU"),
        ],
    )
    return GraphService(CatalogService(catalog), settings).snapshot()


def test_graphml_escapes_markup_in_names(snapshot):
    xml = graph_routes.to_graphml(snapshot)
    assert "Fusion &amp; &lt;Filtering&gt; &quot;v2&quot;" in xml

    root = ET.fromstring(xml)
    names = [d.text for d in root.iterfind(".//g:node/g:data[@key='name']", NS)]
    assert 'Fusion & <Filtering> "v2"' in names
    assert len(root.findall(".//g:edge", NS)) == len(snapshot.graph.edges)


def test_graphml_and_svg_share_one_escape_helper():
    assert graph_routes.xml_escape is render.xml_escape
    assert not hasattr(graph_routes, "_xml_escape")


@pytest.mark.parametrize(
    "handler",
    [graph_routes.get_graph, graph_routes.export_graph, method_routes.get_neighbors],
)
def test_layout_bound_handlers_run_in_threadpool(handler):
    assert not inspect.iscoroutinefunction(handler)
