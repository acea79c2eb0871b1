"""Export a laid-out method graph to JSON, GraphML, SVG or PNG.

Usage:
  python scripts/export_graph.py --format svg --output method_graph.svg
  python scripts/export_graph.py --format png --same-step --threshold 0.4
  python scripts/export_graph.py --catalog data/methods.json --method har-deep-learning --method sensor-signal-filtering
"""

from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path

from methodgraph.api.graph_image import render_graph_image
from methodgraph.api.v1.graph import graph_response, to_graphml
from methodgraph.config import get_settings
from methodgraph.services.catalog_service import CatalogService
from methodgraph.services.graph_service import GraphService
from methodgraph.utils.exceptions import MethodGraphError
from methodgraph.utils.logging import setup_logging
from methodgraph.viz.builder import LinkOptions


def main() -> None:
    settings = get_settings()
    parser = argparse.ArgumentParser(description="Export the method relationship graph")
    parser.add_argument("--catalog", default=settings.CATALOG_PATH, help="Catalog JSON path")
    parser.add_argument("--format", choices=["json", "graphml", "svg", "png"], default="json")
    parser.add_argument("--output", default=None, help="Output file (default: method_graph.<format>)")
    parser.add_argument("--method", action="append", dest="method_ids", help="Restrict to a method id (repeatable)")
    parser.add_argument("--no-explicit", action="store_true", help="Skip explicit related-method links")
    parser.add_argument("--same-step", action="store_true", help="Link methods in the same pipeline step")
    parser.add_argument("--shared-modality", action="store_true", help="Link methods sharing a modality")
    parser.add_argument("--shared-task", action="store_true", help="Link methods sharing a task")
    parser.add_argument("--no-similar", action="store_true", help="Skip similarity links")
    parser.add_argument("--threshold", type=float, default=settings.SIMILARITY_THRESHOLD)
    parser.add_argument("--max-similar", type=int, default=settings.MAX_SIMILAR_LINKS)
    parser.add_argument("--spacing", type=float, default=settings.NODE_SPACING)
    parser.add_argument("--zoom", type=float, default=0.85, help="Zoom scale for SVG output")
    parser.add_argument("--selected", default=None, help="Method id to highlight")
    args = parser.parse_args()

    setup_logging(log_level="INFO", log_format="console")

    options = LinkOptions(
        show_explicit=not args.no_explicit,
        show_same_step=args.same_step,
        show_shared_modality=args.shared_modality,
        show_shared_task=args.shared_task,
        show_similar=not args.no_similar,
        similarity_threshold=args.threshold,
        max_similar_links=args.max_similar,
    )

    try:
        graphs = GraphService(CatalogService.from_path(args.catalog), settings)
        snap = graphs.snapshot(options, method_ids=args.method_ids, node_spacing=args.spacing)
    except MethodGraphError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        sys.exit(1)

    output = Path(args.output or f"method_graph.{args.format}")
    if args.format == "json":
        output.write_text(json.dumps(graph_response(snap).model_dump(), indent=2))
    elif args.format == "graphml":
        output.write_text(to_graphml(snap))
    elif args.format == "svg":
        output.write_text(graphs.render_svg(snap, zoom=args.zoom, selected_id=args.selected))
    else:
        output.write_bytes(render_graph_image(snap, selected_id=args.selected))

    print(f"Graph exported to {output}")
    print(f"  Nodes: {len(snap.graph.nodes)}")
    print(f"  Edges: {len(snap.graph.edges)}")
    print(f"  Layout ticks: {snap.ticks}")


if __name__ == "__main__":
    main()
