"""Verify the catalog loads and, if reachable, that the API is serving it."""

from __future__ import annotations

import asyncio
import os
import sys

import httpx

from methodgraph.config import get_settings
from methodgraph.services.catalog_service import load_catalog
from methodgraph.utils.exceptions import CatalogError
from methodgraph.viz.builder import build_graph


async def check_catalog() -> bool:
    path = get_settings().CATALOG_PATH
    try:
        catalog = load_catalog(path)
    except CatalogError as exc:
        print(f"[FAIL] Catalog: {exc}")
        return False
    graph = build_graph(catalog.methods, catalog.pipeline_steps)
    print(f"[OK] Catalog {path}: {len(catalog.methods)} methods, {len(graph.edges)} default links")
    known = {m.id for m in catalog.methods}
    dangling = sorted({r for m in catalog.methods for r in m.related_method_ids if r not in known})
    if dangling:
        print(f"  [WARN] Unresolved related ids (ignored when building): {', '.join(dangling)}")
    return True


async def check_api() -> bool:
    base = (os.getenv("METHODGRAPH_API_URL") or "http://localhost:8000").rstrip("/")
    try:
        async with httpx.AsyncClient() as client:
            resp = await client.get(f"{base}/api/v1/ready", timeout=5)
            resp.raise_for_status()
            data = resp.json()
    except httpx.HTTPError as exc:
        print(f"[SKIP] API at {base} not reachable: {exc}")
        return True
    if data.get("status") != "ready":
        print(f"[FAIL] API at {base}: {data}")
        return False
    print(f"[OK] API at {base} serving {data.get('methods')} methods")
    return True


async def main() -> None:
    print("=" * 50)
    print("Method Graph — Setup Verification")
    print("=" * 50)

    results = await asyncio.gather(check_catalog(), check_api())

    print("=" * 50)
    print(f"Results: {sum(results)}/{len(results)} checks passed")
    if not all(results):
        sys.exit(1)
    print("All systems operational.")


if __name__ == "__main__":
    asyncio.run(main())
