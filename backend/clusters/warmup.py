"""
Warm up the precision table and the viewport query cache.

    python -m clusters.warmup --zooms 3,6,9,12,15 --bbox 25.20,54.60,25.40,54.80 [--force]

Cluster queries are only issued with --force, in production (MAPCLUSTERS_ENV=production),
or when the `warmup` setting is on.
"""
from __future__ import annotations

import argparse
import os
import sys
import time
from typing import Callable

from api.clusters import get_query_service
from clusters.service import ClusterQueryService
from geo.bbox import BoundingBox

DEFAULT_ZOOMS = [3, 6, 9, 12, 15]
DEFAULT_BBOX = "25.20,54.60,25.40,54.80"


def parse_zoom_levels(value: str) -> list[int]:
    zooms: list[int] = []
    for part in (value or "").split(","):
        part = part.strip()
        if not part:
            continue
        try:
            z = max(0, int(float(part)))
        except (ValueError, OverflowError):
            continue
        if z not in zooms:
            zooms.append(z)
    return zooms or list(DEFAULT_ZOOMS)


def parse_bounding_box(value: str) -> BoundingBox:
    """`west,south,east,north`; anything malformed falls back to the default bbox."""
    parts = [p.strip() for p in (value or "").split(",")]
    if len(parts) != 4:
        parts = DEFAULT_BBOX.split(",")
    try:
        west, south, east, north = (float(p) for p in parts)
    except ValueError:
        west, south, east, north = (float(p) for p in DEFAULT_BBOX.split(","))
    return BoundingBox(north=north, south=south, east=east, west=west)


def _benchmark_ms(fn: Callable[[], None]) -> float:
    t0 = time.perf_counter()
    fn()
    return (time.perf_counter() - t0) * 1000.0


def _should_touch_clusters(service: ClusterQueryService, *, force: bool) -> bool:
    env = (os.getenv("MAPCLUSTERS_ENV") or "development").strip().lower()
    return force or env == "production" or bool(service.settings.warmup)


def run_warmup(
    service: ClusterQueryService,
    *,
    zooms: list[int],
    bbox: BoundingBox,
    force: bool = False,
) -> int:
    def prime_precision() -> None:
        for zoom in zooms:
            service.precision.precision_for_zoom(zoom)

    precision_ms = _benchmark_ms(prime_precision)
    print(
        f"Precision cache primed for zooms [{','.join(str(z) for z in zooms)}] "
        f"in {precision_ms:.1f} ms."
    )

    if not _should_touch_clusters(service, force=force):
        print("Skipping cluster warm-up (use --force to override outside production).")
        return 0

    def warm_clusters() -> None:
        for zoom in zooms:
            service.query(bbox, zoom)

    try:
        cluster_ms = _benchmark_ms(warm_clusters)
    except Exception as e:
        print(f"Cluster warm-up failed: {e}", file=sys.stderr)
        return 1

    print(
        f"Cluster cache warmed for bbox [{bbox.west},{bbox.south},{bbox.east},{bbox.north}] "
        f"in {cluster_ms:.1f} ms."
    )
    return 0


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Warm up map precision and cluster caches.")
    parser.add_argument(
        "--zooms",
        default=",".join(str(z) for z in DEFAULT_ZOOMS),
        help="Comma separated zoom levels to preheat",
    )
    parser.add_argument(
        "--bbox",
        default=DEFAULT_BBOX,
        help="Bounding box (west,south,east,north) for cluster warm-up",
    )
    parser.add_argument(
        "--force",
        action="store_true",
        help="Force cluster warm-up even outside production",
    )
    args = parser.parse_args(argv)

    return run_warmup(
        get_query_service(),
        zooms=parse_zoom_levels(args.zooms),
        bbox=parse_bounding_box(args.bbox),
        force=args.force,
    )


if __name__ == "__main__":
    raise SystemExit(main())
