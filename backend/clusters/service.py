from __future__ import annotations

import logging
import time
from typing import Any

from cache.memory import CacheStore
from clusters.coarsen import build_cluster_payload
from clusters.keys import cache_key
from clusters.markers import normalize_page, paginate_markers
from clusters.precision import PrecisionTableHolder
from clusters.settings import ClusterSettings
from engine.types import PointSource
from geo.bbox import BoundingBox, snap_decimals

logger = logging.getLogger(__name__)


class ClusterQueryService:
    """
    Single entry point for viewport queries.

    Picks cluster or marker mode from the zoom alone, builds a cache key from the rounded
    viewport, and only reaches the point source on a cache miss.
    """

    def __init__(
        self,
        settings: ClusterSettings,
        *,
        source: PointSource,
        cache: CacheStore,
        precision: PrecisionTableHolder | None = None,
    ):
        self.settings = settings
        self.source = source
        self.cache = cache
        self.precision = precision or PrecisionTableHolder(settings)

    def mode_for_zoom(self, zoom: int) -> str:
        return "markers" if zoom >= self.settings.markers_zoom_threshold else "cluster"

    def query(self, bounds: BoundingBox, zoom: int, page: Any = 1) -> dict:
        payload, _stats = self.query_with_stats(bounds, zoom, page)
        return payload

    def query_with_stats(
        self, bounds: BoundingBox, zoom: int, page: Any = 1
    ) -> tuple[dict, dict[str, Any]]:
        """
        Same as `query`, plus request stats (mode, cache key, hit/miss, timings) for telemetry.
        """
        t0 = time.perf_counter()
        bounds.validate()
        zoom = self.precision.table.clamp_zoom(zoom)

        if self.mode_for_zoom(zoom) == "markers":
            payload, stats = self._markers(bounds, zoom, page)
        else:
            payload, stats = self._clusters(bounds, zoom)

        stats["timingsMs"]["total"] = round((time.perf_counter() - t0) * 1000.0, 2)
        return payload, stats

    def _clusters(self, bounds: BoundingBox, zoom: int) -> tuple[dict, dict[str, Any]]:
        precision = self.precision.precision_for_zoom(zoom)
        rounded = bounds.rounded(snap_decimals(precision))
        key = cache_key("cluster", zoom, rounded, precision=precision)
        levels = self.precision.table.levels

        def compute() -> dict:
            # Query the exact viewport; rounding only stabilizes the key.
            points = self.source.points_in_bounds(bounds)
            return build_cluster_payload(
                points,
                precision,
                levels=levels,
                max_items=int(self.settings.max_cluster_items),
            )

        payload, hit, compute_ms = self._remember(key, compute)
        return payload, {
            "mode": "cluster",
            "zoom": zoom,
            "cacheKey": key,
            "cacheHit": hit,
            "requestedPrecision": precision,
            "appliedPrecision": payload["meta"]["precision"],
            "timingsMs": {"compute": compute_ms},
        }

    def _markers(
        self, bounds: BoundingBox, zoom: int, page: Any
    ) -> tuple[dict, dict[str, Any]]:
        page_number = normalize_page(page)
        rounded = bounds.rounded(int(self.settings.marker_bounds_decimals))
        key = cache_key("markers", zoom, rounded, page=page_number)

        def compute() -> dict:
            return paginate_markers(
                self.source,
                bounds,
                page=page_number,
                per_page=int(self.settings.markers_per_page),
            )

        payload, hit, compute_ms = self._remember(key, compute)
        return payload, {
            "mode": "markers",
            "zoom": zoom,
            "cacheKey": key,
            "cacheHit": hit,
            "page": page_number,
            "timingsMs": {"compute": compute_ms},
        }

    def _remember(self, key: str, compute) -> tuple[dict, bool, float | None]:
        computed: dict[str, float] = {}

        def timed() -> dict:
            t = time.perf_counter()
            value = compute()
            computed["ms"] = round((time.perf_counter() - t) * 1000.0, 2)
            return value

        payload = self.cache.remember(key, int(self.settings.cache_ttl_seconds), timed)
        hit = "ms" not in computed
        logger.debug(f"clusters cache {'hit' if hit else 'miss'}: {key}")
        return payload, hit, computed.get("ms")
