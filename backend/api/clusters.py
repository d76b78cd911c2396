from __future__ import annotations

import logging
import os
from functools import lru_cache
from pathlib import Path

from fastapi import APIRouter, Depends, HTTPException, Query

from cache.memory import MemoryCache
from clusters.service import ClusterQueryService
from clusters.settings import load_settings
from engine.duckdb import DuckDBPointSource
from engine.in_memory import InMemoryPointSource, load_points_json
from engine.types import PointSource
from geo.bbox import AntimeridianBoundsError, BoundingBox, InvalidBoundsError
from telemetry.singleton import get_query_log

logger = logging.getLogger(__name__)

router = APIRouter()


def _normalize_engine(name: str | None) -> str:
    n = (name or "in_memory").strip().lower()
    if n in {"duckdb", "in_memory"}:
        return n
    return "in_memory"


def _point_source(engine_name: str) -> PointSource:
    if engine_name == "duckdb":
        return DuckDBPointSource()
    raw = (os.getenv("MAPCLUSTERS_POINTS_PATH") or "").strip()
    return InMemoryPointSource(load_points_json(Path(raw)) if raw else ())


@lru_cache(maxsize=1)
def get_query_service() -> ClusterQueryService:
    settings = load_settings()
    engine_name = _normalize_engine(os.getenv("MAPCLUSTERS_ENGINE"))
    logger.info(f"Map clusters service using engine={engine_name}")
    return ClusterQueryService(
        settings,
        source=_point_source(engine_name),
        cache=MemoryCache(
            max_items=settings.cache_max_items,
            single_flight=settings.cache_single_flight,
        ),
    )


@router.get("/map/clusters")
def map_clusters(
    north: float = Query(...),
    south: float = Query(...),
    east: float = Query(...),
    west: float = Query(...),
    zoom: int = Query(..., ge=1, le=18),
    page: str | None = Query(None),
    service: ClusterQueryService = Depends(get_query_service),
):
    bounds = BoundingBox(north=north, south=south, east=east, west=west)
    try:
        bounds.validate()
    except InvalidBoundsError as e:
        raise HTTPException(status_code=422, detail=str(e)) from e
    except AntimeridianBoundsError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e

    payload, stats = service.query_with_stats(bounds, zoom, page if page is not None else 1)

    try:
        log = get_query_log()
        if log is not None:
            log.record(stats, items=len(payload["items"]))
    except Exception as e:
        logger.warning(f"Query log record failed: {e}")

    return payload


@router.get("/telemetry/summary")
def telemetry_summary(mode: str | None = None, since_ms: int | None = None):
    log = get_query_log()
    if log is None:
        return {"enabled": False, "rows": []}
    return {"enabled": True, "rows": log.summary(mode=mode, since_ms=since_ms)}
