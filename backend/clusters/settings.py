from __future__ import annotations

import math
import os
from functools import lru_cache
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field, field_validator, model_validator


DEFAULT_PRECISION_BY_ZOOM: dict[int, float] = {
    1: 1.00,
    2: 1.00,
    3: 0.75,
    4: 0.50,
    5: 0.25,
    6: 0.20,
    7: 0.10,
    8: 0.08,
    9: 0.05,
    10: 0.025,
    11: 0.015,
    12: 0.010,
}


def _repo_root() -> Path:
    # .../backend/clusters/settings.py -> repo root is 2 levels up
    return Path(__file__).resolve().parents[2]


def settings_path() -> Path:
    return Path(
        os.getenv("MAPCLUSTERS_CONFIG")
        or (_repo_root() / "config" / "map_clusters.yaml")
    )


def _is_number(v: Any) -> bool:
    if isinstance(v, bool):
        return False
    try:
        return math.isfinite(float(str(v).strip()))
    except (TypeError, ValueError):
        return False


class ClusterSettings(BaseModel):
    """
    Every tunable of the clusters engine.

    Built once at startup (see `load_settings`) and handed to the precision table and
    the query service; nothing looks options up by string key at call sites.
    """

    zoom_min: int = 1
    zoom_max: int = 18

    # Sparse zoom -> precision (degrees) breakpoints.
    precision_by_zoom: dict[int, float] = Field(
        default_factory=lambda: dict(DEFAULT_PRECISION_BY_ZOOM)
    )
    # Legacy name; only consulted when `precision_by_zoom` is empty.
    zoom_precision: dict[int, float] = Field(default_factory=dict)

    precision_default: float = 0.50
    precision_min: float = 0.005
    precision_max: float = 2.0

    markers_zoom_threshold: int = 12
    markers_per_page: int = Field(default=1000, ge=1)
    max_cluster_items: int = 3000

    cache_ttl_seconds: int = Field(default=60, ge=0)
    cache_max_items: int = Field(default=1024, ge=1)
    cache_single_flight: bool = False
    marker_bounds_decimals: int = Field(default=4, ge=0, le=10)

    # Warm the query cache from `clusters.warmup` even outside production.
    warmup: bool = False

    @field_validator("precision_by_zoom", "zoom_precision", mode="before")
    @classmethod
    def _drop_non_numeric(cls, v: Any) -> dict[int, float]:
        if not isinstance(v, dict):
            return {}
        out: dict[int, float] = {}
        for zoom, precision in v.items():
            if not _is_number(zoom) or not _is_number(precision):
                continue
            out[int(float(zoom))] = float(precision)
        return dict(sorted(out.items()))

    @model_validator(mode="after")
    def _fix_zoom_range(self) -> "ClusterSettings":
        if self.zoom_max < self.zoom_min:
            self.zoom_max = self.zoom_min
        return self

    def breakpoints(self) -> dict[int, float]:
        return dict(self.precision_by_zoom or self.zoom_precision)


def _load_yaml(path: Path) -> dict:
    raw = path.read_text(encoding="utf-8")
    data = yaml.safe_load(raw) or {}
    if not isinstance(data, dict):
        raise ValueError(f"Invalid clusters config root: {path}")
    return data


@lru_cache(maxsize=1)
def load_settings() -> ClusterSettings:
    path = settings_path()
    if not path.exists():
        return ClusterSettings()
    return ClusterSettings.model_validate(_load_yaml(path))


def clear_settings_cache() -> None:
    """
    Clear the memoized settings.

    Config YAML changes are otherwise not picked up until the backend process restarts.
    """
    load_settings.cache_clear()
