from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable

from engine.types import PointRow
from geo.bbox import snap_decimals


@dataclass(frozen=True)
class ClusterCell:
    lat: float
    lon: float
    count: int

    @property
    def key(self) -> str:
        return f"{self.lat}:{self.lon}"

    def as_item(self) -> dict[str, float | int]:
        return {"lat": self.lat, "lon": self.lon, "count": self.count}


def snap_value(value: float, precision: float, decimals: int) -> float:
    """
    Snap a coordinate to the nearest multiple of `precision`.

    precision <= 0 is a passthrough (no grid).
    """
    if precision <= 0:
        return float(value)
    snapped = round(round(float(value) / precision) * precision, decimals)
    # Normalize -0.0 so both sides of the equator/meridian share one cell key.
    return snapped + 0.0


def aggregate(points: Iterable[PointRow], precision: float) -> tuple[list[ClusterCell], int]:
    """
    Count points per grid cell at `precision`.

    Returns (cells, total) with cells sorted by count descending; ties keep first-seen order.
    """
    decimals = snap_decimals(precision)
    buckets: dict[tuple[float, float], int] = {}
    total = 0
    for p in points:
        key = (
            snap_value(p.lat, precision, decimals),
            snap_value(p.lon, precision, decimals),
        )
        buckets[key] = buckets.get(key, 0) + 1
        total += 1

    cells = [ClusterCell(lat=lat, lon=lon, count=count) for (lat, lon), count in buckets.items()]
    # Larger clusters first (the UI draws them on top).
    cells.sort(key=lambda c: c.count, reverse=True)
    return cells, total
