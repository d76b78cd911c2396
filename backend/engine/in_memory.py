from __future__ import annotations

import json
from pathlib import Path
from typing import Iterable

from engine.types import PointRow, PointSource
from geo.bbox import BoundingBox


class InMemoryPointSource(PointSource):
    """
    Holds points in memory (sorted by id once) and slices them by bbox per request.
    """

    def __init__(self, points: Iterable[PointRow] = ()):
        self._points: list[PointRow] = sorted(points, key=lambda p: p.id)

    def __len__(self) -> int:
        return len(self._points)

    def points_in_bounds(
        self,
        bounds: BoundingBox,
        *,
        offset: int = 0,
        limit: int | None = None,
    ) -> list[PointRow]:
        matched = [p for p in self._points if bounds.contains(p.lat, p.lon)]
        start = max(0, int(offset))
        if limit is None:
            return matched[start:]
        return matched[start : start + max(0, int(limit))]


def load_points_json(path: Path) -> list[PointRow]:
    """
    Load `[{"id": 1, "lat": .., "lon": .., "short_label": .., "full_label": ..}, ...]`.
    """
    data = json.loads(path.read_text(encoding="utf-8")) or []
    if not isinstance(data, list):
        raise ValueError(f"Invalid points file root: {path}")
    out: list[PointRow] = []
    for row in data:
        out.append(
            PointRow(
                id=int(row["id"]),
                lat=float(row["lat"]),
                lon=float(row["lon"]),
                short_label=row.get("short_label"),
                full_label=row.get("full_label"),
            )
        )
    return out
