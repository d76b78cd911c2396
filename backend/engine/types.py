from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol

from geo.bbox import BoundingBox


@dataclass(frozen=True)
class PointRow:
    """
    A point as returned by a point source.

    Cluster mode only reads lat/lon; marker mode also needs the labels and a stable id.
    """

    id: int
    lat: float
    lon: float
    short_label: str | None = None
    full_label: str | None = None

    @property
    def title(self) -> str | None:
        return self.short_label if self.short_label is not None else self.full_label

    def as_marker(self) -> dict[str, object]:
        return {
            "id": self.id,
            "lat": float(self.lat),
            "lon": float(self.lon),
            "title": self.title,
        }


class PointSource(Protocol):
    """
    Read-only bounding-box point query.

    - InMemoryPointSource: filters a preloaded list (tests, demos)
    - DuckDBPointSource: queries a `points` table by bbox
    """

    def points_in_bounds(
        self,
        bounds: BoundingBox,
        *,
        offset: int = 0,
        limit: int | None = None,
    ) -> list[PointRow]:
        """Points inside `bounds` (inclusive), ordered by id ascending."""
        ...
