from __future__ import annotations

import math
from dataclasses import dataclass


class BoundsError(ValueError):
    """Base class for bounding boxes the engine refuses to query."""


class InvalidBoundsError(BoundsError):
    """Degenerate rectangle (non-finite edge, zero or negative height, zero width)."""


class AntimeridianBoundsError(BoundsError):
    """Box crosses the antimeridian (east < west); not supported."""


@dataclass(frozen=True)
class BoundingBox:
    """
    WGS84 viewport in degrees.

    Convention used throughout this repo:
    - north/south are latitudes, east/west are longitudes
    - east >= west (antimeridian-crossing boxes are rejected)
    """

    north: float
    south: float
    east: float
    west: float

    def validate(self) -> "BoundingBox":
        if not all(math.isfinite(v) for v in (self.north, self.south, self.east, self.west)):
            raise InvalidBoundsError("Invalid bounds rectangle.")
        if self.north <= self.south or self.east == self.west:
            raise InvalidBoundsError("Invalid bounds rectangle.")
        if self.east < self.west:
            raise AntimeridianBoundsError("Antimeridian crossing is not supported.")
        return self

    def rounded(self, decimals: int) -> "BoundingBox":
        """
        Round every edge so sub-pixel panning maps to the same cache key.

        decimals=4 is ~11m-ish in latitude, which is good enough for interactive viewport caching.
        """
        d = int(decimals)
        return BoundingBox(
            north=round(float(self.north), d),
            south=round(float(self.south), d),
            east=round(float(self.east), d),
            west=round(float(self.west), d),
        )

    def contains(self, lat: float, lon: float) -> bool:
        return self.south <= lat <= self.north and self.west <= lon <= self.east

    def as_dict(self) -> dict[str, float]:
        return {
            "north": float(self.north),
            "south": float(self.south),
            "east": float(self.east),
            "west": float(self.west),
        }


def decimal_places(value: float) -> int:
    """
    Significant decimals of `value` at 6-place resolution.

    0.25 -> 2, 1.0 -> 0, 0.005 -> 3.
    """
    formatted = f"{float(value):.6f}".rstrip("0").rstrip(".")
    if "." in formatted:
        return len(formatted.split(".", 1)[1])
    return 0


def snap_decimals(precision: float) -> int:
    # One extra place to resolve the grid, capped at 6.
    return min(6, decimal_places(precision) + 1)
