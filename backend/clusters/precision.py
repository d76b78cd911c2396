from __future__ import annotations

import threading
from dataclasses import dataclass

from clusters.settings import ClusterSettings


@dataclass(frozen=True)
class PrecisionTable:
    """
    Dense zoom -> precision (degrees) lookup built from sparse breakpoints.

    Invariants:
    - precision_for_zoom(z + 1) <= precision_for_zoom(z)
    - every value is within [precision_min, precision_max]
    """

    zoom_min: int
    zoom_max: int
    values: tuple[float, ...]
    # Distinct sorted breakpoint values; the coarsener steps through these.
    levels: tuple[float, ...]

    @classmethod
    def build(cls, settings: ClusterSettings) -> "PrecisionTable":
        defined = settings.breakpoints()
        zoom_min = int(settings.zoom_min)
        zoom_max = max(zoom_min, int(settings.zoom_max))

        # Pass 1: carry the last defined precision forward over gaps.
        last = float(defined.get(zoom_min, settings.precision_default))
        filled: list[float] = []
        for z in range(zoom_min, zoom_max + 1):
            if z in defined:
                last = float(defined[z])
            filled.append(last)

        # Pass 2: force non-increasing as zoom grows.
        for i in range(1, len(filled)):
            if filled[i] > filled[i - 1]:
                filled[i] = filled[i - 1]

        lo = float(settings.precision_min)
        hi = float(settings.precision_max)
        values = tuple(max(lo, min(hi, v)) for v in filled)

        levels = tuple(sorted({float(v) for v in defined.values()}))
        return cls(zoom_min=zoom_min, zoom_max=zoom_max, values=values, levels=levels)

    def clamp_zoom(self, zoom: int) -> int:
        return max(self.zoom_min, min(self.zoom_max, int(zoom)))

    def precision_for_zoom(self, zoom: int) -> float:
        return self.values[self.clamp_zoom(zoom) - self.zoom_min]

    def as_dict(self) -> dict[int, float]:
        return {self.zoom_min + i: v for i, v in enumerate(self.values)}


class PrecisionTableHolder:
    """
    Shares one PrecisionTable by reference.

    Readers grab `.table` without locking: the table is immutable and the reference is
    swapped in a single assignment, so a reader sees either the old or the new table.
    `rebuild()` is serialized behind a lock.
    """

    def __init__(self, settings: ClusterSettings):
        self._settings = settings
        self._lock = threading.RLock()
        self._table = PrecisionTable.build(settings)

    @property
    def table(self) -> PrecisionTable:
        return self._table

    @property
    def settings(self) -> ClusterSettings:
        return self._settings

    def precision_for_zoom(self, zoom: int) -> float:
        return self._table.precision_for_zoom(zoom)

    def rebuild(self, settings: ClusterSettings | None = None) -> PrecisionTable:
        with self._lock:
            if settings is not None:
                self._settings = settings
            table = PrecisionTable.build(self._settings)
            self._table = table
            return table
