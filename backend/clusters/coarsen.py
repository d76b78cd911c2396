from __future__ import annotations

import logging
from typing import Iterable, Sequence

from clusters.grid import aggregate
from engine.types import PointRow

logger = logging.getLogger(__name__)


def next_coarser_precision(precision: float, levels: Sequence[float]) -> float:
    """
    Next larger precision among the configured levels.

    `precision` joins the level set if it is not already one of them. Returns `precision`
    unchanged when it is already the coarsest level.
    """
    candidates = sorted({float(v) for v in levels} | {float(precision)})
    i = candidates.index(float(precision))
    if i + 1 < len(candidates):
        return candidates[i + 1]
    return float(precision)


def build_cluster_payload(
    points: Iterable[PointRow],
    start_precision: float,
    *,
    levels: Sequence[float],
    max_items: int,
) -> dict:
    """
    Aggregate points into grid clusters, coarsening until the guardrail holds.

    Each step strictly grows the precision, so the loop ends either under `max_items`
    or at the coarsest level. `max_items <= 0` disables the guardrail.
    """
    points = list(points)
    precision = float(start_precision)
    cells, total = aggregate(points, precision)

    coarsened = False
    while max_items > 0 and len(cells) > max_items:
        next_precision = next_coarser_precision(precision, levels)
        if next_precision == precision:
            break
        precision = next_precision
        cells, total = aggregate(points, precision)
        coarsened = True

    if coarsened:
        logger.warning(
            f"Cluster precision stepped back: target={start_precision} "
            f"applied={precision} clusters={len(cells)} max={max_items}"
        )

    return {
        "mode": "cluster",
        "items": [c.as_item() for c in cells],
        "meta": {
            "precision": precision,
            "count": total,
        },
    }
