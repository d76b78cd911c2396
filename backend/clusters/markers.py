from __future__ import annotations

from typing import Any

from engine.types import PointSource
from geo.bbox import BoundingBox


def normalize_page(page: Any) -> int:
    """
    Numeric input becomes an int >= 1; anything else (None, "abc", "") becomes 1.
    """
    if isinstance(page, bool) or page is None:
        return 1
    if isinstance(page, int):
        return max(1, page)
    try:
        return max(1, int(float(str(page).strip())))
    except (TypeError, ValueError, OverflowError):
        return 1


def paginate_markers(
    source: PointSource,
    bounds: BoundingBox,
    *,
    page: int,
    per_page: int,
) -> dict:
    """
    One page of markers inside `bounds`, ordered by id.

    Fetches one extra row to know whether another page exists.
    """
    per_page = max(1, int(per_page))
    offset = (page - 1) * per_page
    rows = source.points_in_bounds(bounds, offset=offset, limit=per_page + 1)

    return {
        "mode": "markers",
        "items": [r.as_marker() for r in rows[:per_page]],
        "meta": {
            "page": page,
            "per_page": per_page,
            "has_more": len(rows) > per_page,
        },
    }
