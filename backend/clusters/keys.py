from __future__ import annotations

from geo.bbox import BoundingBox


def _num(value: float) -> str:
    # Fixed 6-place formatting with trailing zeros stripped: 54.600000 -> "54.6", -0.0 -> "0".
    s = f"{float(value) + 0.0:.6f}".rstrip("0").rstrip(".")
    return "0" if s in {"-0", ""} else s


def cache_key(
    mode: str,
    zoom: int,
    bounds: BoundingBox,
    *,
    precision: float | None = None,
    page: int = 0,
) -> str:
    """
    Deterministic cache key for a viewport query.

    `bounds` must already be rounded; the key is only as stable as its inputs.
    """
    parts = [
        "clusters",
        mode,
        f"z{int(zoom)}",
        f"n{_num(bounds.north)}",
        f"s{_num(bounds.south)}",
        f"e{_num(bounds.east)}",
        f"w{_num(bounds.west)}",
    ]
    if precision is not None:
        parts.append(f"p{_num(precision)}")
    if page > 0:
        parts.append(f"page{int(page)}")
    return ":".join(parts)
