from __future__ import annotations

import random

import pytest

from clusters.markers import normalize_page, paginate_markers
from engine.in_memory import InMemoryPointSource
from engine.types import PointRow
from geo.bbox import BoundingBox

BOX = BoundingBox(north=55.0, south=54.0, east=26.0, west=24.0)


def _dense_source(n: int, *, seed: int = 1) -> InMemoryPointSource:
    rnd = random.Random(seed)
    ids = list(range(1, n + 1))
    rnd.shuffle(ids)  # source must order by id regardless of insertion order
    return InMemoryPointSource(
        PointRow(
            id=i,
            lat=rnd.uniform(54.60, 54.90),
            lon=rnd.uniform(25.00, 25.40),
            short_label=f"Street {i}",
            full_label=f"Street {i}, Vilnius",
        )
        for i in ids
    )


@pytest.mark.parametrize(
    "raw,expected",
    [(None, 1), ("", 1), ("abc", 1), (0, 1), (-3, 1), ("0", 1), ("2", 2), (3, 3), ("4.7", 4), (True, 1)],
)
def test_normalize_page(raw, expected):
    assert normalize_page(raw) == expected


def test_first_and_last_page_of_1200_points():
    source = _dense_source(1200)
    first = paginate_markers(source, BOX, page=1, per_page=1000)
    second = paginate_markers(source, BOX, page=2, per_page=1000)

    assert first["mode"] == "markers"
    assert len(first["items"]) == 1000
    assert first["meta"] == {"page": 1, "per_page": 1000, "has_more": True}
    assert len(second["items"]) == 200
    assert second["meta"] == {"page": 2, "per_page": 1000, "has_more": False}


def test_pages_concatenate_to_full_set_in_id_order():
    source = _dense_source(257, seed=3)
    seen: list[int] = []
    page = 1
    while True:
        payload = paginate_markers(source, BOX, page=page, per_page=50)
        seen.extend(item["id"] for item in payload["items"])
        if not payload["meta"]["has_more"]:
            break
        page += 1

    assert page == 6
    assert seen == list(range(1, 258))


def test_exact_multiple_of_page_size_has_no_phantom_page():
    source = _dense_source(100)
    payload = paginate_markers(source, BOX, page=2, per_page=50)
    assert len(payload["items"]) == 50
    assert payload["meta"]["has_more"] is False


def test_empty_result_set():
    payload = paginate_markers(InMemoryPointSource(), BOX, page=1, per_page=1000)
    assert payload == {
        "mode": "markers",
        "items": [],
        "meta": {"page": 1, "per_page": 1000, "has_more": False},
    }


def test_title_prefers_short_label():
    source = InMemoryPointSource(
        [
            PointRow(id=1, lat=54.5, lon=25.0, short_label="Gedimino 1", full_label="Gedimino pr. 1, Vilnius"),
            PointRow(id=2, lat=54.5, lon=25.0, short_label=None, full_label="Pilies g. 2, Vilnius"),
            PointRow(id=3, lat=54.5, lon=25.0),
        ]
    )
    items = paginate_markers(source, BOX, page=1, per_page=10)["items"]
    assert items == [
        {"id": 1, "lat": 54.5, "lon": 25.0, "title": "Gedimino 1"},
        {"id": 2, "lat": 54.5, "lon": 25.0, "title": "Pilies g. 2, Vilnius"},
        {"id": 3, "lat": 54.5, "lon": 25.0, "title": None},
    ]


def test_points_outside_bounds_are_excluded():
    source = InMemoryPointSource(
        [
            PointRow(id=1, lat=54.5, lon=25.0),
            PointRow(id=2, lat=53.9, lon=25.0),
            PointRow(id=3, lat=54.5, lon=26.1),
            PointRow(id=4, lat=55.0, lon=24.0),  # edges are inclusive
        ]
    )
    items = paginate_markers(source, BOX, page=1, per_page=10)["items"]
    assert [i["id"] for i in items] == [1, 4]
