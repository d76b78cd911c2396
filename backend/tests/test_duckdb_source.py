from __future__ import annotations

from cache.memory import MemoryCache
from clusters.service import ClusterQueryService
from clusters.settings import ClusterSettings
from engine.duckdb import DuckDBPointSource
from engine.types import PointRow
from geo.bbox import BoundingBox

BOX = BoundingBox(north=55.0, south=54.0, east=26.0, west=24.0)


def _source(tmp_path) -> DuckDBPointSource:
    return DuckDBPointSource(path=str(tmp_path / "points.duckdb"), threads=1)


def test_schema_and_insert_roundtrip(tmp_path):
    src = _source(tmp_path)
    assert src.count() == 0
    n = src.insert_points(
        [
            PointRow(id=2, lat=54.5, lon=25.0, short_label=None, full_label="Pilies g. 2"),
            PointRow(id=1, lat=54.6, lon=25.1, short_label="Gedimino 1", full_label="Gedimino pr. 1"),
        ]
    )
    assert n == 2
    assert src.count() == 2

    rows = src.points_in_bounds(BOX)
    assert [r.id for r in rows] == [1, 2]
    assert rows[0].title == "Gedimino 1"
    assert rows[1].title == "Pilies g. 2"


def test_bbox_filter_is_inclusive(tmp_path):
    src = _source(tmp_path)
    src.insert_points(
        [
            PointRow(id=1, lat=54.5, lon=25.0),
            PointRow(id=2, lat=53.9, lon=25.0),
            PointRow(id=3, lat=54.5, lon=26.5),
            PointRow(id=4, lat=55.0, lon=24.0),
        ]
    )
    assert [r.id for r in src.points_in_bounds(BOX)] == [1, 4]


def test_limit_offset_paginates_by_id(tmp_path):
    src = _source(tmp_path)
    src.insert_points(PointRow(id=i, lat=54.5, lon=25.0) for i in range(30, 0, -1))

    assert [r.id for r in src.points_in_bounds(BOX, offset=0, limit=5)] == [1, 2, 3, 4, 5]
    assert [r.id for r in src.points_in_bounds(BOX, offset=25, limit=10)] == [26, 27, 28, 29, 30]
    assert [r.id for r in src.points_in_bounds(BOX, offset=28)] == [29, 30]


def test_insert_replaces_existing_ids(tmp_path):
    src = _source(tmp_path)
    src.insert_points([PointRow(id=1, lat=54.5, lon=25.0, short_label="old")])
    src.insert_points([PointRow(id=1, lat=54.5, lon=25.0, short_label="new")])
    assert src.count() == 1
    assert src.points_in_bounds(BOX)[0].short_label == "new"


def test_query_service_over_duckdb(tmp_path):
    src = _source(tmp_path)
    src.insert_points(
        PointRow(id=i + 1, lat=54.6 + (i % 30) * 0.01, lon=25.0 + (i // 30) * 0.01) for i in range(1200)
    )
    service = ClusterQueryService(ClusterSettings(), source=src, cache=MemoryCache())

    page1 = service.query(BOX, 14, page=1)
    page2 = service.query(BOX, 14, page=2)
    assert len(page1["items"]) == 1000
    assert page1["meta"]["has_more"] is True
    assert len(page2["items"]) == 200
    assert page2["meta"]["has_more"] is False
    ids = [i["id"] for i in page1["items"] + page2["items"]]
    assert ids == list(range(1, 1201))

    clusters = service.query(BOX, 6)
    assert clusters["mode"] == "cluster"
    assert clusters["meta"]["count"] == 1200


def test_page_far_past_the_end_is_empty(tmp_path):
    src = _source(tmp_path)
    src.insert_points(PointRow(id=i + 1, lat=54.5, lon=25.0) for i in range(3))
    service = ClusterQueryService(ClusterSettings(), source=src, cache=MemoryCache())

    payload = service.query(BOX, 14, page="99999999999999999999")
    assert payload["items"] == []
    assert payload["meta"]["has_more"] is False
    assert src.points_in_bounds(BOX, offset=2**62, limit=10) == []
