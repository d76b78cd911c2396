from __future__ import annotations

import os
import threading
from pathlib import Path
from typing import Iterable

import duckdb

from engine.types import PointRow, PointSource
from geo.bbox import BoundingBox

# DuckDB rejects LIMIT/OFFSET values at or above 2**62.
_MAX_ROW_WINDOW = 2**62

CREATE_POINTS_TABLE_SQL = """
CREATE TABLE IF NOT EXISTS points (
  id BIGINT PRIMARY KEY,
  lat DOUBLE NOT NULL,
  lon DOUBLE NOT NULL,
  short_label TEXT,
  full_label TEXT
);
"""


class DuckDBPointSource(PointSource):
    """
    DuckDB-backed point source.

    One `points` table; bbox filtering happens in SQL and pagination uses
    ORDER BY id + LIMIT/OFFSET so pages are deterministic.
    """

    def __init__(self, *, path: str | None = None, threads: int | None = None):
        self.path = path or default_duckdb_path()
        self.threads = threads or duckdb_threads()
        self._init_lock = threading.RLock()
        self._initialized = False
        self._local = threading.local()

    def ensure_schema(self) -> None:
        if self._initialized:
            return
        with self._init_lock:
            if self._initialized:
                return
            conn = self._conn()
            conn.execute(CREATE_POINTS_TABLE_SQL)
            self._initialized = True

    def _conn(self) -> duckdb.DuckDBPyConnection:
        c = getattr(self._local, "conn", None)
        if c is None:
            c = _connect(self.path, threads=self.threads)
            self._local.conn = c
        return c

    def close(self) -> None:
        c = getattr(self._local, "conn", None)
        if c is not None:
            c.close()
            self._local.conn = None

    def insert_points(self, points: Iterable[PointRow]) -> int:
        self.ensure_schema()
        rows = [(int(p.id), float(p.lat), float(p.lon), p.short_label, p.full_label) for p in points]
        if rows:
            self._conn().executemany(
                "INSERT OR REPLACE INTO points VALUES (?, ?, ?, ?, ?)", rows
            )
        return len(rows)

    def count(self) -> int:
        self.ensure_schema()
        row = self._conn().execute("SELECT COUNT(*) FROM points").fetchone()
        return int(row[0] or 0) if row else 0

    def points_in_bounds(
        self,
        bounds: BoundingBox,
        *,
        offset: int = 0,
        limit: int | None = None,
    ) -> list[PointRow]:
        self.ensure_schema()
        params: list[object] = [
            float(bounds.south),
            float(bounds.north),
            float(bounds.west),
            float(bounds.east),
        ]
        offset = max(0, int(offset))
        if limit is not None:
            limit = max(0, int(limit))
        if offset + (limit or 0) >= _MAX_ROW_WINDOW:
            return []
        page_sql = ""
        if limit is not None:
            page_sql += f" LIMIT {limit}"
        if offset:
            page_sql += f" OFFSET {offset}"

        rows = self._conn().execute(
            f"""
            SELECT id, lat, lon, short_label, full_label
              FROM points
             WHERE lat BETWEEN ? AND ?
               AND lon BETWEEN ? AND ?
             ORDER BY id{page_sql}
            """,
            params,
        ).fetchall()
        return [
            PointRow(
                id=int(fid),
                lat=float(lat),
                lon=float(lon),
                short_label=None if short is None else str(short),
                full_label=None if full is None else str(full),
            )
            for fid, lat, lon, short, full in rows
        ]


def default_duckdb_path() -> str:
    env_path = (os.getenv("MAPCLUSTERS_DUCKDB_PATH") or "").strip()
    if env_path:
        return env_path
    return str(Path("data") / "duckdb" / "points.duckdb")


def duckdb_threads() -> int:
    raw = (os.getenv("MAPCLUSTERS_DUCKDB_THREADS") or "").strip()
    if raw:
        try:
            return max(1, int(raw))
        except ValueError:
            pass
    return max(1, int(os.cpu_count() or 1))


def _connect(path: str, *, threads: int) -> duckdb.DuckDBPyConnection:
    p = Path(path)
    if p.parent and str(p.parent) not in {".", ""}:
        p.parent.mkdir(parents=True, exist_ok=True)
    return duckdb.connect(database=str(p), read_only=False, config={"threads": int(threads)})
