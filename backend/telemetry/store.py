from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import duckdb

from telemetry.sql import CREATE_QUERY_LOG_SQL, INSERT_QUERY_SQL, MODE_SUMMARY_SQL

logger = logging.getLogger(__name__)


def _opt_float(v: Any) -> float | None:
    return None if v is None else float(v)


@dataclass
class QueryLog:
    """
    Per-query record of what the clusters engine did: mode, cache hit, requested vs applied
    precision, payload size and timings.

    Rows are buffered and written in batches of `batch_size`; `flush()` writes the rest.
    Write failures are logged and the batch is dropped.
    """

    path: Path
    conn: duckdb.DuckDBPyConnection
    batch_size: int = 100
    _pending: list[tuple] = field(default_factory=list, repr=False)
    _lock: threading.RLock = field(default_factory=threading.RLock, repr=False)

    @classmethod
    def open(cls, path: Path, *, batch_size: int = 100) -> "QueryLog":
        path.parent.mkdir(parents=True, exist_ok=True)
        conn = duckdb.connect(str(path))
        conn.execute(CREATE_QUERY_LOG_SQL)
        return cls(path=path, conn=conn, batch_size=max(1, int(batch_size)))

    def __len__(self) -> int:
        with self._lock:
            return len(self._pending)

    def record(self, stats: dict[str, Any], *, items: int) -> None:
        """Buffer one row built from `ClusterQueryService.query_with_stats` stats."""
        timings = stats.get("timingsMs") or {}
        row = (
            int(time.time() * 1000),
            str(stats["mode"]),
            int(stats["zoom"]),
            stats.get("page"),
            bool(stats["cacheHit"]),
            _opt_float(stats.get("requestedPrecision")),
            _opt_float(stats.get("appliedPrecision")),
            int(items),
            _opt_float(timings.get("compute")),
            _opt_float(timings.get("total")),
        )
        with self._lock:
            self._pending.append(row)
            if len(self._pending) >= self.batch_size:
                self._write_pending()

    def flush(self) -> None:
        with self._lock:
            self._write_pending()

    def summary(self, *, mode: str | None = None, since_ms: int | None = None) -> list[dict[str, Any]]:
        where: list[str] = []
        params: list[Any] = []
        if mode:
            where.append("mode = ?")
            params.append(mode)
        if since_ms is not None:
            where.append("ts_ms >= ?")
            params.append(int(since_ms))
        where_sql = f"WHERE {' AND '.join(where)}" if where else ""

        with self._lock:
            self._write_pending()
            rows = self.conn.execute(MODE_SUMMARY_SQL.format(where_sql=where_sql), params).fetchall()

        return [
            {
                "mode": mode_v,
                "queries": int(n),
                "cacheHitRate": _opt_float(hit_rate),
                "coarsened": int(coarsened or 0),
                "avgItems": _opt_float(avg_items),
                "avgMissComputeMs": _opt_float(miss_ms),
                "p50TotalMs": _opt_float(p50),
                "p95TotalMs": _opt_float(p95),
            }
            for mode_v, n, hit_rate, coarsened, avg_items, miss_ms, p50, p95 in rows
        ]

    def close(self, *, delete: bool = False) -> None:
        with self._lock:
            self._write_pending()
            self.conn.close()
            if delete:
                self.path.unlink(missing_ok=True)

    def _write_pending(self) -> None:
        if not self._pending:
            return
        batch, self._pending = self._pending, []
        try:
            self.conn.executemany(INSERT_QUERY_SQL, batch)
        except duckdb.Error as exc:
            logger.warning(f"Dropping {len(batch)} query log rows: {exc}")
