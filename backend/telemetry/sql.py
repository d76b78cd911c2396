from __future__ import annotations

CREATE_QUERY_LOG_SQL = """
CREATE TABLE IF NOT EXISTS viewport_queries (
  ts_ms BIGINT,
  mode TEXT,
  zoom INTEGER,
  page INTEGER,
  cache_hit BOOLEAN,
  requested_precision DOUBLE,
  applied_precision DOUBLE,
  items INTEGER,
  compute_ms DOUBLE,
  total_ms DOUBLE
);
"""

INSERT_QUERY_SQL = """
INSERT INTO viewport_queries
  (ts_ms, mode, zoom, page, cache_hit, requested_precision, applied_precision, items, compute_ms, total_ms)
VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
"""

# `coarsened` counts cluster queries where the guardrail had to step back.
MODE_SUMMARY_SQL = """
SELECT
  mode,
  COUNT(*) AS queries,
  AVG(CASE WHEN cache_hit THEN 1.0 ELSE 0.0 END) AS cache_hit_rate,
  COUNT(*) FILTER (WHERE applied_precision > requested_precision) AS coarsened,
  AVG(items) AS avg_items,
  AVG(compute_ms) FILTER (WHERE NOT cache_hit) AS avg_miss_compute_ms,
  quantile_cont(total_ms, 0.50) AS p50_total_ms,
  quantile_cont(total_ms, 0.95) AS p95_total_ms
FROM viewport_queries
{where_sql}
GROUP BY mode
ORDER BY mode
"""
