from __future__ import annotations

import os
import threading
from pathlib import Path

from telemetry.store import QueryLog

_LOG: QueryLog | None = None
_LOG_LOCK = threading.Lock()


def query_log_path() -> Path:
    raw = (os.getenv("MAPCLUSTERS_TELEMETRY_PATH") or "").strip()
    if raw:
        return Path(raw)
    return Path(__file__).resolve().parents[2] / "data" / "telemetry" / "queries.duckdb"


def query_log_enabled() -> bool:
    return (os.getenv("MAPCLUSTERS_TELEMETRY") or "1").strip().lower() not in {"0", "false", "no", "off"}


def get_query_log() -> QueryLog | None:
    """Process-wide query log, or None when `MAPCLUSTERS_TELEMETRY` switches it off."""
    global _LOG
    if not query_log_enabled():
        return None
    path = query_log_path()
    with _LOG_LOCK:
        if _LOG is not None and _LOG.path.resolve() != path.resolve():
            _LOG.close()
            _LOG = None
        if _LOG is None:
            _LOG = QueryLog.open(path)
        return _LOG


def close_query_log(*, delete: bool = False) -> None:
    global _LOG
    with _LOG_LOCK:
        if _LOG is not None:
            _LOG.close(delete=delete)
            _LOG = None
