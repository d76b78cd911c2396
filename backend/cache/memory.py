from __future__ import annotations

import threading
import time
from dataclasses import dataclass, field
from typing import Any, Callable, Protocol, TypeVar

V = TypeVar("V")

_MISSING = object()


class CacheStore(Protocol):
    """
    Key-value cache with TTL and get-or-compute.

    The engine only reads/writes through `remember`; there is no explicit invalidation.
    """

    def get(self, key: str, default: Any = None) -> Any: ...

    def put(self, key: str, value: Any, ttl_seconds: int) -> None: ...

    def remember(self, key: str, ttl_seconds: int, compute: Callable[[], V]) -> V: ...

    def clear(self) -> None: ...


@dataclass
class MemoryCache:
    """
    In-process TTL cache.

    Entries expire lazily on read. Size is bounded: inserting past `max_items` evicts the
    oldest insertion. With `single_flight=True`, concurrent misses on the same key compute
    once; otherwise they may compute redundantly and the last write wins.
    """

    max_items: int = 1024
    single_flight: bool = False
    clock: Callable[[], float] = time.monotonic
    _entries: dict[str, tuple[float, Any]] = field(default_factory=dict, repr=False)
    _lock: threading.RLock = field(default_factory=threading.RLock, repr=False)
    _key_locks: dict[str, threading.Lock] = field(default_factory=dict, repr=False)

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def get(self, key: str, default: Any = None) -> Any:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return default
            expires_at, value = entry
            if expires_at <= self.clock():
                self._entries.pop(key, None)
                return default
            return value

    def put(self, key: str, value: Any, ttl_seconds: int) -> None:
        if ttl_seconds <= 0:
            return
        with self._lock:
            # Re-insert so eviction order follows the latest write.
            self._entries.pop(key, None)
            self._entries[key] = (self.clock() + float(ttl_seconds), value)
            while len(self._entries) > self.max_items:
                oldest = next(iter(self._entries))
                self._entries.pop(oldest, None)

    def remember(self, key: str, ttl_seconds: int, compute: Callable[[], V]) -> V:
        cached = self.get(key, _MISSING)
        if cached is not _MISSING:
            return cached
        if not self.single_flight:
            value = compute()
            self.put(key, value, ttl_seconds)
            return value

        lock = self._key_lock(key)
        try:
            with lock:
                cached = self.get(key, _MISSING)
                if cached is not _MISSING:
                    return cached
                value = compute()
                self.put(key, value, ttl_seconds)
                return value
        finally:
            with self._lock:
                if self._key_locks.get(key) is lock:
                    self._key_locks.pop(key, None)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()
            self._key_locks.clear()

    def _key_lock(self, key: str) -> threading.Lock:
        with self._lock:
            lock = self._key_locks.get(key)
            if lock is None:
                lock = threading.Lock()
                self._key_locks[key] = lock
            return lock
