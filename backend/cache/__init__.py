"""
Response caches.

The query service talks to any `CacheStore`; `MemoryCache` is the in-process default.
"""
from cache.memory import CacheStore, MemoryCache

__all__ = ["CacheStore", "MemoryCache"]
