"""Disk-backed content cache for streamcache.

This package provides :class:`CacheStore`, a flat directory of cached
artifacts keyed by hashed strings, with caller-chosen freshness windows
and synchronous refill through a producer callable.  :class:`KeyedLocks`
serialises concurrent refills of the same key inside one process.
"""

from streamcache.cache.locks import KeyedLocks
from streamcache.cache.store import (
    CacheStore,
    RefillProducer,
    get_default_store,
    reset_default_store,
    resolve_cache_root,
)

__all__ = [
    "CacheStore",
    "KeyedLocks",
    "RefillProducer",
    "get_default_store",
    "reset_default_store",
    "resolve_cache_root",
]
