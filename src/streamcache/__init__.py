"""streamcache -- a disk-backed content cache with freshness windows and refill.

Every key is stored as one file, named by the hex digest of the key, in a
single cache root directory.  Callers pass a freshness window on each
lookup; when the stored file is missing or older than that, a
caller-supplied producer is asked for new content, which is written to
disk before a handle to it is returned.

Typical usage::

    from streamcache import CacheStore, FreshnessWindow
    from streamcache.producers import url_producer

    store = CacheStore()
    handle = store.get(
        "feed", FreshnessWindow.of(10, "minutes"), url_producer("https://example.com/feed")
    )

Modules:
    cache: :class:`CacheStore` and per-key refill locks.
    hashing: Key-to-file-name hashing.
    streams: Chunked byte copying.
    producers: Ready-made refill producers (bytes, file, HTTP).
    models: Pydantic models for configuration and freshness windows.
    config: XDG-aware configuration and cache directory resolution.
    exceptions: Exception hierarchy with exit-code mapping.
    app: Typer command-line interface.
"""

from streamcache.cache import CacheStore, get_default_store
from streamcache.models import FreshnessWindow, TimeUnit, WriteFailurePolicy

__version__ = "0.1.0"

__all__ = [
    "CacheStore",
    "FreshnessWindow",
    "TimeUnit",
    "WriteFailurePolicy",
    "get_default_store",
]
