"""Disk-backed content cache with freshness windows and synchronous refill.

Each key maps to exactly one file, ``<cache root>/<hex digest of key>``.
There is no index and no metadata sidecar: a file's existence and its
modification time are the only state.  A lookup compares the file's age
against the caller's :class:`~streamcache.models.FreshnessWindow`; when the
entry is missing or too old the caller's refill producer is asked for new
content, which is written to a temp file and atomically renamed into
place before a handle to it is returned.

All operations block on the calling thread, including the producer.

See Also:
    :class:`~streamcache.models.CacheConfig` -- hash algorithm, chunk size,
    write-failure policy, and refill de-duplication.
"""

from __future__ import annotations

import logging
import os
import shutil
import tempfile
import threading
import time
from datetime import timedelta
from pathlib import Path
from typing import Any, BinaryIO, Callable, Optional

from streamcache.cache.locks import KeyedLocks
from streamcache.config import CacheEnvironment, PlatformEnvironment
from streamcache.exceptions import (
    CacheRootUnwritableError,
    CacheWriteConflictError,
    CacheWriteError,
    NoCacheLocationError,
)
from streamcache.hashing import KeyHasher
from streamcache.models import CacheConfig, FreshnessWindow, WriteFailurePolicy
from streamcache.streams import copy_stream

logger = logging.getLogger(__name__)

RefillProducer = Callable[[Path], Optional[BinaryIO]]
"""Called with the target cache path; returns fresh content or ``None``."""

_TEMP_SUFFIX = ".tmp"


def _current_umask() -> int:
    mask = os.umask(0)
    os.umask(mask)
    return mask


# mkstemp creates files 0600; published entries get the usual 0666 & ~umask.
_ENTRY_MODE = 0o666 & ~_current_umask()


def resolve_cache_root(environment: CacheEnvironment, folder_name: str = "stream-cache") -> Path:
    """Pick a cache root from *environment* and make sure it exists.

    The environment's preferred directory is used when available, its
    fallback otherwise.  *folder_name* is appended to whichever is chosen.

    Raises:
        NoCacheLocationError: If the environment offers no directory at all.
        CacheRootUnwritableError: If the directory cannot be created.
    """
    base = environment.preferred_cache_dir()
    if base is None:
        base = environment.fallback_cache_dir()
    if base is None:
        raise NoCacheLocationError(
            "Could not find a location to cache to; the environment offers "
            "neither a preferred nor a fallback cache directory."
        )
    root = Path(base) / folder_name if folder_name else Path(base)
    _ensure_directory(root)
    return root


def _ensure_directory(path: Path) -> None:
    try:
        path.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        raise CacheRootUnwritableError(f"Could not create cache root {path}: {exc}") from exc


def _unlink_quietly(path: Path) -> None:
    try:
        path.unlink()
    except OSError:
        pass


def _remove_quietly(path: Path) -> bool:
    """Remove a file or directory tree; return whether anything was removed."""
    try:
        if path.is_dir() and not path.is_symlink():
            shutil.rmtree(path)
        else:
            path.unlink()
    except FileNotFoundError:
        return False
    except OSError as exc:
        logger.warning("Could not delete cache entry %s: %s", path, exc)
        return False
    return True


def _is_temp_file(path: Path) -> bool:
    """Whether *path* is an in-flight ``put`` temp file rather than an entry."""
    return path.name.startswith(".") and path.name.endswith(_TEMP_SUFFIX)


def _coerce_window(window: FreshnessWindow | timedelta) -> FreshnessWindow:
    if isinstance(window, timedelta):
        return FreshnessWindow.from_timedelta(window)
    return window


class CacheStore:
    """A flat directory of cached artifacts, one file per key.

    The root directory is resolved once, at construction, and then kept
    as a plain path.  If the directory is removed while the store is in
    use it is recreated by the next operation that needs it; ``has`` only
    looks and never creates it.

    Args:
        root: Explicit cache root.  Used as-is (created if missing).
        config: Store settings.  ``config.directory`` is used as the root
            when *root* is not given.
        environment: Consulted only when neither *root* nor
            ``config.directory`` is set.  Defaults to
            :class:`~streamcache.config.PlatformEnvironment`.  The store
            does not keep a reference to it.

    Raises:
        NoCacheLocationError: If no root could be resolved.
        CacheRootUnwritableError: If the root cannot be created.
        HashingUnavailableError: If ``config.hash_algorithm`` is unusable.

    Example::

        from streamcache import CacheStore, FreshnessWindow
        from streamcache.producers import bytes_producer

        store = CacheStore("/tmp/stream-cache")
        handle = store.get("user:42", FreshnessWindow.of(5), bytes_producer(b"hello"))
        with handle:
            handle.read()  # b'hello'
    """

    def __init__(
        self,
        root: str | Path | None = None,
        config: Optional[CacheConfig] = None,
        environment: Optional[CacheEnvironment] = None,
    ) -> None:
        self._config = config or CacheConfig()
        self._hasher = KeyHasher(self._config.hash_algorithm)
        self._locks = KeyedLocks()

        if root is None and self._config.directory:
            root = self._config.directory
        if root is not None:
            self._root = Path(root)
            _ensure_directory(self._root)
        else:
            self._root = resolve_cache_root(
                environment or PlatformEnvironment(), self._config.folder_name
            )

    @property
    def config(self) -> CacheConfig:
        """The settings this store was created with."""
        return self._config

    @property
    def hasher(self) -> KeyHasher:
        """The key-to-file-name hash function."""
        return self._hasher

    # ------------------------------------------------------------------ #
    # Root management
    # ------------------------------------------------------------------ #

    def resolve_cache_root(self) -> Path:
        """Return the cache root, recreating it if it has disappeared.

        Raises:
            CacheRootUnwritableError: If the directory cannot be created.
        """
        if not self._root.is_dir():
            _ensure_directory(self._root)
        return self._root

    def set_cache_root(self, path: str | Path) -> None:
        """Point the store at a different root.

        Existing content is neither migrated nor validated.  The directory
        is created on the next operation.
        """
        self._root = Path(path)
        logger.debug("Cache root set to %s", self._root)

    def path_for(self, key: str) -> Path:
        """Return the file that holds (or would hold) *key*."""
        return self.resolve_cache_root() / self._hasher(key)

    # ------------------------------------------------------------------ #
    # Lookup
    # ------------------------------------------------------------------ #

    def has(self, key: str, window: FreshnessWindow | timedelta) -> bool:
        """Return ``True`` if *key* is cached and no older than *window*."""
        return self._is_fresh(self._root / self._hasher(key), _coerce_window(window))

    def get(
        self,
        key: str,
        window: FreshnessWindow | timedelta,
        producer: RefillProducer,
    ) -> Optional[BinaryIO]:
        """Return a handle to fresh content for *key*, refilling if needed.

        A fresh entry is opened and returned without calling *producer*.
        Otherwise *producer* is called once with the target path; if it
        returns a stream the content is stored via :meth:`put`, and if it
        returns ``None`` the existing entry (stale or absent) is left
        untouched and ``None`` is returned.

        Args:
            key: Cache key.
            window: Maximum acceptable age of the stored entry.
            producer: Refill callable, run synchronously on this thread.

        Returns:
            An open binary file the caller must close, or ``None``.
        """
        window = _coerce_window(window)
        path = self.path_for(key)

        handle = self._open_if_fresh(path, window)
        if handle is not None:
            logger.debug("Cache hit for %r", key)
            return handle

        if not self._config.dedupe_refills:
            return self._refill(key, path, producer)

        with self._locks.hold(path.name):
            # Another thread may have refilled while we waited.
            handle = self._open_if_fresh(path, window)
            if handle is not None:
                logger.debug("Cache hit for %r after waiting on a concurrent refill", key)
                return handle
            return self._refill(key, path, producer)

    # ------------------------------------------------------------------ #
    # Store
    # ------------------------------------------------------------------ #

    def put(self, key: str, source: BinaryIO) -> Optional[BinaryIO]:
        """Store the whole of *source* under *key* and return a handle to it.

        *source* is always closed, whether or not the copy succeeds.  The
        content is written to a temp file next to the entry and renamed
        over it, so readers see either the old or the new file.

        If reading *source* or writing the temp file fails, the
        configured :class:`~streamcache.models.WriteFailurePolicy`
        decides: ``keep_partial`` logs the error and publishes what was
        written; ``raise`` discards it and raises.

        Returns:
            An open binary file positioned at the start, or ``None`` if the
            freshly written file could not be reopened.

        Raises:
            CacheWriteConflictError: If the existing entry cannot be replaced.
            CacheWriteError: If the copy failed under the ``raise`` policy.
            CacheRootUnwritableError: If no file can be created in the root.
        """
        root = self.resolve_cache_root()
        path = root / self._hasher(key)
        tmp_path: Optional[Path] = None
        copy_error: Optional[OSError] = None

        try:
            try:
                fd, tmp_name = tempfile.mkstemp(
                    dir=root, prefix=f".{path.name}.", suffix=_TEMP_SUFFIX
                )
            except OSError as exc:
                raise CacheRootUnwritableError(
                    f"Could not create a file in cache root {root}: {exc}"
                ) from exc
            tmp_path = Path(tmp_name)
            if hasattr(os, "fchmod"):
                os.fchmod(fd, _ENTRY_MODE)

            try:
                with open(fd, "wb", buffering=self._config.chunk_size) as out:
                    written = copy_stream(source, out, self._config.chunk_size)
                logger.debug("Wrote %d bytes for %r", written, key)
            except OSError as exc:
                copy_error = exc
        except BaseException:
            if tmp_path is not None:
                _unlink_quietly(tmp_path)
            raise
        finally:
            source.close()

        if copy_error is not None:
            if self._config.write_failure == WriteFailurePolicy.RAISE:
                _unlink_quietly(tmp_path)
                raise CacheWriteError(
                    f"Failed to write cache content for {key!r}: {copy_error}"
                ) from copy_error
            logger.warning(
                "Failed to write cache content for %r, keeping partial file: %s",
                key,
                copy_error,
            )

        try:
            os.replace(tmp_path, path)
        except OSError as exc:
            _unlink_quietly(tmp_path)
            raise CacheWriteConflictError(
                f"Could not replace cache file {path}. Likely an issue with permissions: {exc}"
            ) from exc

        try:
            return open(path, "rb")
        except OSError as exc:
            logger.warning("Could not reopen cache file %s: %s", path, exc)
            return None

    # ------------------------------------------------------------------ #
    # Removal
    # ------------------------------------------------------------------ #

    def delete_key(self, key: str) -> bool:
        """Remove the entry for *key*.

        Returns:
            ``True`` if a file was removed, ``False`` if there was nothing to
            remove or the removal failed.
        """
        return _remove_quietly(self.path_for(key))

    def delete_all(self) -> int:
        """Remove every entry directly under the cache root.

        A failure to remove one entry does not stop the others.  Temp files
        belonging to a ``put`` still in progress are left alone.

        Returns:
            The number of entries actually removed.
        """
        root = self.resolve_cache_root()
        try:
            entries = [entry for entry in root.iterdir() if not _is_temp_file(entry)]
        except OSError as exc:
            logger.warning("Could not list cache root %s: %s", root, exc)
            return 0

        count = 0
        for entry in entries:
            if _remove_quietly(entry):
                count += 1
        logger.debug("Deleted %d of %d cache entries", count, len(entries))
        return count

    # ------------------------------------------------------------------ #
    # Introspection
    # ------------------------------------------------------------------ #

    def stats(self) -> dict[str, Any]:
        """Return cache statistics.

        Returns:
            A ``dict`` with ``directory`` (str path), ``entries`` (number of
            files), ``size_bytes`` (their total size), and
            ``hash_algorithm``.
        """
        root = self.resolve_cache_root()
        entries = 0
        size = 0
        for entry in root.iterdir():
            if _is_temp_file(entry):
                continue
            try:
                st = entry.stat()
            except OSError:
                continue
            entries += 1
            size += st.st_size
        return {
            "directory": str(root),
            "entries": entries,
            "size_bytes": size,
            "hash_algorithm": self._hasher.algorithm,
        }

    def __repr__(self) -> str:
        return f"CacheStore(root={str(self._root)!r}, hasher={self._hasher!r})"

    # ------------------------------------------------------------------ #
    # Private helpers
    # ------------------------------------------------------------------ #

    def _is_fresh(self, path: Path, window: FreshnessWindow) -> bool:
        try:
            modified_ns = path.stat().st_mtime_ns
        except OSError:
            return False
        age_millis = (time.time_ns() - modified_ns) // 1_000_000
        return age_millis <= window.to_millis()

    def _open_if_fresh(self, path: Path, window: FreshnessWindow) -> Optional[BinaryIO]:
        if not self._is_fresh(path, window):
            return None
        try:
            return open(path, "rb")
        except FileNotFoundError:
            logger.debug("Cache file %s vanished before it could be opened", path)
            return None

    def _refill(self, key: str, path: Path, producer: RefillProducer) -> Optional[BinaryIO]:
        logger.debug("Cache miss for %r, calling refill producer", key)
        content = producer(path)
        if content is None:
            logger.debug("Refill producer returned no content for %r", key)
            return None
        return self.put(key, content)


# ------------------------------------------------------------------ #
# Process-wide default store
# ------------------------------------------------------------------ #

_default_store: Optional[CacheStore] = None
_default_store_lock = threading.Lock()


def get_default_store(config: Optional[CacheConfig] = None) -> CacheStore:
    """Return the process-wide :class:`CacheStore`, creating it on first use.

    *config* only matters for the call that creates the store.
    """
    global _default_store
    if _default_store is None:
        with _default_store_lock:
            if _default_store is None:
                _default_store = CacheStore(config=config)
    return _default_store


def reset_default_store() -> None:
    """Forget the process-wide store.  Primarily useful in test suites."""
    global _default_store
    with _default_store_lock:
        _default_store = None
