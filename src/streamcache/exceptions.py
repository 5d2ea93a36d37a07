"""Exception hierarchy for streamcache.

All exceptions inherit from :class:`StreamCacheError`, which carries an
``exit_code`` attribute mapped to a constant from :mod:`streamcache.exit_codes`.
The top-level error handler in :func:`streamcache.app.main` catches
``StreamCacheError`` and exits with the appropriate code.

Cache misses are *not* exceptions: a lookup that cannot be filled returns
``None``. Only conditions that leave the cache unusable are raised.

Subclass hierarchy::

    StreamCacheError (exit 1)
    +-- HashingUnavailableError   (exit 7)
    +-- NoCacheLocationError      (exit 6)
    +-- CacheRootUnwritableError  (exit 6)
    +-- CacheWriteConflictError   (exit 5)
    +-- CacheWriteError           (exit 5)
    +-- ConfigError               (exit 1)
"""

from streamcache.exit_codes import (
    EXIT_GENERIC_FAILURE,
    EXIT_HASHING_UNAVAILABLE,
    EXIT_NO_CACHE_LOCATION,
    EXIT_WRITE_FAILURE,
)


class StreamCacheError(Exception):
    """Base exception for all streamcache errors.

    Args:
        message: Human-readable error description printed to stderr.
        exit_code: Optional override for the class-level exit code.
    """

    exit_code: int = EXIT_GENERIC_FAILURE

    def __init__(self, message: str, exit_code: int | None = None):
        super().__init__(message)
        if exit_code is not None:
            self.exit_code = exit_code


class HashingUnavailableError(StreamCacheError):
    """Raised when the digest algorithm used to name cache files is missing."""

    exit_code = EXIT_HASHING_UNAVAILABLE


class NoCacheLocationError(StreamCacheError):
    """Raised when neither a preferred nor a fallback cache directory exists."""

    exit_code = EXIT_NO_CACHE_LOCATION


class CacheRootUnwritableError(StreamCacheError):
    """Raised when the cache root directory cannot be created."""

    exit_code = EXIT_NO_CACHE_LOCATION


class CacheWriteConflictError(StreamCacheError):
    """Raised when an existing cache file cannot be replaced (permissions, locks)."""

    exit_code = EXIT_WRITE_FAILURE


class CacheWriteError(StreamCacheError):
    """Raised when copying content into the cache fails under the ``raise`` policy."""

    exit_code = EXIT_WRITE_FAILURE


class ConfigError(StreamCacheError):
    """Raised for configuration problems (invalid JSON, failed validation)."""

    exit_code = EXIT_GENERIC_FAILURE
