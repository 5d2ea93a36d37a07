"""Pydantic models shared across the streamcache package.

Configuration models:
    :class:`CacheConfig` and :class:`GlobalConfig`, persisted as JSON by
    :mod:`streamcache.config`.

Lookup models:
    :class:`TimeUnit` and :class:`FreshnessWindow`, passed by callers on
    every lookup and never persisted.
"""

from __future__ import annotations

from datetime import timedelta
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class TimeUnit(str, Enum):
    """Granularity of a :class:`FreshnessWindow` count."""

    NANOSECONDS = "nanoseconds"
    MICROSECONDS = "microseconds"
    MILLISECONDS = "milliseconds"
    SECONDS = "seconds"
    MINUTES = "minutes"
    HOURS = "hours"
    DAYS = "days"


_NANOS_PER_UNIT: dict[TimeUnit, int] = {
    TimeUnit.NANOSECONDS: 1,
    TimeUnit.MICROSECONDS: 1_000,
    TimeUnit.MILLISECONDS: 1_000_000,
    TimeUnit.SECONDS: 1_000_000_000,
    TimeUnit.MINUTES: 60 * 1_000_000_000,
    TimeUnit.HOURS: 3600 * 1_000_000_000,
    TimeUnit.DAYS: 86400 * 1_000_000_000,
}


class FreshnessWindow(BaseModel):
    """Maximum age an entry may have and still be served without a refill.

    Different callers may apply different windows to the same stored
    entry; the window is never written to disk.

    Example::

        FreshnessWindow(unit=TimeUnit.SECONDS, count=5).to_millis()  # 5000
    """

    model_config = ConfigDict(frozen=True)

    unit: TimeUnit = Field(default=TimeUnit.SECONDS)
    count: int = Field(ge=0, description="Number of units")

    @classmethod
    def of(cls, count: int, unit: TimeUnit | str = TimeUnit.SECONDS) -> FreshnessWindow:
        """Shorthand constructor: ``FreshnessWindow.of(5, "minutes")``."""
        return cls(unit=TimeUnit(unit), count=count)

    @classmethod
    def from_timedelta(cls, delta: timedelta) -> FreshnessWindow:
        """Build a millisecond-granular window from a :class:`~datetime.timedelta`."""
        millis = (delta.days * 86400 + delta.seconds) * 1000 + delta.microseconds // 1000
        return cls(unit=TimeUnit.MILLISECONDS, count=millis)

    def to_millis(self) -> int:
        """Convert to whole milliseconds, truncating sub-millisecond remainders."""
        return self.count * _NANOS_PER_UNIT[self.unit] // _NANOS_PER_UNIT[TimeUnit.MILLISECONDS]


class WriteFailurePolicy(str, Enum):
    """What :meth:`~streamcache.cache.CacheStore.put` does when copying fails.

    ``KEEP_PARTIAL`` logs the failure, publishes whatever bytes were
    written, and returns a handle to them.  ``RAISE`` discards the
    partial file, leaves any previous entry in place, and raises
    :class:`~streamcache.exceptions.CacheWriteError`.
    """

    KEEP_PARTIAL = "keep_partial"
    RAISE = "raise"


class CacheConfig(BaseModel):
    """Cache store settings stored in :class:`GlobalConfig`."""

    directory: Optional[str] = Field(
        default=None,
        description="Explicit cache root; skips platform directory resolution",
    )
    folder_name: str = Field(
        default="stream-cache",
        description="Sub-directory created under the platform cache directory",
    )
    hash_algorithm: str = Field(default="sha1", description="hashlib algorithm for file names")
    chunk_size: int = Field(default=8192, gt=0, description="Copy buffer size in bytes")
    write_failure: WriteFailurePolicy = Field(default=WriteFailurePolicy.KEEP_PARTIAL)
    dedupe_refills: bool = Field(
        default=True,
        description="Serialise concurrent refills of the same key within the process",
    )
    default_max_age_seconds: int = Field(
        default=300, ge=0, description="Freshness window used by the CLI when none is given"
    )


class GlobalConfig(BaseModel):
    """Top-level user configuration, persisted as ``config.json``.

    Loaded and saved by :func:`~streamcache.config.load_global_config` and
    :func:`~streamcache.config.save_global_config`.
    """

    cache: CacheConfig = Field(default_factory=CacheConfig)
