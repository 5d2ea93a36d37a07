"""Shared test fixtures for streamcache.

Provides isolated config directories, ready-made cache stores rooted in
``tmp_path``, helpers for ageing cache files, and a CLI runner.  These
fixtures are discovered by pytest and available to every test module.
"""

from __future__ import annotations

import logging
import os
import time
from pathlib import Path

import pytest

from streamcache.cache import CacheStore, reset_default_store
from streamcache.models import CacheConfig
from streamcache.output import OutputFormat, OutputManager, reset_output, set_output


# ---------------------------------------------------------------------------
# Auto-reset global state between tests
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def _reset_globals_between_tests() -> None:
    """Reset global output, default store and logger state after every test.

    The OutputManager caches references to sys.stdout/sys.stderr at
    creation time; CliRunner swaps those streams per invocation, so a
    stale manager would write to a closed file.
    """
    yield
    reset_output()
    reset_default_store()
    logger = logging.getLogger("streamcache")
    logger.handlers.clear()
    logger.setLevel(logging.NOTSET)
    logger.propagate = True


# ---------------------------------------------------------------------------
# Config isolation fixture
# ---------------------------------------------------------------------------


@pytest.fixture
def isolated_config(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Isolate configuration to a temporary directory.

    Sets XDG_CONFIG_HOME, XDG_CACHE_HOME, and XDG_DATA_HOME to
    subdirectories of tmp_path so that tests never touch real user
    config, and clears STREAMCACHE_CACHE_DIR.

    Returns:
        The tmp_path root directory for additional file creation.
    """
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "config"))
    monkeypatch.setenv("XDG_CACHE_HOME", str(tmp_path / "cache"))
    monkeypatch.setenv("XDG_DATA_HOME", str(tmp_path / "data"))
    monkeypatch.delenv("STREAMCACHE_CACHE_DIR", raising=False)
    monkeypatch.chdir(tmp_path)
    return tmp_path


# ---------------------------------------------------------------------------
# Store fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def cache_root(tmp_path: Path) -> Path:
    """Directory used as the cache root (not created up front)."""
    return tmp_path / "stream-cache"


@pytest.fixture
def store(cache_root: Path) -> CacheStore:
    """A CacheStore with default settings rooted at ``cache_root``."""
    return CacheStore(cache_root)


@pytest.fixture
def make_store(cache_root: Path):
    """Factory for stores with custom :class:`CacheConfig` fields."""

    def _make(**fields) -> CacheStore:
        return CacheStore(cache_root, CacheConfig(**fields))

    return _make


def _age_file(path: Path, seconds: float) -> None:
    stamp = time.time_ns() - int(seconds * 1_000_000_000)
    os.utime(path, ns=(stamp, stamp))


@pytest.fixture
def age_file():
    """Return a helper that moves a file's mtime *seconds* into the past."""
    return _age_file


# ---------------------------------------------------------------------------
# Output fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def quiet_output() -> OutputManager:
    """Install a quiet PLAIN-format OutputManager for the test."""
    output = OutputManager(format=OutputFormat.PLAIN, quiet=True)
    set_output(output)
    yield output
    reset_output()


# ---------------------------------------------------------------------------
# CLI runner fixture
# ---------------------------------------------------------------------------


@pytest.fixture
def cli_runner():
    """Typer CLI test runner."""
    from typer.testing import CliRunner

    return CliRunner()
