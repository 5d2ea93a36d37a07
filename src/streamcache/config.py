"""Configuration management with XDG paths, atomic writes, and precedence resolution.

This module handles everything that decides *where* the cache lives:

* **Directory layout** -- XDG Base Directory compliant on Linux/BSD,
  ``~/.streamcache/`` on macOS and Windows. See :func:`get_config_dir`
  and :func:`get_data_dir`.
* **Environment collaborator** -- :class:`CacheEnvironment` is the
  protocol the cache store asks for a preferred and a fallback cache
  directory; :class:`PlatformEnvironment` is the default implementation.
* **Global config** -- A single :class:`~streamcache.models.GlobalConfig`
  JSON file. See :func:`load_global_config` and :func:`save_global_config`.
* **Precedence resolution** -- :func:`resolve_config` merges the CLI flag,
  the ``STREAMCACHE_CACHE_DIR`` environment variable, and the config file.

Config writes use an atomic temp-file-then-rename strategy
(:func:`_atomic_write`) so that a crash never leaves a half-written file.
"""

from __future__ import annotations

import json
import os
import platform
import tempfile
from pathlib import Path
from typing import Optional, Protocol

from streamcache.exceptions import ConfigError
from streamcache.models import GlobalConfig

_APP_NAME = "streamcache"
_CONFIG_FILENAME = "config.json"
CACHE_DIR_ENV_VAR = "STREAMCACHE_CACHE_DIR"


# --- XDG path resolution ---


def _is_xdg_platform() -> bool:
    """Return True if the platform supports XDG Base Directory spec (Linux/FreeBSD)."""
    return platform.system() == "Linux" or platform.system().endswith("BSD")


def _fallback_base_dir() -> Path:
    """Fallback base directory for non-XDG platforms (macOS, Windows)."""
    return Path.home() / f".{_APP_NAME}"


def _xdg_base(env_var: str, default_segments: tuple[str, ...]) -> Path:
    """Resolve an XDG base directory from an env var with fallback segments under $HOME."""
    env_value = os.environ.get(env_var, "")
    if env_value:
        return Path(env_value)
    base = Path.home()
    for seg in default_segments:
        base = base / seg
    return base


def get_config_dir() -> Path:
    """Return the configuration directory, creating it if necessary.

    On Linux/BSD: ``$XDG_CONFIG_HOME/streamcache/`` (default ``~/.config/streamcache/``).
    On macOS/Windows: ``~/.streamcache/``.

    Returns:
        Absolute path to the configuration directory (guaranteed to exist).
    """
    if _is_xdg_platform():
        path = _xdg_base("XDG_CONFIG_HOME", (".config",)) / _APP_NAME
    else:
        path = _fallback_base_dir()
    path.mkdir(parents=True, exist_ok=True)
    return path


def get_data_dir() -> Path:
    """Return the data directory (crash logs), creating it if necessary.

    On Linux/BSD: ``$XDG_DATA_HOME/streamcache/`` (default ``~/.local/share/streamcache/``).
    On macOS/Windows: ``~/.streamcache/logs/``.
    """
    if _is_xdg_platform():
        path = _xdg_base("XDG_DATA_HOME", (".local", "share")) / _APP_NAME
    else:
        path = _fallback_base_dir() / "logs"
    path.mkdir(parents=True, exist_ok=True)
    return path


# --- Environment collaborator ---


class CacheEnvironment(Protocol):
    """Where the host environment allows cache files to be written.

    :class:`~streamcache.cache.CacheStore` consults an environment only
    while resolving its root; it never keeps a reference to one.
    """

    def preferred_cache_dir(self) -> Optional[Path]:
        """The first-choice writable cache directory, or ``None`` if unavailable."""
        ...

    def fallback_cache_dir(self) -> Optional[Path]:
        """A second-choice directory used when the preferred one is unavailable."""
        ...


class PlatformEnvironment:
    """Default :class:`CacheEnvironment` backed by the user's platform directories.

    * Preferred: ``$XDG_CACHE_HOME`` (default ``~/.cache``) on Linux/BSD,
      ``~/.streamcache/cache`` on macOS and Windows.
    * Fallback: the system temp directory.

    Neither directory is created here; the store creates its root on demand.
    """

    def preferred_cache_dir(self) -> Optional[Path]:
        try:
            if _is_xdg_platform():
                return _xdg_base("XDG_CACHE_HOME", (".cache",))
            return _fallback_base_dir() / "cache"
        except RuntimeError:
            # Path.home() raises when no home directory can be determined.
            return None

    def fallback_cache_dir(self) -> Optional[Path]:
        tmp = tempfile.gettempdir()
        return Path(tmp) if tmp else None


# --- Atomic file writes ---


def _atomic_write(path: Path, data: str) -> None:
    """Write data to file atomically using temp file + rename.

    The temporary file is created in the same directory as *path* so that
    ``os.replace`` is an atomic rename on POSIX systems.  On any failure
    the temp file is cleaned up.
    """
    path.parent.mkdir(parents=True, exist_ok=True)

    fd = None
    tmp_path: Optional[str] = None
    try:
        fd = tempfile.NamedTemporaryFile(
            mode="w",
            dir=path.parent,
            prefix=f".{path.name}.",
            suffix=".tmp",
            delete=False,
            encoding="utf-8",
        )
        tmp_path = fd.name
        fd.write(data)
        fd.flush()
        os.fsync(fd.fileno())
        fd.close()
        fd = None  # prevent double-close in finally
        os.replace(tmp_path, path)
    except BaseException:
        if fd is not None:
            fd.close()
        if tmp_path is not None:
            try:
                os.unlink(tmp_path)
            except OSError:
                pass
        raise


# --- Global config ---


def _global_config_path() -> Path:
    """Path to the global config file."""
    return get_config_dir() / _CONFIG_FILENAME


def load_global_config() -> GlobalConfig:
    """Load the global configuration from the XDG config directory.

    Returns:
        The deserialised :class:`~streamcache.models.GlobalConfig`. If the
        file does not exist, a default instance is returned.

    Raises:
        ConfigError: If the file exists but contains invalid JSON or fails
            Pydantic validation.
    """
    path = _global_config_path()
    if not path.is_file():
        return GlobalConfig()
    try:
        text = path.read_text(encoding="utf-8")
        data = json.loads(text)
        return GlobalConfig.model_validate(data)
    except (json.JSONDecodeError, ValueError) as exc:
        raise ConfigError(f"Invalid global config at {path}: {exc}") from exc


def save_global_config(config: GlobalConfig) -> None:
    """Persist the global configuration atomically to disk."""
    data = config.model_dump(mode="json")
    _atomic_write(_global_config_path(), json.dumps(data, indent=2) + "\n")


# --- Precedence resolution ---


def resolve_config(cli_cache_dir: Optional[str] = None) -> GlobalConfig:
    """Resolve config with the full precedence chain.

    Precedence for ``cache.directory`` (high to low):
        1. CLI flag (``cli_cache_dir``)
        2. Environment variable (``STREAMCACHE_CACHE_DIR``)
        3. User config (``~/.config/streamcache/config.json``)
        4. ``None`` -- the store resolves a platform directory itself.

    Returns:
        The effective :class:`~streamcache.models.GlobalConfig`.
    """
    config = load_global_config()

    env_dir = os.environ.get(CACHE_DIR_ENV_VAR)
    if env_dir:
        config.cache.directory = env_dir
    if cli_cache_dir is not None:
        config.cache.directory = cli_cache_dir

    return config
