"""Config commands -- view and modify global configuration.

Provides the ``streamcache config`` sub-command group for reading,
updating, and resetting the user's global configuration file
(:class:`~streamcache.models.GlobalConfig`).
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Optional

import typer

from streamcache.output import error, format_response, info, success

if TYPE_CHECKING:
    from streamcache.models import GlobalConfig


config_app = typer.Typer(no_args_is_help=True)


@config_app.command("show")
def config_show() -> None:
    """Show current configuration.

    Example::

        streamcache config show
        streamcache --json config show
    """
    from streamcache.config import get_config_dir, load_global_config

    config = load_global_config()
    info(f"Config directory: {get_config_dir()}")
    format_response(config.model_dump(mode="json"))


_CLEARABLE_FIELDS = {"directory"}
_NONE_VALUES = ("", "none", "null")


def _cache_field(key: str) -> str:
    """Map a dotted ``cache.<field>`` key to a CacheConfig field name."""
    from streamcache.models import CacheConfig

    section, _, field = key.partition(".")
    if section != "cache" or field not in CacheConfig.model_fields:
        error(f"Unknown config key: {key}")
        valid = ", ".join(f"cache.{name}" for name in CacheConfig.model_fields)
        info(f"Valid keys: {valid}")
        raise typer.Exit(code=2)
    return field


def _save_cache_field(config: GlobalConfig, key: str, data: dict) -> None:
    from pydantic import ValidationError

    from streamcache.config import save_global_config
    from streamcache.models import CacheConfig

    try:
        cache = CacheConfig.model_validate(data)
    except ValidationError as exc:
        error(f"Invalid value for {key}: {exc.errors()[0]['msg']}")
        raise typer.Exit(code=2) from None

    save_global_config(config.model_copy(update={"cache": cache}))
    field = key.partition(".")[2]
    success(f"Set {key} = {cache.model_dump(mode='json')[field]}")


@config_app.command("set")
def config_set(
    key: str = typer.Argument(
        help="Config key (dot notation, e.g., 'cache.chunk_size')."
    ),
    value: str = typer.Argument(help="Value to set."),
) -> None:
    """Set a configuration value.

    The value is parsed and validated by the
    :class:`~streamcache.models.CacheConfig` model, so booleans must be
    spelled ``true``/``false`` (or ``yes``/``no``, ``1``/``0``) and numbers
    must be in range.  ``cache.directory`` accepts ``none`` to go back to
    the platform cache directory.

    Example::

        streamcache config set cache.directory /var/cache/feeds
        streamcache config set cache.write_failure raise
        streamcache config set cache.default_max_age_seconds 600
    """
    from streamcache.config import load_global_config

    field = _cache_field(key)
    parsed: Optional[str] = value
    if field in _CLEARABLE_FIELDS and value.strip().lower() in _NONE_VALUES:
        parsed = None

    config = load_global_config()
    data = config.cache.model_dump(mode="json")
    data[field] = parsed
    _save_cache_field(config, key, data)


@config_app.command("unset")
def config_unset(
    key: str = typer.Argument(help="Config key to restore to its default."),
) -> None:
    """Restore one configuration value to its default.

    Example::

        streamcache config unset cache.directory
    """
    from streamcache.config import load_global_config

    field = _cache_field(key)
    config = load_global_config()
    data = config.cache.model_dump(mode="json")
    data.pop(field)
    _save_cache_field(config, key, data)


@config_app.command("reset")
def config_reset(
    force: bool = typer.Option(False, "--force", "-f", help="Skip confirmation."),
) -> None:
    """Reset configuration to defaults."""
    from streamcache.config import save_global_config
    from streamcache.models import GlobalConfig

    if not force:
        confirmed = typer.confirm("Reset all config to defaults?")
        if not confirmed:
            info("Cancelled.")
            raise typer.Exit()

    save_global_config(GlobalConfig())
    success("Configuration reset to defaults.")
