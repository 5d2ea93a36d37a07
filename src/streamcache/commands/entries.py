"""Entry commands -- read and manage cached content from the shell.

Every command builds a :class:`~streamcache.cache.CacheStore` from the
effective configuration (``--cache-dir`` flag, ``STREAMCACHE_CACHE_DIR``,
then ``config.json``) and performs exactly one store operation.

Exit codes follow :mod:`streamcache.exit_codes`: a key with no fresh
content (and no way to refill it) exits with ``EXIT_NOT_FOUND``.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Optional

import typer

from streamcache.cache import CacheStore
from streamcache.exit_codes import EXIT_NOT_FOUND
from streamcache.models import FreshnessWindow, TimeUnit
from streamcache.output import debug, error, format_response, info, print_bytes, print_data, success


def open_store(ctx: typer.Context) -> CacheStore:
    """Build a store from the root callback's ``--cache-dir`` and the saved config."""
    from streamcache.config import resolve_config

    cache_dir = ctx.obj.get("cache_dir") if ctx.obj else None
    config = resolve_config(cli_cache_dir=cache_dir)
    store = CacheStore(config=config.cache)
    debug(f"Cache root: {store.resolve_cache_root()}")
    return store


def _window(store: CacheStore, max_age: Optional[int], unit: TimeUnit) -> FreshnessWindow:
    if max_age is None:
        return FreshnessWindow.of(store.config.default_max_age_seconds, TimeUnit.SECONDS)
    return FreshnessWindow.of(max_age, unit)


_MAX_AGE_HELP = "Maximum age of the entry (default: config cache.default_max_age_seconds)."


def get_command(
    ctx: typer.Context,
    key: str = typer.Argument(help="Cache key."),
    max_age: Optional[int] = typer.Option(None, "--max-age", "-a", min=0, help=_MAX_AGE_HELP),
    unit: TimeUnit = typer.Option(TimeUnit.SECONDS, "--unit", "-u", help="Unit of --max-age."),
    url: Optional[str] = typer.Option(
        None, "--url", help="Refill a stale or missing entry by downloading this URL."
    ),
    output_path: Optional[Path] = typer.Option(
        None, "--output", "-o", help="Write the content to a file instead of stdout."
    ),
) -> None:
    """Print a cached entry, refilling it from --url when stale or missing.

    Example::

        streamcache get feed --max-age 10 --unit minutes --url https://example.com/feed.xml
    """
    from streamcache.producers import none_producer, url_producer

    store = open_store(ctx)
    producer = url_producer(url) if url else none_producer

    handle = store.get(key, _window(store, max_age, unit), producer)
    if handle is None:
        error(f"No fresh content for '{key}'.")
        raise typer.Exit(code=EXIT_NOT_FOUND)

    chunk_size = store.config.chunk_size
    with handle:
        if output_path is not None:
            from streamcache.streams import copy_stream

            with open(output_path, "wb") as out:
                written = copy_stream(handle, out, chunk_size)
            success(f"Wrote {written} bytes to {output_path}")
        else:
            for chunk in iter(lambda: handle.read(chunk_size), b""):
                print_bytes(chunk)


def put_command(
    ctx: typer.Context,
    key: str = typer.Argument(help="Cache key."),
    source: Optional[Path] = typer.Argument(
        None, help="File to store. Reads stdin when omitted or '-'."
    ),
) -> None:
    """Store a file (or stdin) under KEY, replacing any existing entry.

    Example::

        curl -s https://example.com/feed.xml | streamcache put feed
    """
    store = open_store(ctx)

    if source is None or str(source) == "-":
        stream = typer.get_binary_stream("stdin")
    else:
        try:
            stream = open(source, "rb")
        except OSError as exc:
            error(f"Cannot read {source}: {exc}")
            raise typer.Exit(code=2) from None

    handle = store.put(key, stream)
    if handle is None:
        error(f"Stored '{key}' but the cache file could not be reopened.")
        raise typer.Exit(code=1)
    with handle:
        size = os.fstat(handle.fileno()).st_size
    success(f"Stored '{key}' ({size} bytes)")


def has_command(
    ctx: typer.Context,
    key: str = typer.Argument(help="Cache key."),
    max_age: Optional[int] = typer.Option(None, "--max-age", "-a", min=0, help=_MAX_AGE_HELP),
    unit: TimeUnit = typer.Option(TimeUnit.SECONDS, "--unit", "-u", help="Unit of --max-age."),
) -> None:
    """Exit 0 if KEY has a fresh entry, 4 otherwise."""
    store = open_store(ctx)
    if store.has(key, _window(store, max_age, unit)):
        info(f"'{key}' is fresh.")
        return
    info(f"'{key}' is stale or missing.")
    raise typer.Exit(code=EXIT_NOT_FOUND)


def delete_command(
    ctx: typer.Context,
    key: str = typer.Argument(help="Cache key."),
) -> None:
    """Delete the entry for KEY."""
    store = open_store(ctx)
    if store.delete_key(key):
        success(f"Deleted '{key}'.")
    else:
        info(f"Nothing to delete for '{key}'.")


def clear_command(
    ctx: typer.Context,
    force: bool = typer.Option(False, "--force", "-f", help="Skip confirmation."),
) -> None:
    """Delete every entry in the cache root."""
    store = open_store(ctx)
    if not force:
        confirmed = typer.confirm(f"Delete all entries in {store.resolve_cache_root()}?")
        if not confirmed:
            info("Cancelled.")
            raise typer.Exit()

    count = store.delete_all()
    success(f"Deleted {count} entries.")


def where_command(ctx: typer.Context) -> None:
    """Show the cache root, number of entries, and their total size."""
    store = open_store(ctx)
    format_response(store.stats())


def hash_command(
    ctx: typer.Context,
    key: str = typer.Argument(help="Cache key."),
) -> None:
    """Print the file name KEY is stored under."""
    from streamcache.config import resolve_config
    from streamcache.hashing import hash_key

    cache_dir = ctx.obj.get("cache_dir") if ctx.obj else None
    config = resolve_config(cli_cache_dir=cache_dir)
    print_data(hash_key(key, config.cache.hash_algorithm))
