"""Cache commands -- inspect and invalidate the on-disk response cache.

Operates on the same :class:`~bifrost.storage.DiskStore` that
``bifrost get`` writes through to. Keys are the caller-facing cache keys
(``<profile>:<path>`` unless ``--key`` was used), not the raw store keys.
"""

from __future__ import annotations

import asyncio
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Optional

import typer

from bifrost.cache import ResponseCache, utc_now
from bifrost.exit_codes import EXIT_INVALID_USAGE
from bifrost.output import error, format_response, info, print_table, success, warning


cache_app = typer.Typer(no_args_is_help=True)


@contextmanager
def _open_cache() -> Iterator[ResponseCache]:
    """Yield a :class:`ResponseCache` over the CLI's disk store, closing it afterwards."""
    from bifrost.config import get_store_dir, resolve_config
    from bifrost.storage import DiskStore

    config, _ = resolve_config()
    store = DiskStore(get_store_dir())
    try:
        yield ResponseCache(store, config.cache)
    finally:
        store.close()


@cache_app.command("list")
def cache_list() -> None:
    """List cached keys with their expiry."""

    async def _rows(cache: ResponseCache) -> list[list[str]]:
        now = utc_now()
        rows = []
        for key in await cache.keys():
            entry = await cache.entry(key)
            if entry is None:
                rows.append([key, "-", "partial", "-"])
                continue
            status = "valid" if entry.is_valid(now) else "expired"
            rows.append([key, entry.expires_at.isoformat(), status, str(len(entry.body))])
        return rows

    with _open_cache() as cache:
        rows = asyncio.run(_rows(cache))
    print_table(["key", "expires_at", "status", "bytes"], rows, title="Cached responses")


@cache_app.command("show")
def cache_show(key: str = typer.Argument(help="Cache key.")) -> None:
    """Print the cached body for KEY, even if it has expired."""
    with _open_cache() as cache:
        entry = asyncio.run(cache.entry(key))

    if entry is None:
        error(f"No cache entry for key: {key}")
        raise typer.Exit(code=EXIT_INVALID_USAGE)

    if entry.is_valid(utc_now()):
        info(f"Expires at {entry.expires_at.isoformat()}")
    else:
        warning(f"Entry expired at {entry.expires_at.isoformat()}")
    format_response(entry.body)


@cache_app.command("clear")
def cache_clear(
    key: Optional[str] = typer.Argument(None, help="Cache key (omit to clear everything)."),
) -> None:
    """Invalidate one key, or every bifrost entry when KEY is omitted."""
    with _open_cache() as cache:
        if key is not None:
            asyncio.run(cache.invalidate(key))
            success(f"Cleared cache for key: {key}")
        else:
            asyncio.run(cache.invalidate_all())
            success("Cleared all cached responses.")


@cache_app.command("stats")
def cache_stats() -> None:
    """Show cache statistics."""
    from bifrost.config import get_store_dir

    with _open_cache() as cache:
        stats = asyncio.run(cache.stats())
    stats["directory"] = str(get_store_dir())
    format_response(stats)
