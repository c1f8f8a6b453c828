"""Disk-backed key-value store using :mod:`diskcache`.

:class:`DiskStore` persists string values in a :class:`diskcache.Cache`
directory. diskcache is synchronous (SQLite plus files), so every call is
run in a worker thread with :func:`asyncio.to_thread` to keep the event loop
free while the disk is busy.

Expiry is *not* delegated to diskcache's own ``expire=`` support: the
response cache stores its expiration timestamps alongside the data so that
any other :class:`~bifrost.storage.base.KeyValueStore` behaves the same way.
"""

from __future__ import annotations

import asyncio
import sqlite3
from pathlib import Path
from typing import Any, Callable, Optional, TypeVar

import diskcache

from bifrost.exceptions import StorageError
from bifrost.storage.base import KeyValueStore

_T = TypeVar("_T")


class DiskStore(KeyValueStore):
    """A :class:`KeyValueStore` persisted in a :class:`diskcache.Cache` directory.

    Args:
        directory: Directory holding the diskcache database. Created if
            missing.

    Example::

        from bifrost.config import get_cache_dir
        from bifrost.storage import DiskStore

        store = DiskStore(get_cache_dir() / "store")
        await store.set_string("greeting", "hello")
        store.close()
    """

    def __init__(self, directory: str | Path) -> None:
        self._directory = Path(directory)
        self._cache = diskcache.Cache(str(self._directory))

    @property
    def directory(self) -> Path:
        """The directory holding the diskcache database."""
        return self._directory

    async def get_string(self, key: str) -> Optional[str]:
        value = await self._run(self._cache.get, key)
        if value is None:
            return None
        return str(value)

    async def set_string(self, key: str, value: str) -> None:
        await self._run(self._cache.set, key, value)

    async def remove(self, key: str) -> None:
        await self._run(self._cache.delete, key)

    async def clear(self) -> None:
        await self._run(self._cache.clear)

    async def keys(self) -> list[str]:
        return await self._run(lambda: [str(k) for k in self._cache.iterkeys()])

    def close(self) -> None:
        """Close the underlying :class:`diskcache.Cache` and release resources."""
        self._cache.close()

    def __len__(self) -> int:
        return len(self._cache)

    async def _run(self, func: Callable[..., _T], *args: Any) -> _T:
        """Run a blocking diskcache call in a worker thread."""
        try:
            return await asyncio.to_thread(func, *args)
        except (OSError, sqlite3.Error, diskcache.Timeout) as exc:
            raise StorageError(f"Disk store at {self._directory} failed: {exc}") from exc
