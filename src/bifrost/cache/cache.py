"""TTL-stamped response cache on top of any key-value store.

Each cached response is stored as two string entries in the backing
:class:`~bifrost.storage.base.KeyValueStore`::

    <namespace>:data:<key>  ->  raw response body
    <namespace>:exp:<key>   ->  ISO-8601 UTC expiry, e.g. 2026-10-18T14:00:00+00:00

Both entries are written and removed together. A reader that finds only one
half of a pair treats the key as a miss. Expired pairs are purged the first
time they are read.

Failures of the backing store never escape this module: a failed write is
logged and reported as ``False``, a failed read is a miss.

See Also:
    :class:`~bifrost.cache.memory.MemoryCache` -- the in-memory tier that
    :meth:`ResponseCache.invalidate` evicts alongside the disk pair.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Optional

from bifrost.cache.memory import MemoryCache
from bifrost.exceptions import CacheWriteError
from bifrost.models import CacheConfig, CacheEntry
from bifrost.storage.base import KeyValueStore

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    """Return the current time as a timezone-aware UTC datetime."""
    return datetime.now(timezone.utc)


def parse_expiration(value: str) -> Optional[datetime]:
    """Parse a stored expiry timestamp.

    Naive timestamps are read as UTC.

    Returns:
        The parsed datetime, or ``None`` if *value* is not ISO-8601.
    """
    try:
        parsed = datetime.fromisoformat(value)
    except (TypeError, ValueError):
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


class ResponseCache:
    """Disk tier of the response cache, plus eviction of the memory tier.

    Args:
        store: Backing key-value store. May be shared with unrelated data;
            only keys under ``config.namespace`` are ever touched.
        config: Cache settings. Only ``namespace`` and ``ttl_seconds`` are
            read here; whether to cache at all is the repository's decision.
        memory: In-memory tier evicted by :meth:`invalidate` and
            :meth:`invalidate_all`. A private one is created when omitted.
        clock: Returns "now"; a naive result is read as UTC. Defaults to
            :func:`utc_now`.

    Example::

        cache = ResponseCache(InMemoryStore(), CacheConfig())
        await cache.put("users", '[{"id": 1}]', timedelta(minutes=5))
        body = await cache.get("users")
    """

    def __init__(
        self,
        store: KeyValueStore,
        config: Optional[CacheConfig] = None,
        memory: Optional[MemoryCache] = None,
        clock: Optional[Clock] = None,
    ) -> None:
        self._store = store
        self._config = config or CacheConfig()
        self._memory = memory if memory is not None else MemoryCache()
        self._clock = clock or utc_now

    @property
    def memory(self) -> MemoryCache:
        """The in-memory tier evicted together with the disk pair."""
        return self._memory

    @property
    def prefix(self) -> str:
        """Prefix shared by every store key this cache owns."""
        return f"{self._config.namespace}:"

    def data_key(self, key: str) -> str:
        """Store key holding the body for *key*."""
        return f"{self.prefix}data:{key}"

    def expiration_key(self, key: str) -> str:
        """Store key holding the expiry for *key*."""
        return f"{self.prefix}exp:{key}"

    # ------------------------------------------------------------------ #
    # Read / write
    # ------------------------------------------------------------------ #

    async def put(self, key: str, body: str, ttl: Optional[timedelta] = None) -> bool:
        """Write *body* under *key*, valid for *ttl* from now.

        Args:
            key: Caller-chosen cache key.
            body: Raw response body.
            ttl: Time to live. Defaults to ``config.ttl_seconds``.

        Returns:
            ``True`` if both halves of the pair were written, ``False`` if the
            store failed (the failure is logged, never raised).
        """
        expires_at = self._now() + (ttl if ttl is not None else self._config.ttl)
        try:
            await self._write_pair(key, body, expires_at)
        except CacheWriteError as exc:
            logger.error("Failed to cache data for key: %s", key, exc_info=exc)
            return False
        logger.debug("Cached data for key: %s (expires: %s)", key, expires_at.isoformat())
        return True

    async def get(self, key: str) -> Optional[str]:
        """Return the cached body for *key* if it has not expired.

        An expired pair is removed before returning ``None``. A partial pair,
        an unparsable expiry, or a store error all read as a miss.
        """
        entry = await self.entry(key)
        if entry is None:
            return None
        if entry.is_valid(self._now()):
            return entry.body
        await self.invalidate(key)
        logger.debug("Cache expired for key: %s", key)
        return None

    async def entry(self, key: str) -> Optional[CacheEntry]:
        """Return the stored pair for *key* without checking or purging expiry.

        Returns:
            The :class:`~bifrost.models.CacheEntry`, or ``None`` when either
            half is missing, the expiry cannot be parsed, or the store fails.
        """
        try:
            body = await self._store.get_string(self.data_key(key))
            raw_expiration = await self._store.get_string(self.expiration_key(key))
        except Exception as exc:
            logger.error("Failed to read cache for key: %s", key, exc_info=exc)
            return None

        if body is None or raw_expiration is None:
            return None

        expires_at = parse_expiration(raw_expiration)
        if expires_at is None:
            logger.warning("Unreadable cache expiration for key %s: %r", key, raw_expiration)
            return None
        return CacheEntry(key=key, body=body, expires_at=expires_at)

    # ------------------------------------------------------------------ #
    # Invalidation
    # ------------------------------------------------------------------ #

    async def invalidate(self, key: str) -> None:
        """Remove *key* from both tiers. Missing keys are not an error."""
        self._memory.pop(key)
        # expiry first: a leftover body without its expiry reads as a miss
        for store_key in (self.expiration_key(key), self.data_key(key)):
            try:
                await self._store.remove(store_key)
            except Exception as exc:
                logger.error("Failed to clear cache for key: %s (%s)", key, store_key, exc_info=exc)

    async def invalidate_all(self) -> None:
        """Remove every entry this cache owns, leaving other store keys alone.

        When the store cannot enumerate its keys only the memory tier is
        cleared and a warning is logged; the store is never wiped wholesale.
        """
        self._memory.clear()
        try:
            owned = [k for k in await self._store.keys() if k.startswith(self.prefix)]
        except NotImplementedError as exc:
            logger.warning(
                "Could not enumerate cache keys (%s). Memory cache cleared; "
                "use invalidate(key) for specific keys.",
                exc,
            )
            return
        except Exception as exc:
            logger.error("Failed to list cache keys", exc_info=exc)
            return

        for store_key in owned:
            try:
                await self._store.remove(store_key)
            except Exception as exc:
                logger.error("Failed to remove cache entry %s", store_key, exc_info=exc)
        logger.info("All %s cache entries cleared (%d store keys)", self._config.namespace, len(owned))

    # ------------------------------------------------------------------ #
    # Inspection
    # ------------------------------------------------------------------ #

    async def keys(self) -> list[str]:
        """Return the caller keys that currently have a data entry, sorted.

        Raises:
            NotImplementedError: The backing store cannot enumerate keys.
        """
        data_prefix = f"{self.prefix}data:"
        return sorted(
            k[len(data_prefix):] for k in await self._store.keys() if k.startswith(data_prefix)
        )

    async def stats(self) -> dict[str, Any]:
        """Return cache statistics.

        Returns:
            A ``dict`` with ``namespace``, ``ttl_seconds``, ``memory_entries``
            and ``entries`` (``None`` when the store cannot enumerate keys).
        """
        try:
            entries: Optional[int] = len(await self.keys())
        except NotImplementedError:
            entries = None
        return {
            "namespace": self._config.namespace,
            "ttl_seconds": self._config.ttl_seconds,
            "entries": entries,
            "memory_entries": len(self._memory),
        }

    # ------------------------------------------------------------------ #
    # Private helpers
    # ------------------------------------------------------------------ #

    def _now(self) -> datetime:
        """The injected clock, with a naive result read as UTC."""
        now = self._clock()
        if now.tzinfo is None:
            now = now.replace(tzinfo=timezone.utc)
        return now

    async def _write_pair(self, key: str, body: str, expires_at: datetime) -> None:
        """Write data then expiry; on a half-written pair, drop the data half."""
        data_key = self.data_key(key)
        try:
            await self._store.set_string(data_key, body)
        except Exception as exc:
            raise CacheWriteError(f"Could not write {data_key}: {exc}") from exc

        try:
            await self._store.set_string(self.expiration_key(key), expires_at.isoformat())
        except Exception as exc:
            try:
                await self._store.remove(data_key)
            except Exception:
                logger.debug("Could not roll back %s after failed expiry write", data_key)
            raise CacheWriteError(f"Could not write expiry for {key}: {exc}") from exc
