"""Process-lifetime overlay of already-deserialized values.

A :class:`MemoryCache` is created once by the application and handed to
every :class:`~bifrost.repository.Repository`, so two repositories reading
the same key share the same decoded object. Entries never expire on their
own: they disappear on invalidation, on :meth:`MemoryCache.clear`, or when
the process exits.
"""

from __future__ import annotations

import threading
from typing import Any


class MemoryCache:
    """Thread-safe map of cache key to deserialized value.

    Every public method takes the internal lock for the duration of a single
    dict operation only, so it is safe to share between threads and between
    coroutines (no method awaits).

    Lookups use ``cache[key]`` and raise :class:`KeyError` on a miss, so a
    stored ``None`` is still a hit.

    Example::

        memory = MemoryCache()
        memory.set("user_1", user)
        try:
            cached = memory["user_1"]
        except KeyError:
            cached = await load_user()
    """

    def __init__(self) -> None:
        self._entries: dict[str, Any] = {}
        self._lock = threading.Lock()

    def __getitem__(self, key: str) -> Any:
        with self._lock:
            return self._entries[key]

    def __contains__(self, key: object) -> bool:
        with self._lock:
            return key in self._entries

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def set(self, key: str, value: Any) -> None:
        """Store *value* under *key*, replacing any previous value."""
        with self._lock:
            self._entries[key] = value

    def pop(self, key: str) -> None:
        """Evict *key*. Evicting a missing key is a no-op."""
        with self._lock:
            self._entries.pop(key, None)

    def clear(self) -> None:
        """Evict every entry."""
        with self._lock:
            self._entries.clear()
