"""Abstract key-value store consumed by the response cache.

Any persistence layer that can hold string values under string keys can back
the cache: implement the four required coroutines and, when the backend can
list its own keys, :meth:`KeyValueStore.keys`.

The cache never calls :meth:`KeyValueStore.clear` itself -- the store may be
shared with unrelated application data such as auth tokens or preferences.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Optional


class KeyValueStore(ABC):
    """Asynchronous string key-value store.

    Implementations should raise :class:`~bifrost.exceptions.StorageError`
    (or let the backend's own exception propagate) on failure; the cache
    absorbs both.
    """

    @abstractmethod
    async def get_string(self, key: str) -> Optional[str]:
        """Return the value stored under *key*, or ``None`` if absent."""

    @abstractmethod
    async def set_string(self, key: str, value: str) -> None:
        """Store *value* under *key*, replacing any previous value."""

    @abstractmethod
    async def remove(self, key: str) -> None:
        """Delete *key*. Removing a missing key is not an error."""

    @abstractmethod
    async def clear(self) -> None:
        """Delete every key held by this store."""

    async def keys(self) -> list[str]:
        """Return every key currently held by the store.

        Raises:
            NotImplementedError: The backend cannot enumerate its keys.
                This is the default.
        """
        raise NotImplementedError(f"{type(self).__name__} cannot enumerate keys")
