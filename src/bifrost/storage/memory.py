"""In-process key-value store.

Useful for tests and for short-lived processes that want the offline
fallback semantics of the cache without touching the filesystem.
"""

from __future__ import annotations

from typing import Optional

from bifrost.storage.base import KeyValueStore


class InMemoryStore(KeyValueStore):
    """A :class:`KeyValueStore` backed by a plain ``dict``.

    The dict is exposed as :attr:`data` so tests can seed or inspect raw
    entries directly.

    Args:
        data: Optional initial contents. The mapping is copied.
    """

    def __init__(self, data: Optional[dict[str, str]] = None) -> None:
        self.data: dict[str, str] = dict(data or {})

    async def get_string(self, key: str) -> Optional[str]:
        return self.data.get(key)

    async def set_string(self, key: str, value: str) -> None:
        self.data[key] = value

    async def remove(self, key: str) -> None:
        self.data.pop(key, None)

    async def clear(self) -> None:
        self.data.clear()

    async def keys(self) -> list[str]:
        return list(self.data)
