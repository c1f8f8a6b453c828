"""Key-value store backends for the response cache.

:class:`KeyValueStore` is the interface the cache consumes;
:class:`InMemoryStore` and :class:`DiskStore` are the bundled backends.
"""

from bifrost.storage.base import KeyValueStore
from bifrost.storage.disk import DiskStore
from bifrost.storage.memory import InMemoryStore

__all__ = ["KeyValueStore", "DiskStore", "InMemoryStore"]
