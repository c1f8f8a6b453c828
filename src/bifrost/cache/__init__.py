"""Two-tier response caching for bifrost.

* :class:`ResponseCache` -- raw response bodies with an absolute expiry,
  persisted through any :class:`~bifrost.storage.base.KeyValueStore`.
* :class:`MemoryCache` -- already-deserialized values kept for the lifetime
  of the process and shared by every repository.

Both tiers are consumed by :class:`~bifrost.repository.Repository`.
"""

from bifrost.cache.cache import ResponseCache, utc_now
from bifrost.cache.memory import MemoryCache

__all__ = ["ResponseCache", "MemoryCache", "utc_now"]
