"""Fetch/mutate orchestrator with offline-tolerant caching.

:class:`Repository` is the class application code talks to. Reads go
through :meth:`Repository.fetch` / :meth:`Repository.fetch_list`, writes
through :meth:`Repository.mutate` / :meth:`Repository.send`. Callers pass a
zero-argument coroutine function that performs the network call and, for
reads, a converter from a JSON object to the target type::

    class UserRepository(Repository):
        def __init__(self, api: RestAPI, **kwargs: Any) -> None:
            super().__init__(**kwargs)
            self.api = api

        async def get_user(self, user_id: str) -> Optional[User]:
            return await self.fetch(
                api_request=lambda: self.api.get(f"/users/{user_id}"),
                from_json=User.model_validate,
                cache_key=f"user_{user_id}",
            )

        async def rename(self, user_id: str, name: str) -> bool:
            return await self.send(
                api_request=lambda: self.api.patch(f"/users/{user_id}", body={"name": name}),
                invalidate_keys=[f"user_{user_id}", "users"],
            )

Read path, in order:

1. **Memory** -- a value already deserialized under the key is returned as
   is; nothing else is touched.
2. **Online** -- the network call runs; a 2xx body is written through to
   the disk cache with the call's TTL.
3. **Offline** -- the disk cache is consulted instead; a valid entry is
   served as if the server had answered 200.
4. The outcome is classified (:mod:`bifrost.classifier`); failures notify
   the :class:`~bifrost.notifier.SystemNotifier` and return ``None``.
5. The body is deserialized and stored in the memory tier.

Failures never raise: callers check for ``None`` (or ``False`` from
:meth:`Repository.send`), and the notifier has already been told why.
"""

from __future__ import annotations

import logging
from datetime import timedelta
from typing import Any, Awaitable, Callable, Iterable, Optional, TypeVar

from bifrost.cache.cache import Clock, ResponseCache
from bifrost.cache.memory import MemoryCache
from bifrost.classifier import RequestResult, classify, dispatch
from bifrost.client.response import TransportResponse, coerce_response
from bifrost.connectivity import ConnectionChecker, StaticConnectionChecker
from bifrost.deserialize import Converter, Deserializer
from bifrost.exceptions import DeserializationError
from bifrost.models import CacheConfig
from bifrost.notifier import NoOpNotifier, SystemNotifier
from bifrost.storage.base import KeyValueStore

logger = logging.getLogger(__name__)

T = TypeVar("T")
R = TypeVar("R")

ApiRequest = Callable[[], Awaitable[Any]]


class Repository:
    """Base repository for REST API calls with caching and deserialization.

    All collaborators are passed in explicitly. Share one
    :class:`~bifrost.cache.memory.MemoryCache` between every repository of an
    application so that invalidation in one is seen by the others.

    Args:
        store: Key-value store backing the disk cache tier.
        notifier: Receives one event per failed request. Defaults to
            :class:`~bifrost.notifier.NoOpNotifier`.
        connection_checker: Decides between network and cache on reads.
            Defaults to always online.
        memory_cache: In-memory tier of deserialized values. A private one
            is created when omitted.
        config: Cache settings (default TTL, namespace, tier switches).
        enable_caching: Override :attr:`enable_caching` for this instance.
        unwrap: Extracts the payload from a response envelope before
            conversion. Subclasses may override :meth:`unwrap_response`
            instead.
        clock: Time source for cache expiry (aware datetimes).
    """

    #: Set to ``False`` in a subclass to disable the disk tier for the whole repository.
    enable_caching: bool = True

    def __init__(
        self,
        store: KeyValueStore,
        notifier: Optional[SystemNotifier] = None,
        connection_checker: Optional[ConnectionChecker] = None,
        memory_cache: Optional[MemoryCache] = None,
        config: Optional[CacheConfig] = None,
        enable_caching: Optional[bool] = None,
        unwrap: Optional[Callable[[Any], Any]] = None,
        clock: Optional[Clock] = None,
    ) -> None:
        self._config = config or CacheConfig()
        self._notifier = notifier or NoOpNotifier()
        self._connection_checker = connection_checker or StaticConnectionChecker()
        self._memory = memory_cache if memory_cache is not None else MemoryCache()
        self._cache = ResponseCache(store, self._config, memory=self._memory, clock=clock)
        self._unwrap = unwrap
        self._deserializer = Deserializer(unwrap=self.unwrap_response)

        if enable_caching is not None:
            self.enable_caching = enable_caching
        else:
            self.enable_caching = type(self).enable_caching and self._config.enabled

    @property
    def cache(self) -> ResponseCache:
        """The disk tier (also evicts the memory tier on invalidation)."""
        return self._cache

    @property
    def memory_cache(self) -> MemoryCache:
        return self._memory

    @property
    def notifier(self) -> SystemNotifier:
        return self._notifier

    @property
    def connection_checker(self) -> ConnectionChecker:
        return self._connection_checker

    def unwrap_response(self, decoded: Any) -> Any:
        """Extract the payload from a decoded response before conversion.

        Override for APIs that wrap their data, e.g.
        ``{"data": {...}, "meta": {...}}``::

            def unwrap_response(self, decoded: Any) -> Any:
                return decoded["data"]

        The default applies the ``unwrap`` constructor argument, or returns
        *decoded* unchanged.
        """
        if self._unwrap is not None:
            return self._unwrap(decoded)
        return decoded

    # ------------------------------------------------------------------ #
    # Read operations
    # ------------------------------------------------------------------ #

    async def fetch(
        self,
        api_request: ApiRequest,
        from_json: Converter[T],
        endpoint: Optional[str] = None,
        cache_key: Optional[str] = None,
        cache_duration: Optional[timedelta] = None,
        use_memory_cache: bool = True,
    ) -> Optional[T]:
        """Fetch a single object.

        Args:
            api_request: Zero-argument coroutine function performing the
                network call. Returns a
                :class:`~bifrost.client.response.TransportResponse`, an
                :class:`httpx.Response`, or ``None`` on transport failure.
            from_json: Converter from a JSON object to ``T``
                (e.g. ``User.model_validate``).
            endpoint: Request path. Used as the cache key when *cache_key*
                is not given.
            cache_key: Explicit cache key.
            cache_duration: TTL of the disk entry written on success.
                Defaults to the configured TTL (one hour).
            use_memory_cache: Read from and populate the memory tier.

        Returns:
            The converted object, or ``None`` if the request failed, the
            device is offline without a valid cache entry, or the payload
            could not be converted.
        """
        return await self._read(
            api_request,
            key=cache_key or endpoint,
            cache_duration=cache_duration,
            use_memory_cache=use_memory_cache,
            convert=lambda decoded: self._deserializer.to_one(decoded, from_json),
        )

    async def fetch_list(
        self,
        api_request: ApiRequest,
        from_json: Converter[T],
        endpoint: Optional[str] = None,
        cache_key: Optional[str] = None,
        cache_duration: Optional[timedelta] = None,
        use_memory_cache: bool = True,
    ) -> Optional[list[T]]:
        """Fetch a list of objects, converting each element in order.

        Takes the same arguments as :meth:`fetch`.

        Returns:
            The converted list, or ``None`` on any failure.
        """
        return await self._read(
            api_request,
            key=cache_key or endpoint,
            cache_duration=cache_duration,
            use_memory_cache=use_memory_cache,
            convert=lambda decoded: self._deserializer.to_many(decoded, from_json),
        )

    # ------------------------------------------------------------------ #
    # Write operations
    # ------------------------------------------------------------------ #

    async def mutate(
        self,
        api_request: ApiRequest,
        from_json: Optional[Converter[T]] = None,
        invalidate_keys: Optional[Iterable[str]] = None,
    ) -> Optional[T]:
        """Send a write request (POST, PUT, PATCH, DELETE).

        Writes always hit the network, whatever the connectivity state. On a
        2xx response every key in *invalidate_keys* is removed from both
        cache tiers before the body is looked at.

        Args:
            api_request: Zero-argument coroutine function performing the call.
            from_json: Optional converter for the response body.
            invalidate_keys: Cache keys made stale by this write.

        Returns:
            The converted response body; ``None`` when the request failed,
            no converter was given, the body is empty, or conversion failed.
        """
        result = await self._execute(api_request)
        if not result.ok:
            return None

        await self._invalidate(invalidate_keys)

        response = result.response
        if from_json is None or response is None or not response.body:
            return None

        try:
            decoded = self._deserializer.decode(response.body)
            return self._deserializer.to_one(decoded, from_json)
        except DeserializationError as exc:
            logger.error("Failed to deserialize mutation response", exc_info=exc)
            return None

    async def send(
        self,
        api_request: ApiRequest,
        invalidate_keys: Optional[Iterable[str]] = None,
    ) -> bool:
        """Send a write request and report whether it succeeded (2xx).

        Use when the response body is not needed.
        """
        result = await self._execute(api_request)
        if result.ok:
            await self._invalidate(invalidate_keys)
        return result.ok

    # ------------------------------------------------------------------ #
    # Cache maintenance
    # ------------------------------------------------------------------ #

    async def clear_cache(self, key: str) -> None:
        """Remove *key* from both cache tiers."""
        await self._cache.invalidate(key)

    async def clear_all_cache(self) -> None:
        """Remove every bifrost cache entry, leaving other stored data untouched."""
        await self._cache.invalidate_all()

    def clear_memory_cache(self) -> None:
        """Drop every deserialized value so the next fetch decodes afresh."""
        self._memory.clear()

    # ------------------------------------------------------------------ #
    # Private helpers
    # ------------------------------------------------------------------ #

    async def _read(
        self,
        api_request: ApiRequest,
        key: Optional[str],
        cache_duration: Optional[timedelta],
        use_memory_cache: bool,
        convert: Callable[[Any], R],
    ) -> Optional[R]:
        use_memory = use_memory_cache and self._config.use_memory_cache and key is not None
        if use_memory:
            try:
                cached = self._memory[key]
            except KeyError:
                pass
            else:
                logger.debug("Memory cache hit for key: %s", key)
                return cached

        should_cache = self.enable_caching and key is not None
        response = await self._make_request(api_request, key, cache_duration, should_cache)

        result = classify(response)
        dispatch(result, self._notifier)
        if not result.ok or result.response is None:
            return None

        try:
            decoded = self._deserializer.decode(result.response.body)
            value = convert(decoded)
        except DeserializationError as exc:
            logger.error("Failed to deserialize response for key: %s", key, exc_info=exc)
            return None

        if use_memory:
            self._memory.set(key, value)
        return value

    async def _make_request(
        self,
        api_request: ApiRequest,
        key: Optional[str],
        cache_duration: Optional[timedelta],
        should_cache: bool,
    ) -> Optional[TransportResponse]:
        """Run the network call when online, or fall back to the disk cache."""
        if self._connection_checker.is_connected:
            response = coerce_response(await api_request())
            if should_cache and key is not None and response is not None and response.is_success:
                await self._cache.put(key, response.body, cache_duration)
            return response

        if not should_cache or key is None:
            logger.warning("Offline and caching disabled")
            return None

        logger.info("Offline - checking cache for key: %s", key)
        body = await self._cache.get(key)
        if body is None:
            logger.warning("No cached data available for key: %s", key)
            return None

        logger.info("Returning cached data for key: %s", key)
        return TransportResponse(status_code=200, body=body)

    async def _execute(self, api_request: ApiRequest) -> RequestResult:
        result = classify(coerce_response(await api_request()))
        dispatch(result, self._notifier)
        return result

    async def _invalidate(self, keys: Optional[Iterable[str]]) -> None:
        for key in keys or ():
            await self._cache.invalidate(key)
