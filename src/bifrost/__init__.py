"""bifrost -- a caching repository layer between application code and REST APIs.

Application code describes *what* to read or write (a network-call thunk and
a converter); the :class:`~bifrost.repository.Repository` decides *where* the
data comes from -- the in-memory overlay, the network, or the TTL-stamped
disk cache when offline -- and reports failures through a single
:class:`~bifrost.notifier.SystemNotifier`.

Typical usage::

    memory = MemoryCache()
    repo = Repository(
        store=DiskStore(get_cache_dir() / "store"),
        notifier=LoggingNotifier(),
        connection_checker=StaticConnectionChecker(),
        memory_cache=memory,
    )
    user = await repo.fetch(
        api_request=lambda: api.get("/users/1"),
        from_json=User.model_validate,
        cache_key="user_1",
    )

Modules:
    repository: Fetch/mutate orchestrator.
    cache: TTL-stamped disk tier and in-memory overlay.
    classifier: HTTP status to notification dispatch.
    deserialize: Payload to typed value conversion.
    storage: Key-value store backends.
    client: httpx-based REST transport.
    app: Typer CLI entry point.
"""

__version__ = "0.3.0"
