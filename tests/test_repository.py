"""Tests for the Repository fetch/mutate orchestrator."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from datetime import timedelta
from typing import Any, Optional

import httpx
import pytest

from bifrost.client import TransportResponse
from bifrost.connectivity import StaticConnectionChecker
from bifrost.models import CacheConfig
from bifrost.repository import Repository
from bifrost.storage import InMemoryStore


@dataclass
class Model:
    name: str
    age: int = 0

    @classmethod
    def from_json(cls, data: Any) -> Model:
        return cls(name=data["name"], age=data.get("age", 0))


class FakeApi:
    """Scripted network thunk that counts its calls."""

    def __init__(self, *responses: Optional[Any]) -> None:
        self.responses = list(responses)
        self.calls = 0

    async def __call__(self) -> Optional[Any]:
        self.calls += 1
        if len(self.responses) > 1:
            return self.responses.pop(0)
        return self.responses[0]


def ok(payload: Any, status: int = 200) -> TransportResponse:
    return TransportResponse(status, json.dumps(payload))


ADA = {"name": "Ada", "age": 36}


# ------------------------------------------------------------------ #
# Online reads
# ------------------------------------------------------------------ #


class TestFetchOnline:
    @pytest.mark.asyncio
    async def test_success_returns_value_and_writes_through(
        self, repo: Repository, store, notifier
    ) -> None:
        api = FakeApi(ok(ADA))
        result = await repo.fetch(api, Model.from_json, endpoint="/users/1")
        assert result == Model("Ada", 36)
        assert store.data["bifrost_cache:data:/users/1"] == json.dumps(ADA)
        assert "bifrost_cache:exp:/users/1" in store.data
        assert notifier.events == []

    @pytest.mark.asyncio
    async def test_cache_key_wins_over_endpoint(self, repo: Repository, store) -> None:
        await repo.fetch(FakeApi(ok(ADA)), Model.from_json, endpoint="/users/1", cache_key="user_1")
        assert "bifrost_cache:data:user_1" in store.data
        assert "bifrost_cache:data:/users/1" not in store.data

    @pytest.mark.asyncio
    async def test_cache_duration_sets_expiry(self, repo: Repository, clock) -> None:
        await repo.fetch(
            FakeApi(ok(ADA)), Model.from_json, cache_key="k", cache_duration=timedelta(minutes=5)
        )
        entry = await repo.cache.entry("k")
        assert entry.expires_at == clock.now + timedelta(minutes=5)

    @pytest.mark.asyncio
    async def test_no_key_means_no_caching(self, repo: Repository, store, memory_cache) -> None:
        result = await repo.fetch(FakeApi(ok(ADA)), Model.from_json)
        assert result == Model("Ada", 36)
        assert store.data == {}
        assert len(memory_cache) == 0

    @pytest.mark.asyncio
    async def test_online_ignores_existing_cache(self, repo: Repository) -> None:
        await repo.cache.put("k", json.dumps({"name": "Stale"}))
        api = FakeApi(ok(ADA))
        result = await repo.fetch(api, Model.from_json, cache_key="k", use_memory_cache=False)
        assert result.name == "Ada"
        assert api.calls == 1

    @pytest.mark.asyncio
    async def test_accepts_httpx_response(self, repo: Repository) -> None:
        api = FakeApi(httpx.Response(200, json=ADA))
        assert await repo.fetch(api, Model.from_json, cache_key="k") == Model("Ada", 36)


# ------------------------------------------------------------------ #
# Failures
# ------------------------------------------------------------------ #


class TestFetchFailures:
    @pytest.mark.asyncio
    async def test_server_error_notifies_and_does_not_cache(
        self, repo: Repository, store, notifier
    ) -> None:
        result = await repo.fetch(
            FakeApi(TransportResponse(503, "maintenance")), Model.from_json, cache_key="k"
        )
        assert result is None
        assert notifier.events == [("server_error", (503, "maintenance"))]
        assert store.data == {}

    @pytest.mark.asyncio
    async def test_error_keeps_previous_cache(self, repo: Repository) -> None:
        await repo.cache.put("k", json.dumps(ADA))
        await repo.fetch(FakeApi(TransportResponse(500, "x")), Model.from_json, cache_key="k")
        assert await repo.cache.get("k") == json.dumps(ADA)

    @pytest.mark.asyncio
    async def test_transport_failure(self, repo: Repository, notifier) -> None:
        assert await repo.fetch(FakeApi(None), Model.from_json, cache_key="k") is None
        assert notifier.names == ["network_error"]

    @pytest.mark.asyncio
    async def test_unauthorized(self, repo: Repository, notifier) -> None:
        await repo.fetch(FakeApi(TransportResponse(401)), Model.from_json, cache_key="k")
        assert notifier.names == ["unauthorized"]

    @pytest.mark.asyncio
    async def test_not_found(self, repo: Repository, notifier) -> None:
        await repo.fetch(FakeApi(TransportResponse(404, "nope")), Model.from_json, cache_key="k")
        assert notifier.events == [("api_error", (404, "nope"))]

    @pytest.mark.asyncio
    async def test_bad_payload_returns_none_but_body_stays_cached(
        self, repo: Repository, notifier, memory_cache, caplog
    ) -> None:
        caplog.set_level(logging.ERROR, logger="bifrost.repository")
        api = FakeApi(TransportResponse(200, '{"unexpected": true}'))
        assert await repo.fetch(api, Model.from_json, cache_key="k") is None
        assert notifier.events == []
        assert "k" not in memory_cache
        assert await repo.cache.get("k") == '{"unexpected": true}'
        assert "Failed to deserialize response for key: k" in caplog.text

    @pytest.mark.asyncio
    async def test_invalid_json(self, repo: Repository) -> None:
        api = FakeApi(TransportResponse(200, "<html>oops</html>"))
        assert await repo.fetch(api, Model.from_json, cache_key="k") is None


# ------------------------------------------------------------------ #
# Offline reads
# ------------------------------------------------------------------ #


class TestFetchOffline:
    @pytest.mark.asyncio
    async def test_serves_valid_cache_without_network(
        self, repo: Repository, connectivity: StaticConnectionChecker, notifier
    ) -> None:
        await repo.cache.put("k", json.dumps(ADA))
        connectivity.connected = False
        api = FakeApi(ok({"name": "Fresh"}))

        result = await repo.fetch(api, Model.from_json, cache_key="k")

        assert result == Model("Ada", 36)
        assert api.calls == 0
        assert notifier.events == []

    @pytest.mark.asyncio
    async def test_miss_is_network_error(
        self, repo: Repository, connectivity: StaticConnectionChecker, notifier
    ) -> None:
        connectivity.connected = False
        api = FakeApi(ok(ADA))
        assert await repo.fetch(api, Model.from_json, cache_key="k") is None
        assert api.calls == 0
        assert notifier.names == ["network_error"]

    @pytest.mark.asyncio
    async def test_expired_entry_is_a_miss_and_purged(
        self, repo: Repository, connectivity, clock, store, notifier
    ) -> None:
        await repo.cache.put("k", json.dumps(ADA), timedelta(seconds=10))
        clock.advance(seconds=10)
        connectivity.connected = False

        assert await repo.fetch(FakeApi(ok(ADA)), Model.from_json, cache_key="k") is None
        assert notifier.names == ["network_error"]
        assert store.data == {}

    @pytest.mark.asyncio
    async def test_without_key(self, repo: Repository, connectivity, notifier) -> None:
        connectivity.connected = False
        assert await repo.fetch(FakeApi(ok(ADA)), Model.from_json) is None
        assert notifier.names == ["network_error"]

    @pytest.mark.asyncio
    async def test_caching_disabled(self, store, notifier, clock) -> None:
        repo = Repository(
            store,
            notifier=notifier,
            connection_checker=StaticConnectionChecker(False),
            enable_caching=False,
            clock=clock,
        )
        await repo.cache.put("k", json.dumps(ADA))
        assert await repo.fetch(FakeApi(ok(ADA)), Model.from_json, cache_key="k") is None
        assert notifier.names == ["network_error"]


# ------------------------------------------------------------------ #
# Memory tier
# ------------------------------------------------------------------ #


class TestMemoryTier:
    @pytest.mark.asyncio
    async def test_second_fetch_is_served_from_memory(self, repo: Repository) -> None:
        api = FakeApi(ok(ADA))
        first = await repo.fetch(api, Model.from_json, cache_key="k")
        second = await repo.fetch(api, Model.from_json, cache_key="k")
        assert api.calls == 1
        assert second is first

    @pytest.mark.asyncio
    async def test_memory_wins_even_offline(self, repo: Repository, connectivity, store) -> None:
        await repo.fetch(FakeApi(ok(ADA)), Model.from_json, cache_key="k")
        await store.clear()
        connectivity.connected = False
        assert await repo.fetch(FakeApi(None), Model.from_json, cache_key="k") == Model("Ada", 36)

    @pytest.mark.asyncio
    async def test_per_call_opt_out(self, repo: Repository, memory_cache) -> None:
        api = FakeApi(ok(ADA))
        await repo.fetch(api, Model.from_json, cache_key="k", use_memory_cache=False)
        await repo.fetch(api, Model.from_json, cache_key="k", use_memory_cache=False)
        assert api.calls == 2
        assert "k" not in memory_cache

    @pytest.mark.asyncio
    async def test_config_opt_out(self, store, memory_cache) -> None:
        repo = Repository(
            store, memory_cache=memory_cache, config=CacheConfig(use_memory_cache=False)
        )
        await repo.fetch(FakeApi(ok(ADA)), Model.from_json, cache_key="k")
        assert len(memory_cache) == 0

    @pytest.mark.asyncio
    async def test_shared_between_repositories(self, store, memory_cache) -> None:
        first = Repository(store, memory_cache=memory_cache)
        second = Repository(InMemoryStore(), memory_cache=memory_cache)
        await first.fetch(FakeApi(ok(ADA)), Model.from_json, cache_key="k")
        api = FakeApi(ok({"name": "Other"}))
        assert await second.fetch(api, Model.from_json, cache_key="k") == Model("Ada", 36)
        assert api.calls == 0

    @pytest.mark.asyncio
    async def test_clear_memory_cache_forces_decode(self, repo: Repository) -> None:
        api = FakeApi(ok(ADA), ok({"name": "Grace"}))
        await repo.fetch(api, Model.from_json, cache_key="k")
        repo.clear_memory_cache()
        assert (await repo.fetch(api, Model.from_json, cache_key="k")).name == "Grace"


# ------------------------------------------------------------------ #
# Lists
# ------------------------------------------------------------------ #


class TestFetchList:
    @pytest.mark.asyncio
    async def test_list_in_order(self, repo: Repository) -> None:
        api = FakeApi(ok([{"name": "b"}, {"name": "a"}]))
        result = await repo.fetch_list(api, Model.from_json, endpoint="/users")
        assert result == [Model("b"), Model("a")]

    @pytest.mark.asyncio
    async def test_empty_list(self, repo: Repository) -> None:
        assert await repo.fetch_list(FakeApi(ok([])), Model.from_json, cache_key="k") == []

    @pytest.mark.asyncio
    async def test_object_body_is_a_failure(self, repo: Repository, notifier) -> None:
        assert await repo.fetch_list(FakeApi(ok(ADA)), Model.from_json, cache_key="k") is None
        assert notifier.events == []

    @pytest.mark.asyncio
    async def test_offline_list(self, repo: Repository, connectivity) -> None:
        await repo.cache.put("users", json.dumps([ADA]))
        connectivity.connected = False
        assert await repo.fetch_list(FakeApi(None), Model.from_json, cache_key="users") == [
            Model("Ada", 36)
        ]


# ------------------------------------------------------------------ #
# Unwrap
# ------------------------------------------------------------------ #


class TestUnwrap:
    @pytest.mark.asyncio
    async def test_unwrap_argument(self, store) -> None:
        repo = Repository(store, unwrap=lambda decoded: decoded["data"])
        api = FakeApi(ok({"data": ADA, "meta": {}}))
        assert await repo.fetch(api, Model.from_json, cache_key="k") == Model("Ada", 36)

    @pytest.mark.asyncio
    async def test_unwrap_override(self, store) -> None:
        class EnvelopeRepository(Repository):
            def unwrap_response(self, decoded: Any) -> Any:
                return decoded["items"]

        repo = EnvelopeRepository(store)
        api = FakeApi(ok({"items": [ADA]}))
        assert await repo.fetch_list(api, Model.from_json, cache_key="k") == [Model("Ada", 36)]

    @pytest.mark.asyncio
    async def test_cache_holds_raw_envelope(self, store) -> None:
        repo = Repository(store, unwrap=lambda decoded: decoded["data"])
        await repo.fetch(FakeApi(ok({"data": ADA})), Model.from_json, cache_key="k")
        assert json.loads(await repo.cache.get("k")) == {"data": ADA}


# ------------------------------------------------------------------ #
# Caching switches
# ------------------------------------------------------------------ #


class TestCachingSwitches:
    @pytest.mark.asyncio
    async def test_class_attribute(self, store) -> None:
        class UncachedRepository(Repository):
            enable_caching = False

        repo = UncachedRepository(store)
        await repo.fetch(FakeApi(ok(ADA)), Model.from_json, cache_key="k")
        assert repo.enable_caching is False
        assert store.data == {}

    @pytest.mark.asyncio
    async def test_config_disabled(self, store) -> None:
        repo = Repository(store, config=CacheConfig(enabled=False))
        await repo.fetch(FakeApi(ok(ADA)), Model.from_json, cache_key="k")
        assert store.data == {}

    def test_explicit_argument_wins(self, store) -> None:
        repo = Repository(store, config=CacheConfig(enabled=False), enable_caching=True)
        assert repo.enable_caching is True


# ------------------------------------------------------------------ #
# Writes
# ------------------------------------------------------------------ #


class TestMutate:
    @pytest.mark.asyncio
    async def test_invalidates_before_returning(
        self, repo: Repository, store, memory_cache
    ) -> None:
        await repo.fetch_list(FakeApi(ok([ADA])), dict, cache_key="users")
        await repo.cache.put("user_1", json.dumps(ADA))
        await repo.cache.put("other", "{}")

        result = await repo.mutate(
            FakeApi(ok({"name": "Ada", "age": 37})),
            Model.from_json,
            invalidate_keys=["users", "user_1"],
        )

        assert result == Model("Ada", 37)
        assert await repo.cache.get("users") is None
        assert await repo.cache.get("user_1") is None
        assert "users" not in memory_cache
        assert await repo.cache.get("other") == "{}"

    @pytest.mark.asyncio
    async def test_invalidates_even_when_conversion_fails(self, repo: Repository) -> None:
        await repo.cache.put("k", "{}")
        result = await repo.mutate(
            FakeApi(TransportResponse(200, "not json")), Model.from_json, invalidate_keys=["k"]
        )
        assert result is None
        assert await repo.cache.get("k") is None

    @pytest.mark.asyncio
    async def test_failure_keeps_cache(self, repo: Repository, notifier) -> None:
        await repo.cache.put("k", "{}")
        result = await repo.mutate(
            FakeApi(TransportResponse(409, "conflict")), Model.from_json, invalidate_keys=["k"]
        )
        assert result is None
        assert notifier.events == [("api_error", (409, "conflict"))]
        assert await repo.cache.get("k") == "{}"

    @pytest.mark.asyncio
    async def test_runs_even_offline(self, repo: Repository, connectivity, notifier) -> None:
        connectivity.connected = False
        api = FakeApi(None)
        assert await repo.mutate(api, Model.from_json) is None
        assert api.calls == 1
        assert notifier.names == ["network_error"]

    @pytest.mark.asyncio
    async def test_without_converter(self, repo: Repository) -> None:
        assert await repo.mutate(FakeApi(ok(ADA))) is None

    @pytest.mark.asyncio
    async def test_empty_body(self, repo: Repository) -> None:
        assert await repo.mutate(FakeApi(TransportResponse(204, "")), Model.from_json) is None

    @pytest.mark.asyncio
    async def test_never_writes_cache(self, repo: Repository, store) -> None:
        await repo.mutate(FakeApi(ok(ADA)), Model.from_json)
        assert store.data == {}


class TestSend:
    @pytest.mark.asyncio
    async def test_success(self, repo: Repository) -> None:
        await repo.cache.put("k", "{}")
        assert await repo.send(FakeApi(TransportResponse(204)), invalidate_keys=["k"]) is True
        assert await repo.cache.get("k") is None

    @pytest.mark.asyncio
    async def test_failure(self, repo: Repository, notifier) -> None:
        await repo.cache.put("k", "{}")
        assert await repo.send(FakeApi(TransportResponse(403)), invalidate_keys=["k"]) is False
        assert notifier.names == ["forbidden"]
        assert await repo.cache.get("k") == "{}"

    @pytest.mark.asyncio
    async def test_offline_read_after_partial_invalidation_is_a_miss(
        self, notifier, connectivity, memory_cache, clock
    ) -> None:
        class DataRemovalFails(InMemoryStore):
            async def remove(self, key: str) -> None:
                if ":data:" in key:
                    raise OSError("read-only")
                await super().remove(key)

        repo = Repository(
            store=DataRemovalFails(),
            notifier=notifier,
            connection_checker=connectivity,
            memory_cache=memory_cache,
            clock=clock,
        )
        await repo.cache.put("list", json.dumps({"name": "stale"}))
        assert await repo.send(FakeApi(TransportResponse(200)), invalidate_keys=["list"]) is True

        connectivity.connected = False
        assert await repo.fetch(FakeApi(None), Model.from_json, cache_key="list") is None


# ------------------------------------------------------------------ #
# Maintenance
# ------------------------------------------------------------------ #


class TestMaintenance:
    @pytest.mark.asyncio
    async def test_clear_cache(self, repo: Repository, memory_cache) -> None:
        await repo.fetch(FakeApi(ok(ADA)), Model.from_json, cache_key="k")
        await repo.clear_cache("k")
        assert await repo.cache.get("k") is None
        assert "k" not in memory_cache

    @pytest.mark.asyncio
    async def test_clear_all_cache_spares_other_data(self, repo: Repository, store) -> None:
        store.data["auth_token"] = "secret"
        await repo.fetch(FakeApi(ok(ADA)), Model.from_json, cache_key="a")
        await repo.fetch(FakeApi(ok(ADA)), Model.from_json, cache_key="b")
        await repo.clear_all_cache()
        assert store.data == {"auth_token": "secret"}
        assert len(repo.memory_cache) == 0


# ------------------------------------------------------------------ #
# Odin walkthrough
# ------------------------------------------------------------------ #


class TestOdinWalkthrough:
    @pytest.mark.asyncio
    async def test_online_fetch_caches_for_an_hour(self, repo: Repository, clock) -> None:
        body = json.dumps({"name": "Odin", "age": 1000})
        result = await repo.fetch(FakeApi(TransportResponse(200, body)), Model.from_json, cache_key="odin")
        assert result == Model("Odin", 1000)
        entry = await repo.cache.entry("odin")
        assert entry.body == body
        assert entry.expires_at == clock.now + timedelta(hours=1)

    @pytest.mark.asyncio
    async def test_offline_fetch_uses_cached_odin(self, repo: Repository, connectivity) -> None:
        await repo.cache.put("odin", json.dumps({"name": "Cached Odin"}), timedelta(hours=1))
        connectivity.connected = False
        api = FakeApi(ok({"name": "Odin"}))
        assert await repo.fetch(api, Model.from_json, cache_key="odin") == Model("Cached Odin")
        assert api.calls == 0

    @pytest.mark.asyncio
    async def test_offline_fetch_with_stale_odin(self, repo: Repository, connectivity, clock) -> None:
        await repo.cache.put("odin", json.dumps({"name": "Cached Odin"}), timedelta(hours=1))
        clock.advance(hours=2)
        connectivity.connected = False
        assert await repo.fetch(FakeApi(None), Model.from_json, cache_key="odin") is None

    @pytest.mark.asyncio
    async def test_failed_mutation_leaves_list_cached(self, repo: Repository) -> None:
        await repo.cache.put("list", "[]")
        result = await repo.mutate(
            FakeApi(TransportResponse(500, "err")), Model.from_json, invalidate_keys=["list"]
        )
        assert result is None
        assert await repo.cache.get("list") == "[]"
