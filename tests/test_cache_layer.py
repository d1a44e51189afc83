from __future__ import annotations

import asyncio

import pytest
from pydantic import TypeAdapter

from app.cache.layer import CacheLayer
from app.core.deadline import with_deadline
from app.core.errors import CacheUnavailableError, RequestTimeoutError

ITEMS = TypeAdapter(list[dict])


def counting_loader(value, delay: float = 0.0):
    calls = {"n": 0}

    async def loader():
        calls["n"] += 1
        if delay:
            await asyncio.sleep(delay)
        return value

    return loader, calls


@pytest.mark.asyncio
async def test_miss_loads_and_populates_then_hits(cache_layer, cache_client) -> None:
    loader, calls = counting_loader([{"title": "buy milk"}])

    first = await cache_layer.get("tasks:u1", loader, ITEMS)
    second = await cache_layer.get("tasks:u1", loader, ITEMS)

    assert first == second == [{"title": "buy milk"}]
    assert calls["n"] == 1
    assert await cache_client.get("tasks:u1") == '[{"title":"buy milk"}]'
    assert cache_layer.stats["hits"] == 1
    assert cache_layer.stats["misses"] == 1


@pytest.mark.asyncio
async def test_empty_result_is_cached(cache_layer) -> None:
    loader, calls = counting_loader([])

    assert await cache_layer.get("tasks:u1", loader, ITEMS) == []
    assert await cache_layer.get("tasks:u1", loader, ITEMS) == []
    assert calls["n"] == 1


@pytest.mark.asyncio
async def test_not_found_is_not_cached(cache_layer, cache_client) -> None:
    loader, calls = counting_loader(None)
    adapter = TypeAdapter(dict)

    assert await cache_layer.get("task:x", loader, adapter) is None
    assert await cache_layer.get("task:x", loader, adapter) is None
    assert calls["n"] == 2
    assert cache_client.calls["set"] == 0


@pytest.mark.asyncio
async def test_concurrent_misses_issue_one_load(cache_layer) -> None:
    loader, calls = counting_loader([{"title": "a"}], delay=0.02)

    results = await asyncio.gather(
        *(cache_layer.get("tasks:u1", loader, ITEMS) for _ in range(20))
    )

    assert calls["n"] == 1
    assert all(r == [{"title": "a"}] for r in results)
    assert len(cache_layer.guard) == 0


@pytest.mark.asyncio
async def test_lookup_error_is_raised_without_loading(cache_layer, cache_client) -> None:
    cache_client.fail_get = True
    loader, calls = counting_loader([{"title": "a"}])

    with pytest.raises(CacheUnavailableError):
        await cache_layer.get("tasks:u1", loader, ITEMS)

    assert calls["n"] == 0
    assert cache_layer.stats["errors"] == 1


@pytest.mark.asyncio
async def test_populate_failure_does_not_fail_read(cache_layer, cache_client, caplog) -> None:
    cache_client.fail_set = True
    loader, calls = counting_loader([{"title": "a"}])

    with caplog.at_level("WARNING", logger="app.cache.layer"):
        result = await cache_layer.get("tasks:u1", loader, ITEMS)

    assert result == [{"title": "a"}]
    assert cache_layer.stats["populate_errors"] == 1
    assert any(getattr(r, "cache_key", None) == "tasks:u1" for r in caplog.records)


@pytest.mark.asyncio
async def test_invalidate_failure_is_counted_not_raised(cache_layer, cache_client) -> None:
    cache_client.fail_delete = True

    await cache_layer.delete("tasks:u1", "task:1")

    assert cache_layer.stats["invalidate_errors"] == 1


@pytest.mark.asyncio
async def test_entry_expires_after_ttl(cache_layer, clock) -> None:
    loader, calls = counting_loader([{"title": "a"}])

    await cache_layer.get("tasks:u1", loader, ITEMS)
    clock.advance(599)
    await cache_layer.get("tasks:u1", loader, ITEMS)
    assert calls["n"] == 1

    clock.advance(2)
    await cache_layer.get("tasks:u1", loader, ITEMS)
    assert calls["n"] == 2


@pytest.mark.asyncio
async def test_undecodable_entry_is_treated_as_miss(cache_layer, cache_client) -> None:
    await cache_client.set("tasks:u1", "not json", 600)
    loader, calls = counting_loader([{"title": "a"}])

    assert await cache_layer.get("tasks:u1", loader, ITEMS) == [{"title": "a"}]
    assert calls["n"] == 1


@pytest.mark.asyncio
async def test_namespace_prefixes_keys(cache_client) -> None:
    layer = CacheLayer(cache_client, ttl=600, namespace="appcache:")
    loader, _ = counting_loader([])

    await layer.get("tasks:u1", loader, ITEMS)
    assert await cache_client.get("appcache:tasks:u1") == "[]"

    await layer.delete("tasks:u1")
    assert await cache_client.get("appcache:tasks:u1") is None


@pytest.mark.asyncio
async def test_deadline_releases_guard(cache_layer) -> None:
    loader, _ = counting_loader([], delay=1)

    with pytest.raises(RequestTimeoutError):
        await with_deadline(cache_layer.get("tasks:u1", loader, ITEMS), 0.05)

    assert len(cache_layer.guard) == 0
    fast, calls = counting_loader([{"title": "b"}])
    assert await cache_layer.get("tasks:u1", fast, ITEMS) == [{"title": "b"}]
    assert calls["n"] == 1
