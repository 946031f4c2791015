"""Tests for the prefix-invalidated query cache."""

import asyncio

import pytest

from gql_sdkgen.core.query_cache import QueryCache, canonical_key, key_variables


@pytest.fixture
def cache():
    cache = QueryCache()
    cache.set(("user", "list", {"first": 10}), ["u1", "u2"])
    cache.set(("user", "detail", "u1"), {"id": "u1"})
    cache.set(("post", {"userId": "u1"}, "list", {}), ["p1"])
    cache.set(("post", {"userId": "u2"}, "list", {}), ["p2"])
    return cache


class TestKeys:
    """Tests for key canonicalization."""

    def test_dict_order_does_not_matter(self):
        assert canonical_key(("user", {"a": 1, "b": 2})) == canonical_key(("user", {"b": 2, "a": 1}))

    def test_key_variables(self):
        assert key_variables({"first": 10}) == {"first": 10}
        assert key_variables(None, {"id": True}) == {"select": {"id": True}}
        variables = {"first": 1}
        key_variables(variables, {"id": True})
        assert variables == {"first": 1}


class TestQueryCache:
    """Tests for get/set and invalidation."""

    def test_get(self, cache):
        assert cache.get(("user", "detail", "u1")) == {"id": "u1"}
        assert cache.get(("user", "detail", "u9")) is None
        assert ("user", "list", {"first": 10}) in cache
        assert len(cache) == 4

    def test_invalidate_prefix(self, cache):
        assert cache.invalidate(("user",)) == 2
        assert cache.is_stale(("user", "detail", "u1"))
        assert not cache.is_stale(("post", {"userId": "u1"}, "list", {}))
        # Stale entries keep their data until refetched
        assert cache.get(("user", "detail", "u1")) == {"id": "u1"}

    def test_invalidate_scope(self, cache):
        assert cache.invalidate(("post", {"userId": "u1"})) == 1
        assert cache.is_stale(("post", {"userId": "u1"}, "list", {}))
        assert not cache.is_stale(("post", {"userId": "u2"}, "list", {}))

    def test_prefix_matches_whole_parts(self, cache):
        assert cache.invalidate(("use",)) == 0

    def test_remove(self, cache):
        assert cache.remove(("user", "detail", "u1")) == 1
        assert ("user", "detail", "u1") not in cache
        assert cache.is_stale(("user", "detail", "u1"))

    def test_clear(self, cache):
        cache.clear()
        assert len(cache) == 0


class TestFetch:
    """Tests for QueryCache.fetch."""

    def test_fetches_once(self):
        cache = QueryCache()
        calls = []

        async def fetcher():
            calls.append(1)
            return {"id": "u1"}

        async def run():
            first = await cache.fetch(("user", "detail", "u1"), fetcher)
            second = await cache.fetch(("user", "detail", "u1"), fetcher)
            return first, second

        assert asyncio.run(run()) == ({"id": "u1"}, {"id": "u1"})
        assert len(calls) == 1

    def test_refetches_when_stale(self):
        cache = QueryCache()
        results = iter(["old", "new"])

        async def fetcher():
            return next(results)

        async def run():
            await cache.fetch(("user",), fetcher)
            cache.invalidate(("user",))
            return await cache.fetch(("user",), fetcher)

        assert asyncio.run(run()) == "new"
        assert not cache.is_stale(("user",))
