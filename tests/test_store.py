"""Namespaced store semantics."""

import asyncio

import pytest

from src.core.store import CacheStore, NamespaceCache
from src.models.exceptions import StorageException
from src.models.response import CachedResponse

from conftest import ok


class TestNamespaceCache:
    """Single-namespace behaviour."""

    @pytest.mark.asyncio
    async def test_put_and_match(self):
        cache = NamespaceCache("app-static-v2")
        await cache.put("GET https://app.test/a.js", ok(b"a"))
        hit = await cache.match("GET https://app.test/a.js")
        assert hit.body == b"a"
        assert await cache.match("GET https://app.test/missing.js") is None

    @pytest.mark.asyncio
    async def test_overwrite_keeps_first_insertion_position(self):
        cache = NamespaceCache("ns")
        await cache.put("k1", ok(b"v1"))
        await cache.put("k2", ok(b"x"))
        await cache.put("k1", ok(b"v2"))

        assert await cache.keys() == ["k1", "k2"]
        assert (await cache.match("k1")).body == b"v2"
        assert len(cache) == 2

    @pytest.mark.asyncio
    async def test_matched_entry_headers_are_read_only(self):
        cache = NamespaceCache("ns")
        source_headers = {"Content-Type": "application/json"}
        await cache.put("k", CachedResponse.snapshot(200, b"{}", source_headers))
        source_headers["X-Late"] = "1"

        hit = await cache.match("k")
        with pytest.raises(TypeError):
            hit.headers["x-mutated"] = "1"
        assert dict((await cache.match("k")).headers) == {"content-type": "application/json"}

    @pytest.mark.asyncio
    async def test_rejects_non_snapshot_values(self):
        cache = NamespaceCache("ns")
        with pytest.raises(StorageException):
            await cache.put("k", b"raw bytes")

    @pytest.mark.asyncio
    async def test_delete_reports_presence(self):
        cache = NamespaceCache("ns")
        await cache.put("k", ok())
        assert await cache.delete("k") is True
        assert await cache.delete("k") is False
        assert "k" not in cache

    @pytest.mark.asyncio
    async def test_put_many_preserves_order(self):
        cache = NamespaceCache("ns")
        await cache.put_many({"a": ok(), "b": ok(), "c": ok()})
        assert await cache.keys() == ["a", "b", "c"]


class TestCacheStore:
    """Registry of namespaces."""

    @pytest.mark.asyncio
    async def test_namespaces_created_lazily(self):
        store = CacheStore()
        assert not store.has_namespace("app-api-v2")
        assert await store.get("app-api-v2", "k") is None
        assert store.has_namespace("app-api-v2")

    @pytest.mark.asyncio
    async def test_namespaces_are_independent(self):
        store = CacheStore()
        await store.put("static", "k", ok(b"static"))
        await store.put("dynamic", "k", ok(b"dynamic"))

        assert (await store.get("static", "k")).body == b"static"
        assert (await store.get("dynamic", "k")).body == b"dynamic"
        assert await store.sizes() == {"static": 1, "dynamic": 1}

    @pytest.mark.asyncio
    async def test_concurrent_open_returns_same_namespace(self):
        store = CacheStore()
        caches = await asyncio.gather(*(store.open("ns") for _ in range(10)))
        assert all(c is caches[0] for c in caches)
        assert await store.list_namespaces() == {"ns"}

    @pytest.mark.asyncio
    async def test_delete_on_missing_namespace_does_not_create_it(self):
        store = CacheStore()
        assert await store.delete("ghost", "k") is False
        assert not store.has_namespace("ghost")
        assert await store.size("ghost") == 0

    @pytest.mark.asyncio
    async def test_delete_namespace(self):
        store = CacheStore()
        await store.put("old-static-v1", "k", ok())
        assert await store.delete_namespace("old-static-v1") is True
        assert await store.delete_namespace("old-static-v1") is False
        assert await store.list_namespaces() == set()

    @pytest.mark.asyncio
    async def test_concurrent_writes_to_one_namespace(self):
        store = CacheStore()
        await asyncio.gather(*(store.put("ns", f"k{i}", ok()) for i in range(50)))
        assert await store.size("ns") == 50
