"""Per-class strategies resolved through the policy engine."""

import asyncio

import pytest

from src.core.policies import PolicyEngine, DynamicAssetStrategy, StaleWhileRevalidateStrategy
from src.core.store import CacheStore
from src.models.config import CacheConfig
from src.models.exceptions import StorageException
from src.models.response import Request, ResponseSource
from src.models.traffic import TrafficClass
from src.utils.tasks import BackgroundTasks

from conftest import FakeFetcher, ok, url, key


class BrokenStore(CacheStore):
    """Reads and writes always fail."""

    async def get(self, namespace, key):
        raise StorageException("disk gone", namespace=namespace, key=key)

    async def put(self, namespace, key, entry):
        raise StorageException("disk gone", namespace=namespace, key=key)


def engine_for(config, fetcher, store=None):
    store = store or CacheStore()
    tasks = BackgroundTasks()
    return PolicyEngine(store, fetcher, config, tasks=tasks), store, tasks


class TestStaticStrategy:
    """Cache-first for the static namespace."""

    @pytest.mark.asyncio
    async def test_hit_skips_network(self, config, fetcher):
        engine, store, _ = engine_for(config, fetcher)
        await store.put(config.static_cache, key("/main.js"), ok(b"cached js"))

        response = await engine.resolve(Request(url("/main.js")), TrafficClass.STATIC_ASSET)

        assert response.body == b"cached js"
        assert response.source is ResponseSource.CACHE
        assert fetcher.calls == []

    @pytest.mark.asyncio
    async def test_miss_fetches_and_stores(self, config, fetcher):
        fetcher.respond(url("/main.js"), b"fresh js")
        engine, store, tasks = engine_for(config, fetcher)

        response = await engine.resolve(Request(url("/main.js")), TrafficClass.STATIC_ASSET)
        await tasks.drain(1.0)

        assert response.body == b"fresh js"
        assert response.source is ResponseSource.NETWORK
        assert (await store.get(config.static_cache, key("/main.js"))).body == b"fresh js"

        again = await engine.resolve(Request(url("/main.js")), TrafficClass.STATIC_ASSET)
        assert again.source is ResponseSource.CACHE
        assert fetcher.calls == [url("/main.js")]

    @pytest.mark.asyncio
    async def test_non_200_returned_but_not_stored(self, config, fetcher):
        fetcher.respond(url("/missing.js"), b"nope", status=404)
        engine, store, tasks = engine_for(config, fetcher)

        response = await engine.resolve(Request(url("/missing.js")), TrafficClass.STATIC_ASSET)
        await tasks.drain(1.0)

        assert response.status == 404
        assert response.body == b"nope"
        assert response.source is ResponseSource.NETWORK
        assert await store.size(config.static_cache) == 0

    @pytest.mark.asyncio
    async def test_returned_headers_cannot_alter_stored_entry(self, config, fetcher):
        fetcher.respond(url("/main.js"), b"fresh js")
        engine, store, tasks = engine_for(config, fetcher)

        first = await engine.resolve(Request(url("/main.js")), TrafficClass.STATIC_ASSET)
        await tasks.drain(1.0)

        with pytest.raises(TypeError):
            first.headers["x-mutated"] = "1"
        stored = await store.get(config.static_cache, key("/main.js"))
        assert "x-mutated" not in stored.headers
        assert stored.header("content-type") == "text/plain"

    @pytest.mark.asyncio
    async def test_network_failure_falls_back_to_404(self, config, fetcher):
        engine, _, _ = engine_for(config, fetcher)

        response = await engine.resolve(Request(url("/main.js")), TrafficClass.STATIC_ASSET)

        assert response.status == 404
        assert response.text() == "Asset not available"
        assert response.source is ResponseSource.FALLBACK

    @pytest.mark.asyncio
    async def test_timeout_counts_as_network_failure(self, fetcher):
        config = CacheConfig(origin="https://app.test", fetch_timeout=0.05)
        fetcher.hang(url("/main.js"))
        engine, _, _ = engine_for(config, fetcher)

        response = await engine.resolve(Request(url("/main.js")), TrafficClass.STATIC_ASSET)

        assert response.status == 404
        assert response.source is ResponseSource.FALLBACK


class TestDynamicStrategy:
    """Cache-first with size-bounded writes."""

    @pytest.mark.asyncio
    async def test_write_enforces_limit(self, config, fetcher):
        engine, store, tasks = engine_for(config, fetcher)
        for i in range(5):
            fetcher.respond(url(f"/data/{i}.json"), str(i).encode())
            await engine.resolve(Request(url(f"/data/{i}.json")), TrafficClass.DYNAMIC_ASSET)
            await tasks.drain(1.0)

        keys = await store.keys(config.dynamic_cache)
        assert keys == [key("/data/2.json"), key("/data/3.json"), key("/data/4.json")]

    @pytest.mark.asyncio
    async def test_failure_falls_back_to_404(self, config, fetcher):
        engine, _, _ = engine_for(config, fetcher)

        response = await engine.resolve(Request(url("/data/x.json")), TrafficClass.DYNAMIC_ASSET)

        assert response.status == 404
        assert response.text() == "Resource not available"

    def test_strategy_targets_dynamic_namespace(self, config, fetcher):
        strategy = DynamicAssetStrategy(CacheStore(), fetcher, config)
        assert strategy.namespace == config.dynamic_cache
        assert strategy.max_entries == config.max_dynamic_entries


class TestStaleWhileRevalidate:
    """API traffic."""

    @pytest.mark.asyncio
    async def test_hit_does_not_wait_for_network(self, config, fetcher):
        fetcher.hang(url("/api/user"))
        engine, store, tasks = engine_for(config, fetcher)
        await store.put(config.api_cache, key("/api/user"), ok(b'{"name": "cached"}'))

        response = await asyncio.wait_for(
            engine.resolve(Request(url("/api/user")), TrafficClass.API_REQUEST),
            timeout=1.0,
        )

        assert response.body == b'{"name": "cached"}'
        assert response.source is ResponseSource.CACHE
        assert tasks.pending == 1
        tasks.cancel_all()
        await tasks.drain(1.0)

    @pytest.mark.asyncio
    async def test_hit_refreshes_cache_in_background(self, config, fetcher):
        fetcher.respond(url("/api/user"), b"new")
        engine, store, tasks = engine_for(config, fetcher)
        await store.put(config.api_cache, key("/api/user"), ok(b"old"))

        response = await engine.resolve(Request(url("/api/user")), TrafficClass.API_REQUEST)
        assert response.body == b"old"

        await tasks.drain(1.0)
        assert (await store.get(config.api_cache, key("/api/user"))).body == b"new"
        assert fetcher.calls == [url("/api/user")]

    @pytest.mark.asyncio
    async def test_miss_waits_for_network(self, config, fetcher):
        fetcher.respond(url("/api/user"), b"live")
        engine, store, tasks = engine_for(config, fetcher)

        response = await engine.resolve(Request(url("/api/user")), TrafficClass.API_REQUEST)
        await tasks.drain(1.0)

        assert response.body == b"live"
        assert response.source is ResponseSource.NETWORK
        assert await store.size(config.api_cache) == 1

    @pytest.mark.asyncio
    async def test_miss_with_network_failure_returns_503(self, config, fetcher):
        engine, _, _ = engine_for(config, fetcher)

        response = await engine.resolve(Request(url("/api/user")), TrafficClass.API_REQUEST)

        assert response.status == 503
        assert response.text() == "API not available"

    @pytest.mark.asyncio
    async def test_miss_with_server_error_returns_it_uncached(self, config, fetcher):
        fetcher.respond(url("/api/user"), b"boom", status=500)
        engine, store, tasks = engine_for(config, fetcher)

        response = await engine.resolve(Request(url("/api/user")), TrafficClass.API_REQUEST)
        await tasks.drain(1.0)

        assert response.status == 500
        assert response.source is ResponseSource.NETWORK
        assert await store.size(config.api_cache) == 0

    @pytest.mark.asyncio
    async def test_refresh_enforces_api_limit(self, config, fetcher):
        engine, store, tasks = engine_for(config, fetcher)
        for i in range(4):
            fetcher.respond(url(f"/api/items/{i}"), b"x")
            await engine.resolve(Request(url(f"/api/items/{i}")), TrafficClass.API_REQUEST)
        await tasks.drain(1.0)

        assert await store.keys(config.api_cache) == [key("/api/items/2"), key("/api/items/3")]

    def test_strategy_targets_api_namespace(self, config, fetcher):
        strategy = StaleWhileRevalidateStrategy(CacheStore(), fetcher, config)
        assert strategy.namespace == config.api_cache
        assert strategy.max_entries == 2


class TestNetworkFirst:
    """Navigation requests."""

    @pytest.mark.asyncio
    async def test_always_prefers_network(self, config, fetcher):
        fetcher.respond(url("/dashboard"), b"<html>live</html>")
        engine, store, tasks = engine_for(config, fetcher)
        await store.put(config.dynamic_cache, key("/dashboard"), ok(b"<html>old</html>"))

        response = await engine.resolve(Request.navigate(url("/dashboard")), TrafficClass.NAVIGATION)
        await tasks.drain(1.0)

        assert response.body == b"<html>live</html>"
        assert (await store.get(config.dynamic_cache, key("/dashboard"))).body == b"<html>live</html>"

    @pytest.mark.asyncio
    async def test_failure_serves_app_shell(self, config, fetcher):
        engine, store, _ = engine_for(config, fetcher)
        await store.put(config.static_cache, key("/index.html"), ok(b"<html>shell</html>"))

        response = await engine.resolve(Request.navigate(url("/settings")), TrafficClass.NAVIGATION)

        assert response.body == b"<html>shell</html>"
        assert response.source is ResponseSource.CACHE

    @pytest.mark.asyncio
    async def test_failure_without_shell_returns_503(self, config, fetcher):
        engine, _, _ = engine_for(config, fetcher)

        response = await engine.resolve(Request.navigate(url("/settings")), TrafficClass.NAVIGATION)

        assert response.status == 503
        assert response.text() == "App not available offline"

    @pytest.mark.asyncio
    async def test_navigation_writes_skip_limit(self, config, fetcher):
        engine, store, tasks = engine_for(config, fetcher)
        for i in range(5):
            fetcher.respond(url(f"/page/{i}"), b"<html></html>")
            await engine.resolve(Request.navigate(url(f"/page/{i}")), TrafficClass.NAVIGATION)
        await tasks.drain(1.0)

        assert await store.size(config.dynamic_cache) == 5

    @pytest.mark.asyncio
    async def test_next_dynamic_write_trims_navigation_entries(self, config, fetcher):
        engine, store, tasks = engine_for(config, fetcher)
        for i in range(5):
            fetcher.respond(url(f"/page/{i}"), b"<html></html>")
            await engine.resolve(Request.navigate(url(f"/page/{i}")), TrafficClass.NAVIGATION)
        await tasks.drain(1.0)
        assert await store.size(config.dynamic_cache) == 5

        fetcher.respond(url("/data/feed.json"), b"{}")
        await engine.resolve(Request(url("/data/feed.json")), TrafficClass.DYNAMIC_ASSET)
        await tasks.drain(1.0)

        assert await store.size(config.dynamic_cache) == config.max_dynamic_entries
        keys = await store.keys(config.dynamic_cache)
        assert keys == [key("/page/3"), key("/page/4"), key("/data/feed.json")]


class TestPolicyEngine:
    """Dispatch and failure isolation."""

    @pytest.mark.asyncio
    async def test_unhandled_passes_through(self, config, fetcher):
        engine, _, _ = engine_for(config, fetcher)
        assert await engine.resolve(Request(url("/about")), TrafficClass.UNHANDLED) is None
        assert fetcher.calls == []

    @pytest.mark.asyncio
    async def test_storage_failures_never_fail_the_request(self, config, fetcher):
        fetcher.respond(url("/main.js"), b"js")
        engine, _, tasks = engine_for(config, fetcher, store=BrokenStore())

        response = await engine.resolve(Request(url("/main.js")), TrafficClass.STATIC_ASSET)
        assert await tasks.drain(1.0)

        assert response.body == b"js"
        assert tasks.stats["failed"] == 0

    @pytest.mark.asyncio
    async def test_unexpected_fetch_error_becomes_fallback(self, config):
        async def exploding_fetch(request):
            raise RuntimeError("bug")

        engine, _, _ = engine_for(config, exploding_fetch)
        response = await engine.resolve(Request.navigate(url("/x")), TrafficClass.NAVIGATION)

        assert response.status == 503

    def test_every_intercepted_class_has_a_strategy(self, config, fetcher):
        engine, _, _ = engine_for(config, fetcher)
        for traffic_class in TrafficClass:
            assert (engine.strategy_for(traffic_class) is None) == (not traffic_class.intercepted)

    @pytest.mark.asyncio
    async def test_strategy_crash_is_contained(self, config, fetcher):
        engine, _, _ = engine_for(config, fetcher)

        async def crash(request):
            raise KeyError("corrupt entry")

        engine.strategy_for(TrafficClass.API_REQUEST).handle = crash
        response = await engine.resolve(Request(url("/api/user")), TrafficClass.API_REQUEST)

        assert response.status == 503
        assert response.source is ResponseSource.FALLBACK
