"""Per-traffic-class cache strategies.

Every strategy resolves a request to a response and never raises for network
or storage trouble: failures fall through to the documented fallback. Cache
writes that the caller should not wait for are handed to ``BackgroundTasks``.
"""

import asyncio
from typing import Dict, Optional

from config.constants import FALLBACK_RESPONSES
from ..models.config import CacheConfig
from ..models.response import Request, CachedResponse, ResponseSource
from ..models.traffic import TrafficClass
from ..utils.tasks import BackgroundTasks
from .evictor import CacheEvictor
from .fetcher import FetchFn
from .normalizer import URLNormalizer
from .store import CacheStore
from ..utils.logger import get_logger

logger = get_logger("policies")


class CacheStrategy:
    name = "base"

    def __init__(
        self,
        store: CacheStore,
        fetch: FetchFn,
        config: CacheConfig,
        evictor: Optional[CacheEvictor] = None,
        tasks: Optional[BackgroundTasks] = None,
        normalizer: Optional[URLNormalizer] = None,
    ):
        self.store = store
        self.fetch = fetch
        self.config = config
        self.evictor = evictor or CacheEvictor(store)
        self.tasks = tasks or BackgroundTasks()
        self.normalizer = normalizer or URLNormalizer(config.origin)

    async def handle(self, request: Request) -> CachedResponse:
        raise NotImplementedError

    def log_context(self, namespace: Optional[str] = None) -> Dict[str, str]:
        return {"traffic_class": self.name, "namespace": namespace or ""}

    def fallback(self, request: Request) -> CachedResponse:
        status, message = FALLBACK_RESPONSES[self.name]
        return CachedResponse.fallback(status, message, url=request.url)

    async def _network(self, request: Request) -> CachedResponse:
        timeout = self.config.fetch_timeout
        if timeout:
            return await asyncio.wait_for(self.fetch(request), timeout)
        return await self.fetch(request)

    async def _read(self, namespace: str, key: str) -> Optional[CachedResponse]:
        try:
            return await self.store.get(namespace, key)
        except Exception as e:
            logger.warning(f"Cache read failed for {key}: {e}", extra=self.log_context(namespace))
            return None

    async def _write(self, namespace: str, key: str, response: CachedResponse, limit: Optional[int] = None) -> bool:
        try:
            await self.store.put(namespace, key, response.with_source(ResponseSource.NETWORK))
            if limit is not None:
                await self.evictor.enforce_limit(namespace, limit)
            return True
        except Exception as e:
            logger.warning(f"Cache write failed for {key}: {e}", extra=self.log_context(namespace))
            return False

    def _write_in_background(self, namespace: str, key: str, response: CachedResponse, limit: Optional[int] = None):
        return self.tasks.spawn(self._write(namespace, key, response, limit), name=f"cache-put:{key}")


class CacheFirstStrategy(CacheStrategy):
    """Serve from cache; on a miss fetch once and store exact-200 responses."""

    name = "static"

    def __init__(self, *args, namespace: Optional[str] = None, max_entries: Optional[int] = None, **kwargs):
        super().__init__(*args, **kwargs)
        self.namespace = namespace or self._default_namespace()
        self.max_entries = max_entries if max_entries is not None else self.config.limit_for(self.namespace)

    def _default_namespace(self) -> str:
        return self.config.static_cache

    async def handle(self, request: Request) -> CachedResponse:
        key = self.normalizer.request_key(request)
        cached = await self._read(self.namespace, key)
        if cached is not None:
            return cached.with_source(ResponseSource.CACHE)

        try:
            response = await self._network(request)
        except Exception as e:
            logger.info(f"Failed to fetch asset: {request.url} ({e})", extra=self.log_context(self.namespace))
            return self.fallback(request)

        if response.cacheable:
            self._write_in_background(self.namespace, key, response, self.max_entries)
        return response


class StaticAssetStrategy(CacheFirstStrategy):
    name = "static"


class DynamicAssetStrategy(CacheFirstStrategy):
    name = "dynamic"

    def _default_namespace(self) -> str:
        return self.config.dynamic_cache


class StaleWhileRevalidateStrategy(CacheStrategy):
    """Cached data wins immediately; the network refresh always runs."""

    name = "api"

    def __init__(self, *args, namespace: Optional[str] = None, max_entries: Optional[int] = None, **kwargs):
        super().__init__(*args, **kwargs)
        self.namespace = namespace or self.config.api_cache
        self.max_entries = max_entries if max_entries is not None else self.config.limit_for(self.namespace)

    async def handle(self, request: Request) -> CachedResponse:
        key = self.normalizer.request_key(request)
        cache_read = asyncio.ensure_future(self._read(self.namespace, key))
        revalidation = self.tasks.spawn(self._revalidate(request, key), name=f"revalidate:{key}")

        cached = await cache_read
        if cached is not None:
            return cached.with_source(ResponseSource.CACHE)

        response = await asyncio.shield(revalidation)
        if response is None:
            return self.fallback(request)
        return response

    async def _revalidate(self, request: Request, key: str) -> Optional[CachedResponse]:
        try:
            response = await self._network(request)
        except Exception as e:
            logger.info(f"API request failed: {request.url} ({e})", extra=self.log_context(self.namespace))
            return None

        if response.cacheable:
            await self._write(self.namespace, key, response, self.max_entries)
        return response


class NetworkFirstStrategy(CacheStrategy):
    """Navigations always go to the network; the app shell covers outages."""

    name = "navigation"

    async def handle(self, request: Request) -> CachedResponse:
        try:
            response = await self._network(request)
        except Exception as e:
            logger.info(f"Navigation failed, serving app shell: {request.url} ({e})", extra=self.log_context(self.config.static_cache))
            return await self._app_shell(request)

        if response.cacheable:
            key = self.normalizer.request_key(request)
            self._write_in_background(self.config.dynamic_cache, key, response)
        return response

    async def _app_shell(self, request: Request) -> CachedResponse:
        shell_key = self.normalizer.key_for(self.config.shell_url)
        shell = await self._read(self.config.static_cache, shell_key)
        if shell is not None:
            return shell.with_source(ResponseSource.CACHE)
        return self.fallback(request)


class PolicyEngine:
    def __init__(
        self,
        store: CacheStore,
        fetch: FetchFn,
        config: CacheConfig,
        evictor: Optional[CacheEvictor] = None,
        tasks: Optional[BackgroundTasks] = None,
        normalizer: Optional[URLNormalizer] = None,
    ):
        self.config = config
        self.evictor = evictor or CacheEvictor(store)
        self.tasks = tasks or BackgroundTasks()
        self.normalizer = normalizer or URLNormalizer(config.origin)

        shared = dict(
            store=store,
            fetch=fetch,
            config=config,
            evictor=self.evictor,
            tasks=self.tasks,
            normalizer=self.normalizer,
        )
        self.strategies: Dict[TrafficClass, CacheStrategy] = {
            TrafficClass.STATIC_ASSET: StaticAssetStrategy(**shared),
            TrafficClass.API_REQUEST: StaleWhileRevalidateStrategy(**shared),
            TrafficClass.DYNAMIC_ASSET: DynamicAssetStrategy(**shared),
            TrafficClass.NAVIGATION: NetworkFirstStrategy(**shared),
        }

    def strategy_for(self, traffic_class: TrafficClass) -> Optional[CacheStrategy]:
        return self.strategies.get(traffic_class)

    async def resolve(self, request: Request, traffic_class: TrafficClass) -> Optional[CachedResponse]:
        strategy = self.strategy_for(traffic_class)
        if strategy is None:
            return None
        try:
            return await strategy.handle(request)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.error(
                f"Strategy failed for {request.url}: {e}",
                extra=strategy.log_context(getattr(strategy, "namespace", None)),
            )
            return strategy.fallback(request)
