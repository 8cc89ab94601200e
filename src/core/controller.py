import asyncio
import time
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional, Union

from config.constants import BACKGROUND_SYNC_TAG, DEFAULT_CONFIG
from ..models.config import CacheConfig
from ..models.exceptions import InstallException, NetworkException
from ..models.messages import ControlMessage, MessageType
from ..models.response import Request, CachedResponse
from ..models.result import Resolution
from ..models.traffic import TrafficClass
from ..utils.tasks import BackgroundTasks
from ..utils.validator import RequestValidator
from .classifier import RequestClassifier
from .evictor import CacheEvictor
from .fetcher import FetchFn, NetworkFetcher
from .normalizer import URLNormalizer
from .notifications import build_push_notification
from .policies import PolicyEngine
from .store import CacheStore
from ..utils.logger import get_logger

logger = get_logger("controller")


class WorkerState(Enum):
    PARSED = "parsed"
    INSTALLING = "installing"
    INSTALLED = "installed"
    ACTIVATING = "activating"
    ACTIVATED = "activated"
    REDUNDANT = "redundant"


class ServiceWorkerController:
    """Lifecycle hooks and the interception entry point.

    The store and the network fetch capability are injected; when no fetch is
    given a ``NetworkFetcher`` is created and closed by ``close()``.
    """

    def __init__(
        self,
        config: Optional[CacheConfig] = None,
        store: Optional[CacheStore] = None,
        fetch: Optional[FetchFn] = None,
        classifier: Optional[RequestClassifier] = None,
        tasks: Optional[BackgroundTasks] = None,
    ):
        self.config = config or CacheConfig()
        self.config.validate()

        self.store = store or CacheStore()
        self._owned_fetcher: Optional[NetworkFetcher] = None
        if fetch is None:
            self._owned_fetcher = NetworkFetcher(
                timeout=self.config.fetch_timeout or 15,
                max_retries=DEFAULT_CONFIG["max_transport_retries"],
                user_agent=self.config.user_agent,
                proxy=self.config.proxy,
                headers=self.config.headers,
            )
            fetch = self._owned_fetcher.fetch
        self.fetch = fetch

        self.tasks = tasks or BackgroundTasks()
        self.normalizer = URLNormalizer(self.config.origin)
        self.classifier = classifier or RequestClassifier(self.config)
        self.validator = RequestValidator()
        self.evictor = CacheEvictor(self.store)
        self.engine = PolicyEngine(
            self.store,
            self.fetch,
            self.config,
            evictor=self.evictor,
            tasks=self.tasks,
            normalizer=self.normalizer,
        )

        self.state = WorkerState.PARSED
        self.skip_waiting_requested = False
        self.clients_claimed = False

    # lifecycle

    async def install(self) -> int:
        """Precache the static manifest, all or nothing."""
        logger.info("Installing Service Worker...")
        self.state = WorkerState.INSTALLING

        urls = [self.config.absolute_url(p) for p in self.config.static_assets]
        logger.info(f"Caching static assets ({len(urls)})")
        results = await asyncio.gather(*(self._fetch_once(u) for u in urls), return_exceptions=True)

        entries: Dict[str, CachedResponse] = {}
        failed: Dict[str, str] = {}
        for url, result in zip(urls, results):
            if isinstance(result, BaseException):
                failed[url] = str(result)
            elif not result.ok:
                failed[url] = f"HTTP {result.status}"
            else:
                entries[self.normalizer.key_for(url)] = result

        if failed:
            self.state = WorkerState.REDUNDANT
            for url, reason in failed.items():
                logger.error(f"Precache failed for {url}: {reason}")
            raise InstallException(f"Install failed: {len(failed)} of {len(urls)} assets unavailable", failed=failed)

        cache = await self.store.open(self.config.static_cache)
        await cache.put_many(entries)
        self.state = WorkerState.INSTALLED
        self.skip_waiting()
        return len(entries)

    def skip_waiting(self) -> None:
        if not self.skip_waiting_requested:
            logger.debug("Skip waiting requested")
        self.skip_waiting_requested = True

    async def activate(self) -> List[str]:
        """Drop caches from other builds, then take control of clients."""
        logger.info("Activating Service Worker...")
        self.state = WorkerState.ACTIVATING

        known = self.config.known_namespaces
        stale = sorted(n for n in await self.store.list_namespaces() if n not in known)
        for name in stale:
            logger.info(f"Removing old cache: {name}")
        await asyncio.gather(*(self.store.delete_namespace(n) for n in stale))

        self.claim_clients()
        self.state = WorkerState.ACTIVATED
        return stale

    def claim_clients(self) -> None:
        self.clients_claimed = True
        logger.debug("Claimed all clients")

    @property
    def is_active(self) -> bool:
        return self.state is WorkerState.ACTIVATED

    # request interception

    async def handle_fetch(self, request: Request) -> Optional[CachedResponse]:
        """Resolve an intercepted request; ``None`` means pass through."""
        resolution = await self.resolve(request)
        return resolution.response

    async def resolve(self, request: Request) -> Resolution:
        started = time.perf_counter()
        ok, reason = self.validator.is_interceptable(request)
        if not ok:
            logger.debug(f"Passing through {request.url}: {reason}")
            return Resolution(request, TrafficClass.UNHANDLED, duration=time.perf_counter() - started)

        traffic_class = self.classifier.classify(request)
        response = await self.engine.resolve(request, traffic_class)
        return Resolution(
            request=request,
            traffic_class=traffic_class,
            response=response,
            duration=time.perf_counter() - started,
        )

    # control channel

    async def handle_message(self, message: Union[ControlMessage, Dict[str, Any], None]) -> Any:
        if not isinstance(message, ControlMessage):
            message = ControlMessage.from_dict(message)
        if message is None:
            logger.debug("Ignoring unrecognised message")
            return None

        if message.type is MessageType.SKIP_WAITING:
            self.skip_waiting()
            if self.state is WorkerState.INSTALLED:
                await self.activate()
            return True

        return await self.cache_urls(message.payload)

    async def cache_urls(self, urls: Iterable[str]) -> int:
        """Best-effort bulk load into the dynamic cache."""
        targets = [self.config.absolute_url(u) for u in urls]
        results = await asyncio.gather(*(self._fetch_once(u) for u in targets), return_exceptions=True)

        stored = 0
        for url, result in zip(targets, results):
            if isinstance(result, BaseException):
                logger.warning(f"Failed to cache {url}: {result}")
                continue
            if not result.ok:
                logger.warning(f"Failed to cache {url}: HTTP {result.status}")
                continue
            try:
                await self.store.put(self.config.dynamic_cache, self.normalizer.key_for(url), result)
                stored += 1
            except Exception as e:
                logger.warning(f"Cache write failed for {url}: {e}")

        limit = self.config.limit_for(self.config.dynamic_cache)
        if self.config.enforce_limit_on_bulk_cache and limit is not None:
            await self.enforce_limit(self.config.dynamic_cache, limit)
        logger.info(f"Cached {stored}/{len(targets)} URLs into {self.config.dynamic_cache}")
        return stored

    async def enforce_limit(self, namespace: str, max_size: int) -> int:
        return await self.evictor.enforce_limit(namespace, max_size)

    # supplementary events

    def handle_push(self, data: Optional[str]) -> Optional[Dict[str, Any]]:
        return build_push_notification(data, self.config.app_name)

    async def handle_sync(self, tag: str) -> bool:
        if tag != BACKGROUND_SYNC_TAG:
            return False
        logger.info("Performing background sync...")
        return True

    # housekeeping

    async def namespace_sizes(self) -> Dict[str, int]:
        return await self.store.sizes()

    async def drain(self, timeout: Optional[float] = None) -> bool:
        return await self.tasks.drain(timeout)

    async def close(self) -> None:
        cancelled = self.tasks.cancel_all()
        if cancelled:
            logger.debug(f"Cancelled {cancelled} pending background tasks")
        if self._owned_fetcher is not None:
            self._owned_fetcher.close()

    async def _fetch_once(self, url: str) -> CachedResponse:
        request = Request(url=url)
        timeout = self.config.fetch_timeout
        try:
            if timeout:
                return await asyncio.wait_for(self.fetch(request), timeout)
            return await self.fetch(request)
        except asyncio.TimeoutError:
            raise NetworkException(f"Timeout after {timeout}s", url=url)
