import asyncio
import functools
from typing import Awaitable, Callable, Dict, Optional
from urllib.parse import urlparse

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from config.constants import HTTP_CONFIG, get_default_headers, get_user_agent
from ..models.exceptions import NetworkException
from ..models.response import Request, CachedResponse
from ..utils.logger import get_logger

logger = get_logger("fetcher")

FetchFn = Callable[[Request], Awaitable[CachedResponse]]


class NetworkFetcher:
    """Network fetch capability backed by a pooled ``requests.Session``.

    Blocking calls run in the loop's default executor. Transport retries are
    off by default; a single failure surfaces as ``NetworkException``.
    """

    def __init__(
        self,
        timeout: float = 15,
        max_retries: int = 0,
        user_agent: Optional[str] = None,
        proxy: Optional[str] = None,
        headers: Optional[Dict[str, str]] = None,
    ):
        self.timeout = timeout
        self.max_retries = max(0, int(max_retries))
        self.user_agent = user_agent or get_user_agent()
        self.proxy = proxy
        self.extra_headers = dict(headers or {})

        self.session = self._create_session()

    def _create_session(self) -> requests.Session:
        session = requests.Session()
        session.trust_env = True  # honor system/env proxies

        session.headers.update(get_default_headers())
        session.headers["User-Agent"] = self.user_agent
        session.headers.update(self.extra_headers)

        retry = Retry(
            total=self.max_retries,
            connect=self.max_retries,
            read=self.max_retries,
            backoff_factor=HTTP_CONFIG["retry_backoff_factor"],
            status_forcelist=tuple(HTTP_CONFIG["retry_status_codes"]),
            allowed_methods=frozenset(["GET", "HEAD"]),
            raise_on_status=False,
            respect_retry_after_header=True,
        )
        adapter = HTTPAdapter(
            max_retries=retry,
            pool_connections=HTTP_CONFIG["pool_connections"],
            pool_maxsize=HTTP_CONFIG["pool_maxsize"],
        )
        session.mount("http://", adapter)
        session.mount("https://", adapter)

        if self.proxy:
            session.proxies.update({
                "http": self.proxy,
                "https": self.proxy,
            })

        return session

    async def __call__(self, request: Request) -> CachedResponse:
        return await self.fetch(request)

    async def fetch(self, request: Request) -> CachedResponse:
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, functools.partial(self.fetch_sync, request))

    def fetch_sync(self, request: Request) -> CachedResponse:
        if not self.validate_url(request.url):
            raise NetworkException("Refusing to fetch non-http(s) URL", url=request.url)

        logger.debug(f"Fetching URL: {request.url}")
        try:
            r = self.session.request(
                request.method,
                request.url,
                headers=dict(request.headers),
                timeout=self.timeout,
                allow_redirects=True,
            )
        except requests.exceptions.Timeout as e:
            logger.debug(f"Timeout fetching {request.url}: {e}")
            raise NetworkException(f"Timeout after {self.timeout}s", url=request.url)
        except requests.exceptions.ConnectionError as e:
            logger.debug(f"Connection error fetching {request.url}: {e}")
            raise NetworkException(f"Connection failed: {e}", url=request.url)
        except requests.exceptions.RequestException as e:
            logger.debug(f"Request exception fetching {request.url}: {e}")
            raise NetworkException(f"Request failed: {e}", url=request.url)

        status = int(r.status_code)
        logger.debug(f"Fetched {request.url} - {status}")
        return CachedResponse.snapshot(
            status=status,
            body=r.content or b"",
            headers=dict(r.headers),
            url=r.url or request.url,
        )

    def validate_url(self, url: str) -> bool:
        try:
            p = urlparse(url)
            if p.scheme not in HTTP_CONFIG["allowed_schemes"]:
                return False
            if not p.netloc:
                return False
            return True
        except Exception:
            return False

    def close(self):
        if self.session:
            try:
                self.session.close()
            except Exception as e:
                logger.debug(f"Session close failed: {e}")
