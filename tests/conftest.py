"""
Shared fixtures for the SWCache test suite.

The network is never touched: every test injects a ``FakeFetcher`` whose
outcomes are scripted per URL.
"""

import asyncio
from typing import Dict, List, Optional, Union

import pytest

from src.models.config import CacheConfig
from src.models.exceptions import NetworkException
from src.models.response import Request, CachedResponse

ORIGIN = "https://app.test"

HANG = object()

Outcome = Union[CachedResponse, BaseException, object]


def ok(body: bytes = b"ok", status: int = 200, url: str = "", content_type: str = "text/plain") -> CachedResponse:
    return CachedResponse.snapshot(status, body, {"Content-Type": content_type}, url=url)


class FakeFetcher:
    """Scripted network fetch capability.

    Unscripted URLs fail with ``NetworkException`` unless a default is set.
    """

    def __init__(self, responses: Optional[Dict[str, Outcome]] = None, default: Optional[Outcome] = None):
        self.responses: Dict[str, Outcome] = dict(responses or {})
        self.default = default
        self.calls: List[str] = []

    def respond(self, url: str, body: bytes = b"ok", status: int = 200) -> "FakeFetcher":
        self.responses[url] = ok(body, status, url=url)
        return self

    def fail(self, url: str, exc: Optional[BaseException] = None) -> "FakeFetcher":
        self.responses[url] = exc or NetworkException("connection refused", url=url)
        return self

    def hang(self, url: str) -> "FakeFetcher":
        self.responses[url] = HANG
        return self

    async def __call__(self, request: Request) -> CachedResponse:
        self.calls.append(request.url)
        outcome = self.responses.get(request.url, self.default)
        if outcome is HANG:
            await asyncio.Event().wait()
        if outcome is None:
            raise NetworkException("no route to host", url=request.url)
        if isinstance(outcome, BaseException):
            raise outcome
        return outcome


def url(path: str) -> str:
    return f"{ORIGIN}{path}"


def key(path: str) -> str:
    return f"GET {url(path)}"


@pytest.fixture
def config():
    return CacheConfig(
        origin=ORIGIN,
        app_name="TestApp",
        cache_prefix="app",
        cache_version="v2",
        max_dynamic_entries=3,
        max_api_entries=2,
        fetch_timeout=5.0,
    )


@pytest.fixture
def fetcher():
    return FakeFetcher()


@pytest.fixture
def precache_fetcher(config):
    """Fetcher that serves every static manifest entry."""
    fake = FakeFetcher()
    for path in config.static_assets:
        target = config.absolute_url(path)
        fake.respond(target, body=f"asset:{path}".encode())
    return fake
