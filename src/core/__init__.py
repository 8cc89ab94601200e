__version__ = "1.0.0"
__author__ = "SWCache Developers"
__description__ = "Service Worker cache policy engine"

from .classifier import RequestClassifier
from .store import CacheStore, NamespaceCache
from .evictor import CacheEvictor
from .fetcher import NetworkFetcher
from .normalizer import URLNormalizer
from .policies import (
    PolicyEngine,
    CacheStrategy,
    StaticAssetStrategy,
    DynamicAssetStrategy,
    StaleWhileRevalidateStrategy,
    NetworkFirstStrategy,
)
from .controller import ServiceWorkerController, WorkerState

__all__ = [
    'RequestClassifier',
    'CacheStore',
    'NamespaceCache',
    'CacheEvictor',
    'NetworkFetcher',
    'URLNormalizer',
    'PolicyEngine',
    'CacheStrategy',
    'StaticAssetStrategy',
    'DynamicAssetStrategy',
    'StaleWhileRevalidateStrategy',
    'NetworkFirstStrategy',
    'ServiceWorkerController',
    'WorkerState',
]
