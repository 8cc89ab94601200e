import asyncio
from typing import Dict, List, Optional, Set

from ..models.exceptions import StorageException
from ..models.response import CachedResponse
from ..utils.logger import get_logger

logger = get_logger("store")


class NamespaceCache:
    """One named cache. Entries keep the position of their first insertion.

    Overwriting a key replaces the value in place, so iteration order stays
    FIFO by first insertion rather than by last write.
    """

    def __init__(self, name: str):
        self.name = name
        self._entries: Dict[str, CachedResponse] = {}
        self._lock = asyncio.Lock()

    async def match(self, key: str) -> Optional[CachedResponse]:
        async with self._lock:
            return self._entries.get(key)

    async def put(self, key: str, entry: CachedResponse) -> None:
        if not isinstance(entry, CachedResponse):
            raise StorageException("Only response snapshots can be stored", namespace=self.name, key=key)
        async with self._lock:
            self._entries[key] = entry

    async def put_many(self, entries: Dict[str, CachedResponse]) -> None:
        async with self._lock:
            for key, entry in entries.items():
                self._entries[key] = entry

    async def delete(self, key: str) -> bool:
        async with self._lock:
            return self._entries.pop(key, None) is not None

    async def keys(self) -> List[str]:
        async with self._lock:
            return list(self._entries)

    async def clear(self) -> None:
        async with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: str) -> bool:
        return key in self._entries


class CacheStore:
    """Registry of independently locked namespaces.

    The registry lock only guards creation and deletion of namespaces; entry
    operations take the namespace's own lock so traffic classes never queue
    behind each other.
    """

    def __init__(self):
        self._namespaces: Dict[str, NamespaceCache] = {}
        self._registry_lock = asyncio.Lock()

    async def open(self, namespace: str) -> NamespaceCache:
        cache = self._namespaces.get(namespace)
        if cache is not None:
            return cache
        async with self._registry_lock:
            cache = self._namespaces.get(namespace)
            if cache is None:
                cache = NamespaceCache(namespace)
                self._namespaces[namespace] = cache
                logger.debug(f"Opened cache: {namespace}")
            return cache

    async def get(self, namespace: str, key: str) -> Optional[CachedResponse]:
        cache = await self.open(namespace)
        return await cache.match(key)

    async def put(self, namespace: str, key: str, entry: CachedResponse) -> None:
        cache = await self.open(namespace)
        await cache.put(key, entry)

    async def keys(self, namespace: str) -> List[str]:
        cache = await self.open(namespace)
        return await cache.keys()

    async def delete(self, namespace: str, key: str) -> bool:
        cache = self._namespaces.get(namespace)
        if cache is None:
            return False
        return await cache.delete(key)

    async def list_namespaces(self) -> Set[str]:
        async with self._registry_lock:
            return set(self._namespaces)

    def has_namespace(self, namespace: str) -> bool:
        return namespace in self._namespaces

    async def delete_namespace(self, namespace: str) -> bool:
        async with self._registry_lock:
            cache = self._namespaces.pop(namespace, None)
        if cache is None:
            return False
        await cache.clear()
        return True

    async def size(self, namespace: str) -> int:
        cache = self._namespaces.get(namespace)
        return len(cache) if cache is not None else 0

    async def sizes(self) -> Dict[str, int]:
        async with self._registry_lock:
            return {name: len(cache) for name, cache in self._namespaces.items()}
