import asyncio
from typing import List

from .store import CacheStore
from ..utils.logger import get_logger

logger = get_logger("evictor")


class CacheEvictor:
    def __init__(self, store: CacheStore):
        self.store = store
        self.stats = {"runs": 0, "evicted": 0}

    async def enforce_limit(self, namespace: str, max_size: int) -> int:
        """Trim ``namespace`` to ``max_size`` entries, oldest first.

        Returns the number of entries this call removed. Keys already deleted
        by a concurrent caller are skipped silently.
        """
        if max_size < 0:
            raise ValueError(f"max_size must be >= 0, got {max_size}")

        self.stats["runs"] += 1
        keys = await self.store.keys(namespace)
        overflow = len(keys) - max_size
        if overflow <= 0:
            return 0

        victims: List[str] = keys[:overflow]
        results = await asyncio.gather(*(self.store.delete(namespace, k) for k in victims))
        removed = sum(1 for r in results if r)
        self.stats["evicted"] += removed
        logger.debug(f"Evicted {removed} entries from {namespace} (limit {max_size})")
        return removed
