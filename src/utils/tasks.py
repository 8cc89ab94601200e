import asyncio
from typing import Awaitable, Optional, Set

from .logger import get_logger

logger = get_logger("tasks")


class BackgroundTasks:
    """Fire-and-forget coroutines whose failures are logged, never raised.

    Strong references are held until each task finishes so the event loop
    cannot garbage-collect a pending cache write.
    """

    def __init__(self):
        self._tasks: Set[asyncio.Task] = set()
        self.stats = {"spawned": 0, "completed": 0, "failed": 0}

    def spawn(self, coro: Awaitable, name: Optional[str] = None) -> asyncio.Task:
        task = asyncio.ensure_future(coro)
        if name:
            try:
                task.set_name(name)
            except AttributeError:
                pass
        self._tasks.add(task)
        self.stats["spawned"] += 1
        task.add_done_callback(self._on_done)
        return task

    def _on_done(self, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            self.stats["failed"] += 1
            logger.debug(f"Background task cancelled: {task.get_name()}")
            return
        exc = task.exception()
        if exc is not None:
            self.stats["failed"] += 1
            logger.warning(f"Background task {task.get_name()} failed: {exc}")
            return
        self.stats["completed"] += 1

    @property
    def pending(self) -> int:
        return len(self._tasks)

    def cancel_all(self) -> int:
        cancelled = 0
        for task in list(self._tasks):
            if not task.done():
                task.cancel()
                cancelled += 1
        return cancelled

    async def drain(self, timeout: Optional[float] = None) -> bool:
        """Wait for every pending task, including ones spawned while waiting.

        Returns False if the timeout expired first.
        """
        loop = asyncio.get_running_loop()
        deadline = None if timeout is None else loop.time() + timeout
        while True:
            waiting = {t for t in self._tasks if not t.done()}
            if not waiting:
                await asyncio.sleep(0)
                return True
            remaining = None if deadline is None else deadline - loop.time()
            if remaining is not None and remaining <= 0:
                return False
            _, pending = await asyncio.wait(waiting, timeout=remaining)
            if pending and deadline is not None and loop.time() >= deadline:
                return False
