"""Bounded background task queue.

Fire-and-forget work (cache warm-up, batched invalidation) is queued here and
drained by a fixed pool of worker tasks. Nothing on the request path spawns
untracked tasks. The queue is bounded: ``enqueue`` raises ``QueueFullError``
when full, ``try_enqueue`` reports it, ``enqueue_wait`` waits for space.
"""

import asyncio
import time
from collections.abc import Awaitable, Callable, Iterable
from typing import Any, TypeVar

import structlog

from grant_matcher.config import settings
from grant_matcher.errors import QueueFullError

from .cache_service import CacheService

logger = structlog.get_logger(__name__)

BackgroundTask = Callable[[], Awaitable[None]]

T = TypeVar("T")


class BackgroundTaskQueue:
    """Queue plus worker pool.

    Example:
        ```python
        queue = BackgroundTaskQueue()
        await queue.start()
        queue.enqueue("invalidate_search", delayed_cache_invalidation(cache, "search:*"))
        ...
        await queue.stop()
        ```
    """

    def __init__(self, max_size: int | None = None, workers: int | None = None) -> None:
        """Initialize the queue.

        Args:
            max_size: Queue capacity. Defaults to settings.
            workers: Number of worker tasks. Defaults to settings.
        """
        self._max_size = max_size or settings.background_queue_size
        self._worker_count = workers or settings.background_workers
        self._queue: asyncio.Queue[tuple[str, BackgroundTask]] = asyncio.Queue(maxsize=self._max_size)
        self._workers: list[asyncio.Task[None]] = []
        self._completed = 0
        self._failed = 0
        self._rejected = 0

    @property
    def pending_count(self) -> int:
        return self._queue.qsize()

    @property
    def is_running(self) -> bool:
        return any(not w.done() for w in self._workers)

    def stats(self) -> dict[str, Any]:
        return {
            "running": self.is_running,
            "workers": self._worker_count,
            "capacity": self._max_size,
            "pending": self.pending_count,
            "completed": self._completed,
            "failed": self._failed,
            "rejected": self._rejected,
        }

    async def start(self) -> None:
        if self.is_running:
            return
        self._workers = [
            asyncio.create_task(self._worker(i), name=f"background-worker-{i}")
            for i in range(self._worker_count)
        ]
        logger.info("background_queue_started", workers=self._worker_count, capacity=self._max_size)

    async def stop(self, drain: bool = True, timeout: float | None = 30.0) -> None:
        """Stop the workers.

        Args:
            drain: Finish queued tasks first
            timeout: Seconds to wait for draining before cancelling
        """
        if drain and self.is_running:
            try:
                await asyncio.wait_for(self._queue.join(), timeout=timeout)
            except asyncio.TimeoutError:
                logger.warning("background_queue_drain_timeout", pending=self.pending_count)

        for worker in self._workers:
            worker.cancel()
        await asyncio.gather(*self._workers, return_exceptions=True)
        self._workers = []
        logger.info("background_queue_stopped", completed=self._completed, failed=self._failed)

    def enqueue(self, task_name: str, task: BackgroundTask) -> None:
        """Queue a task without waiting.

        Raises:
            QueueFullError: If the queue is at capacity
        """
        try:
            self._queue.put_nowait((task_name, task))
        except asyncio.QueueFull:
            self._rejected += 1
            logger.warning("background_task_rejected", task=task_name, capacity=self._max_size)
            raise QueueFullError(f"Background queue full ({self._max_size}); rejected {task_name}") from None
        logger.debug("background_task_queued", task=task_name, pending=self.pending_count)

    def try_enqueue(self, task_name: str, task: BackgroundTask) -> bool:
        try:
            self.enqueue(task_name, task)
        except QueueFullError:
            return False
        return True

    async def enqueue_wait(self, task_name: str, task: BackgroundTask) -> None:
        await self._queue.put((task_name, task))
        logger.debug("background_task_queued", task=task_name, pending=self.pending_count)

    async def join(self) -> None:
        """Wait until every queued task has finished."""
        await self._queue.join()

    async def _worker(self, index: int) -> None:
        while True:
            task_name, task = await self._queue.get()
            started = time.perf_counter()
            try:
                await task()
            except Exception:
                self._failed += 1
                logger.exception("background_task_failed", task=task_name, worker=index)
            else:
                self._completed += 1
                logger.info(
                    "background_task_completed",
                    task=task_name,
                    worker=index,
                    duration_ms=round((time.perf_counter() - started) * 1000, 2),
                )
            finally:
                self._queue.task_done()


def cache_warmup(
    cache: CacheService,
    key: str,
    loader: Callable[[], Awaitable[Any]],
    absolute_ttl: float | None = None,
    sliding_ttl: float | None = None,
) -> BackgroundTask:
    """Task that loads a value and stores it under ``key``."""

    async def run() -> None:
        value = await loader()
        if value is not None:
            await cache.set(key, value, absolute_ttl, sliding_ttl)

    return run


def delayed_cache_invalidation(
    cache: CacheService,
    pattern: str,
    delay_seconds: float = 0.0,
) -> BackgroundTask:
    """Task that removes every key matching ``pattern`` after a delay."""

    async def run() -> None:
        if delay_seconds > 0:
            await asyncio.sleep(delay_seconds)
        await cache.remove_by_pattern(pattern)

    return run


def bulk_operation(
    items: Iterable[T],
    process_item: Callable[[T], Awaitable[Any]],
    batch_size: int = 10,
) -> BackgroundTask:
    """Task that processes items concurrently in fixed-size batches."""
    if batch_size < 1:
        raise ValueError("batch_size must be at least 1")
    materialized = list(items)

    async def run() -> None:
        for start in range(0, len(materialized), batch_size):
            batch = materialized[start : start + batch_size]
            await asyncio.gather(*(process_item(item) for item in batch))

    return run
