"""
Tests for the bounded background task queue.
"""

import asyncio

import pytest

from grant_matcher.errors import QueueFullError
from grant_matcher.services import (
    BackgroundTaskQueue,
    CacheService,
    bulk_operation,
    cache_warmup,
    delayed_cache_invalidation,
)


@pytest.mark.asyncio
async def test_tasks_run_and_are_counted():
    queue = BackgroundTaskQueue(max_size=10, workers=2)
    await queue.start()
    seen: list[int] = []

    def make(i: int):
        async def run():
            seen.append(i)

        return run

    for i in range(5):
        queue.enqueue(f"task-{i}", make(i))
    await queue.join()
    await queue.stop()

    assert sorted(seen) == [0, 1, 2, 3, 4]
    stats = queue.stats()
    assert stats["completed"] == 5
    assert stats["running"] is False


@pytest.mark.asyncio
async def test_failed_task_does_not_stop_workers():
    queue = BackgroundTaskQueue(max_size=10, workers=1)
    await queue.start()
    done = asyncio.Event()

    async def failing():
        raise RuntimeError("boom")

    async def succeeding():
        done.set()

    queue.enqueue("failing", failing)
    queue.enqueue("succeeding", succeeding)
    await queue.join()

    assert done.is_set()
    assert queue.stats()["failed"] == 1
    assert queue.is_running
    await queue.stop()


@pytest.mark.asyncio
async def test_full_queue_rejects():
    queue = BackgroundTaskQueue(max_size=1, workers=1)

    async def noop():
        return None

    queue.enqueue("first", noop)
    with pytest.raises(QueueFullError):
        queue.enqueue("second", noop)
    assert queue.try_enqueue("third", noop) is False
    assert queue.stats()["rejected"] == 2


@pytest.mark.asyncio
async def test_stop_drains_pending_tasks():
    queue = BackgroundTaskQueue(max_size=10, workers=1)
    await queue.start()
    seen: list[str] = []

    async def slow():
        await asyncio.sleep(0.01)
        seen.append("slow")

    queue.enqueue("slow", slow)
    queue.enqueue("slow", slow)
    await queue.stop(drain=True)

    assert seen == ["slow", "slow"]


@pytest.mark.asyncio
async def test_delayed_cache_invalidation():
    cache = CacheService(default_absolute_ttl=60, default_sliding_ttl=30)
    await cache.set("search:grants:org-1:a", 1)
    await cache.set("profile:applicant:org-1", 2)

    await delayed_cache_invalidation(cache, "search:*", delay_seconds=0.01)()

    assert await cache.get("search:grants:org-1:a") is None
    assert await cache.get("profile:applicant:org-1") == 2


@pytest.mark.asyncio
async def test_cache_warmup():
    cache = CacheService(default_absolute_ttl=60, default_sliding_ttl=30)

    async def loader():
        return {"warm": True}

    await cache_warmup(cache, "k", loader)()
    assert await cache.get("k") == {"warm": True}


@pytest.mark.asyncio
async def test_bulk_operation_respects_batch_size():
    in_flight = 0
    peak = 0
    processed: list[int] = []

    async def process(item: int):
        nonlocal in_flight, peak
        in_flight += 1
        peak = max(peak, in_flight)
        await asyncio.sleep(0.001)
        processed.append(item)
        in_flight -= 1

    await bulk_operation(range(7), process, batch_size=3)()

    assert sorted(processed) == list(range(7))
    assert peak <= 3


def test_bulk_operation_rejects_bad_batch_size():
    async def process(item):
        return item

    with pytest.raises(ValueError):
        bulk_operation([1], process, batch_size=0)
