"""
Tests for the performance monitor.
"""

import asyncio

import pytest

from grant_matcher.services import PerformanceMonitor


@pytest.fixture
def monitor():
    return PerformanceMonitor(default_threshold_ms=1_000)


@pytest.mark.asyncio
async def test_track_returns_result_and_records(monitor):
    async def operation():
        return "done"

    assert await monitor.track("vector_search", operation, limit=10) == "done"

    stats = monitor.statistics()
    assert stats.total_operations == 1
    assert stats.operation_breakdown["vector_search"].count == 1
    assert stats.failed_operations == 0


@pytest.mark.asyncio
async def test_track_propagates_exception_unchanged(monitor):
    error = RuntimeError("backend exploded")

    async def operation():
        raise error

    with pytest.raises(RuntimeError) as raised:
        await monitor.track("vector_search", operation)

    assert raised.value is error
    stats = monitor.statistics()
    assert stats.failed_operations == 1
    assert stats.operation_breakdown["vector_search"].failure_count == 1


@pytest.mark.asyncio
async def test_slow_operations_are_counted(monitor):
    async def operation():
        await asyncio.sleep(0.02)

    await monitor.track("find_grants", operation, warn_threshold_ms=1)
    await monitor.track("find_grants", operation)

    stats = monitor.statistics()
    assert stats.slow_operations == 1
    assert stats.operation_breakdown["find_grants"].slow_count == 1
    assert stats.operation_breakdown["find_grants"].average_duration_ms > 0


def test_track_sync(monitor):
    assert monitor.track_sync("parse", lambda: 7) == 7
    with pytest.raises(ZeroDivisionError):
        monitor.track_sync("parse", lambda: 1 / 0)
    breakdown = monitor.statistics().operation_breakdown["parse"]
    assert breakdown.count == 2
    assert breakdown.failure_count == 1


def test_scope_records_properties(monitor):
    with monitor.scope("rank", query="literacy") as scope:
        scope.add_property("candidates", 12)
        assert scope.elapsed_ms >= 0
    assert scope.properties == {"query": "literacy", "candidates": 12}
    assert monitor.statistics().operation_breakdown["rank"].count == 1


def test_min_max_average(monitor):
    for _ in range(3):
        monitor.track_sync("noop", lambda: None)
    stats = monitor.statistics()
    assert stats.min_duration_ms <= stats.average_duration_ms <= stats.max_duration_ms


def test_statistics_is_a_snapshot(monitor):
    monitor.track_sync("noop", lambda: None)
    snapshot = monitor.statistics()
    monitor.track_sync("noop", lambda: None)
    assert snapshot.operation_breakdown["noop"].count == 1


def test_reset(monitor):
    monitor.track_sync("noop", lambda: None)
    monitor.reset()
    stats = monitor.statistics()
    assert stats.total_operations == 0
    assert stats.operation_breakdown == {}


def test_empty_operation_name_rejected(monitor):
    with pytest.raises(ValueError):
        monitor.track_sync("  ", lambda: None)
