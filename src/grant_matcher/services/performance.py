"""Operation timing and slow-operation detection.

Wrap any unit of work with ``track`` (coroutines), ``track_sync`` (plain
callables) or the ``scope`` context manager (multi-step work). Durations are
aggregated globally and per operation name; operations slower than their
threshold are logged as warnings. The wrapped operation's result or
exception always reaches the caller unchanged.
"""

import threading
import time
from collections.abc import Awaitable, Callable, Iterator
from contextlib import contextmanager
from dataclasses import replace
from typing import Any, TypeVar

import structlog

from grant_matcher.config import settings
from grant_matcher.entities import OperationStats, PerformanceStatistics

logger = structlog.get_logger(__name__)

T = TypeVar("T")


class PerformanceScope:
    """Handle yielded by ``PerformanceMonitor.scope``."""

    def __init__(self, operation_name: str, properties: dict[str, Any]) -> None:
        self.operation_name = operation_name
        self.properties = properties
        self._started = time.perf_counter()

    def add_property(self, key: str, value: Any) -> None:
        self.properties[key] = value

    @property
    def elapsed_ms(self) -> float:
        return (time.perf_counter() - self._started) * 1000


class PerformanceMonitor:
    """Tracks operation durations.

    Example:
        ```python
        monitor = PerformanceMonitor()
        results = await monitor.track(
            "vector_search",
            lambda: search.search(query, predicate, 0.6, 100),
            warn_threshold_ms=1000,
        )

        with monitor.scope("find_grants", query=query) as scope:
            ...
            scope.add_property("candidates", len(results))
        ```
    """

    def __init__(self, default_threshold_ms: float | None = None) -> None:
        """Initialize the monitor.

        Args:
            default_threshold_ms: Slow-operation threshold used when a call
                does not pass one. Defaults to settings.
        """
        self._default_threshold_ms = default_threshold_ms or settings.slow_operation_threshold_ms
        self._lock = threading.Lock()
        self._stats = PerformanceStatistics()

    async def track(
        self,
        operation_name: str,
        operation: Callable[[], Awaitable[T]],
        warn_threshold_ms: float | None = None,
        **properties: Any,
    ) -> T:
        """Await ``operation()`` and record how long it took.

        Args:
            operation_name: Name used for logging and per-operation stats
            operation: Zero-argument coroutine function
            warn_threshold_ms: Slow-operation threshold for this call
            **properties: Extra context attached to the log event

        Returns:
            Whatever the operation returns
        """
        self._require_name(operation_name)
        started = time.perf_counter()
        error: BaseException | None = None
        try:
            return await operation()
        except BaseException as e:
            error = e
            raise
        finally:
            self._record(operation_name, started, warn_threshold_ms, properties, error)

    def track_sync(
        self,
        operation_name: str,
        operation: Callable[[], T],
        warn_threshold_ms: float | None = None,
        **properties: Any,
    ) -> T:
        """Synchronous counterpart of ``track``."""
        self._require_name(operation_name)
        started = time.perf_counter()
        error: BaseException | None = None
        try:
            return operation()
        except BaseException as e:
            error = e
            raise
        finally:
            self._record(operation_name, started, warn_threshold_ms, properties, error)

    @contextmanager
    def scope(
        self,
        operation_name: str,
        warn_threshold_ms: float | None = None,
        **properties: Any,
    ) -> Iterator[PerformanceScope]:
        """Time the body of a ``with`` block."""
        self._require_name(operation_name)
        scope = PerformanceScope(operation_name, dict(properties))
        started = time.perf_counter()
        error: BaseException | None = None
        try:
            yield scope
        except BaseException as e:
            error = e
            raise
        finally:
            self._record(operation_name, started, warn_threshold_ms, scope.properties, error)

    def statistics(self) -> PerformanceStatistics:
        """Snapshot of the aggregates."""
        with self._lock:
            return replace(
                self._stats,
                operation_breakdown={
                    name: replace(stats) for name, stats in self._stats.operation_breakdown.items()
                },
            )

    def reset(self) -> None:
        with self._lock:
            self._stats = PerformanceStatistics()
        logger.info("performance_statistics_reset")

    @staticmethod
    def _require_name(operation_name: str) -> None:
        if not operation_name or not operation_name.strip():
            raise ValueError("Operation name cannot be empty")

    def _record(
        self,
        operation_name: str,
        started: float,
        warn_threshold_ms: float | None,
        properties: dict[str, Any],
        error: BaseException | None,
    ) -> None:
        duration_ms = (time.perf_counter() - started) * 1000
        threshold_ms = warn_threshold_ms or self._default_threshold_ms
        is_slow = duration_ms > threshold_ms
        try:
            self._update(operation_name, duration_ms, is_slow, failed=error is not None)
            self._log(operation_name, duration_ms, threshold_ms, is_slow, properties, error)
        except Exception:
            # Never let bookkeeping replace the operation's own outcome.
            logger.exception("instrumentation_failed", operation=operation_name)

    def _update(self, operation_name: str, duration_ms: float, is_slow: bool, failed: bool) -> None:
        with self._lock:
            stats = self._stats
            stats.total_operations += 1
            if is_slow:
                stats.slow_operations += 1
            if failed:
                stats.failed_operations += 1

            if stats.total_operations == 1:
                stats.min_duration_ms = duration_ms
                stats.max_duration_ms = duration_ms
            else:
                stats.min_duration_ms = min(stats.min_duration_ms, duration_ms)
                stats.max_duration_ms = max(stats.max_duration_ms, duration_ms)
            stats.average_duration_ms += (duration_ms - stats.average_duration_ms) / stats.total_operations

            op = stats.operation_breakdown.get(operation_name)
            if op is None:
                op = stats.operation_breakdown[operation_name] = OperationStats(
                    min_duration_ms=duration_ms,
                    max_duration_ms=duration_ms,
                )
            op.count += 1
            op.total_duration_ms += duration_ms
            op.min_duration_ms = min(op.min_duration_ms, duration_ms)
            op.max_duration_ms = max(op.max_duration_ms, duration_ms)
            if is_slow:
                op.slow_count += 1
            if failed:
                op.failure_count += 1

    @staticmethod
    def _log(
        operation_name: str,
        duration_ms: float,
        threshold_ms: float,
        is_slow: bool,
        properties: dict[str, Any],
        error: BaseException | None,
    ) -> None:
        if error is not None:
            logger.error(
                "operation_failed",
                operation=operation_name,
                duration_ms=round(duration_ms, 2),
                error_type=type(error).__name__,
                error=str(error),
                **properties,
            )
        elif is_slow:
            logger.warning(
                "slow_operation",
                operation=operation_name,
                duration_ms=round(duration_ms, 2),
                threshold_ms=threshold_ms,
                **properties,
            )
        else:
            logger.debug(
                "operation_completed",
                operation=operation_name,
                duration_ms=round(duration_ms, 2),
                **properties,
            )
