"""Performance statistics entities."""

from dataclasses import dataclass, field


@dataclass
class OperationStats:
    count: int = 0
    total_duration_ms: float = 0.0
    max_duration_ms: float = 0.0
    min_duration_ms: float = 0.0
    slow_count: int = 0
    failure_count: int = 0

    @property
    def average_duration_ms(self) -> float:
        if self.count == 0:
            return 0.0
        return self.total_duration_ms / self.count


@dataclass
class PerformanceStatistics:
    total_operations: int = 0
    slow_operations: int = 0
    failed_operations: int = 0
    average_duration_ms: float = 0.0
    max_duration_ms: float = 0.0
    min_duration_ms: float = 0.0
    operation_breakdown: dict[str, OperationStats] = field(default_factory=dict)
