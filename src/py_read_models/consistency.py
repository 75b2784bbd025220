"""
This module tracks how far each projection trails the events it applies.

A lag sample is the number of milliseconds between an event's `occurred_at`
and the moment a projection finished applying it. Samples are kept per
projection name and summarized into health answers. None of the operations
suspend, so one monitor can be shared by every task in the process.
"""
from collections import deque
from datetime import datetime, timezone
from typing import Deque, Dict, List

from .models import ConsistencyReport, ProjectedEvent, ProjectionConsistencyStats

DEFAULT_LAG_THRESHOLD_MS = 5000


class ConsistencyMonitor:
    def __init__(
        self,
        *,
        default_threshold_ms: float = DEFAULT_LAG_THRESHOLD_MS,
        max_samples: int | None = None,
    ):
        if max_samples is not None and max_samples <= 0:
            raise ValueError(f"max_samples must be positive, got {max_samples}")
        self.default_threshold_ms = default_threshold_ms
        self.max_samples = max_samples
        self._samples: Dict[str, Deque[float]] = {}

    def record_lag(self, projection_name: str, lag_ms: float) -> None:
        if projection_name not in self._samples:
            self._samples[projection_name] = deque(maxlen=self.max_samples)
        self._samples[projection_name].append(lag_ms)

    def record_event_applied(
        self,
        projection_name: str,
        event: ProjectedEvent,
        applied_at: datetime | None = None,
    ) -> float:
        """
        Records the lag between `event.occurred_at` and `applied_at` (now, by
        default) and returns it. Naive timestamps are read as UTC; negative lag
        from clock skew is recorded as 0.
        """
        applied_at = applied_at or datetime.now(timezone.utc)
        lag_ms = (_as_utc(applied_at) - _as_utc(event.occurred_at)).total_seconds() * 1000
        lag_ms = max(lag_ms, 0.0)
        self.record_lag(projection_name, lag_ms)
        return lag_ms

    def get_average_lag(self, projection_name: str) -> float:
        samples = self._samples.get(projection_name)
        if not samples:
            return 0
        return sum(samples) / len(samples)

    def get_max_lag(self, projection_name: str) -> float:
        samples = self._samples.get(projection_name)
        if not samples:
            return 0
        return max(samples)

    def get_sample_count(self, projection_name: str) -> int:
        return len(self._samples.get(projection_name, ()))

    def is_healthy(self, projection_name: str, threshold_ms: float | None = None) -> bool:
        if not self._samples.get(projection_name):
            return True
        if threshold_ms is None:
            threshold_ms = self.default_threshold_ms
        return self.get_max_lag(projection_name) <= threshold_ms

    def tracked_projections(self) -> List[str]:
        return list(self._samples)

    def get_report(self, threshold_ms: float | None = None) -> ConsistencyReport:
        projections = {
            name: ProjectionConsistencyStats(
                average_lag_ms=self.get_average_lag(name),
                max_lag_ms=self.get_max_lag(name),
                sample_count=self.get_sample_count(name),
                is_healthy=self.is_healthy(name, threshold_ms),
            )
            for name in self._samples
        }
        return ConsistencyReport(
            projections=projections,
            overall_healthy=all(stats.is_healthy for stats in projections.values()),
        )

    def reset(self) -> None:
        self._samples.clear()


def _as_utc(ts: datetime) -> datetime:
    if ts.tzinfo is None:
        return ts.replace(tzinfo=timezone.utc)
    return ts
