"""Process-wide run counters for external metrics reporting.

These counters are the only state shared across runs. They are
increment-only and never read by the pipeline itself.
"""

from collections import deque
import dataclasses
import threading
from typing import Literal

PerformanceCategory = Literal["excellent", "good", "acceptable", "slow"]
HealthStatus = Literal["excellent", "good", "acceptable", "poor"]

_HISTORY_SIZE = 1000


def categorize_duration(duration_ms: float) -> PerformanceCategory:
    """Bucket a run's wall-clock duration."""
    if duration_ms < 1000:
        return "excellent"
    if duration_ms < 3000:
        return "good"
    if duration_ms < 5000:
        return "acceptable"
    return "slow"


@dataclasses.dataclass(frozen=True, slots=True)
class MetricsSummary:
    """Point-in-time view of the counters with a health assessment."""

    request_count: int
    error_count: int
    error_rate: float
    average_duration_ms: float
    status: HealthStatus
    recommendations: tuple[str, ...] = ()


class PipelineMetrics:
    """Thread-safe request, error and latency counters.

    Latency is averaged over a rolling window of the most recent runs.
    """

    def __init__(self, history_size: int = _HISTORY_SIZE):
        self._lock = threading.Lock()
        self._durations: deque[float] = deque(maxlen=history_size)
        self._requests = 0
        self._errors = 0

    def record_run(self, duration_ms: float, *, success: bool) -> None:
        with self._lock:
            self._requests += 1
            if not success:
                self._errors += 1
            self._durations.append(duration_ms)

    @property
    def request_count(self) -> int:
        return self._requests

    @property
    def error_count(self) -> int:
        return self._errors

    @property
    def error_rate(self) -> float:
        """Failed runs as a percentage of all runs."""
        with self._lock:
            return self._error_rate()

    @property
    def average_duration_ms(self) -> float:
        with self._lock:
            return self._average()

    def summary(self) -> MetricsSummary:
        """Assess overall health from average latency and error rate."""
        with self._lock:
            average = self._average()
            error_rate = self._error_rate()
            requests, errors = self._requests, self._errors

        status: HealthStatus = "excellent"
        recommendations: list[str] = []
        if average > 5000:
            status = "poor"
            recommendations.append(
                "Consider optimizing slow collaborators or lowering the stage timeout"
            )
        elif average > 3000:
            status = "acceptable"
            recommendations.append(
                "Monitor execution times and consider performance optimizations"
            )
        elif average > 1000:
            status = "good"

        if error_rate > 5:
            status = "poor"
            recommendations.append("High error rate detected - investigate error causes")
        elif error_rate > 2:
            if status == "excellent":
                status = "good"
            recommendations.append("Monitor error rate and improve error handling")

        return MetricsSummary(
            request_count=requests,
            error_count=errors,
            error_rate=error_rate,
            average_duration_ms=average,
            status=status,
            recommendations=tuple(recommendations),
        )

    def reset(self) -> None:
        with self._lock:
            self._durations.clear()
            self._requests = 0
            self._errors = 0

    def _average(self) -> float:
        if not self._durations:
            return 0.0
        return sum(self._durations) / len(self._durations)

    def _error_rate(self) -> float:
        if not self._requests:
            return 0.0
        return self._errors / self._requests * 100


_default_metrics = PipelineMetrics()


def get_default_metrics() -> PipelineMetrics:
    """Return the process-wide metrics instance shared by orchestrators."""
    return _default_metrics
