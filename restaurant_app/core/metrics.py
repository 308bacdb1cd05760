from __future__ import annotations

from collections import Counter
from dataclasses import dataclass
from threading import Lock

ENGINE_COUNTERS = (
    "orders_created",
    "orders_completed",
    "deductions_applied",
    "shortages_recorded",
    "availability_flips",
    "validation_rejections",
)


@dataclass
class EndpointMetric:
    total_requests: int = 0
    total_duration_ms: float = 0.0
    error_count: int = 0


class InMemoryMetrics:
    def __init__(self) -> None:
        self._endpoints: dict[tuple[str, str], EndpointMetric] = {}
        self._counters: Counter[str] = Counter({name: 0 for name in ENGINE_COUNTERS})
        self._lock = Lock()

    def observe(self, endpoint: str, method: str, status_code: int, duration_ms: float) -> None:
        key = (endpoint, method)
        with self._lock:
            metric = self._endpoints.setdefault(key, EndpointMetric())
            metric.total_requests += 1
            metric.total_duration_ms += duration_ms
            if status_code >= 400:
                metric.error_count += 1

    def increment(self, counter: str, amount: int = 1) -> None:
        with self._lock:
            self._counters[counter] += amount

    def counter(self, counter: str) -> int:
        with self._lock:
            return self._counters[counter]

    def snapshot(self) -> dict[str, dict[str, float | int]]:
        with self._lock:
            result: dict[str, dict[str, float | int]] = {}
            for (endpoint, method), metric in self._endpoints.items():
                avg = metric.total_duration_ms / metric.total_requests if metric.total_requests else 0.0
                result[f"{method} {endpoint}"] = {
                    "total_requests": metric.total_requests,
                    "total_duration_ms": round(metric.total_duration_ms, 2),
                    "avg_duration_ms": round(avg, 2),
                    "error_count": metric.error_count,
                }
            return result

    def snapshot_engine(self) -> dict[str, int]:
        with self._lock:
            return dict(self._counters)

    def reset(self) -> None:
        with self._lock:
            self._endpoints.clear()
            self._counters = Counter({name: 0 for name in ENGINE_COUNTERS})


metrics = InMemoryMetrics()
