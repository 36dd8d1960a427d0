"""
Request statistics for the MEXC P2P client.

Tracks per-endpoint request counts, outcomes and durations.
"""

import time
from collections import defaultdict, deque
from dataclasses import dataclass
from typing import Any, Deque, Dict, List


@dataclass(frozen=True)
class RequestMetrics:
    """Metrics for a single request."""
    endpoint: str
    method: str
    outcome: str  # "ok", "domain" or "transport"
    duration_ms: float
    timestamp: float

    def to_dict(self) -> Dict[str, Any]:
        return {
            "endpoint": self.endpoint,
            "method": self.method,
            "outcome": self.outcome,
            "duration_ms": round(self.duration_ms, 2),
            "timestamp": self.timestamp,
        }


@dataclass
class Statistics:
    """Client request statistics."""
    total_requests: int = 0
    successful_requests: int = 0
    failed_requests: int = 0
    total_duration_ms: float = 0.0
    avg_duration_ms: float = 0.0
    max_duration_ms: float = 0.0

    def update(self, metrics: RequestMetrics) -> None:
        """Update statistics with new request metrics."""
        self.total_requests += 1
        self.total_duration_ms += metrics.duration_ms
        self.avg_duration_ms = self.total_duration_ms / self.total_requests
        self.max_duration_ms = max(self.max_duration_ms, metrics.duration_ms)

        if metrics.outcome == "ok":
            self.successful_requests += 1
        else:
            self.failed_requests += 1

    def to_dict(self) -> Dict[str, float]:
        return {
            "total_requests": self.total_requests,
            "successful_requests": self.successful_requests,
            "failed_requests": self.failed_requests,
            "avg_duration_ms": round(self.avg_duration_ms, 2),
            "max_duration_ms": round(self.max_duration_ms, 2),
        }


class RequestMonitor:
    """Records outbound request metrics."""

    def __init__(self, max_history: int = 500):
        self._statistics = Statistics()
        self._history: Deque[RequestMetrics] = deque(maxlen=max_history)
        self._endpoint_stats: Dict[str, Statistics] = defaultdict(Statistics)

    def record(self, endpoint: str, method: str, outcome: str, duration_ms: float) -> None:
        """Record metrics for a completed request."""
        metrics = RequestMetrics(
            endpoint=endpoint,
            method=method,
            outcome=outcome,
            duration_ms=duration_ms,
            timestamp=time.time(),
        )
        self._statistics.update(metrics)
        self._history.append(metrics)
        self._endpoint_stats[f"{method} {endpoint}"].update(metrics)

    @property
    def statistics(self) -> Statistics:
        return self._statistics

    def endpoint_summary(self) -> Dict[str, Dict[str, float]]:
        """Per-endpoint statistics keyed by `METHOD path`."""
        return {key: stats.to_dict() for key, stats in self._endpoint_stats.items()}

    def get_recent_requests(self, count: int = 10) -> List[RequestMetrics]:
        return list(self._history)[-count:]
