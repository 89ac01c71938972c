"""
Exchange statistics for the gwadmin client.

The transport reports each completed exchange (method, status, duration) and
each outcome of the version protocol: an adopted server version, a conflict
or an auth failure. ``ExchangeStats.snapshot()`` returns a plain dict view,
exposed to callers as ``AdminClient.metrics()``.
"""

import threading
from collections import Counter
from dataclasses import dataclass
from typing import Any, Dict, Optional, Tuple


class MetricNames:
    """Keys used in snapshots."""

    REQUESTS_TOTAL = "requests_total"
    REQUEST_DURATION = "request_duration_ms"
    VERSION_CONFLICTS = "version_conflicts_total"
    UNAUTHORIZED = "unauthorized_total"
    VERSION_ADOPTIONS = "version_adoptions_total"


@dataclass
class DurationStats:
    count: int = 0
    total_ms: float = 0.0
    max_ms: float = 0.0

    @property
    def avg_ms(self) -> float:
        return self.total_ms / self.count if self.count else 0.0

    def add(self, duration_ms: float):
        self.count += 1
        self.total_ms += duration_ms
        self.max_ms = max(self.max_ms, duration_ms)


class ExchangeStats:
    """Thread-safe tallies of exchanges and version protocol outcomes."""

    def __init__(self):
        self._lock = threading.Lock()
        self._requests: Counter = Counter()
        self._durations: Dict[str, DurationStats] = {}
        self._outcomes: Counter = Counter()

    def record_exchange(self, method: str, status_code: int, duration_ms: float):
        with self._lock:
            self._requests[(method, status_code)] += 1
            self._durations.setdefault(method, DurationStats()).add(duration_ms)

    def record_adoption(self):
        with self._lock:
            self._outcomes[MetricNames.VERSION_ADOPTIONS] += 1

    def record_conflict(self):
        with self._lock:
            self._outcomes[MetricNames.VERSION_CONFLICTS] += 1

    def record_unauthorized(self):
        with self._lock:
            self._outcomes[MetricNames.UNAUTHORIZED] += 1

    def requests(self, method: Optional[str] = None, status_code: Optional[int] = None) -> int:
        """Number of exchanges, optionally narrowed to a method and/or status."""
        with self._lock:
            return sum(
                count
                for (m, s), count in self._requests.items()
                if (method is None or m == method) and (status_code is None or s == status_code)
            )

    def duration(self, method: str) -> Optional[DurationStats]:
        with self._lock:
            return self._durations.get(method)

    def outcome(self, name: str) -> int:
        with self._lock:
            return self._outcomes[name]

    def snapshot(self) -> Dict[str, Any]:
        with self._lock:
            requests: Dict[str, Dict[str, int]] = {}
            for (method, status_code), count in sorted(self._requests.items()):
                requests.setdefault(method, {})[str(status_code)] = count
            return {
                MetricNames.REQUESTS_TOTAL: requests,
                MetricNames.REQUEST_DURATION: {
                    method: {"count": d.count, "avg_ms": d.avg_ms, "max_ms": d.max_ms}
                    for method, d in self._durations.items()
                },
                **{name: self._outcomes[name] for name in _OUTCOMES},
            }

    def reset(self):
        with self._lock:
            self._requests.clear()
            self._durations.clear()
            self._outcomes.clear()


_OUTCOMES: Tuple[str, ...] = (
    MetricNames.VERSION_ADOPTIONS,
    MetricNames.VERSION_CONFLICTS,
    MetricNames.UNAUTHORIZED,
)

# Global instance shared by every transport in the process
metrics = ExchangeStats()


def get_metrics() -> ExchangeStats:
    """Get the global exchange statistics."""
    return metrics
