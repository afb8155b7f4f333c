"""In-process counters for sync outcomes and timings for remote calls."""

import time
from contextlib import contextmanager
from typing import Any

import structlog

logger = structlog.get_logger().bind(source="observability")

# Counters every run reports, even at zero
SYNC_OUTCOMES = (
    "sync.load.remote_ok",
    "sync.load.remote_failed",
    "sync.mutation.confirmed",
    "sync.mutation.failed",
    "sync.mutation.stale",
    "sync.mutation.local_only",
)


class Metrics:
    """Counts what happened to each optimistic change and times gateway calls.

    Counter names are dotted (`sync.mutation.failed`); timer names are
    `gateway.<method>`.
    """

    def __init__(self):
        self._counters: dict[str, int] = {}
        self._timers: dict[str, list[float]] = {}

    def counter(self, name: str, value: int = 1):
        self._counters[name] = self._counters.get(name, 0) + value

    def count(self, name: str) -> int:
        return self._counters.get(name, 0)

    @contextmanager
    def timer(self, name: str):
        """Record how long a remote call took, whether it answered or raised."""
        start = time.monotonic()
        try:
            yield
        finally:
            self._timers.setdefault(name, []).append(time.monotonic() - start)

    def outcomes(self) -> dict[str, int]:
        return {name: self.count(name) for name in SYNC_OUTCOMES}

    def summary(self) -> dict[str, Any]:
        timers = {}
        for name, durations in self._timers.items():
            timers[name] = {
                "count": len(durations),
                "total": sum(durations),
                "avg": sum(durations) / len(durations),
                "max": max(durations),
            }
        return {"counters": dict(self._counters), "timers": timers}

    def reset(self):
        self._counters.clear()
        self._timers.clear()


metrics = Metrics()


def log_run_summary():
    """Emit one `sync_run_summary` event for the CLI invocation that just ended."""
    calls = {name: round(t["avg"] * 1000, 1) for name, t in metrics.summary()["timers"].items()}
    logger.info("sync_run_summary", outcomes=metrics.outcomes(), gateway_avg_ms=calls)
