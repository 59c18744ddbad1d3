# bizpilot/infra/metrics.py
"""
In-process dispatch metrics.

Counters and latency histograms keyed as ``name{label=value,...}`` with
labels sorted, served as JSON by ``GET /metrics``.  Each worker process
keeps its own numbers; nothing is exported or persisted.
"""
from __future__ import annotations

import time
from collections import deque
from threading import Lock

from bizpilot.infra.logging_config import get_logger

logger = get_logger(__name__)

# Latency samples kept per histogram; older samples fall off
HISTOGRAM_WINDOW = 1000


def metric_key(name: str, labels: dict | None = None) -> str:
    if not labels:
        return name
    return name + "{" + ",".join(f"{k}={labels[k]}" for k in sorted(labels)) + "}"


class LatencyWindow:
    """Most recent observations of one histogram series."""

    def __init__(self, size: int = HISTOGRAM_WINDOW):
        self._samples: deque[float] = deque(maxlen=size)
        self.count = 0

    def observe(self, value: float) -> None:
        self._samples.append(value)
        self.count += 1

    def snapshot(self) -> dict:
        if not self._samples:
            return {"count": self.count, "min": 0, "max": 0, "avg": 0, "p95": 0, "p99": 0}

        ordered = sorted(self._samples)
        last = len(ordered) - 1
        return {
            "count": self.count,
            "min": ordered[0],
            "max": ordered[-1],
            "avg": sum(ordered) / len(ordered),
            "p95": ordered[min(int(len(ordered) * 0.95), last)],
            "p99": ordered[min(int(len(ordered) * 0.99), last)],
        }


class MetricsCollector:
    """Thread-safe store for counters and latency windows."""

    def __init__(self):
        self._counters: dict[str, int] = {}
        self._histograms: dict[str, LatencyWindow] = {}
        self._lock = Lock()

    def inc_counter(self, name: str, amount: int = 1, labels: dict | None = None) -> None:
        key = metric_key(name, labels)
        with self._lock:
            self._counters[key] = self._counters.get(key, 0) + amount

    def observe_histogram(self, name: str, value: float, labels: dict | None = None) -> None:
        key = metric_key(name, labels)
        with self._lock:
            window = self._histograms.get(key)
            if window is None:
                window = self._histograms[key] = LatencyWindow()
            window.observe(value)

    def get_metrics(self) -> dict:
        with self._lock:
            return {
                "counters": dict(self._counters),
                "histograms": {k: w.snapshot() for k, w in self._histograms.items()},
            }

    def reset(self) -> None:
        with self._lock:
            self._counters.clear()
            self._histograms.clear()
        logger.debug("Metrics reset")


_metrics = MetricsCollector()


def get_metrics_collector() -> MetricsCollector:
    return _metrics


def inc_counter(name: str, amount: int = 1, **labels) -> None:
    _metrics.inc_counter(name, amount, labels or None)


def observe_histogram(name: str, value: float, **labels) -> None:
    _metrics.observe_histogram(name, value, labels or None)


class Timer:
    """Observe the wall time of a ``with`` block, including failed ones."""

    def __init__(self, metric_name: str, **labels):
        self.metric_name = metric_name
        self.labels = labels
        self._started: float | None = None

    def __enter__(self):
        self._started = time.monotonic()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        if self._started is not None:
            observe_histogram(self.metric_name, time.monotonic() - self._started, **self.labels)


class AppMetrics:
    """Named dispatch metrics"""

    @staticmethod
    def dispatch_requested(kind: str) -> None:
        inc_counter("ai_dispatch_total", kind=kind)

    @staticmethod
    def dispatch_failed(kind: str, error: str) -> None:
        inc_counter("ai_dispatch_errors_total", kind=kind, error=error)

    @staticmethod
    def malformed_reply(kind: str) -> None:
        inc_counter("ai_malformed_replies_total", kind=kind)

    @staticmethod
    def track_dispatch_time(kind: str) -> Timer:
        return Timer("ai_dispatch_seconds", kind=kind)
