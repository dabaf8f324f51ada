"""
Async-first flush metrics for lokisink.

Implements minimal Prometheus-compatible counters and a latency histogram for
push requests.

Design goals:
- Zero global state; each collector owns an isolated registry
- Safe no-op behavior when metrics are disabled by settings
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Any

from prometheus_client import CollectorRegistry, Counter, Histogram


@dataclass
class SinkMetrics:
    """Captured runtime metrics for quick assertions in tests."""

    flushes: int = 0
    flush_failures: int = 0
    entries_delivered: int = 0


class MetricsCollector:
    """Per-sink async metrics collector.

    When metrics are disabled all Prometheus calls are skipped while the
    in-memory counters are still tracked for tests.
    """

    def __init__(self, *, enabled: bool = False) -> None:
        self._enabled = bool(enabled)
        self._lock = asyncio.Lock()
        self._state = SinkMetrics()

        self._c_flushes: Any | None = None
        self._c_entries: Any | None = None
        self._h_flush_latency: Any | None = None
        self._registry: CollectorRegistry | None = None

        if self._enabled:
            self._registry = CollectorRegistry()
            self._c_flushes = Counter(
                "lokisink_flushes_total",
                "Total number of push requests by outcome",
                ["outcome"],
                registry=self._registry,
            )
            self._c_entries = Counter(
                "lokisink_entries_delivered_total",
                "Total number of log entries confirmed by Loki",
                registry=self._registry,
            )
            self._h_flush_latency = Histogram(
                "lokisink_flush_seconds",
                "Latency of a single push request",
                buckets=(0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0),
                registry=self._registry,
            )

    @property
    def is_enabled(self) -> bool:
        return self._enabled

    @property
    def registry(self) -> CollectorRegistry | None:
        """Expose the isolated Prometheus registry when enabled."""
        return self._registry

    async def record_flush_success(
        self, entries: int, *, duration_seconds: float | None = None
    ) -> None:
        async with self._lock:
            self._state.flushes += 1
            self._state.entries_delivered += entries
        if not self._enabled:
            return
        if self._c_flushes is not None:
            self._c_flushes.labels(outcome="success").inc()
        if self._c_entries is not None:
            self._c_entries.inc(entries)
        if duration_seconds is not None and self._h_flush_latency is not None:
            self._h_flush_latency.observe(duration_seconds)

    async def record_flush_failure(self, *, reason: str = "error") -> None:
        async with self._lock:
            self._state.flushes += 1
            self._state.flush_failures += 1
        if not self._enabled:
            return
        if self._c_flushes is not None:
            self._c_flushes.labels(outcome=reason).inc()

    async def snapshot(self) -> SinkMetrics:
        async with self._lock:
            return SinkMetrics(
                flushes=self._state.flushes,
                flush_failures=self._state.flush_failures,
                entries_delivered=self._state.entries_delivered,
            )
