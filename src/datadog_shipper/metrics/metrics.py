"""
Delivery metrics for datadog-shipper.

In-memory counters are always tracked (cheap, useful in tests). When
enabled, the same counts are mirrored into Prometheus counters registered
on an isolated ``CollectorRegistry`` to avoid global registration noise.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass, field
from typing import Any

from prometheus_client import CollectorRegistry, Counter


@dataclass
class ShipperMetrics:
    """Captured runtime counters for quick assertions in tests."""

    batches_sent: int = 0
    lines_sent: int = 0
    delivery_attempts: int = 0
    delivery_failures: int = 0
    lines_dropped: dict[str, int] = field(default_factory=dict)


class MetricsCollector:
    """Thread-safe metrics collector shared by the accumulator and sender."""

    def __init__(self, *, enabled: bool = False) -> None:
        self._enabled = bool(enabled)
        self._lock = threading.Lock()
        self._state = ShipperMetrics()

        self._c_batches: Any | None = None
        self._c_lines: Any | None = None
        self._c_attempts: Any | None = None
        self._c_failures: Any | None = None
        self._c_dropped: Any | None = None
        self._registry: CollectorRegistry | None = None

        if self._enabled:
            self._registry = CollectorRegistry()
            self._c_batches = Counter(
                "datadog_shipper_batches_sent_total",
                "Batches accepted by the intake",
                registry=self._registry,
            )
            self._c_lines = Counter(
                "datadog_shipper_lines_sent_total",
                "Log lines accepted by the intake",
                registry=self._registry,
            )
            self._c_attempts = Counter(
                "datadog_shipper_delivery_attempts_total",
                "HTTP delivery attempts, including retries",
                registry=self._registry,
            )
            self._c_failures = Counter(
                "datadog_shipper_delivery_failures_total",
                "Batches dropped after exhausting retries",
                registry=self._registry,
            )
            self._c_dropped = Counter(
                "datadog_shipper_lines_dropped_total",
                "Log lines dropped before or during delivery",
                ["reason"],
                registry=self._registry,
            )

    @property
    def is_enabled(self) -> bool:
        return self._enabled

    @property
    def registry(self) -> CollectorRegistry | None:
        """Expose the isolated Prometheus registry when enabled."""
        return self._registry

    def record_batch_sent(self, line_count: int) -> None:
        with self._lock:
            self._state.batches_sent += 1
            self._state.lines_sent += line_count
        if self._c_batches is not None and self._c_lines is not None:
            self._c_batches.inc()
            self._c_lines.inc(line_count)

    def record_delivery_attempt(self) -> None:
        with self._lock:
            self._state.delivery_attempts += 1
        if self._c_attempts is not None:
            self._c_attempts.inc()

    def record_delivery_failure(self, line_count: int) -> None:
        with self._lock:
            self._state.delivery_failures += 1
        if self._c_failures is not None:
            self._c_failures.inc()
        self.record_lines_dropped(line_count, reason="delivery")

    def record_lines_dropped(self, count: int, *, reason: str) -> None:
        with self._lock:
            dropped = self._state.lines_dropped
            dropped[reason] = dropped.get(reason, 0) + count
        if self._c_dropped is not None:
            self._c_dropped.labels(reason=reason).inc(count)

    def snapshot(self) -> ShipperMetrics:
        with self._lock:
            return ShipperMetrics(
                batches_sent=self._state.batches_sent,
                lines_sent=self._state.lines_sent,
                delivery_attempts=self._state.delivery_attempts,
                delivery_failures=self._state.delivery_failures,
                lines_dropped=dict(self._state.lines_dropped),
            )
