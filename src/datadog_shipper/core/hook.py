"""
Datadog hook: the lifecycle coordinator tying intake, batching and delivery
together.

States are linear: UNINITIALIZED -> RUNNING -> DRAINING -> CLOSED.
"""

from __future__ import annotations

import threading
from enum import Enum
from types import TracebackType
from typing import Any

from ..metrics.metrics import MetricsCollector
from . import shutdown
from .batch import BatchAccumulator
from .diagnostics import ErrorHandler, warn
from .encoding import Encoder, JsonEncoder, encode_entry
from .errors import HookClosedError
from .events import LogEntry
from .levels import canonical_level_name, levels_at_or_above
from .sender import Sender
from .settings import HookSettings, load_settings
from .transport import HttpxTransport, Transport
from .worker import STOP, FlushTicker, IntakeWorker, make_intake_queue


class HookState(str, Enum):
    UNINITIALIZED = "uninitialized"
    RUNNING = "running"
    DRAINING = "draining"
    CLOSED = "closed"


class DatadogHook:
    """Ship log entries to the Datadog HTTP intake.

    With batching enabled (the default) ``fire()`` hands the entry to a
    single background worker and may block while that worker is busy
    delivering. With batching disabled ``fire()`` encodes and delivers the
    entry on the calling thread before returning.

    Example:
        hook = DatadogHook(api_key="...", service="billing")
        hook.fire(LogEntry(message="invoice sent", level="INFO"))
        hook.close()
    """

    def __init__(
        self,
        settings: HookSettings | None = None,
        *,
        encoder: Encoder | None = None,
        transport: Transport | None = None,
        error_handler: ErrorHandler | None = None,
        metrics: MetricsCollector | None = None,
        **options: Any,
    ) -> None:
        self._state = HookState.UNINITIALIZED
        cfg = load_settings(settings, **options)
        self._settings = cfg
        self._encoder: Encoder = encoder or JsonEncoder()
        self._error_handler = error_handler
        self._metrics = metrics or MetricsCollector(enabled=cfg.enable_metrics)
        self._owns_transport = transport is None
        self._transport: Transport = transport or HttpxTransport(
            timeout=cfg.timeout_seconds
        )
        self._levels = levels_at_or_above(cfg.min_level)
        self._sender = Sender(
            cfg,
            self._transport,
            error_handler=error_handler,
            metrics=self._metrics,
        )
        self._accumulator = BatchAccumulator(
            encoder=self._encoder,
            handoff=self._sender.deliver,
            max_content_size=cfg.max_content_size,
            max_line_size=cfg.max_line_size,
            max_line_count=cfg.max_line_count,
            error_handler=error_handler,
            metrics=self._metrics,
        )
        self._cond = threading.Condition()
        self._inflight = 0
        # Serialises inline deliveries when batching is disabled
        self._inline_lock = threading.Lock()
        # Marks a thread that is inside an inline delivery
        self._delivering = threading.local()

        self._intake = make_intake_queue()
        self._worker: IntakeWorker | None = None
        self._ticker: FlushTicker | None = None
        if cfg.batching_enabled:
            self._worker = IntakeWorker(
                intake=self._intake, accumulator=self._accumulator
            )
            self._ticker = FlushTicker(
                intake=self._intake, interval_seconds=cfg.flush_interval_seconds
            )
            self._worker.start()
            self._ticker.start()

        self._state = HookState.RUNNING
        if cfg.atexit_close:
            shutdown.register_hook(self)

    # ------------------------------------------------------------------
    # Hook interface
    # ------------------------------------------------------------------

    @property
    def settings(self) -> HookSettings:
        return self._settings

    @property
    def state(self) -> HookState:
        return self._state

    @property
    def metrics(self) -> MetricsCollector:
        return self._metrics

    @property
    def url(self) -> str:
        return self._sender.url

    def levels(self) -> frozenset[str]:
        """Level names this hook accepts (at or above the configured minimum)."""
        return self._levels

    def accepts(self, level: str | int) -> bool:
        try:
            return canonical_level_name(level) in self._levels
        except ValueError:
            return False

    def fire(self, entry: LogEntry) -> None:
        """Submit one entry.

        Entries fired from inside a delivery (for instance a record the HTTP
        client logs while sending) are dropped: the worker cannot wait on its
        own intake, and an inline send already holds the delivery lock.

        Raises:
            HookClosedError: If ``close()`` has begun
            EncodingError: Only with batching disabled, when the entry cannot
                be encoded
        """
        if self._is_delivering_thread():
            self._metrics.record_lines_dropped(1, reason="reentrant")
            warn(
                "hook",
                "dropped entry logged during delivery",
                level=entry.level,
                _rate_limit_key="hook-reentrant",
            )
            return
        self._enter()
        try:
            if self._worker is not None:
                self._intake.put(entry)
            else:
                self._fire_inline(entry)
        finally:
            self._leave()

    def close(self) -> None:
        """Stop intake, deliver anything buffered and wait for the workers.

        Blocks until the final delivery has completed or failed terminally.
        Calling it again is a no-op.
        """
        with self._cond:
            if self._state is not HookState.RUNNING:
                self._cond.wait_for(lambda: self._state is HookState.CLOSED)
                return
            self._state = HookState.DRAINING
            # Let producers already past the state check finish their hand-off
            self._cond.wait_for(lambda: self._inflight == 0)

        try:
            if self._ticker is not None:
                self._ticker.stop()
            if self._worker is not None:
                self._intake.put(STOP)
                self._worker.join()
            if self._owns_transport:
                self._transport.close()
        finally:
            with self._cond:
                self._state = HookState.CLOSED
                self._cond.notify_all()
            shutdown.unregister_hook(self)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _enter(self) -> None:
        with self._cond:
            if self._state is not HookState.RUNNING:
                raise HookClosedError(
                    f"cannot fire on a {self._state.value} datadog hook"
                )
            self._inflight += 1

    def _leave(self) -> None:
        with self._cond:
            self._inflight -= 1
            if self._inflight == 0:
                self._cond.notify_all()

    def _is_delivering_thread(self) -> bool:
        if getattr(self._delivering, "active", False):
            return True
        return self._worker is not None and self._worker.is_current()

    def _fire_inline(self, entry: LogEntry) -> None:
        line = encode_entry(self._encoder, entry)
        with self._inline_lock:
            self._delivering.active = True
            try:
                if self._accumulator.append_line(line):
                    self._accumulator.flush_now()
            finally:
                self._delivering.active = False

    def __enter__(self) -> DatadogHook:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()

    def __repr__(self) -> str:
        return (
            f"DatadogHook(service={self._settings.service!r}, "
            f"state={self._state.value!r})"
        )
