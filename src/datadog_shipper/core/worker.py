"""
Background workers for batched mode.

``IntakeWorker`` is the single consumer of the intake queue and the only
thread that touches the accumulator, so every flush (threshold, timer tick
or shutdown) and every send runs on it and deliveries never overlap.
``FlushTicker`` does not flush itself; it enqueues a flush request that the
intake worker processes in order with the entries around it.
"""

from __future__ import annotations

import queue
import threading
from typing import Callable, Union

from .batch import BatchAccumulator
from .diagnostics import warn
from .events import LogEntry


class _Control:
    __slots__ = ("name",)

    def __init__(self, name: str) -> None:
        self.name = name

    def __repr__(self) -> str:
        return f"<{self.name}>"


FLUSH = _Control("flush")
STOP = _Control("stop")

IntakeItem = Union[LogEntry, _Control]


def make_intake_queue() -> queue.Queue[IntakeItem]:
    # A single slot keeps producers in step with the worker: a slow delivery
    # stalls ``fire()`` instead of growing an in-memory backlog.
    return queue.Queue(maxsize=1)


class IntakeWorker:
    """Consume entries and control markers from the intake queue."""

    def __init__(
        self,
        *,
        intake: queue.Queue[IntakeItem],
        accumulator: BatchAccumulator,
        name: str = "datadog-shipper-intake",
    ) -> None:
        self._intake = intake
        self._accumulator = accumulator
        self._thread = threading.Thread(target=self._run, name=name, daemon=True)

    def start(self) -> None:
        self._thread.start()

    def join(self, timeout: float | None = None) -> None:
        self._thread.join(timeout)

    def is_alive(self) -> bool:
        return self._thread.is_alive()

    def is_current(self) -> bool:
        """True when called from the worker thread itself."""
        return threading.current_thread() is self._thread

    def _run(self) -> None:
        while True:
            item = self._intake.get()
            try:
                if item is STOP:
                    # Final flush of whatever is still buffered
                    self._step(self._accumulator.flush_now)
                    return
                if item is FLUSH:
                    self._step(self._accumulator.flush_now)
                elif isinstance(item, LogEntry):
                    self._step(lambda: self._accumulator.append(item))
            finally:
                self._intake.task_done()

    def _step(self, action: Callable[[], object]) -> None:
        try:
            action()
        except Exception as exc:
            # Keep consuming; a dead worker would block every producer
            warn(
                "worker",
                "intake worker error",
                error_type=type(exc).__name__,
                error=str(exc),
            )


class FlushTicker:
    """Periodically request a flush from the intake worker."""

    def __init__(
        self,
        *,
        intake: queue.Queue[IntakeItem],
        interval_seconds: float,
        name: str = "datadog-shipper-ticker",
    ) -> None:
        self._intake = intake
        self._interval = interval_seconds
        self._stopped = threading.Event()
        self._thread = threading.Thread(target=self._run, name=name, daemon=True)

    def start(self) -> None:
        self._thread.start()

    def stop(self) -> None:
        """Stop ticking and wait for the ticker thread to exit."""
        self._stopped.set()
        if self._thread.is_alive():
            self._thread.join()

    def _run(self) -> None:
        while not self._stopped.wait(self._interval):
            self._intake.put(FLUSH)
