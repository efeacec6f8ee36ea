"""
Batch accumulation.

A ``BatchAccumulator`` owns exactly one mutable ``Batch`` and is only ever
driven from a single thread (the intake worker, or the caller's thread when
batching is disabled), so the batch itself needs no lock.
"""

from __future__ import annotations

from typing import Callable

from ..metrics.metrics import MetricsCollector
from .diagnostics import ErrorHandler, call_error_handler
from .encoding import Encoder, encode_entry
from .errors import EncodingError, OversizeLineError
from .events import LogEntry

# Opening and closing bracket of the JSON array
FRAME_OVERHEAD = 2
SEPARATOR_SIZE = 1


class Batch:
    """Ordered encoded lines plus the size of their framed payload."""

    __slots__ = ("_lines", "_content_size")

    def __init__(self) -> None:
        self._lines: list[bytes] = []
        self._content_size = 0

    def __len__(self) -> int:
        return len(self._lines)

    def __bool__(self) -> bool:
        return bool(self._lines)

    @property
    def lines(self) -> tuple[bytes, ...]:
        return tuple(self._lines)

    @property
    def payload_size(self) -> int:
        """Size of ``[l1,l2,...]`` in bytes; 0 for an empty batch."""
        if not self._lines:
            return 0
        return self._framed_size(len(self._lines), self._content_size)

    def payload_size_with(self, line_size: int) -> int:
        """Payload size if one more line of ``line_size`` bytes were added."""
        return self._framed_size(len(self._lines) + 1, self._content_size + line_size)

    def add(self, line: bytes) -> None:
        self._lines.append(line)
        self._content_size += len(line)

    @staticmethod
    def _framed_size(count: int, content_size: int) -> int:
        return content_size + FRAME_OVERHEAD + SEPARATOR_SIZE * (count - 1)


Handoff = Callable[[Batch], object]


class BatchAccumulator:
    """Size- and count-bounded batching in front of a delivery hand-off."""

    def __init__(
        self,
        *,
        encoder: Encoder,
        handoff: Handoff,
        max_content_size: int,
        max_line_size: int,
        max_line_count: int,
        error_handler: ErrorHandler | None = None,
        metrics: MetricsCollector | None = None,
    ) -> None:
        self._encoder = encoder
        self._handoff = handoff
        self._max_content_size = max_content_size
        self._max_line_size = max_line_size
        self._max_line_count = max_line_count
        self._error_handler = error_handler
        self._metrics = metrics
        self._batch = Batch()

    @property
    def current(self) -> Batch:
        return self._batch

    def append(self, entry: LogEntry) -> bool:
        """Encode ``entry`` and add it to the current batch.

        Returns False when the entry was dropped (encoding failed or the line
        is oversize); the failure has already been reported.
        """
        try:
            line = encode_entry(self._encoder, entry)
        except EncodingError as exc:
            self._drop(exc, reason="encoding")
            return False
        return self.append_line(line)

    def append_line(self, line: bytes) -> bool:
        if len(line) > self._max_line_size:
            self._drop(
                OversizeLineError(len(line), self._max_line_size), reason="oversize"
            )
            return False
        batch = self._batch
        if batch and (
            batch.payload_size_with(len(line)) > self._max_content_size
            or len(batch) >= self._max_line_count
        ):
            self.flush_now()
        self._batch.add(line)
        return True

    def flush_now(self) -> None:
        """Seal the current batch, start a fresh one, then hand the old one off."""
        batch = self._batch
        self._batch = Batch()
        self._handoff(batch)

    def _drop(self, exc: EncodingError, *, reason: str) -> None:
        if self._metrics is not None:
            self._metrics.record_lines_dropped(1, reason=reason)
        call_error_handler(self._error_handler, exc)
