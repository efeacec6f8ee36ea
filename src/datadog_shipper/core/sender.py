"""
Batch delivery to the Datadog HTTP intake.

A batch is framed once into ``[line,line,...]`` and the same bytes and URL
are reused for every attempt. A batch whose retries are exhausted is
dropped and reported; it is never re-queued.
"""

from __future__ import annotations

from typing import Sequence
from urllib.parse import urlencode

from ..metrics.metrics import MetricsCollector
from .batch import Batch
from .diagnostics import ErrorHandler, call_error_handler, warn
from .errors import DeliveryError, RetryExhaustedError
from .retry import Retrier, RetryConfig
from .settings import API_KEY_HEADER, BASE_PATH, HookSettings
from .transport import Transport


def build_intake_url(settings: HookSettings) -> str:
    """Intake URL with ``ddsource``, ``service``, ``hostname`` and ``ddtags``."""
    params: list[tuple[str, str]] = [
        ("ddsource", settings.source),
        ("service", settings.service),
        ("hostname", settings.hostname),
    ]
    tags = settings.resolved_tags()
    if tags:
        params.append(("ddtags", ",".join(tags)))
    return f"{settings.intake_endpoint}{BASE_PATH}?{urlencode(params)}"


def frame_lines(lines: Sequence[bytes]) -> bytes:
    """Join encoded lines into one JSON array payload."""
    return b"[" + b",".join(lines) + b"]"


class Sender:
    """Deliver framed batches with bounded retry."""

    def __init__(
        self,
        settings: HookSettings,
        transport: Transport,
        *,
        retrier: Retrier | None = None,
        error_handler: ErrorHandler | None = None,
        metrics: MetricsCollector | None = None,
    ) -> None:
        self._transport = transport
        self._url = build_intake_url(settings)
        self._headers = {
            API_KEY_HEADER: settings.api_key,
            "Content-Type": "application/json",
        }
        self._retrier = retrier or Retrier(
            RetryConfig(
                max_attempts=settings.max_retries,
                base_delay=settings.retry_base_delay,
                max_delay=settings.retry_max_delay,
                retryable_exceptions=(DeliveryError,),
            ),
            on_retry=self._on_retry,
        )
        self._error_handler = error_handler
        self._metrics = metrics

    @property
    def url(self) -> str:
        return self._url

    def deliver(self, batch: Batch) -> bool:
        """Send one batch. Empty batches are a no-op.

        Returns True on success, False after a terminal failure (already
        reported through the error handler).
        """
        if not batch:
            return True
        lines = batch.lines
        payload = frame_lines(lines)
        try:
            self._retrier.call(lambda: self._attempt(payload))
        except RetryExhaustedError as exc:
            if self._metrics is not None:
                self._metrics.record_delivery_failure(len(lines))
            call_error_handler(self._error_handler, exc)
            return False
        if self._metrics is not None:
            self._metrics.record_batch_sent(len(lines))
        return True

    def _attempt(self, payload: bytes) -> None:
        if self._metrics is not None:
            self._metrics.record_delivery_attempt()
        try:
            status = self._transport.post(self._url, payload, self._headers)
        except Exception as exc:
            raise DeliveryError("transport error", cause=exc) from exc
        if status >= 400:
            raise DeliveryError(f"intake returned HTTP {status}", status_code=status)

    def _on_retry(self, attempt: int, exc: BaseException) -> None:
        warn(
            "sender",
            "delivery attempt failed, retrying",
            attempt=attempt,
            status_code=getattr(exc, "status_code", None),
            error=str(exc),
            _rate_limit_key="sender-retry",
        )
