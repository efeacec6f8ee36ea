"""
Bounded retry with exponential backoff.

Attempt accounting is exact: ``max_attempts = n`` performs at most ``n``
calls, ``0`` is treated as a single attempt, and a negative value retries
until the call succeeds.
"""

from __future__ import annotations

import random
import time
from dataclasses import dataclass
from typing import Callable, TypeVar

from .errors import RetryExhaustedError

T = TypeVar("T")


@dataclass(frozen=True)
class RetryConfig:
    max_attempts: int = 5
    base_delay: float = 0.1
    max_delay: float = 5.0
    multiplier: float = 2.0
    jitter: bool = True
    retryable_exceptions: tuple[type[BaseException], ...] = (Exception,)

    @property
    def unbounded(self) -> bool:
        return self.max_attempts < 0

    @property
    def attempt_limit(self) -> int | None:
        if self.unbounded:
            return None
        return max(1, self.max_attempts)

    def delay_for(self, attempt: int) -> float:
        """Backoff before the attempt following failed attempt number ``attempt``."""
        if self.base_delay <= 0:
            return 0.0
        try:
            delay = self.base_delay * (self.multiplier ** (attempt - 1))
        except OverflowError:
            # Unbounded retry runs long enough for the power to leave float range
            delay = self.max_delay
        delay = min(self.max_delay, delay)
        if self.jitter:
            delay *= random.uniform(0.5, 1.0)
        return delay


class Retrier:
    """Call a function until it succeeds or the attempt budget is spent."""

    def __init__(
        self,
        config: RetryConfig,
        *,
        sleep: Callable[[float], None] = time.sleep,
        on_retry: Callable[[int, BaseException], None] | None = None,
    ) -> None:
        self._config = config
        self._sleep = sleep
        self._on_retry = on_retry

    @property
    def config(self) -> RetryConfig:
        return self._config

    def call(self, func: Callable[[], T]) -> T:
        """Run ``func`` with retries.

        Raises:
            RetryExhaustedError: After the last allowed attempt fails
        """
        limit = self._config.attempt_limit
        attempt = 0
        while True:
            attempt += 1
            try:
                return func()
            except self._config.retryable_exceptions as exc:
                if limit is not None and attempt >= limit:
                    raise RetryExhaustedError(attempt, exc) from exc
                if self._on_retry is not None:
                    self._on_retry(attempt, exc)
                delay = self._config.delay_for(attempt)
                if delay > 0:
                    self._sleep(delay)
