"""
Error taxonomy for datadog-shipper.

Only configuration errors (and, with batching disabled, encoding errors)
ever reach the caller. Everything else is contained by the worker and
surfaced through the injected error handler.
"""

from __future__ import annotations

from enum import Enum


class ErrorCategory(str, Enum):
    CONFIGURATION = "configuration"
    SERIALIZATION = "serialization"
    NETWORK = "network"
    LIFECYCLE = "lifecycle"


class ShipperError(Exception):
    """Base class for all errors raised by datadog-shipper."""

    category: ErrorCategory = ErrorCategory.LIFECYCLE

    def __init__(
        self,
        message: str,
        *,
        category: ErrorCategory | None = None,
        cause: BaseException | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        if category is not None:
            self.category = category
        self.cause = cause

    def __str__(self) -> str:
        if self.cause is not None:
            return f"{self.message}: {self.cause}"
        return self.message


class ConfigurationError(ShipperError):
    """Invalid or missing configuration; the hook is not created."""

    category = ErrorCategory.CONFIGURATION


class EncodingError(ShipperError):
    """A log entry could not be converted to its wire representation."""

    category = ErrorCategory.SERIALIZATION


class OversizeLineError(EncodingError):
    """An encoded line is larger than the per-line maximum."""

    def __init__(self, size: int, limit: int) -> None:
        super().__init__(
            "could not send log as it was too large! Maximum size for a "
            f"single log is {limit} bytes, this log is {size} bytes"
        )
        self.size = size
        self.limit = limit


class DeliveryError(ShipperError):
    """A single delivery attempt failed (transport error or HTTP status >= 400)."""

    category = ErrorCategory.NETWORK

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        cause: BaseException | None = None,
    ) -> None:
        super().__init__(message, cause=cause)
        self.status_code = status_code


class RetryExhaustedError(DeliveryError):
    """Terminal delivery failure: no further attempts will be made."""

    def __init__(self, attempts: int, last_error: BaseException | None) -> None:
        status = getattr(last_error, "status_code", None)
        super().__init__(
            f"failed to send after {attempts} attempts",
            status_code=status,
            cause=last_error,
        )
        self.attempts = attempts
        self.last_error = last_error


class HookClosedError(ShipperError):
    """Raised by ``fire()`` once ``close()`` has begun."""

    category = ErrorCategory.LIFECYCLE


__all__ = [
    "ConfigurationError",
    "DeliveryError",
    "EncodingError",
    "ErrorCategory",
    "HookClosedError",
    "OversizeLineError",
    "RetryExhaustedError",
    "ShipperError",
]
