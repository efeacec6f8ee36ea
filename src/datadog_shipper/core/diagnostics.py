"""
Internal diagnostics for non-fatal errors.

Failures that cannot be returned to the caller (oversize lines, terminal
delivery failures, a misbehaving error handler) are logged locally through
the stdlib ``logging`` module under the ``datadog_shipper`` namespace.
Records from this namespace are never forwarded to Datadog by
``DatadogHandler``.
"""

from __future__ import annotations

import logging
import threading
import time
from typing import Any, Callable

LOGGER_NAME = "datadog_shipper"

logger = logging.getLogger(LOGGER_NAME)
logger.addHandler(logging.NullHandler())

_diag_logger = logging.getLogger(f"{LOGGER_NAME}.diagnostics")

# Minimum seconds between two warnings sharing the same rate-limit key
RATE_LIMIT_INTERVAL_SECONDS = 5.0

_rate_lock = threading.Lock()
_last_emitted: dict[str, float] = {}

ErrorHandler = Callable[[Exception], None]


def _format_fields(fields: dict[str, Any]) -> str:
    return " ".join(f"{key}={value!r}" for key, value in sorted(fields.items()))


def _should_emit(key: str | None) -> bool:
    if key is None:
        return True
    now = time.monotonic()
    with _rate_lock:
        last = _last_emitted.get(key)
        if last is not None and now - last < RATE_LIMIT_INTERVAL_SECONDS:
            return False
        _last_emitted[key] = now
    return True


def warn(
    component: str,
    message: str,
    *,
    _rate_limit_key: str | None = None,
    **fields: Any,
) -> None:
    """Emit a structured WARNING diagnostic.

    Args:
        component: Emitting component (``sender``, ``worker``, ``settings``...)
        message: Short human readable description
        _rate_limit_key: Optional key; repeated warnings with the same key are
            suppressed for ``RATE_LIMIT_INTERVAL_SECONDS``
        **fields: Structured context rendered as ``key=value`` pairs
    """
    if not _should_emit(_rate_limit_key):
        return
    suffix = _format_fields(fields)
    if suffix:
        _diag_logger.warning("[%s] %s %s", component, message, suffix)
    else:
        _diag_logger.warning("[%s] %s", component, message)


def report_error(exc: Exception) -> None:
    """Default error handler: log the failure locally."""
    logger.error("The datadog logger hook has encountered an error: %s", exc)


def call_error_handler(handler: ErrorHandler | None, exc: Exception) -> None:
    """Invoke an error handler, containing anything it raises."""
    try:
        (handler or report_error)(exc)
    except Exception as handler_exc:
        try:
            warn(
                "diagnostics",
                "error handler raised",
                error_type=type(handler_exc).__name__,
                error=str(handler_exc),
                original=str(exc),
            )
        except Exception:
            pass


def _reset_rate_limits() -> None:
    """Clear rate-limit state (for testing only)."""
    with _rate_lock:
        _last_emitted.clear()
