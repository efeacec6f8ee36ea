"""
Public entrypoints for datadog-shipper.

Batches structured log entries and ships them to the Datadog HTTP log
intake from a background worker, with bounded retry.
"""

from __future__ import annotations

import logging
import sys
from typing import Any

from ._version import __version__
from .core.diagnostics import ErrorHandler, report_error
from .core.encoding import Encoder, JsonEncoder
from .core.errors import (
    ConfigurationError,
    DeliveryError,
    EncodingError,
    HookClosedError,
    OversizeLineError,
    RetryExhaustedError,
    ShipperError,
)
from .core.events import LogEntry
from .core.hook import DatadogHook, HookState
from .core.levels import get_level_priority
from .core.settings import HookSettings
from .core.transport import HttpxTransport, Transport
from .handler import DatadogHandler
from .metrics.metrics import MetricsCollector

__all__ = [
    "ConfigurationError",
    "DatadogHandler",
    "DatadogHook",
    "DeliveryError",
    "Encoder",
    "EncodingError",
    "ErrorHandler",
    "HookClosedError",
    "HookSettings",
    "HookState",
    "HttpxTransport",
    "JsonEncoder",
    "LogEntry",
    "MetricsCollector",
    "OversizeLineError",
    "RetryExhaustedError",
    "ShipperError",
    "Transport",
    "VERSION",
    "__version__",
    "get_logger",
    "report_error",
]

VERSION = __version__

_STDOUT_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s"
_STDOUT_HANDLER_NAME = "datadog_shipper.stdout"


def get_logger(
    name: str | None = None,
    *,
    api_key: str | None = None,
    level: str | int = "INFO",
    **options: Any,
) -> logging.Logger:
    """Return a stdlib logger writing to stdout and, given an API key, Datadog.

    Without an API key the logger only writes to stdout and a warning is
    logged that nothing will be shipped. Remaining keyword arguments are
    passed to ``DatadogHook`` (``service=``, ``tags=``, ``transport=``...).
    Calling it again for the same name returns the logger unchanged apart
    from its level; options of later calls are ignored.

    Example:
        logger = get_logger("billing", api_key=os.environ["DATADOG_API_KEY"])
        logger.info("invoice sent", extra={"invoice_id": 42})
    """
    logger = logging.getLogger(name)
    logger.setLevel(get_level_priority(level))

    # Repeat calls for the same name reuse the handlers already attached
    if not any(h.get_name() == _STDOUT_HANDLER_NAME for h in logger.handlers):
        stream = logging.StreamHandler(sys.stdout)
        stream.set_name(_STDOUT_HANDLER_NAME)
        stream.setFormatter(logging.Formatter(_STDOUT_FORMAT))
        logger.addHandler(stream)
    if any(isinstance(h, DatadogHandler) for h in logger.handlers):
        return logger

    if not api_key:
        logger.warning("apiKey is not provided, logs will not be sent to datadog")
        return logger

    hook = DatadogHook(api_key=api_key, min_level=level, **options)
    logger.addHandler(DatadogHandler(hook))
    return logger
