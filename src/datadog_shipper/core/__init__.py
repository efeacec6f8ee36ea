"""
Core batching and delivery engine.
"""

from .batch import Batch, BatchAccumulator
from .encoding import Encoder, JsonEncoder
from .errors import (
    ConfigurationError,
    DeliveryError,
    EncodingError,
    ErrorCategory,
    HookClosedError,
    OversizeLineError,
    RetryExhaustedError,
    ShipperError,
)
from .events import LogEntry
from .hook import DatadogHook, HookState
from .retry import Retrier, RetryConfig
from .sender import Sender, build_intake_url, frame_lines
from .settings import HookSettings, load_settings
from .transport import HttpxTransport, Transport

__all__ = [
    "Batch",
    "BatchAccumulator",
    "ConfigurationError",
    "DatadogHook",
    "DeliveryError",
    "Encoder",
    "EncodingError",
    "ErrorCategory",
    "HookClosedError",
    "HookSettings",
    "HookState",
    "HttpxTransport",
    "JsonEncoder",
    "LogEntry",
    "OversizeLineError",
    "Retrier",
    "RetryConfig",
    "RetryExhaustedError",
    "Sender",
    "ShipperError",
    "Transport",
    "build_intake_url",
    "frame_lines",
    "load_settings",
]
