"""
Testing utilities for code that ships logs through datadog-shipper.
"""

from .transports import RecordedRequest, RecordingTransport

__all__ = ["RecordedRequest", "RecordingTransport"]
