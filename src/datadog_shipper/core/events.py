"""
Log entry model handed to the hook by the host logging framework.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from types import MappingProxyType
from typing import Any, Mapping

from .levels import canonical_level_name

# Attributes every LogRecord carries; anything else came in through ``extra=``
_RECORD_ATTRS = frozenset(
    logging.LogRecord("", 0, "", 0, "", None, None).__dict__.keys()
) | {"message", "asctime", "taskName"}


@dataclass(frozen=True)
class LogEntry:
    """Immutable structured log record."""

    message: str
    level: str = "INFO"
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    fields: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if not isinstance(self.timestamp, datetime):
            raise ValueError("Timestamp must be a datetime object")
        # Freeze the caller's mapping so later mutation cannot leak in
        object.__setattr__(self, "fields", MappingProxyType(dict(self.fields)))

    @classmethod
    def from_record(cls, record: logging.LogRecord) -> LogEntry:
        """Build an entry from a stdlib ``LogRecord``.

        Attributes passed through ``extra=`` become fields; exception info is
        rendered into an ``error`` field.
        """
        fields: dict[str, Any] = {
            key: value
            for key, value in record.__dict__.items()
            if key not in _RECORD_ATTRS and not key.startswith("_")
        }
        fields.setdefault("logger", record.name)
        if record.exc_info and record.exc_info[0] is not None:
            fields.setdefault(
                "error", logging.Formatter().formatException(record.exc_info)
            )
        return cls(
            message=record.getMessage(),
            level=canonical_level_name(record.levelno),
            timestamp=datetime.fromtimestamp(record.created, tz=timezone.utc),
            fields=fields,
        )
