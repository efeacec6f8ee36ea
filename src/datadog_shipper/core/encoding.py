"""
Entry-to-wire encoding.

The default encoder renders one ``LogEntry`` as a compact JSON object using
orjson, with the message under a key literally named ``message``. Any
callable ``LogEntry -> bytes`` can be injected instead.
"""

from __future__ import annotations

from typing import Any, Callable

import orjson

from .errors import EncodingError
from .events import LogEntry
from .levels import wire_level_name

Encoder = Callable[[LogEntry], bytes]

MESSAGE_KEY = "message"
LEVEL_KEY = "level"
TIME_KEY = "time"

_RESERVED_KEYS = frozenset({MESSAGE_KEY, LEVEL_KEY, TIME_KEY})


def _default(obj: Any) -> Any:
    """Default serializer hook for unsupported types."""
    if isinstance(obj, BaseException):
        return str(obj)
    if hasattr(obj, "model_dump"):
        return obj.model_dump(exclude_none=True)
    raise TypeError(f"Object of type {type(obj).__name__} is not JSON serializable")


class JsonEncoder:
    """Encode entries as single-line JSON objects.

    Fields whose names collide with ``message``, ``level`` or ``time`` are
    kept under a ``fields.`` prefix instead of overwriting the entry's own
    values.
    """

    def __init__(self, *, sort_keys: bool = True) -> None:
        self._option = orjson.OPT_SORT_KEYS if sort_keys else 0

    def build_payload(self, entry: LogEntry) -> dict[str, Any]:
        payload: dict[str, Any] = {}
        for key, value in entry.fields.items():
            key = str(key)
            if key in _RESERVED_KEYS:
                key = f"fields.{key}"
            payload[key] = value
        payload[TIME_KEY] = entry.timestamp.isoformat()
        payload[LEVEL_KEY] = wire_level_name(entry.level)
        payload[MESSAGE_KEY] = entry.message
        return payload

    def __call__(self, entry: LogEntry) -> bytes:
        try:
            payload = self.build_payload(entry)
            return orjson.dumps(payload, default=_default, option=self._option)
        except (TypeError, ValueError, orjson.JSONEncodeError) as e:
            raise EncodingError("Serialization failed", cause=e) from e


def encode_entry(encoder: Encoder, entry: LogEntry) -> bytes:
    """Run an encoder, normalising any failure to ``EncodingError``."""
    try:
        line = encoder(entry)
    except EncodingError:
        raise
    except Exception as e:
        raise EncodingError("Serialization failed", cause=e) from e
    if not isinstance(line, (bytes, bytearray)):
        raise EncodingError(
            f"Encoder returned {type(line).__name__}, expected bytes"
        )
    return bytes(line)
