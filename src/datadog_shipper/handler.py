"""stdlib ``logging`` adapter for ``DatadogHook``."""

from __future__ import annotations

import logging

from .core.diagnostics import LOGGER_NAME
from .core.events import LogEntry
from .core.hook import DatadogHook
from .core.levels import get_level_priority

# Loggers whose records are emitted while a delivery is in progress
_IGNORED_NAMESPACES = (LOGGER_NAME, "httpx", "httpcore")


class DatadogHandler(logging.Handler):
    """Forward ``LogRecord``s to a ``DatadogHook``.

    Usage::

        hook = DatadogHook(api_key="...", service="api")
        logging.getLogger().addHandler(DatadogHandler(hook))

    Records emitted by datadog-shipper itself and by the HTTP client it
    sends with (``httpx``, ``httpcore``) are never forwarded, so they cannot
    loop back into the hook.
    """

    def __init__(self, hook: DatadogHook, *, close_hook: bool = True) -> None:
        super().__init__(level=get_level_priority(hook.settings.min_level))
        self.hook = hook
        self._close_hook = close_hook

    def filter(self, record: logging.LogRecord) -> bool:  # type: ignore[override]
        if _is_ignored_logger(record.name):
            return False
        if not self.hook.accepts(record.levelno):
            return False
        return bool(super().filter(record))

    def emit(self, record: logging.LogRecord) -> None:
        try:
            self.hook.fire(LogEntry.from_record(record))
        except Exception:
            self.handleError(record)

    def close(self) -> None:
        try:
            if self._close_hook:
                self.hook.close()
        finally:
            super().close()


def _is_ignored_logger(name: str) -> bool:
    return any(
        name == namespace or name.startswith(f"{namespace}.")
        for namespace in _IGNORED_NAMESPACES
    )
