"""
Pytest fixtures for datadog-shipper.

Enable with ``pytest_plugins = ("datadog_shipper.testing.fixtures",)``.
"""

from __future__ import annotations

from collections.abc import Callable, Generator
from typing import Any

import pytest

from ..core.hook import DatadogHook, HookState
from .transports import RecordingTransport


@pytest.fixture
def recording_transport() -> RecordingTransport:
    return RecordingTransport()


@pytest.fixture
def make_hook(
    recording_transport: RecordingTransport,
) -> Generator[Callable[..., DatadogHook], None, None]:
    """Factory for hooks wired to ``recording_transport``.

    Periodic flushing is pushed far out and backoff disabled so tests are
    deterministic; every hook is closed at teardown.
    """
    hooks: list[DatadogHook] = []

    def _make(**overrides: Any) -> DatadogHook:
        options: dict[str, Any] = {
            "api_key": "test-key",
            "flush_interval_seconds": 3600.0,
            "retry_base_delay": 0.0,
            "atexit_close": False,
            "transport": recording_transport,
            **overrides,
        }
        hook = DatadogHook(**options)
        hooks.append(hook)
        return hook

    yield _make

    for hook in hooks:
        if hook.state is HookState.RUNNING:
            hook.close()
