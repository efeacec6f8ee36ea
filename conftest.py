"""
Root pytest configuration.
"""

from __future__ import annotations

import os
from collections.abc import Generator

import pytest

# Register datadog-shipper testing fixtures for all tests
pytest_plugins = ("datadog_shipper.testing.fixtures",)

_LEGACY_ENV_VARS = (
    "SERVICE",
    "HOST",
    "ENVIRONMENT",
    "APPLICATION",
    "MAINTAINER",
)


def pytest_configure(config: pytest.Config) -> None:
    """Register custom markers for test categorization."""
    config.addinivalue_line(
        "markers",
        "integration: Tests that talk to a local HTTP server",
    )
    config.addinivalue_line(
        "markers",
        "property: Property-based tests (may be slow)",
    )
    config.addinivalue_line(
        "markers",
        "slow: Tests that take >1 second",
    )


@pytest.fixture(autouse=True)
def isolated_environment(
    monkeypatch: pytest.MonkeyPatch,
) -> Generator[None, None, None]:
    """Strip hook-related environment variables so defaults are predictable."""
    for name in list(os.environ):
        if name.upper().startswith("DATADOG_"):
            monkeypatch.delenv(name, raising=False)
    for name in _LEGACY_ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    yield


@pytest.fixture(autouse=True)
def reset_diagnostics_rate_limits() -> Generator[None, None, None]:
    import datadog_shipper.core.diagnostics as diag

    diag._reset_rate_limits()
    yield
    diag._reset_rate_limits()
