from __future__ import annotations

import json
import threading
from collections.abc import Callable, Generator
from http.server import BaseHTTPRequestHandler, HTTPServer
from typing import Any
from urllib.parse import parse_qs, urlsplit

import pytest

from datadog_shipper import DatadogHook, HookState


class IntakeHandler(BaseHTTPRequestHandler):
    """Record every POST and answer from the server's status script."""

    server: IntakeServer  # type: ignore[assignment]

    def do_POST(self) -> None:
        length = int(self.headers.get("Content-Length", 0))
        body = self.rfile.read(length)
        parts = urlsplit(self.path)
        with self.server.lock:
            self.server.payloads.append(
                {
                    "path": parts.path,
                    "query": parse_qs(parts.query),
                    "api_key": self.headers.get("DD-API-KEY", ""),
                    "content_type": self.headers.get("Content-Type", ""),
                    "lines": json.loads(body),
                }
            )
            status = (
                self.server.statuses.pop(0)
                if self.server.statuses
                else self.server.default_status
            )
        self.send_response(status)
        self.send_header("Content-Type", "application/json")
        self.send_header("Content-Length", "2")
        self.end_headers()
        self.wfile.write(b"{}")

    def log_message(self, *args: Any) -> None:
        pass


class IntakeServer(HTTPServer):
    payloads: list[dict[str, Any]]
    statuses: list[int]
    default_status: int
    lock: threading.Lock


@pytest.fixture
def intake_server() -> Generator[tuple[IntakeServer, str], None, None]:
    """Local HTTP intake on a free port; yields (server, base url)."""
    server = IntakeServer(("127.0.0.1", 0), IntakeHandler)
    server.payloads = []
    server.statuses = []
    server.default_status = 202
    server.lock = threading.Lock()
    url = f"http://127.0.0.1:{server.server_address[1]}"

    thread = threading.Thread(target=server.serve_forever, daemon=True)
    thread.start()

    yield server, url

    server.shutdown()
    server.server_close()
    thread.join(timeout=2)


@pytest.fixture
def make_live_hook(
    intake_server: tuple[IntakeServer, str],
) -> Generator[Callable[..., DatadogHook], None, None]:
    """Factory for hooks that send over real HTTP to ``intake_server``."""
    _, url = intake_server
    hooks: list[DatadogHook] = []

    def _make(**overrides: Any) -> DatadogHook:
        options: dict[str, Any] = {
            "api_key": "live-key",
            "endpoint": url,
            "flush_interval_seconds": 3600.0,
            "retry_base_delay": 0.0,
            "timeout_seconds": 5.0,
            "atexit_close": False,
            **overrides,
        }
        hook = DatadogHook(**options)
        hooks.append(hook)
        return hook

    yield _make

    for hook in hooks:
        if hook.state is HookState.RUNNING:
            hook.close()
