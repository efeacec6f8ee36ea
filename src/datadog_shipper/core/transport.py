"""
HTTP transport for the sender.

A transport performs one POST and returns the response status code. Any
exception it raises is treated as a transport-level failure for that
attempt. The default implementation uses a pooled ``httpx.Client``.
"""

from __future__ import annotations

from typing import Mapping, Protocol, runtime_checkable

import httpx


@runtime_checkable
class Transport(Protocol):
    def post(self, url: str, content: bytes, headers: Mapping[str, str]) -> int:
        """Send ``content`` to ``url`` and return the HTTP status code."""
        ...

    def close(self) -> None: ...


class HttpxTransport:
    """Synchronous httpx transport; safe to share across threads."""

    def __init__(
        self,
        *,
        timeout: float = 10.0,
        client: httpx.Client | None = None,
    ) -> None:
        self._owns_client = client is None
        self._client = client or httpx.Client(timeout=timeout)

    def post(self, url: str, content: bytes, headers: Mapping[str, str]) -> int:
        response = self._client.post(url, content=content, headers=dict(headers))
        # Drain the body so the connection returns to the pool
        response.read()
        return response.status_code

    def close(self) -> None:
        if self._owns_client:
            self._client.close()
