"""Close live hooks at interpreter exit.

Hooks register themselves in a WeakSet so registration never keeps a hook
alive. The atexit handler is best-effort: each hook gets a bounded amount of
time to deliver what it has buffered and errors never propagate.
"""

from __future__ import annotations

import atexit
import threading
import weakref
from typing import TYPE_CHECKING, Any

from .diagnostics import warn

if TYPE_CHECKING:
    from .hook import DatadogHook

ATEXIT_CLOSE_TIMEOUT_SECONDS = 10.0

_registered_hooks: weakref.WeakSet[Any] = weakref.WeakSet()


def register_hook(hook: DatadogHook) -> None:
    _registered_hooks.add(hook)


def unregister_hook(hook: DatadogHook) -> None:
    _registered_hooks.discard(hook)


def registered_hooks() -> list[DatadogHook]:
    # Snapshot; WeakSet iteration can fail if GC runs mid-loop
    return list(_registered_hooks)


def _close_single_hook(hook: Any, timeout: float) -> None:
    closer = threading.Thread(
        target=hook.close, name="datadog-shipper-atexit", daemon=True
    )
    closer.start()
    closer.join(timeout)
    if closer.is_alive():
        warn("shutdown", "timed out closing datadog hook at exit", timeout=timeout)


def _atexit_handler(timeout: float = ATEXIT_CLOSE_TIMEOUT_SECONDS) -> None:
    """Best-effort close of all registered hooks; never raises."""
    try:
        hooks = registered_hooks()
    except Exception:  # pragma: no cover - rare GC race
        return
    for hook in hooks:
        try:
            _close_single_hook(hook, timeout)
        except Exception:
            pass


atexit.register(_atexit_handler)
