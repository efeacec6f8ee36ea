"""Log level names and priorities.

Priorities follow the stdlib ``logging`` numbering so records from the
host framework map directly. Wire names are the lowercase canonical names
(``"info"``, ``"warning"``...).

Example:
    >>> levels_at_or_above("warning")
    frozenset({'WARNING', 'ERROR', 'CRITICAL'})
"""

from __future__ import annotations

from typing import Final

_CANONICAL_LEVELS: Final[dict[str, int]] = {
    "TRACE": 5,
    "DEBUG": 10,
    "INFO": 20,
    "WARNING": 30,
    "ERROR": 40,
    "CRITICAL": 50,
}

_ALIASES: Final[dict[str, str]] = {
    "WARN": "WARNING",
    "FATAL": "CRITICAL",
    "PANIC": "CRITICAL",
}

DEFAULT_LEVEL: Final[str] = "INFO"


def canonical_level_name(level: str | int) -> str:
    """Return the canonical upper-case name for a level name or number.

    Numbers between two known levels round down to the nearest known level,
    matching how stdlib custom levels compare.

    Raises:
        ValueError: If the name is unknown
    """
    if isinstance(level, int):
        name = "TRACE"
        for candidate, priority in _CANONICAL_LEVELS.items():
            if level >= priority:
                name = candidate
        return name
    upper = level.strip().upper()
    upper = _ALIASES.get(upper, upper)
    if upper not in _CANONICAL_LEVELS:
        raise ValueError(f"Unknown log level: {level!r}")
    return upper


def get_level_priority(level: str | int) -> int:
    """Get the numeric priority of a level name or number."""
    return _CANONICAL_LEVELS[canonical_level_name(level)]


def wire_level_name(level: str | int) -> str:
    """Lowercase name used in the encoded payload."""
    return canonical_level_name(level).lower()


def levels_at_or_above(min_level: str | int) -> frozenset[str]:
    """All canonical level names at least as severe as ``min_level``."""
    threshold = get_level_priority(min_level)
    return frozenset(
        name for name, priority in _CANONICAL_LEVELS.items() if priority >= threshold
    )


def get_all_levels() -> dict[str, int]:
    """Canonical level names mapped to their priorities."""
    return dict(_CANONICAL_LEVELS)
