"""
Correlation IDs that tie log lines to the frame or command that caused them.

Each inbound TCP frame and each MQTT command runs inside its own
``correlation_context`` so the publishes and socket writes it triggers can be
grouped when reading the logs.
"""

from __future__ import annotations

import contextvars
import uuid
from collections.abc import Generator
from contextlib import contextmanager

__all__ = [
    "correlation_context",
    "ensure_correlation_id",
    "generate_correlation_id",
    "get_correlation_id",
    "set_correlation_id",
]

_correlation_id: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "telenot_correlation_id",
    default=None,
)


def generate_correlation_id(kind: str | None = None) -> str:
    """
    Generate a new correlation ID.

    Args:
        kind: Optional short label ("frame", "cmd", ...) used as a prefix

    Returns:
        ``<kind>-<12 hex chars>`` or 32 hex chars when no kind is given
    """
    token = uuid.uuid4().hex
    if kind:
        return f"{kind}-{token[:12]}"
    return token


def get_correlation_id() -> str | None:
    return _correlation_id.get()


def set_correlation_id(correlation_id: str | None) -> None:
    _correlation_id.set(correlation_id)


@contextmanager
def correlation_context(
    correlation_id: str | None = None,
    kind: str | None = None,
) -> Generator[str]:
    """
    Scope a correlation ID to a block, restoring the previous one on exit.

    Example:
        with correlation_context(kind="frame"):
            await synchronizer.handle_frame(frame)
    """
    previous_id = get_correlation_id()
    if correlation_id is None:
        correlation_id = generate_correlation_id(kind)
    set_correlation_id(correlation_id)
    try:
        yield correlation_id
    finally:
        set_correlation_id(previous_id)


def ensure_correlation_id() -> str:
    """Return the current correlation ID, creating one for task entry points."""
    current_id = get_correlation_id()
    if current_id is None:
        current_id = generate_correlation_id()
        set_correlation_id(current_id)
    return current_id
