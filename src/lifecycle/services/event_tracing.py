"""Event tracing convenience API.

Thin wrappers around the process-wide registry's tracing so diagnostics code
doesn't need to hold the registry itself.
"""

from __future__ import annotations

from .event_registry import EventRegistry, TraceEntry, get_registry

__all__ = [
    "enable_event_tracing",
    "disable_event_tracing",
    "get_recent_event_traces",
]


def _registry() -> EventRegistry:
    return get_registry()


def enable_event_tracing(*, capacity: int | None = None) -> None:
    _registry().enable_tracing(True, capacity=capacity)


def disable_event_tracing() -> None:
    _registry().enable_tracing(False)


def get_recent_event_traces() -> list[TraceEntry]:
    return _registry().recent_traces()
