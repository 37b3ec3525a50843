"""Per-handler timing for a single dispatch pass.

Every ``dispatch`` / ``dispatch_async`` call returns a ``DispatchReport``
listing the services that were actually notified, in order, with the time
spent inside each ``handle``. Lazy registrations still waiting for their
trigger event are not part of the report.

Design goals:
 - Zero external dependencies
 - Immutable timing records (dataclass with computed duration property)
 - Serialization helper for logging / diagnostics (as_dict)
"""

from __future__ import annotations

from dataclasses import dataclass, field
from time import perf_counter
from typing import Any, Hashable, Iterator, List

__all__ = [
    "HandlerTiming",
    "DispatchReport",
    "event_name",
]


def event_name(event: Hashable) -> str:
    """Readable label for enum members and class-style events."""
    if isinstance(event, type):
        return event.__qualname__
    name = getattr(event, "name", None)
    if isinstance(name, str):
        return f"{type(event).__name__}.{name}"
    return repr(event)


@dataclass(frozen=True)
class HandlerTiming:
    name: str
    service_type: type
    start: float
    end: float

    @property
    def duration(self) -> float:  # seconds
        return self.end - self.start


@dataclass
class DispatchReport:
    event: Hashable
    started_at: float = field(default_factory=perf_counter)
    finished_at: float | None = None
    _timings: List[HandlerTiming] = field(default_factory=list, repr=False)

    def record(self, service_type: type, start: float, end: float) -> HandlerTiming:
        timing = HandlerTiming(
            name=service_type.__qualname__, service_type=service_type, start=start, end=end
        )
        self._timings.append(timing)
        return timing

    def finish(self) -> None:
        if self.finished_at is None:
            self.finished_at = perf_counter()

    # ------------------------------------------------------------------
    # Data access
    # ------------------------------------------------------------------
    @property
    def timings(self) -> List[HandlerTiming]:
        return list(self._timings)

    @property
    def notified(self) -> List[type]:
        return [t.service_type for t in self._timings]

    @property
    def total_duration(self) -> float:
        end = self.finished_at if self.finished_at is not None else perf_counter()
        return end - self.started_at

    def as_dict(self) -> dict[str, Any]:
        return {
            "event": event_name(self.event),
            "started_at": self.started_at,
            "finished_at": self.finished_at,
            "total_duration": self.total_duration,
            "handlers": [
                {
                    "name": t.name,
                    "start": t.start,
                    "end": t.end,
                    "duration": t.duration,
                }
                for t in self._timings
            ],
        }

    def __iter__(self) -> Iterator[HandlerTiming]:
        return iter(self._timings)

    def __len__(self) -> int:
        return len(self._timings)
