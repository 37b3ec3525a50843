"""Application bootstrap on top of the event registry.

Responsibilities:
 - Provide a default lifecycle event domain (``AppEvent``)
 - Create the process-wide registry and hand it to host wiring callables
 - Dispatch the startup event and return a single context object

Each wiring callable receives the fresh registry and registers whatever
services its subsystem owns, so startup never hand-wires subsystems itself:

    def wire_auth(registry):
        registry.register_event_service_lazy(
            AuthService,
            events=[AppEvent.STARTUP, AppEvent.LOG_IN, AppEvent.LOG_OUT],
            initialize_on=AppEvent.STARTUP,
        )

    ctx = create_app(wiring=[wire_auth])
    ...
    ctx.registry.dispatch(AppEvent.LOG_IN)
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Hashable, Iterable, Optional

from lifecycle.services.dispatch_timing import DispatchReport
from lifecycle.services.event_registry import EventRegistry, new_instance

__all__ = [
    "AppEvent",
    "AppContext",
    "Wiring",
    "create_app",
    "create_app_async",
]

_log = logging.getLogger(__name__)

Wiring = Callable[[EventRegistry], None]


class AppEvent(str, Enum):  # str subclass keeps values log/JSON friendly
    STARTUP = "startup"
    DEPENDENCIES_INITIALISED = "dependencies_initialised"
    SIGN_IN = "sign_in"
    LOG_IN = "log_in"
    LOG_OUT = "log_out"


@dataclass
class AppContext:
    """Container with references created during bootstrap.

    Attributes
    ----------
    registry: The process-wide registry created for this application
    started_at: Monotonic timestamp when bootstrap started
    duration_s: Total elapsed seconds for bootstrap (wiring + startup dispatch)
    startup_report: Report of the startup dispatch (None if it was skipped)
    metadata: Free-form dict for host extensions
    """

    registry: EventRegistry
    started_at: float
    duration_s: float
    startup_report: Optional[DispatchReport]
    metadata: dict[str, Any] = field(default_factory=dict)


def _prepare(wiring: Iterable[Wiring], registry_options: dict[str, Any]) -> EventRegistry:
    registry = new_instance(**registry_options)
    for wire in wiring:
        wire(registry)
    _log.debug("Wired %d event service(s)", len(registry))
    return registry


def create_app(
    *,
    wiring: Iterable[Wiring] = (),
    startup_event: Hashable = AppEvent.STARTUP,
    dispatch_startup: bool = True,
    **registry_options: Any,
) -> AppContext:
    """Create the registry, apply ``wiring`` in order and dispatch startup.

    Extra keyword arguments are passed to ``EventRegistry`` (tracing options,
    slow handler threshold).
    """
    started = time.perf_counter()
    registry = _prepare(wiring, registry_options)
    report = registry.dispatch(startup_event) if dispatch_startup else None
    return AppContext(
        registry=registry,
        started_at=started,
        duration_s=time.perf_counter() - started,
        startup_report=report,
    )


async def create_app_async(
    *,
    wiring: Iterable[Wiring] = (),
    startup_event: Hashable = AppEvent.STARTUP,
    dispatch_startup: bool = True,
    **registry_options: Any,
) -> AppContext:
    """Async variant of ``create_app``; awaits asynchronous startup handlers."""
    started = time.perf_counter()
    registry = _prepare(wiring, registry_options)
    report = await registry.dispatch_async(startup_event) if dispatch_startup else None
    return AppContext(
        registry=registry,
        started_at=started,
        duration_s=time.perf_counter() - started,
        startup_report=report,
    )
