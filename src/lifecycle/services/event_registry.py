"""EventRegistry: ordered registry and dispatcher for lifecycle event services.

Instead of one startup routine wiring every subsystem by hand, services
register themselves against the events they care about and the registry
notifies them, in registration order, when a matching event is dispatched.

Usage pattern:
    from lifecycle.services import EventRegistry

    registry = EventRegistry.new_instance()
    registry.register_event_service(FirebaseService(), events=[AppEvent.STARTUP])
    registry.register_event_service_lazy(
        DependencyInjectionService,
        events=[AppEvent.STARTUP, AppEvent.LOG_IN, AppEvent.LOG_OUT],
        initialize_on=AppEvent.STARTUP,
    )
    registry.dispatch(AppEvent.STARTUP)

Design notes:
- One registration per registration type. Re-registering after unregister moves
  the type to the end of the dispatch order.
- A service is notified only for events listed at registration time.
- Dispatch is fail-fast: a handler exception propagates and the rest of the
  pass is skipped (lifecycle transitions have no rollback).
- Thread-safety: the registration map is guarded by a re-entrant lock.
  Handlers run while the lock is NOT held (copy-first strategy) so they can
  register/unregister without deadlock. Concurrent dispatch calls on one
  registry are not supported.
- ``new_instance()`` replaces the process-wide registry returned by
  ``get_registry()``. Holding the returned instance explicitly is preferred.
"""

from __future__ import annotations

import logging
from collections import deque
from dataclasses import dataclass
from threading import RLock
from time import perf_counter, time
from typing import (
    Any,
    Deque,
    Dict,
    Generic,
    Hashable,
    Iterable,
    List,
    Optional,
    Tuple,
    TypeVar,
)

from lifecycle import settings

from .dispatch_timing import DispatchReport, event_name
from .errors import (
    EventHandlerNotInitialisedError,
    EventServiceAlreadyRegisteredError,
    EventServiceNotRegisteredError,
    InvalidRegistrationError,
)
from .registration import EventService, RegistrationKey, RegistrationRecord, ServiceFactory

__all__ = [
    "EventRegistry",
    "TraceEntry",
    "new_instance",
    "get_registry",
]

_log = logging.getLogger(__name__)

E = TypeVar("E", bound=Hashable)


@dataclass(frozen=True)
class TraceEntry:
    event: str
    timestamp: float
    handlers: Tuple[str, ...]


class EventRegistry(Generic[E]):
    """Ordered registry of event services with single-pass dispatch."""

    def __init__(
        self,
        *,
        tracing: bool | None = None,
        trace_capacity: int | None = None,
        slow_handler_threshold: float | None = None,
    ) -> None:
        self._lock = RLock()
        self._services: Dict[RegistrationKey, RegistrationRecord] = {}
        self._tracing_enabled: bool = settings.TRACING_ENABLED if tracing is None else tracing
        self._trace_capacity: int = (
            settings.DEFAULT_TRACE_CAPACITY if trace_capacity is None else trace_capacity
        )
        self._traces: Deque[TraceEntry] = deque(maxlen=self._trace_capacity)
        self._slow_threshold: float = (
            settings.SLOW_HANDLER_THRESHOLD_S
            if slow_handler_threshold is None
            else slow_handler_threshold
        )

    # ------------------------------------------------------------------
    # Process-wide instance
    # ------------------------------------------------------------------
    @classmethod
    def new_instance(cls, **kwargs: Any) -> "EventRegistry":
        """Create a registry and make it the process-wide instance."""
        return new_instance(cls, **kwargs)

    @classmethod
    def instance(cls) -> "EventRegistry":
        return get_registry()

    # ------------------------------------------------------------------
    # Registration
    # ------------------------------------------------------------------
    def register_event_service(
        self,
        service: EventService,
        events: Iterable[E],
        *,
        service_type: type | None = None,
    ) -> None:
        """Register an already-built ``service`` for ``events``.

        The registration type defaults to ``type(service)``; pass
        ``service_type`` to register under a base class or interface instead.

        Raises
        ------
        EventServiceAlreadyRegisteredError
            If the registration type already has a registration.
        InvalidRegistrationError
            If ``service`` is a class, has no ``handle`` or is not a ``service_type``.
        """
        if isinstance(service, type):
            raise InvalidRegistrationError(
                f"Expected a service instance, got the class {service.__qualname__}; "
                "use register_event_service_lazy() to register a class"
            )
        if not isinstance(service, EventService):
            raise InvalidRegistrationError(f"{service!r} does not implement handle(event)")
        reg_type = type(service) if service_type is None else service_type
        if not isinstance(service, reg_type):
            raise InvalidRegistrationError(
                f"{service!r} is not an instance of {reg_type.__qualname__}"
            )
        self._register(RegistrationKey(reg_type, tuple(events)), RegistrationRecord(service=service))

    def register_event_service_lazy(
        self,
        factory: ServiceFactory,
        events: Iterable[E],
        *,
        initialize_on: E,
        service_type: type | None = None,
    ) -> None:
        """Register ``factory`` to build the service on ``initialize_on``.

        The factory runs once, when ``initialize_on`` is first dispatched; the
        instance is then reused for every event in ``events``. Events
        dispatched before that are ignored for this registration.

        A class can be passed directly as the factory, in which case it is
        also the registration type. Other callables need ``service_type``.

        Raises
        ------
        EventServiceAlreadyRegisteredError
            If the registration type already has a registration.
        InvalidRegistrationError
            If ``initialize_on`` is not in ``events``, the factory is not
            callable or no registration type can be derived.
        """
        if not callable(factory):
            raise InvalidRegistrationError(f"Service factory {factory!r} is not callable")
        declared = tuple(events)
        if initialize_on not in declared:
            raise InvalidRegistrationError(
                f"initialize_on={initialize_on!r} is not one of the declared events {list(declared)!r}"
            )
        if service_type is None:
            if not isinstance(factory, type):
                raise InvalidRegistrationError(
                    f"Cannot derive a registration type from factory {factory!r}; "
                    "pass service_type="
                )
            service_type = factory
        self._register(
            RegistrationKey(service_type, declared),
            RegistrationRecord(
                factory=factory, trigger_event=initialize_on, service_type=service_type
            ),
        )

    def _register(self, key: RegistrationKey, record: RegistrationRecord) -> None:
        with self._lock:
            if key in self._services:
                raise EventServiceAlreadyRegisteredError(
                    f"A service of type {key.name} is already registered."
                )
            self._services[key] = record
        _log.debug(
            "Registered %s (%s) for %s",
            key.name,
            "lazy" if record.is_lazy else "eager",
            [event_name(e) for e in key.events],
        )

    def unregister_event_service(self, service_or_type: object) -> None:
        """Remove the registration for a type or a registered instance.

        Raises EventServiceNotRegisteredError if nothing matches.
        """
        with self._lock:
            key = self._find_key(service_or_type)
            if key is None:
                raise EventServiceNotRegisteredError(
                    f"No service registered for {_describe(service_or_type)}"
                )
            del self._services[key]
        _log.debug("Unregistered %s", key.name)

    def reset(self) -> None:
        """Unregister all services."""
        with self._lock:
            count = len(self._services)
            self._services.clear()
        _log.debug("Reset registry (%d registrations removed)", count)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------
    def is_registered(self, service_or_type: object) -> bool:
        """True if a registration matches the type or instance. Never resolves lazies."""
        with self._lock:
            return self._find_key(service_or_type) is not None

    def __contains__(self, service_or_type: object) -> bool:
        return self.is_registered(service_or_type)

    def __len__(self) -> int:
        with self._lock:
            return len(self._services)

    def registered_types(self) -> List[type]:
        """Registration types in dispatch order."""
        with self._lock:
            return [key.registration_type for key in self._services]

    def events_for(self, service_or_type: object) -> Tuple[Hashable, ...]:
        with self._lock:
            key = self._find_key(service_or_type)
            if key is None:
                raise EventServiceNotRegisteredError(
                    f"No service registered for {_describe(service_or_type)}"
                )
            return key.events

    def _find_key(self, service_or_type: object) -> Optional[RegistrationKey]:
        """Stored key for a type, a live instance, or (fallback) the instance's type.

        Caller holds the lock.
        """
        if isinstance(service_or_type, type):
            reg_type = service_or_type
        else:
            for key, record in self._services.items():
                if record.matches(service_or_type):
                    return key
            reg_type = type(service_or_type)
        if RegistrationKey.for_type(reg_type) not in self._services:
            return None
        for key in self._services:
            if key.registration_type is reg_type:
                return key
        return None  # pragma: no cover - guarded by the membership test

    # ------------------------------------------------------------------
    # Dispatch
    # ------------------------------------------------------------------
    def dispatch(self, event: E) -> DispatchReport:
        """Notify, in registration order, every service registered for ``event``.

        Handlers must be synchronous; an awaitable result raises TypeError
        (use ``dispatch_async``). A handler exception propagates immediately
        and the remaining services are not notified.
        """
        report = DispatchReport(event)
        pending = self._snapshot()
        for index, (key, record) in enumerate(pending):
            if not self._still_registered(key, record) or not key.accepts(event):
                continue
            start = perf_counter()
            try:
                notified = record(event)
            except BaseException as exc:  # noqa: BLE001 - logged, then re-raised
                skipped = _count_accepting(pending[index + 1 :], event)
                self._log_abort(event, key, exc, skipped)
                raise
            if notified is not None:
                self._record_timing(report, key, start, perf_counter())
        self._complete(report)
        return report

    async def dispatch_async(self, event: E) -> DispatchReport:
        """Like ``dispatch`` but awaits asynchronous handlers one at a time."""
        report = DispatchReport(event)
        pending = self._snapshot()
        for index, (key, record) in enumerate(pending):
            if not self._still_registered(key, record) or not key.accepts(event):
                continue
            start = perf_counter()
            try:
                notified = await record.acall(event)
            except BaseException as exc:  # noqa: BLE001 - logged, then re-raised
                skipped = _count_accepting(pending[index + 1 :], event)
                self._log_abort(event, key, exc, skipped)
                raise
            if notified is not None:
                self._record_timing(report, key, start, perf_counter())
        self._complete(report)
        return report

    __call__ = dispatch

    def _snapshot(self) -> List[Tuple[RegistrationKey, RegistrationRecord]]:
        with self._lock:
            return list(self._services.items())

    def _still_registered(self, key: RegistrationKey, record: RegistrationRecord) -> bool:
        # Entries removed (or replaced) by an earlier handler in this pass are skipped.
        with self._lock:
            return self._services.get(key) is record

    def _record_timing(
        self, report: DispatchReport, key: RegistrationKey, start: float, end: float
    ) -> None:
        timing = report.record(key.registration_type, start, end)
        if timing.duration > self._slow_threshold:
            _log.warning(
                "Slow event service %s took %.3fs for %s",
                timing.name,
                timing.duration,
                event_name(report.event),
            )

    def _log_abort(
        self, event: Hashable, key: RegistrationKey, exc: BaseException, remaining: int
    ) -> None:
        _log.warning(
            "Dispatch of %s aborted: %s raised %s (%d later registrations skipped)",
            event_name(event),
            key.name,
            type(exc).__name__,
            remaining,
        )

    def _complete(self, report: DispatchReport) -> None:
        report.finish()
        _log.debug(
            "Dispatched %s to %d service(s) in %.4fs",
            event_name(report.event),
            len(report),
            report.total_duration,
        )
        with self._lock:
            if self._tracing_enabled:
                self._traces.append(
                    TraceEntry(
                        event=event_name(report.event),
                        timestamp=time(),
                        handlers=tuple(t.name for t in report),
                    )
                )

    # ------------------------------------------------------------------
    # Tracing API
    # ------------------------------------------------------------------
    def enable_tracing(self, enabled: bool = True, *, capacity: int | None = None) -> None:
        """Enable or disable dispatch tracing.

        Parameters
        ----------
        enabled: bool
            New tracing state.
        capacity: int | None
            Optional new ring buffer capacity (most recent entries are kept).
        """
        with self._lock:
            self._tracing_enabled = enabled
            if capacity is not None and capacity != self._trace_capacity:
                self._trace_capacity = capacity
                self._traces = deque(self._traces, maxlen=capacity)

    def clear_traces(self) -> None:
        with self._lock:
            self._traces.clear()

    def recent_traces(self) -> list[TraceEntry]:
        with self._lock:
            return list(self._traces)

    @property
    def tracing_enabled(self) -> bool:
        with self._lock:
            return self._tracing_enabled

    def __repr__(self) -> str:  # pragma: no cover - trivial
        return f"EventRegistry(registered={[t.__qualname__ for t in self.registered_types()]})"


def _count_accepting(
    entries: List[Tuple[RegistrationKey, RegistrationRecord]], event: Hashable
) -> int:
    return sum(1 for key, _ in entries if key.accepts(event))


def _describe(service_or_type: object) -> str:
    if isinstance(service_or_type, type):
        return f"type {service_or_type.__qualname__}"
    return f"{service_or_type!r}"


# Process-wide slot; written only by new_instance().
_active: Optional[EventRegistry] = None


def new_instance(registry_cls: type[EventRegistry] = EventRegistry, **kwargs: Any) -> EventRegistry:
    """Create a registry and make it the process-wide instance.

    The previous instance (if any) is orphaned, not cleared: code still holding
    it keeps working against its own registrations.
    """
    global _active
    registry = registry_cls(**kwargs)
    _active = registry
    _log.debug("New process-wide event registry created")
    return registry


def get_registry() -> EventRegistry:
    """Short form to access the process-wide registry."""
    if _active is None:
        raise EventHandlerNotInitialisedError()
    return _active
