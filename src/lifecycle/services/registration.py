"""Registration bookkeeping for the event registry.

Two small value types back every registry entry:

 - ``RegistrationKey``: the registration type plus the events declared for it.
   Equality and hashing use the registration type alone, so "is this type
   registered" and "find the entry for this type" are plain dict lookups.
 - ``RegistrationRecord``: either an eager service instance or a lazy factory
   with a trigger event. Lazy records memoize the instance built on the
   trigger event and reuse it for every later dispatch.

Records are owned by ``EventRegistry``; nothing else mutates them. The only
state change after insertion is the one-time lazy -> resolved transition, which
is not synchronized (dispatch calls must be serialized by the caller).
"""

from __future__ import annotations

import inspect
import logging
from dataclasses import dataclass, field
from typing import (
    Any,
    Awaitable,
    Callable,
    Generic,
    Hashable,
    Optional,
    Protocol,
    Tuple,
    TypeVar,
    runtime_checkable,
)

from .errors import InvalidRegistrationError

__all__ = [
    "EventService",
    "ServiceFactory",
    "RegistrationKey",
    "RegistrationRecord",
]

_log = logging.getLogger(__name__)

S = TypeVar("S", bound="EventService")


@runtime_checkable
class EventService(Protocol):
    """Implement this to react to lifecycle events.

    ``handle`` receives the dispatched event. Synchronous services return
    ``None``; asynchronous ones return an awaitable (typically by being an
    ``async def``), which only ``EventRegistry.dispatch_async`` can drive.

    Example::

        class DependencyInjectionService:
            def handle(self, event):
                if event is AppEvent.STARTUP:
                    ...  # non-auth dependencies
                elif event in (AppEvent.LOG_IN, AppEvent.SIGN_IN):
                    ...  # auth dependencies
                elif event is AppEvent.LOG_OUT:
                    ...  # clear dependencies
    """

    def handle(self, event: Any) -> Optional[Awaitable[None]]: ...  # pragma: no cover


ServiceFactory = Callable[[], S]


@dataclass(frozen=True, eq=False)
class RegistrationKey:
    registration_type: type
    events: Tuple[Hashable, ...] = ()

    @classmethod
    def for_type(cls, registration_type: type) -> "RegistrationKey":
        """Lookup probe; declared events are irrelevant to equality."""
        return cls(registration_type)

    def accepts(self, event: Hashable) -> bool:
        return event in self.events

    @property
    def name(self) -> str:
        return self.registration_type.__qualname__

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, RegistrationKey):
            return NotImplemented
        return self.registration_type is other.registration_type

    def __hash__(self) -> int:
        return hash(self.registration_type)

    def __repr__(self) -> str:
        return f"RegistrationKey({self.name}, events={list(self.events)!r})"


@dataclass(eq=False)
class RegistrationRecord(Generic[S]):
    """Eager service or lazy factory for one registration.

    Exactly one variant must be provided: ``service`` alone (eager) or
    ``factory`` together with ``trigger_event`` (lazy). A lazy record may carry
    the ``service_type`` its factory must produce.
    """

    service: Optional[S] = None
    factory: Optional[ServiceFactory[S]] = None
    trigger_event: Optional[Hashable] = None
    service_type: Optional[type] = None
    _resolved: Optional[S] = field(default=None, init=False, repr=False)

    def __post_init__(self) -> None:
        eager = self.service is not None
        lazy = self.factory is not None
        if eager == lazy:
            raise InvalidRegistrationError(
                "Provide either a service instance or a service factory, not both or neither"
            )
        if lazy and self.trigger_event is None:
            raise InvalidRegistrationError("A lazy registration requires a trigger event")
        if eager and self.trigger_event is not None:
            raise InvalidRegistrationError("An eager registration takes no trigger event")

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------
    @property
    def is_lazy(self) -> bool:
        return self.factory is not None

    @property
    def is_resolved(self) -> bool:
        return self.current is not None

    @property
    def current(self) -> Optional[S]:
        """The live service instance, or None while a lazy record is pending."""
        return self.service if self.service is not None else self._resolved

    def matches(self, candidate: object) -> bool:
        """True if ``candidate`` is (or equals) the live instance. Never builds one."""
        current = self.current
        if current is None:
            return False
        return current is candidate or current == candidate

    # ------------------------------------------------------------------
    # Resolution
    # ------------------------------------------------------------------
    def resolve(self, event: Hashable) -> Optional[S]:
        """Return the instance to notify for ``event``.

        Lazy records build their instance on the trigger event (once) and
        return None for any earlier event.
        """
        current = self.current
        if current is not None:
            return current
        if event != self.trigger_event:
            return None
        assert self.factory is not None
        instance = self.factory()
        if not isinstance(instance, EventService):
            raise InvalidRegistrationError(
                f"Factory {self.factory!r} returned {instance!r}, which has no handle()"
            )
        if self.service_type is not None and not isinstance(instance, self.service_type):
            raise InvalidRegistrationError(
                f"Factory {self.factory!r} returned {instance!r}, "
                f"which is not an instance of {self.service_type.__qualname__}"
            )
        # Stored before the first handle() call: a failing handler must not
        # cause a second construction.
        self._resolved = instance
        _log.debug("Lazily created %s on %r", type(instance).__qualname__, event)
        return instance

    def __call__(self, event: Hashable) -> Optional[S]:
        """Resolve and notify synchronously; returns the notified instance."""
        instance = self.resolve(event)
        if instance is None:
            return None
        result = instance.handle(event)
        if inspect.isawaitable(result):
            if inspect.iscoroutine(result):
                result.close()
            raise TypeError(
                f"{type(instance).__qualname__}.handle() returned an awaitable; "
                "use dispatch_async() for asynchronous services"
            )
        return instance

    async def acall(self, event: Hashable) -> Optional[S]:
        """Resolve and notify, awaiting the handler if it is asynchronous."""
        instance = self.resolve(event)
        if instance is None:
            return None
        result = instance.handle(event)
        if inspect.isawaitable(result):
            await result
        return instance
