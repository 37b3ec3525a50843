"""Service layer exports.

Responsibilities:
 - EventRegistry: ordered registration and dispatch of lifecycle event services
 - Process-wide accessor (`new_instance` / `get_registry`)
 - Error kinds raised by registry operations

Stability:
 - `EventRegistry` and the `EventService` protocol are considered beta (API may
   grow but existing methods will not break without deprecation cycle).
"""

from .errors import (  # noqa: F401
    EventServiceError,
    EventServiceAlreadyRegisteredError,
    EventServiceNotRegisteredError,
    EventHandlerNotInitialisedError,
    InvalidRegistrationError,
)
from .registration import EventService, ServiceFactory  # noqa: F401
from .dispatch_timing import DispatchReport, HandlerTiming  # noqa: F401
from .event_registry import EventRegistry, TraceEntry, new_instance, get_registry  # noqa: F401

__all__ = [
    "EventRegistry",
    "EventService",
    "ServiceFactory",
    "DispatchReport",
    "HandlerTiming",
    "TraceEntry",
    "new_instance",
    "get_registry",
    "EventServiceError",
    "EventServiceAlreadyRegisteredError",
    "EventServiceNotRegisteredError",
    "EventHandlerNotInitialisedError",
    "InvalidRegistrationError",
]
