"""Typed lifecycle event registry.

Subsystems register as event services against the lifecycle events they care
about; the host application dispatches events and the registry notifies the
matching services in registration order.
"""

from .services import (  # noqa: F401
    EventRegistry,
    EventService,
    DispatchReport,
    new_instance,
    get_registry,
    EventServiceError,
    EventServiceAlreadyRegisteredError,
    EventServiceNotRegisteredError,
    EventHandlerNotInitialisedError,
    InvalidRegistrationError,
)

__all__ = [
    "EventRegistry",
    "EventService",
    "DispatchReport",
    "new_instance",
    "get_registry",
    "EventServiceError",
    "EventServiceAlreadyRegisteredError",
    "EventServiceNotRegisteredError",
    "EventHandlerNotInitialisedError",
    "InvalidRegistrationError",
]

__version__ = "0.1.0"
