"""Error kinds raised by the event registry.

All errors are raised synchronously to the caller of the offending operation.
Two errors compare equal when they share class and message, so tests (and
callers) can assert on a fully-built expected error.
"""

from __future__ import annotations

__all__ = [
    "EventServiceError",
    "EventServiceAlreadyRegisteredError",
    "EventServiceNotRegisteredError",
    "EventHandlerNotInitialisedError",
    "InvalidRegistrationError",
]


class EventServiceError(RuntimeError):
    """Base class for registry errors."""

    default_message = "event registry error"

    def __init__(self, message: str | None = None) -> None:
        self.message = message if message is not None else self.default_message
        super().__init__(self.message)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, EventServiceError):
            return NotImplemented
        return type(self) is type(other) and self.message == other.message

    def __hash__(self) -> int:
        return hash((type(self), self.message))

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.message!r})"


class EventServiceAlreadyRegisteredError(EventServiceError):
    """Raised when registering a type that already has an active registration."""


class EventServiceNotRegisteredError(EventServiceError, LookupError):
    """Raised when unregistering or looking up a type/instance with no registration."""


class EventHandlerNotInitialisedError(EventServiceError):
    """Raised when the process-wide registry is read before ``new_instance()``."""

    default_message = (
        "No event registry has been created yet; call EventRegistry.new_instance() first"
    )


class InvalidRegistrationError(EventServiceError, ValueError):
    """Raised for malformed registrations (e.g. trigger event not in the event list)."""
