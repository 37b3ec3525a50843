import pytest

from lifecycle.services import (
    EventRegistry,
    EventServiceAlreadyRegisteredError,
    EventServiceNotRegisteredError,
    InvalidRegistrationError,
)
from tests.factories import FakeEvents, ServiceA, ServiceB, ServiceC


def test_register_marks_type_registered():
    reg = EventRegistry()
    reg.register_event_service(ServiceA(), events=[FakeEvents.ON_STARTUP])
    assert reg.is_registered(ServiceA)
    assert ServiceA in reg
    assert not reg.is_registered(ServiceB)


def test_double_register_raises():
    reg = EventRegistry()
    reg.register_event_service(ServiceA(), events=[])
    with pytest.raises(EventServiceAlreadyRegisteredError):
        reg.register_event_service(ServiceA(), events=[FakeEvents.ON_STARTUP])


def test_double_register_ignores_declared_events():
    reg = EventRegistry()
    reg.register_event_service(ServiceA(), events=[FakeEvents.ON_STARTUP])
    with pytest.raises(EventServiceAlreadyRegisteredError):
        reg.register_event_service_lazy(
            ServiceA, events=[FakeEvents.ON_SIGN_IN], initialize_on=FakeEvents.ON_SIGN_IN
        )
    assert reg.events_for(ServiceA) == (FakeEvents.ON_STARTUP,)


def test_unregister_by_type():
    reg = EventRegistry()
    reg.register_event_service(ServiceA(), events=[])
    reg.unregister_event_service(ServiceA)
    assert not reg.is_registered(ServiceA)
    assert len(reg) == 0


def test_unregister_by_registered_instance():
    reg = EventRegistry()
    svc = ServiceA()
    reg.register_event_service(svc, events=[], service_type=object)
    assert reg.is_registered(svc)
    reg.unregister_event_service(svc)
    assert not reg.is_registered(object)


def test_unregister_by_other_instance_of_registered_type():
    reg = EventRegistry()
    reg.register_event_service(ServiceA(), events=[])
    reg.unregister_event_service(ServiceA())
    assert not reg.is_registered(ServiceA)


def test_unregister_missing_raises():
    reg = EventRegistry()
    with pytest.raises(EventServiceNotRegisteredError):
        reg.unregister_event_service(ServiceA())
    with pytest.raises(EventServiceNotRegisteredError):
        reg.unregister_event_service(ServiceA)


def test_unregister_twice_raises():
    reg = EventRegistry()
    reg.register_event_service(ServiceA(), events=[])
    reg.unregister_event_service(ServiceA)
    with pytest.raises(EventServiceNotRegisteredError):
        reg.unregister_event_service(ServiceA)


def test_reset_clears_everything():
    reg = EventRegistry()
    for cls in (ServiceA, ServiceB, ServiceC):
        reg.register_event_service(cls(), events=[])
    assert all(reg.is_registered(cls) for cls in (ServiceA, ServiceB, ServiceC))
    reg.reset()
    assert not any(reg.is_registered(cls) for cls in (ServiceA, ServiceB, ServiceC))
    assert reg.registered_types() == []


def test_reset_on_empty_registry():
    reg = EventRegistry()
    reg.reset()
    assert len(reg) == 0


def test_service_type_override_must_match_instance():
    reg = EventRegistry()
    with pytest.raises(InvalidRegistrationError):
        reg.register_event_service(ServiceA(), events=[], service_type=ServiceB)


def test_object_without_handle_rejected():
    reg = EventRegistry()
    with pytest.raises(InvalidRegistrationError):
        reg.register_event_service(object(), events=[])  # type: ignore[arg-type]


def test_class_instead_of_instance_rejected():
    reg = EventRegistry()
    with pytest.raises(InvalidRegistrationError):
        reg.register_event_service(ServiceA, events=[FakeEvents.ON_STARTUP])  # type: ignore[arg-type]
    assert len(reg) == 0
    reg.register_event_service(ServiceA(), events=[FakeEvents.ON_STARTUP])
    assert reg.is_registered(ServiceA)


def test_events_for_missing_raises():
    reg = EventRegistry()
    with pytest.raises(EventServiceNotRegisteredError):
        reg.events_for(ServiceA)


def test_registered_types_follow_insertion_order():
    reg = EventRegistry()
    reg.register_event_service(ServiceB(), events=[])
    reg.register_event_service(ServiceA(), events=[])
    reg.register_event_service(ServiceC(), events=[])
    assert reg.registered_types() == [ServiceB, ServiceA, ServiceC]


def test_reregister_moves_to_end():
    reg = EventRegistry()
    reg.register_event_service(ServiceA(), events=[])
    reg.register_event_service(ServiceB(), events=[])
    reg.unregister_event_service(ServiceA)
    reg.register_event_service(ServiceA(), events=[])
    assert reg.registered_types() == [ServiceB, ServiceA]
