import asyncio

from lifecycle.app import AppEvent, create_app, create_app_async
from lifecycle.services import get_registry
from tests.factories import AsyncRecordingService, CountingFactory, ServiceA, ServiceB


def test_create_app_registers_wiring_in_order_and_dispatches_startup():
    log = []
    svc_a = ServiceA(log)
    svc_b = ServiceB(log)

    def wire_a(registry):
        registry.register_event_service(svc_a, events=[AppEvent.STARTUP])

    def wire_b(registry):
        registry.register_event_service(svc_b, events=[AppEvent.STARTUP, AppEvent.LOG_OUT])

    ctx = create_app(wiring=[wire_a, wire_b])
    assert ctx.registry is get_registry()
    assert log == [("ServiceA", AppEvent.STARTUP), ("ServiceB", AppEvent.STARTUP)]
    assert ctx.startup_report is not None
    assert ctx.startup_report.notified == [ServiceA, ServiceB]
    assert ctx.duration_s >= 0

    ctx.registry.dispatch(AppEvent.LOG_OUT)
    assert svc_b.calls == [AppEvent.STARTUP, AppEvent.LOG_OUT]


def test_create_app_without_startup_dispatch():
    factory = CountingFactory()

    def wire(registry):
        registry.register_event_service_lazy(
            factory,
            events=[AppEvent.STARTUP, AppEvent.LOG_IN],
            initialize_on=AppEvent.STARTUP,
            service_type=ServiceA,
        )

    ctx = create_app(wiring=[wire], dispatch_startup=False)
    assert ctx.startup_report is None
    assert factory.built == []
    ctx.registry.dispatch(AppEvent.STARTUP)
    assert len(factory.built) == 1


def test_create_app_replaces_previous_registry():
    first = create_app()
    second = create_app()
    assert first.registry is not second.registry
    assert get_registry() is second.registry


def test_create_app_async_awaits_startup_handlers():
    svc = AsyncRecordingService()

    def wire(registry):
        registry.register_event_service(svc, events=[AppEvent.STARTUP])

    ctx = asyncio.run(create_app_async(wiring=[wire]))
    assert svc.calls == [AppEvent.STARTUP]
    assert ctx.startup_report.notified == [AsyncRecordingService]
