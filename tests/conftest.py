# Every test starts with no process-wide registry; the slot is restored afterwards
# so tests that call new_instance() cannot leak state into each other.

import pytest

from lifecycle.services import event_registry


@pytest.fixture(autouse=True)
def _fresh_registry_slot(monkeypatch):
    monkeypatch.setattr(event_registry, "_active", None)
    yield
