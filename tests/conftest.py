"""
Pytest configuration for the proctoring engine tests
"""
import os

# keep the app away from MongoDB during tests
os.environ.setdefault("PERSISTENCE_ENABLED", "false")
os.environ.setdefault("LOG_LEVEL", "WARNING")

import pytest
from fastapi.testclient import TestClient

from proctor_core.services.classifier import ClassifierRules
from proctor_core.services.notifier import InMemorySink, SessionSink
from proctor_core.services.session_engine import SessionEngine, SessionRegistry
from proctor_core.utils.clock import ManualClock


class FailingSink(SessionSink):
    """Sink whose every write fails, like an unreachable database."""

    def __init__(self):
        self.calls = 0

    async def session_started(self, record):
        self.calls += 1
        raise ConnectionError("database unreachable")

    async def event_recorded(self, record):
        self.calls += 1
        raise ConnectionError("database unreachable")

    async def session_ended(self, record):
        self.calls += 1
        raise ConnectionError("database unreachable")


@pytest.fixture
def clock():
    return ManualClock()


@pytest.fixture
def rules():
    return ClassifierRules()


@pytest.fixture
def sink():
    return InMemorySink()


@pytest.fixture
def failing_sink():
    return FailingSink()


@pytest.fixture
def engine(sink, clock, rules):
    engine = SessionEngine(sink=sink, clock=clock, rules=rules)
    yield engine
    engine.notifier.close()


@pytest.fixture
def registry(sink, clock, rules):
    registry = SessionRegistry(sink=sink, clock=clock, rules=rules)
    yield registry
    registry.notifier.close()


@pytest.fixture
def app(registry):
    from proctor_core.deps import get_registry
    from proctor_core.main import app

    app.dependency_overrides[get_registry] = lambda: registry
    yield app
    app.dependency_overrides.clear()


@pytest.fixture
def client(app):
    with TestClient(app) as c:
        yield c
