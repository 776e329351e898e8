"""
tests/conftest.py — Shared Test Fixtures
=========================================
"""

from __future__ import annotations

import os

# ---------------------------------------------------------------------------
# Ensure a valid JWT_SECRET is always set for test runs.
# This must happen before any import of sanctum.api.deps which validates
# the secret at module-load time.
# ---------------------------------------------------------------------------
_TEST_JWT_SECRET = "test-secret-for-pytest-only-" + "x" * 40  # > 32 chars
os.environ.setdefault("JWT_SECRET", _TEST_JWT_SECRET)

import random  # noqa: E402
from datetime import UTC, datetime  # noqa: E402

import pytest  # noqa: E402
from sqlalchemy import Engine  # noqa: E402

from sanctum.database.engine import create_db_engine  # noqa: E402
from sanctum.database.models import Tier  # noqa: E402
from sanctum.engine.clock import FrozenClock  # noqa: E402
from sanctum.engine.drops import ScriptedDropSource  # noqa: E402
from sanctum.engine.prophecy import TemplateProphecyGenerator  # noqa: E402
from sanctum.services.notifications import Notification  # noqa: E402
from sanctum.services.registry import SanctumServices, build_services  # noqa: E402
from sanctum.services.store import SanctumStore  # noqa: E402

START = datetime(2026, 3, 10, 12, 0, tzinfo=UTC)


class RecordingNotificationSink:
    """Keeps every notification in memory."""

    def __init__(self) -> None:
        self.sent: list[Notification] = []

    def send(self, notification: Notification) -> None:
        self.sent.append(notification)

    def recipients(self) -> list[int]:
        return [n.recipient_id for n in self.sent]

    def messages_for(self, user_id: int) -> list[str]:
        return [n.message for n in self.sent if n.recipient_id == user_id]


class FailingNotificationSink:
    def send(self, notification: Notification) -> None:
        raise RuntimeError("push gateway unavailable")


@pytest.fixture
def clock() -> FrozenClock:
    return FrozenClock(START)


@pytest.fixture
def db_engine() -> Engine:
    """Fresh in-memory SQLite database per test (StaticPool, thread-shared)."""
    return create_db_engine("sqlite://")


@pytest.fixture
def store(db_engine: Engine, clock: FrozenClock) -> SanctumStore:
    return SanctumStore(db_engine, clock=clock)


@pytest.fixture
def sink() -> RecordingNotificationSink:
    return RecordingNotificationSink()


@pytest.fixture
def failing_sink() -> FailingNotificationSink:
    return FailingNotificationSink()


@pytest.fixture
def services(store: SanctumStore, sink: RecordingNotificationSink) -> SanctumServices:
    return build_services(
        store,
        sink=sink,
        drop_source=ScriptedDropSource([]),
        generator=TemplateProphecyGenerator(random.Random(7)),
    )


@pytest.fixture
def make_member(services: SanctumServices):
    """Factory: ``make_member(Tier.ORACLE)`` → persisted Member."""

    def _make(tier: Tier | str = Tier.INITIATE, **kwargs):
        return services.directory.create_member(tier, **kwargs).value

    return _make


@pytest.fixture
def client(services: SanctumServices):
    """FastAPI TestClient bound to the test service container (no lifespan)."""
    from fastapi.testclient import TestClient

    from sanctum.api.main import app

    app.state.services = services
    yield TestClient(app, raise_server_exceptions=False)
    app.state.services = None
