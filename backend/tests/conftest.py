from __future__ import annotations

import datetime as dt
import sys
import uuid
from pathlib import Path

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool


BASE_DIR = Path(__file__).resolve().parents[1]
if str(BASE_DIR) not in sys.path:
    sys.path.insert(0, str(BASE_DIR))

from brokerdesk.core.rbac import Actor  # noqa: E402
from brokerdesk.db.base import Base  # noqa: E402
from brokerdesk.models.enums import UserRole  # noqa: E402
import brokerdesk.models  # noqa: E402,F401
from brokerdesk.services.deadlines.center import NotificationCenter  # noqa: E402
from brokerdesk.services.deadlines.sources import InMemoryDeadlineSources  # noqa: E402
from brokerdesk.services.notifications_service import SqlNotificationStore  # noqa: E402


class FakeClock:
    def __init__(self, start: dt.datetime) -> None:
        self.current = start

    def __call__(self) -> dt.datetime:
        return self.current

    def advance(self, **kwargs) -> dt.datetime:
        self.current = self.current + dt.timedelta(**kwargs)
        return self.current


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock(dt.datetime(2026, 10, 19, 12, 0, tzinfo=dt.timezone.utc))


@pytest.fixture
def session_factory():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    factory = sessionmaker(bind=engine, autocommit=False, autoflush=False, expire_on_commit=False)
    yield factory
    engine.dispose()


@pytest.fixture
def store(session_factory, clock) -> SqlNotificationStore:
    return SqlNotificationStore(session_factory, clock=clock)


@pytest.fixture
def sources() -> InMemoryDeadlineSources:
    return InMemoryDeadlineSources()


@pytest.fixture
def actor() -> Actor:
    return Actor(user_id=uuid.UUID("6f1c2d3e-0000-4000-8000-000000000001"), role=UserRole.manager, broker_id=None)


@pytest.fixture
def center(store, sources, clock) -> NotificationCenter:
    return NotificationCenter(store, sources, clock=clock)
