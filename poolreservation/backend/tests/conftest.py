import os
from datetime import date, datetime, timezone

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

os.environ.setdefault("DATABASE_URL", "sqlite+pysqlite:///:memory:")

from app.config import Settings
from app.db.session import Base
from app.db import models
from app.services.availability_service import interval_for
from app.services.notification_service import SendResult
from app.services.settings_service import ensure_default_capacity_bands


class RecordingDispatcher:
    def __init__(self):
        self.sent = []

    def send(self, recipient, subject, body):
        self.sent.append((recipient, subject, body))
        return SendResult(success=True)


class FailingDispatcher:
    def __init__(self):
        self.calls = 0

    def send(self, recipient, subject, body):
        self.calls += 1
        raise RuntimeError("smtp down")


@pytest.fixture()
def db_session():
    engine = create_engine("sqlite+pysqlite:///:memory:", future=True)
    TestingSessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False)
    Base.metadata.create_all(bind=engine)
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture()
def settings():
    return Settings(
        timezone="UTC",
        pool_open="08:00",
        pool_close="20:00",
        slot_duration_min=60,
        booking_lead_time_min=30,
        default_max_guests=10,
        default_capacity=10,
        admin_notification_email="admin@pool.test",
    )


@pytest.fixture()
def day():
    return date(2030, 6, 3)


@pytest.fixture()
def now():
    return datetime(2030, 6, 2, 12, 0, tzinfo=timezone.utc)


@pytest.fixture()
def window(day, settings):
    def build(start, end, on=None):
        return interval_for(on or day, start, end, settings)

    return build


@pytest.fixture()
def pool(db_session, settings):
    ensure_default_capacity_bands(db_session, settings)
    return db_session


@pytest.fixture()
def notifier():
    return RecordingDispatcher()


@pytest.fixture()
def failing_notifier():
    return FailingDispatcher()


def _user(db, email, role=models.UserRole.renter, **kwargs):
    user = models.User(email=email, role=role, **kwargs)
    db.add(user)
    db.commit()
    return user


@pytest.fixture()
def renter(db_session):
    return _user(db_session, "ann@pool.test", first_name="Ann", last_name="Lee")


@pytest.fixture()
def other_renter(db_session):
    return _user(db_session, "bob@pool.test", first_name="Bob", last_name="Stone")


@pytest.fixture()
def admin(db_session):
    return _user(db_session, "admin@pool.test", role=models.UserRole.admin, first_name="Ada")
