"""Shared fixtures: in-memory SQLite, a controllable clock and recording providers."""

import os

os.environ["DATABASE_URL"] = "sqlite://"
os.environ["EMAIL_FAILURE_RATE"] = "0"
os.environ["PUSH_FAILURE_RATE"] = "0"
os.environ["SMS_FAILURE_RATE"] = "0"
os.environ["SWEEP_INTERVAL_SECONDS"] = "0"

import re
from datetime import datetime, timedelta, timezone

import pytest

from rolodex.database import Base, engine, init_db
from rolodex.schemas.notifications import NotificationType
from rolodex.services.notifications import NotificationDispatcher
from rolodex.services.otp import OtpManager
from rolodex.services.providers import ProviderRegistry


class FakeClock:
    def __init__(self, start: datetime | None = None) -> None:
        self.now = start or datetime(2026, 3, 1, 9, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


class RecordingProvider:
    """Provider double. ``outcomes`` is consumed per call: a bool is returned,
    an exception is raised. Once exhausted every send succeeds."""

    def __init__(self, notification_type, outcomes=None) -> None:
        self.type = NotificationType(notification_type)
        self.outcomes = list(outcomes or [])
        self.calls = []

    def send(self, recipient, subject, message, metadata=None):
        self.calls.append(
            {
                "recipient": recipient,
                "subject": subject,
                "message": message,
                "metadata": metadata,
            }
        )
        if self.outcomes:
            outcome = self.outcomes.pop(0)
            if isinstance(outcome, Exception):
                raise outcome
            return outcome
        return True

    def last_code(self) -> str:
        match = re.search(r"code is: (\d+)", self.calls[-1]["message"])
        assert match, "no code in the last message"
        return match.group(1)


@pytest.fixture(autouse=True)
def database():
    init_db()
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def providers() -> dict:
    return {
        notification_type: RecordingProvider(notification_type)
        for notification_type in (
            NotificationType.EMAIL,
            NotificationType.IN_APP,
            NotificationType.PUSH,
            NotificationType.SMS,
        )
    }


@pytest.fixture
def dispatcher(providers, clock) -> NotificationDispatcher:
    return NotificationDispatcher(ProviderRegistry(list(providers.values())), clock=clock)


@pytest.fixture
def otp(dispatcher, clock) -> OtpManager:
    return OtpManager(dispatcher, clock=clock)


@pytest.fixture
def recording_provider():
    return RecordingProvider
