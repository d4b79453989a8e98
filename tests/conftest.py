"""
Pytest configuration and shared fixtures.
This file ensures the project root is in sys.path for imports.
"""

import sys
from datetime import datetime, timezone
from pathlib import Path

import pytest

# Add project root to sys.path so we can import core, meal_service, etc.
project_root = Path(__file__).parent.parent
if str(project_root) not in sys.path:
    sys.path.insert(0, str(project_root))

from fastapi.testclient import TestClient

from core.database import MockFirestoreClient
from core.notifications import NotificationType
from meal_service.models import (
    MealStateEngine,
    RecordStore,
    ScheduleAccessor,
    User,
    get_meal_engine,
    get_schedule_accessor,
)


class FakeClock:
    """Settable clock, defaults to 10:00 UTC on a fixed day."""

    def __init__(self, now: datetime = datetime(2024, 3, 14, 10, 0, tzinfo=timezone.utc)):
        self.now = now

    def __call__(self) -> datetime:
        return self.now


class RecordingNotifier:
    """Stands in for FCMService; records every send attempt."""

    def __init__(self, failing_tokens=(), raising_tokens=()):
        self.sent = []
        self.attempts = []
        self.failing_tokens = set(failing_tokens)
        self.raising_tokens = set(raising_tokens)

    async def send_to_device(self, device_token, notification):
        self.attempts.append((device_token, notification))
        if device_token in self.raising_tokens:
            raise RuntimeError(f"provider rejected {device_token}")
        if device_token in self.failing_tokens:
            return None
        self.sent.append((device_token, notification))
        return f"msg-{len(self.sent)}"

    def tokens_for(self, notification_type: NotificationType):
        return [token for token, n in self.sent if n.notification_type == notification_type]


@pytest.fixture
def db():
    return MockFirestoreClient()


@pytest.fixture
def store(db):
    return RecordStore(db)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def engine(store, notifier, clock):
    return MealStateEngine(store=store, notifier=notifier, clock=clock)


@pytest.fixture
def accessor(store):
    return ScheduleAccessor(store)


@pytest.fixture
def add_user(store):
    """Insert a user document directly, bypassing registration."""

    def _add(uid, name=None, **fields):
        user = User(firebase_uid=uid, name=name or uid.title(), email=f"{uid}@example.com", **fields)
        return store.insert_user(user)

    return _add


@pytest.fixture
def client(engine, accessor):
    # Not used as a context manager, so the lifespan (Firebase, scheduler) never runs
    from main import app

    app.dependency_overrides[get_meal_engine] = lambda: engine
    app.dependency_overrides[get_schedule_accessor] = lambda: accessor
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture(autouse=True)
def mock_firebase(monkeypatch):
    """Force mock mode so no test ever talks to Firebase."""
    import core.auth

    monkeypatch.setattr(core.auth, "init_firebase", lambda: False)
    monkeypatch.setattr(core.auth, "is_mock_mode", lambda: True)


@pytest.fixture
def auth():
    """Mock-mode bearer header: the token is the uid."""

    def _header(uid: str) -> dict:
        return {"Authorization": f"Bearer {uid}"}

    return _header
