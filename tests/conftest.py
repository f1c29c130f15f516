"""Shared pytest fixtures: in-memory MongoDB, timers and the Flask client."""

from __future__ import annotations

import sys
from pathlib import Path

import mongomock
import pytest

# Ensure the application package is importable during tests.
PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from moviemate import database, storage  # noqa: E402
from moviemate.main import create_app  # noqa: E402
from moviemate.services import profile_service  # noqa: E402
from moviemate.services.identity_service import IdentityProvider, IdentitySession  # noqa: E402
from moviemate.services.notifications import Notifier  # noqa: E402


class TimerHandle:
    def __init__(self, delay, callback):
        self.delay = delay
        self.callback = callback
        self.cancelled = False

    def cancel(self):
        self.cancelled = True


class ManualScheduler:
    """Collects scheduled callbacks until the test decides to run them."""

    def __init__(self):
        self.handles = []

    def __call__(self, delay, callback):
        handle = TimerHandle(delay, callback)
        self.handles.append(handle)
        return handle

    @property
    def pending(self):
        return [handle for handle in self.handles if not handle.cancelled]

    def run_all(self):
        while self.pending:
            handle = self.pending[0]
            self.handles.remove(handle)
            handle.callback()


def run_immediately(delay, callback):
    callback()
    return TimerHandle(delay, callback)


@pytest.fixture(autouse=True)
def mongo_db(monkeypatch: pytest.MonkeyPatch):
    """Provide an isolated in-memory MongoDB database for each test."""
    test_db_name = "test_moviemate"
    monkeypatch.setenv("MONGODB_DATABASE", test_db_name)
    monkeypatch.delenv("TRACKING_URL", raising=False)

    client = mongomock.MongoClient()
    db = client[test_db_name]

    monkeypatch.setattr(database, "get_mongo_client", lambda: client)
    monkeypatch.setattr(database, "get_database", lambda: db)

    yield db

    client.drop_database(test_db_name)


@pytest.fixture
def scheduler():
    return ManualScheduler()


@pytest.fixture
def provider():
    return IdentityProvider()


@pytest.fixture
def identity(provider):
    return IdentitySession(provider)


@pytest.fixture
def notifier():
    return Notifier()


@pytest.fixture
def make_account(provider):
    """Register an account with a profile document and return its identity."""

    def _make(email="viewer@example.com", password="secret123", name="Viewer", with_profile=True):
        user = provider.sign_up(email, password)
        user = provider.update_display_name(user, name)
        if with_profile:
            profile_service.create_profile(user.uid, name, user.email)
        return user

    return _make


@pytest.fixture
def app():
    app = create_app({"TESTING": True, "FLOW_SCHEDULER": run_immediately})
    yield app
    with storage.clients_lock:
        contexts = list(storage.clients.values())
        storage.clients.clear()
    for context in contexts:
        context.close()


@pytest.fixture
def api(app):
    return app.test_client()
