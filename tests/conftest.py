"""Pytest configuration and fixtures.

Every test gets its own SQLite file and a recording notification gateway in
place of SMTP. The ``clock`` fixture freezes utils.clock.utcnow so expiry can
be driven without sleeping.
"""

import re
from datetime import timedelta

import pytest

from api import create_app
from models import storage
from utils import clock as clock_module

TEST_EMAIL = "a@x.com"
TEST_PASSWORD = "secret1-long"


class RecordingGateway:
    """Stand-in notification gateway that keeps every message it is handed."""

    def __init__(self):
        self.sent = []
        self.fail = False

    def deliver(self, address, subject, body):
        self.sent.append({"to": address, "subject": subject, "body": body})
        return not self.fail

    def last_code(self, address=None):
        for message in reversed(self.sent):
            if address is None or message["to"] == address:
                return re.search(r"\b(\d{6})\b", message["body"]).group(1)
        return None


class FrozenClock:
    def __init__(self):
        self.now = clock_module.utcnow()

    def __call__(self):
        return self.now

    def advance(self, **kwargs):
        self.now += timedelta(**kwargs)


@pytest.fixture
def app(tmp_path):
    app = create_app("testing", {"DATABASE_URL": f"sqlite:///{tmp_path / 'auth.db'}"})
    app.extensions["notifier"] = RecordingGateway()
    yield app
    storage.dispose()


@pytest.fixture
def ctx(app):
    """App context for calling the services directly."""
    with app.app_context():
        yield app


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def mailbox(app):
    return app.extensions["notifier"]


@pytest.fixture
def clock(monkeypatch):
    frozen = FrozenClock()
    monkeypatch.setattr(clock_module, "utcnow", frozen)
    return frozen


@pytest.fixture
def user(ctx):
    from services import credentials

    return credentials.register(TEST_EMAIL, TEST_PASSWORD, {"full_name": "Test User"})
