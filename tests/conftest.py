"""Shared test fixtures and configuration.

Sets up fake environment variables so taskflow.config doesn't sys.exit(),
and provides common fixtures like a temp-file store.
"""

import os

# Patch env vars BEFORE any taskflow imports
os.environ.setdefault("TELEGRAM_BOT_TOKEN", "fake-token-for-tests")
os.environ.setdefault("DATABASE_PATH", ":memory:")
os.environ.setdefault("SMS_SEND_DELAY_SECONDS", "0")
os.environ.setdefault("INVITE_SEND_DELAY_SECONDS", "0")
os.environ.setdefault("WEEK_START", "sunday")

import pytest


@pytest.fixture
def tmp_db_path(tmp_path):
    """Return a temporary SQLite DB path."""
    return str(tmp_path / "test_taskflow.db")


@pytest.fixture
def kv(tmp_db_path):
    """Return a KeyValueStore backed by a temp file."""
    from taskflow.data.storage import KeyValueStore
    return KeyValueStore(db_path=tmp_db_path)


@pytest.fixture
def store(kv):
    """Return a seeded DataStore."""
    from taskflow.data.store import DataStore
    return DataStore(kv)


@pytest.fixture
def sms():
    """Return a simulated SMS sender with no delay."""
    from taskflow.adapters.mock_sms import MockSmsSender
    return MockSmsSender(delay=0)


class FakeClock:
    """Manually advanced epoch clock."""

    def __init__(self, now: float = 1_000_000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock():
    return FakeClock()
