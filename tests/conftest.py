"""Pytest configuration and fixtures."""

from datetime import datetime, timedelta, timezone

import pytest

from linqbridge.config import WorkerConfig
from linqbridge.service import JobService
from linqbridge.store import JobStore

WORKER_SECRET = "test-secret"


class FakeClock:
    """Manually advanced clock for delay tests."""

    def __init__(self, start: datetime):
        self.current = start

    def __call__(self) -> datetime:
        return self.current

    def advance(self, **kwargs) -> None:
        self.current += timedelta(**kwargs)


@pytest.fixture
def clock():
    """Clock frozen at a fixed instant."""
    return FakeClock(datetime(2024, 5, 1, 12, 0, 0, tzinfo=timezone.utc))


@pytest.fixture
def store():
    """Empty job store."""
    return JobStore()


@pytest.fixture
def service(store, clock):
    """JobService over an empty store with a controllable clock."""
    return JobService(store=store, now=clock)


@pytest.fixture
def worker_secret():
    return WORKER_SECRET


@pytest.fixture
def worker_config():
    """Worker config with a short poll interval, soft mode on."""
    return WorkerConfig(
        server_base_url="http://queue.test",
        worker_shared_secret=WORKER_SECRET,
        poll_interval_ms=10,
        soft_mode=True,
    )


@pytest.fixture
def sample_payload():
    """Sample SEND_CONNECTION payload."""
    return {
        "profileUrl": "https://www.linkedin.com/in/someone",
        "note": "Hi there",
        "cookieBundle": {"li_at": "cookie-value", "jsessionid": "ajax:123"},
    }
