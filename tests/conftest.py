"""
tests/conftest.py

Pytest configuration and shared fixtures for the docketwatch test suite.

Every test runs with a clean settings cache and without any of the runtime
environment variables, so a developer's ``.env`` or exported webhook URL can
never leak into a test run.
"""

from __future__ import annotations

from typing import Generator, List, Tuple

import pytest

from docketwatch.rate_limiter import RateLimiter
from docketwatch.settings import Settings, reset_settings
from docketwatch.stores import InMemoryNotificationSink, InMemorySnapshotStore
from tests.helpers import FakeClock

_ENV_KEYS = (
    "RATE_LIMITS",
    "RATE_LIMIT_DEFAULT",
    "RATE_WINDOW_SECONDS",
    "MIN_REQUEST_INTERVAL_SECONDS",
    "FETCH_TIMEOUT_SECONDS",
    "SWEEP_PAUSE_SECONDS",
    "MAX_SWEEP_CASES",
    "USER_AGENT_OVERRIDE",
    "SCRAPERAPI_KEY",
    "STRATEGIES_FILE",
    "SNAPSHOT_PATH",
    "DISCORD_WEBHOOK_URL",
)


@pytest.fixture(autouse=True)
def _isolated_environment(monkeypatch: pytest.MonkeyPatch) -> Generator[None, None, None]:
    for key in _ENV_KEYS:
        monkeypatch.delenv(key, raising=False)
    reset_settings()
    yield
    reset_settings()


@pytest.fixture
def settings() -> Settings:
    """Settings with no pauses or spacing so tests never wait."""

    return Settings(
        _env_file=None,
        min_request_interval_seconds=0.0,
        sweep_pause_seconds=0.0,
        discord_webhook_url=None,
    )


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def limiter(clock: FakeClock) -> RateLimiter:
    return RateLimiter(
        {"roasearch": 15, "odyroa": 30, "courtindex": 30, "sdcourt": 20},
        window_seconds=60,
        clock=clock,
        sleep=clock.sleep,
    )


@pytest.fixture
def store() -> InMemorySnapshotStore:
    return InMemorySnapshotStore()


@pytest.fixture
def sink() -> InMemoryNotificationSink:
    return InMemoryNotificationSink()


@pytest.fixture
def alerts() -> List[Tuple[str, str]]:
    """Collected alert calls; pair with :func:`record_alert`."""

    return []


@pytest.fixture
def record_alert(alerts: List[Tuple[str, str]]):
    def _record(message: str, level: str = "INFO") -> bool:
        alerts.append((message, level))
        return True

    return _record
