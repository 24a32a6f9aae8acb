"""
Tests for the per-upstream rolling-window rate limiter.
"""

from __future__ import annotations

import threading
from datetime import datetime, timedelta, timezone

import pytest

from docketwatch.rate_limiter import RateLimiter
from docketwatch.settings import Settings
from tests.helpers import FakeClock

FIXED_NOW = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)


def _limiter(clock: FakeClock, limits=None, **kwargs) -> RateLimiter:
    return RateLimiter(
        limits or {"roasearch": 2},
        window_seconds=60,
        clock=clock,
        sleep=clock.sleep,
        wall_clock=lambda: FIXED_NOW,
        **kwargs,
    )


class TestAcquire:
    def test_requests_within_budget_do_not_wait(self, clock: FakeClock):
        limiter = _limiter(clock)

        assert limiter.acquire("roasearch") == 0.0
        assert limiter.acquire("roasearch") == 0.0
        assert clock.sleeps == []

    def test_exhausted_budget_waits_for_window_to_roll(self, clock: FakeClock):
        limiter = _limiter(clock)
        limiter.acquire("roasearch")
        clock.advance(10)
        limiter.acquire("roasearch")

        waited = limiter.acquire("roasearch")

        # The oldest stamp leaves the window 50 seconds later.
        assert waited == pytest.approx(50.0)
        assert limiter.status("roasearch").remaining == 0

    def test_minimum_spacing_between_requests(self, clock: FakeClock):
        limiter = _limiter(clock, {"odyroa": 30}, min_interval_seconds=0.5)

        limiter.acquire("odyroa")
        waited = limiter.acquire("odyroa")

        assert waited == pytest.approx(0.5)
        assert clock.sleeps == [pytest.approx(0.5)]

    def test_upstreams_are_throttled_independently(self, clock: FakeClock):
        limiter = _limiter(clock, {"roasearch": 1, "odyroa": 1})
        limiter.acquire("roasearch")

        assert limiter.acquire("odyroa") == 0.0
        assert clock.sleeps == []

    def test_unknown_upstream_uses_default_limit(self, clock: FakeClock):
        limiter = _limiter(clock, default_limit=3)

        status = limiter.status("courtindex")

        assert status.limit == 3
        assert status.remaining == 3

    def test_never_raises_only_delays(self, clock: FakeClock):
        limiter = _limiter(clock, {"sdcourt": 1})

        total = sum(limiter.acquire("sdcourt") for _ in range(4))

        assert total == pytest.approx(180.0)

    def test_invalid_window_rejected(self, clock: FakeClock):
        with pytest.raises(ValueError):
            RateLimiter({}, window_seconds=0, clock=clock, sleep=clock.sleep)


class TestStatus:
    def test_status_reports_remaining_and_reset(self, clock: FakeClock):
        limiter = _limiter(clock, {"roasearch": 15})
        limiter.acquire("roasearch")
        clock.advance(15)

        status = limiter.status("roasearch")

        assert status.upstream_id == "roasearch"
        assert status.limit == 15
        assert status.remaining == 14
        assert status.window_reset_at == FIXED_NOW + timedelta(seconds=45)

    def test_status_does_not_consume_budget(self, clock: FakeClock):
        limiter = _limiter(clock)

        for _ in range(5):
            limiter.status("roasearch")

        assert limiter.status("roasearch").remaining == 2
        assert clock.sleeps == []

    def test_idle_upstream_resets_now(self, clock: FakeClock):
        limiter = _limiter(clock)

        assert limiter.status("roasearch").window_reset_at == FIXED_NOW


def test_from_settings_uses_configured_limits(clock: FakeClock):
    settings = Settings(_env_file=None, rate_limits={"roasearch": 4}, rate_limit_default=7)

    limiter = RateLimiter.from_settings(settings, clock=clock, sleep=clock.sleep)

    assert limiter.status("roasearch").limit == 4
    assert limiter.status("elsewhere").limit == 7


def test_concurrent_callers_share_one_budget():
    """Accounting stays exact when several threads draw on the same upstream."""

    def _no_sleep(seconds: float) -> None:
        raise AssertionError(f"unexpected wait of {seconds}s")

    limiter = RateLimiter({"roasearch": 100}, window_seconds=3600, sleep=_no_sleep)

    def worker() -> None:
        for _ in range(10):
            limiter.acquire("roasearch")

    threads = [threading.Thread(target=worker) for _ in range(8)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert limiter.status("roasearch").remaining == 20
