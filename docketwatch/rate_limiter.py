"""
docketwatch - Upstream Rate Limiter

Rolling-window request budget per upstream host. Each upstream gets its own
window of request timestamps guarded by its own lock, so concurrent sweeps that
share one limiter instance serialize their effective pacing without a global
singleton.

``acquire`` never fails; it only delays the caller until the window has room
and the minimum spacing since the previous request has elapsed.
"""

from __future__ import annotations

import threading
import time
from collections import deque
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Callable, Deque, Dict, Mapping, Optional

from .settings import Settings, get_settings
from .utils.log import get_logger

_LOG = get_logger(__name__)


@dataclass(frozen=True)
class RateLimitStatus:
    upstream_id: str
    limit: int
    remaining: int
    window_reset_at: datetime


@dataclass
class RollingWindow:
    """Request timestamps for one upstream inside the current window."""

    limit: int
    window: float
    min_interval: float = 0.0
    stamps: Deque[float] = field(default_factory=deque)
    last_request: Optional[float] = None
    lock: threading.Lock = field(default_factory=threading.Lock, repr=False)

    def _prune(self, now: float) -> None:
        cutoff = now - self.window
        while self.stamps and self.stamps[0] <= cutoff:
            self.stamps.popleft()

    def try_consume(self, now: float) -> float:
        """Consume one slot and return 0.0, or return the seconds to wait."""

        self._prune(now)
        if self.last_request is not None and self.min_interval > 0:
            spacing = self.last_request + self.min_interval - now
            if spacing > 0:
                return spacing
        if len(self.stamps) < self.limit:
            self.stamps.append(now)
            self.last_request = now
            return 0.0
        return max(self.stamps[0] + self.window - now, 0.001)

    def remaining(self, now: float) -> int:
        self._prune(now)
        return max(self.limit - len(self.stamps), 0)

    def resets_in(self, now: float) -> float:
        self._prune(now)
        if not self.stamps:
            return 0.0
        return self.stamps[0] + self.window - now


class RateLimiter:
    """Per-upstream request budgets shared by every fetcher and sweep."""

    def __init__(
        self,
        limits: Mapping[str, int],
        *,
        window_seconds: float = 60.0,
        default_limit: int = 10,
        min_interval_seconds: float = 0.0,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
        wall_clock: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
    ) -> None:
        if window_seconds <= 0:
            raise ValueError("window_seconds must be positive")
        self._limits = dict(limits)
        self._window = float(window_seconds)
        self._default_limit = default_limit
        self._min_interval = max(float(min_interval_seconds), 0.0)
        self._clock = clock
        self._sleep = sleep
        self._wall_clock = wall_clock
        self._windows: Dict[str, RollingWindow] = {}
        self._registry_lock = threading.Lock()

    @classmethod
    def from_settings(cls, settings: Settings | None = None, **kwargs) -> "RateLimiter":
        settings = settings or get_settings()
        return cls(
            settings.rate_limits,
            window_seconds=settings.rate_window_seconds,
            default_limit=settings.rate_limit_default,
            min_interval_seconds=settings.min_request_interval_seconds,
            **kwargs,
        )

    def _window_for(self, upstream_id: str) -> RollingWindow:
        with self._registry_lock:
            window = self._windows.get(upstream_id)
            if window is None:
                limit = int(self._limits.get(upstream_id, self._default_limit))
                window = RollingWindow(
                    limit=max(limit, 1),
                    window=self._window,
                    min_interval=self._min_interval,
                )
                self._windows[upstream_id] = window
            return window

    def acquire(self, upstream_id: str) -> float:
        """Block until a request to ``upstream_id`` is allowed.

        Returns the total number of seconds spent waiting.
        """

        window = self._window_for(upstream_id)
        waited = 0.0
        while True:
            with window.lock:
                delay = window.try_consume(self._clock())
            if delay <= 0:
                if waited:
                    _LOG.debug("Rate limit wait for %s: %.2fs", upstream_id, waited)
                return waited
            _LOG.debug("Budget for %s exhausted; sleeping %.2fs", upstream_id, delay)
            self._sleep(delay)
            waited += delay

    def status(self, upstream_id: str) -> RateLimitStatus:
        window = self._window_for(upstream_id)
        with window.lock:
            now = self._clock()
            remaining = window.remaining(now)
            resets_in = window.resets_in(now)
        reset_at = datetime.fromtimestamp(
            self._wall_clock().timestamp() + resets_in, tz=timezone.utc
        )
        return RateLimitStatus(
            upstream_id=upstream_id,
            limit=window.limit,
            remaining=remaining,
            window_reset_at=reset_at,
        )
