"""
docketwatch - Case Monitor

The service surface of the pipeline: refresh one case, look a case up by party
or attorney, sweep a bounded list of tracked cases, and report the remaining
request budget of an upstream.

Sweeps run strictly one case at a time with a pause between cases on top of
the rate limiter's own pacing. A case that fails is logged and skipped; the
sweep carries on with the rest and can be cancelled between cases.
"""

from __future__ import annotations

import threading
import time
from dataclasses import dataclass, field
from typing import Callable, Iterable, List, Optional, Tuple

from .alerts.discord import post_alert
from .case_numbers import normalize_case_id
from .change_detector import ChangeDetector, DetectionResult
from .errors import MalformedContentError, NotFoundError, UpstreamUnavailableError
from .extractor import extract, looks_like_case
from .fetcher import MultiStrategyFetcher, NoResult
from .models import CaseRecord, ChangeEvent, Notification, QueryIntent, utcnow
from .notifications import emit_all
from .rate_limiter import RateLimiter, RateLimitStatus
from .settings import Settings, get_settings
from .stores import NotificationSink, SnapshotStore
from .utils.log import event, get_logger

_LOG = get_logger(__name__)

AlertHook = Callable[[str, str], bool]


@dataclass(frozen=True)
class SweepResult:
    case_id: str
    changes: List[ChangeEvent]
    notifications: List[Notification] = field(default_factory=list)


class CaseMonitor:
    """Refreshes tracked cases and turns their changes into notifications."""

    def __init__(
        self,
        store: SnapshotStore,
        sink: NotificationSink,
        *,
        fetcher: Optional[MultiStrategyFetcher] = None,
        rate_limiter: Optional[RateLimiter] = None,
        settings: Optional[Settings] = None,
        clock=utcnow,
        sleep: Callable[[float], None] = time.sleep,
        alert: AlertHook = post_alert,
    ) -> None:
        self._settings = settings or get_settings()
        if fetcher is None:
            limiter = rate_limiter or RateLimiter.from_settings(self._settings)
            fetcher = MultiStrategyFetcher(rate_limiter=limiter, settings=self._settings)
        self._fetcher = fetcher
        self._limiter = rate_limiter or fetcher.rate_limiter
        self._store = store
        self._sink = sink
        self._detector = ChangeDetector(store, clock=clock)
        self._sleep = sleep
        self._alert = alert

    def __enter__(self) -> "CaseMonitor":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def close(self) -> None:
        self._fetcher.close()

    # ------------------------------------------------------------------
    # Single case operations
    # ------------------------------------------------------------------

    def _fetch_record(self, query: str, intent: QueryIntent) -> CaseRecord:
        outcome = self._fetcher.fetch(
            query, intent, accept=lambda content: looks_like_case(content, query, intent)
        )
        if isinstance(outcome, NoResult):
            if outcome.upstream_answered:
                answered = [a for a in outcome.attempts if a.kind in ("not_found", "format_drift")]
                raise NotFoundError(query, reason="; ".join(f"{a.strategy}: {a.reason}" for a in answered))
            raise UpstreamUnavailableError(query, outcome.attempts)
        try:
            return extract(outcome.content, query, intent, strategy=outcome.strategy.name)
        except MalformedContentError as exc:
            _LOG.warning("Extraction rejected %s content from %s: %s", query, outcome.strategy.name, exc)
            raise NotFoundError(query, reason=str(exc)) from exc

    def _refresh(self, case_id: str) -> Tuple[CaseRecord, DetectionResult, List[Notification]]:
        record = self._fetch_record(case_id, QueryIntent.CASE_NUMBER)
        detection = self._detector.detect(record)
        for anomaly in detection.anomalies:
            self._alert(
                f"Register of actions for {anomaly.case_id} shrank from "
                f"{anomaly.detail.get('old_count')} to {anomaly.detail.get('new_count')} entries",
                "WARNING",
            )
        notifications = emit_all(detection.events, self._sink)
        return record, detection, notifications

    def refresh_case(self, case_id: str) -> CaseRecord:
        """Fetch ``case_id``, diff it against its snapshot and emit notifications.

        Raises ``NotFoundError`` when the upstream genuinely has nothing (or the
        content could not be confirmed) and ``UpstreamUnavailableError`` when
        every strategy was blocked or failed transiently.
        """

        canonical = normalize_case_id(case_id)
        if canonical is None:
            raise NotFoundError(case_id, reason="unrecognized case number format")
        record, _, _ = self._refresh(canonical)
        return record

    def search(self, query: str, intent: QueryIntent = QueryIntent.PARTY_NAME) -> CaseRecord:
        """Look a case up without touching its snapshot."""

        if intent is QueryIntent.CASE_NUMBER:
            canonical = normalize_case_id(query)
            if canonical is None:
                raise NotFoundError(query, reason="unrecognized case number format")
            query = canonical
        return self._fetch_record(query, intent)

    def untrack(self, case_id: str) -> bool:
        canonical = normalize_case_id(case_id) or case_id
        removed = self._store.delete(canonical)
        if removed:
            _LOG.info("Stopped tracking %s", canonical)
        return removed

    def get_rate_limit_status(self, upstream_id: str) -> RateLimitStatus:
        return self._limiter.status(upstream_id)

    # ------------------------------------------------------------------
    # Sweeps
    # ------------------------------------------------------------------

    def _sweep_ids(self, case_ids: Iterable[str]) -> List[str]:
        ordered: List[str] = []
        for raw in case_ids:
            canonical = normalize_case_id(raw)
            if canonical is None:
                _LOG.warning("Skipping unrecognized case number %r", raw)
                continue
            if canonical not in ordered:
                ordered.append(canonical)
        limit = self._settings.max_sweep_cases
        if len(ordered) > limit:
            _LOG.warning("Sweep limited to %d of %d cases", limit, len(ordered))
            ordered = ordered[:limit]
        return ordered

    def _pause(self, cancel: Optional[threading.Event]) -> bool:
        """Wait between cases; returns True when the sweep was cancelled meanwhile."""

        pause = max(self._settings.sweep_pause_seconds, 0.0)
        if cancel is not None:
            return cancel.wait(pause) if pause else cancel.is_set()
        if pause:
            self._sleep(pause)
        return False

    def run_sweep(
        self, case_ids: Iterable[str], cancel: Optional[threading.Event] = None
    ) -> List[SweepResult]:
        """Refresh each tracked case in turn; returns only the cases that changed."""

        ordered = self._sweep_ids(case_ids)
        results: List[SweepResult] = []
        attempted = unavailable = failed = 0

        for position, case_id in enumerate(ordered):
            if cancel is not None and cancel.is_set():
                _LOG.info("Sweep cancelled before %s", case_id)
                break
            if position and self._pause(cancel):
                _LOG.info("Sweep cancelled before %s", case_id)
                break

            attempted += 1
            try:
                _, detection, notifications = self._refresh(case_id)
            except UpstreamUnavailableError as exc:
                unavailable += 1
                _LOG.warning("Upstream unavailable for %s: %s", case_id, exc, extra=exc.to_log_dict())
                continue
            except NotFoundError as exc:
                failed += 1
                _LOG.warning("Case %s not found: %s", case_id, exc.reason or exc)
                continue
            except Exception:
                failed += 1
                _LOG.exception("Unexpected error refreshing %s; continuing sweep", case_id)
                continue

            if detection.events:
                results.append(SweepResult(case_id, list(detection.events), notifications))

        event(
            "sweep_complete",
            requested=len(ordered),
            attempted=attempted,
            changed=len(results),
            unavailable=unavailable,
            failed=failed,
        )
        if attempted and unavailable == attempted:
            self._alert(f"Sweep of {attempted} case(s) failed: every upstream strategy unavailable", "ERROR")
        return results
