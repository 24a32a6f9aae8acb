"""
docketwatch - Multi-Strategy Fetcher

Walks the ordered strategy table until one strategy yields content the
classifier accepts as a case page. Every attempt is gated by the shared rate
limiter, carries its own timeout and is never retried in place: challenges,
timeouts, empty results and format drift all move on to the next strategy.

Usage:
    fetcher = MultiStrategyFetcher(rate_limiter=limiter)
    outcome = fetcher.fetch("22FL001581C", QueryIntent.CASE_NUMBER)
    if isinstance(outcome, FetchResult):
        print(outcome.strategy.name, len(outcome.content))
"""

from __future__ import annotations

import re
import threading
import time
from dataclasses import dataclass
from typing import Callable, Dict, Optional, Sequence, Tuple, Union
from urllib.parse import quote_plus

import requests

from .classifier import Classification, ResponseKind, classify_response
from .errors import ERR_EXTRACT_DRIFT, ERR_FETCH_BOT_CHALLENGE, ERR_FETCH_NOT_FOUND, ERR_FETCH_TRANSIENT, ErrorCode
from .models import QueryIntent
from .rate_limiter import RateLimiter
from .settings import Settings, get_settings
from .strategies import PROXY_ENDPOINTS, Strategy, load_strategies
from .telemetry import record_fetch_attempt
from .utils.log import get_logger

_LOG = get_logger(__name__)

ATTEMPT_SKIPPED = "skipped"
ATTEMPT_DRIFT = "format_drift"

_ATTEMPT_CODES: Dict[ResponseKind, ErrorCode] = {
    ResponseKind.BOT_CHALLENGE: ERR_FETCH_BOT_CHALLENGE,
    ResponseKind.TRANSIENT_ERROR: ERR_FETCH_TRANSIENT,
    ResponseKind.NOT_FOUND: ERR_FETCH_NOT_FOUND,
}

_CSRF_PATTERN = re.compile(
    r'name="(?P<name>__RequestVerificationToken|[^"]*csrf[^"]*)"[^>]*value="(?P<value>[^"]+)"',
    re.IGNORECASE,
)

AcceptCheck = Callable[[str], bool]


@dataclass(frozen=True)
class Attempt:
    """Diagnostic record for one strategy tried during a fetch."""

    strategy: str
    upstream: str
    kind: str
    reason: str
    status_code: Optional[int] = None
    latency_ms: int = 0


@dataclass(frozen=True)
class FetchResult:
    content: str
    strategy: Strategy
    status_code: int
    url: str
    attempts: Tuple[Attempt, ...]


@dataclass(frozen=True)
class NoResult:
    query: str
    intent: QueryIntent
    attempts: Tuple[Attempt, ...]

    @property
    def upstream_answered(self) -> bool:
        """True when some strategy got a genuine answer that held no case."""

        genuine = {ResponseKind.NOT_FOUND.value, ATTEMPT_DRIFT}
        return any(attempt.kind in genuine for attempt in self.attempts)

    @property
    def diagnostics(self) -> Dict[str, str]:
        return {attempt.strategy: attempt.reason for attempt in self.attempts}


FetchOutcome = Union[FetchResult, NoResult]


class MultiStrategyFetcher:
    """Ordered-fallback fetcher over the configured strategy table."""

    def __init__(
        self,
        strategies: Optional[Sequence[Strategy]] = None,
        rate_limiter: Optional[RateLimiter] = None,
        *,
        settings: Optional[Settings] = None,
        session_factory: Callable[[], requests.Session] = requests.Session,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._settings = settings or get_settings()
        if strategies is None:
            strategies = load_strategies(self._settings.strategies_file)
        self._strategies: Tuple[Strategy, ...] = tuple(strategies)
        self._limiter = rate_limiter or RateLimiter.from_settings(self._settings)
        self._session_factory = session_factory
        self._clock = clock
        self._sessions: Dict[str, requests.Session] = {}
        self._warmed: set[str] = set()
        self._lock = threading.Lock()

    @property
    def strategies(self) -> Tuple[Strategy, ...]:
        return self._strategies

    @property
    def rate_limiter(self) -> RateLimiter:
        return self._limiter

    def __enter__(self) -> "MultiStrategyFetcher":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def close(self) -> None:
        with self._lock:
            sessions = list(self._sessions.values())
            self._sessions.clear()
            self._warmed.clear()
        for session in sessions:
            session.close()

    def _session_for(self, upstream: str) -> requests.Session:
        # One session per upstream keeps a stable cookie jar and identity.
        with self._lock:
            session = self._sessions.get(upstream)
            if session is None:
                session = self._session_factory()
                self._sessions[upstream] = session
            return session

    def fetch(
        self,
        query: str,
        intent: QueryIntent = QueryIntent.CASE_NUMBER,
        *,
        accept: Optional[AcceptCheck] = None,
    ) -> FetchOutcome:
        """Try each strategy in order and return the first acceptable content."""

        attempts: list[Attempt] = []
        for strategy in self._strategies:
            skip_reason = self._skip_reason(strategy, intent)
            if skip_reason:
                attempts.append(
                    Attempt(strategy.name, strategy.upstream, ATTEMPT_SKIPPED, skip_reason)
                )
                continue

            started = self._clock()
            classification, body, status_code, url = self._attempt(strategy, query, intent)
            latency_ms = int((self._clock() - started) * 1000)
            kind = classification.kind.value
            reason = classification.reason
            code = _ATTEMPT_CODES.get(classification.kind)
            if code is not None:
                reason = f"{code}: {reason}"

            if classification.kind is ResponseKind.SUCCESS and accept is not None and not accept(body):
                kind = ATTEMPT_DRIFT
                reason = f"{ERR_EXTRACT_DRIFT}: content matched no known case patterns"
                _LOG.warning("Strategy %s returned content in an unrecognized format", strategy.name)

            record_fetch_attempt(
                strategy.name, strategy.upstream, kind, latency_ms, reason, status_code
            )
            attempt = Attempt(strategy.name, strategy.upstream, kind, reason, status_code, latency_ms)
            attempts.append(attempt)

            if kind == ResponseKind.SUCCESS.value and status_code is not None:
                _LOG.info("Strategy %s matched query %s", strategy.name, query)
                return FetchResult(
                    content=body,
                    strategy=strategy,
                    status_code=status_code,
                    url=url,
                    attempts=tuple(attempts),
                )
            _LOG.info("Strategy %s gave %s (%s); trying next", strategy.name, kind, reason)

        _LOG.warning("All %d strategies exhausted for %s", len(self._strategies), query)
        return NoResult(query=query, intent=intent, attempts=tuple(attempts))

    def _skip_reason(self, strategy: Strategy, intent: QueryIntent) -> Optional[str]:
        if not strategy.supports(intent):
            return f"does not support {intent.value} queries"
        if strategy.requires_secret and not getattr(self._settings, strategy.requires_secret, None):
            return f"{strategy.requires_secret} not configured"
        return None

    def _headers(self, strategy: Strategy) -> Dict[str, str]:
        headers = strategy.headers
        if self._settings.user_agent_override:
            headers["User-Agent"] = self._settings.user_agent_override
        return headers

    def _send(
        self,
        strategy: Strategy,
        method: str,
        url: str,
        *,
        params: Optional[Dict[str, str]] = None,
        data: Optional[Dict[str, str]] = None,
    ) -> requests.Response:
        self._limiter.acquire(strategy.upstream)
        session = self._session_for(strategy.upstream)
        timeout = strategy.timeout_seconds or self._settings.fetch_timeout_seconds
        return session.request(
            method,
            url,
            headers=self._headers(strategy),
            params=params,
            data=data,
            timeout=timeout,
            allow_redirects=True,
        )

    def _warm(self, strategy: Strategy) -> Optional[Classification]:
        """GET the warm-up page once per upstream; a blocked warm-up ends the attempt."""

        if not strategy.warm_url:
            return None
        key = f"{strategy.upstream}|{strategy.warm_url}"
        with self._lock:
            if key in self._warmed:
                return None
        response = self._send(strategy, "GET", strategy.warm_url)
        verdict = classify_response(response.status_code, response.text or "")
        if verdict.kind in (ResponseKind.BOT_CHALLENGE, ResponseKind.TRANSIENT_ERROR):
            return Classification(verdict.kind, f"warm-up {verdict.reason}")
        with self._lock:
            self._warmed.add(key)
        return None

    def _csrf_fields(self, strategy: Strategy) -> Tuple[Dict[str, str], Optional[Classification]]:
        if not strategy.form_page_url:
            return {}, None
        response = self._send(strategy, "GET", strategy.form_page_url)
        page = response.text or ""
        verdict = classify_response(response.status_code, page)
        if verdict.kind in (ResponseKind.BOT_CHALLENGE, ResponseKind.TRANSIENT_ERROR):
            return {}, verdict
        match = _CSRF_PATTERN.search(page)
        if match:
            return {match.group("name"): match.group("value")}, None
        return {}, None

    def _attempt(
        self, strategy: Strategy, query: str, intent: QueryIntent
    ) -> Tuple[Classification, str, Optional[int], str]:
        try:
            target = strategy.urls[intent].format(query=quote_plus(query))
        except (KeyError, IndexError) as exc:
            reason = f"bad url template: {exc}"
            return Classification(ResponseKind.TRANSIENT_ERROR, reason), "", None, ""

        method = strategy.method.upper()
        try:
            blocked = self._warm(strategy)
            if blocked is not None:
                return blocked, "", None, strategy.warm_url or target
            data: Optional[Dict[str, str]] = None
            if method == "POST":
                data, blocked = self._csrf_fields(strategy)
                if blocked is not None:
                    return blocked, "", None, strategy.form_page_url or target
                data[strategy.form_fields[intent]] = query

            url, params = target, None
            if strategy.proxy:
                proxy = dict(PROXY_ENDPOINTS[strategy.proxy])
                url = proxy.pop("endpoint")
                secret = getattr(self._settings, strategy.requires_secret or "", None) or ""
                params = {"api_key": secret, "url": target, **proxy}

            response = self._send(strategy, method, url, params=params, data=data)
        except requests.RequestException as exc:
            _LOG.info("Strategy %s request failed: %s", strategy.name, type(exc).__name__)
            return classify_response(None, error=exc), "", None, target

        body = response.text or ""
        verdict = classify_response(response.status_code, body, query=query)
        return verdict, body, response.status_code, getattr(response, "url", target) or target
