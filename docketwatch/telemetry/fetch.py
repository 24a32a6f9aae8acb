"""Telemetry helpers for strategy attempts."""

from __future__ import annotations

from typing import Optional

from ..utils.log import event, get_logger

_LOG = get_logger(__name__)


def record_fetch_attempt(
    strategy: str,
    upstream: str,
    kind: str,
    latency_ms: int,
    reason: Optional[str] = None,
    status_code: Optional[int] = None,
) -> None:
    """Emit one structured log event describing a strategy attempt.

    Telemetry is best-effort; a failure to emit is logged at warning level and
    otherwise ignored so the fetch continues.
    """

    payload: dict[str, object] = {
        "strategy": strategy,
        "upstream": upstream,
        "kind": kind,
        "latency_ms": max(int(latency_ms), 0),
    }
    if reason is not None:
        payload["reason"] = reason
    if status_code is not None:
        payload["status_code"] = status_code
    try:
        event("fetch_attempt", **payload)
    except Exception as exc:  # pragma: no cover - telemetry must never fail caller
        _LOG.warning("Fetch telemetry emission failed: %s", exc)
