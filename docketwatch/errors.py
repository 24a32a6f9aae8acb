"""
docketwatch - Error Taxonomy

Every failure the pipeline can surface carries a stable error code so that log
lines and alerts can be aggregated.

Error Code Format: DWE-{CATEGORY}-{NUMBER}
- CONFIG (001-099): strategy table and settings problems
- FETCH (200-299): upstream access failures
- EXTRACT (300-399): content that could not be turned into a case record
- INTERNAL (900-999): unexpected internal errors

Only NotFoundError and UpstreamUnavailableError reach callers of the monitor.
Challenges, transient failures and empty answers never raise: the fetcher
records them as attempts whose reason starts with the matching FETCH code.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Any, Sequence

if TYPE_CHECKING:  # pragma: no cover
    from .fetcher import Attempt


class ErrorCategory(str, Enum):
    """Error category for classification."""

    CONFIG = "CONFIG"
    FETCH = "FETCH"
    EXTRACT = "EXTRACT"
    INTERNAL = "INTERNAL"


@dataclass(frozen=True)
class ErrorCode:
    """Immutable error code definition."""

    code: str
    category: ErrorCategory
    message: str
    retryable: bool = False

    def __str__(self) -> str:
        return self.code


# -----------------------------------------------------------------------------
# CONFIG Errors (001-099)
# -----------------------------------------------------------------------------
ERR_CONFIG_STRATEGIES = ErrorCode(
    code="DWE-CONFIG-001",
    category=ErrorCategory.CONFIG,
    message="Strategy table could not be loaded",
)

# -----------------------------------------------------------------------------
# FETCH Errors (200-299)
# -----------------------------------------------------------------------------
ERR_FETCH_BOT_CHALLENGE = ErrorCode(
    code="DWE-FETCH-201",
    category=ErrorCategory.FETCH,
    message="Upstream answered with an anti-automation challenge",
    retryable=True,
)
ERR_FETCH_TRANSIENT = ErrorCode(
    code="DWE-FETCH-202",
    category=ErrorCategory.FETCH,
    message="Upstream request timed out or failed",
    retryable=True,
)
ERR_FETCH_NOT_FOUND = ErrorCode(
    code="DWE-FETCH-204",
    category=ErrorCategory.FETCH,
    message="Case not found upstream",
)
ERR_FETCH_EXHAUSTED = ErrorCode(
    code="DWE-FETCH-210",
    category=ErrorCategory.FETCH,
    message="Every access strategy failed",
    retryable=True,
)

# -----------------------------------------------------------------------------
# EXTRACT Errors (300-399)
# -----------------------------------------------------------------------------
ERR_EXTRACT_REJECTED = ErrorCode(
    code="DWE-EXTRACT-301",
    category=ErrorCategory.EXTRACT,
    message="Content did not confirm the requested case",
)
ERR_EXTRACT_DRIFT = ErrorCode(
    code="DWE-EXTRACT-302",
    category=ErrorCategory.EXTRACT,
    message="Strategy content no longer matches known patterns",
)


class DocketWatchError(Exception):
    """Base class for docketwatch failures."""

    error_code: ErrorCode = ErrorCode(
        code="DWE-INTERNAL-900",
        category=ErrorCategory.INTERNAL,
        message="Unknown internal error",
    )

    def to_log_dict(self) -> dict[str, Any]:
        return {
            "error_code": str(self.error_code),
            "error_category": self.error_code.category.value,
            "error_message": str(self),
            "retryable": self.error_code.retryable,
        }


class StrategyConfigError(DocketWatchError):
    error_code = ERR_CONFIG_STRATEGIES


class MalformedContentError(DocketWatchError):
    """Extraction rejected the content; surfaced to callers as not found."""

    error_code = ERR_EXTRACT_REJECTED


class NotFoundError(DocketWatchError):
    error_code = ERR_FETCH_NOT_FOUND

    def __init__(self, case_id: str, reason: str = "") -> None:
        self.case_id = case_id
        self.reason = reason
        message = f"case {case_id} not found"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)


class UpstreamUnavailableError(DocketWatchError):
    """Raised when every strategy was blocked or failed transiently."""

    error_code = ERR_FETCH_EXHAUSTED

    def __init__(self, query: str, attempts: Sequence["Attempt"] = ()) -> None:
        self.query = query
        self.attempts = list(attempts)
        detail = "; ".join(f"{a.strategy}={a.reason}" for a in self.attempts) or "no strategies"
        super().__init__(f"upstream unavailable for {query}: {detail}")

    @property
    def diagnostics(self) -> dict[str, str]:
        return {attempt.strategy: attempt.reason for attempt in self.attempts}
