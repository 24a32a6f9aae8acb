"""docketwatch: court-record acquisition and change detection."""

from .change_detector import ChangeDetector, DetectionResult
from .classifier import Classification, ResponseKind, classify_response
from .errors import (
    DocketWatchError,
    MalformedContentError,
    NotFoundError,
    StrategyConfigError,
    UpstreamUnavailableError,
)
from .extractor import extract, looks_like_case
from .fetcher import Attempt, FetchResult, MultiStrategyFetcher, NoResult
from .models import (
    UNKNOWN,
    CaseRecord,
    CaseStatus,
    ChangeEvent,
    ChangeKind,
    Notification,
    QueryIntent,
    Snapshot,
)
from .monitor import CaseMonitor, SweepResult
from .notifications import emit_all, to_notification
from .rate_limiter import RateLimiter, RateLimitStatus
from .stores import (
    InMemoryNotificationSink,
    InMemorySnapshotStore,
    JsonFileSnapshotStore,
    NotificationSink,
    SnapshotStore,
)
from .strategies import DEFAULT_STRATEGIES, Strategy, load_strategies

__all__ = [
    "Attempt",
    "CaseMonitor",
    "CaseRecord",
    "CaseStatus",
    "ChangeDetector",
    "ChangeEvent",
    "ChangeKind",
    "Classification",
    "DEFAULT_STRATEGIES",
    "DetectionResult",
    "DocketWatchError",
    "FetchResult",
    "InMemoryNotificationSink",
    "InMemorySnapshotStore",
    "JsonFileSnapshotStore",
    "MalformedContentError",
    "MultiStrategyFetcher",
    "NoResult",
    "NotFoundError",
    "Notification",
    "NotificationSink",
    "QueryIntent",
    "RateLimitStatus",
    "RateLimiter",
    "ResponseKind",
    "Snapshot",
    "SnapshotStore",
    "Strategy",
    "StrategyConfigError",
    "SweepResult",
    "UNKNOWN",
    "UpstreamUnavailableError",
    "classify_response",
    "emit_all",
    "extract",
    "load_strategies",
    "looks_like_case",
    "to_notification",
]
