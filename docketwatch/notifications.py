"""Map change events onto caller-facing notifications."""

from __future__ import annotations

from typing import Any, Callable, Dict, Iterable, List

from .models import ChangeEvent, ChangeKind, Notification
from .stores import NotificationSink
from .utils.log import get_logger

_LOG = get_logger(__name__)

NOTIFICATION_TYPES: Dict[ChangeKind, str] = {
    ChangeKind.STATUS_CHANGED: "status_change",
    ChangeKind.NEW_FILING: "new_filing",
    ChangeKind.HEARING_SCHEDULED: "hearing_scheduled",
    ChangeKind.HEARING_UPDATED: "hearing_updated",
}


def _status_text(change: ChangeEvent) -> tuple[str, str]:
    payload = change.payload
    return (
        f"Case Status Updated: {change.case_id}",
        f'Case status changed from "{payload.get("old")}" to "{payload.get("new")}"',
    )


def _filing_text(change: ChangeEvent) -> tuple[str, str]:
    payload = change.payload
    message = f"{payload.get('date')}: {payload.get('action')}"
    if payload.get("description"):
        message = f"{message} - {payload['description']}"
    return f"New Filing: {change.case_id}", message


def _scheduled_text(change: ChangeEvent) -> tuple[str, str]:
    payload = change.payload
    return (
        f"New Hearing Scheduled: {change.case_id}",
        f"{payload.get('event_type')} scheduled for {payload.get('date')} at {payload.get('time')}",
    )


def _updated_text(change: ChangeEvent) -> tuple[str, str]:
    payload = change.payload
    virtual = payload.get("virtual_info") or {}
    return (
        f"Zoom Meeting Info Added: {change.case_id}",
        f"Zoom meeting ID: {virtual.get('meeting_id')} for {payload.get('event_type')} on {payload.get('date')}",
    )


_RENDERERS: Dict[ChangeKind, Callable[[ChangeEvent], tuple[str, str]]] = {
    ChangeKind.STATUS_CHANGED: _status_text,
    ChangeKind.NEW_FILING: _filing_text,
    ChangeKind.HEARING_SCHEDULED: _scheduled_text,
    ChangeKind.HEARING_UPDATED: _updated_text,
}


def to_notification(change: ChangeEvent) -> Notification:
    """Pure mapping from one change event to one notification."""

    title, message = _RENDERERS[change.kind](change)
    metadata: Dict[str, Any] = {
        "kind": change.kind.value,
        "detected_at": change.detected_at.isoformat(),
        **change.payload,
    }
    return Notification(
        type=NOTIFICATION_TYPES[change.kind],
        title=title,
        message=message,
        case_id=change.case_id,
        metadata=metadata,
        signature=change.signature(),
    )


def emit_all(changes: Iterable[ChangeEvent], sink: NotificationSink) -> List[Notification]:
    """Append one notification per event to ``sink``; returns what was built."""

    notifications = [to_notification(change) for change in changes]
    for notification in notifications:
        sink.append(notification)
    if notifications:
        _LOG.info("Emitted %d notification(s)", len(notifications))
    return notifications
