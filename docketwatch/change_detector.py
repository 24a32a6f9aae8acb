"""
docketwatch - Change Detector

Diffs a freshly extracted record against the stored snapshot. Checks run in a
fixed order, which is also the order of the returned events:

1. no snapshot: store the baseline, report nothing
2. status change
3. new filings, one per register entry beyond the stored count
4. hearings scheduled or updated with virtual-meeting details
5. write the new snapshot back, changes or not; an unreadable status keeps
   the last known one so a later read is compared against it

Only register growth counts as a filing. A register that shrank is reported
as an anomaly, never as an event.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable, Dict, List, Optional, Tuple

from .models import (
    Anomaly,
    CaseRecord,
    CaseStatus,
    ChangeEvent,
    ChangeKind,
    Snapshot,
    UpcomingEvent,
    utcnow,
)
from .stores import SnapshotStore
from .utils.log import event, get_logger

_LOG = get_logger(__name__)

ANOMALY_REGISTER_SHRUNK = "register_shrunk"


@dataclass(frozen=True)
class DetectionResult:
    case_id: str
    events: List[ChangeEvent] = field(default_factory=list)
    anomalies: List[Anomaly] = field(default_factory=list)
    baseline_created: bool = False

    @property
    def changed(self) -> bool:
        return bool(self.events)


def _status_key(status: CaseStatus | str) -> str:
    value = status.value if isinstance(status, CaseStatus) else str(status)
    return value.strip().lower()


def _status_events(
    previous: CaseRecord, current: CaseRecord, detected_at: datetime
) -> List[ChangeEvent]:
    old, new = _status_key(previous.status), _status_key(current.status)
    if old == new:
        return []
    if new == CaseStatus.UNKNOWN.value:
        # An unreadable status is an extraction gap, not a transition.
        _LOG.info("Status of %s unreadable this cycle; keeping %s", current.case_id, old)
        return []
    return [
        ChangeEvent(
            kind=ChangeKind.STATUS_CHANGED,
            case_id=current.case_id,
            payload={"old": old, "new": new},
            detected_at=detected_at,
        )
    ]


def _filing_events(
    snapshot: Snapshot, current: CaseRecord, detected_at: datetime
) -> Tuple[List[ChangeEvent], List[Anomaly]]:
    old_count = snapshot.action_count
    new_count = len(current.register_of_actions)
    if new_count < old_count:
        anomaly = Anomaly(
            kind=ANOMALY_REGISTER_SHRUNK,
            case_id=current.case_id,
            detail={"old_count": old_count, "new_count": new_count},
        )
        _LOG.warning(
            "Register of actions for %s shrank from %d to %d entries",
            current.case_id,
            old_count,
            new_count,
        )
        return [], [anomaly]

    events = [
        ChangeEvent(
            kind=ChangeKind.NEW_FILING,
            case_id=current.case_id,
            payload={"index": index, **action.model_dump()},
            detected_at=detected_at,
        )
        for index, action in enumerate(current.register_of_actions[old_count:], start=old_count)
    ]
    return events, []


def _hearing_events(
    previous: CaseRecord, current: CaseRecord, detected_at: datetime
) -> List[ChangeEvent]:
    known: Dict[Tuple[str, str], UpcomingEvent] = {}
    for hearing in previous.upcoming_events:
        known.setdefault(hearing.slot, hearing)

    events: List[ChangeEvent] = []
    for hearing in current.upcoming_events:
        before = known.get(hearing.slot)
        if before is None:
            kind = ChangeKind.HEARING_SCHEDULED
        elif before.virtual_info is None and hearing.virtual_info is not None:
            kind = ChangeKind.HEARING_UPDATED
        else:
            continue
        events.append(
            ChangeEvent(
                kind=kind,
                case_id=current.case_id,
                payload=hearing.model_dump(),
                detected_at=detected_at,
            )
        )
    return events


class ChangeDetector:
    """Compares records to their snapshots and writes the new baseline back."""

    def __init__(self, store: SnapshotStore, *, clock: Callable[[], datetime] = utcnow) -> None:
        self._store = store
        self._clock = clock

    def detect(self, record: CaseRecord, *, detected_at: Optional[datetime] = None) -> DetectionResult:
        detected_at = detected_at or self._clock()
        snapshot = self._store.get(record.case_id)

        if snapshot is None:
            self._store.put(record.case_id, record)
            _LOG.info("Baseline stored for %s", record.case_id)
            return DetectionResult(case_id=record.case_id, baseline_created=True)

        previous = snapshot.record
        events = _status_events(previous, record, detected_at)
        filings, anomalies = _filing_events(snapshot, record, detected_at)
        events.extend(filings)
        events.extend(_hearing_events(previous, record, detected_at))

        stored = record
        if record.status is CaseStatus.UNKNOWN and previous.status is not CaseStatus.UNKNOWN:
            stored = record.model_copy(update={"status": previous.status})
        self._store.put(record.case_id, stored)

        for anomaly in anomalies:
            event("detector_anomaly", level=logging.WARNING, anomaly=anomaly.kind, case_id=anomaly.case_id, **anomaly.detail)
        if events:
            _LOG.info(
                "Detected %d change(s) for %s: %s",
                len(events),
                record.case_id,
                ", ".join(change.kind.value for change in events),
            )
        return DetectionResult(case_id=record.case_id, events=events, anomalies=anomalies)
