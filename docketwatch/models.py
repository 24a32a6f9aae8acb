"""Canonical data model for case records, snapshots, change events and notifications."""

from __future__ import annotations

import hashlib
import json
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .case_numbers import normalize_case_id

# Sentinel for any text field the extractor could not confirm.
UNKNOWN = "unknown"


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class QueryIntent(str, Enum):
    CASE_NUMBER = "case_number"
    PARTY_NAME = "party_name"
    ATTORNEY_NAME = "attorney_name"


class CaseStatus(str, Enum):
    ACTIVE = "active"
    CLOSED = "closed"
    PENDING = "pending"
    DISMISSED = "dismissed"
    POST_JUDGMENT = "post_judgment"
    STAYED = "stayed"
    UNKNOWN = "unknown"

    @classmethod
    def parse(cls, raw: Optional[str]) -> "CaseStatus":
        """Map upstream status text onto the enum; unrecognized text is UNKNOWN."""

        if not raw:
            return cls.UNKNOWN
        key = " ".join(raw.strip().lower().replace("-", " ").replace("_", " ").split())
        return _STATUS_SYNONYMS.get(key, cls.UNKNOWN)


_STATUS_SYNONYMS: Dict[str, CaseStatus] = {
    "active": CaseStatus.ACTIVE,
    "open": CaseStatus.ACTIVE,
    "reopened": CaseStatus.ACTIVE,
    "closed": CaseStatus.CLOSED,
    "disposed": CaseStatus.CLOSED,
    "terminated": CaseStatus.CLOSED,
    "pending": CaseStatus.PENDING,
    "dismissed": CaseStatus.DISMISSED,
    "post judgment": CaseStatus.POST_JUDGMENT,
    "postjudgment": CaseStatus.POST_JUDGMENT,
    "stayed": CaseStatus.STAYED,
}


class RegisterAction(BaseModel):
    model_config = ConfigDict(frozen=True)

    date: str = UNKNOWN
    action: str = UNKNOWN
    description: str = ""
    filed_by: str = UNKNOWN


class VirtualMeeting(BaseModel):
    model_config = ConfigDict(frozen=True)

    meeting_id: str = UNKNOWN
    passcode: str = UNKNOWN
    link: Optional[str] = None


class UpcomingEvent(BaseModel):
    model_config = ConfigDict(frozen=True)

    date: str = UNKNOWN
    time: str = UNKNOWN
    event_type: str = UNKNOWN
    department: str = UNKNOWN
    judge: str = UNKNOWN
    description: str = ""
    virtual_info: Optional[VirtualMeeting] = None

    @property
    def slot(self) -> tuple[str, str]:
        return (self.date, self.time)


class CaseRecord(BaseModel):
    """Canonical snapshot of one case as last seen upstream."""

    model_config = ConfigDict(frozen=True)

    case_id: str
    title: str = UNKNOWN
    case_type: str = UNKNOWN
    status: CaseStatus = CaseStatus.UNKNOWN
    filed_date: str = UNKNOWN
    department: str = UNKNOWN
    judge: str = UNKNOWN
    parties: List[str] = Field(default_factory=list)
    register_of_actions: List[RegisterAction] = Field(default_factory=list)
    upcoming_events: List[UpcomingEvent] = Field(default_factory=list)
    source_strategy: str = UNKNOWN
    last_fetched_at: datetime = Field(default_factory=utcnow)

    @field_validator("case_id")
    @classmethod
    def _canonical_case_id(cls, value: str) -> str:
        normalized = normalize_case_id(value)
        if normalized is None:
            raise ValueError(f"unrecognized case number format: {value!r}")
        return normalized

    @field_validator("status", mode="before")
    @classmethod
    def _coerce_status(cls, value: Any) -> Any:
        if isinstance(value, str) and not isinstance(value, CaseStatus):
            try:
                return CaseStatus(value)
            except ValueError:
                return CaseStatus.parse(value)
        return value


@dataclass(frozen=True)
class Snapshot:
    """Diff baseline: the last persisted record and its cached action count."""

    record: CaseRecord
    action_count: int

    @classmethod
    def from_record(cls, record: CaseRecord) -> "Snapshot":
        return cls(record=record, action_count=len(record.register_of_actions))


class ChangeKind(str, Enum):
    STATUS_CHANGED = "StatusChanged"
    NEW_FILING = "NewFiling"
    HEARING_SCHEDULED = "HearingScheduled"
    HEARING_UPDATED = "HearingUpdated"


@dataclass(frozen=True)
class ChangeEvent:
    kind: ChangeKind
    case_id: str
    payload: Dict[str, Any]
    detected_at: datetime

    def signature(self) -> str:
        """Stable digest of the event identity, independent of ``detected_at``."""

        body = json.dumps(
            {"case_id": self.case_id, "kind": self.kind.value, "payload": self.payload},
            sort_keys=True,
            default=str,
        )
        return hashlib.sha256(body.encode("utf-8")).hexdigest()


@dataclass(frozen=True)
class Anomaly:
    kind: str
    case_id: str
    detail: Dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class Notification:
    type: str
    title: str
    message: str
    case_id: str
    metadata: Dict[str, Any] = field(default_factory=dict)
    signature: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": self.type,
            "title": self.title,
            "message": self.message,
            "case_id": self.case_id,
            "metadata": dict(self.metadata),
            "signature": self.signature,
        }
