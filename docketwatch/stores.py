"""Snapshot store and notification sink protocols with reference implementations.

The pipeline only depends on the two protocols. The in-memory classes back the
tests; ``JsonFileSnapshotStore`` backs the CLI so a sweep can be re-run against
the baseline left by the previous one.
"""

from __future__ import annotations

import json
import threading
from pathlib import Path
from typing import Dict, List, Optional, Protocol, runtime_checkable

from .models import CaseRecord, Notification, Snapshot
from .utils.log import get_logger

_LOG = get_logger(__name__)


@runtime_checkable
class SnapshotStore(Protocol):
    """Persistence for the last observed record of each tracked case."""

    def get(self, case_id: str) -> Optional[Snapshot]:
        ...

    def put(self, case_id: str, record: CaseRecord) -> Snapshot:
        ...

    def delete(self, case_id: str) -> bool:
        ...


@runtime_checkable
class NotificationSink(Protocol):
    """Destination for notifications; idempotency is the sink's job."""

    def append(self, notification: Notification) -> bool:
        ...


class InMemorySnapshotStore:
    def __init__(self) -> None:
        self._records: Dict[str, CaseRecord] = {}
        self._lock = threading.Lock()

    def get(self, case_id: str) -> Optional[Snapshot]:
        with self._lock:
            record = self._records.get(case_id)
        return Snapshot.from_record(record) if record is not None else None

    def put(self, case_id: str, record: CaseRecord) -> Snapshot:
        with self._lock:
            self._records[case_id] = record
        return Snapshot.from_record(record)

    def delete(self, case_id: str) -> bool:
        with self._lock:
            return self._records.pop(case_id, None) is not None

    def __len__(self) -> int:
        return len(self._records)

    def __contains__(self, case_id: object) -> bool:
        return case_id in self._records


class JsonFileSnapshotStore:
    """Snapshots kept in one JSON document keyed by case id."""

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path).expanduser()
        self._lock = threading.Lock()

    def _load(self) -> Dict[str, dict]:
        if not self.path.exists():
            return {}
        raw = self.path.read_text(encoding="utf-8")
        if not raw.strip():
            return {}
        data = json.loads(raw)
        if not isinstance(data, dict):
            raise ValueError(f"snapshot file {self.path} must hold a JSON object")
        return data

    def _save(self, data: Dict[str, dict]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self.path.with_suffix(self.path.suffix + ".tmp")
        tmp_path.write_text(json.dumps(data, indent=2, sort_keys=True), encoding="utf-8")
        tmp_path.replace(self.path)

    def get(self, case_id: str) -> Optional[Snapshot]:
        with self._lock:
            payload = self._load().get(case_id)
        if payload is None:
            return None
        return Snapshot.from_record(CaseRecord.model_validate(payload))

    def put(self, case_id: str, record: CaseRecord) -> Snapshot:
        with self._lock:
            data = self._load()
            data[case_id] = record.model_dump(mode="json")
            self._save(data)
        _LOG.debug("Stored snapshot for %s in %s", case_id, self.path)
        return Snapshot.from_record(record)

    def delete(self, case_id: str) -> bool:
        with self._lock:
            data = self._load()
            if data.pop(case_id, None) is None:
                return False
            self._save(data)
        return True


class InMemoryNotificationSink:
    """Collects notifications, dropping repeats of an already seen signature."""

    def __init__(self) -> None:
        self.notifications: List[Notification] = []
        self._seen: set[tuple[str, str]] = set()
        self._lock = threading.Lock()

    def append(self, notification: Notification) -> bool:
        key = (notification.case_id, notification.signature)
        with self._lock:
            if notification.signature and key in self._seen:
                _LOG.debug("Duplicate notification %s for %s skipped", notification.signature[:12], notification.case_id)
                return False
            self._seen.add(key)
            self.notifications.append(notification)
        return True

    def __len__(self) -> int:
        return len(self.notifications)
