"""
Activity History

In-memory collection of one subject's activity records, keyed by id.
The caller loads it from storage before a call and saves it afterwards;
the engine only adds, replaces (migration) and removes (reversal) records.
"""

from datetime import datetime
from typing import Any, Dict, Iterable, Iterator, List, Optional

from progression.core.exceptions import RecordNotFoundError, ValidationError
from progression.enums import ActivityType
from progression.schemas import ActivityRecord, as_utc


class ActivityHistory:
    """Records owned by one subject."""

    def __init__(self, records: Iterable[ActivityRecord] = ()):
        self._records: Dict[str, ActivityRecord] = {}
        for record in records:
            self.add(record)

    @classmethod
    def from_dicts(cls, rows: Iterable[Dict[str, Any]]) -> "ActivityHistory":
        return cls(ActivityRecord.model_validate(row) for row in rows)

    def to_dicts(self) -> List[Dict[str, Any]]:
        return [record.model_dump(mode="json") for record in self._records.values()]

    def __len__(self) -> int:
        return len(self._records)

    def __iter__(self) -> Iterator[ActivityRecord]:
        return iter(list(self._records.values()))

    def __contains__(self, record_id: object) -> bool:
        return record_id in self._records

    def is_empty(self) -> bool:
        return not self._records

    def get(self, record_id: str) -> Optional[ActivityRecord]:
        return self._records.get(record_id)

    def add(self, record: ActivityRecord) -> None:
        if record.id in self._records:
            raise ValidationError(f"Duplicate activity record id: {record.id}", field="id")
        self._records[record.id] = record

    def replace(self, record: ActivityRecord) -> None:
        if record.id not in self._records:
            raise RecordNotFoundError(record.id)
        self._records[record.id] = record

    def remove(self, record_id: str) -> ActivityRecord:
        if record_id not in self._records:
            raise RecordNotFoundError(record_id)
        return self._records.pop(record_id)

    def recent(self, limit: int = 10) -> List[ActivityRecord]:
        """Newest first."""
        return sorted(self._records.values(), key=lambda r: r.timestamp, reverse=True)[:limit]

    def between(self, start: datetime, end: datetime, activity_type: Optional[ActivityType] = None) -> List[ActivityRecord]:
        start, end = as_utc(start), as_utc(end)
        return [
            r for r in sorted(self._records.values(), key=lambda r: r.timestamp)
            if start <= r.timestamp <= end
            and (activity_type is None or r.activity_type == activity_type)
        ]
