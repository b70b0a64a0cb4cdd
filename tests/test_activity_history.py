"""
Unit tests for the Activity History collection
"""
import pytest
from datetime import datetime, timedelta, timezone

from progression.core.exceptions import (
    ProgressionError,
    RecordNotFoundError,
    ReversalNotFoundError,
    ValidationError,
)
from progression.enums import ActivityType
from progression.schemas import ActivityRecord
from progression.services.activity_history import ActivityHistory


def _record(record_id, when, activity_type=ActivityType.MEDITATION):
    return ActivityRecord(id=record_id, activity_type=activity_type, duration_minutes=15, timestamp=when)


class TestMutations:
    """Errors use the engine's exception hierarchy."""

    def test_duplicate_id_rejected(self, history, now):
        history.add(_record("a1", now))

        with pytest.raises(ValidationError) as exc:
            history.add(_record("a1", now))

        assert exc.value.field == "id"
        assert len(history) == 1

    def test_replace_unknown_raises_not_found(self, history, now):
        with pytest.raises(RecordNotFoundError) as exc:
            history.replace(_record("missing", now))

        assert exc.value.error_code == "NOT_FOUND"
        assert history.is_empty()

    def test_remove_unknown_raises_not_found(self, history):
        with pytest.raises(RecordNotFoundError):
            history.remove("missing")

    def test_remove_returns_record(self, history, now):
        record = _record("a1", now)
        history.add(record)

        assert history.remove("a1") == record
        assert "a1" not in history

    def test_reversal_error_is_a_not_found_error(self):
        error = ReversalNotFoundError("a1")

        assert isinstance(error, RecordNotFoundError)
        assert isinstance(error, ProgressionError)


class TestQueries:

    def test_recent_newest_first(self, history, now):
        for days in (3, 0, 1):
            history.add(_record(f"d{days}", now - timedelta(days=days)))

        assert [r.id for r in history.recent(2)] == ["d0", "d1"]

    def test_between_filters_by_window_and_type(self, history, now):
        history.add(_record("old", now - timedelta(days=10)))
        history.add(_record("yoga", now - timedelta(days=1), ActivityType.WORKOUT_YOGA))
        history.add(_record("med", now))

        window = history.between(now - timedelta(days=2), now)
        yoga = history.between(now - timedelta(days=2), now, ActivityType.WORKOUT_YOGA)

        assert [r.id for r in window] == ["yoga", "med"]
        assert [r.id for r in yoga] == ["yoga"]

    def test_between_accepts_naive_bounds(self, history, now):
        history.add(_record("med", now))

        naive_start = (now - timedelta(hours=1)).replace(tzinfo=None)
        naive_end = (now + timedelta(hours=1)).replace(tzinfo=None)

        assert [r.id for r in history.between(naive_start, naive_end)] == ["med"]

    def test_dict_round_trip(self, history, now):
        history.add(_record("a1", now))

        restored = ActivityHistory.from_dicts(history.to_dicts())

        assert restored.get("a1") == history.get("a1")
        assert restored.get("a1").timestamp.tzinfo is not None

    def test_naive_record_timestamp_stored_as_utc(self):
        record = _record("a1", datetime(2025, 3, 5, 9, 0))

        assert record.timestamp == datetime(2025, 3, 5, 9, 0, tzinfo=timezone.utc)
