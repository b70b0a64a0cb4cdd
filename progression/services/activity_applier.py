"""
Activity Applier

Logs one activity against a subject:

1. Validate 0 < duration <= 1440 minutes, the activity type and the timestamp
2. Compute the receipt (stat deltas + EXP) with the stat gain calculator
3. Stamp the category's last-activity time (resets degradation)
4. Add the stat deltas to the ledger and the EXP through the level ladder
5. Store an immutable ActivityRecord carrying the receipt

The receipt on the record is the only source of truth for what this
activity granted. It is never re-derived, so changing a rate override later
cannot alter how a past activity is reversed.

Validation happens before any mutation; nothing after it can fail.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional, Union
from uuid import uuid4

from progression.core.config import settings
from progression.core.exceptions import ValidationError
from progression.enums import ActivityCategory, ActivityType
from progression.schemas import ActivityRecord, ProgressionPreferences, Subject, as_utc
from progression.services import stat_gain_calculator
from progression.services.activity_history import ActivityHistory
from progression.services.level_ladder import LevelChange
from progression.services.stat_gain_calculator import GainPreview
from progression.services.stat_ledger import StatLedger

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ApplyResult:
    """A freshly logged record and what it did to the level."""
    record: ActivityRecord
    level_change: LevelChange

    @property
    def leveled_up(self) -> bool:
        return self.level_change.leveled_up

    @property
    def new_level(self) -> int:
        return self.level_change.new_level


def validate_duration(duration_minutes: int) -> None:
    if isinstance(duration_minutes, bool) or not isinstance(duration_minutes, int):
        raise ValidationError("Duration must be a whole number of minutes", field="duration_minutes")
    if duration_minutes <= 0:
        raise ValidationError("Duration must be greater than 0 minutes", field="duration_minutes")
    if duration_minutes > settings.MAX_ACTIVITY_MINUTES:
        raise ValidationError(
            f"Duration cannot exceed 24 hours ({settings.MAX_ACTIVITY_MINUTES} minutes)",
            field="duration_minutes",
        )


def validate_timestamp(timestamp: Optional[datetime]) -> datetime:
    """Activity time as aware UTC; defaults to now. Naive values are read as UTC."""
    if timestamp is None:
        return datetime.now(timezone.utc)
    if not isinstance(timestamp, datetime):
        raise ValidationError("Timestamp must be a datetime", field="timestamp")
    return as_utc(timestamp)


def new_record_id() -> str:
    return f"activity_{uuid4().hex}"


class ActivityApplier:
    """Applies logged activities. Holds preferences only; subjects are passed in."""

    def __init__(self, preferences: Optional[ProgressionPreferences] = None):
        self.preferences = preferences or ProgressionPreferences()
        self._overrides = stat_gain_calculator.overrides_from_preferences(self.preferences)

    def preview(self, activity_type: Union[ActivityType, str], duration_minutes: int) -> GainPreview:
        """Expected gains for the logging form. Validates like apply(), mutates nothing."""
        activity_type = stat_gain_calculator.parse_activity_type(activity_type)
        validate_duration(duration_minutes)
        return stat_gain_calculator.preview(activity_type, duration_minutes, self._overrides)

    def apply(
        self,
        subject: Subject,
        history: ActivityHistory,
        activity_type: Union[ActivityType, str],
        duration_minutes: int,
        notes: Optional[str] = None,
        timestamp: Optional[datetime] = None,
    ) -> ApplyResult:
        """
        Apply one activity to a subject and record it.

        Args:
            subject: Subject to mutate
            history: The subject's records; the new record is added here
            activity_type: Activity kind
            duration_minutes: 1..1440
            notes: Optional free text
            timestamp: When the activity happened (defaults to now, UTC)

        Returns:
            ApplyResult with the stored record (receipt included)

        Raises:
            ValidationError: invalid duration, activity type or timestamp (no mutation)
        """
        activity_type = stat_gain_calculator.parse_activity_type(activity_type)
        validate_duration(duration_minutes)
        when = validate_timestamp(timestamp)

        receipt = stat_gain_calculator.calculate(activity_type, duration_minutes, self._overrides)
        record = ActivityRecord(
            id=new_record_id(),
            activity_type=activity_type,
            duration_minutes=duration_minutes,
            timestamp=when,
            notes=notes,
            receipt=receipt,
        )

        category = stat_gain_calculator.category_of(activity_type)
        if category is not ActivityCategory.NONE:
            previous = subject.last_activity_at.get(category)
            if previous is None or when > as_utc(previous):
                subject.last_activity_at[category] = when
        if when > as_utc(subject.last_active):
            subject.last_active = when

        ledger = StatLedger(subject)
        ledger.add_deltas(receipt.stat_deltas)
        level_change = ledger.add_exp(receipt.exp_delta)

        history.add(record)

        logger.info(
            "Applied %s (%d min) for %s: exp +%s, level %d",
            activity_type.value, duration_minutes, subject.id,
            receipt.exp_delta, level_change.new_level,
        )
        return ApplyResult(record=record, level_change=level_change)
