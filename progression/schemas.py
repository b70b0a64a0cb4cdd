from pydantic import BaseModel, ConfigDict, Field, field_validator
from datetime import datetime, timezone
from uuid import uuid4
from typing import Optional, Dict

from progression.enums import ActivityCategory, ActivityType, StatType

STAT_FLOOR = 1.0


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: datetime) -> datetime:
    """Normalize to aware UTC. Naive datetimes are taken to already be UTC."""
    if value.tzinfo is None or value.tzinfo.utcoffset(value) is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def full_stat_map(value: float = STAT_FLOOR) -> Dict[StatType, float]:
    """A StatMap with every stat present."""
    return {stat: value for stat in StatType}


class Receipt(BaseModel):
    """Exact stat and EXP deltas applied for one activity record.

    Computed once at apply time and persisted verbatim; reversal subtracts it
    without consulting the (possibly changed) rate table.
    """
    stat_deltas: Dict[StatType, float] = Field(default_factory=dict)
    exp_delta: float = 0.0

    model_config = ConfigDict(frozen=True)


class ActivityRecord(BaseModel):
    """One logged activity. Immutable; a missing receipt marks a legacy record."""
    id: str
    activity_type: ActivityType
    duration_minutes: int = Field(ge=1, le=1440)
    timestamp: datetime
    notes: Optional[str] = None
    receipt: Optional[Receipt] = None

    model_config = ConfigDict(frozen=True)

    @field_validator("timestamp")
    @classmethod
    def _timestamp_utc(cls, value: datetime) -> datetime:
        return as_utc(value)

    @property
    def is_legacy(self) -> bool:
        return self.receipt is None


class Subject(BaseModel):
    """Persisted progression state for one person.

    `level` is a cached projection of `total_exp` through the level ladder;
    it is rewritten on every EXP mutation and never set independently.
    """
    id: str = Field(default_factory=lambda: f"subject_{uuid4().hex}")
    name: str = "Player"
    stat_values: Dict[StatType, float] = Field(default_factory=full_stat_map)
    total_exp: float = 0.0
    level: int = 1
    created_at: datetime = Field(default_factory=utcnow)
    last_active: datetime = Field(default_factory=utcnow)
    # Most recent qualifying activity per decaying category
    last_activity_at: Dict[ActivityCategory, datetime] = Field(default_factory=dict)
    last_degradation_check: Dict[ActivityCategory, datetime] = Field(default_factory=dict)

    @field_validator("stat_values")
    @classmethod
    def _fill_missing_stats(cls, value: Dict[StatType, float]) -> Dict[StatType, float]:
        filled = full_stat_map()
        filled.update(value)
        return filled

    @field_validator("created_at", "last_active")
    @classmethod
    def _times_utc(cls, value: datetime) -> datetime:
        return as_utc(value)

    @field_validator("last_activity_at", "last_degradation_check")
    @classmethod
    def _category_times_utc(cls, value: Dict[ActivityCategory, datetime]) -> Dict[ActivityCategory, datetime]:
        return {category: as_utc(when) for category, when in value.items()}

    def get_stat(self, stat: StatType) -> float:
        return self.stat_values.get(stat, STAT_FLOOR)


class ProgressionPreferences(BaseModel):
    """Per-subject engine preferences (mirrors the app settings screen)."""
    relaxed_weekend_mode: bool = False
    # "<activity_type>_<stat>" -> per-hour rate (fixed amount for quit_bad_habit)
    custom_stat_rates: Dict[str, float] = Field(default_factory=dict)

    @staticmethod
    def rate_key(activity_type: ActivityType, stat: StatType) -> str:
        return f"{activity_type.value}_{stat.value}"

    def with_rate(self, activity_type: ActivityType, stat: StatType, rate: float) -> "ProgressionPreferences":
        rates = dict(self.custom_stat_rates)
        rates[self.rate_key(activity_type, stat)] = rate
        return self.model_copy(update={"custom_stat_rates": rates})

    def without_rate(self, activity_type: ActivityType, stat: StatType) -> "ProgressionPreferences":
        rates = dict(self.custom_stat_rates)
        rates.pop(self.rate_key(activity_type, stat), None)
        return self.model_copy(update={"custom_stat_rates": rates})
