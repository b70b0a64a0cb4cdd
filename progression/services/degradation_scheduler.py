"""
Degradation Scheduler

Decays stats in categories that have gone without a qualifying activity.

Categories:
- workout -> strength, agility, endurance
- study   -> intelligence, focus
- charisma never decays; "none" activities never reset or cause decay

Rules:
- missed_days counts whole days since the category's last activity
  (weekdays only under relaxed weekend mode)
- Decay comes in 3-day blocks of 0.01, capped at 0.05 for one inactivity
  window (the stretch since the last qualifying activity)
- Every stat is floor-clamped at 1.0; EXP and level are never touched

Idempotency:
The decay owed for a window is a function of missed days alone. Each pass
applies only the difference between what is owed at `now` and what was
already owed at the category's last check, then moves the check forward.
Calling twice with the same `now` applies nothing the second time, and one
call after a long gap applies the same total as one call per elapsed day.
"""

import logging
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from decimal import Decimal
from enum import Enum
from typing import Dict, List, Optional, Tuple

from progression.core.config import settings
from progression.enums import ActivityCategory, StatType
from progression.core.exceptions import ValidationError
from progression.schemas import ProgressionPreferences, Subject, as_utc
from progression.services.stat_ledger import StatLedger

logger = logging.getLogger(__name__)

DEGRADATION_BLOCK_DAYS = 3
DECAY_PER_BLOCK = Decimal("0.01")
MAX_DECAY_PER_WINDOW = Decimal("0.05")

CATEGORY_STATS: Dict[ActivityCategory, Tuple[StatType, ...]] = {
    ActivityCategory.WORKOUT: (StatType.STRENGTH, StatType.AGILITY, StatType.ENDURANCE),
    ActivityCategory.STUDY: (StatType.INTELLIGENCE, StatType.FOCUS),
}


class DegradationSeverity(str, Enum):
    LOW = "low"              # Decay starts tomorrow
    MEDIUM = "medium"        # Decay just started
    HIGH = "high"            # Decaying for several days
    CRITICAL = "critical"    # Long-term inactivity


@dataclass
class CategoryDecay:
    """Outcome of one category in one pass."""
    category: ActivityCategory
    missed_days: int
    blocks: int
    decay_applied: float
    stats: Tuple[StatType, ...]
    clamped_stats: List[StatType] = field(default_factory=list)


@dataclass
class DegradationReport:
    evaluated_at: datetime
    categories: List[CategoryDecay] = field(default_factory=list)

    @property
    def applied(self) -> bool:
        return any(c.decay_applied > 0 for c in self.categories)

    @property
    def stat_decay(self) -> Dict[StatType, float]:
        """Amount requested per stat this pass (before floor clamping)."""
        decay: Dict[StatType, float] = {}
        for c in self.categories:
            if c.decay_applied > 0:
                for stat in c.stats:
                    decay[stat] = c.decay_applied
        return decay


@dataclass(frozen=True)
class DegradationWarning:
    category: ActivityCategory
    days_since_last_activity: int
    affected_stats: Tuple[StatType, ...]
    is_active: bool

    @property
    def severity(self) -> DegradationSeverity:
        if self.days_since_last_activity >= DEGRADATION_BLOCK_DAYS + 7:
            return DegradationSeverity.CRITICAL
        if self.days_since_last_activity >= DEGRADATION_BLOCK_DAYS + 3:
            return DegradationSeverity.HIGH
        if self.is_active:
            return DegradationSeverity.MEDIUM
        return DegradationSeverity.LOW

    @property
    def message(self) -> str:
        name = self.category.value.capitalize()
        if self.is_active:
            return f"{name}: {self.days_since_last_activity} days without activity - stats degrading!"
        return f"{name}: {self.days_since_last_activity} days without activity - degradation starts tomorrow!"


# =============================================================================
# Pure helpers
# =============================================================================

def _weekdays_between(start: date, end: date) -> int:
    """Weekdays in (start, end]."""
    count = 0
    current = start
    while current < end:
        current += timedelta(days=1)
        if current.weekday() < 5:
            count += 1
    return count


def missed_days(since: datetime, until: datetime, relaxed_weekend_mode: bool = False) -> int:
    """Whole days from `since` to `until`; weekdays only in relaxed mode. Never negative."""
    since, until = as_utc(since), as_utc(until)
    if until <= since:
        return 0
    if relaxed_weekend_mode:
        return _weekdays_between(since.date(), until.date())
    return (until - since).days


def evaluation_time(now: datetime) -> datetime:
    """`now` as aware UTC; naive values are read as UTC."""
    if not isinstance(now, datetime):
        raise ValidationError("Evaluation time must be a datetime", field="now")
    return as_utc(now)


def cumulative_decay(days: int) -> Decimal:
    """Total decay owed for an inactivity window of `days` missed days."""
    blocks = max(0, days) // DEGRADATION_BLOCK_DAYS
    return min(DECAY_PER_BLOCK * blocks, MAX_DECAY_PER_WINDOW)


# =============================================================================
# Scheduler
# =============================================================================

class DegradationScheduler:
    """Time-driven decay pass. Run on a timer or on app resume."""

    def __init__(self, relaxed_weekend_mode: Optional[bool] = None):
        if relaxed_weekend_mode is None:
            relaxed_weekend_mode = settings.DEFAULT_RELAXED_WEEKEND_MODE
        self.relaxed_weekend_mode = relaxed_weekend_mode

    @classmethod
    def from_preferences(cls, preferences: ProgressionPreferences) -> "DegradationScheduler":
        return cls(relaxed_weekend_mode=preferences.relaxed_weekend_mode)

    def _owed(self, subject: Subject, category: ActivityCategory, now: datetime) -> Tuple[int, Decimal]:
        """(missed days at now, decay still to apply) for one category."""
        last_activity = subject.last_activity_at.get(category)
        if last_activity is None:
            return 0, Decimal(0)

        missed = missed_days(last_activity, now, self.relaxed_weekend_mode)
        last_check = subject.last_degradation_check.get(category)
        already = 0
        if last_check is not None and as_utc(last_check) > as_utc(last_activity):
            already = missed_days(last_activity, last_check, self.relaxed_weekend_mode)

        owed = cumulative_decay(missed) - cumulative_decay(already)
        return missed, max(owed, Decimal(0))

    def pending_decay(self, subject: Subject, now: datetime) -> Dict[ActivityCategory, float]:
        """Decay a pass at `now` would apply, per category. Mutates nothing."""
        now = evaluation_time(now)
        pending = {}
        for category in CATEGORY_STATS:
            _, owed = self._owed(subject, category, now)
            if owed > 0:
                pending[category] = float(owed)
        return pending

    def has_pending_degradation(self, subject: Subject, now: datetime) -> bool:
        return bool(self.pending_decay(subject, now))

    def apply_degradation(self, subject: Subject, now: datetime) -> DegradationReport:
        """
        Apply any decay owed since the last check.

        Args:
            subject: Subject to mutate (stats and last-check timestamps only)
            now: Evaluation time

        Returns:
            DegradationReport with one entry per decaying category
        """
        now = evaluation_time(now)
        report = DegradationReport(evaluated_at=now)
        ledger = StatLedger(subject)

        for category, stats in CATEGORY_STATS.items():
            missed, owed = self._owed(subject, category, now)
            entry = CategoryDecay(
                category=category,
                missed_days=missed,
                blocks=missed // DEGRADATION_BLOCK_DAYS,
                decay_applied=float(owed),
                stats=stats,
            )

            if owed > 0:
                entry.clamped_stats = ledger.subtract_deltas({stat: float(owed) for stat in stats})
                logger.info(
                    "Degraded %s stats for %s by %s (%d missed days)",
                    category.value, subject.id, owed, missed,
                )

            last_check = subject.last_degradation_check.get(category)
            if last_check is None or now > as_utc(last_check):
                subject.last_degradation_check[category] = now

            report.categories.append(entry)

        return report

    def warnings(self, subject: Subject, now: datetime) -> List[DegradationWarning]:
        """Warn from one day before decay starts."""
        now = evaluation_time(now)
        result = []
        for category, stats in CATEGORY_STATS.items():
            last_activity = subject.last_activity_at.get(category)
            if last_activity is None:
                continue
            days = missed_days(last_activity, now, self.relaxed_weekend_mode)
            if days >= DEGRADATION_BLOCK_DAYS - 1:
                result.append(DegradationWarning(
                    category=category,
                    days_since_last_activity=days,
                    affected_stats=stats,
                    is_active=days >= DEGRADATION_BLOCK_DAYS,
                ))
        return result

    def next_degradation_date(self, subject: Subject, category: ActivityCategory) -> Optional[datetime]:
        """When the first decay block of the current window lands."""
        last_activity = subject.last_activity_at.get(category)
        if last_activity is None or category not in CATEGORY_STATS:
            return None

        if not self.relaxed_weekend_mode:
            return as_utc(last_activity) + timedelta(days=DEGRADATION_BLOCK_DAYS)

        next_date = as_utc(last_activity)
        weekdays = 0
        while weekdays < DEGRADATION_BLOCK_DAYS:
            next_date += timedelta(days=1)
            if next_date.weekday() < 5:
                weekdays += 1
        return next_date


def apply_degradation(
    subject: Subject,
    now: datetime,
    relaxed_weekend_mode: Optional[bool] = None,
) -> DegradationReport:
    """Module-level shortcut for a single pass."""
    return DegradationScheduler(relaxed_weekend_mode).apply_degradation(subject, now)
