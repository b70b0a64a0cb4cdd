"""
Stat Gain Calculator

Converts one logged activity into the stat and EXP deltas it earns.

Rules:
- Each activity type affects 0-2 stats at a fixed per-hour rate
- Per-hour rates scale by duration_minutes / 60
- EXP is 1 per minute, except Quit Bad Habit: a fixed 60 EXP and a fixed
  focus gain regardless of duration
- A user override for an (activity, stat) pair replaces the default rate

The rate table is the only place activity-specific numbers live. Released
rates are never edited: the legacy-record reversal path recomputes from this
table and must reproduce what was granted at apply time.
"""

import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Dict, Iterable, List, Mapping, Optional, Tuple, Union

from progression.core.exceptions import ValidationError
from progression.enums import ActivityCategory, ActivityType, StatType
from progression.schemas import ActivityRecord, ProgressionPreferences, Receipt
from progression.services.value_sanitizer import is_finite, quantize, to_decimal

logger = logging.getLogger(__name__)

MINUTES_PER_HOUR = Decimal(60)
EXP_PER_MINUTE = Decimal(1)
QUIT_BAD_HABIT_EXP = 60.0

RateOverrides = Mapping[Tuple[ActivityType, StatType], float]


@dataclass(frozen=True)
class ActivityRule:
    """Rate table row for one activity type."""
    category: ActivityCategory
    rates: Tuple[Tuple[StatType, float], ...]
    fixed_reward: bool = False  # rates are flat amounts, EXP is QUIT_BAD_HABIT_EXP


RATE_TABLE: Dict[ActivityType, ActivityRule] = {
    ActivityType.WORKOUT_WEIGHTS: ActivityRule(
        ActivityCategory.WORKOUT,
        ((StatType.STRENGTH, 0.06), (StatType.ENDURANCE, 0.04)),
    ),
    ActivityType.WORKOUT_CARDIO: ActivityRule(
        ActivityCategory.WORKOUT,
        ((StatType.AGILITY, 0.06), (StatType.ENDURANCE, 0.04)),
    ),
    ActivityType.WORKOUT_YOGA: ActivityRule(
        ActivityCategory.WORKOUT,
        ((StatType.AGILITY, 0.05), (StatType.FOCUS, 0.03)),
    ),
    ActivityType.STUDY_SERIOUS: ActivityRule(
        ActivityCategory.STUDY,
        ((StatType.INTELLIGENCE, 0.06), (StatType.FOCUS, 0.04)),
    ),
    ActivityType.STUDY_CASUAL: ActivityRule(
        ActivityCategory.STUDY,
        ((StatType.INTELLIGENCE, 0.04), (StatType.CHARISMA, 0.03)),
    ),
    ActivityType.MEDITATION: ActivityRule(
        ActivityCategory.NONE,
        ((StatType.FOCUS, 0.05),),
    ),
    ActivityType.SOCIALIZING: ActivityRule(
        ActivityCategory.NONE,
        ((StatType.CHARISMA, 0.05), (StatType.FOCUS, 0.02)),
    ),
    ActivityType.QUIT_BAD_HABIT: ActivityRule(
        ActivityCategory.NONE,
        ((StatType.FOCUS, 0.03),),
        fixed_reward=True,
    ),
    ActivityType.SLEEP_TRACKING: ActivityRule(
        ActivityCategory.NONE,
        ((StatType.ENDURANCE, 0.02),),
    ),
    ActivityType.DIET_HEALTHY: ActivityRule(
        ActivityCategory.NONE,
        ((StatType.ENDURANCE, 0.03),),
    ),
}


@dataclass(frozen=True)
class GainPreview:
    """Expected gains for an activity, for display before logging."""
    activity_type: ActivityType
    duration_minutes: int
    receipt: Receipt
    affected_stats: List[StatType]
    primary_stat: Optional[StatType]

    def affects(self, stat: StatType) -> bool:
        return self.receipt.stat_deltas.get(stat, 0.0) > 0.0

    def gain_text(self, stat: StatType) -> str:
        gain = self.receipt.stat_deltas.get(stat)
        if not gain:
            return ""
        return f"+{gain:.2f}"

    @property
    def exp_text(self) -> str:
        return f"+{self.receipt.exp_delta:.0f} EXP"


def parse_activity_type(value: Union[ActivityType, str]) -> ActivityType:
    """Coerce a stored or user-supplied value into an ActivityType."""
    try:
        return ActivityType(value)
    except ValueError:
        raise ValidationError(f"Unknown activity type: {value!r}", field="activity_type")


def parse_stat_type(value: Union[StatType, str]) -> StatType:
    try:
        return StatType(value)
    except ValueError:
        raise ValidationError(f"Unknown stat: {value!r}", field="stat")


def category_of(activity_type: ActivityType) -> ActivityCategory:
    return RATE_TABLE[parse_activity_type(activity_type)].category


def default_rates(activity_type: ActivityType) -> Dict[StatType, float]:
    """Per-hour rates (flat amounts for the fixed-reward type)."""
    return dict(RATE_TABLE[parse_activity_type(activity_type)].rates)


def affected_stats(activity_type: ActivityType) -> List[StatType]:
    return [stat for stat, _ in RATE_TABLE[parse_activity_type(activity_type)].rates]


def primary_stat(activity_type: ActivityType) -> Optional[StatType]:
    """The stat with the highest default rate, first one on ties."""
    primary = None
    best = 0.0
    for stat, rate in RATE_TABLE[parse_activity_type(activity_type)].rates:
        if rate > best:
            best = rate
            primary = stat
    return primary


def overrides_from_preferences(preferences: Optional[ProgressionPreferences]) -> Dict[Tuple[ActivityType, StatType], float]:
    """
    Parse "<activity_type>_<stat>" preference keys into rate overrides.

    Raises:
        ValidationError: unknown activity/stat in a key, or an invalid rate
    """
    overrides: Dict[Tuple[ActivityType, StatType], float] = {}
    if preferences is None:
        return overrides

    for key, rate in preferences.custom_stat_rates.items():
        stat = next((s for s in StatType if key.endswith("_" + s.value)), None)
        if stat is None:
            raise ValidationError(f"Unknown stat in rate override: {key!r}", field="stat")
        activity_type = parse_activity_type(key[: -(len(stat.value) + 1)])
        overrides[(activity_type, stat)] = rate

    validate_overrides(overrides)
    return overrides


def validate_overrides(overrides: RateOverrides) -> None:
    """Overrides may only replace rates that exist, and must be finite and >= 0."""
    for (activity_type, stat), rate in overrides.items():
        activity_type = parse_activity_type(activity_type)
        stat = parse_stat_type(stat)
        if stat not in default_rates(activity_type):
            raise ValidationError(
                f"{activity_type.display_name} does not affect {stat.display_name}",
                field="stat",
            )
        if not is_finite(rate) or rate < 0:
            raise ValidationError(f"Invalid rate override {rate!r} for {activity_type.value}/{stat.value}", field="rate")


def calculate(
    activity_type: Union[ActivityType, str],
    duration_minutes: int,
    overrides: Optional[RateOverrides] = None,
) -> Receipt:
    """
    Calculate the stat and EXP deltas for one activity.

    Args:
        activity_type: Activity kind
        duration_minutes: Duration, >= 0
        overrides: Optional (activity, stat) -> rate replacements

    Returns:
        Receipt with non-negative deltas quantized to the engine's decimal grid

    Raises:
        ValidationError: unknown activity type, negative duration, bad override
    """
    activity_type = parse_activity_type(activity_type)
    if isinstance(duration_minutes, bool) or not isinstance(duration_minutes, int):
        raise ValidationError("Duration must be a whole number of minutes", field="duration_minutes")
    if duration_minutes < 0:
        raise ValidationError("Duration must be non-negative", field="duration_minutes")

    rule = RATE_TABLE[activity_type]
    if overrides:
        validate_overrides(overrides)

    hours = Decimal(duration_minutes) / MINUTES_PER_HOUR
    stat_deltas: Dict[StatType, float] = {}
    for stat, default_rate in rule.rates:
        rate = default_rate
        if overrides and (activity_type, stat) in overrides:
            rate = overrides[(activity_type, stat)]
        amount = to_decimal(rate) if rule.fixed_reward else to_decimal(rate) * hours
        stat_deltas[stat] = quantize(amount)

    if rule.fixed_reward:
        exp_delta = QUIT_BAD_HABIT_EXP
    else:
        exp_delta = float(EXP_PER_MINUTE * duration_minutes)

    logger.debug(
        "Calculated gains for %s (%d min): stats=%s exp=%s",
        activity_type.value, duration_minutes, stat_deltas, exp_delta,
    )
    return Receipt(stat_deltas=stat_deltas, exp_delta=exp_delta)


def preview(
    activity_type: Union[ActivityType, str],
    duration_minutes: int,
    overrides: Optional[RateOverrides] = None,
) -> GainPreview:
    activity_type = parse_activity_type(activity_type)
    receipt = calculate(activity_type, duration_minutes, overrides)
    return GainPreview(
        activity_type=activity_type,
        duration_minutes=duration_minutes,
        receipt=receipt,
        affected_stats=[s for s, v in receipt.stat_deltas.items() if v > 0.0],
        primary_stat=primary_stat(activity_type),
    )


def total_gains(records: Iterable[ActivityRecord]) -> Receipt:
    """
    Sum what a set of records granted.

    Stored receipts are used where present; legacy records are recomputed
    from the default rate table.
    """
    stat_totals: Dict[StatType, Decimal] = {}
    exp_total = Decimal(0)

    for record in records:
        receipt = record.receipt or calculate(record.activity_type, record.duration_minutes)
        for stat, delta in receipt.stat_deltas.items():
            stat_totals[stat] = stat_totals.get(stat, Decimal(0)) + to_decimal(delta)
        exp_total += to_decimal(receipt.exp_delta)

    return Receipt(
        stat_deltas={stat: quantize(total) for stat, total in stat_totals.items()},
        exp_delta=quantize(exp_total),
    )
