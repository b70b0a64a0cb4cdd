"""
Stat Value Sanitization & Chart Scaling

Guards every stat value the engine stores or hands to a renderer:
- Non-finite or below-floor values are replaced with the floor (1.0)
- There is no ceiling: stats grow without bound
- Addition and subtraction go through Decimal and are quantized to a fixed
  number of places, so a receipt added and later subtracted lands exactly
  where it started

Chart helpers are read-only. A renderer may sanitize a snapshot and derive an
axis ceiling from it, but never writes anything back.
"""

import logging
import math
import warnings
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Dict, List, Mapping, Optional, Union

from progression.core.config import settings
from progression.core.exceptions import SanitizationWarning
from progression.enums import StatType
from progression.schemas import STAT_FLOOR

logger = logging.getLogger(__name__)

# Smallest axis maximum a chart ever uses; larger axes step in fives
DEFAULT_CHART_CEILING = 5.0
CHART_CEILING_STEP = 5.0


@dataclass
class SanitizationResult:
    """Sanitized copy of a StatMap plus what was replaced."""
    stats: Dict[StatType, float]
    was_sanitized: bool
    issues: List[str] = field(default_factory=list)


def is_finite(value) -> bool:
    try:
        return math.isfinite(value)
    except TypeError:
        return False


def to_decimal(value: float) -> Decimal:
    # repr() gives the shortest string that round-trips, so 1.06 -> Decimal("1.06")
    return Decimal(repr(float(value)))


def _quantum(places: Optional[int] = None) -> Decimal:
    if places is None:
        places = settings.STAT_DECIMAL_PLACES
    return Decimal(1).scaleb(-places)


def quantize(value: Union[float, Decimal], places: Optional[int] = None) -> float:
    """Round a value onto the engine's decimal grid and return it as a float."""
    if not isinstance(value, Decimal):
        value = to_decimal(value)
    return float(value.quantize(_quantum(places)))


def precise_add(value: float, delta: float) -> float:
    return quantize(to_decimal(value) + to_decimal(delta))


def precise_subtract(value: float, delta: float) -> float:
    return quantize(to_decimal(value) - to_decimal(delta))


def clamp_to_floor(value: float, floor: float = STAT_FLOOR) -> float:
    return value if value >= floor else floor


def validate_stat_value(value) -> float:
    """Return a storable stat value: finite and at least the floor."""
    if not is_finite(value) or value < STAT_FLOOR:
        return STAT_FLOOR
    return float(value)


def sanitize(stats: Mapping[StatType, float]) -> SanitizationResult:
    """
    Replace NaN, infinite, negative and below-floor entries with the floor.

    Missing stats are filled with the floor as well. Never raises; when
    anything was replaced a SanitizationWarning is emitted and the result's
    `was_sanitized` flag is set.

    Args:
        stats: StatMap to check (not modified)

    Returns:
        SanitizationResult with a fully populated copy
    """
    clean: Dict[StatType, float] = {}
    issues: List[str] = []

    for stat in StatType:
        if stat not in stats:
            issues.append(f"{stat.value} missing")
            clean[stat] = STAT_FLOOR
            continue

        value = stats[stat]
        if not is_finite(value):
            issues.append(f"{stat.value} has non-finite value {value!r}")
            clean[stat] = STAT_FLOOR
        elif value < STAT_FLOOR:
            issues.append(f"{stat.value} below floor ({value:.2f})")
            clean[stat] = STAT_FLOOR
        else:
            clean[stat] = float(value)

    if issues:
        message = "Stat values sanitized: " + ", ".join(issues)
        logger.warning(message)
        warnings.warn(message, SanitizationWarning, stacklevel=2)

    return SanitizationResult(stats=clean, was_sanitized=bool(issues), issues=issues)


def recommended_ceiling(stats: Union[Mapping[StatType, float], float]) -> float:
    """
    Axis maximum for rendering a StatMap.

    5.0 while every stat is at most 5.0, otherwise the smallest multiple of 5
    that is at least the largest stat. Non-finite values count as the floor.

    Examples:
        >>> recommended_ceiling(7.23)
        10.0
        >>> recommended_ceiling(123.8)
        125.0
    """
    if isinstance(stats, Mapping):
        values = [validate_stat_value(v) for v in stats.values()]
        max_value = max(values) if values else STAT_FLOOR
    else:
        max_value = validate_stat_value(stats)

    if max_value <= DEFAULT_CHART_CEILING:
        return DEFAULT_CHART_CEILING

    return float(math.ceil(max_value / CHART_CEILING_STEP) * CHART_CEILING_STEP)


def format_stat_value(value: float) -> str:
    """Display formatting: 5, 12.3, 1.23."""
    if not is_finite(value):
        return "Invalid"

    if value == round(value):
        return f"{value:.0f}"

    if value >= 10:
        return f"{value:.1f}"
    return f"{value:.2f}"
