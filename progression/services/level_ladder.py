"""
Level Ladder

Projects cumulative EXP onto a level with an exponential threshold ladder:

    threshold(level) = 1000 * 1.2^(level - 1)

Level L is reached once total EXP covers the thresholds of levels 1..L-1.
EXP rolls over: the progress bar shows the remainder after those thresholds,
measured against threshold(L).

    total 1000 -> level 2, rollover 0
    total 2500 -> level 3, rollover 300   (1000 + 1200 consumed)

Level is never stored as an independent fact. Every EXP change goes through
apply()/reverse() which re-project it, so a level-down across several levels
falls out of the same computation as a level-up.

Cumulative thresholds are computed in Decimal so ladder boundaries are exact.
"""

import logging
from dataclasses import dataclass
from decimal import Decimal
from functools import lru_cache
from typing import Tuple

from progression.core.exceptions import ValidationError
from progression.services.value_sanitizer import is_finite, quantize, to_decimal

logger = logging.getLogger(__name__)

BASE_THRESHOLD = Decimal(1000)
GROWTH_FACTOR = Decimal("1.2")


@dataclass(frozen=True)
class LevelProgress:
    """Where a total EXP sits on the ladder."""
    level: int
    rollover_exp: float      # EXP earned inside the current level
    threshold: float         # EXP the current level needs

    @property
    def fraction(self) -> float:
        return min(1.0, self.rollover_exp / self.threshold) if self.threshold > 0 else 1.0

    @property
    def exp_to_next_level(self) -> float:
        return max(0.0, self.threshold - self.rollover_exp)


@dataclass(frozen=True)
class LevelChange:
    """Outcome of adding or removing EXP."""
    previous_total_exp: float
    new_total_exp: float
    previous_level: int
    new_level: int

    @property
    def leveled_up(self) -> bool:
        return self.new_level > self.previous_level

    @property
    def levels_gained(self) -> int:
        return max(0, self.new_level - self.previous_level)

    @property
    def leveled_down(self) -> bool:
        return self.new_level < self.previous_level

    @property
    def levels_lost(self) -> int:
        return max(0, self.previous_level - self.new_level)


@lru_cache(maxsize=512)
def _threshold(level: int) -> Decimal:
    return BASE_THRESHOLD * GROWTH_FACTOR ** (level - 1)


def threshold_for(level: int) -> float:
    """EXP required to complete `level`."""
    if level < 1:
        raise ValidationError("Level must be greater than 0", field="level")
    return float(_threshold(level))


def _walk(total_exp: float) -> Tuple[int, Decimal]:
    """Return (level, rollover) for a total EXP."""
    remaining = to_decimal(max(0.0, total_exp)) if is_finite(total_exp) else Decimal(0)
    level = 1
    while remaining >= _threshold(level):
        remaining -= _threshold(level)
        level += 1
    return level, remaining


def level_for(total_exp: float) -> int:
    """Largest L whose thresholds for levels 1..L-1 sum to at most total_exp."""
    return _walk(total_exp)[0]


def progress_for(total_exp: float) -> LevelProgress:
    level, rollover = _walk(total_exp)
    return LevelProgress(level=level, rollover_exp=quantize(rollover), threshold=threshold_for(level))


def _check_amount(amount: float) -> None:
    if not is_finite(amount) or amount < 0:
        raise ValidationError(f"EXP amount must be a finite, non-negative number: {amount!r}", field="exp")


def apply(total_exp: float, gained: float) -> LevelChange:
    """
    Add EXP and re-project the level.

    Args:
        total_exp: Current cumulative EXP
        gained: EXP to add (>= 0)

    Returns:
        LevelChange; leveled_up/levels_gained report crossings
    """
    _check_amount(gained)
    new_total = quantize(to_decimal(total_exp) + to_decimal(gained))
    change = LevelChange(
        previous_total_exp=total_exp,
        new_total_exp=new_total,
        previous_level=level_for(total_exp),
        new_level=level_for(new_total),
    )
    if change.leveled_up:
        logger.info("Level up: %d -> %d (%d levels)", change.previous_level, change.new_level, change.levels_gained)
    return change


def reverse(total_exp: float, amount: float) -> LevelChange:
    """
    Remove EXP and re-project the level, never dropping below 0 total EXP.

    A removal larger than the current rollover drops one or more levels;
    the new rollover is whatever level_for() says it is.
    """
    _check_amount(amount)
    new_total = quantize(max(Decimal(0), to_decimal(total_exp) - to_decimal(amount)))
    change = LevelChange(
        previous_total_exp=total_exp,
        new_total_exp=new_total,
        previous_level=level_for(total_exp),
        new_level=level_for(new_total),
    )
    if change.leveled_down:
        logger.info("Level down: %d -> %d (%d levels)", change.previous_level, change.new_level, change.levels_lost)
    return change


def total_exp_for_level(level: int) -> float:
    """Cumulative EXP at which `level` is first reached."""
    if level < 1:
        raise ValidationError("Level must be greater than 0", field="level")
    return float(sum((_threshold(n) for n in range(1, level)), Decimal(0)))
