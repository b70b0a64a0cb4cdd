"""
Stat Ledger

Mutable view over one Subject's stats, EXP and level.

- Every stat mutation is floor-clamped at 1.0; there is no ceiling
- EXP changes go through the level ladder, which rewrites the cached level
- Non-finite deltas are treated as zero and reported as a sanitization warning

The ledger mutates the Subject it wraps in place. It performs no I/O and
has no failure modes.
"""

import logging
import warnings
from typing import Dict, List, Mapping

from progression.core.exceptions import SanitizationWarning
from progression.enums import StatType
from progression.schemas import STAT_FLOOR, Subject
from progression.services import level_ladder
from progression.services.level_ladder import LevelChange, LevelProgress
from progression.services.value_sanitizer import (
    clamp_to_floor,
    is_finite,
    precise_add,
    precise_subtract,
    validate_stat_value,
)

logger = logging.getLogger(__name__)


class StatLedger:
    """Stats + EXP + level for one subject."""

    def __init__(self, subject: Subject):
        self.subject = subject

    # ------------------------------------------------------------------
    # Stats
    # ------------------------------------------------------------------

    def stat(self, stat: StatType) -> float:
        return self.subject.get_stat(stat)

    def snapshot(self) -> Dict[StatType, float]:
        return {stat: self.stat(stat) for stat in StatType}

    def add_deltas(self, deltas: Mapping[StatType, float]) -> List[StatType]:
        """Add deltas; returns the stats that had to be clamped at the floor."""
        return self._mutate(deltas, precise_add)

    def subtract_deltas(self, deltas: Mapping[StatType, float]) -> List[StatType]:
        """
        Subtract deltas; returns the stats that had to be clamped at the floor.

        Clamping loses information: a later re-add will not restore the value
        the stat had before the floor was hit.
        """
        return self._mutate(deltas, precise_subtract)

    def _mutate(self, deltas: Mapping[StatType, float], op) -> List[StatType]:
        clamped: List[StatType] = []
        for stat, delta in deltas.items():
            stat = StatType(stat)
            if not is_finite(delta):
                message = f"Ignoring non-finite delta {delta!r} for {stat.value}"
                logger.warning(message)
                warnings.warn(message, SanitizationWarning, stacklevel=3)
                continue

            current = validate_stat_value(self.stat(stat))
            raw = op(current, delta)
            value = clamp_to_floor(raw)
            if value != raw:
                clamped.append(stat)
            self.subject.stat_values[stat] = value
        return clamped

    # ------------------------------------------------------------------
    # EXP / level
    # ------------------------------------------------------------------

    def add_exp(self, amount: float) -> LevelChange:
        change = level_ladder.apply(self.subject.total_exp, amount)
        self._commit_exp(change)
        return change

    def remove_exp(self, amount: float) -> LevelChange:
        change = level_ladder.reverse(self.subject.total_exp, amount)
        self._commit_exp(change)
        return change

    def _commit_exp(self, change: LevelChange) -> None:
        self.subject.total_exp = change.new_total_exp
        self.subject.level = change.new_level

    @property
    def total_exp(self) -> float:
        return self.subject.total_exp

    @property
    def progress(self) -> LevelProgress:
        return level_ladder.progress_for(self.subject.total_exp)

    @property
    def current_level(self) -> int:
        return level_ladder.level_for(self.subject.total_exp)

    @property
    def current_exp(self) -> float:
        """EXP earned inside the current level (the progress bar value)."""
        return self.progress.rollover_exp

    @property
    def progress_to_next_level(self) -> float:
        return self.progress.fraction

    @property
    def exp_to_next_level(self) -> float:
        return self.progress.exp_to_next_level

    def is_at_floor(self, stat: StatType) -> bool:
        return self.stat(stat) <= STAT_FLOOR
