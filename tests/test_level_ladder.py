"""
Unit tests for the Level Ladder

Tests thresholds, EXP -> level projection with rollover, and multi-level
transitions in both directions.
"""
import pytest

from progression.core.exceptions import ValidationError
from progression.services import level_ladder
from progression.services.level_ladder import (
    apply,
    level_for,
    progress_for,
    reverse,
    threshold_for,
    total_exp_for_level,
)


class TestThresholds:
    """Test the exponential threshold ladder."""

    def test_first_thresholds(self):
        assert threshold_for(1) == 1000.0
        assert threshold_for(2) == 1200.0
        assert threshold_for(3) == 1440.0

    def test_growth_is_twenty_percent(self):
        for level in range(1, 30):
            assert threshold_for(level + 1) == pytest.approx(threshold_for(level) * 1.2)

    def test_level_zero_rejected(self):
        with pytest.raises(ValidationError):
            threshold_for(0)

    def test_total_exp_for_level(self):
        assert total_exp_for_level(1) == 0.0
        assert total_exp_for_level(2) == 1000.0
        assert total_exp_for_level(3) == 2200.0


class TestLevelFor:
    """Test EXP -> level projection."""

    def test_fresh_subject_is_level_one(self):
        assert level_for(0) == 1

    def test_just_below_first_threshold(self):
        assert level_for(999.999) == 1

    def test_exact_threshold_levels_up_with_zero_rollover(self):
        """1000 total EXP -> level 2, 0 rollover."""
        progress = progress_for(1000)

        assert progress.level == 2
        assert progress.rollover_exp == 0.0
        assert progress.threshold == 1200.0

    def test_rollover_carries_across_levels(self):
        """2500 total EXP -> level 3 with 300 rollover."""
        progress = progress_for(2500)

        assert progress.level == 3
        assert progress.rollover_exp == 300.0
        assert progress.exp_to_next_level == 1140.0
        assert progress.fraction == pytest.approx(300 / 1440)

    def test_negative_exp_projects_to_level_one(self):
        assert level_for(-50) == 1

    def test_level_boundaries_are_exact(self):
        """Cumulative thresholds are exact, so every boundary lands on the new level."""
        for level in range(2, 12):
            boundary = total_exp_for_level(level)
            assert level_for(boundary) == level
            assert level_for(boundary - 0.001) == level - 1


class TestApply:
    """Test adding EXP."""

    def test_gain_within_level(self):
        change = apply(0, 60)

        assert change.new_total_exp == 60.0
        assert change.new_level == 1
        assert change.leveled_up is False
        assert change.levels_gained == 0

    def test_single_level_up(self):
        change = apply(950, 60)

        assert change.new_level == 2
        assert change.leveled_up is True
        assert change.levels_gained == 1

    def test_multi_level_up(self):
        change = apply(0, 3700)  # 1000 + 1200 + 1440 = 3640

        assert change.new_level == 4
        assert change.levels_gained == 3

    def test_negative_gain_rejected(self):
        with pytest.raises(ValidationError):
            apply(100, -1)

    def test_non_finite_gain_rejected(self):
        with pytest.raises(ValidationError):
            apply(100, float("inf"))


class TestReverse:
    """Test removing EXP, including multi-level level-down."""

    def test_removal_within_level(self):
        change = reverse(120, 60)

        assert change.new_total_exp == 60.0
        assert change.leveled_down is False

    def test_removal_larger_than_rollover_drops_one_level(self):
        # Level 2 with 100 rollover; removing 300 lands in level 1 at 800
        change = reverse(1100, 300)

        assert change.previous_level == 2
        assert change.new_level == 1
        assert change.leveled_down is True
        assert change.levels_lost == 1
        assert progress_for(change.new_total_exp).rollover_exp == 800.0

    def test_removal_drops_several_levels(self):
        # Level 4 (3640 consumed) + 60 rollover; remove 2700 -> 1000 -> level 2, 0 rollover
        change = reverse(3700, 2700)

        assert change.previous_level == 4
        assert change.new_level == 2
        assert change.levels_lost == 2
        assert change.new_level == level_for(change.new_total_exp)
        assert progress_for(change.new_total_exp).rollover_exp == 0.0

    def test_clamped_at_zero(self):
        change = reverse(50, 500)

        assert change.new_total_exp == 0.0
        assert change.new_level == 1

    def test_apply_then_reverse_round_trip(self):
        for start, amount in [(0, 60), (990, 20), (2199.5, 1000.25), (10000, 7777)]:
            up = apply(start, amount)
            down = reverse(up.new_total_exp, amount)
            assert down.new_total_exp == pytest.approx(start)
            assert down.new_level == level_for(start)


class TestPrecision:
    """Ladder arithmetic never drifts."""

    def test_many_small_gains_hit_boundary_exactly(self):
        total = 0.0
        for _ in range(1000):
            total = level_ladder.apply(total, 1.0).new_total_exp

        assert total == 1000.0
        assert level_for(total) == 2
