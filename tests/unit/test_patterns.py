"""Tests for virtual user load patterns."""

from __future__ import annotations

import pytest

from echoload._internal.errors import ConfigError, ScenarioError
from echoload.dsl.options import Stage
from echoload.patterns.base import LoadPattern
from echoload.patterns.composite import CompositePattern
from echoload.patterns.constant import ConstantPattern
from echoload.patterns.ramp import RampPattern
from echoload.patterns.stages import pattern_from_stages

# =========================================================================
# ConstantPattern
# =========================================================================


class TestConstantPattern:
    """Tests for ConstantPattern."""

    def test_yields_constant_value(self) -> None:
        pattern = ConstantPattern(users=50)
        ticks = list(pattern.iter_concurrency(duration_seconds=5.0))
        assert all(users == 50 for _, users in ticks)

    def test_tick_count(self) -> None:
        """t=0..5 inclusive gives six ticks."""
        pattern = ConstantPattern(users=10)
        assert len(list(pattern.iter_concurrency(duration_seconds=5.0, tick_interval=1.0))) == 6

    def test_custom_tick_interval(self) -> None:
        pattern = ConstantPattern(users=10)
        ticks = list(pattern.iter_concurrency(duration_seconds=4.0, tick_interval=2.0))
        assert [t for t, _ in ticks] == pytest.approx([0.0, 2.0, 4.0])

    def test_uneven_tick_interval_adds_final_tick(self) -> None:
        pattern = ConstantPattern(users=3)
        ticks = list(pattern.iter_concurrency(duration_seconds=1.0, tick_interval=0.4))
        assert [t for t, _ in ticks] == pytest.approx([0.0, 0.4, 0.8, 1.0])

    def test_zero_users_allowed(self) -> None:
        """A hold at zero keeps the run idle."""
        ticks = list(ConstantPattern(users=0).iter_concurrency(duration_seconds=2.0))
        assert [users for _, users in ticks] == [0, 0, 0]

    def test_rejects_negative_users(self) -> None:
        with pytest.raises(ConfigError, match="users"):
            ConstantPattern(users=-5)

    def test_rejects_zero_duration(self) -> None:
        with pytest.raises(ConfigError, match="duration_seconds"):
            list(ConstantPattern(users=1).iter_concurrency(duration_seconds=0.0))

    def test_describe(self) -> None:
        assert "100" in ConstantPattern(users=100).describe()

    def test_is_load_pattern(self) -> None:
        assert isinstance(ConstantPattern(users=1), LoadPattern)


# =========================================================================
# RampPattern
# =========================================================================


class TestRampPattern:
    """Tests for RampPattern."""

    def test_ramp_up_from_zero(self) -> None:
        """0 -> 300 over 15s reaches 20 users per second."""
        pattern = RampPattern(start_users=0, end_users=300, ramp_duration=15.0)
        ticks = list(pattern.iter_concurrency(duration_seconds=15.0))
        assert len(ticks) == 16
        assert ticks[0] == (0.0, 0)
        assert ticks[1][1] == 20
        assert ticks[-1] == (15.0, 300)

    def test_ramp_is_monotonic(self) -> None:
        pattern = RampPattern(start_users=0, end_users=15, ramp_duration=30.0)
        users = [u for _, u in pattern.iter_concurrency(duration_seconds=30.0)]
        assert users == sorted(users)

    def test_ramp_down(self) -> None:
        pattern = RampPattern(start_users=15, end_users=0, ramp_duration=20.0)
        ticks = list(pattern.iter_concurrency(duration_seconds=20.0))
        assert ticks[0][1] == 15
        assert ticks[-1][1] == 0
        users = [u for _, u in ticks]
        assert users == sorted(users, reverse=True)

    def test_holds_end_users_after_ramp(self) -> None:
        pattern = RampPattern(start_users=0, end_users=10, ramp_duration=2.0)
        ticks = list(pattern.iter_concurrency(duration_seconds=4.0))
        assert [u for _, u in ticks[2:]] == [10, 10, 10]

    def test_equal_counts_rejected(self) -> None:
        with pytest.raises(ConfigError, match="differ"):
            RampPattern(start_users=5, end_users=5, ramp_duration=10.0)

    def test_rejects_zero_ramp_duration(self) -> None:
        with pytest.raises(ConfigError, match="ramp_duration"):
            RampPattern(start_users=0, end_users=5, ramp_duration=0.0)

    def test_fractional_tick_interval_hits_end(self) -> None:
        """Float accumulation must not drop the final tick."""
        pattern = RampPattern(start_users=0, end_users=10, ramp_duration=1.0)
        ticks = list(pattern.iter_concurrency(duration_seconds=1.0, tick_interval=0.1))
        assert len(ticks) == 11
        assert ticks[-1][1] == 10

    def test_uneven_tick_interval_closes_at_duration(self) -> None:
        """A tick interval that does not divide the ramp still reaches the target."""
        pattern = RampPattern(start_users=0, end_users=300, ramp_duration=15.0)
        ticks = list(pattern.iter_concurrency(duration_seconds=15.0, tick_interval=0.7))

        assert ticks[-2][0] == pytest.approx(14.7)
        assert ticks[-1] == (15.0, 300)
        assert len(ticks) == 23

    def test_describe(self) -> None:
        desc = RampPattern(start_users=0, end_users=300, ramp_duration=15.0).describe()
        assert "0 -> 300" in desc


# =========================================================================
# CompositePattern
# =========================================================================


class TestCompositePattern:
    """Tests for CompositePattern."""

    def test_offsets_are_continuous(self) -> None:
        pattern = CompositePattern(
            [
                (RampPattern(start_users=0, end_users=4, ramp_duration=2.0), 2.0),
                (ConstantPattern(users=4), 2.0),
            ]
        )
        ticks = list(pattern.iter_concurrency(duration_seconds=4.0))
        elapsed = [t for t, _ in ticks]
        assert elapsed == pytest.approx([0.0, 1.0, 2.0, 2.0, 3.0, 4.0])
        assert ticks[-1][1] == 4

    def test_total_duration(self) -> None:
        pattern = CompositePattern(
            [(ConstantPattern(users=1), 30.0), (ConstantPattern(users=2), 60.0)]
        )
        assert pattern.total_duration == 90.0

    def test_empty_phases_rejected(self) -> None:
        with pytest.raises(ConfigError, match="at least one"):
            CompositePattern([])

    def test_non_positive_phase_duration_rejected(self) -> None:
        with pytest.raises(ConfigError, match=r"phases\[0\] duration"):
            CompositePattern([(ConstantPattern(users=1), 0.0)])

    def test_describe_lists_phases(self) -> None:
        pattern = CompositePattern(
            [(ConstantPattern(users=1), 1.0), (ConstantPattern(users=2), 1.0)]
        )
        desc = pattern.describe()
        assert "2 phases" in desc
        assert "1. Constant" in desc


# =========================================================================
# pattern_from_stages
# =========================================================================


class TestPatternFromStages:
    """Tests for translating ramp stages to a pattern."""

    def test_single_stage_ramps_from_zero(self) -> None:
        pattern = pattern_from_stages([Stage("15s", 300)])
        ticks = list(pattern.iter_concurrency(duration_seconds=15.0))
        assert ticks[0] == (0.0, 0)
        assert ticks[-1] == (15.0, 300)
        assert pattern.total_duration == 15.0

    def test_ramp_hold_ramp_down(self) -> None:
        pattern = pattern_from_stages(
            [Stage("30s", 15), Stage("1m", 15), Stage("20s", 0)]
        )
        ticks = list(pattern.iter_concurrency(duration_seconds=pattern.total_duration))
        assert pattern.total_duration == 110.0
        assert max(u for _, u in ticks) == 15
        assert ticks[-1] == (110.0, 0)
        # Hold phase keeps the count flat
        assert {u for t, u in ticks if 30.0 <= t <= 90.0} == {15}

    def test_zero_target_first_stage_is_a_hold(self) -> None:
        pattern = pattern_from_stages([Stage("2s", 0), Stage("2s", 4)])
        ticks = list(pattern.iter_concurrency(duration_seconds=4.0))
        assert [u for t, u in ticks if t < 2.0] == [0, 0]
        assert ticks[-1][1] == 4

    def test_empty_stages_rejected(self) -> None:
        with pytest.raises(ScenarioError):
            pattern_from_stages([])
