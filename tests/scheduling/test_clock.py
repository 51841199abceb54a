"""Tests for ScheduleClock."""

from datetime import UTC, datetime, timedelta
from unittest.mock import patch

import pytest

from cronflow.core.errors import ScheduleNotSupportedError
from cronflow.scheduling.clock import AdvanceOutcome, ClockState, ScheduleClock, utcnow
from cronflow.scheduling.expr import ScheduleExpr

T0 = datetime(2024, 1, 1, 12, 0, 0, tzinfo=UTC)


class TestInit:
    def test_uninitialized(self):
        clock = ScheduleClock("* * * * * *")
        assert clock.state is ClockState.UNINITIALIZED
        assert clock.next_fire is None
        assert clock.advance(T0) is AdvanceOutcome.UNINITIALIZED

    def test_first_fire_is_earliest_after_now(self):
        clock = ScheduleClock("0 */5 * * * *")
        clock.init(now=T0)
        assert clock.state is ClockState.ARMED
        assert clock.next_fire == T0 + timedelta(minutes=5)

    def test_min_interval(self):
        clock = ScheduleClock("1/10 * * * * *")
        clock.init(now=T0)
        assert clock.min_interval == timedelta(seconds=10)

    def test_min_interval_ignores_first_gap(self):
        """The floor comes from the occurrences after the first one."""
        clock = ScheduleClock("0 0 0 * * *", sample_size=3)
        clock.init(now=T0)
        assert clock.next_fire == datetime(2024, 1, 2, tzinfo=UTC)
        assert clock.min_interval == timedelta(days=1)

    def test_daily_preset(self):
        now = utcnow()
        clock = ScheduleClock("@daily")
        clock.init(now=now)
        assert now < clock.next_fire <= now + timedelta(hours=24)
        assert clock.min_interval is not None

    def test_once_is_rejected(self):
        with pytest.raises(ScheduleNotSupportedError):
            ScheduleClock("@once").init(now=T0)

    def test_none_is_dormant(self):
        clock = ScheduleClock("@none")
        clock.init(now=T0)
        assert clock.state is ClockState.DORMANT
        assert clock.next_fire is None
        assert clock.min_interval is None
        assert clock.advance(T0 + timedelta(days=365)) is AdvanceOutcome.DORMANT


class TestAdvance:
    def test_not_due(self):
        clock = ScheduleClock("0 */5 * * * *")
        clock.init(now=T0)
        before = clock.snapshot()
        assert clock.advance_if_due(T0 + timedelta(minutes=1)) is False
        assert clock.snapshot() == before

    def test_fires_and_moves_forward(self):
        clock = ScheduleClock("0 */5 * * * *")
        clock.init(now=T0)
        due = clock.next_fire
        assert clock.advance(due) is AdvanceOutcome.FIRED
        assert clock.last_fired == due
        assert clock.next_fire == due + timedelta(minutes=5)

    def test_idempotent_per_tick(self):
        clock = ScheduleClock("* * * * * *")
        clock.init(now=T0)
        now = clock.next_fire
        assert clock.advance_if_due(now) is True
        assert clock.advance_if_due(now) is False

    def test_late_tick_fires_once(self):
        """A tick far past next-fire fires once and steps one occurrence."""
        clock = ScheduleClock("* * * * * *")
        clock.init(now=T0)
        late = T0 + timedelta(seconds=30)
        assert clock.advance_if_due(late) is True
        assert clock.next_fire == T0 + timedelta(seconds=2)

    def test_exhausted_rule(self):
        clock = ScheduleClock("0 0 0 1 1 * 2030")
        clock.init(now=T0)
        last = clock.next_fire

        with patch.object(ScheduleExpr, "next_after", return_value=None):
            assert clock.advance(last) is AdvanceOutcome.FIRED

        assert clock.state is ClockState.EXHAUSTED
        assert clock.next_fire == last
        assert clock.advance(last + timedelta(days=400)) is AdvanceOutcome.EXHAUSTED


class TestSnapshot:
    def test_to_dict(self):
        clock = ScheduleClock("1/10 * * * * *")
        clock.init(now=T0)
        data = clock.snapshot().to_dict()
        assert data["state"] == "armed"
        assert data["next_fire"] == (T0 + timedelta(seconds=1)).isoformat()
        assert data["min_interval_seconds"] == 10.0
