"""Tests for schedule expression parsing."""

import itertools
from datetime import UTC, datetime, timedelta

import pytest

from cronflow.core.errors import ScheduleParseError
from cronflow.scheduling.expr import ExprKind, Preset, ScheduleExpr, parse_schedule

T0 = datetime(2024, 1, 1, 12, 0, 0, tzinfo=UTC)


class TestCronRules:
    """Seconds-first 6/7-field rules."""

    def test_six_fields(self):
        expr = ScheduleExpr.parse("0 */5 * * * *")
        assert expr.kind is ExprKind.CRON
        assert expr.is_cron
        assert expr.next_after(T0) == T0 + timedelta(minutes=5)

    def test_next_is_strictly_after(self):
        """An instant that matches the rule is not its own successor."""
        expr = ScheduleExpr.parse("0 0 12 * * *")
        assert expr.next_after(T0) == T0 + timedelta(days=1)

    def test_short_step_means_start_and_step(self):
        expr = ScheduleExpr.parse("1/10 * * * * *")
        fires = [expr.next_after(T0)]
        fires.append(expr.next_after(fires[0]))
        assert fires == [T0 + timedelta(seconds=1), T0 + timedelta(seconds=11)]

    def test_seven_fields_with_year(self):
        expr = ScheduleExpr.parse("0 0 0 1 1 * 2030")
        assert expr.next_after(T0) == datetime(2030, 1, 1, tzinfo=UTC)

    def test_whitespace_is_trimmed(self):
        assert ScheduleExpr.parse("  0 * * * * *  ").text == "0 * * * * *"

    @pytest.mark.parametrize(
        "text",
        [
            "* * * * *",
            "not a cron",
            "a b c d e f",
            "",
        ],
    )
    def test_malformed(self, text):
        with pytest.raises(ScheduleParseError):
            ScheduleExpr.parse(text)

    def test_non_string(self):
        with pytest.raises(ScheduleParseError):
            ScheduleExpr.parse(42)


class TestDayOfWeek:
    """Weekdays are numbered 1 (Sunday) through 7 (Saturday)."""

    @pytest.mark.parametrize(
        "dow, expected_next",
        [
            ("1", datetime(2024, 1, 7, tzinfo=UTC)),
            ("7", datetime(2024, 1, 6, tzinfo=UTC)),
            ("1-7", datetime(2024, 1, 2, tzinfo=UTC)),
            ("2,6", datetime(2024, 1, 5, tzinfo=UTC)),
            ("fri", datetime(2024, 1, 5, tzinfo=UTC)),
            ("mon-fri", datetime(2024, 1, 2, tzinfo=UTC)),
        ],
    )
    def test_weekday_numbering(self, dow, expected_next):
        expr = ScheduleExpr.parse(f"0 0 0 * * {dow}")
        assert expr.next_after(T0) == expected_next

    def test_sunday_is_one(self):
        fire = ScheduleExpr.parse("0 0 0 * * 1").next_after(T0)
        assert fire.strftime("%A") == "Sunday"

    def test_short_step_counts_from_weekday(self):
        """``2/2`` is Monday, Wednesday, Friday."""
        expr = ScheduleExpr.parse("0 0 0 * * 2/2")
        fires = list(itertools.islice(expr.occurrences(T0), 3))
        assert [f.strftime("%a") for f in fires] == ["Wed", "Fri", "Mon"]

    @pytest.mark.parametrize("dow", ["0", "8", "0-6"])
    def test_out_of_range(self, dow):
        with pytest.raises(ScheduleParseError, match="Day-of-week"):
            ScheduleExpr.parse(f"0 0 0 * * {dow}")

    def test_day_of_month_and_weekday_must_both_match(self):
        expr = ScheduleExpr.parse("0 0 0 13 * Fri")
        fires = list(itertools.islice(expr.occurrences(T0), 2))
        assert fires == [datetime(2024, 9, 13, tzinfo=UTC), datetime(2024, 12, 13, tzinfo=UTC)]


class TestPresets:
    @pytest.mark.parametrize(
        "text, expected_next",
        [
            ("@hourly", datetime(2024, 1, 1, 13, 0, tzinfo=UTC)),
            ("@daily", datetime(2024, 1, 2, 0, 0, tzinfo=UTC)),
            ("@weekly", datetime(2024, 1, 7, 0, 0, tzinfo=UTC)),
            ("@monthly", datetime(2024, 2, 1, 0, 0, tzinfo=UTC)),
            ("@yearly", datetime(2025, 1, 1, 0, 0, tzinfo=UTC)),
        ],
    )
    def test_recurring(self, text, expected_next):
        expr = ScheduleExpr.parse(text)
        assert expr.preset is Preset(text)
        assert expr.is_cron
        assert expr.next_after(T0) == expected_next

    @pytest.mark.parametrize("text", ["@none", "@once"])
    def test_sentinels_are_not_cron(self, text):
        expr = ScheduleExpr.parse(text)
        assert expr.kind is ExprKind.PRESET
        assert expr.next_after(T0) is None

    def test_case_sensitive(self):
        with pytest.raises(ScheduleParseError):
            ScheduleExpr.parse("@DAILY")

    def test_unknown(self):
        with pytest.raises(ScheduleParseError, match="Unknown schedule preset"):
            ScheduleExpr.parse("@fortnightly")


class TestParseSchedule:
    def test_passthrough(self):
        expr = ScheduleExpr.parse("@daily")
        assert parse_schedule(expr) is expr

    def test_from_preset_enum(self):
        assert parse_schedule(Preset.HOURLY).text == "@hourly"
