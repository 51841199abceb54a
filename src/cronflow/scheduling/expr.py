"""Schedule expressions — cron rules and named presets.

A schedule is written either as a seconds-first cron rule with six or
seven fields::

    sec  min  hour  day-of-month  month  day-of-week  [year]
    1/10 *    *     *             *      *                    # every 10s from :01

or as one of the case-sensitive presets ``@none``, ``@once``,
``@hourly``, ``@daily``, ``@weekly``, ``@monthly``, ``@yearly``.

Cron evaluation is delegated to croniter. croniter keeps seconds (and
the optional year) at the end of the rule, so parsed expressions are
reordered into that layout once, at parse time.

Day-of-week numbers run from ``1`` (Sunday) to ``7`` (Saturday) and are
shifted down by one for croniter; names such as ``mon`` are accepted
unchanged. When both day-of-month and day-of-week are restricted, an
occurrence must match both (``0 0 0 13 * fri`` is Friday the 13th).

Examples:
    >>> expr = ScheduleExpr.parse("1/10 * * * * *")
    >>> expr.is_cron
    True
    >>> ScheduleExpr.parse("@daily").preset
    <Preset.DAILY: '@daily'>
    >>> ScheduleExpr.parse("every tuesday")
    Traceback (most recent call last):
    ...
    cronflow.core.errors.ScheduleParseError: ...

Tags:
    cron, croniter, schedule, preset, parsing
"""

from __future__ import annotations

import re
from collections.abc import Iterator
from dataclasses import dataclass
from datetime import datetime
from enum import Enum

from croniter import CroniterBadCronError, CroniterBadDateError, croniter

from cronflow.core.errors import ScheduleParseError

# Field upper bounds in seconds-first order (year is optional).
_FIELD_MAX = (59, 59, 23, 31, 12, 7, 2099)
_DOW_INDEX = 5
_SHORT_STEP_RE = re.compile(r"^(\d+)/(\d+)$")
_NUMBER_RE = re.compile(r"\d+")


class Preset(str, Enum):
    """Named schedule shorthands."""

    NONE = "@none"
    ONCE = "@once"
    HOURLY = "@hourly"
    DAILY = "@daily"
    WEEKLY = "@weekly"
    MONTHLY = "@monthly"
    YEARLY = "@yearly"

    @property
    def cron_equivalent(self) -> str | None:
        """Seconds-first cron rule for recurring presets, else ``None``."""
        return _PRESET_RULES.get(self)


_PRESET_RULES: dict[Preset, str] = {
    Preset.HOURLY: "0 0 * * * *",
    Preset.DAILY: "0 0 0 * * *",
    Preset.WEEKLY: "0 0 0 * * sun",
    Preset.MONTHLY: "0 0 0 1 * *",
    Preset.YEARLY: "0 0 0 1 1 *",
}


class ExprKind(str, Enum):
    CRON = "cron"
    PRESET = "preset"


def _expand_short_steps(field: str, upper: int) -> str:
    """Rewrite ``N/S`` into ``N-upper/S`` for each comma-separated part."""
    parts = []
    for part in field.split(","):
        m = _SHORT_STEP_RE.match(part)
        parts.append(f"{m.group(1)}-{upper}/{m.group(2)}" if m else part)
    return ",".join(parts)


def _shift_weekdays(field: str, text: str) -> str:
    """Map day-of-week numbers 1-7 (Sunday first) onto croniter's 0-6.

    Only the value part of each ``value/step`` item is shifted.
    """

    def shift(m: re.Match) -> str:
        day = int(m.group())
        if not 1 <= day <= 7:
            raise ScheduleParseError(
                f"Day-of-week must be 1 (Sunday) to 7 (Saturday), got {day}"
            ).with_context(schedule=text)
        return str(day - 1)

    parts = []
    for part in field.split(","):
        value, slash, step = part.partition("/")
        parts.append(_NUMBER_RE.sub(shift, value) + slash + step)
    return ",".join(parts)


def _to_croniter_layout(text: str) -> str:
    """Convert a seconds-first 6/7 field rule into croniter's field order."""
    fields = text.split()
    if len(fields) not in (6, 7):
        raise ScheduleParseError(
            f"Cron rule must have 6 or 7 fields (seconds first), got {len(fields)}"
        ).with_context(schedule=text)

    fields = [_expand_short_steps(f, upper) for f, upper in zip(fields, _FIELD_MAX)]
    fields[_DOW_INDEX] = _shift_weekdays(fields[_DOW_INDEX], text)
    seconds, rest, year = fields[0], fields[1:6], fields[6:]
    return " ".join(rest + [seconds] + year)


@dataclass(frozen=True)
class ScheduleExpr:
    """A parsed schedule expression.

    Attributes:
        text: The expression as written by the caller (trimmed)
        kind: ``CRON`` for rules (including recurring presets), ``PRESET``
            for the non-cron sentinels ``@none`` and ``@once``
        preset: The preset, when the expression was one
        rule: croniter-ordered rule for cron kinds
    """

    text: str
    kind: ExprKind
    preset: Preset | None = None
    rule: str | None = None

    @classmethod
    def parse(cls, text: str) -> ScheduleExpr:
        """Parse a cron rule or preset.

        Cron is tried first, then the preset table.

        Raises:
            ScheduleParseError: If the text is neither.
        """
        if not isinstance(text, str):
            raise ScheduleParseError(f"Schedule must be a string, got {type(text).__name__}")

        text = text.strip()
        if text.startswith("@"):
            return cls.from_preset(_lookup_preset(text))

        rule = _to_croniter_layout(text)
        _validate_rule(rule, text)
        return cls(text=text, kind=ExprKind.CRON, rule=rule)

    @classmethod
    def from_preset(cls, preset: Preset) -> ScheduleExpr:
        equivalent = preset.cron_equivalent
        if equivalent is None:
            return cls(text=preset.value, kind=ExprKind.PRESET, preset=preset)
        rule = _to_croniter_layout(equivalent)
        return cls(text=preset.value, kind=ExprKind.CRON, preset=preset, rule=rule)

    @property
    def is_cron(self) -> bool:
        return self.kind is ExprKind.CRON

    def occurrences(self, after: datetime) -> Iterator[datetime]:
        """Yield occurrences strictly after ``after``, earliest first.

        Stops when the rule has no further occurrence. Non-cron
        expressions yield nothing.
        """
        if not self.is_cron:
            return
        it = croniter(self.rule, after, day_or=False)
        while True:
            try:
                yield it.get_next(datetime)
            except CroniterBadDateError:
                return

    def next_after(self, after: datetime) -> datetime | None:
        """First occurrence strictly after ``after`` (``None`` if exhausted)."""
        return next(self.occurrences(after), None)

    def __str__(self) -> str:
        return self.text


def _lookup_preset(text: str) -> Preset:
    try:
        return Preset(text)
    except ValueError:
        raise ScheduleParseError(f"Unknown schedule preset: {text}").with_context(
            schedule=text
        ) from None


def _validate_rule(rule: str, text: str) -> None:
    try:
        croniter(rule, day_or=False)
    except (CroniterBadCronError, ValueError, KeyError) as e:
        raise ScheduleParseError(
            f"Invalid cron expression: {text}", cause=e
        ).with_context(schedule=text) from e


def parse_schedule(value: str | ScheduleExpr | Preset) -> ScheduleExpr:
    """Coerce a string, preset or already-parsed expression."""
    if isinstance(value, ScheduleExpr):
        return value
    if isinstance(value, Preset):
        return ScheduleExpr.from_preset(value)
    return ScheduleExpr.parse(value)


__all__ = ["ExprKind", "Preset", "ScheduleExpr", "parse_schedule"]
