"""Schedule clock — the stateful cursor over a schedule expression.

┌──────────────────────────────────────────────────────────────────────────────┐
│  SCHEDULE CLOCK STATE MACHINE                                                 │
│                                                                               │
│      UNINITIALIZED ──init()──► ARMED ──advance(now ≥ next)──► ARMED           │
│            │                     │                                            │
│            │ @none               │ rule has no further occurrence             │
│            ▼                     ▼                                            │
│         DORMANT              EXHAUSTED                                        │
│                                                                               │
│  init():                                                                      │
│    sample the next N (default 21) occurrences after now                       │
│    next_fire    = first occurrence                                            │
│    min_interval = smallest gap between consecutive remaining occurrences      │
│                                                                               │
│  advance(now):                                                                │
│    now <  next_fire  → NOT_DUE  (no mutation)                                 │
│    now >= next_fire  → last_fired = next_fire                                 │
│                        next_fire  = first occurrence after old next_fire      │
│                        FIRED                                                  │
└──────────────────────────────────────────────────────────────────────────────┘

``advance`` is the only mutation point. It takes the clock's own lock, so
the trigger loop, manual triggers and tests can all call it without
tearing the cursor, but a clock is meant to be advanced by exactly one
scheduling authority.

Tags:
    cron, clock, schedule, state-machine, cronflow
"""

from __future__ import annotations

import threading
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from enum import Enum
from itertools import islice, pairwise
from typing import Any

from cronflow.core.errors import ScheduleNotSupportedError
from cronflow.core.logging import get_logger
from cronflow.core.settings import get_settings

from .expr import Preset, ScheduleExpr, parse_schedule

logger = get_logger(__name__)


def utcnow() -> datetime:
    """Return timezone-aware UTC datetime."""
    return datetime.now(UTC)


class ClockState(str, Enum):
    UNINITIALIZED = "uninitialized"
    ARMED = "armed"
    DORMANT = "dormant"
    EXHAUSTED = "exhausted"


class AdvanceOutcome(str, Enum):
    """Result of a single ``ScheduleClock.advance`` call."""

    FIRED = "fired"
    NOT_DUE = "not_due"
    EXHAUSTED = "exhausted"
    DORMANT = "dormant"
    UNINITIALIZED = "uninitialized"


@dataclass(frozen=True)
class ClockSnapshot:
    """Point-in-time copy of a clock's cursor, safe to hand to other threads."""

    expression: str
    state: ClockState
    next_fire: datetime | None
    last_fired: datetime | None
    min_interval: timedelta | None

    def to_dict(self) -> dict[str, Any]:
        return {
            "expression": self.expression,
            "state": self.state.value,
            "next_fire": self.next_fire.isoformat() if self.next_fire else None,
            "last_fired": self.last_fired.isoformat() if self.last_fired else None,
            "min_interval_seconds": (
                self.min_interval.total_seconds() if self.min_interval else None
            ),
        }


class ScheduleClock:
    """Cursor over the occurrences of one schedule expression.

    Example:
        >>> clock = ScheduleClock("1/10 * * * * *")
        >>> clock.init()
        >>> clock.min_interval
        datetime.timedelta(seconds=10)
        >>> clock.advance_if_due(clock.next_fire)
        True
    """

    def __init__(
        self,
        expr: str | ScheduleExpr | Preset,
        sample_size: int | None = None,
    ) -> None:
        self.expr = parse_schedule(expr)
        self._sample_size = sample_size or get_settings().clock_sample_size
        self._lock = threading.Lock()

        self._state = ClockState.UNINITIALIZED
        self._next_fire: datetime | None = None
        self._last_fired: datetime | None = None
        self._min_interval: timedelta | None = None

    # === Lifecycle ===

    def init(self, now: datetime | None = None) -> None:
        """Compute the first next-fire after ``now`` and the interval floor.

        Raises:
            ScheduleNotSupportedError: For ``@once``, which has no concrete
                firing semantics.
        """
        now = now or utcnow()

        if self.expr.preset is Preset.ONCE:
            raise ScheduleNotSupportedError(
                "The @once preset has no defined firing time; use a cron rule instead"
            ).with_context(schedule=self.expr.text)

        with self._lock:
            if self.expr.preset is Preset.NONE:
                self._state = ClockState.DORMANT
                self._next_fire = None
                self._min_interval = None
                logger.debug("clock.dormant", expression=self.expr.text)
                return

            samples = list(islice(self.expr.occurrences(now), self._sample_size))
            if not samples:
                self._state = ClockState.EXHAUSTED
                logger.warning("clock.no_occurrences", expression=self.expr.text)
                return

            self._next_fire = samples[0]
            gaps = [b - a for a, b in pairwise(samples[1:])]
            self._min_interval = min(gaps) if gaps else None
            self._state = ClockState.ARMED

        logger.debug(
            "clock.initialized",
            expression=self.expr.text,
            next_fire=self._next_fire.isoformat(),
            min_interval=self._min_interval.total_seconds() if self._min_interval else None,
        )

    # === Advancing ===

    def advance(self, now: datetime | None = None) -> AdvanceOutcome:
        """Advance the cursor if ``now`` has reached the next fire time."""
        now = now or utcnow()

        with self._lock:
            if self._state is ClockState.UNINITIALIZED:
                return AdvanceOutcome.UNINITIALIZED
            if self._state is ClockState.DORMANT:
                return AdvanceOutcome.DORMANT
            if self._state is ClockState.EXHAUSTED:
                return AdvanceOutcome.EXHAUSTED

            if now < self._next_fire:
                return AdvanceOutcome.NOT_DUE

            fired_at = self._next_fire
            self._last_fired = fired_at
            following = self.expr.next_after(fired_at)
            if following is None:
                # next_fire keeps its old value; EXHAUSTED stops re-firing it
                self._state = ClockState.EXHAUSTED
                logger.info("clock.exhausted", expression=self.expr.text, last_fired=fired_at.isoformat())
            else:
                self._next_fire = following

        logger.debug(
            "clock.fired",
            expression=self.expr.text,
            fired_at=fired_at.isoformat(),
            next_fire=self._next_fire.isoformat(),
        )
        return AdvanceOutcome.FIRED

    def advance_if_due(self, now: datetime | None = None) -> bool:
        """``True`` when this call fired the clock."""
        return self.advance(now) is AdvanceOutcome.FIRED

    # === Introspection ===

    @property
    def state(self) -> ClockState:
        return self._state

    @property
    def next_fire(self) -> datetime | None:
        return self._next_fire

    @property
    def last_fired(self) -> datetime | None:
        return self._last_fired

    @property
    def min_interval(self) -> timedelta | None:
        return self._min_interval

    def snapshot(self) -> ClockSnapshot:
        with self._lock:
            return ClockSnapshot(
                expression=self.expr.text,
                state=self._state,
                next_fire=self._next_fire,
                last_fired=self._last_fired,
                min_interval=self._min_interval,
            )

    def __repr__(self) -> str:
        return (
            f"ScheduleClock({self.expr.text!r}, state={self._state.value}, "
            f"next_fire={self._next_fire.isoformat() if self._next_fire else None})"
        )


__all__ = [
    "AdvanceOutcome",
    "ClockSnapshot",
    "ClockState",
    "ScheduleClock",
    "utcnow",
]
