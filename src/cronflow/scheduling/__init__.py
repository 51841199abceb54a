"""Scheduling: expressions, clocks and trigger loops.

Quick start::

    from cronflow.scheduling import ScheduleClock

    clock = ScheduleClock("@hourly")
    clock.init()
    clock.next_fire
"""

from .clock import AdvanceOutcome, ClockSnapshot, ClockState, ScheduleClock, utcnow
from .expr import ExprKind, Preset, ScheduleExpr, parse_schedule
from .protocol import Trigger, TriggerHealth, TriggerStats
from .trigger import AsyncTrigger, ThreadTrigger, TriggerLoop

__all__ = [
    # Expressions
    "ExprKind",
    "Preset",
    "ScheduleExpr",
    "parse_schedule",
    # Clock
    "AdvanceOutcome",
    "ClockSnapshot",
    "ClockState",
    "ScheduleClock",
    "utcnow",
    # Triggers
    "AsyncTrigger",
    "ThreadTrigger",
    "Trigger",
    "TriggerHealth",
    "TriggerLoop",
    "TriggerStats",
]
