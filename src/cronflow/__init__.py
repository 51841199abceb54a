"""cronflow — embeddable cron and DAG task scheduler.

Register single tasks or dependency graphs of tasks with a cron rule or
preset; a background trigger loop fires them on schedule and hands them
to an inline, threaded or asyncio executor.

Quick start::

    from cronflow import GraphBuilder, SessionBuilder

    graph = (
        GraphBuilder()
        .task("extract", extract)
        .child(lambda b: b.task("load", load))
        .build()
    )

    with SessionBuilder.default().build() as session:
        session.submit("0 */5 * * * *", graph)
        session.submit("@hourly", cleanup)
        ...
"""

from cronflow.core import (
    CronflowError,
    CronflowSettings,
    configure_logging,
    configure_logging_from_settings,
    get_logger,
    get_settings,
)
from cronflow.execution import (
    AsyncExecutor,
    AsyncFn,
    Dispatcher,
    InlineExecutor,
    RunnableHandle,
    RunnableMetadata,
    SyncFn,
    ThreadExecutor,
    as_runnable,
)
from cronflow.graph import GraphBuilder, SingleTask, TaskArena, TaskGraph, TaskNode
from cronflow.manager import ScheduleManager
from cronflow.scheduling import (
    AsyncTrigger,
    Preset,
    ScheduleClock,
    ScheduleExpr,
    ThreadTrigger,
    parse_schedule,
)
from cronflow.session import Session, SessionBuilder
from cronflow.storage import MemoryStorage

__version__ = "0.1.0"

__all__ = [
    "AsyncExecutor",
    "AsyncFn",
    "AsyncTrigger",
    "CronflowError",
    "CronflowSettings",
    "Dispatcher",
    "GraphBuilder",
    "InlineExecutor",
    "MemoryStorage",
    "Preset",
    "RunnableHandle",
    "RunnableMetadata",
    "ScheduleClock",
    "ScheduleExpr",
    "ScheduleManager",
    "Session",
    "SessionBuilder",
    "SingleTask",
    "SyncFn",
    "TaskArena",
    "TaskGraph",
    "TaskNode",
    "ThreadExecutor",
    "ThreadTrigger",
    "configure_logging",
    "configure_logging_from_settings",
    "get_logger",
    "get_settings",
    "parse_schedule",
]
