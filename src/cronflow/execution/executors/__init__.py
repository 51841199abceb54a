"""Executors — how a dispatched runnable actually runs.

Implementations:
- InlineExecutor: in the submitting thread (default)
- ThreadExecutor: on a dedicated thread per submission, joined before return
- AsyncExecutor: owned asyncio loop plus a sync worker pool
"""

from cronflow.execution.executors.async_executor import AsyncExecutor
from cronflow.execution.executors.completion import CompletionEvent, CompletionReporter
from cronflow.execution.executors.inline import InlineExecutor
from cronflow.execution.executors.protocol import Executor, ExecutorStats
from cronflow.execution.executors.thread import ThreadExecutor

__all__ = [
    "AsyncExecutor",
    "CompletionEvent",
    "CompletionReporter",
    "Executor",
    "ExecutorStats",
    "InlineExecutor",
    "ThreadExecutor",
]
