"""Execution: runnables, executors and the dispatcher."""

from cronflow.execution.dispatcher import Dispatcher
from cronflow.execution.executors import (
    AsyncExecutor,
    CompletionEvent,
    CompletionReporter,
    Executor,
    ExecutorStats,
    InlineExecutor,
    ThreadExecutor,
)
from cronflow.execution.runnable import (
    AsyncFn,
    Runnable,
    RunnableHandle,
    RunnableMetadata,
    SyncFn,
    as_runnable,
)

__all__ = [
    "AsyncExecutor",
    "AsyncFn",
    "CompletionEvent",
    "CompletionReporter",
    "Dispatcher",
    "Executor",
    "ExecutorStats",
    "InlineExecutor",
    "Runnable",
    "RunnableHandle",
    "RunnableMetadata",
    "SyncFn",
    "ThreadExecutor",
    "as_runnable",
]
