"""Executor Protocol — the single execution backend interface.

Manifesto:
Regardless of how work actually runs (in the caller's thread, on a
dedicated OS thread, or on an asyncio event loop), the dispatcher needs
one uniform interface. ``Executor`` is a ``typing.Protocol`` — any object
with the right methods satisfies it, no base class required.

ARCHITECTURE
────────────
::

    Executor (Protocol)
      ├── .supports_async()          ─ capability probe (checked by the dispatcher)
      ├── .supports_inline()         ─ capability probe for run_inline()
      ├── .submit(handle, report)    ─ take the handle, run it, return a Future
      ├── .run_inline(handle)        ─ borrowed path (InlineExecutor only)
      └── .shutdown()

    Implementations:
      InlineExecutor  ─ runs in the caller's thread     (default)
      ThreadExecutor  ─ one OS thread per submission, joined before return
      AsyncExecutor   ─ asyncio loop + worker pool + completion reporter

Related modules:
    dispatcher.py  — Dispatcher checks capabilities, then calls submit()
    runnable.py    — RunnableHandle, the unit of work

Tags:
    cronflow, execution, executor, protocol, interface

Doc-Types:
    api-reference
"""

from __future__ import annotations

import threading
from concurrent.futures import Future
from dataclasses import dataclass
from typing import Any, Protocol, runtime_checkable

from cronflow.core.errors import UnsupportedOperationError
from cronflow.execution.runnable import RunnableHandle


@runtime_checkable
class Executor(Protocol):
    """Execution backend — how a runnable actually runs.

    Example implementation:
        >>> class PrintExecutor:
        ...     name = "print"
        ...
        ...     def supports_async(self) -> bool:
        ...         return False
        ...
        ...     def supports_inline(self) -> bool:
        ...         return False
        ...
        ...     def submit(self, runnable, report_completion=False):
        ...         print("would run", runnable.name)
        ...         f = Future()
        ...         f.set_result(None)
        ...         return f
        ...
        ...     def run_inline(self, runnable):
        ...         raise UnsupportedOperationError("print executor")
        ...
        ...     def shutdown(self, wait=True):
        ...         pass
    """

    name: str

    def supports_async(self) -> bool:
        """Whether async runnables may be assigned to this executor."""
        ...

    def supports_inline(self) -> bool:
        """Whether ``run_inline`` is implemented."""
        ...

    def submit(self, runnable: RunnableHandle, report_completion: bool = False) -> Future:
        """Run ``runnable`` and return a future for its outcome.

        Args:
            runnable: The unit of work.
            report_completion: Ask the executor to confirm completion through
                its completion-reporting channel (async executors). Sync
                executors complete before returning and ignore the flag.

        Raises:
            AsyncNotSupportedError: ``runnable.is_async`` on a sync-only executor
            RuntimeClosedError: After ``shutdown()``
        """
        ...

    def run_inline(self, runnable: RunnableHandle) -> Any:
        """Execute without handing the runnable to the backend.

        Raises:
            UnsupportedOperationError: If the executor needs ownership.
        """
        ...

    def shutdown(self, wait: bool = True) -> None:
        ...


@dataclass
class ExecutorStats:
    """Counters for one executor."""

    submitted: int = 0
    completed: int = 0
    failed: int = 0

    def to_dict(self) -> dict[str, int]:
        return {"submitted": self.submitted, "completed": self.completed, "failed": self.failed}


class StatsMixin:
    """Thread-safe ``ExecutorStats`` bookkeeping shared by the executors."""

    def _init_stats(self) -> None:
        self._stats = ExecutorStats()
        self._stats_lock = threading.Lock()

    def _count(self, **deltas: int) -> None:
        with self._stats_lock:
            for key, delta in deltas.items():
                setattr(self._stats, key, getattr(self._stats, key) + delta)

    def get_stats(self) -> ExecutorStats:
        with self._stats_lock:
            return ExecutorStats(**self._stats.to_dict())


def unsupported_inline(executor_name: str) -> UnsupportedOperationError:
    return UnsupportedOperationError(
        f"run_inline is not supported by {executor_name!r}; use submit()"
    ).with_context(executor=executor_name)


def completed_future(result: Any = None, error: BaseException | None = None) -> Future:
    """Build an already-resolved future."""
    future: Future = Future()
    if error is not None:
        future.set_exception(error)
    else:
        future.set_result(result)
    return future
