"""In-caller-thread executor.

Runs each runnable synchronously in the thread that submits it — for a
scheduled item that is the trigger loop's thread. Zero overhead, easy to
reason about, and the default for ``SessionBuilder.default()``. A slow
task delays the following dispatches of the same tick.
"""

from __future__ import annotations

from concurrent.futures import Future
from typing import Any

from cronflow.core.errors import AsyncNotSupportedError
from cronflow.core.logging import get_logger
from cronflow.execution.runnable import RunnableHandle

from .protocol import StatsMixin, completed_future

logger = get_logger(__name__)


class InlineExecutor(StatsMixin):
    """Synchronous executor — runs work in the current thread.

    Failures are captured in the returned future and logged; they never
    propagate into the caller.

    Example:
        >>> executor = InlineExecutor()
        >>> future = executor.submit(as_runnable(lambda: 42))
        >>> future.result()
        42
    """

    name = "inline"

    def __init__(self) -> None:
        self._init_stats()

    def supports_async(self) -> bool:
        return False

    def supports_inline(self) -> bool:
        return True

    def submit(self, runnable: RunnableHandle, report_completion: bool = False) -> Future:
        if runnable.is_async:
            raise AsyncNotSupportedError(
                f"InlineExecutor cannot run async runnable {runnable.name!r}"
            ).with_context(task_name=runnable.name, executor=self.name)

        self._count(submitted=1)
        logger.debug("inline_executor.running", task=runnable.name, type_name=runnable.type_name)
        try:
            result = runnable.execute()
        except Exception as e:
            self._count(failed=1)
            logger.exception("inline_executor.failed", task=runnable.name, error=str(e))
            return completed_future(error=e)

        self._count(completed=1)
        return completed_future(result)

    def run_inline(self, runnable: RunnableHandle) -> Any:
        """Borrowed path: execute directly, exceptions propagate."""
        if runnable.is_async:
            raise AsyncNotSupportedError(
                f"InlineExecutor cannot run async runnable {runnable.name!r}"
            ).with_context(task_name=runnable.name, executor=self.name)
        return runnable.execute()

    def shutdown(self, wait: bool = True) -> None:
        """Nothing to release."""
