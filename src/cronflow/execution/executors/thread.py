"""Dedicated-thread executor.

Each submission gets its own OS thread, which is joined before
``submit`` returns. The caller still observes synchronous semantics, but
the work runs off the calling thread (its own stack, its own thread
name in logs and profilers, its own thread-local state).
"""

from __future__ import annotations

import threading
from concurrent.futures import Future
from typing import Any

from cronflow.core.errors import AsyncNotSupportedError
from cronflow.core.logging import get_logger
from cronflow.execution.runnable import RunnableHandle

from .protocol import StatsMixin, completed_future, unsupported_inline

logger = get_logger(__name__)


class ThreadExecutor(StatsMixin):
    """Run each runnable on a fresh thread and wait for it.

    There is no timeout: a stalled task blocks the submitting thread.
    """

    name = "thread"

    def __init__(self, thread_name_prefix: str = "cronflow-task") -> None:
        self._prefix = thread_name_prefix
        self._init_stats()

    def supports_async(self) -> bool:
        return False

    def supports_inline(self) -> bool:
        return False

    def submit(self, runnable: RunnableHandle, report_completion: bool = False) -> Future:
        if runnable.is_async:
            raise AsyncNotSupportedError(
                f"ThreadExecutor cannot run async runnable {runnable.name!r}"
            ).with_context(task_name=runnable.name, executor=self.name)

        outcome: dict[str, Any] = {}

        def _run() -> None:
            try:
                outcome["result"] = runnable.execute()
            except Exception as e:
                outcome["error"] = e

        self._count(submitted=1)
        thread = threading.Thread(target=_run, name=f"{self._prefix}-{runnable.name}")
        thread.start()
        thread.join()

        error = outcome.get("error")
        if error is not None:
            self._count(failed=1)
            logger.error(
                "thread_executor.failed",
                task=runnable.name,
                error=str(error),
                exc_info=error,
            )
            return completed_future(error=error)

        self._count(completed=1)
        return completed_future(outcome.get("result"))

    def run_inline(self, runnable: RunnableHandle) -> Any:
        raise unsupported_inline(self.name)

    def shutdown(self, wait: bool = True) -> None:
        """Threads are joined per submission; nothing outstanding."""
