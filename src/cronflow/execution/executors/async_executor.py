"""Async executor — an owned asyncio loop plus a worker pool.

ARCHITECTURE
────────────
::

    AsyncExecutor(worker_threads=4)
      ├── loop thread "cronflow-event-loop"   ─ runs async runnables
      ├── ThreadPoolExecutor "cronflow-worker" ─ runs sync runnables
      └── CompletionReporter                  ─ confirms reported submissions

    submit(handle)
      handle.is_async → run_coroutine_threadsafe(handle.execute(), loop)
      otherwise       → pool.submit(handle.execute)

Both paths return a ``concurrent.futures.Future`` immediately. Graph
nodes dispatched in topological order therefore *start* in order; with
more than one worker they may overlap.

The loop is exposed as ``executor.loop`` so ``AsyncTrigger`` can run its
tick coroutine on the same loop.

Example::

    executor = AsyncExecutor()
    fut = executor.submit(as_runnable(fetch_feed))
    fut.result(timeout=5)
    executor.shutdown()
"""

from __future__ import annotations

import asyncio
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Any

from cronflow.core.errors import RuntimeClosedError
from cronflow.core.logging import get_logger
from cronflow.core.settings import get_settings
from cronflow.execution.runnable import RunnableHandle

from .completion import CompletionListener, CompletionReporter
from .protocol import StatsMixin, unsupported_inline

logger = get_logger(__name__)


class AsyncExecutor(StatsMixin):
    """Runs async work on an owned event loop and sync work on a pool.

    Parameters
    ----------
    worker_threads : int | None
        Size of the sync worker pool. Defaults to
        ``settings.async_worker_threads``.
    queue_size : int | None
        Bound of the completion-reporting queue.
    """

    name = "async"

    def __init__(self, worker_threads: int | None = None, queue_size: int | None = None) -> None:
        settings = get_settings()
        self._stop_timeout = settings.stop_timeout
        self._pool = ThreadPoolExecutor(
            max_workers=worker_threads or settings.async_worker_threads,
            thread_name_prefix="cronflow-worker",
        )
        self._loop = asyncio.new_event_loop()
        self._loop_ready = threading.Event()
        self._thread = threading.Thread(
            target=self._run_loop,
            name="cronflow-event-loop",
            daemon=True,
        )
        self._thread.start()
        self._loop_ready.wait()

        self._reporter = CompletionReporter(
            self._loop, maxsize=queue_size or settings.completion_queue_size
        )
        self._reporter.start()

        self._closed = False
        self._close_lock = threading.Lock()
        self._init_stats()
        logger.debug("async_executor.started", workers=self._pool._max_workers)

    def _run_loop(self) -> None:
        asyncio.set_event_loop(self._loop)
        self._loop.call_soon(self._loop_ready.set)
        try:
            self._loop.run_forever()
        finally:
            self._loop.close()

    # === Capabilities ===

    @property
    def loop(self) -> asyncio.AbstractEventLoop:
        return self._loop

    @property
    def reporter(self) -> CompletionReporter:
        return self._reporter

    @property
    def closed(self) -> bool:
        return self._closed

    def supports_async(self) -> bool:
        return True

    def supports_inline(self) -> bool:
        return False

    def add_completion_listener(self, listener: CompletionListener) -> None:
        self._reporter.add_listener(listener)

    # === Submission ===

    def submit(self, runnable: RunnableHandle, report_completion: bool = False) -> Future:
        if self._closed:
            raise RuntimeClosedError(
                f"AsyncExecutor is shut down; cannot run {runnable.name!r}"
            ).with_context(task_name=runnable.name, executor=self.name)

        if runnable.is_async:
            future = asyncio.run_coroutine_threadsafe(_await_runnable(runnable), self._loop)
        else:
            future = self._pool.submit(runnable.execute)

        self._count(submitted=1)
        future.add_done_callback(self._record_outcome)
        logger.debug(
            "async_executor.submitted",
            task=runnable.name,
            is_async=runnable.is_async,
            report=report_completion,
        )

        if report_completion:
            self._reporter.report(future, runnable.name, runnable.type_name)
        return future

    def _record_outcome(self, future: Future) -> None:
        if future.cancelled() or future.exception() is not None:
            self._count(failed=1)
        else:
            self._count(completed=1)

    def run_inline(self, runnable: RunnableHandle) -> Any:
        raise unsupported_inline(self.name)

    # === Shutdown ===

    def shutdown(self, wait: bool = True) -> None:
        """Stop the reporter, the loop and the pool. Idempotent."""
        with self._close_lock:
            if self._closed:
                return
            self._closed = True

        self._reporter.stop(timeout=self._stop_timeout)
        if self._loop.is_running():
            self._loop.call_soon_threadsafe(self._loop.stop)
        if threading.current_thread() is not self._thread:
            self._thread.join(timeout=self._stop_timeout)
        self._pool.shutdown(wait=wait)
        logger.debug("async_executor.stopped", **self.get_stats().to_dict())


async def _await_runnable(runnable: RunnableHandle) -> Any:
    return await runnable.execute()
