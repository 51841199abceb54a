"""Completion reporter — one consumer confirming async submissions.

Work submitted to ``AsyncExecutor`` with ``report_completion=True``
returns immediately. Its future is pushed onto a bounded asyncio queue
owned by the executor's event loop; a single consumer coroutine awaits
each future in submission order, logs failures and notifies listeners.

::

    trigger thread ──report(future)──► asyncio.Queue(maxsize=100)
                                            │
                                            ▼
                                    _consume() on the loop
                                      await wrap_future(f)
                                      log / notify listeners

A full queue applies backpressure to the reporting thread.
"""

from __future__ import annotations

import asyncio
import threading
from collections.abc import Callable
from concurrent.futures import CancelledError, Future
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

from cronflow.core.errors import RuntimeClosedError
from cronflow.core.logging import get_logger

logger = get_logger(__name__)

_STOP = object()


@dataclass(frozen=True)
class CompletionEvent:
    """Outcome of one reported submission."""

    runnable_name: str
    type_name: str
    succeeded: bool
    error: str | None = None
    finished_at: datetime = field(default_factory=lambda: datetime.now(UTC))


CompletionListener = Callable[[CompletionEvent], Any]


class CompletionReporter:
    """Bounded queue plus a single consumer task on ``loop``."""

    def __init__(self, loop: asyncio.AbstractEventLoop, maxsize: int = 100) -> None:
        self._loop = loop
        self._maxsize = maxsize
        self._queue: asyncio.Queue | None = None
        self._consumer: Future | None = None
        self._listeners: list[CompletionListener] = []
        self._closed = False
        self._lock = threading.Lock()
        self.reported = 0
        self.confirmed = 0
        self.failed = 0

    def start(self) -> None:
        """Create the queue and consumer on the loop (call from outside it)."""

        async def _setup() -> None:
            self._queue = asyncio.Queue(maxsize=self._maxsize)

        asyncio.run_coroutine_threadsafe(_setup(), self._loop).result()
        self._consumer = asyncio.run_coroutine_threadsafe(self._consume(), self._loop)

    def add_listener(self, listener: CompletionListener) -> None:
        self._listeners.append(listener)

    # === Producer side ===

    def report(self, future: Future, runnable_name: str, type_name: str) -> None:
        """Hand a submission's future to the consumer.

        From the loop thread the put never blocks the loop; from any other
        thread it waits for queue space.
        """
        with self._lock:
            if self._closed or self._queue is None:
                raise RuntimeClosedError("Completion reporter is not running")
            self.reported += 1

        item = (future, runnable_name, type_name)
        if _on_loop(self._loop):
            try:
                self._queue.put_nowait(item)
            except asyncio.QueueFull:
                self._loop.create_task(self._queue.put(item))
            return
        asyncio.run_coroutine_threadsafe(self._queue.put(item), self._loop).result()

    # === Consumer side ===

    async def _consume(self) -> None:
        assert self._queue is not None
        while True:
            item = await self._queue.get()
            if item is _STOP:
                self._queue.task_done()
                return
            future, runnable_name, type_name = item
            try:
                event = await self._await_one(future, runnable_name, type_name)
                self._notify(event)
            finally:
                self._queue.task_done()

    async def _await_one(self, future: Future, runnable_name: str, type_name: str) -> CompletionEvent:
        try:
            await asyncio.wrap_future(future)
        except (CancelledError, asyncio.CancelledError):
            if not future.cancelled():
                raise
            self.failed += 1
            logger.warning("completion.cancelled", task=runnable_name)
            return CompletionEvent(runnable_name, type_name, succeeded=False, error="cancelled")
        except Exception as e:
            self.failed += 1
            logger.error("completion.failed", task=runnable_name, type_name=type_name, error=str(e))
            return CompletionEvent(runnable_name, type_name, succeeded=False, error=str(e))

        self.confirmed += 1
        logger.debug("completion.confirmed", task=runnable_name, type_name=type_name)
        return CompletionEvent(runnable_name, type_name, succeeded=True)

    def _notify(self, event: CompletionEvent) -> None:
        for listener in list(self._listeners):
            try:
                listener(event)
            except Exception:
                logger.exception("completion.listener_failed", task=event.runnable_name)

    # === Shutdown ===

    def stop(self, timeout: float | None = None) -> None:
        """Drain queued reports, then stop the consumer. Idempotent."""
        with self._lock:
            if self._closed or self._queue is None:
                self._closed = True
                return
            self._closed = True

        if self._loop.is_closed() or not self._loop.is_running():
            return
        asyncio.run_coroutine_threadsafe(self._queue.put(_STOP), self._loop).result(timeout)
        if self._consumer is not None:
            try:
                self._consumer.result(timeout)
            except TimeoutError:
                logger.warning("completion.stop_timeout", pending=self._queue.qsize())
                self._consumer.cancel()

    def stats(self) -> dict[str, int]:
        return {"reported": self.reported, "confirmed": self.confirmed, "failed": self.failed}


def _on_loop(loop: asyncio.AbstractEventLoop) -> bool:
    try:
        return asyncio.get_running_loop() is loop
    except RuntimeError:
        return False
