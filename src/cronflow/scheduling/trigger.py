"""Trigger loops — poll storage, advance clocks, dispatch due items.

Each tick:

1. take a snapshot of every registered item from storage
2. sample ``now`` once
3. ``clock.advance(now)`` for each item, in insertion order
4. dispatch every item that fired, once, with completion reporting on
5. sleep until the next tick

A failing item is logged and counted and the loop moves on to the next
one. Nothing raised by a single item leaves the loop.

The sleep is the configured cadence, shortened to half of the smallest
clock interval floor among registered items (never below
``min_tick_interval``) so a per-second rule is not skipped.

ThreadTrigger::

    trigger = ThreadTrigger()
    trigger.start(storage, dispatcher)
    ...
    trigger.stop()
    trigger.stop()          # no-op

AsyncTrigger runs the same tick as a coroutine on an event loop, usually
the loop owned by ``AsyncExecutor``. Dispatch happens in a worker thread
(``asyncio.to_thread``) so a blocking executor never stalls the loop.
"""

from __future__ import annotations

import asyncio
import threading
from abc import ABC, abstractmethod
from concurrent.futures import Future
from datetime import datetime
from typing import TYPE_CHECKING

from cronflow.core.errors import CronflowError, MissingWiringError
from cronflow.core.logging import LogContext, get_logger
from cronflow.core.settings import get_settings

from .clock import AdvanceOutcome, ClockState, utcnow
from .protocol import TriggerHealth, TriggerStats

if TYPE_CHECKING:
    from cronflow.execution.dispatcher import Dispatcher
    from cronflow.storage.protocol import ScheduledItem, Storage

logger = get_logger(__name__)


class TriggerLoop(ABC):
    """Tick logic shared by the thread and async triggers."""

    name = "base"

    def __init__(self, interval_seconds: float, min_interval_seconds: float | None = None) -> None:
        self._interval = interval_seconds
        self._min_interval = min_interval_seconds or get_settings().min_tick_interval
        self._storage: Storage | None = None
        self._dispatcher: Dispatcher | None = None
        self._stats = TriggerStats()
        self._stats_lock = threading.Lock()
        self._last_tick: datetime | None = None
        self._current_interval = interval_seconds

    def _bind(self, storage: Storage | None, dispatcher: Dispatcher | None) -> None:
        if storage is None:
            raise MissingWiringError(f"{type(self).__name__} started without storage")
        if dispatcher is None:
            raise MissingWiringError(f"{type(self).__name__} started without a dispatcher")
        self._storage = storage
        self._dispatcher = dispatcher

    # === Tick ===

    def _due_items(self, now: datetime) -> list[ScheduledItem]:
        """Advance every clock; return the items that fired."""
        assert self._storage is not None
        items = self._storage.load_all_items()
        with self._stats_lock:
            self._stats.ticks += 1
        self._last_tick = now
        self._current_interval = self._effective_interval(items)

        due = []
        for item in items:
            try:
                if self._advance(item, now):
                    due.append(item)
            except Exception as e:
                self._item_failed(item, e)
        return due

    def _advance(self, item: ScheduledItem, now: datetime) -> bool:
        clock = item.metadata.clock if item.metadata else None
        if clock is None:
            logger.warning("trigger.item_unprepared", item_id=_item_id(item))
            return False

        outcome = clock.advance(now)
        if outcome is not AdvanceOutcome.FIRED:
            return False

        if clock.state is ClockState.EXHAUSTED:
            with self._stats_lock:
                self._stats.items_exhausted += 1
        logger.debug(
            "trigger.item_fired",
            item_id=_item_id(item),
            item=_item_name(item),
            fired_at=clock.last_fired.isoformat() if clock.last_fired else None,
        )
        return True

    def _fire(self, item: ScheduledItem) -> list[Future]:
        """Dispatch one due item; failures are isolated to the item."""
        assert self._dispatcher is not None
        with LogContext(trigger=self.name):
            try:
                futures = self._dispatcher.dispatch(item, report_completion=True)
            except Exception as e:
                self._item_failed(item, e)
                return []
        with self._stats_lock:
            self._stats.items_fired += 1
        return futures

    def _tick(self, now: datetime | None = None) -> int:
        """Run one synchronous tick; return how many items fired."""
        due = self._due_items(now or utcnow())
        for item in due:
            self._fire(item)
        return len(due)

    def _item_failed(self, item: ScheduledItem, error: Exception) -> None:
        with self._stats_lock:
            self._stats.items_failed += 1
        fields = error.to_dict() if isinstance(error, CronflowError) else {"error": str(error)}
        logger.error(
            "trigger.item_failed",
            item_id=_item_id(item),
            item=_item_name(item),
            exc_info=error,
            **fields,
        )

    def _effective_interval(self, items: list[ScheduledItem]) -> float:
        floors = [
            item.metadata.clock.min_interval.total_seconds()
            for item in items
            if item.metadata is not None
            and item.metadata.clock is not None
            and item.metadata.clock.min_interval is not None
        ]
        interval = self._interval
        if floors:
            interval = min(interval, min(floors) / 2)
        return max(interval, self._min_interval)

    # === Introspection ===

    @property
    def stats(self) -> TriggerStats:
        with self._stats_lock:
            return TriggerStats(**self._stats.to_dict())

    @property
    def tick_count(self) -> int:
        return self._stats.ticks

    @property
    def last_tick(self) -> datetime | None:
        return self._last_tick

    # === Lifecycle ===

    @abstractmethod
    def start(self, storage: Storage, dispatcher: Dispatcher) -> None:
        """Bind storage and dispatcher and begin ticking."""
        ...

    @abstractmethod
    def stop(self) -> None:
        """Stop ticking. Safe to call more than once."""
        ...

    @property
    @abstractmethod
    def is_running(self) -> bool:
        ...

    def health(self) -> TriggerHealth:
        return TriggerHealth(
            healthy=self.is_running,
            backend=self.name,
            tick_count=self._stats.ticks,
            last_tick=self._last_tick,
            interval_seconds=self._current_interval,
            extra=self.stats.to_dict(),
        )


# ── Thread trigger ───────────────────────────────────────────────────


class ThreadTrigger(TriggerLoop):
    """Trigger loop on a dedicated daemon thread.

    Example:
        >>> trigger = ThreadTrigger(interval_seconds=0.2)
        >>> trigger.start(MemoryStorage(), Dispatcher(InlineExecutor()))
        >>> trigger.is_running
        True
        >>> trigger.stop()
    """

    name = "thread"

    def __init__(self, interval_seconds: float | None = None, min_interval_seconds: float | None = None) -> None:
        super().__init__(interval_seconds or get_settings().thread_tick_interval, min_interval_seconds)
        self._stop_event = threading.Event()
        self._thread: threading.Thread | None = None
        self._lock = threading.Lock()
        self._started = False
        self._joined = False

    def start(self, storage: Storage, dispatcher: Dispatcher) -> None:
        """Start ticking. A stopped trigger can be started again."""
        with self._lock:
            if self._started and not self._stop_event.is_set():
                logger.warning("trigger.already_started", backend=self.name)
                return
            previous = self._thread

        # a loop that is still winding down keeps its own, already-set event
        if previous is not None and previous is not threading.current_thread():
            previous.join(timeout=get_settings().stop_timeout)

        with self._lock:
            if self._started and not self._stop_event.is_set():
                return
            self._bind(storage, dispatcher)
            self._stop_event = threading.Event()
            thread = threading.Thread(
                target=self._loop, args=(self._stop_event,), daemon=True, name="cronflow-trigger"
            )
            self._thread = thread
            self._started = True
            self._joined = False
        thread.start()

    def _loop(self, stop_event: threading.Event) -> None:
        logger.info("trigger.started", backend=self.name, interval=self._interval)
        while not stop_event.is_set():
            try:
                self._tick()
            except Exception as e:
                logger.exception("trigger.tick_failed", backend=self.name, error=str(e))
            stop_event.wait(self._current_interval)
        logger.info("trigger.stopped", backend=self.name, **self.stats.to_dict())

    def stop(self) -> None:
        """Set the stop flag and join the loop thread exactly once."""
        with self._lock:
            self._stop_event.set()
            if not self._started or self._joined:
                return
            self._joined = True
            thread = self._thread

        if thread is not None and thread is not threading.current_thread():
            thread.join(timeout=get_settings().stop_timeout)
            if thread.is_alive():
                logger.warning("trigger.stop_timeout", backend=self.name)

    @property
    def is_running(self) -> bool:
        return (
            self._started
            and not self._stop_event.is_set()
            and self._thread is not None
            and self._thread.is_alive()
        )


# ── Async trigger ────────────────────────────────────────────────────


class AsyncTrigger(TriggerLoop):
    """Trigger loop as a coroutine on an asyncio event loop.

    Parameters
    ----------
    loop : asyncio.AbstractEventLoop | None
        Loop to run on. When omitted the trigger starts and owns a loop
        on its own daemon thread.
    """

    name = "async"

    def __init__(
        self,
        loop: asyncio.AbstractEventLoop | None = None,
        interval_seconds: float | None = None,
        min_interval_seconds: float | None = None,
    ) -> None:
        super().__init__(interval_seconds or get_settings().async_tick_interval, min_interval_seconds)
        self._loop = loop
        self._owns_loop = loop is None
        self._loop_thread: threading.Thread | None = None
        self._task: Future | None = None
        self._wakeup: asyncio.Event | None = None
        self._stopping = False
        self._lock = threading.Lock()

    @property
    def loop(self) -> asyncio.AbstractEventLoop | None:
        return self._loop

    def start(self, storage: Storage, dispatcher: Dispatcher) -> None:
        """Start ticking. A stopped trigger can be started again."""
        with self._lock:
            if self.is_running:
                logger.warning("trigger.already_started", backend=self.name)
                return
            previous = self._task

        if previous is not None and not previous.done():
            if self._loop is not None and _on_loop(self._loop):
                logger.warning("trigger.restart_while_stopping", backend=self.name)
                return
            try:
                previous.result(timeout=get_settings().stop_timeout)
            except TimeoutError:
                logger.warning("trigger.stop_timeout", backend=self.name)
                previous.cancel()

        with self._lock:
            if self.is_running:
                return
            self._bind(storage, dispatcher)
            if self._owns_loop and (self._loop_thread is None or not self._loop_thread.is_alive()):
                self._loop = self._start_owned_loop()
            self._stopping = False
            self._task = asyncio.run_coroutine_threadsafe(self._run(), self._loop)

    def _start_owned_loop(self) -> asyncio.AbstractEventLoop:
        loop = asyncio.new_event_loop()
        ready = threading.Event()

        def _run_loop() -> None:
            asyncio.set_event_loop(loop)
            loop.call_soon(ready.set)
            try:
                loop.run_forever()
            finally:
                loop.close()

        self._loop_thread = threading.Thread(target=_run_loop, daemon=True, name="cronflow-trigger-loop")
        self._loop_thread.start()
        ready.wait()
        return loop

    async def _run(self) -> None:
        self._wakeup = asyncio.Event()
        logger.info("trigger.started", backend=self.name, interval=self._interval)
        while not self._stopping:
            try:
                await self._tick_async()
            except Exception as e:
                logger.exception("trigger.tick_failed", backend=self.name, error=str(e))
            try:
                await asyncio.wait_for(self._wakeup.wait(), timeout=self._current_interval)
            except TimeoutError:
                pass
        logger.info("trigger.stopped", backend=self.name, **self.stats.to_dict())

    async def _tick_async(self, now: datetime | None = None) -> int:
        due = self._due_items(now or utcnow())
        for item in due:
            await asyncio.to_thread(self._fire, item)
        return len(due)

    def _signal_stop(self) -> None:
        self._stopping = True
        if self._wakeup is not None:
            self._wakeup.set()

    def stop(self) -> None:
        """Signal the coroutine and wait for it once. Idempotent."""
        with self._lock:
            if self._task is None or self._stopping:
                self._stopping = True
                return
            self._stopping = True
            task, loop = self._task, self._loop

        assert loop is not None
        timeout = get_settings().stop_timeout
        if loop.is_running():
            loop.call_soon_threadsafe(self._signal_stop)
            if not _on_loop(loop):
                try:
                    task.result(timeout=timeout)
                except TimeoutError:
                    logger.warning("trigger.stop_timeout", backend=self.name)
                    task.cancel()

        if self._owns_loop and self._loop_thread is not None:
            loop.call_soon_threadsafe(loop.stop)
            if self._loop_thread is not threading.current_thread():
                self._loop_thread.join(timeout=timeout)

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done() and not self._stopping


def _on_loop(loop: asyncio.AbstractEventLoop) -> bool:
    try:
        return asyncio.get_running_loop() is loop
    except RuntimeError:
        return False


def _item_id(item: ScheduledItem) -> int | None:
    return item.metadata.id if item.metadata else None


def _item_name(item: ScheduledItem) -> str | None:
    return item.metadata.name if item.metadata and item.metadata.name else getattr(item, "name", None)


__all__ = ["AsyncTrigger", "ThreadTrigger", "TriggerLoop"]
