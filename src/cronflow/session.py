"""Session — the caller-facing entry point.

Usage::

    from cronflow import SessionBuilder

    with SessionBuilder.default().build() as session:
        session.submit("*/5 * * * * *", lambda: print("every five seconds"))
        session.submit("@daily", nightly_graph)
        time.sleep(60)

    # async work
    session = SessionBuilder.asynchronous().build()
    session.submit("1/1 * * * * *", fetch_feed)   # async def fetch_feed()
    ...
    session.stop()

``submit`` parses the schedule, coerces the work to a graph, prepares the
graph's clock, collapses a one-node graph to a bare task, and registers
the result. Parse and structural errors surface here, synchronously.
"""

from __future__ import annotations

from concurrent.futures import Future
from dataclasses import replace
from typing import Any

from cronflow.core.errors import MissingWiringError
from cronflow.core.logging import get_logger
from cronflow.execution.executors import AsyncExecutor, Executor, InlineExecutor
from cronflow.graph.builder import GraphBuilder
from cronflow.graph.dag import SingleTask, TaskGraph
from cronflow.manager import ScheduleManager
from cronflow.scheduling.expr import Preset, ScheduleExpr, parse_schedule
from cronflow.scheduling.protocol import Trigger
from cronflow.scheduling.trigger import AsyncTrigger, ThreadTrigger
from cronflow.storage import MemoryStorage, ScheduledItem, Storage

logger = get_logger(__name__)


def as_graph(work: Any) -> TaskGraph:
    """Coerce a graph, builder, bare task or callable to a ``TaskGraph``."""
    if isinstance(work, TaskGraph):
        return work
    if isinstance(work, GraphBuilder):
        return work.build()
    if isinstance(work, SingleTask):
        # the node gets a copy without the clock; the graph owns its own
        graph = TaskGraph.single(work.runnable, metadata=replace(work.metadata, clock=None))
        graph.schedule = work.schedule
        return graph
    return TaskGraph.single(work)


class Session:
    """A running scheduler: manager plus started trigger loop."""

    def __init__(self, manager: ScheduleManager) -> None:
        self.manager = manager
        self._started = False
        self._stopped = False

    # === Lifecycle ===

    def start(self) -> Session:
        if self._started:
            return self
        self._started = True
        self.manager.start()
        logger.info(
            "session.started",
            trigger=self.manager.trigger.name,
            executor=self.manager.executor.name,
        )
        return self

    def stop(self) -> None:
        """Stop the trigger, then shut the executor down. Idempotent."""
        if self._stopped:
            return
        self._stopped = True
        self.manager.stop()
        self.manager.executor.shutdown(wait=True)
        logger.info("session.stopped")

    def __enter__(self) -> Session:
        return self

    def __exit__(self, *exc: object) -> None:
        self.stop()

    # === Submission ===

    def submit(self, schedule: str | ScheduleExpr | Preset, work: Any) -> ScheduledItem:
        """Schedule ``work`` and return the registered item.

        Raises:
            ScheduleParseError: Malformed schedule.
            ScheduleNotSupportedError: ``@once``.
            EmptyGraphError / SharedOwnershipError: Structural problems.
            AsyncNotSupportedError: Async work on a sync-only executor.
        """
        expr = parse_schedule(schedule)
        graph = as_graph(work)
        graph.set_schedule(expr)
        graph.prepare()

        item: ScheduledItem
        if graph.count_nodes() == 1:
            logger.debug("session.collapsing_single_task")
            item = graph.collapse_to_single_task()
        else:
            item = graph

        self.manager.dispatcher.check(item)
        return self.manager.add(item)

    def run_now(self, item: ScheduledItem, report_completion: bool = False) -> list[Future]:
        """Dispatch ``item`` immediately, outside its schedule."""
        return self.manager.dispatcher.dispatch(item, report_completion=report_completion)

    # === Introspection ===

    @property
    def storage(self) -> Storage:
        return self.manager.storage

    @property
    def trigger(self) -> Trigger:
        return self.manager.trigger

    @property
    def executor(self) -> Executor:
        return self.manager.executor

    def items(self) -> list[ScheduledItem]:
        return self.manager.storage.load_all_items()


class SessionBuilder:
    """Collects storage, trigger and executor, then builds a started session.

    Example:
        >>> session = (
        ...     SessionBuilder.local()
        ...     .storage(MemoryStorage())
        ...     .trigger(ThreadTrigger(interval_seconds=0.2))
        ...     .executor(InlineExecutor())
        ...     .build()
        ... )
    """

    def __init__(
        self,
        storage: Storage | None = None,
        trigger: Trigger | None = None,
        executor: Executor | None = None,
    ) -> None:
        self._storage = storage
        self._trigger = trigger
        self._executor = executor

    @classmethod
    def default(cls) -> SessionBuilder:
        """Memory storage, thread trigger, inline executor."""
        return cls(MemoryStorage(), ThreadTrigger(), InlineExecutor())

    @classmethod
    def local(cls) -> SessionBuilder:
        """Nothing wired; set every component explicitly."""
        return cls()

    @classmethod
    def asynchronous(cls) -> SessionBuilder:
        """Memory storage plus an async trigger on the async executor's loop."""
        executor = AsyncExecutor()
        return cls(MemoryStorage(), AsyncTrigger(loop=executor.loop), executor)

    def storage(self, storage: Storage) -> SessionBuilder:
        self._storage = storage
        return self

    def trigger(self, trigger: Trigger) -> SessionBuilder:
        self._trigger = trigger
        return self

    def executor(self, executor: Executor) -> SessionBuilder:
        self._executor = executor
        return self

    def build(self, start: bool = True) -> Session:
        """Assemble the session and start its trigger loop.

        Raises:
            MissingWiringError: A component was never set.
        """
        for label, component in (
            ("storage", self._storage),
            ("trigger", self._trigger),
            ("executor", self._executor),
        ):
            if component is None:
                raise MissingWiringError(f"Please set {label} before build()").with_context(component=label)

        session = Session(ScheduleManager(self._storage, self._trigger, self._executor))
        return session.start() if start else session


__all__ = ["Session", "SessionBuilder", "as_graph"]
