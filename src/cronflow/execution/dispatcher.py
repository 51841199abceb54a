"""Dispatcher — hands a scheduled item's work to an executor.

A ``SingleTask`` is submitted as-is. A ``TaskGraph`` has every reachable
node submitted once, parents before children. Before anything is
submitted the dispatcher checks the executor's capabilities: an item
containing async work is refused by a sync-only executor, so a graph is
never half-dispatched.

Used by the trigger loops on every fire and by ``Session.run_now``.
"""

from __future__ import annotations

from concurrent.futures import Future
from typing import TYPE_CHECKING, Union

from cronflow.core.errors import AsyncNotSupportedError
from cronflow.core.logging import LogContext, get_logger
from cronflow.execution.executors.protocol import Executor
from cronflow.execution.runnable import RunnableHandle

if TYPE_CHECKING:
    from cronflow.graph.dag import SingleTask, TaskGraph

    Schedulable = Union[SingleTask, TaskGraph]

logger = get_logger(__name__)


def runnables_of(item: Schedulable) -> list[RunnableHandle]:
    """The item's handles in dispatch order."""
    from cronflow.graph.dag import TaskGraph

    if isinstance(item, TaskGraph):
        return [item.node(i).runnable for i in item.reachable()]
    return [item.runnable]


class Dispatcher:
    """Checks capabilities, then submits each runnable of an item."""

    def __init__(self, executor: Executor) -> None:
        self.executor = executor

    def check(self, item: Schedulable) -> list[RunnableHandle]:
        """Return the item's runnables, or raise if the executor can't run them.

        Raises:
            AsyncNotSupportedError: Async work on a sync-only executor.
        """
        runnables = runnables_of(item)
        if not self.executor.supports_async():
            blocked = [r.name for r in runnables if r.is_async]
            if blocked:
                raise AsyncNotSupportedError(
                    f"Executor {self.executor.name!r} cannot run async tasks: {', '.join(blocked)}"
                ).with_context(
                    item_id=item.metadata.id if item.metadata else None,
                    item_name=getattr(item.metadata, "name", None),
                    executor=self.executor.name,
                )
        return runnables

    def dispatch(self, item: Schedulable, report_completion: bool = False) -> list[Future]:
        runnables = self.check(item)
        futures = []
        with LogContext(item_id=item.metadata.id if item.metadata else None):
            for runnable in runnables:
                with LogContext(task=runnable.name):
                    logger.debug(
                        "dispatcher.submit",
                        type_name=runnable.type_name,
                        executor=self.executor.name,
                    )
                    futures.append(
                        self.executor.submit(runnable, report_completion=report_completion)
                    )
        return futures
