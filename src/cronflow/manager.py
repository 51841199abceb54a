"""Schedule manager — identity assignment and lifecycle of one scheduler.

The manager holds the three injected collaborators (storage, trigger,
executor), stamps every submitted item with ids from two monotonic
counters, and starts/stops the trigger loop.

::

    manager.add(graph)         graph.metadata.id ← next graph id
                               node.metadata.id  ← next task id (each node)
    manager.add(task)          task.metadata.id  ← next task id
"""

from __future__ import annotations

import itertools
import threading

from cronflow.core.errors import MissingWiringError
from cronflow.core.logging import get_logger
from cronflow.execution.dispatcher import Dispatcher
from cronflow.execution.executors.protocol import Executor
from cronflow.execution.runnable import RunnableMetadata
from cronflow.graph.dag import TaskGraph
from cronflow.scheduling.protocol import Trigger
from cronflow.storage.protocol import ScheduledItem, Storage

logger = get_logger(__name__)


class ScheduleManager:
    """Wires storage, trigger and executor together."""

    def __init__(self, storage: Storage, trigger: Trigger, executor: Executor) -> None:
        if storage is None or trigger is None or executor is None:
            raise MissingWiringError("ScheduleManager needs storage, trigger and executor")
        self.storage = storage
        self.trigger = trigger
        self.executor = executor
        self.dispatcher = Dispatcher(executor)
        self._graph_ids = itertools.count()
        self._task_ids = itertools.count()
        self._id_lock = threading.Lock()

    def add(self, item: ScheduledItem) -> ScheduledItem:
        """Assign ids to ``item`` and hand it to storage."""
        if item.metadata is None:
            item.metadata = RunnableMetadata()

        with self._id_lock:
            if isinstance(item, TaskGraph):
                item.metadata.id = next(self._graph_ids)
                with item.arena.lock:
                    for index in item.reachable():
                        item.node(index).metadata.id = next(self._task_ids)
            else:
                item.metadata.id = next(self._task_ids)

        self.storage.save_item(item)
        logger.info(
            "manager.item_added",
            item_id=item.metadata.id,
            kind="graph" if isinstance(item, TaskGraph) else "task",
            item=item.metadata.name,
            next_fire=item.metadata.clock.next_fire.isoformat()
            if item.metadata.clock and item.metadata.clock.next_fire
            else None,
        )
        return item

    def start(self) -> None:
        self.trigger.start(self.storage, self.dispatcher)

    def stop(self) -> None:
        self.trigger.stop()
