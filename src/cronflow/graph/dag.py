"""Task graph — arena of task nodes addressed by integer index.

┌──────────────────────────────────────────────────────────────────────────────┐
│  TASK GRAPH MODEL                                                            │
│                                                                              │
│   TaskArena                                                                  │
│     nodes: [TaskNode(0), TaskNode(1), TaskNode(2), ...]                      │
│     lock : RLock  ─ every edge/metadata mutation goes through it             │
│                                                                              │
│   TaskNode(i)                                                                │
│     runnable  : RunnableHandle                                               │
│     metadata  : RunnableMetadata (id, name, limits)                          │
│     parents   : [index, ...]    ◄── kept mutually consistent ──►             │
│     children  : [index, ...]                                                 │
│                                                                              │
│   TaskGraph                                                                  │
│     roots     : [index, ...]  (nodes without parents, from find_roots)       │
│     schedule  : ScheduleExpr | None                                          │
│     metadata  : RunnableMetadata with the shared ScheduleClock (prepare)     │
│                                                                              │
│   A → B → C       run_all visits A, B, C                                     │
│   A ─┐                                                                       │
│      ├→ C         find_roots([C]) == [A, B]                                  │
│   B ─┘                                                                       │
└──────────────────────────────────────────────────────────────────────────────┘

Cycles are NOT detected. Keeping the graph acyclic is the caller's
responsibility; ``traverse_with_level`` recurses without a visited set
and will not terminate on a cycle.

Tags:
    dag, graph, arena, workflow, cronflow
"""

from __future__ import annotations

import threading
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from typing import Any

from cronflow.core.errors import (
    EmptyGraphError,
    GraphError,
    MissingScheduleError,
    SharedOwnershipError,
)
from cronflow.core.logging import get_logger
from cronflow.execution.runnable import RunnableHandle, RunnableMetadata, as_runnable
from cronflow.scheduling.clock import ScheduleClock
from cronflow.scheduling.expr import Preset, ScheduleExpr, parse_schedule

logger = get_logger(__name__)


# ── Nodes and arena ──────────────────────────────────────────────────


@dataclass
class TaskNode:
    """One unit of work inside a graph."""

    index: int
    runnable: RunnableHandle
    metadata: RunnableMetadata = field(default_factory=RunnableMetadata)
    parents: list[int] = field(default_factory=list)
    children: list[int] = field(default_factory=list)

    @property
    def name(self) -> str:
        return self.metadata.name if self.metadata.name is not None else self.runnable.name


class TaskArena:
    """Owns every node of one or more graphs built together."""

    def __init__(self) -> None:
        self._nodes: list[TaskNode] = []
        self.lock = threading.RLock()

    def __len__(self) -> int:
        return len(self._nodes)

    def node(self, index: int) -> TaskNode:
        return self._nodes[index]

    def add_node(
        self,
        work: Any,
        name: str | None = None,
        metadata: RunnableMetadata | None = None,
    ) -> int:
        """Wrap ``work`` in a node and return its index."""
        handle = as_runnable(work, name=name)
        meta = metadata or RunnableMetadata()
        if name is not None:
            meta.name = name
        with self.lock:
            index = len(self._nodes)
            self._nodes.append(TaskNode(index=index, runnable=handle, metadata=meta))
        return index

    def add_edge(self, parent: int, child: int) -> None:
        """Insert ``parent → child``. Both sides are updated under the lock.

        Precondition: the edge must not close a cycle; this is not checked.
        """
        with self.lock:
            p, c = self._nodes[parent], self._nodes[child]
            if child not in p.children:
                p.children.append(child)
            if parent not in c.parents:
                c.parents.append(parent)

    def set_name(self, index: int, name: str) -> None:
        with self.lock:
            self._nodes[index].metadata.name = name

    def find_roots(self, start: Iterable[int]) -> list[int]:
        """Walk upward from ``start``; return parentless nodes in discovery order."""
        roots: list[int] = []
        seen: set[int] = set()

        def climb(index: int) -> None:
            if index in seen:
                return
            seen.add(index)
            parents = self._nodes[index].parents
            if not parents:
                roots.append(index)
                return
            for parent in parents:
                climb(parent)

        with self.lock:
            for index in start:
                climb(index)
        return roots


# ── Ownership ────────────────────────────────────────────────────────


class _Ownership:
    """Reference count of graph handles over the same nodes."""

    def __init__(self) -> None:
        self.count = 1
        self.lock = threading.Lock()


# ── Graph ────────────────────────────────────────────────────────────


class TaskGraph:
    """Ordered roots over a shared arena, plus schedule and shared clock.

    Example:
        >>> arena = TaskArena()
        >>> a = arena.add_node(extract, name="A")
        >>> b = arena.add_node(load, name="B")
        >>> arena.add_edge(a, b)
        >>> graph = TaskGraph.from_nodes(arena, [b])
        >>> [arena.node(i).name for i in graph.roots]
        ['A']
    """

    def __init__(
        self,
        arena: TaskArena,
        roots: list[int],
        schedule: ScheduleExpr | None = None,
        metadata: RunnableMetadata | None = None,
        _ownership: _Ownership | None = None,
    ) -> None:
        self.arena = arena
        self.roots = list(roots)
        self.schedule = schedule
        self.metadata = metadata
        self._ownership = _ownership or _Ownership()
        self._released = False

    @classmethod
    def from_nodes(cls, arena: TaskArena, nodes: Iterable[int]) -> TaskGraph:
        """Build a graph whose roots are found by walking up from ``nodes``."""
        return cls(arena, arena.find_roots(nodes))

    @classmethod
    def single(
        cls, work: Any, name: str | None = None, metadata: RunnableMetadata | None = None
    ) -> TaskGraph:
        """One-node graph around ``work``."""
        arena = TaskArena()
        index = arena.add_node(work, name=name, metadata=metadata)
        return cls(arena, [index])

    # === Structure ===

    def add_edge(self, parent: int, child: int) -> None:
        self.arena.add_edge(parent, child)

    def node(self, index: int) -> TaskNode:
        return self.arena.node(index)

    def find_roots(self, start: Iterable[int] | None = None) -> list[int]:
        return self.arena.find_roots(self.roots if start is None else start)

    def traverse(
        self,
        index: int,
        include_parents: bool,
        visit: Callable[[TaskNode], Any],
    ) -> None:
        """Visit ``index`` and then its direct parents or direct children."""
        with self.arena.lock:
            node = self.arena.node(index)
            neighbours = list(node.parents if include_parents else node.children)
        visit(node)
        for neighbour in neighbours:
            visit(self.arena.node(neighbour))

    def traverse_with_level(self, visit: Callable[[TaskNode, int], Any]) -> None:
        """Recursive descent from every root through children, with depth.

        A node reachable along several paths is visited once per path.
        """

        def descend(index: int, level: int) -> None:
            node = self.arena.node(index)
            visit(node, level)
            for child in list(node.children):
                descend(child, level + 1)

        for root in list(self.roots):
            descend(root, 0)

    def reachable(self) -> list[int]:
        """Every reachable node, parents before children, each exactly once."""
        order: list[int] = []
        seen: set[int] = set()

        def visit(index: int) -> None:
            if index in seen:
                return
            seen.add(index)
            for child in reversed(self.arena.node(index).children):
                visit(child)
            order.append(index)

        with self.arena.lock:
            for root in reversed(self.roots):
                visit(root)
        order.reverse()
        return order

    def count_nodes(self) -> int:
        """Number of distinct nodes reachable from the roots."""
        return len(self.reachable())

    def run_all(self, runner: Callable[[TaskNode], Any]) -> None:
        """Call ``runner`` once per reachable node in topological order."""
        for index in self.reachable():
            runner(self.arena.node(index))

    def render_tree(self) -> str:
        lines: list[str] = []
        self.traverse_with_level(lambda node, level: lines.append("  " * level + node.name))
        return "\n".join(lines)

    # === Scheduling ===

    def set_schedule(self, schedule: str | ScheduleExpr | Preset) -> TaskGraph:
        self.schedule = parse_schedule(schedule)
        return self

    @property
    def clock(self) -> ScheduleClock | None:
        return self.metadata.clock if self.metadata else None

    @property
    def is_async(self) -> bool:
        return any(self.arena.node(i).runnable.is_async for i in self.reachable())

    def prepare(self, schedule: str | ScheduleExpr | Preset | None = None) -> ScheduleClock:
        """Build and initialise the shared clock.

        Raises:
            MissingScheduleError: No schedule given and none set.
            ScheduleNotSupportedError: For ``@once``.
        """
        if schedule is not None:
            self.set_schedule(schedule)
        if self.schedule is None:
            raise MissingScheduleError("TaskGraph.prepare() called without a schedule expression")

        clock = ScheduleClock(self.schedule)
        clock.init()
        if self.metadata is None:
            self.metadata = RunnableMetadata()
        self.metadata.clock = clock
        return clock

    # === Ownership and collapse ===

    def share(self) -> TaskGraph:
        """Another owner of the same nodes, schedule and metadata."""
        with self._ownership.lock:
            self._ownership.count += 1
        return TaskGraph(
            self.arena,
            self.roots,
            schedule=self.schedule,
            metadata=self.metadata,
            _ownership=self._ownership,
        )

    def release(self) -> None:
        """Drop this handle's ownership. Idempotent per handle."""
        if self._released:
            return
        self._released = True
        with self._ownership.lock:
            self._ownership.count -= 1

    @property
    def owners(self) -> int:
        return self._ownership.count

    def collapse_to_single_task(self) -> SingleTask:
        """Turn a one-node graph into a ``SingleTask``.

        Raises:
            EmptyGraphError: No roots.
            GraphError: More than one reachable node.
            SharedOwnershipError: Another handle still owns the nodes.
        """
        if not self.roots:
            raise EmptyGraphError("Cannot collapse an empty graph")

        count = self.count_nodes()
        if count != 1:
            raise GraphError(f"Cannot collapse a graph with {count} nodes into a single task")

        with self._ownership.lock:
            if self._ownership.count > 1:
                raise SharedOwnershipError(
                    f"Cannot collapse: {self._ownership.count} owners still hold this graph"
                )

        node = self.arena.node(self.roots[0])
        metadata = RunnableMetadata(
            id=node.metadata.id,
            name=node.name,
            max_run_times=node.metadata.max_run_times,
            max_parallelism=node.metadata.max_parallelism,
            clock=self.clock,
        )
        logger.debug("graph.collapsed", task=metadata.name)
        return SingleTask(runnable=node.runnable, metadata=metadata, schedule=self.schedule)

    def __repr__(self) -> str:
        names = [self.arena.node(i).name for i in self.roots]
        return f"TaskGraph(roots={names}, schedule={str(self.schedule) if self.schedule else None})"


@dataclass
class SingleTask:
    """A bare scheduled task: one runnable with its own clock."""

    runnable: RunnableHandle
    metadata: RunnableMetadata
    schedule: ScheduleExpr | None = None

    @property
    def name(self) -> str:
        return self.metadata.name or self.runnable.name

    @property
    def clock(self) -> ScheduleClock | None:
        return self.metadata.clock

    @property
    def is_async(self) -> bool:
        return self.runnable.is_async


__all__ = ["SingleTask", "TaskArena", "TaskGraph", "TaskNode"]
