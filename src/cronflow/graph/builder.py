"""Fluent graph builder.

Usage::

    graph = (
        GraphBuilder()
        .task("load", load)
        .parent(lambda b: b.task("extract_a", extract_a).task("extract_b", extract_b))
        .child(lambda b: b.task("report", report))
        .build()
    )

    print(graph.render_tree())
    # extract_a
    #   load
    #     report
    # extract_b
    #   load
    #     report

``task()`` starts a new current node (the previous one becomes an
accumulated root candidate). ``parent()``/``child()`` run a nested builder
on the same arena and connect every node it produced to the current node.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Any

from cronflow.core.errors import EmptyGraphError

from .dag import TaskArena, TaskGraph

NestedBuild = Callable[["GraphBuilder"], "GraphBuilder"]


class GraphBuilder:
    """Accumulates nodes and edges, then builds a ``TaskGraph``."""

    def __init__(self, arena: TaskArena | None = None) -> None:
        self.arena = arena or TaskArena()
        self._current: int | None = None
        self._accumulated: list[int] = []

    @classmethod
    def of(cls, work: Any, name: str | None = None) -> GraphBuilder:
        return cls().task(name, work)

    def task(self, name: str | None, work: Any) -> GraphBuilder:
        if self._current is not None:
            self._accumulated.append(self._current)
        self._current = self.arena.add_node(work, name=name)
        return self

    def set_name(self, name: str) -> GraphBuilder:
        if self._current is not None:
            self.arena.set_name(self._current, name)
        return self

    def parent(self, build: NestedBuild) -> GraphBuilder:
        """Make every node produced by ``build`` a parent of the current node."""
        produced = build(GraphBuilder(self.arena))._collect()
        if self._current is not None:
            for p in produced:
                self.arena.add_edge(p, self._current)
        return self

    def child(self, build: NestedBuild) -> GraphBuilder:
        """Make every node produced by ``build`` a child of the current node."""
        produced = build(GraphBuilder(self.arena))._collect()
        if self._current is not None:
            for c in produced:
                self.arena.add_edge(self._current, c)
        return self

    def merge(self, other: GraphBuilder) -> GraphBuilder:
        """Absorb ``other``'s nodes; both builders must share an arena."""
        if other.arena is not self.arena:
            raise ValueError("Cannot merge builders over different arenas")
        if self._current is None:
            self._current = other._current
            other._current = None
        self._accumulated.extend(other._collect())
        return self

    def _collect(self) -> list[int]:
        nodes = list(self._accumulated)
        if self._current is not None:
            nodes.append(self._current)
        return nodes

    def build(self) -> TaskGraph:
        """Resolve the true roots of everything built so far.

        Raises:
            EmptyGraphError: Nothing was added.
        """
        nodes = self._collect()
        if not nodes:
            raise EmptyGraphError("GraphBuilder.build() called before any task()")
        return TaskGraph.from_nodes(self.arena, nodes)
