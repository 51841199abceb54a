"""
Test support utilities for cronflow tests.

This module provides helpers that don't fit as pytest fixtures but are
useful across multiple test files: a fixed reference time, a counting
callable, prepared items and an execution-order recorder.
"""

from __future__ import annotations

import threading
from datetime import UTC, datetime
from typing import Any

from cronflow.graph.dag import SingleTask, TaskGraph

T0 = datetime(2024, 1, 1, 12, 0, 0, tzinfo=UTC)


class Counter:
    """Callable that counts its invocations from any thread."""

    def __init__(self, name: str = "counter") -> None:
        self.name = name
        self.calls = 0
        self.threads: list[str] = []
        self._lock = threading.Lock()

    def __call__(self) -> int:
        with self._lock:
            self.calls += 1
            self.threads.append(threading.current_thread().name)
            return self.calls


def prepared_task(work: Any, schedule: str, now: datetime = T0, name: str | None = None) -> SingleTask:
    """Single task whose clock was initialised at ``now``."""
    graph = TaskGraph.single(work, name=name).set_schedule(schedule)
    graph.prepare()
    graph.clock.init(now=now)
    return graph.collapse_to_single_task()


def prepared_graph(graph: TaskGraph, schedule: str, now: datetime = T0) -> TaskGraph:
    """Graph whose shared clock was initialised at ``now``."""
    graph.prepare(schedule)
    graph.clock.init(now=now)
    return graph


class OrderRecorder:
    """
    Records task names as they run and validates their order.

    Usage:
        recorder = OrderRecorder()
        builder.task("A", recorder.step("A"))
        ...
        recorder.assert_before("A", "B")
    """

    def __init__(self) -> None:
        self.names: list[str] = []
        self._lock = threading.Lock()

    def step(self, name: str):
        def _run() -> str:
            with self._lock:
                self.names.append(name)
            return name

        _run.__qualname__ = name
        return _run

    def assert_before(self, first: str, second: str) -> None:
        first_idx, second_idx = self.names.index(first), self.names.index(second)
        assert first_idx < second_idx, (
            f"Expected '{first}' before '{second}', order: {self.names}"
        )

    def assert_order(self, expected: list[str]) -> None:
        for first, second in zip(expected, expected[1:]):
            self.assert_before(first, second)
