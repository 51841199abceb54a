"""Tests for the Dispatcher capability check and submission order."""

from unittest.mock import MagicMock

import pytest
import structlog

from cronflow.core.errors import AsyncNotSupportedError
from cronflow.execution.dispatcher import Dispatcher, runnables_of
from cronflow.execution.executors import InlineExecutor, ThreadExecutor
from cronflow.graph.builder import GraphBuilder
from cronflow.graph.dag import TaskGraph

from tests._support import prepared_graph, prepared_task


async def async_step():
    return None


class TestDispatcher:
    def test_single_task(self, counter):
        task = prepared_task(counter, "@hourly")
        futures = Dispatcher(InlineExecutor()).dispatch(task)
        assert len(futures) == 1
        assert counter.calls == 1

    def test_graph_in_topological_order(self, recorder):
        graph = (
            GraphBuilder()
            .task("C", recorder.step("C"))
            .parent(lambda b: b.task("B", recorder.step("B")).parent(
                lambda a: a.task("A", recorder.step("A"))
            ))
            .build()
        )
        Dispatcher(ThreadExecutor()).dispatch(prepared_graph(graph, "@daily"))
        recorder.assert_order(["A", "B", "C"])

    def test_async_refused_before_anything_runs(self, counter):
        """A mixed graph is rejected as a whole on a sync-only executor."""
        graph = (
            GraphBuilder()
            .task("sync", counter)
            .child(lambda b: b.task("async", async_step))
            .build()
        )
        with pytest.raises(AsyncNotSupportedError) as exc_info:
            Dispatcher(InlineExecutor()).dispatch(prepared_graph(graph, "@daily"))

        assert counter.calls == 0
        assert exc_info.value.context.executor == "inline"

    def test_report_flag_is_passed_through(self, counter):
        executor = MagicMock()
        executor.name = "mock"
        executor.supports_async.return_value = True
        task = prepared_task(counter, "@hourly")

        Dispatcher(executor).dispatch(task, report_completion=True)

        executor.submit.assert_called_once_with(task.runnable, report_completion=True)

    def test_runnables_of_graph(self):
        graph = TaskGraph.single(lambda: None, name="only")
        assert [r.name for r in runnables_of(graph)] == ["only"]

    def test_log_context_is_bound_while_submitting(self):
        seen = []

        def capture():
            seen.append(structlog.contextvars.get_contextvars())

        task = prepared_task(capture, "@hourly", name="capture")
        task.metadata.id = 11
        Dispatcher(InlineExecutor()).dispatch(task)

        assert seen[0]["item_id"] == 11
        assert seen[0]["task"] == "capture"
        after = structlog.contextvars.get_contextvars()
        assert "item_id" not in after
        assert "task" not in after
