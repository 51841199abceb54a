"""End-to-end tests: sessions, manager ids and real trigger loops."""

import threading
import time

import pytest

from cronflow.core.errors import (
    AsyncNotSupportedError,
    MissingWiringError,
    ScheduleNotSupportedError,
    ScheduleParseError,
)
from cronflow.execution.executors import AsyncExecutor, InlineExecutor
from cronflow.graph.builder import GraphBuilder
from cronflow.graph.dag import SingleTask, TaskGraph
from cronflow.scheduling.clock import ClockState
from cronflow.scheduling.trigger import AsyncTrigger, ThreadTrigger
from cronflow.session import SessionBuilder, as_graph
from cronflow.storage import MemoryStorage

from tests._support import Counter


def noop():
    return None


@pytest.fixture
def idle_session():
    """Session with a slow trigger, for submission-only tests."""
    session = SessionBuilder(MemoryStorage(), ThreadTrigger(interval_seconds=60), InlineExecutor()).build(
        start=False
    )
    yield session
    session.stop()


class TestSubmit:
    def test_single_task_collapses(self, idle_session):
        item = idle_session.submit("@hourly", noop)
        assert isinstance(item, SingleTask)
        assert item.clock.state is ClockState.ARMED
        assert idle_session.items() == [item]

    def test_graph_stays_graph(self, idle_session):
        graph = GraphBuilder().task("A", noop).child(lambda b: b.task("B", noop)).build()
        item = idle_session.submit("0 */5 * * * *", graph)
        assert isinstance(item, TaskGraph)
        assert item.clock is not None

    def test_builder_is_accepted(self, idle_session):
        item = idle_session.submit("@daily", GraphBuilder().task("A", noop).task("B", noop))
        assert isinstance(item, TaskGraph)
        assert item.count_nodes() == 2

    def test_ids_are_monotonic(self, idle_session):
        first = idle_session.submit("@hourly", noop)
        graph = idle_session.submit(
            "@daily", GraphBuilder().task("A", noop).child(lambda b: b.task("B", noop))
        )
        second = idle_session.submit("@hourly", noop)

        assert graph.metadata.id == 0
        node_ids = [graph.node(i).metadata.id for i in graph.reachable()]
        assert [first.metadata.id, *node_ids, second.metadata.id] == [0, 1, 2, 3]

    def test_parse_error_is_synchronous(self, idle_session):
        with pytest.raises(ScheduleParseError):
            idle_session.submit("every tuesday", noop)
        assert idle_session.items() == []

    def test_once_is_rejected(self, idle_session):
        with pytest.raises(ScheduleNotSupportedError):
            idle_session.submit("@once", noop)

    def test_async_work_on_sync_executor(self, idle_session):
        async def work():
            return None

        with pytest.raises(AsyncNotSupportedError):
            idle_session.submit("@hourly", work)
        assert idle_session.items() == []

    def test_run_now(self, idle_session, counter):
        item = idle_session.submit("@yearly", counter)
        idle_session.run_now(item)
        assert counter.calls == 1

    def test_as_graph_from_single_task(self, idle_session):
        task = idle_session.submit("@hourly", noop)
        graph = as_graph(task)
        assert graph.count_nodes() == 1
        assert graph.node(graph.roots[0]).runnable is task.runnable

    def test_as_graph_keeps_limits(self, idle_session):
        task = idle_session.submit("@hourly", noop)
        task.metadata.max_run_times = 3
        task.metadata.max_parallelism = 2

        graph = as_graph(task)
        node_meta = graph.node(graph.roots[0]).metadata
        assert (node_meta.name, node_meta.max_run_times, node_meta.max_parallelism) == (
            task.metadata.name,
            3,
            2,
        )
        assert node_meta.clock is None
        assert task.clock is not None
        assert str(graph.schedule) == "@hourly"


class TestSessionBuilder:
    def test_local_requires_wiring(self):
        with pytest.raises(MissingWiringError, match="storage"):
            SessionBuilder.local().build()

    def test_local_partial_wiring(self):
        builder = SessionBuilder.local().storage(MemoryStorage()).executor(InlineExecutor())
        with pytest.raises(MissingWiringError, match="trigger"):
            builder.build()

    def test_default(self):
        with SessionBuilder.default().build() as session:
            assert isinstance(session.trigger, ThreadTrigger)
            assert isinstance(session.executor, InlineExecutor)
            assert session.trigger.is_running
        assert not session.trigger.is_running

    def test_stop_is_idempotent(self):
        session = SessionBuilder.default().build()
        session.stop()
        session.stop()


@pytest.mark.slow
@pytest.mark.integration
class TestEndToEnd:
    def test_every_second_task_runs_repeatedly(self):
        counter = Counter()
        with SessionBuilder.default().build() as session:
            session.submit("1/1 * * * * *", counter)
            time.sleep(2.6)
        assert counter.calls >= 2

    def test_linear_graph_runs_in_order(self, recorder):
        graph = (
            GraphBuilder()
            .task("A", recorder.step("A"))
            .child(lambda b: b.task("B", recorder.step("B")).child(
                lambda c: c.task("C", recorder.step("C"))
            ))
            .build()
        )
        with SessionBuilder.default().build() as session:
            session.submit("* * * * * *", graph)
            deadline = time.monotonic() + 3.0
            while len(recorder.names) < 3 and time.monotonic() < deadline:
                time.sleep(0.05)

        assert recorder.names[:3] == ["A", "B", "C"]

    def test_failing_task_does_not_stop_scheduler(self):
        counter = Counter()

        def boom():
            raise RuntimeError("always fails")

        with SessionBuilder.default().build() as session:
            session.submit("* * * * * *", boom)
            session.submit("* * * * * *", counter)
            time.sleep(2.2)
            assert session.trigger.is_running

        assert counter.calls >= 1

    def test_asynchronous_session(self):
        done = threading.Event()
        calls = []

        async def fetch():
            calls.append(threading.current_thread().name)
            done.set()

        session = SessionBuilder.asynchronous().build()
        try:
            assert isinstance(session.trigger, AsyncTrigger)
            assert isinstance(session.executor, AsyncExecutor)
            assert session.trigger.loop is session.executor.loop
            session.submit("* * * * * *", fetch)
            assert done.wait(timeout=3.0)
        finally:
            session.stop()

        assert calls[0] == "cronflow-event-loop"
        assert session.executor.closed
