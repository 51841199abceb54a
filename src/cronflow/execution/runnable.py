"""Runnable protocol — the unit of work the scheduler executes.

Anything with a name, an async flag and an ``execute()`` method can be
scheduled. Plain functions and coroutine functions are adapted by
``SyncFn`` / ``AsyncFn``; user objects implement the protocol directly.

``RunnableHandle`` is the type-erased wrapper that graphs, storage and
executors pass around. It is shared by reference, serialises concurrent
``execute()`` calls behind its own lock, and preserves the identity
(type name / type id) of whatever it wraps so the trigger loop can log
what is running without knowing concrete types.

Usage::

    from cronflow.execution.runnable import as_runnable

    handle = as_runnable(lambda: print("tick"))
    handle.is_async        # False
    handle.type_name       # "tests.test_x.<lambda>"

    class Report:
        name = "daily-report"
        is_async = False

        def execute(self):
            build_report()

    as_runnable(Report()).name   # "daily-report"

Tags:
    cronflow, execution, runnable, protocol, interface

Doc-Types:
    api-reference
"""

from __future__ import annotations

import inspect
import threading
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

if TYPE_CHECKING:
    from cronflow.scheduling.clock import ScheduleClock


# ── Protocol ─────────────────────────────────────────────────────────


@runtime_checkable
class Runnable(Protocol):
    """Unified protocol for schedulable work.

    ``execute()`` runs synchronous work to completion and returns its
    result. For asynchronous work (``is_async`` is ``True``) it returns an
    awaitable that the executor schedules on its event loop.
    """

    @property
    def name(self) -> str: ...

    @property
    def is_async(self) -> bool: ...

    def execute(self) -> Any: ...


# ── Function adapters ────────────────────────────────────────────────


def _callable_name(fn: Callable[..., Any]) -> str:
    return getattr(fn, "__qualname__", None) or getattr(fn, "__name__", None) or type(fn).__name__


class SyncFn:
    """Adapt a zero-argument function into a runnable."""

    is_async = False

    def __init__(self, fn: Callable[[], Any], name: str | None = None) -> None:
        if not callable(fn):
            raise TypeError(f"SyncFn expects a callable, got {type(fn).__name__}")
        self.fn = fn
        self.name = name or _callable_name(fn)

    def execute(self) -> Any:
        return self.fn()

    def __repr__(self) -> str:
        return f"SyncFn({self.name!r})"


class AsyncFn:
    """Adapt a zero-argument coroutine function into a runnable."""

    is_async = True

    def __init__(self, fn: Callable[[], Awaitable[Any]], name: str | None = None) -> None:
        if not callable(fn):
            raise TypeError(f"AsyncFn expects a callable, got {type(fn).__name__}")
        self.fn = fn
        self.name = name or _callable_name(fn)

    def execute(self) -> Awaitable[Any]:
        awaitable = self.fn()
        if not inspect.isawaitable(awaitable):
            raise TypeError(f"AsyncFn {self.name!r} did not return an awaitable")
        return awaitable

    def __repr__(self) -> str:
        return f"AsyncFn({self.name!r})"


# ── Type-erased handle ───────────────────────────────────────────────


class RunnableHandle:
    """Thread-safe, shareable wrapper around any runnable.

    Concurrent ``execute()`` calls on the same handle run one at a time.
    For async runnables the lock only covers creating the awaitable, not
    awaiting it.
    """

    def __init__(self, inner: Runnable, name: str | None = None) -> None:
        self._inner = inner
        self._lock = threading.Lock()
        self._name = name
        target = inner.fn if isinstance(inner, (SyncFn, AsyncFn)) else type(inner)
        self._type_name = f"{getattr(target, '__module__', '?')}.{_callable_name(target)}"
        self._type_id = id(target)

    @property
    def inner(self) -> Runnable:
        return self._inner

    @property
    def name(self) -> str:
        return self._name or getattr(self._inner, "name", None) or self._type_name

    @property
    def is_async(self) -> bool:
        return bool(getattr(self._inner, "is_async", False))

    @property
    def type_name(self) -> str:
        return self._type_name

    @property
    def type_id(self) -> int:
        return self._type_id

    def execute(self) -> Any:
        with self._lock:
            return self._inner.execute()

    def __repr__(self) -> str:
        kind = "async" if self.is_async else "sync"
        return f"RunnableHandle({self.name!r}, {kind}, type={self._type_name})"


def _is_coroutine_callable(obj: Any) -> bool:
    if inspect.iscoroutinefunction(obj):
        return True
    call = getattr(obj, "__call__", None)
    return call is not None and inspect.iscoroutinefunction(call)


def as_runnable(obj: Any, name: str | None = None) -> RunnableHandle:
    """Coerce a function, coroutine function or runnable object to a handle.

    Raises:
        TypeError: If ``obj`` is none of those.
    """
    if isinstance(obj, RunnableHandle):
        return obj
    if callable(getattr(obj, "execute", None)):
        return RunnableHandle(obj, name=name)
    if _is_coroutine_callable(obj):
        return RunnableHandle(AsyncFn(obj, name=name))
    if callable(obj):
        return RunnableHandle(SyncFn(obj, name=name))
    raise TypeError(f"Cannot schedule object of type {type(obj).__name__}")


# ── Metadata ─────────────────────────────────────────────────────────


@dataclass
class RunnableMetadata:
    """Identity and limits attached to a task node, task or graph.

    ``max_run_times`` and ``max_parallelism`` are recorded and reported
    but not enforced by the dispatcher.
    """

    id: int | None = None
    """Assigned once by the manager at submission."""

    name: str | None = None
    max_run_times: int | None = None
    max_parallelism: int | None = None

    clock: ScheduleClock | None = None
    """Owned clock for single tasks and graphs; ``None`` on graph nodes."""

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "max_run_times": self.max_run_times,
            "max_parallelism": self.max_parallelism,
            "clock": self.clock.snapshot().to_dict() if self.clock else None,
        }


__all__ = [
    "AsyncFn",
    "Runnable",
    "RunnableHandle",
    "RunnableMetadata",
    "SyncFn",
    "as_runnable",
]
