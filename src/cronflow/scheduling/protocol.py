"""Trigger protocol — the contract of a background scheduling authority.

┌──────────────────────────────────────────────────────────────────────────────┐
│  TRIGGER PROTOCOL                                                             │
│                                                                               │
│  A trigger owns WHEN ticks happen; the shared tick logic decides WHAT        │
│  happens on each one.                                                         │
│                                                                               │
│   ┌─────────────────┐   load_all_items()   ┌─────────────────┐               │
│   │  ThreadTrigger  │ ───────────────────► │     Storage     │               │
│   │  (500 ms)       │                      └─────────────────┘               │
│   └─────────────────┘                                                        │
│            │  clock.advance(now) per item                                     │
│            ▼                                                                  │
│   ┌─────────────────┐   dispatch(item)     ┌─────────────────┐               │
│   │  AsyncTrigger   │ ───────────────────► │   Dispatcher    │ ─► Executor    │
│   │  (100 ms)       │                      └─────────────────┘               │
│   └─────────────────┘                                                        │
│                                                                               │
│  Stop is idempotent: the flag is set once, the loop observes it at the       │
│  top of an iteration, and the controller joins the loop exactly once.        │
└──────────────────────────────────────────────────────────────────────────────┘
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

if TYPE_CHECKING:
    from cronflow.execution.dispatcher import Dispatcher
    from cronflow.storage.protocol import Storage


@runtime_checkable
class Trigger(Protocol):
    """Protocol for pluggable trigger loops.

    Implementations:
        - ThreadTrigger: dedicated daemon thread (default)
        - AsyncTrigger: coroutine on an asyncio event loop
    """

    name: str

    def start(self, storage: Storage, dispatcher: Dispatcher) -> None:
        """Begin ticking against ``storage``, dispatching through ``dispatcher``."""
        ...

    def stop(self) -> None:
        """Stop ticking and wait for the loop to exit. Idempotent."""
        ...

    @property
    def is_running(self) -> bool: ...

    def health(self) -> TriggerHealth: ...


@dataclass
class TriggerHealth:
    """Structured trigger health response."""

    healthy: bool
    backend: str
    tick_count: int = 0
    last_tick: datetime | None = None
    interval_seconds: float | None = None
    extra: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "healthy": self.healthy,
            "backend": self.backend,
            "tick_count": self.tick_count,
            "last_tick": self.last_tick.isoformat() if self.last_tick else None,
            "interval_seconds": self.interval_seconds,
            **self.extra,
        }


@dataclass
class TriggerStats:
    """Counters accumulated by a trigger loop."""

    ticks: int = 0
    items_fired: int = 0
    items_failed: int = 0
    items_exhausted: int = 0

    def to_dict(self) -> dict[str, int]:
        return {
            "ticks": self.ticks,
            "items_fired": self.items_fired,
            "items_failed": self.items_failed,
            "items_exhausted": self.items_exhausted,
        }


__all__ = ["Trigger", "TriggerHealth", "TriggerStats"]
