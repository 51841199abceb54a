"""Storage contract for registered work.

Manifesto:
    The trigger loop needs a consistent list of what to evaluate each
    tick, while callers keep submitting new items from other threads.
    Storage hands out snapshots (copies), never live views, so a tick
    iterates independently of concurrent registration.

Tags:
    cronflow, storage, protocol, registry

Doc-Types:
    api-reference
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, Union, runtime_checkable

if TYPE_CHECKING:
    from cronflow.graph.dag import SingleTask, TaskGraph

ScheduledItem = Union["SingleTask", "TaskGraph"]


@runtime_checkable
class Storage(Protocol):
    """Registry of scheduled items."""

    def save_item(self, item: ScheduledItem) -> None:
        """Register ``item``; it is evaluated from the next tick onward."""
        ...

    def load_all_items(self) -> list[ScheduledItem]:
        """Snapshot of every registered item, in insertion order."""
        ...


__all__ = ["ScheduledItem", "Storage"]
