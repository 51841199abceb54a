"""Storage of scheduled items."""

from cronflow.storage.memory import MemoryStorage
from cronflow.storage.protocol import ScheduledItem, Storage

__all__ = ["MemoryStorage", "ScheduledItem", "Storage"]
