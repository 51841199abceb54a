"""In-memory storage — a lock-guarded list of scheduled items.

Good for embedding and testing. Nothing is persisted across restarts.
"""

from __future__ import annotations

import threading

from cronflow.core.errors import StorageError
from cronflow.core.logging import get_logger

from .protocol import ScheduledItem

logger = get_logger(__name__)


class MemoryStorage:
    """Insertion-ordered registry.

    Example:
        >>> storage = MemoryStorage()
        >>> storage.save_item(task)
        >>> storage.load_all_items() == [task]
        True
    """

    def __init__(self) -> None:
        self._items: list[ScheduledItem] = []
        self._lock = threading.Lock()

    def save_item(self, item: ScheduledItem) -> None:
        """Append ``item``. Saving the same object twice raises ``StorageError``."""
        with self._lock:
            if any(existing is item for existing in self._items):
                raise StorageError(
                    f"Item {getattr(item.metadata, 'name', None)!r} is already registered"
                ).with_context(item_id=item.metadata.id if item.metadata else None)
            self._items.append(item)
            count = len(self._items)
        logger.debug("storage.item_saved", item_id=item.metadata.id if item.metadata else None, total=count)

    def load_all_items(self) -> list[ScheduledItem]:
        with self._lock:
            return list(self._items)

    def get(self, item_id: int) -> ScheduledItem | None:
        with self._lock:
            for item in self._items:
                if item.metadata is not None and item.metadata.id == item_id:
                    return item
        return None

    def __len__(self) -> int:
        with self._lock:
            return len(self._items)
