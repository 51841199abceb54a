"""Tests for MemoryStorage."""

import threading

import pytest

from cronflow.core.errors import StorageError
from cronflow.storage import MemoryStorage, Storage

from tests._support import prepared_task


class TestMemoryStorage:
    def test_implements_protocol(self):
        assert isinstance(MemoryStorage(), Storage)

    def test_insertion_order(self, storage, counter):
        first = prepared_task(counter, "@hourly", name="first")
        second = prepared_task(counter, "@daily", name="second")
        storage.save_item(first)
        storage.save_item(second)
        assert storage.load_all_items() == [first, second]

    def test_snapshot_is_a_copy(self, storage, counter):
        storage.save_item(prepared_task(counter, "@hourly"))
        snapshot = storage.load_all_items()
        storage.save_item(prepared_task(counter, "@daily"))
        assert len(snapshot) == 1
        assert len(storage) == 2

    def test_get_by_id(self, storage, counter):
        task = prepared_task(counter, "@hourly")
        task.metadata.id = 7
        storage.save_item(task)
        assert storage.get(7) is task
        assert storage.get(8) is None

    def test_concurrent_saves(self, storage, counter):
        def save_many():
            for _ in range(50):
                storage.save_item(prepared_task(counter, "@hourly"))

        threads = [threading.Thread(target=save_many) for _ in range(4)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()
        assert len(storage.load_all_items()) == 200

    def test_same_item_twice_is_rejected(self, storage, counter):
        task = prepared_task(counter, "@hourly")
        storage.save_item(task)
        with pytest.raises(StorageError, match="already registered"):
            storage.save_item(task)
        assert len(storage) == 1
