"""
Shared pytest fixtures for cronflow tests.

This module provides:
- Settings cache reset between tests (env overrides stay local)
- Storage / dispatcher fixtures wired to the inline executor
- A thread-safe call counter for scheduled work

Helpers that are not fixtures live in ``tests._support``.
"""

import pytest

from cronflow.core.settings import get_settings
from cronflow.execution.dispatcher import Dispatcher
from cronflow.execution.executors import InlineExecutor
from cronflow.storage import MemoryStorage

from tests._support import Counter, OrderRecorder


@pytest.fixture(autouse=True)
def _reset_settings():
    """Drop cached settings so monkeypatched env vars take effect."""
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def storage() -> MemoryStorage:
    return MemoryStorage()


@pytest.fixture
def inline_dispatcher() -> Dispatcher:
    return Dispatcher(InlineExecutor())


@pytest.fixture
def counter() -> Counter:
    return Counter()


@pytest.fixture
def recorder() -> OrderRecorder:
    return OrderRecorder()
