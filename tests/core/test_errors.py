"""Tests for the cronflow error hierarchy."""

import pytest

from cronflow.core.errors import (
    AsyncNotSupportedError,
    ConfigError,
    CronflowError,
    EmptyGraphError,
    ErrorCategory,
    ExecutionError,
    GraphError,
    MissingWiringError,
    ScheduleNotSupportedError,
    ScheduleParseError,
    SharedOwnershipError,
    UnsupportedOperationError,
)


class TestCronflowError:
    """Base error behaviour."""

    def test_defaults(self):
        error = CronflowError("boom")
        assert error.message == "boom"
        assert error.category == ErrorCategory.INTERNAL
        assert error.retryable is False
        assert error.context.to_dict() == {}

    def test_cause_is_chained(self):
        cause = KeyError("missing")
        error = CronflowError("lookup failed", cause=cause)
        assert error.cause is cause
        assert error.__cause__ is cause

    def test_with_context_is_fluent(self):
        error = GraphError("bad").with_context(task_name="extract", attempt=2)
        assert error.context.task_name == "extract"
        assert error.context.metadata == {"attempt": 2}

    def test_to_dict(self):
        error = ScheduleParseError("bad rule").with_context(schedule="x y z")
        data = error.to_dict()
        assert data["error_type"] == "ScheduleParseError"
        assert data["category"] == "PARSE"
        assert data["context"] == {"schedule": "x y z"}


class TestTaxonomy:
    """Every concrete error sits in the expected family."""

    @pytest.mark.parametrize(
        "error_cls, parent, category",
        [
            (ScheduleParseError, CronflowError, ErrorCategory.PARSE),
            (EmptyGraphError, GraphError, ErrorCategory.VALIDATION),
            (SharedOwnershipError, GraphError, ErrorCategory.VALIDATION),
            (MissingWiringError, ConfigError, ErrorCategory.CONFIG),
            (ScheduleNotSupportedError, ConfigError, ErrorCategory.CONFIG),
            (UnsupportedOperationError, ExecutionError, ErrorCategory.EXECUTION),
            (AsyncNotSupportedError, ExecutionError, ErrorCategory.EXECUTION),
        ],
    )
    def test_family(self, error_cls, parent, category):
        error = error_cls("x")
        assert isinstance(error, parent)
        assert error.category == category
