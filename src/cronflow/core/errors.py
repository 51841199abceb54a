"""
Structured error types for cronflow.

Every failure the scheduler surfaces to a caller is a ``CronflowError``.
Errors carry a category (for routing and log filtering), an explicit
retry flag, structured context about the item or task involved, and the
chained underlying exception.

Manifesto:
    - **Typed hierarchy:** parse, structural, configuration and execution
      failures are distinct classes, so callers catch exactly what they
      can handle.
    - **Fail at submission:** parse and structural errors are raised
      synchronously by ``Session.submit`` and friends, never from inside
      the trigger loop.
    - **Rich context:** errors know which item, task, schedule and executor
      they belong to.

Architecture:
    ::

        ┌─────────────────────────────────────────────────────────────────┐
        │                       CronflowError                              │
        │  (category, retryable, context, cause)                           │
        ├─────────────────────────────────────────────────────────────────┤
        │                                                                  │
        │  ScheduleParseError    GraphError           ConfigError          │
        │  (PARSE)               (VALIDATION)         (CONFIG)             │
        │                             │                    │               │
        │                        EmptyGraphError      MissingWiringError   │
        │                        SharedOwnership...   ScheduleNotSupp...   │
        │                        MissingScheduleError                      │
        │                                                                  │
        │  ExecutionError (EXECUTION)                                      │
        │       │                                                          │
        │  UnsupportedOperationError  AsyncNotSupportedError               │
        │  RuntimeClosedError                                              │
        └─────────────────────────────────────────────────────────────────┘

Examples:
    >>> error = ScheduleParseError("bad expression").with_context(schedule="* *")
    >>> error.context.schedule
    '* *'
    >>> error.to_dict()["category"]
    'PARSE'

Tags:
    error-handling, exception-hierarchy, error-context, cronflow

Doc-Types:
    - API Reference
    - Error Handling Guide
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class ErrorCategory(str, Enum):
    """Standard error categories for classification and routing."""

    # Input errors
    PARSE = "PARSE"                  # Malformed schedule expressions
    VALIDATION = "VALIDATION"        # Graph structure violations

    # Configuration errors (never retryable)
    CONFIG = "CONFIG"                # Missing wiring, unsupported presets

    # Runtime errors
    EXECUTION = "EXECUTION"          # Executor capability / lifecycle errors
    STORAGE = "STORAGE"              # Storage backend failures

    # Internal errors
    INTERNAL = "INTERNAL"            # Bugs, unexpected state
    UNKNOWN = "UNKNOWN"


@dataclass
class ErrorContext:
    """Structured metadata attached to an error.

    Attributes:
        item_id: Id assigned by the manager to a registered item
        item_name: Name of the registered task or graph
        task_name: Name of the task node involved
        schedule: Schedule expression text
        executor: Name of the executor
        metadata: Additional key-value pairs
    """

    item_id: int | None = None
    item_name: str | None = None
    task_name: str | None = None
    schedule: str | None = None
    executor: str | None = None

    metadata: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for logging."""
        result = {}
        for key in ["item_id", "item_name", "task_name", "schedule", "executor"]:
            value = getattr(self, key)
            if value is not None:
                result[key] = value
        if self.metadata:
            result.update(self.metadata)
        return result


class CronflowError(Exception):
    """Base exception for all cronflow errors.

    Subclasses set ``default_category`` and ``default_retryable``; both
    can be overridden per instance.

    Example:
        >>> try:
        ...     raise KeyError("missing")
        ... except KeyError as e:
        ...     error = CronflowError("lookup failed", cause=e)
        >>> error.cause
        KeyError('missing')
    """

    default_category: ErrorCategory = ErrorCategory.INTERNAL
    default_retryable: bool = False

    def __init__(
        self,
        message: str,
        *,
        category: ErrorCategory | None = None,
        retryable: bool | None = None,
        context: ErrorContext | None = None,
        cause: Exception | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.category = category or self.default_category
        self.retryable = retryable if retryable is not None else self.default_retryable
        self.context = context or ErrorContext()
        self.cause = cause

        if cause is not None:
            self.__cause__ = cause

    def with_context(self, **kwargs: Any) -> CronflowError:
        """Add context to this error (fluent API).

        Usage:
            raise GraphError("bad edge").with_context(task_name="extract")
        """
        for key, value in kwargs.items():
            if hasattr(self.context, key) and key != "metadata":
                setattr(self.context, key, value)
            else:
                self.context.metadata[key] = value
        return self

    def to_dict(self) -> dict[str, Any]:
        """Convert error to dictionary for logging/serialization."""
        result = {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "category": self.category.value,
            "retryable": self.retryable,
        }
        context_dict = self.context.to_dict()
        if context_dict:
            result["context"] = context_dict
        if self.cause is not None:
            result["cause"] = str(self.cause)
        return result

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.message!r}, category={self.category.value})"


# =============================================================================
# PARSE ERRORS
# =============================================================================


class ScheduleParseError(CronflowError):
    """Expression is neither a valid cron rule nor a recognised preset."""

    default_category = ErrorCategory.PARSE


# =============================================================================
# STRUCTURAL ERRORS
# =============================================================================


class GraphError(CronflowError):
    """Task graph structure violation."""

    default_category = ErrorCategory.VALIDATION


class EmptyGraphError(GraphError):
    """Graph has no root nodes."""


class SharedOwnershipError(GraphError):
    """A node is still held by another owner and cannot be taken."""


class MissingScheduleError(GraphError):
    """``prepare`` was called before a schedule expression was set."""


# =============================================================================
# CONFIGURATION ERRORS
# =============================================================================


class ConfigError(CronflowError):
    """Invalid or incomplete configuration."""

    default_category = ErrorCategory.CONFIG


class MissingWiringError(ConfigError):
    """Storage, trigger or executor was not provided to a session."""


class ScheduleNotSupportedError(ConfigError):
    """Schedule parsed, but has no concrete firing semantics (``@once``)."""


# =============================================================================
# EXECUTION ERRORS
# =============================================================================


class ExecutionError(CronflowError):
    """Executor failure."""

    default_category = ErrorCategory.EXECUTION


class UnsupportedOperationError(ExecutionError):
    """The executor does not implement the requested execution path."""


class AsyncNotSupportedError(ExecutionError):
    """An asynchronous runnable was assigned to a sync-only executor."""


class RuntimeClosedError(ExecutionError):
    """Work was submitted to an executor that has been shut down."""


# =============================================================================
# STORAGE ERRORS
# =============================================================================


class StorageError(CronflowError):
    """Storage backend failure."""

    default_category = ErrorCategory.STORAGE


__all__ = [
    "ErrorCategory",
    "ErrorContext",
    "CronflowError",
    "ScheduleParseError",
    "GraphError",
    "EmptyGraphError",
    "SharedOwnershipError",
    "MissingScheduleError",
    "ConfigError",
    "MissingWiringError",
    "ScheduleNotSupportedError",
    "ExecutionError",
    "UnsupportedOperationError",
    "AsyncNotSupportedError",
    "RuntimeClosedError",
    "StorageError",
]
