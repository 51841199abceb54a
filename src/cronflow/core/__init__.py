"""Cross-cutting primitives: errors, logging, settings."""

from .errors import (
    AsyncNotSupportedError,
    ConfigError,
    CronflowError,
    EmptyGraphError,
    ErrorCategory,
    ErrorContext,
    ExecutionError,
    GraphError,
    MissingScheduleError,
    MissingWiringError,
    RuntimeClosedError,
    ScheduleNotSupportedError,
    ScheduleParseError,
    SharedOwnershipError,
    StorageError,
    UnsupportedOperationError,
)
from .logging import LogContext, configure_logging, configure_logging_from_settings, get_logger
from .settings import CronflowSettings, get_settings

__all__ = [
    "AsyncNotSupportedError",
    "ConfigError",
    "CronflowError",
    "EmptyGraphError",
    "ErrorCategory",
    "ErrorContext",
    "ExecutionError",
    "GraphError",
    "MissingScheduleError",
    "MissingWiringError",
    "RuntimeClosedError",
    "ScheduleNotSupportedError",
    "ScheduleParseError",
    "SharedOwnershipError",
    "StorageError",
    "UnsupportedOperationError",
    "LogContext",
    "configure_logging",
    "configure_logging_from_settings",
    "get_logger",
    "CronflowSettings",
    "get_settings",
]
