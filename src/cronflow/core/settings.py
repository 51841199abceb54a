"""Runtime settings for cronflow.

Tick cadences, worker pool sizes and logging options are read from
``CRONFLOW_*`` environment variables (or a ``.env`` file) and validated
by pydantic at startup. Every component accepts explicit overrides and
falls back to these values.

Examples:
    >>> import os
    >>> os.environ["CRONFLOW_THREAD_TICK_INTERVAL"] = "0.25"
    >>> get_settings.cache_clear()
    >>> get_settings().thread_tick_interval
    0.25

Tags:
    settings, configuration, pydantic, environment, cronflow
"""

from __future__ import annotations

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class CronflowSettings(BaseSettings):
    """Scheduler configuration.

    Fields
    ──────
    log_level             : structlog log level
    json_logs             : JSON output (None = auto-detect from tty)
    thread_tick_interval  : ThreadTrigger cadence in seconds
    async_tick_interval   : AsyncTrigger cadence in seconds
    min_tick_interval     : lower bound when shrinking the cadence to fit a clock
    async_worker_threads  : worker pool size of AsyncExecutor (sync runnables)
    completion_queue_size : bound of the completion-reporting queue
    stop_timeout          : seconds to wait for loops/threads on shutdown
    clock_sample_size     : occurrences sampled by ScheduleClock.init
    """

    model_config = SettingsConfigDict(
        env_prefix="CRONFLOW_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ── Observability ────────────────────────────────────────────
    log_level: str = "INFO"
    json_logs: bool | None = None

    # ── Trigger loops ────────────────────────────────────────────
    thread_tick_interval: float = Field(default=0.5, gt=0)
    async_tick_interval: float = Field(default=0.1, gt=0)
    min_tick_interval: float = Field(default=0.05, gt=0)

    # ── Execution ────────────────────────────────────────────────
    async_worker_threads: int = Field(default=4, ge=1)
    completion_queue_size: int = Field(default=100, ge=1)
    stop_timeout: float = Field(default=5.0, gt=0)

    # ── Clocks ───────────────────────────────────────────────────
    clock_sample_size: int = Field(default=21, ge=2)


@lru_cache(maxsize=1)
def get_settings() -> CronflowSettings:
    """Return the process-wide settings instance."""
    return CronflowSettings()


__all__ = ["CronflowSettings", "get_settings"]
