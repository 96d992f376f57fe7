# ============================================================================
# CONFIGURATION DEFAULTS
# ============================================================================
# STATUS: Core - Default configuration values
# PURPOSE: Centralized defaults for polling, concurrency and result reporting
# CREATED: 18 OCT 2026
# ============================================================================
"""
Configuration Defaults

Provides sensible defaults for the poll -> execute -> report loop.
These can be overridden via environment variables, worker registration
options, or TaskRunner.update_options().

Design:
- Immutable dataclasses for defaults
- Environment variable overrides
- Type-safe access
"""

import os
from dataclasses import dataclass
from typing import Optional


DEFAULT_POLL_INTERVAL_MS = 100
DEFAULT_CONCURRENCY = 1
DEFAULT_BATCH_POLLING_TIMEOUT_MS = 100
MAX_RETRIES = 3
DEFAULT_UPDATE_RETRY_DELAY_SECONDS = 10.0
DEFAULT_ERROR_MESSAGE = "An unknown error occurred"


@dataclass(frozen=True)
class RunnerDefaults:
    """
    Defaults for a task runner.

    Poll intervals and server-side poll timeouts are milliseconds, matching
    the task server's query parameters. The update retry delay is seconds;
    attempt N waits N * update_retry_delay_seconds.
    """
    poll_interval_ms: int = DEFAULT_POLL_INTERVAL_MS
    concurrency: int = DEFAULT_CONCURRENCY
    batch_polling_timeout_ms: int = DEFAULT_BATCH_POLLING_TIMEOUT_MS

    # Result reporting
    max_retries: int = MAX_RETRIES
    update_retry_delay_seconds: float = DEFAULT_UPDATE_RETRY_DELAY_SECONDS

    # Failure reason when a handler error carries no message
    error_message: str = DEFAULT_ERROR_MESSAGE

    @classmethod
    def from_env(cls) -> "RunnerDefaults":
        """Create from environment variables."""
        return cls(
            poll_interval_ms=int(os.getenv("TASK_WORKER_POLL_INTERVAL_MS", DEFAULT_POLL_INTERVAL_MS)),
            concurrency=int(os.getenv("TASK_WORKER_CONCURRENCY", DEFAULT_CONCURRENCY)),
            batch_polling_timeout_ms=int(
                os.getenv("TASK_WORKER_BATCH_POLLING_TIMEOUT_MS", DEFAULT_BATCH_POLLING_TIMEOUT_MS)
            ),
            max_retries=int(os.getenv("TASK_WORKER_MAX_RETRIES", MAX_RETRIES)),
            update_retry_delay_seconds=float(
                os.getenv("TASK_WORKER_UPDATE_RETRY_DELAY", DEFAULT_UPDATE_RETRY_DELAY_SECONDS)
            ),
        )


# ============================================================================
# GLOBAL DEFAULTS INSTANCE
# ============================================================================

_defaults: Optional[RunnerDefaults] = None


def get_defaults() -> RunnerDefaults:
    """Get global defaults instance."""
    global _defaults
    if _defaults is None:
        _defaults = RunnerDefaults.from_env()
    return _defaults


def reset_defaults() -> None:
    """Reset defaults (for testing)."""
    global _defaults
    _defaults = None


# ============================================================================
# EXPORTS
# ============================================================================

__all__ = [
    "DEFAULT_POLL_INTERVAL_MS",
    "DEFAULT_CONCURRENCY",
    "DEFAULT_BATCH_POLLING_TIMEOUT_MS",
    "MAX_RETRIES",
    "DEFAULT_UPDATE_RETRY_DELAY_SECONDS",
    "DEFAULT_ERROR_MESSAGE",
    "RunnerDefaults",
    "get_defaults",
    "reset_defaults",
]
