# ============================================================================
# CONFIGURATION MODULE
# ============================================================================
# STATUS: Core - Configuration and defaults
# PURPOSE: Centralized configuration management
# CREATED: 18 OCT 2026
# ============================================================================
"""
Configuration Module

Provides runner defaults, task server connection settings and per-worker
environment overrides.
"""

from core.config.defaults import (
    DEFAULT_ERROR_MESSAGE,
    MAX_RETRIES,
    RunnerDefaults,
    get_defaults,
    reset_defaults,
)
from core.config.client import ClientConfig
from core.config.worker_config import (
    WorkerConfig,
    resolve_worker_config,
    get_worker_config_summary,
    get_worker_config_oneline,
)

__all__ = [
    "DEFAULT_ERROR_MESSAGE",
    "MAX_RETRIES",
    "RunnerDefaults",
    "get_defaults",
    "reset_defaults",
    "ClientConfig",
    "WorkerConfig",
    "resolve_worker_config",
    "get_worker_config_summary",
    "get_worker_config_oneline",
]
