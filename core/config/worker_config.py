# ============================================================================
# PER-WORKER CONFIGURATION RESOLUTION
# ============================================================================
# STATUS: Core - Worker settings from code defaults and environment
# PURPOSE: Let operators override worker settings without code changes
# CREATED: 18 OCT 2026
# ============================================================================
"""
Worker Configuration

Resolves each worker setting from, in priority order:

1. CONDUCTOR_WORKER_<NAME>_<PROPERTY>      worker-specific, upper case
2. conductor.worker.<name>.<property>      worker-specific, dotted
3. CONDUCTOR_WORKER_ALL_<PROPERTY>         global, upper case
4. conductor.worker.all.<property>         global, dotted
5. the value given at registration (code default)
6. the system default (RunnerDefaults, see core.config.defaults)

Property names in environment variables are snake_case without units,
e.g. CONDUCTOR_WORKER_ECHO_POLL_INTERVAL=250 sets poll_interval_ms.
"""

import logging
import os
from dataclasses import dataclass, fields
from typing import Any, Dict, Mapping, Optional

from core.config.defaults import get_defaults

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class WorkerConfig:
    """Resolved settings for one worker."""
    poll_interval_ms: Optional[int] = None
    domain: Optional[str] = None
    worker_id: Optional[str] = None
    concurrency: Optional[int] = None
    poll_timeout_ms: Optional[int] = None
    paused: Optional[bool] = None

    def to_dict(self) -> Dict[str, Any]:
        """Set values only."""
        return {
            f.name: getattr(self, f.name)
            for f in fields(self)
            if getattr(self, f.name) is not None
        }


# attribute -> (environment property name, type)
_PROPERTIES: Dict[str, tuple] = {
    "poll_interval_ms": ("poll_interval", int),
    "domain": ("domain", str),
    "worker_id": ("worker_id", str),
    "concurrency": ("concurrency", int),
    "poll_timeout_ms": ("poll_timeout", int),
    "paused": ("paused", bool),
}

def _system_defaults() -> Dict[str, Any]:
    defaults = get_defaults()
    return {
        "poll_interval_ms": defaults.poll_interval_ms,
        "concurrency": defaults.concurrency,
        "poll_timeout_ms": defaults.batch_polling_timeout_ms,
        "paused": False,
    }

_TRUE_VALUES = ("true", "1", "yes", "on")


def _parse_env_value(raw: str, expected_type: type) -> Any:
    """Convert an environment string; None when it cannot be converted."""
    if expected_type is bool:
        return raw.strip().lower() in _TRUE_VALUES

    if expected_type is int:
        try:
            return int(float(raw))
        except ValueError:
            logger.info(f"Cannot convert '{raw}' to number, ignoring invalid value")
            return None

    return raw


def _env_keys(worker_name: str, prop: str) -> list:
    return [
        f"CONDUCTOR_WORKER_{worker_name.upper()}_{prop.upper()}",
        f"conductor.worker.{worker_name}.{prop}",
        f"CONDUCTOR_WORKER_ALL_{prop.upper()}",
        f"conductor.worker.all.{prop}",
    ]


def _find_env(worker_name: str, prop: str, environ: Mapping[str, str]) -> Optional[str]:
    """Name of the first environment variable that sets this property."""
    for key in _env_keys(worker_name, prop):
        if key in environ:
            return key
    return None


def resolve_worker_config(
    worker_name: str,
    code_defaults: Optional[Mapping[str, Any]] = None,
    environ: Optional[Mapping[str, str]] = None,
) -> WorkerConfig:
    """
    Resolve a worker's settings.

    Args:
        worker_name: Task definition name
        code_defaults: Values given at registration (None values ignored)
        environ: Environment mapping (defaults to os.environ)

    Returns:
        WorkerConfig with every resolvable field set
    """
    environ = os.environ if environ is None else environ
    code_defaults = code_defaults or {}
    system_defaults = _system_defaults()
    resolved: Dict[str, Any] = {}

    for attr, (prop, expected_type) in _PROPERTIES.items():
        key = _find_env(worker_name, prop, environ)
        if key is not None:
            value = _parse_env_value(environ[key], expected_type)
            if value is not None:
                logger.debug(f"Using environment config: {key}={environ[key]}")
                resolved[attr] = value
                continue

        if code_defaults.get(attr) is not None:
            resolved[attr] = code_defaults[attr]
            continue

        if attr in system_defaults:
            resolved[attr] = system_defaults[attr]

    return WorkerConfig(**resolved)


def get_worker_config_summary(
    worker_name: str,
    config: WorkerConfig,
    environ: Optional[Mapping[str, str]] = None,
) -> str:
    """Multi-line summary naming where each value came from."""
    environ = os.environ if environ is None else environ
    lines = [f"Worker '{worker_name}' configuration:"]

    for attr, value in config.to_dict().items():
        key = _find_env(worker_name, _PROPERTIES[attr][0], environ)
        source = f"from {key}" if key else "from code"
        lines.append(f"  {attr}: {value} ({source})")

    return "\n".join(lines)


def get_worker_config_oneline(worker_name: str, config: WorkerConfig) -> str:
    """Compact single-line summary for startup logs."""
    parts = [f"name={worker_name}", f"pid={os.getpid()}"]
    parts.append(f"status={'paused' if config.paused else 'active'}")

    if config.poll_interval_ms is not None:
        parts.append(f"poll_interval={config.poll_interval_ms}ms")
    if config.domain is not None:
        parts.append(f"domain={config.domain}")
    if config.concurrency is not None:
        parts.append(f"concurrency={config.concurrency}")
    if config.poll_timeout_ms is not None:
        parts.append(f"poll_timeout={config.poll_timeout_ms}ms")

    return f"Task Worker[{', '.join(parts)}]"


__all__ = [
    "WorkerConfig",
    "resolve_worker_config",
    "get_worker_config_summary",
    "get_worker_config_oneline",
]
