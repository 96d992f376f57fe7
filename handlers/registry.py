# ============================================================================
# WORKER REGISTRY
# ============================================================================
# STATUS: Core - Worker registration and lookup
# PURPOSE: Register task handlers by (task type, domain) and discover them
# CREATED: 18 OCT 2026
# ============================================================================
"""
Worker Registry

Maps (task definition name, domain) to the handler that processes that
task type. The TaskHandler reads a registry when it is constructed and
builds one TaskRunner per entry.

Design:
- WorkerRegistry is an ordinary object; tests create their own and pass
  it to TaskHandler(registry=...)
- default_registry is the process-wide instance the @worker decorator
  populates at import time
- Re-registering the same key overwrites and logs a warning
- The empty domain is its own key, distinct from every named domain
- Supports both sync and async handlers
"""

import asyncio
import contextvars
import functools
import inspect
import logging
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, List, Optional, Union

from core.contracts import TaskResultStatus
from core.models.task import Task, TaskExecLog

logger = logging.getLogger(__name__)


# ============================================================================
# HANDLER TYPES
# ============================================================================

@dataclass
class HandlerResult:
    """
    Result returned by handler functions.

    Handlers may also return a dict shaped like a partial task result
    ({"status": ..., "outputData": ...}) or None; both are normalized
    through from_outcome().
    """
    status: TaskResultStatus = TaskResultStatus.COMPLETED
    output_data: Dict[str, Any] = field(default_factory=dict)
    reason_for_incompletion: Optional[str] = None
    logs: Optional[List[TaskExecLog]] = None

    @classmethod
    def completed(cls, output_data: Optional[Dict[str, Any]] = None) -> "HandlerResult":
        """Create a success result."""
        return cls(status=TaskResultStatus.COMPLETED, output_data=output_data or {})

    @classmethod
    def in_progress(cls, output_data: Optional[Dict[str, Any]] = None) -> "HandlerResult":
        """Report partial progress; the server will hand the task out again."""
        return cls(status=TaskResultStatus.IN_PROGRESS, output_data=output_data or {})

    @classmethod
    def from_outcome(cls, outcome: Any) -> "HandlerResult":
        """
        Normalize whatever a handler returned.

        Raises:
            TypeError: outcome is not a HandlerResult, dict or None
        """
        if outcome is None:
            return cls()

        if isinstance(outcome, HandlerResult):
            return outcome

        if isinstance(outcome, dict):
            output = outcome.get("outputData", outcome.get("output_data")) or {}
            reason = outcome.get("reasonForIncompletion", outcome.get("reason_for_incompletion"))
            logs = outcome.get("logs")
            return cls(
                status=TaskResultStatus(outcome.get("status", TaskResultStatus.COMPLETED)),
                output_data=dict(output),
                reason_for_incompletion=reason,
                logs=[TaskExecLog.model_validate(entry) for entry in logs] if logs else None,
            )

        raise TypeError(
            f"Handler returned unsupported type {type(outcome).__name__}; "
            f"expected HandlerResult, dict or None"
        )


# Handler function type
HandlerFunc = Callable[[Task], Union[HandlerResult, Dict[str, Any], None, Awaitable[Any]]]


# ============================================================================
# WORKER DEFINITIONS
# ============================================================================

@dataclass(frozen=True)
class ConductorWorker:
    """
    Configuration describing one task type's handler.

    Immutable once a TaskRunner is built from it. None means "use the
    runner default" for every optional field.
    """
    task_def_name: str
    execute: HandlerFunc
    domain: Optional[str] = None
    concurrency: Optional[int] = None
    poll_interval_ms: Optional[int] = None
    worker_id: Optional[str] = None


@dataclass(frozen=True)
class RegisteredWorker(ConductorWorker):
    """A worker added through the registry, with discovery-only options."""
    poll_timeout_ms: Optional[int] = None
    paused: bool = False

    @property
    def key(self) -> str:
        return registry_key(self.task_def_name, self.domain)


# ============================================================================
# EXCEPTIONS
# ============================================================================

class WorkerRegistrationError(ValueError):
    """Raised when a worker registration is malformed."""
    pass


# ============================================================================
# REGISTRY
# ============================================================================

def registry_key(task_def_name: str, domain: Optional[str] = None) -> str:
    """Key for a (task type, domain) pair; None and "" are the same domain."""
    return f"{task_def_name}:{domain or ''}"


class WorkerRegistry:
    """Table of registered workers, keyed by task type and domain."""

    def __init__(self):
        self._workers: Dict[str, RegisteredWorker] = {}

    def register(self, worker: RegisteredWorker) -> None:
        """Insert a worker; an existing key is overwritten with a warning."""
        key = worker.key
        if key in self._workers:
            logger.warning(
                f'Worker "{worker.task_def_name}" with domain '
                f'"{worker.domain or "default"}" is already registered. '
                f"Overwriting previous registration."
            )
        self._workers[key] = worker
        logger.debug(
            f"Registered worker: {worker.task_def_name} "
            f"({getattr(worker.execute, '__module__', '?')}."
            f"{getattr(worker.execute, '__qualname__', repr(worker.execute))})"
        )

    def get_all(self) -> List[RegisteredWorker]:
        """All registered workers, in registration order."""
        return list(self._workers.values())

    def get(self, task_def_name: str, domain: Optional[str] = None) -> Optional[RegisteredWorker]:
        """Exact (task type, domain) lookup; None when absent."""
        return self._workers.get(registry_key(task_def_name, domain))

    def clear(self) -> None:
        """
        Remove every registration.

        Primarily for testing.
        """
        self._workers.clear()
        logger.debug("Cleared all workers")

    @property
    def size(self) -> int:
        return len(self._workers)

    def __len__(self) -> int:
        return len(self._workers)

    def __contains__(self, key: object) -> bool:
        return key in self._workers


# Process-wide registry populated by @worker
default_registry = WorkerRegistry()


def register_worker(worker: RegisteredWorker, registry: Optional[WorkerRegistry] = None) -> None:
    """Register a worker in the given registry (default: process registry)."""
    (registry or default_registry).register(worker)


def get_registered_workers(registry: Optional[WorkerRegistry] = None) -> List[RegisteredWorker]:
    """All workers in the given registry."""
    return (registry or default_registry).get_all()


def get_registered_worker(
    task_def_name: str,
    domain: Optional[str] = None,
    registry: Optional[WorkerRegistry] = None,
) -> Optional[RegisteredWorker]:
    """Look up one worker."""
    return (registry or default_registry).get(task_def_name, domain)


def clear_worker_registry(registry: Optional[WorkerRegistry] = None) -> None:
    """Empty the given registry."""
    (registry or default_registry).clear()


def get_worker_count(registry: Optional[WorkerRegistry] = None) -> int:
    """Number of registered workers."""
    return (registry or default_registry).size


def worker(
    task_def_name: str,
    *,
    domain: Optional[str] = None,
    concurrency: Optional[int] = None,
    poll_interval_ms: Optional[int] = None,
    worker_id: Optional[str] = None,
    poll_timeout_ms: Optional[int] = None,
    paused: bool = False,
    registry: Optional[WorkerRegistry] = None,
) -> Callable[[HandlerFunc], HandlerFunc]:
    """
    Decorator to register a handler function as a worker.

    The decorated function is returned unchanged so it stays directly
    callable (and testable).

    Args:
        task_def_name: Task type this handler processes
        domain: Optional partition key
        concurrency: Max tasks executing at once for this worker
        poll_interval_ms: Sleep between polls
        worker_id: Identifier reported to the server (default: hostname)
        poll_timeout_ms: Server-side long-poll wait
        paused: Register but do not take work
        registry: Target registry (default: process registry)

    Example:
        @worker("resize_image", concurrency=4)
        async def resize(task: Task) -> HandlerResult:
            return HandlerResult.completed({"width": 640})
    """
    if not task_def_name:
        raise WorkerRegistrationError(
            "worker() requires a task_def_name. Example: @worker(\"my_task\")"
        )

    def decorator(func: HandlerFunc) -> HandlerFunc:
        if not callable(func):
            raise WorkerRegistrationError(
                f"@worker can only be applied to callables. Received: {type(func).__name__}"
            )

        register_worker(
            RegisteredWorker(
                task_def_name=task_def_name,
                execute=func,
                domain=domain,
                concurrency=concurrency,
                poll_interval_ms=poll_interval_ms,
                worker_id=worker_id,
                poll_timeout_ms=poll_timeout_ms,
                paused=paused,
            ),
            registry,
        )
        return func

    return decorator


# ============================================================================
# ASYNC HANDLER EXECUTION
# ============================================================================

async def execute_handler(handler: HandlerFunc, task: Task) -> HandlerResult:
    """
    Execute a handler against a task.

    Handles both sync and async handlers. Exceptions raised by the
    handler propagate; the task runner classifies them.

    Args:
        handler: Registered handler function
        task: Polled task

    Returns:
        Normalized HandlerResult
    """
    if asyncio.iscoroutinefunction(handler):
        result = await handler(task)
    else:
        # Run sync handler in thread pool, carrying the caller's log context
        loop = asyncio.get_running_loop()
        ctx = contextvars.copy_context()
        result = await loop.run_in_executor(None, functools.partial(ctx.run, handler, task))

    if inspect.isawaitable(result):
        result = await result

    return HandlerResult.from_outcome(result)


# ============================================================================
# EXPORTS
# ============================================================================

__all__ = [
    "HandlerFunc",
    "HandlerResult",
    "ConductorWorker",
    "RegisteredWorker",
    "WorkerRegistrationError",
    "WorkerRegistry",
    "default_registry",
    "registry_key",
    "register_worker",
    "get_registered_workers",
    "get_registered_worker",
    "clear_worker_registry",
    "get_worker_count",
    "worker",
    "execute_handler",
]
