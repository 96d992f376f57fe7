# ============================================================================
# HANDLERS PACKAGE
# ============================================================================
# STATUS: Core - Worker registration and lookup
# PURPOSE: Register and discover task handlers
# CREATED: 18 OCT 2026
# ============================================================================
"""
Handlers

Provides a decorator-based registration system for task handlers.

Usage:
    from handlers import worker, HandlerResult

    @worker("my_task", concurrency=4)
    async def my_task(task: Task) -> HandlerResult:
        return HandlerResult.completed({"key": "value"})

Example workers live in handlers.examples and are registered only when
that module is imported (worker.main does so by default).
"""

from handlers.registry import (
    HandlerFunc,
    HandlerResult,
    ConductorWorker,
    RegisteredWorker,
    WorkerRegistrationError,
    WorkerRegistry,
    default_registry,
    registry_key,
    register_worker,
    get_registered_workers,
    get_registered_worker,
    clear_worker_registry,
    get_worker_count,
    worker,
    execute_handler,
)

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
