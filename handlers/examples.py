# ============================================================================
# EXAMPLE WORKERS
# ============================================================================
# STATUS: Examples - Sample worker implementations
# PURPOSE: Demonstrate worker registration and handler patterns
# CREATED: 18 OCT 2026
# ============================================================================
"""
Example Workers

Sample implementations showing how to write task handlers.
These can be used for smoke testing and as templates for real workers.

Loaded by worker.main by default; importing this module registers the
workers in the process registry.
"""

import asyncio
import logging
import random

from core.models.task import Task
from handlers.registry import HandlerResult, worker
from worker.exceptions import NonRetryableException

logger = logging.getLogger(__name__)


# ============================================================================
# BASIC WORKERS
# ============================================================================

@worker("echo")
async def echo(task: Task) -> HandlerResult:
    """
    Simple echo worker for testing.

    Returns the task input as output. If input_data contains
    "sleep_seconds", waits that long first.
    """
    logger.info(f"Echo worker called with input: {task.input_data}")

    sleep_seconds = float(task.input_data.get("sleep_seconds", 0))
    if sleep_seconds > 0:
        await asyncio.sleep(sleep_seconds)

    return HandlerResult.completed({
        "echoed": task.input_data,
        "task_id": task.task_id,
    })


@worker("greet")
def greet(task: Task) -> dict:
    """Sync worker returning a plain dict; runs in the thread pool."""
    name = task.input_data.get("name", "World")
    return {"status": "COMPLETED", "outputData": {"greeting": f"Hello, {name}!"}}


# ============================================================================
# FAILURE WORKERS
# ============================================================================

@worker("flaky")
async def flaky(task: Task) -> HandlerResult:
    """
    Fails randomly to exercise server-side retries.

    input_data.failure_rate: probability of failure (default 0.5)
    """
    failure_rate = float(task.input_data.get("failure_rate", 0.5))
    if random.random() < failure_rate:
        raise RuntimeError(f"Random failure (rate={failure_rate})")

    return HandlerResult.completed({"survived": True, "retry_count": task.retry_count})


@worker("always_terminal")
async def always_terminal(task: Task) -> HandlerResult:
    """Always fails with a terminal error; the server will not retry it."""
    reason = task.input_data.get("reason", "Input can never be processed")
    raise NonRetryableException(reason)


__all__ = [
    "echo",
    "greet",
    "flaky",
    "always_terminal",
]
