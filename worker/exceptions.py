# ============================================================================
# WORKER EXCEPTIONS
# ============================================================================
# STATUS: Core - Handler failure classification
# PURPOSE: Distinguish failures the server may retry from terminal ones
# CREATED: 18 OCT 2026
# ============================================================================
"""
Worker Exceptions

A handler signals a permanent failure by raising NonRetryableException
(or any exception with a truthy ``terminal`` attribute). The task is then
reported as FAILED_WITH_TERMINAL_ERROR and the server will not retry it,
regardless of the task definition's retry count.

Use it for failures where a retry would produce the same result:
invalid input, missing entities, authorization failures, unsupported
operations.

    @worker("validate_order")
    async def validate_order(task: Task):
        order = await get_order(task.input_data["orderId"])
        if order is None:
            raise NonRetryableException(f"Order {task.input_data['orderId']} not found")
        return HandlerResult.completed({"validated": True})

Every other exception is reported as FAILED and stays eligible for the
server's retry policy.
"""

from enum import Enum

from core.contracts import TaskResultStatus


class FailureKind(str, Enum):
    """How a handler failure is reported."""
    RETRYABLE = "retryable"
    TERMINAL = "terminal"

    @property
    def status(self) -> TaskResultStatus:
        if self is FailureKind.TERMINAL:
            return TaskResultStatus.FAILED_WITH_TERMINAL_ERROR
        return TaskResultStatus.FAILED


class NonRetryableException(Exception):
    """Raised by a handler when the task can never succeed."""
    terminal = True


def classify_failure(error: BaseException) -> FailureKind:
    """Tag a handler exception as retryable or terminal."""
    if getattr(error, "terminal", False):
        return FailureKind.TERMINAL
    return FailureKind.RETRYABLE


__all__ = [
    "FailureKind",
    "NonRetryableException",
    "classify_failure",
]
