# ============================================================================
# BASE CONTRACTS & ENUMS
# ============================================================================
# STATUS: Foundation - Core enums shared by the worker engine
# PURPOSE: Task result status values exchanged with the task server
# LAST_REVIEWED: 18 OCT 2026
# EXPORTS: TaskResultStatus
# DEPENDENCIES: enum
# ============================================================================
"""
Base contracts for the task worker engine.

Status values cross the HTTP boundary verbatim, so the enum values are
the exact upper-case strings the task server uses.
"""

from enum import Enum


# ============================================================================
# STATUS ENUMS
# ============================================================================

class TaskResultStatus(str, Enum):
    """
    Outcome status a worker reports for a task.

    State transitions:
        IN_PROGRESS -> COMPLETED
                    -> FAILED                      (server may retry)
                    -> FAILED_WITH_TERMINAL_ERROR  (server must not retry)
    """
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"
    FAILED_WITH_TERMINAL_ERROR = "FAILED_WITH_TERMINAL_ERROR"

    def is_terminal(self) -> bool:
        """Check if this is a terminal state (no further transitions)."""
        return self is not TaskResultStatus.IN_PROGRESS

    def is_failure(self) -> bool:
        """Check if this represents a failed outcome."""
        return self in (
            TaskResultStatus.FAILED,
            TaskResultStatus.FAILED_WITH_TERMINAL_ERROR,
        )


# ============================================================================
# EXPORTS
# ============================================================================

__all__ = [
    "TaskResultStatus",
]
