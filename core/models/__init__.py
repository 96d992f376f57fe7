# ============================================================================
# MODELS MODULE
# ============================================================================
# STATUS: Model exports
# PURPOSE: Central export point for task and event models
# LAST_REVIEWED: 18 OCT 2026
# ============================================================================
"""
Models Module - Central Export Point

- task: Task / TaskResult wire models (pydantic)
- events: task runner lifecycle events (dataclasses)
"""

from core.models.task import Task, TaskResult, TaskExecLog
from core.models.events import (
    EventType,
    TaskRunnerEvent,
    PollStarted,
    PollCompleted,
    PollFailure,
    TaskExecutionStarted,
    TaskExecutionCompleted,
    TaskExecutionFailure,
    TaskUpdateFailure,
)

__all__ = [
    # Task
    "Task",
    "TaskResult",
    "TaskExecLog",
    # Events
    "EventType",
    "TaskRunnerEvent",
    "PollStarted",
    "PollCompleted",
    "PollFailure",
    "TaskExecutionStarted",
    "TaskExecutionCompleted",
    "TaskExecutionFailure",
    "TaskUpdateFailure",
]
