# ============================================================================
# TASK RUNNER LIFECYCLE EVENTS
# ============================================================================
# STATUS: Core model - Poll/execute/update lifecycle events
# PURPOSE: Typed payloads published to task runner event listeners
# LAST_REVIEWED: 18 OCT 2026
# EXPORTS: TaskRunnerEvent, PollStarted, PollCompleted, PollFailure,
#          TaskExecutionStarted, TaskExecutionCompleted,
#          TaskExecutionFailure, TaskUpdateFailure, EventType
# DEPENDENCIES: dataclasses, enum
# ============================================================================
"""
Task Runner Events

Every event carries the task type and a UTC timestamp. Execution and
update events also carry task id, worker id and the owning workflow
execution id.

TaskUpdateFailure is the only way a lost result is surfaced: the task
ran, but every attempt to report its outcome failed.

Events are plain frozen dataclasses (not pydantic models) because they
carry live exception objects.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from core.models.task import TaskResult


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class EventType(str, Enum):
    """Event kinds, mapped to listener callback names."""

    POLL_STARTED = "poll_started"
    POLL_COMPLETED = "poll_completed"
    POLL_FAILURE = "poll_failure"
    TASK_EXECUTION_STARTED = "task_execution_started"
    TASK_EXECUTION_COMPLETED = "task_execution_completed"
    TASK_EXECUTION_FAILURE = "task_execution_failure"
    TASK_UPDATE_FAILURE = "task_update_failure"

    @property
    def callback_name(self) -> str:
        """Listener method invoked for this event kind."""
        return f"on_{self.value}"


# ============================================================================
# BASE
# ============================================================================

@dataclass(frozen=True)
class TaskRunnerEvent:
    """Fields common to every event."""
    task_type: str
    timestamp: datetime = field(default_factory=_utcnow, kw_only=True)

    event_type = None  # overridden per subclass


# ============================================================================
# POLL EVENTS
# ============================================================================

@dataclass(frozen=True)
class PollStarted(TaskRunnerEvent):
    """A batch poll is about to be issued."""
    worker_id: str
    poll_count: int

    event_type = EventType.POLL_STARTED


@dataclass(frozen=True)
class PollCompleted(TaskRunnerEvent):
    """A batch poll returned."""
    duration_ms: float
    tasks_received: int

    event_type = EventType.POLL_COMPLETED


@dataclass(frozen=True)
class PollFailure(TaskRunnerEvent):
    """A batch poll raised."""
    duration_ms: float
    cause: BaseException

    event_type = EventType.POLL_FAILURE


# ============================================================================
# EXECUTION EVENTS
# ============================================================================

@dataclass(frozen=True)
class TaskExecutionStarted(TaskRunnerEvent):
    """The handler is about to be invoked for a task."""
    task_id: str
    worker_id: str
    workflow_instance_id: Optional[str] = None

    event_type = EventType.TASK_EXECUTION_STARTED


@dataclass(frozen=True)
class TaskExecutionCompleted(TaskRunnerEvent):
    """The handler returned normally."""
    task_id: str
    worker_id: str
    workflow_instance_id: Optional[str] = None
    duration_ms: float = 0.0
    output_size_bytes: Optional[int] = None

    event_type = EventType.TASK_EXECUTION_COMPLETED


@dataclass(frozen=True)
class TaskExecutionFailure(TaskRunnerEvent):
    """The handler raised."""
    task_id: str
    worker_id: str
    cause: BaseException
    workflow_instance_id: Optional[str] = None
    duration_ms: float = 0.0

    event_type = EventType.TASK_EXECUTION_FAILURE


@dataclass(frozen=True)
class TaskUpdateFailure(TaskRunnerEvent):
    """
    Reporting a result failed after every retry.

    CRITICAL: the task executed but the server never learned the outcome.
    """
    task_id: str
    worker_id: str
    cause: BaseException
    retry_count: int
    task_result: TaskResult
    workflow_instance_id: Optional[str] = None

    event_type = EventType.TASK_UPDATE_FAILURE


__all__ = [
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
