# ============================================================================
# TASK MODELS
# ============================================================================
# STATUS: Core model - Polled task and reported result
# PURPOSE: Define what the task server hands out and what comes back
# LAST_REVIEWED: 18 OCT 2026
# EXPORTS: Task, TaskResult, TaskExecLog
# DEPENDENCIES: pydantic
# ============================================================================
"""
Task Models

Task = a unit of work pulled from the remote queue.

Two models:
- Task: What the task server returns from a (batch) poll
- TaskResult: What the worker posts back after executing a task

Both use the server's camelCase field names on the wire and snake_case
attributes in Python. Unknown wire fields on Task are kept (extra="allow")
so a newer server does not break an older worker.
"""

import time
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from core.contracts import TaskResultStatus


class Task(BaseModel):
    """
    A task as returned by the task server poll endpoints.

    Read-only to the engine. task_id and workflow_instance_id are optional
    here because a malformed task must still parse so it can be rejected
    with a useful log line.
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="allow",
    )

    # Identity
    task_id: Optional[str] = Field(default=None, description="Task instance id")
    workflow_instance_id: Optional[str] = Field(
        default=None,
        description="Owning workflow execution id",
    )
    task_type: Optional[str] = None
    task_def_name: Optional[str] = None
    reference_task_name: Optional[str] = None

    # Payload
    input_data: Dict[str, Any] = Field(default_factory=dict)
    status: Optional[str] = None

    # Scheduling metadata
    domain: Optional[str] = None
    worker_id: Optional[str] = None
    poll_count: int = 0
    retry_count: int = 0
    callback_after_seconds: Optional[int] = None
    reason_for_incompletion: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Task":
        """Parse from a wire dict (camelCase) or a snake_case dict."""
        return cls.model_validate(data)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to a camelCase dict, omitting unset optional fields."""
        return self.model_dump(by_alias=True, exclude_none=True)


class TaskExecLog(BaseModel):
    """A single execution log line attached to a TaskResult."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    log: str
    task_id: Optional[str] = None
    created_time: int = Field(default_factory=lambda: int(time.time() * 1000))


class TaskResult(BaseModel):
    """
    Outcome of executing a Task, posted to POST /tasks.

    Constructed by the task runner after the handler returns or raises.
    Not retained once the update call succeeds.
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        use_enum_values=False,
    )

    # Identity
    task_id: str
    workflow_instance_id: str

    # Result
    status: TaskResultStatus = TaskResultStatus.COMPLETED
    output_data: Dict[str, Any] = Field(default_factory=dict)
    reason_for_incompletion: Optional[str] = None

    # Execution metadata
    worker_id: Optional[str] = None
    logs: Optional[List[TaskExecLog]] = None
    callback_after_seconds: Optional[int] = None

    @classmethod
    def failed(
        cls,
        task_id: str,
        workflow_instance_id: str,
        reason: str,
        terminal: bool = False,
    ) -> "TaskResult":
        """Create a failure result with an empty output payload."""
        return cls(
            task_id=task_id,
            workflow_instance_id=workflow_instance_id,
            status=(
                TaskResultStatus.FAILED_WITH_TERMINAL_ERROR
                if terminal
                else TaskResultStatus.FAILED
            ),
            output_data={},
            reason_for_incompletion=reason,
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert to the camelCase request body."""
        return self.model_dump(by_alias=True, exclude_none=True, mode="json")


__all__ = [
    "Task",
    "TaskExecLog",
    "TaskResult",
]
