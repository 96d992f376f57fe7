# ============================================================================
# CORE MODULE
# ============================================================================
# STATUS: Core module initialization
# PURPOSE: Export status enums and task models
# LAST_REVIEWED: 18 OCT 2026
# ============================================================================

from core.contracts import TaskResultStatus
from core.models import (
    Task,
    TaskResult,
    TaskExecLog,
    EventType,
)

__all__ = [
    # Enums
    "TaskResultStatus",
    "EventType",
    # Models
    "Task",
    "TaskResult",
    "TaskExecLog",
]
