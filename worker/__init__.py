# ============================================================================
# WORKER MODULE
# ============================================================================
# STATUS: Core - Task execution engine components
# PURPOSE: Poll tasks, execute handlers, report results
# CREATED: 18 OCT 2026
# ============================================================================
"""
Worker Module

Components of the poll -> execute -> report engine:
- client: Async HTTP client for the task server
- poller: Concurrency-bounded polling loop
- runner: Per-worker task runner (execute, classify, report with retry)
- task_handler: Lifecycle for a set of runners
- events: Lifecycle event dispatcher
- exceptions: Terminal failure classification
- main: Worker process entry point
"""

from worker.client import (
    TaskClient,
    TaskClientError,
)
from worker.events import (
    EventDispatcher,
    TaskRunnerEventsListener,
)
from worker.exceptions import (
    FailureKind,
    NonRetryableException,
    classify_failure,
)
from worker.poller import (
    Poller,
    PollerOptions,
    PollerState,
)
from worker.runner import (
    TaskRunner,
    TaskRunnerOptions,
)
from worker.task_handler import (
    TaskHandler,
    WorkerModuleImportError,
)

__all__ = [
    # Client
    "TaskClient",
    "TaskClientError",
    # Events
    "EventDispatcher",
    "TaskRunnerEventsListener",
    # Exceptions
    "FailureKind",
    "NonRetryableException",
    "classify_failure",
    # Poller
    "Poller",
    "PollerOptions",
    "PollerState",
    # Runner
    "TaskRunner",
    "TaskRunnerOptions",
    # Task handler
    "TaskHandler",
    "WorkerModuleImportError",
]
