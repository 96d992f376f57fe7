# ============================================================================
# TASK RUNNER
# ============================================================================
# STATUS: Core - Poll, execute, classify and report for one worker
# PURPOSE: Turn polled tasks into reported results, emitting lifecycle events
# CREATED: 18 OCT 2026
# ============================================================================
"""
Task Runner

One TaskRunner per registered worker. It owns a Poller and supplies its
two callbacks:

    batch_poll(count)  -> client.batch_poll(...)
    execute_task(task) -> handler -> TaskResult -> client.update_task(...)

Result reporting retries up to max_retries times with linear backoff
(attempt N waits N * update_retry_delay_seconds). A result that still
cannot be reported is logged as CRITICAL and published as a
TaskUpdateFailure event; it never raises into the polling loop.

Handler failures are reported, not raised:
- NonRetryableException (or terminal=True) -> FAILED_WITH_TERMINAL_ERROR
- anything else                             -> FAILED
"""

import asyncio
import json
import logging
import socket
import time
from dataclasses import dataclass, fields, replace
from typing import Any, Callable, Dict, Iterable, List, Optional

from core.config.defaults import (
    DEFAULT_BATCH_POLLING_TIMEOUT_MS,
    DEFAULT_CONCURRENCY,
    DEFAULT_POLL_INTERVAL_MS,
    get_defaults,
)
from core.contracts import TaskResultStatus
from core.logging import ComponentType, log_context
from core.models.events import (
    PollCompleted,
    PollFailure,
    PollStarted,
    TaskExecutionCompleted,
    TaskExecutionFailure,
    TaskExecutionStarted,
    TaskUpdateFailure,
)
from core.models.task import Task, TaskResult
from handlers.registry import ConductorWorker, HandlerResult, execute_handler
from worker.events import EventDispatcher
from worker.exceptions import FailureKind, classify_failure
from worker.poller import Poller, PollerOptions

logger = logging.getLogger(__name__)


ErrorHandler = Callable[[BaseException, Optional[Task]], Any]


# ============================================================================
# OPTIONS
# ============================================================================

@dataclass(frozen=True)
class TaskRunnerOptions:
    """Effective settings for one runner."""
    worker_id: Optional[str] = None
    domain: Optional[str] = None
    poll_interval_ms: int = DEFAULT_POLL_INTERVAL_MS
    concurrency: int = DEFAULT_CONCURRENCY
    batch_polling_timeout_ms: int = DEFAULT_BATCH_POLLING_TIMEOUT_MS
    paused: bool = False


def _default_error_handler(error: BaseException, task: Optional[Task] = None) -> None:
    task_id = task.task_id if task is not None else None
    logger.error(f"Task runner error (task={task_id}): {error}")


def _output_size(output: Dict[str, Any]) -> Optional[int]:
    """Size of the JSON-encoded output, None if it cannot be encoded."""
    try:
        return len(json.dumps(output).encode("utf-8"))
    except (TypeError, ValueError):
        return None


# ============================================================================
# RUNNER
# ============================================================================

class TaskRunner:
    """Runs one worker's poll -> execute -> report cycle."""

    def __init__(
        self,
        worker: ConductorWorker,
        client: Any,
        options: Optional[TaskRunnerOptions] = None,
        on_error: Optional[ErrorHandler] = None,
        max_retries: Optional[int] = None,
        event_listeners: Optional[Iterable[Any]] = None,
        update_retry_delay_seconds: Optional[float] = None,
    ):
        """
        Initialize runner.

        Args:
            worker: Task type and handler
            client: Task server client (batch_poll / update_task)
            options: Effective settings (worker fields fill gaps)
            on_error: Called with (error, task) on handler and update failures
            max_retries: Update attempts before a result is given up
                (default: TASK_WORKER_MAX_RETRIES or 3)
            event_listeners: Lifecycle event listeners
            update_retry_delay_seconds: Backoff unit between update attempts
                (default: TASK_WORKER_UPDATE_RETRY_DELAY or 10s)
        """
        defaults = get_defaults()
        if max_retries is None:
            max_retries = defaults.max_retries
        if update_retry_delay_seconds is None:
            update_retry_delay_seconds = defaults.update_retry_delay_seconds
        if max_retries < 1:
            raise ValueError(f"max_retries must be >= 1, got {max_retries}")

        self.worker = worker
        self.client = client
        self.max_retries = max_retries
        self.update_retry_delay_seconds = update_retry_delay_seconds
        self._on_error = on_error or _default_error_handler
        self._error_message = defaults.error_message

        options = options or TaskRunnerOptions(
            domain=worker.domain,
            poll_interval_ms=worker.poll_interval_ms or defaults.poll_interval_ms,
            concurrency=worker.concurrency or defaults.concurrency,
            batch_polling_timeout_ms=defaults.batch_polling_timeout_ms,
        )
        if options.worker_id is None:
            options = replace(options, worker_id=worker.worker_id or socket.gethostname())
        self._options = options

        self.events = EventDispatcher()
        for listener in event_listeners or []:
            self.events.register(listener)

        self._poller: Poller[Task] = Poller(
            name=worker.task_def_name,
            poll_fn=self.batch_poll,
            execute_fn=self.execute_task,
            options=PollerOptions(
                concurrency=options.concurrency,
                poll_interval_ms=options.poll_interval_ms,
            ),
        )

    # ------------------------------------------------------------------
    # PROPERTIES
    # ------------------------------------------------------------------

    @property
    def task_type(self) -> str:
        return self.worker.task_def_name

    @property
    def worker_id(self) -> str:
        return self._options.worker_id

    @property
    def options(self) -> TaskRunnerOptions:
        return self._options

    @property
    def is_polling(self) -> bool:
        return self._poller.is_polling

    @property
    def poller(self) -> Poller:
        return self._poller

    # ------------------------------------------------------------------
    # LIFECYCLE
    # ------------------------------------------------------------------

    def start_polling(self) -> None:
        """Start the poller; no-op if already polling."""
        if self._poller.is_polling:
            return
        logger.info(
            f"Starting task runner: type={self.task_type}, worker_id={self.worker_id}, "
            f"concurrency={self._options.concurrency}, "
            f"poll_interval={self._options.poll_interval_ms}ms"
            + (f", domain={self._options.domain}" if self._options.domain else "")
            + (" (paused)" if self._options.paused else "")
        )
        self._poller.start_polling()

    async def stop_polling(self) -> None:
        """Stop polling and wait for in-flight tasks to be reported."""
        await self._poller.stop_polling()
        logger.info(f"Task runner stopped: type={self.task_type}")

    def update_options(self, **changes: Any) -> bool:
        """
        Apply changed settings; unchanged values are ignored.

        Raises:
            TypeError: Unknown option name

        Returns:
            True if any option changed
        """
        known = {f.name for f in fields(TaskRunnerOptions)}
        unknown = set(changes) - known
        if unknown:
            raise TypeError(f"Unknown task runner option(s): {', '.join(sorted(unknown))}")

        diff = {
            key: value
            for key, value in changes.items()
            if getattr(self._options, key) != value
        }
        if not diff:
            return False

        self._options = replace(self._options, **diff)
        self._poller.update_options(
            concurrency=self._options.concurrency,
            poll_interval_ms=self._options.poll_interval_ms,
        )
        logger.info(f"Task runner {self.task_type} options updated: {diff}")
        return True

    # ------------------------------------------------------------------
    # POLL
    # ------------------------------------------------------------------

    async def batch_poll(self, count: int) -> List[Task]:
        """
        Fetch up to count tasks.

        Raises whatever the client raises, after publishing PollFailure.
        """
        await self.events.publish_poll_started(
            PollStarted(
                task_type=self.task_type,
                worker_id=self.worker_id,
                poll_count=count,
            )
        )

        if self._options.paused:
            logger.debug(f"Worker {self.task_type} is paused; skipping poll")
            return []

        start = time.monotonic()
        try:
            tasks = await self.client.batch_poll(
                self.task_type,
                worker_id=self.worker_id,
                domain=self._options.domain,
                count=count,
                timeout_ms=self._options.batch_polling_timeout_ms,
            )
        except Exception as e:
            await self.events.publish_poll_failure(
                PollFailure(
                    task_type=self.task_type,
                    duration_ms=(time.monotonic() - start) * 1000,
                    cause=e,
                )
            )
            raise

        tasks = list(tasks or [])
        await self.events.publish_poll_completed(
            PollCompleted(
                task_type=self.task_type,
                duration_ms=(time.monotonic() - start) * 1000,
                tasks_received=len(tasks),
            )
        )
        return tasks

    # ------------------------------------------------------------------
    # EXECUTE
    # ------------------------------------------------------------------

    async def execute_task(self, task: Task) -> None:
        """Run the handler for one task and report the outcome."""
        if not task.task_id or not task.workflow_instance_id:
            logger.error(
                f"Dropping malformed task for {self.task_type}: "
                f"task_id={task.task_id!r}, workflow_instance_id={task.workflow_instance_id!r}"
            )
            return

        with log_context(
            task_id=task.task_id,
            workflow_instance_id=task.workflow_instance_id,
            task_type=self.task_type,
            worker_id=self.worker_id,
            domain=self._options.domain,
            component=ComponentType.RUNNER.value,
        ):
            await self._execute_in_context(task)

    async def _execute_in_context(self, task: Task) -> None:
        await self.events.publish_task_execution_started(
            TaskExecutionStarted(
                task_type=self.task_type,
                task_id=task.task_id,
                worker_id=self.worker_id,
                workflow_instance_id=task.workflow_instance_id,
            )
        )

        start = time.monotonic()
        try:
            outcome: HandlerResult = await execute_handler(self.worker.execute, task)
            result = TaskResult(
                task_id=task.task_id,
                workflow_instance_id=task.workflow_instance_id,
                status=TaskResultStatus(outcome.status),
                output_data=outcome.output_data,
                reason_for_incompletion=outcome.reason_for_incompletion,
                logs=outcome.logs,
            )
        except Exception as e:
            duration_ms = (time.monotonic() - start) * 1000
            await self._handle_failure(task, e, duration_ms)
            return

        duration_ms = (time.monotonic() - start) * 1000
        status = result.status
        if not status.is_terminal():
            logger.info(f"Task {task.task_id} still in progress after {duration_ms:.0f}ms")
        elif status.is_failure():
            logger.warning(
                f"Task {task.task_id} reported {status.value} by handler after "
                f"{duration_ms:.0f}ms: {result.reason_for_incompletion}"
            )
        else:
            logger.info(
                f"Task {task.task_id} finished: status={status.value}, "
                f"duration={duration_ms:.0f}ms"
            )
        await self.events.publish_task_execution_completed(
            TaskExecutionCompleted(
                task_type=self.task_type,
                task_id=task.task_id,
                worker_id=self.worker_id,
                workflow_instance_id=task.workflow_instance_id,
                duration_ms=duration_ms,
                output_size_bytes=_output_size(result.output_data),
            )
        )
        await self.update_task_with_retry(task, result)

    async def _handle_failure(self, task: Task, error: Exception, duration_ms: float) -> None:
        kind = classify_failure(error)
        logger.error(
            f"Task {task.task_id} failed ({kind.value}) after {duration_ms:.0f}ms: {error}",
            exc_info=True,
        )
        await self.events.publish_task_execution_failure(
            TaskExecutionFailure(
                task_type=self.task_type,
                task_id=task.task_id,
                worker_id=self.worker_id,
                cause=error,
                workflow_instance_id=task.workflow_instance_id,
                duration_ms=duration_ms,
            )
        )

        result = TaskResult.failed(
            task.task_id,
            task.workflow_instance_id,
            reason=str(error) or self._error_message,
            terminal=kind is FailureKind.TERMINAL,
        )
        await self.update_task_with_retry(task, result)
        self._report_error(error, task)

    # ------------------------------------------------------------------
    # REPORT
    # ------------------------------------------------------------------

    async def update_task_with_retry(self, task: Task, result: TaskResult) -> None:
        """
        Post a result, retrying with linear backoff. Never raises.

        The posted copy carries this runner's worker_id; a TaskUpdateFailure
        event carries the result exactly as passed in.
        """
        posted = result.model_copy(update={"worker_id": self.worker_id})
        last_error: Optional[BaseException] = None

        for attempt in range(1, self.max_retries + 1):
            try:
                await self.client.update_task(posted)
                logger.debug(f"Reported task {posted.task_id}: {posted.status.value}")
                return
            except Exception as e:
                last_error = e
                self._report_error(e, task)
                logger.error(
                    f"Error updating task {result.task_id} "
                    f"(attempt {attempt}/{self.max_retries}): {e}"
                )
                if attempt < self.max_retries:
                    await asyncio.sleep(attempt * self.update_retry_delay_seconds)

        logger.error(
            f"CRITICAL: Task update failed after {self.max_retries} attempts. "
            f"Task result LOST for task_id={result.task_id}, "
            f"workflow_instance_id={result.workflow_instance_id}, "
            f"status={result.status.value}"
        )
        await self.events.publish_task_update_failure(
            TaskUpdateFailure(
                task_type=self.task_type,
                task_id=result.task_id,
                worker_id=self.worker_id,
                cause=last_error,
                retry_count=self.max_retries,
                task_result=result,
                workflow_instance_id=result.workflow_instance_id,
            )
        )

    def _report_error(self, error: BaseException, task: Optional[Task]) -> None:
        try:
            self._on_error(error, task)
        except Exception as e:
            logger.error(f"Error handler raised: {e}")


# ============================================================================
# EXPORTS
# ============================================================================

__all__ = [
    "ErrorHandler",
    "TaskRunner",
    "TaskRunnerOptions",
]
