# ============================================================================
# TASK RUNNER EVENT DISPATCHER
# ============================================================================
# STATUS: Core - Lifecycle event publication
# PURPOSE: Fan out poll/execution/update events to registered listeners
# CREATED: 18 OCT 2026
# ============================================================================
"""
Event Dispatcher

Decoupled event system for observability and metrics collection.

A listener is any object implementing some of the callback methods named
on TaskRunnerEventsListener. Missing methods are skipped. Callbacks may
be plain functions or coroutines.

Listener failures are isolated: they are logged and never reach the
task runner or other listeners. With no listeners registered, publishing
returns immediately.
"""

import asyncio
import inspect
import logging
from typing import Any, List

from core.models.events import (
    EventType,
    PollCompleted,
    PollFailure,
    PollStarted,
    TaskExecutionCompleted,
    TaskExecutionFailure,
    TaskExecutionStarted,
    TaskRunnerEvent,
    TaskUpdateFailure,
)

logger = logging.getLogger(__name__)


class TaskRunnerEventsListener:
    """
    Listener capability set.

    Subclassing is optional; implement only the callbacks you need. Each
    may return None or an awaitable.
    """

    def on_poll_started(self, event: PollStarted) -> Any: ...

    def on_poll_completed(self, event: PollCompleted) -> Any: ...

    def on_poll_failure(self, event: PollFailure) -> Any: ...

    def on_task_execution_started(self, event: TaskExecutionStarted) -> Any: ...

    def on_task_execution_completed(self, event: TaskExecutionCompleted) -> Any: ...

    def on_task_execution_failure(self, event: TaskExecutionFailure) -> Any: ...

    def on_task_update_failure(self, event: TaskUpdateFailure) -> Any:
        """CRITICAL: a task result was lost after all update retries."""


class EventDispatcher:
    """Publishes task runner events to registered listeners."""

    def __init__(self):
        self._listeners: List[Any] = []

    def register(self, listener: Any) -> None:
        """Register an event listener."""
        self._listeners.append(listener)

    def unregister(self, listener: Any) -> None:
        """Remove a listener; unknown listeners are ignored."""
        try:
            self._listeners.remove(listener)
        except ValueError:
            pass

    @property
    def listener_count(self) -> int:
        return len(self._listeners)

    async def publish_poll_started(self, event: PollStarted) -> None:
        await self._publish(EventType.POLL_STARTED, event)

    async def publish_poll_completed(self, event: PollCompleted) -> None:
        await self._publish(EventType.POLL_COMPLETED, event)

    async def publish_poll_failure(self, event: PollFailure) -> None:
        await self._publish(EventType.POLL_FAILURE, event)

    async def publish_task_execution_started(self, event: TaskExecutionStarted) -> None:
        await self._publish(EventType.TASK_EXECUTION_STARTED, event)

    async def publish_task_execution_completed(self, event: TaskExecutionCompleted) -> None:
        await self._publish(EventType.TASK_EXECUTION_COMPLETED, event)

    async def publish_task_execution_failure(self, event: TaskExecutionFailure) -> None:
        await self._publish(EventType.TASK_EXECUTION_FAILURE, event)

    async def publish_task_update_failure(self, event: TaskUpdateFailure) -> None:
        await self._publish(EventType.TASK_UPDATE_FAILURE, event)

    async def publish(self, event: TaskRunnerEvent) -> None:
        """Publish any event, routed by its event_type."""
        await self._publish(event.event_type, event)

    async def _publish(self, event_type: EventType, event: TaskRunnerEvent) -> None:
        if not self._listeners:
            return

        method = event_type.callback_name
        # Snapshot: listeners may (un)register while we await
        callbacks = [
            getattr(listener, method)
            for listener in list(self._listeners)
            if callable(getattr(listener, method, None))
        ]
        if not callbacks:
            return

        await asyncio.gather(*(self._invoke(method, cb, event) for cb in callbacks))

    async def _invoke(self, method: str, callback: Any, event: TaskRunnerEvent) -> None:
        try:
            result = callback(event)
            if inspect.isawaitable(result):
                await result
        except Exception as e:
            logger.error(f"Event listener failed for {method}: {e}", exc_info=True)


__all__ = [
    "TaskRunnerEventsListener",
    "EventDispatcher",
]
