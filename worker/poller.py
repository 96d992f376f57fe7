# ============================================================================
# POLLER
# ============================================================================
# STATUS: Core - Concurrency-bounded polling loop
# PURPOSE: Drive fetch -> dispatch -> sleep cycles with graceful drain
# CREATED: 18 OCT 2026
# ============================================================================
"""
Poller

Generic polling loop over two callbacks:

- poll_fn(count) -> items     fetch up to count items (may return fewer)
- execute_fn(item)            process one item

Each cycle:
1. available = concurrency - in_flight
2. if available >= 1: items = await poll_fn(available)
3. each item is started as its own asyncio task (not awaited)
4. sleep poll_interval, unless a stop was requested

Concurrency is bounded by slot accounting, not by blocking: the loop
never asks for more items than there are free slots. Items a server
returns beyond the request are queued and started as slots free up.

States: IDLE -> POLLING -> STOPPING -> IDLE

stop_polling() stops new fetches and waits for queued and in-flight
executions to finish (drain). It never cancels a running execution.
"""

import asyncio
import logging
from collections import deque
from dataclasses import dataclass, replace
from enum import Enum
from typing import Any, Awaitable, Callable, Deque, Generic, Iterable, Optional, Set, TypeVar

from core.config.defaults import DEFAULT_CONCURRENCY, DEFAULT_POLL_INTERVAL_MS

logger = logging.getLogger(__name__)

T = TypeVar("T")


class PollerState(str, Enum):
    """Polling loop lifecycle states."""
    IDLE = "idle"
    POLLING = "polling"
    STOPPING = "stopping"


@dataclass(frozen=True)
class PollerOptions:
    """Settings applied at the start of each cycle."""
    concurrency: int = DEFAULT_CONCURRENCY
    poll_interval_ms: int = DEFAULT_POLL_INTERVAL_MS

    def __post_init__(self):
        if self.concurrency < 1:
            raise ValueError(f"concurrency must be >= 1, got {self.concurrency}")
        if self.poll_interval_ms < 0:
            raise ValueError(f"poll_interval_ms must be >= 0, got {self.poll_interval_ms}")


class Poller(Generic[T]):
    """Concurrency-bounded poll/dispatch loop."""

    def __init__(
        self,
        name: str,
        poll_fn: Callable[[int], Awaitable[Optional[Iterable[T]]]],
        execute_fn: Callable[[T], Awaitable[Any]],
        options: Optional[PollerOptions] = None,
    ):
        """
        Initialize poller.

        Args:
            name: Label for log lines (usually the task type)
            poll_fn: Batch fetch callback
            execute_fn: Per-item callback
            options: Concurrency and poll interval
        """
        self.name = name
        self._poll_fn = poll_fn
        self._execute_fn = execute_fn
        self._options = options or PollerOptions()

        # State
        self._state = PollerState.IDLE
        self._stop_event = asyncio.Event()
        self._loop_task: Optional[asyncio.Task] = None
        self._in_flight: Set[asyncio.Task] = set()
        self._backlog: Deque[T] = deque()

        # Stats
        self._polls = 0
        self._poll_errors = 0
        self._dispatched = 0

    # ------------------------------------------------------------------
    # PROPERTIES
    # ------------------------------------------------------------------

    @property
    def options(self) -> PollerOptions:
        return self._options

    @property
    def state(self) -> PollerState:
        return self._state

    @property
    def is_polling(self) -> bool:
        return self._state == PollerState.POLLING

    @property
    def in_flight(self) -> int:
        """Number of executions currently running."""
        return len(self._in_flight)

    @property
    def stats(self) -> dict:
        return {
            "polls": self._polls,
            "poll_errors": self._poll_errors,
            "dispatched": self._dispatched,
            "in_flight": self.in_flight,
            "queued": len(self._backlog),
        }

    # ------------------------------------------------------------------
    # LIFECYCLE
    # ------------------------------------------------------------------

    def start_polling(self) -> None:
        """
        Start the polling loop on the running event loop.

        No-op if already polling or still draining.
        """
        if self._state != PollerState.IDLE:
            logger.debug(f"Poller {self.name} already {self._state.value}; ignoring start")
            return

        self._stop_event.clear()
        self._state = PollerState.POLLING
        self._loop_task = asyncio.create_task(self._run(), name=f"poller:{self.name}")

    async def stop_polling(self) -> None:
        """Stop fetching and wait for in-flight executions to finish."""
        if self._state != PollerState.POLLING:
            return

        self._state = PollerState.STOPPING
        self._stop_event.set()

        try:
            if self._loop_task is not None:
                await self._loop_task

            if self._in_flight or self._backlog:
                logger.info(
                    f"Poller {self.name} waiting for {len(self._in_flight)} in-flight "
                    f"and {len(self._backlog)} queued task(s)..."
                )
                await self._drain()
        finally:
            self._loop_task = None
            self._state = PollerState.IDLE

        logger.debug(f"Poller {self.name} stopped. Stats: {self.stats}")

    def update_options(
        self,
        concurrency: Optional[int] = None,
        poll_interval_ms: Optional[int] = None,
    ) -> bool:
        """
        Swap concurrency and/or poll interval for the next cycle.

        Returns:
            True if anything changed
        """
        changes = {}
        if concurrency is not None and concurrency != self._options.concurrency:
            changes["concurrency"] = concurrency
        if poll_interval_ms is not None and poll_interval_ms != self._options.poll_interval_ms:
            changes["poll_interval_ms"] = poll_interval_ms

        if not changes:
            return False

        self._options = replace(self._options, **changes)
        logger.debug(f"Poller {self.name} options updated: {self._options}")
        return True

    # ------------------------------------------------------------------
    # LOOP
    # ------------------------------------------------------------------

    async def _run(self) -> None:
        while not self._stop_event.is_set():
            await self._poll_once()
            await self._sleep()

    async def _poll_once(self) -> None:
        """One fetch + dispatch cycle."""
        available = self._fill_from_backlog()
        if available < 1:
            return

        self._polls += 1
        try:
            items = await self._poll_fn(available)
        except Exception as e:
            self._poll_errors += 1
            logger.error(f"Error polling for {self.name}: {e}")
            return

        items = list(items or [])
        for item in items[:available]:
            self._dispatch(item)

        if len(items) > available:
            # Already taken from the server; run them as slots free up
            logger.warning(
                f"Poller {self.name} received {len(items)} items for {available} slot(s); "
                f"queueing {len(items) - available}"
            )
            self._backlog.extend(items[available:])

    def _fill_from_backlog(self) -> int:
        """Dispatch queued items into free slots; returns slots still free."""
        available = self._options.concurrency - len(self._in_flight)
        while self._backlog and available > 0:
            self._dispatch(self._backlog.popleft())
            available -= 1
        return available if not self._backlog else 0

    async def _drain(self) -> None:
        """Finish queued and in-flight items without fetching new ones."""
        while self._backlog or self._in_flight:
            self._fill_from_backlog()
            if self._in_flight:
                await asyncio.wait(list(self._in_flight), return_when=asyncio.FIRST_COMPLETED)

    def _dispatch(self, item: T) -> None:
        task = asyncio.create_task(self._execute(item))
        self._in_flight.add(task)
        task.add_done_callback(self._in_flight.discard)
        self._dispatched += 1

    async def _execute(self, item: T) -> None:
        try:
            await self._execute_fn(item)
        except Exception as e:
            # execute_fn is expected to contain its own failures
            logger.exception(f"Unhandled error executing item for {self.name}: {e}")

    async def _sleep(self) -> None:
        """Sleep one poll interval, waking early on stop."""
        interval = self._options.poll_interval_ms / 1000
        try:
            await asyncio.wait_for(self._stop_event.wait(), timeout=interval)
        except asyncio.TimeoutError:
            pass


__all__ = [
    "Poller",
    "PollerOptions",
    "PollerState",
]
