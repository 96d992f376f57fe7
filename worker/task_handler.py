# ============================================================================
# TASK HANDLER
# ============================================================================
# STATUS: Core - Lifecycle for a set of task runners
# PURPOSE: Build one TaskRunner per worker and start/stop them together
# CREATED: 18 OCT 2026
# ============================================================================
"""
Task Handler

Entry point for worker processes:

    async with TaskHandler(client, import_modules=["myapp.workers"]) as handler:
        handler.start_workers()
        await shutdown_event.wait()

Workers come from two places:
- the registry (populated by @worker), unless scan_for_decorated=False
- the workers argument (manually constructed ConductorWorker objects)

Each worker's effective settings are resolved through
core.config.resolve_worker_config, so environment variables override
whatever was given at registration.
"""

import asyncio
import importlib
import logging
import socket
from typing import Any, Iterable, List, Optional

from core.config.worker_config import (
    get_worker_config_oneline,
    get_worker_config_summary,
    resolve_worker_config,
)
from handlers.registry import (
    ConductorWorker,
    RegisteredWorker,
    WorkerRegistry,
    default_registry,
)
from worker.runner import TaskRunner, TaskRunnerOptions

logger = logging.getLogger(__name__)


class WorkerModuleImportError(ImportError):
    """Raised when a module listed in import_modules cannot be imported."""
    pass


class TaskHandler:
    """Owns and drives one TaskRunner per worker."""

    def __init__(
        self,
        client: Any,
        workers: Optional[Iterable[ConductorWorker]] = None,
        scan_for_decorated: bool = True,
        registry: Optional[WorkerRegistry] = None,
        event_listeners: Optional[Iterable[Any]] = None,
        import_modules: Optional[Iterable[str]] = None,
        max_retries: Optional[int] = None,
    ):
        """
        Initialize task handler.

        Args:
            client: Task server client shared by every runner
            workers: Manually constructed workers
            scan_for_decorated: Include workers from the registry
            registry: Registry to scan (default: process registry)
            event_listeners: Listeners attached to every runner
            import_modules: Modules imported before scanning, so their
                @worker decorators run
            max_retries: Update attempts per result
                (default: TASK_WORKER_MAX_RETRIES or 3)

        Raises:
            WorkerModuleImportError: An import_modules entry failed to import
        """
        self.client = client
        self._event_listeners = list(event_listeners or [])
        self._max_retries = max_retries
        self._running = False

        for module_name in import_modules or []:
            self._import_module(module_name)

        all_workers: List[ConductorWorker] = []
        if scan_for_decorated:
            registered = (registry or default_registry).get_all()
            logger.info(f"Discovered {len(registered)} registered worker(s)")
            all_workers.extend(registered)
        all_workers.extend(workers or [])

        if not all_workers:
            logger.warning(
                "No workers found. Register workers with @worker or pass them "
                "via the workers argument."
            )

        self._runners: List[TaskRunner] = [self._build_runner(w) for w in all_workers]

    @staticmethod
    def _import_module(module_name: str) -> None:
        try:
            importlib.import_module(module_name)
            logger.info(f"Imported worker module: {module_name}")
        except Exception as e:
            raise WorkerModuleImportError(
                f"Failed to import worker module '{module_name}': {e}"
            ) from e

    def _build_runner(self, worker: ConductorWorker) -> TaskRunner:
        code_defaults = {
            "poll_interval_ms": worker.poll_interval_ms,
            "domain": worker.domain,
            "worker_id": worker.worker_id,
            "concurrency": worker.concurrency,
        }
        if isinstance(worker, RegisteredWorker):
            code_defaults["poll_timeout_ms"] = worker.poll_timeout_ms
            code_defaults["paused"] = worker.paused

        config = resolve_worker_config(worker.task_def_name, code_defaults)
        logger.debug(get_worker_config_summary(worker.task_def_name, config))
        logger.info(get_worker_config_oneline(worker.task_def_name, config))

        options = TaskRunnerOptions(
            worker_id=config.worker_id,
            domain=config.domain,
            poll_interval_ms=config.poll_interval_ms,
            concurrency=config.concurrency,
            batch_polling_timeout_ms=config.poll_timeout_ms,
            paused=bool(config.paused),
        )
        return TaskRunner(
            worker=worker,
            client=self.client,
            options=options,
            max_retries=self._max_retries,
            event_listeners=self._event_listeners,
        )

    # ------------------------------------------------------------------
    # PROPERTIES
    # ------------------------------------------------------------------

    @property
    def runners(self) -> List[TaskRunner]:
        return list(self._runners)

    @property
    def running(self) -> bool:
        return self._running

    @property
    def worker_count(self) -> int:
        return len(self._runners)

    @property
    def running_worker_count(self) -> int:
        return sum(1 for runner in self._runners if runner.is_polling)

    # ------------------------------------------------------------------
    # LIFECYCLE
    # ------------------------------------------------------------------

    def start_workers(self) -> None:
        """Start every runner on the running event loop; no-op if started."""
        if self._running:
            logger.warning("Workers are already running")
            return

        hostname = socket.gethostname()
        for runner in self._runners:
            if not runner.options.worker_id:
                runner.update_options(worker_id=hostname)
            runner.start_polling()

        self._running = True
        logger.info(f"Started {len(self._runners)} worker(s)")

    async def stop_workers(self) -> None:
        """Stop every runner concurrently; no-op if not started."""
        if not self._running:
            return

        logger.info(f"Stopping {len(self._runners)} worker(s)...")
        results = await asyncio.gather(
            *(runner.stop_polling() for runner in self._runners),
            return_exceptions=True,
        )
        for runner, result in zip(self._runners, results):
            if isinstance(result, BaseException):
                logger.error(f"Error stopping worker {runner.task_type}: {result}")

        self._running = False
        logger.info("All workers stopped")

    async def __aenter__(self) -> "TaskHandler":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.stop_workers()


__all__ = [
    "TaskHandler",
    "WorkerModuleImportError",
]
