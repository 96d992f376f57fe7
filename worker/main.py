# ============================================================================
# WORKER MAIN ENTRY POINT
# ============================================================================
# STATUS: Core - Worker process entry point
# PURPOSE: Start task runners in standalone mode
# CREATED: 18 OCT 2026
# ============================================================================
"""
Worker Main Entry Point

Starts a worker process that:
1. Loads handler modules (registering their @worker functions)
2. Connects to the task server
3. Polls and executes tasks until SIGTERM/SIGINT

Usage:
    python -m worker.main

Environment Variables:
    CONDUCTOR_SERVER_URL: Task server API base URL
    CONDUCTOR_AUTH_HEADER: Optional "Name: value" header sent on every call
    HANDLER_MODULES: Comma-separated list of extra handler modules to load
    TASK_WORKER_LOG_LEVEL: DEBUG, INFO, WARNING, ERROR
    TASK_WORKER_LOG_FORMAT: "json" for structured output
    PORT: Health server port (default 8000)
    CONDUCTOR_WORKER_<NAME>_<PROPERTY>: Per-worker overrides (see core.config)
"""

import asyncio
import importlib
import os
import signal
from typing import List, Optional

from aiohttp import web

from __version__ import __version__, BUILD_DATE
from core.config.client import ClientConfig
from core.logging import configure_logging, get_logger
from handlers.registry import get_registered_workers
from worker.client import TaskClient
from worker.task_handler import TaskHandler

logger = get_logger(__name__)

# Worker state for health checks
_worker_healthy = True
_worker_status = "starting"
_task_handler: Optional[TaskHandler] = None


# ============================================================================
# HEALTH SERVER
# ============================================================================

async def health_handler(request: web.Request) -> web.Response:
    """
    Health check endpoint.

    Returns version, running flag and worker counts.
    """
    response_data = {
        "status": "healthy" if _worker_healthy else "unhealthy",
        "worker_status": _worker_status,
        "version": __version__,
        "build_date": BUILD_DATE,
        "running": _task_handler.running if _task_handler else False,
        "workers": _task_handler.worker_count if _task_handler else 0,
        "running_workers": _task_handler.running_worker_count if _task_handler else 0,
    }

    if _task_handler:
        response_data["runners"] = [
            {
                "task_type": runner.task_type,
                "domain": runner.options.domain,
                "polling": runner.is_polling,
                "paused": runner.options.paused,
                "in_flight": runner.poller.in_flight,
            }
            for runner in _task_handler.runners
        ]

    if _worker_healthy:
        return web.json_response(response_data)
    return web.json_response(response_data, status=503)


async def start_health_server(port: int = 8000) -> web.AppRunner:
    """Start minimal HTTP server for health probes."""
    app = web.Application()
    app.router.add_get("/", health_handler)
    app.router.add_get("/health", health_handler)
    app.router.add_get("/livez", health_handler)
    app.router.add_get("/readyz", health_handler)

    runner = web.AppRunner(app)
    await runner.setup()
    site = web.TCPSite(runner, "0.0.0.0", port)
    await site.start()
    logger.info(f"Health server started on port {port}")
    return runner


# ============================================================================
# HANDLER LOADING
# ============================================================================

def load_handlers(modules: Optional[List[str]] = None) -> int:
    """
    Load handler modules to register workers.

    Args:
        modules: List of module names to import

    Returns:
        Number of modules loaded
    """
    if modules is None:
        modules = ["handlers.examples"]

        extra = os.getenv("HANDLER_MODULES", "")
        if extra:
            modules.extend(m.strip() for m in extra.split(",") if m.strip())

    loaded = 0
    for module_name in modules:
        try:
            importlib.import_module(module_name)
            logger.info(f"Loaded handler module: {module_name}")
            loaded += 1
        except ImportError as e:
            logger.warning(f"Failed to load handler module {module_name}: {e}")

    workers = get_registered_workers()
    logger.info(f"Registered {len(workers)} workers: {[w.task_def_name for w in workers]}")

    return loaded


# ============================================================================
# MAIN
# ============================================================================

async def main() -> None:
    """Main entry point."""
    global _worker_healthy, _worker_status, _task_handler

    configure_logging(
        level=os.environ.get("TASK_WORKER_LOG_LEVEL", "INFO"),
        json_output=os.environ.get("TASK_WORKER_LOG_FORMAT", "").lower() == "json",
    )

    logger.info("=" * 60)
    logger.info(f"Task Worker Starting v{__version__}")
    logger.info("=" * 60)

    health_port = int(os.environ.get("PORT", "8000"))
    health_runner = await start_health_server(health_port)

    config = ClientConfig.from_env()
    logger.info(f"Task server: {config.server_url}")

    load_handlers()

    shutdown = asyncio.Event()
    loop = asyncio.get_running_loop()

    def shutdown_handler():
        logger.info("Shutdown signal received")
        shutdown.set()

    for sig in (signal.SIGTERM, signal.SIGINT):
        try:
            loop.add_signal_handler(sig, shutdown_handler)
        except NotImplementedError:
            # Windows doesn't support add_signal_handler
            pass

    try:
        async with TaskClient(config) as client:
            async with TaskHandler(client) as handler:
                _task_handler = handler
                handler.start_workers()
                _worker_status = "running"
                await shutdown.wait()
                _worker_status = "stopping"
    except Exception as e:
        logger.exception(f"Worker failed: {e}")
        _worker_healthy = False
        _worker_status = f"error: {str(e)[:100]}"
        raise
    finally:
        await health_runner.cleanup()

    _worker_status = "stopped"
    logger.info("Task Worker stopped")


def run() -> None:
    """Synchronous entry point."""
    asyncio.run(main())


if __name__ == "__main__":
    run()
