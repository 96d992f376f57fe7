# ============================================================================
# TASK SERVER HTTP CLIENT
# ============================================================================
# STATUS: Core - Async HTTP client for the remote task queue
# PURPOSE: Batch poll tasks, post task results, fetch single tasks
# CREATED: 18 OCT 2026
# ============================================================================
"""
Task Server Client

Async httpx client for the three task endpoints the worker engine uses:

    GET  /tasks/poll/batch/{tasktype}   batch poll (long poll, server-side timeout)
    POST /tasks                         update task result
    GET  /tasks/{taskId}                fetch one task

Unlike the fire-and-forget reporters, every method raises TaskClientError
on transport errors and non-2xx responses: the task runner owns retry and
event publication, so failures must reach it.
"""

import logging
from typing import Any, Dict, List, Optional

import httpx

from core.config.client import ClientConfig
from core.models.task import Task, TaskResult

logger = logging.getLogger(__name__)


class TaskClientError(Exception):
    """Raised when a task server call fails."""

    def __init__(self, message: str, status_code: Optional[int] = None, body: Any = None):
        super().__init__(message)
        self.status_code = status_code
        self.body = body


class TaskClient:
    """Async HTTP client for the task server task resource."""

    def __init__(
        self,
        config: Optional[ClientConfig] = None,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        """
        Initialize client.

        Args:
            config: Connection settings (from environment if not provided)
            http_client: Pre-built httpx client (tests, shared pools)
        """
        self.config = config or ClientConfig.from_env()
        self._owns_client = http_client is None
        self._client = http_client or httpx.AsyncClient(
            base_url=self.config.server_url,
            headers=self.config.extra_headers,
            timeout=httpx.Timeout(
                self.config.request_timeout_seconds,
                connect=self.config.connect_timeout_seconds,
            ),
        )

    async def __aenter__(self) -> "TaskClient":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    async def close(self) -> None:
        """Close the underlying HTTP client if this instance created it."""
        if self._owns_client:
            await self._client.aclose()

    async def _request(
        self,
        method: str,
        path: str,
        json_body: Optional[Dict[str, Any]] = None,
        params: Optional[Dict[str, Any]] = None,
    ) -> httpx.Response:
        """Send a request; raise TaskClientError on any failure."""
        if params:
            params = {k: v for k, v in params.items() if v is not None and v != ""}

        try:
            resp = await self._client.request(method, path, json=json_body, params=params)
        except httpx.TimeoutException as e:
            raise TaskClientError(f"Task server timeout: {method} {path}: {e}") from e
        except httpx.HTTPError as e:
            raise TaskClientError(f"Cannot reach task server: {method} {path}: {e}") from e

        if resp.status_code >= 400:
            raise TaskClientError(
                f"Task server error {resp.status_code}: {method} {path}: {resp.text[:500]}",
                status_code=resp.status_code,
                body=resp.text,
            )

        return resp

    async def batch_poll(
        self,
        task_type: str,
        *,
        worker_id: Optional[str] = None,
        domain: Optional[str] = None,
        count: int = 1,
        timeout_ms: int = 100,
    ) -> List[Task]:
        """
        Poll for up to count tasks of task_type.

        The server may return fewer tasks than requested, or none.
        """
        resp = await self._request(
            "GET",
            f"/tasks/poll/batch/{task_type}",
            params={
                "workerid": worker_id,
                "domain": domain,
                "count": count,
                "timeout": timeout_ms,
            },
        )

        if resp.status_code == 204 or not resp.content:
            return []

        data = resp.json()
        if not data:
            return []

        return [Task.from_dict(item) for item in data]

    async def update_task(self, result: TaskResult) -> str:
        """Post a task result; returns the server acknowledgement."""
        resp = await self._request("POST", "/tasks", json_body=result.to_dict())
        return resp.text

    async def get_task(self, task_id: str) -> Task:
        """Fetch a single task by id."""
        resp = await self._request("GET", f"/tasks/{task_id}")
        return Task.from_dict(resp.json())


__all__ = [
    "TaskClient",
    "TaskClientError",
]
