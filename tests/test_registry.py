# ============================================================================
# WORKER REGISTRY TESTS
# ============================================================================
# STATUS: Tests - Worker registration, lookup and handler execution
# PURPOSE: Verify (task type, domain) keying, overwrite warnings, decorator
# CREATED: 18 OCT 2026
# ============================================================================
"""
Worker Registry Tests

Covers:
1. register / get / get_all / clear on an injected WorkerRegistry
2. Overwrite of an existing key logs a warning, last registration wins
3. Empty domain is a distinct key
4. @worker decorator: returns function unchanged, validates arguments
5. HandlerResult.from_outcome normalization
6. execute_handler with sync, async and failing handlers

Run with:
    pytest tests/test_registry.py -v
"""

import asyncio
import logging
import threading

import pytest

from core.contracts import TaskResultStatus
from core.models.task import Task
from handlers.registry import (
    HandlerResult,
    RegisteredWorker,
    WorkerRegistrationError,
    WorkerRegistry,
    execute_handler,
    get_registered_worker,
    get_worker_count,
    register_worker,
    registry_key,
    worker,
)


# ============================================================================
# FIXTURES
# ============================================================================

@pytest.fixture
def registry():
    return WorkerRegistry()


def _noop(task):
    return None


def _make(name="t1", domain=None, execute=_noop, **kwargs):
    return RegisteredWorker(task_def_name=name, execute=execute, domain=domain, **kwargs)


# ============================================================================
# REGISTRY
# ============================================================================

class TestWorkerRegistry:

    def test_register_and_get(self, registry):
        w = _make("resize")
        registry.register(w)

        assert registry.get("resize") is w
        assert len(registry) == 1
        assert registry.size == 1
        assert "resize:" in registry

    def test_get_missing_returns_none(self, registry):
        assert registry.get("nope") is None
        assert registry.get("nope", "other") is None

    def test_get_all_preserves_insertion_order(self, registry):
        for name in ("a", "b", "c"):
            registry.register(_make(name))

        assert [w.task_def_name for w in registry.get_all()] == ["a", "b", "c"]

    def test_domains_are_distinct_keys(self, registry):
        default = _make("t1")
        blue = _make("t1", domain="blue")
        registry.register(default)
        registry.register(blue)

        assert len(registry) == 2
        assert registry.get("t1") is default
        assert registry.get("t1", "blue") is blue
        assert registry.get("t1", "green") is None

    def test_none_and_empty_domain_share_a_key(self, registry):
        registry.register(_make("t1", domain=None))

        assert registry.get("t1", "") is not None
        assert registry_key("t1", None) == registry_key("t1", "") == "t1:"

    def test_overwrite_warns_and_last_wins(self, registry, caplog):
        first = _make("t1", domain="d1", concurrency=1)
        second = _make("t1", domain="d1", concurrency=5)
        registry.register(first)

        with caplog.at_level(logging.WARNING, logger="handlers.registry"):
            registry.register(second)

        assert len(registry) == 1
        assert registry.get("t1", "d1").concurrency == 5
        assert any(
            'Worker "t1" with domain "d1" is already registered' in r.getMessage()
            for r in caplog.records
        )

    def test_overwrite_default_domain_message(self, registry, caplog):
        registry.register(_make("t1"))
        with caplog.at_level(logging.WARNING, logger="handlers.registry"):
            registry.register(_make("t1"))

        assert any('domain "default"' in r.getMessage() for r in caplog.records)

    def test_clear(self, registry):
        registry.register(_make("a"))
        registry.register(_make("b"))
        registry.clear()

        assert len(registry) == 0
        assert registry.get_all() == []

    def test_key_property(self):
        assert _make("t1", domain="x").key == "t1:x"

    def test_module_helpers_accept_registry(self, registry):
        register_worker(_make("helper"), registry)

        assert get_worker_count(registry) == 1
        assert get_registered_worker("helper", registry=registry) is not None


# ============================================================================
# DECORATOR
# ============================================================================

class TestWorkerDecorator:

    def test_decorator_registers_and_returns_function(self, registry):
        @worker("decorated", domain="d", concurrency=3, poll_interval_ms=250, registry=registry)
        async def handler(task):
            return {"status": "COMPLETED"}

        registered = registry.get("decorated", "d")
        assert registered is not None
        assert registered.execute is handler
        assert registered.concurrency == 3
        assert registered.poll_interval_ms == 250
        assert handler.__name__ == "handler"

    def test_decorator_discovery_options(self, registry):
        @worker("paused_one", poll_timeout_ms=500, paused=True, registry=registry)
        def handler(task):
            return None

        registered = registry.get("paused_one")
        assert registered.paused is True
        assert registered.poll_timeout_ms == 500

    def test_missing_name_raises(self, registry):
        with pytest.raises(WorkerRegistrationError):
            worker("", registry=registry)

    def test_non_callable_raises(self, registry):
        with pytest.raises(WorkerRegistrationError):
            worker("bad", registry=registry)("not a function")
        assert len(registry) == 0

    def test_registration_error_is_value_error(self):
        assert issubclass(WorkerRegistrationError, ValueError)


# ============================================================================
# HANDLER RESULT
# ============================================================================

class TestHandlerResult:

    def test_none_is_completed_empty(self):
        result = HandlerResult.from_outcome(None)
        assert result.status == TaskResultStatus.COMPLETED
        assert result.output_data == {}

    def test_passthrough(self):
        original = HandlerResult.in_progress({"step": 1})
        assert HandlerResult.from_outcome(original) is original

    def test_camel_case_dict(self):
        result = HandlerResult.from_outcome({
            "status": "FAILED",
            "outputData": {"x": 1},
            "reasonForIncompletion": "nope",
        })
        assert result.status == TaskResultStatus.FAILED
        assert result.output_data == {"x": 1}
        assert result.reason_for_incompletion == "nope"

    def test_snake_case_dict_defaults_to_completed(self):
        result = HandlerResult.from_outcome({"output_data": {"y": 2}})
        assert result.status == TaskResultStatus.COMPLETED
        assert result.output_data == {"y": 2}

    def test_dict_logs_parsed(self):
        result = HandlerResult.from_outcome({"logs": [{"log": "hello"}]})
        assert result.logs[0].log == "hello"

    def test_unsupported_type_raises(self):
        with pytest.raises(TypeError):
            HandlerResult.from_outcome(42)


# ============================================================================
# HANDLER EXECUTION
# ============================================================================

class TestExecuteHandler:

    @pytest.fixture
    def task(self):
        return Task(task_id="t-1", workflow_instance_id="wf-1", input_data={"n": 2})

    def test_async_handler(self, task):
        async def handler(t):
            return HandlerResult.completed({"doubled": t.input_data["n"] * 2})

        result = asyncio.run(execute_handler(handler, task))
        assert result.output_data == {"doubled": 4}

    def test_sync_handler_runs_off_loop_thread(self, task):
        loop_thread = []
        handler_thread = []

        def handler(t):
            handler_thread.append(threading.get_ident())
            return {"outputData": {"ok": True}}

        async def run():
            loop_thread.append(threading.get_ident())
            return await execute_handler(handler, task)

        result = asyncio.run(run())
        assert result.output_data == {"ok": True}
        assert handler_thread[0] != loop_thread[0]

    def test_sync_handler_returning_awaitable(self, task):
        async def inner():
            return {"outputData": {"late": True}}

        def handler(t):
            return inner()

        result = asyncio.run(execute_handler(handler, task))
        assert result.output_data == {"late": True}

    def test_exception_propagates(self, task):
        async def handler(t):
            raise RuntimeError("boom")

        with pytest.raises(RuntimeError, match="boom"):
            asyncio.run(execute_handler(handler, task))
