# ============================================================================
# MODEL, LOGGING AND EXAMPLE WORKER TESTS
# ============================================================================
# STATUS: Tests - Wire models, status enums, log context, sample workers
# PURPOSE: Verify camelCase parsing, failure classification, context scoping
# CREATED: 18 OCT 2026
# ============================================================================
"""
Model Tests

Covers:
1. Task parses camelCase and snake_case, keeps unknown fields
2. TaskResult factories and serialization
3. TaskResultStatus terminal / failure helpers
4. classify_failure
5. log_context nesting, isolation between asyncio tasks, formatters
6. Example workers behave as documented

Run with:
    pytest tests/test_models.py -v
"""

import asyncio
import json
import logging
from unittest.mock import patch

import pytest

from core.contracts import TaskResultStatus
from core.logging import (
    ContextLogger,
    HumanFormatter,
    StructuredFormatter,
    get_current_context,
    get_logger,
    log_context,
)
from core.models.task import Task, TaskResult
from worker.exceptions import FailureKind, NonRetryableException, classify_failure


# ============================================================================
# TASK MODELS
# ============================================================================

class TestTask:

    def test_camel_case_parsing(self):
        task = Task.from_dict({
            "taskId": "t-1",
            "workflowInstanceId": "wf-1",
            "taskDefName": "resize",
            "inputData": {"a": 1},
            "retryCount": 2,
            "somethingNew": True,
        })

        assert task.task_id == "t-1"
        assert task.task_def_name == "resize"
        assert task.retry_count == 2
        assert task.to_dict()["somethingNew"] is True

    def test_snake_case_and_missing_ids(self):
        task = Task(task_type="resize")
        assert task.task_id is None
        assert task.input_data == {}


class TestTaskResult:

    @pytest.mark.parametrize("terminal, status", [
        (False, TaskResultStatus.FAILED),
        (True, TaskResultStatus.FAILED_WITH_TERMINAL_ERROR),
    ])
    def test_failed_factory(self, terminal, status):
        result = TaskResult.failed("t", "wf", "reason", terminal=terminal)
        assert result.status == status
        assert result.output_data == {}
        assert result.to_dict()["reasonForIncompletion"] == "reason"

    def test_none_fields_omitted(self):
        body = TaskResult(task_id="t", workflow_instance_id="wf").to_dict()
        assert "workerId" not in body
        assert "logs" not in body


class TestStatus:

    def test_terminal(self):
        assert not TaskResultStatus.IN_PROGRESS.is_terminal()
        assert TaskResultStatus.COMPLETED.is_terminal()
        assert TaskResultStatus.FAILED_WITH_TERMINAL_ERROR.is_terminal()

    def test_failure(self):
        assert TaskResultStatus.FAILED.is_failure()
        assert not TaskResultStatus.COMPLETED.is_failure()


# ============================================================================
# FAILURE CLASSIFICATION
# ============================================================================

class TestClassifyFailure:

    def test_non_retryable(self):
        kind = classify_failure(NonRetryableException("x"))
        assert kind is FailureKind.TERMINAL
        assert kind.status == TaskResultStatus.FAILED_WITH_TERMINAL_ERROR

    def test_ordinary_exception(self):
        kind = classify_failure(ValueError("x"))
        assert kind is FailureKind.RETRYABLE
        assert kind.status == TaskResultStatus.FAILED

    def test_terminal_attribute(self):
        class Permanent(Exception):
            terminal = True

        class Transient(Exception):
            terminal = False

        assert classify_failure(Permanent()) is FailureKind.TERMINAL
        assert classify_failure(Transient()) is FailureKind.RETRYABLE


# ============================================================================
# LOGGING
# ============================================================================

class TestLogContext:

    def test_nesting_and_reset(self):
        with log_context(task_id="t-1", worker_id="w"):
            with log_context(task_id="t-2", attempt=3) as inner:
                assert inner.task_id == "t-2"
                assert inner.worker_id == "w"
                assert inner.extra == {"attempt": 3}
            assert get_current_context().task_id == "t-1"
        assert get_current_context().task_id is None

    def test_isolated_between_tasks(self):
        seen = {}

        async def work(task_id):
            with log_context(task_id=task_id):
                await asyncio.sleep(0.01)
                seen[task_id] = get_current_context().task_id

        async def run():
            await asyncio.gather(work("a"), work("b"))

        asyncio.run(run())
        assert seen == {"a": "a", "b": "b"}

    def test_structured_formatter(self):
        record = logging.LogRecord("worker.runner", logging.INFO, __file__, 1, "hello", None, None)
        with log_context(task_id="t-1", task_type="resize"):
            payload = json.loads(StructuredFormatter().format(record))

        assert payload["message"] == "hello"
        assert payload["level"] == "INFO"
        assert payload["context"] == {"task_id": "t-1", "task_type": "resize"}

    def test_human_formatter(self):
        record = logging.LogRecord("worker.runner", logging.INFO, __file__, 1, "hello", None, None)
        with log_context(task_id="t-1", task_type="resize", workflow_instance_id="wf-1"):
            line = HumanFormatter().format(record)

        assert "[type=resize, task=t-1, wf=wf-1]" in line
        assert line.endswith("hello")

    def test_get_logger_returns_adapter(self):
        assert isinstance(get_logger("worker.test"), ContextLogger)


# ============================================================================
# EXAMPLE WORKERS
# ============================================================================

class TestExampleWorkers:

    @pytest.fixture(scope="class")
    def examples(self):
        from handlers import examples
        return examples

    def test_echo(self, examples):
        task = Task(task_id="t-1", workflow_instance_id="wf", input_data={"msg": "hi"})
        result = asyncio.run(examples.echo(task))
        assert result.output_data == {"echoed": {"msg": "hi"}, "task_id": "t-1"}

    def test_greet(self, examples):
        out = examples.greet(Task(input_data={"name": "Ada"}))
        assert out["outputData"] == {"greeting": "Hello, Ada!"}

    def test_flaky(self, examples):
        task = Task(input_data={"failure_rate": 0.5})
        with patch("handlers.examples.random.random", return_value=0.9):
            assert asyncio.run(examples.flaky(task)).output_data["survived"] is True
        with patch("handlers.examples.random.random", return_value=0.1):
            with pytest.raises(RuntimeError):
                asyncio.run(examples.flaky(task))

    def test_always_terminal(self, examples):
        with pytest.raises(NonRetryableException, match="never"):
            asyncio.run(examples.always_terminal(Task()))

