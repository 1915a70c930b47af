"""Tests for workflow_common.logging."""

from __future__ import annotations

import json
import logging

import pytest

from workflow_common.logging import JsonFormatter, LoggerAdapter, get_logger, with_fields


def _record(**extra: object) -> logging.LogRecord:
    record = logging.LogRecord(
        name="workflow.test",
        level=logging.INFO,
        pathname=__file__,
        lineno=1,
        msg="hello %s",
        args=("world",),
        exc_info=None,
    )
    for key, value in extra.items():
        setattr(record, key, value)
    return record


class TestJsonFormatter:
    def test_renders_one_json_object(self) -> None:
        payload = json.loads(JsonFormatter().format(_record(operation="reconcile")))
        assert payload["level"] == "INFO"
        assert payload["name"] == "workflow.test"
        assert payload["message"] == "hello world"
        assert payload["operation"] == "reconcile"
        assert "ts" in payload

    def test_skips_private_and_non_json_extras(self) -> None:
        payload = json.loads(JsonFormatter().format(_record(_hidden=1, obj=object())))
        assert "_hidden" not in payload
        assert "obj" not in payload


class TestLoggerAdapter:
    def test_get_logger_returns_adapter(self) -> None:
        logger = get_logger("workflow.tests.adapter")
        assert isinstance(logger, LoggerAdapter)
        assert logger.logger.handlers

    def test_operation_and_status_are_injected(self, caplog: pytest.LogCaptureFixture) -> None:
        logger = get_logger("workflow.tests.inject")
        with caplog.at_level(logging.INFO, logger="workflow.tests.inject"):
            logger.info("done")
            logger.error("failed", extra={"operation": "scan"})
        done, failed = caplog.records
        assert done.operation == "unknown"  # type: ignore[attr-defined]
        assert done.status == "success"  # type: ignore[attr-defined]
        assert failed.operation == "scan"  # type: ignore[attr-defined]
        assert failed.status == "error"  # type: ignore[attr-defined]

    def test_with_fields_binds_context(self, caplog: pytest.LogCaptureFixture) -> None:
        logger = get_logger("workflow.tests.fields")
        with (
            caplog.at_level(logging.INFO, logger="workflow.tests.fields"),
            with_fields(logger, operation="reconcile", directory="/tmp/wf") as log,
        ):
            log.warning("changed", extra={"changed": 2})
        (record,) = caplog.records
        assert record.operation == "reconcile"  # type: ignore[attr-defined]
        assert record.directory == "/tmp/wf"  # type: ignore[attr-defined]
        assert record.changed == 2  # type: ignore[attr-defined]
        assert record.status == "warning"  # type: ignore[attr-defined]
