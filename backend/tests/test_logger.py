"""
Tests for the logging helpers.
"""

import json
import logging

import pytest

from backend.common.logger import (
    JsonFormatter,
    LoggerAdapter,
    configure_logger,
    log_execution_time,
    with_context,
)


def make_record(message, data=None):
    record = logging.LogRecord("exam_engine.test", logging.INFO, __file__, 10, message, None, None)
    if data is not None:
        record.data = data
    return record


def test_json_formatter_merges_context():
    output = JsonFormatter().format(make_record("hello", {"room_id": 3, "student_id": "s"}))
    payload = json.loads(output)

    assert payload["message"] == "hello"
    assert payload["level"] == "INFO"
    assert payload["room_id"] == 3
    assert payload["student_id"] == "s"


def test_adapter_appends_context():
    adapter = LoggerAdapter(logging.getLogger("exam_engine.test"), {"room_id": 3})
    msg, kwargs = adapter.process("started", {})

    assert msg == "started [room_id=3]"
    assert kwargs["extra"]["data"] == {"room_id": 3}


def test_adapter_with_context_extends():
    adapter = LoggerAdapter(logging.getLogger("exam_engine.test"), {"room_id": 3})
    child = adapter.with_context(student_id="s")

    assert child.extra == {"room_id": 3, "student_id": "s"}
    assert adapter.extra == {"room_id": 3}


def test_with_context_uses_child_logger():
    adapter = with_context("exam.test", room_id=1)
    assert adapter.logger.name == "exam_engine.exam.test"


def test_configure_logger_writes_file(tmp_path):
    log_file = tmp_path / "logs" / "exam.log"
    logger = configure_logger("exam_engine_file_test", "DEBUG", log_file=str(log_file), console_output=False)

    logger.info("written")
    for handler in logger.handlers:
        handler.flush()

    assert "written" in log_file.read_text()


def test_log_execution_time_sync(caplog):
    logger = logging.getLogger("exam_engine.timing")

    @log_execution_time(logger)
    def add(a, b):
        return a + b

    with caplog.at_level(logging.DEBUG, logger="exam_engine.timing"):
        assert add(1, 2) == 3
    assert any("add executed in" in record.getMessage() for record in caplog.records)


@pytest.mark.asyncio
async def test_log_execution_time_async_reraises(caplog):
    logger = logging.getLogger("exam_engine.timing")

    @log_execution_time(logger)
    async def fail():
        raise ValueError("boom")

    with caplog.at_level(logging.ERROR, logger="exam_engine.timing"):
        with pytest.raises(ValueError):
            await fail()
    assert any("fail failed after" in record.getMessage() for record in caplog.records)
