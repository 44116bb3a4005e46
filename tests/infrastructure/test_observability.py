"""Structured Logging — JSONFormatter output and setup_logging idempotence."""

import json
import logging
import sys

import pytest

from notecritic.infrastructure.observability import JSONFormatter, setup_logging


def _record(**extra) -> logging.LogRecord:
    record = logging.LogRecord(
        "notecritic.test", logging.WARNING, __file__, 1, "Turn %s failed", ("t1",), None,
    )
    record.__dict__.update(extra)
    return record


@pytest.fixture
def restore_root_logger():
    handlers = list(logging.root.handlers)
    level = logging.root.level
    yield
    logging.root.handlers[:] = handlers
    logging.root.setLevel(level)


def test_json_formatter_core_fields():
    data = json.loads(JSONFormatter().format(_record()))
    assert data["level"] == "WARNING"
    assert data["logger"] == "notecritic.test"
    assert data["message"] == "Turn t1 failed"
    assert "timestamp" in data


def test_json_formatter_surfaces_known_extras_only():
    data = json.loads(JSONFormatter().format(
        _record(turn_id="t1", provider="anthropic", step_index=0, secret="x"),
    ))
    assert data["turn_id"] == "t1"
    assert data["provider"] == "anthropic"
    assert data["step_index"] == 0
    assert "secret" not in data


def test_json_formatter_includes_exception():
    try:
        raise ValueError("boom")
    except ValueError:
        record = logging.LogRecord(
            "x", logging.ERROR, __file__, 1, "failed", (), sys.exc_info(),
        )
    data = json.loads(JSONFormatter().format(record))
    assert "ValueError: boom" in data["exception"]


def test_setup_logging_is_idempotent(restore_root_logger):
    setup_logging("DEBUG", "json")
    handler = setup_logging("DEBUG", "json")

    ours = [h for h in logging.root.handlers if h.get_name() == "notecritic"]
    assert ours == [handler]
    assert isinstance(handler.formatter, JSONFormatter)
    assert logging.root.level == logging.DEBUG


def test_setup_logging_text_format(restore_root_logger):
    handler = setup_logging("INFO", "text")
    assert not isinstance(handler.formatter, JSONFormatter)
