"""Tests for logging configuration."""

import json
import logging

import pytest

from log_setup import JsonFormatter, setup_logging


@pytest.fixture
def restore_root():
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield root
    root.handlers[:] = handlers
    root.setLevel(level)


def test_single_stdout_handler(restore_root):
    setup_logging("debug")
    setup_logging("warning")

    assert restore_root.level == logging.WARNING
    assert len(restore_root.handlers) == 1
    assert logging.getLogger("httpx").level == logging.WARNING


def test_json_format(restore_root):
    setup_logging("INFO", "json")
    assert isinstance(restore_root.handlers[0].formatter, JsonFormatter)


def test_json_formatter_output():
    record = logging.LogRecord("gateway", logging.INFO, __file__, 1, "created loan %s", (123456,), None)
    data = json.loads(JsonFormatter().format(record))
    assert data["level"] == "INFO"
    assert data["logger"] == "gateway"
    assert data["message"] == "created loan 123456"
