"""Tests for structured JSON logging."""

import json
import logging

import pytest

import sidekick.logging as sidekick_logging
from sidekick.logging import SidekickJsonFormatter, setup_logging


@pytest.fixture
def restore_root_logger(monkeypatch):
    monkeypatch.setattr(sidekick_logging, "_device_id", None)
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)


def _format(message: str) -> dict:
    record = logging.LogRecord("sidekick.sync", logging.INFO, __file__, 1, message, None, None)
    return json.loads(SidekickJsonFormatter().format(record))


def test_device_id_added_to_records(restore_root_logger):
    setup_logging("INFO", device_id="ipad-adjuster-7")

    data = _format("Operation queued")

    assert data["device_id"] == "ipad-adjuster-7"
    assert data["message"] == "Operation queued"
    assert data["level"] == "INFO"


def test_no_device_id_by_default(restore_root_logger):
    setup_logging("WARNING")

    assert "device_id" not in _format("Drain completed")
    assert logging.getLogger().level == logging.WARNING
