import json
import logging

import pytest

from gemini_mcp.infrastructure.logging.logger import LOGGER_NAME, JsonFormatter, log_event, setup_logger


@pytest.fixture
def restore_logger():
    log = logging.getLogger(LOGGER_NAME)
    yield log
    for handler in list(log.handlers):
        log.removeHandler(handler)
        handler.close()
    log.setLevel(logging.NOTSET)
    log.propagate = True


def test_json_formatter_merges_extra():
    record = logging.LogRecord(LOGGER_NAME, logging.WARNING, __file__, 1, "Rate limit exceeded", None, None)
    record.extra = {"request_id": 7, "security": True}
    payload = json.loads(JsonFormatter().format(record))
    assert payload["level"] == "WARNING"
    assert payload["msg"] == "Rate limit exceeded"
    assert payload["request_id"] == 7
    assert payload["security"] is True
    assert payload["ts"].endswith("Z")


def test_setup_logger_replaces_handlers(restore_logger, tmp_path):
    setup_logger("debug")
    log = setup_logger("warn", str(tmp_path / "logs"))
    assert log is restore_logger
    assert log.level == logging.WARNING
    assert log.propagate is False
    assert len(log.handlers) == 2

    log_event(logging.WARNING, "Request rejected", {"request_id": 1}, code=-32002)
    for handler in log.handlers:
        handler.flush()
    lines = (tmp_path / "logs" / "gemini_mcp.log").read_text(encoding="utf-8").splitlines()
    assert json.loads(lines[-1])["code"] == -32002


def test_log_event_respects_level(restore_logger, tmp_path):
    log = setup_logger("error", str(tmp_path))
    log_event(logging.INFO, "Received request", {})
    for handler in log.handlers:
        handler.flush()
    assert (tmp_path / "gemini_mcp.log").read_text(encoding="utf-8") == ""
