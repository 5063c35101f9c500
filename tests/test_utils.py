"""Tests for logging setup, retries and message sanitising."""

import json
import logging

import pytest
from rich.logging import RichHandler

from playsync.config import LoggingConfig
from playsync.errors import PermanentError, TransientError
from playsync.utils import (
    StructuredFormatter,
    retry_with_backoff,
    sanitize_error_message,
    setup_logging,
)


@pytest.fixture(autouse=True)
def restore_logger():
    logger = logging.getLogger("playsync")
    handlers, level = list(logger.handlers), logger.level
    yield
    for handler in logger.handlers:
        handler.close()
    logger.handlers = handlers
    logger.setLevel(level)


class TestSetupLogging:
    def test_pretty_uses_rich(self):
        logger = setup_logging("debug", "pretty")

        assert logger.name == "playsync"
        assert logger.level == logging.DEBUG
        assert len(logger.handlers) == 1
        assert isinstance(logger.handlers[0], RichHandler)

    def test_structured_console(self):
        logger = setup_logging("INFO", "structured")

        assert isinstance(logger.handlers[0].formatter, StructuredFormatter)

    def test_file_handler(self, tmp_path):
        log_file = tmp_path / "logs" / "playsync.log"
        logger = setup_logging("INFO", "structured", log_file=log_file)

        logger.info("hello", extra={"play": "alpha"})
        for handler in logger.handlers:
            handler.flush()

        assert len(logger.handlers) == 2
        record = json.loads(log_file.read_text().strip())
        assert record["message"] == "hello"
        assert record["play"] == "alpha"

    def test_logging_config_apply(self, tmp_path):
        log_file = tmp_path / "playsync.log"
        section = LoggingConfig(level="WARNING", format="structured", file=str(log_file))

        logger = section.apply()
        logger.warning("from config")
        for handler in logger.handlers:
            handler.flush()

        assert logger.level == logging.WARNING
        assert len(logger.handlers) == 2
        assert json.loads(log_file.read_text().strip())["message"] == "from config"

    def test_repeated_setup_replaces_handlers(self):
        setup_logging("INFO", "pretty")
        logger = setup_logging("INFO", "pretty")

        assert len(logger.handlers) == 1


class TestStructuredFormatter:
    def test_format(self):
        record = logging.LogRecord("playsync.orchestrator", logging.WARNING, __file__, 1, "x=%s", ("1",), None)
        record.operation = "config.create"

        data = json.loads(StructuredFormatter().format(record))

        assert data["level"] == "WARNING"
        assert data["logger"] == "playsync.orchestrator"
        assert data["message"] == "x=1"
        assert data["operation"] == "config.create"
        assert "play" not in data


class TestRetryWithBackoff:
    def test_returns_first_success(self):
        assert retry_with_backoff(lambda: "ok", backoff_seconds=0) == "ok"

    def test_retries_transient(self, monkeypatch):
        monkeypatch.setattr("playsync.utils.time.sleep", lambda s: None)
        calls = []

        def _flaky():
            calls.append(1)
            if len(calls) < 3:
                raise TransientError("busy")
            return "done"

        assert retry_with_backoff(_flaky, max_attempts=3) == "done"
        assert len(calls) == 3

    def test_gives_up(self, monkeypatch):
        monkeypatch.setattr("playsync.utils.time.sleep", lambda s: None)

        def _down():
            raise TransientError("down")

        with pytest.raises(TransientError):
            retry_with_backoff(_down, max_attempts=2)

    def test_permanent_not_retried(self):
        calls = []

        def _bad():
            calls.append(1)
            raise PermanentError("bad")

        with pytest.raises(PermanentError):
            retry_with_backoff(_bad, max_attempts=5)
        assert len(calls) == 1


class TestSanitizeErrorMessage:
    def test_truncates(self):
        assert sanitize_error_message("x" * 600, max_length=10) == "x" * 10 + "..."

    def test_redacts_query_secrets(self):
        message = sanitize_error_message("GET /services?session_key=abc123&output_mode=json")
        assert "abc123" not in message
        assert "session_key=[REDACTED]" in message

    def test_redacts_authorization_header(self):
        message = sanitize_error_message("Authorization: Splunk 0a1b2c3d")
        assert message == "Authorization: Splunk [REDACTED]"

    def test_accepts_exceptions(self):
        assert sanitize_error_message(ValueError("plain")) == "plain"
