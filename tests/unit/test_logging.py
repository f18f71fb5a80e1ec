"""Unit tests for logging configuration."""

import logging
import logging.handlers

import pytest

from rebalancer.utils.logging import get_logger, log_with_context, setup_logging


class TestLoggingSetup:
    """Test cases for logging setup."""

    def test_setup_logging_default_level(self) -> None:
        """Test setup_logging with default INFO level."""
        setup_logging()
        assert logging.getLogger("test").getEffectiveLevel() == logging.INFO

    def test_setup_logging_debug_level(self) -> None:
        """Test setup_logging with DEBUG level."""
        setup_logging(level="debug")
        assert logging.getLogger().level == logging.DEBUG

    def test_setup_logging_invalid_level_fallback(self) -> None:
        """Test setup_logging with invalid level falls back to INFO."""
        setup_logging(level="INVALID")
        assert logging.getLogger().level == logging.INFO

    def test_setup_logging_custom_format(self) -> None:
        """Test setup_logging accepts custom format without error."""
        setup_logging(level="INFO", log_format="%(levelname)s - %(message)s")
        assert logging.getLogger().level == logging.INFO

    def test_setup_logging_file(self, tmp_path) -> None:
        """Test records are also written to a rotating log file."""
        log_file = tmp_path / "logs" / "rebalancer.log"

        setup_logging(level="INFO", log_file=log_file)
        try:
            handlers = logging.getLogger().handlers
            assert any(isinstance(h, logging.handlers.RotatingFileHandler) for h in handlers)

            get_logger("rebalancer.test_file").warning("Feed down")
            for handler in handlers:
                handler.flush()

            assert "Feed down" in log_file.read_text(encoding="utf-8")
        finally:
            setup_logging()

    def test_apscheduler_quieted(self) -> None:
        """Test per-run APScheduler chatter is held back at INFO."""
        setup_logging(level="INFO")
        assert logging.getLogger("apscheduler").level == logging.WARNING

    def test_apscheduler_follows_stricter_level(self) -> None:
        """Test APScheduler logger never logs below the root level."""
        setup_logging(level="ERROR")
        assert logging.getLogger("apscheduler").level == logging.ERROR


class TestGetLogger:
    """Test cases for get_logger function."""

    def test_get_logger_name(self) -> None:
        """Test get_logger creates logger with correct name."""
        logger = get_logger("rebalancer.test")
        assert isinstance(logger, logging.Logger)
        assert logger.name == "rebalancer.test"

    def test_get_logger_same_instance(self) -> None:
        """Test get_logger returns same instance for same name."""
        assert get_logger("test_same") is get_logger("test_same")


class TestLogWithContext:
    """Test cases for log_with_context function."""

    def test_log_with_context(self, caplog: pytest.LogCaptureFixture) -> None:
        """Test context fields are appended as key=value pairs."""
        logger = get_logger("test_context")

        with caplog.at_level(logging.INFO, logger="test_context"):
            log_with_context(
                logger,
                "info",
                "Trade completed",
                symbol="XAUT",
                side="BUY",
                status="SIMULATED",
            )

        assert len(caplog.records) == 1
        assert caplog.records[0].message == (
            "Trade completed | symbol=XAUT side=BUY status=SIMULATED"
        )

    def test_log_with_context_no_context(self, caplog: pytest.LogCaptureFixture) -> None:
        """Test message without context has no separator."""
        logger = get_logger("test_no_context")

        with caplog.at_level(logging.INFO, logger="test_no_context"):
            log_with_context(logger, "info", "Simple message")

        assert caplog.records[0].message == "Simple message"

    def test_log_with_context_level(self, caplog: pytest.LogCaptureFixture) -> None:
        """Test the requested level is used."""
        logger = get_logger("test_error_context")

        with caplog.at_level(logging.ERROR, logger="test_error_context"):
            log_with_context(logger, "error", "Trade failed", symbol="BTC")

        assert caplog.records[0].levelno == logging.ERROR
