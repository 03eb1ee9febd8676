"""
Unit tests for logging config.
"""

import logging

from scholarvault.utils.logging_config import (
    ColoredFormatter,
    LogLevel,
    get_logger,
    parse_log_level,
    setup_logging,
)


class TestLogLevel:
    """Test LogLevel enum."""

    def test_log_level_values(self):
        assert LogLevel.MINIMAL == "minimal"
        assert LogLevel.NORMAL == "normal"
        assert LogLevel.DETAILED == "detailed"
        assert LogLevel.FULL == "full"

    def test_parse_accepts_stdlib_names(self):
        assert parse_log_level("DEBUG") == LogLevel.DETAILED
        assert parse_log_level("info") == LogLevel.NORMAL
        assert parse_log_level("warning") == LogLevel.MINIMAL
        assert parse_log_level("full") == LogLevel.FULL

    def test_parse_unknown_falls_back_to_normal(self):
        assert parse_log_level("loud") == LogLevel.NORMAL
        assert parse_log_level("") == LogLevel.NORMAL


class TestSetupLogging:
    """Test setup_logging function."""

    def test_setup_logging_normal(self):
        logger = setup_logging(level=LogLevel.NORMAL)

        assert logger.name == "scholarvault"
        assert logger.level == logging.INFO

    def test_setup_logging_debug(self):
        logger = setup_logging(level=LogLevel.NORMAL, debug=True)

        assert logger.level == logging.DEBUG

    def test_setup_logging_minimal(self):
        logger = setup_logging(level=LogLevel.MINIMAL)

        assert logger.level == logging.WARNING

    def test_setup_logging_to_file(self, tmp_path):
        log_file = tmp_path / "logs" / "service.log"

        logger = setup_logging(level=LogLevel.NORMAL, log_file=str(log_file))

        assert any(isinstance(h, logging.FileHandler) for h in logger.handlers)
        assert log_file.parent.exists()
        for handler in logger.handlers:
            handler.close()
        logger.handlers.clear()

    def test_repeated_setup_does_not_stack_handlers(self):
        setup_logging(level=LogLevel.NORMAL)
        logger = setup_logging(level=LogLevel.NORMAL)

        assert len(logger.handlers) == 1


class TestGetLogger:
    """Test get_logger function."""

    def test_module_names_nest_under_package_logger(self):
        assert get_logger("tests.something").name == "scholarvault.tests.something"
        assert get_logger("scholarvault.web.app").name == "scholarvault.web.app"


class TestColoredFormatter:
    """Test ColoredFormatter."""

    def test_format_adds_color_codes(self):
        formatter = ColoredFormatter("%(levelname)s %(message)s")
        record = logging.LogRecord("x", logging.ERROR, __file__, 1, "failed", None, None)

        output = formatter.format(record)

        assert "ERROR" in output
        assert "failed" in output
        assert "\x1b[" in output
