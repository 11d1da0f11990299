"""
Tests for logger module.

Tests cover logger setup, handler management, log levels,
formatting, and file operations.
"""

import logging
import logging.handlers
import uuid

import pytest

from modulizer.utils.logger import (
    LOG_BACKUP_COUNT,
    MAX_LOG_BYTES,
    VALID_LOG_LEVELS,
    add_console_handler,
    add_file_handler,
    get_logger,
    set_log_level,
    setup_logger,
)


@pytest.fixture
def tmp_log_dir(tmp_path):
    """Create temporary directory for log files."""
    log_dir = tmp_path / "logs"
    log_dir.mkdir()
    return log_dir


@pytest.fixture
def log_file_path(tmp_log_dir):
    """Create path to temporary log file."""
    return tmp_log_dir / "test.log"


@pytest.fixture
def test_logger():
    """Create fresh logger instance for each test."""
    logger = logging.getLogger("test_logger")
    logger.handlers.clear()
    logger.setLevel(logging.DEBUG)
    yield logger
    for handler in logger.handlers:
        handler.close()
    logger.handlers.clear()


@pytest.fixture
def unique_name():
    """Logger name no other test uses, so handlers never carry over."""
    name = f"modulizer_test_{uuid.uuid4().hex}"
    yield name
    logger = logging.getLogger(name)
    for handler in logger.handlers:
        handler.close()
    logger.handlers.clear()


class TestLoggerSetup:
    """Test logger creation and configuration."""

    def test_setup_logger_creates_logger(self, unique_name):
        """Test that setup_logger creates a logger instance."""
        logger = setup_logger(unique_name)
        assert isinstance(logger, logging.Logger)
        assert logger.name == unique_name

    def test_setup_logger_default_level(self, unique_name):
        """Test that default log level is INFO."""
        logger = setup_logger(unique_name)
        assert logger.level == logging.INFO

    def test_setup_logger_custom_level(self, unique_name):
        logger = setup_logger(unique_name, level="DEBUG")
        assert logger.level == logging.DEBUG

    def test_setup_logger_accepts_lowercase_level(self, unique_name):
        logger = setup_logger(unique_name, level="warning")
        assert logger.level == logging.WARNING

    def test_setup_logger_invalid_level(self, unique_name):
        """Test that invalid log level raises ValueError."""
        with pytest.raises(ValueError, match="Invalid log level"):
            setup_logger(unique_name, level="INVALID")

    def test_setup_logger_with_file(self, unique_name, log_file_path):
        """Test logger creation with log file."""
        logger = setup_logger(unique_name, log_file=log_file_path)

        # Console and file handlers
        assert len(logger.handlers) == 2

        logger.info("Test message")
        assert log_file_path.exists()

    def test_setup_logger_prevents_duplicate_handlers(self, unique_name):
        """Test that calling setup_logger twice doesn't duplicate handlers."""
        logger1 = setup_logger(unique_name)
        handler_count_1 = len(logger1.handlers)

        logger2 = setup_logger(unique_name)
        handler_count_2 = len(logger2.handlers)

        assert handler_count_1 == handler_count_2
        assert logger1 is logger2

    def test_get_logger_adds_no_handlers(self, unique_name):
        """Module loggers rely on propagation to configured parents."""
        logger = get_logger(unique_name)
        assert isinstance(logger, logging.Logger)
        assert logger.handlers == []

    def test_get_logger_retrieves_existing_logger(self, unique_name):
        logger1 = setup_logger(unique_name)
        logger2 = get_logger(unique_name)
        assert logger1 is logger2


class TestLogLevels:
    """Test log level configuration."""

    def test_set_log_level_changes_level(self, test_logger):
        set_log_level(test_logger, "WARNING")
        assert test_logger.level == logging.WARNING

    def test_set_log_level_invalid_raises_error(self, test_logger):
        """Test set_log_level raises ValueError for invalid level."""
        with pytest.raises(ValueError, match="Invalid log level"):
            set_log_level(test_logger, "INVALID")

    def test_all_valid_log_levels(self, test_logger):
        """Test all valid log levels can be set."""
        for level in VALID_LOG_LEVELS:
            set_log_level(test_logger, level)
            assert test_logger.level == getattr(logging, level)


class TestLogHandlers:
    """Test console and file handler management."""

    def test_add_console_handler(self, test_logger):
        add_console_handler(test_logger, "INFO")

        assert len(test_logger.handlers) == 1
        assert isinstance(test_logger.handlers[0], logging.StreamHandler)
        assert test_logger.handlers[0].level == logging.INFO

    def test_add_file_handler_creates_file(self, test_logger, log_file_path):
        """Test adding file handler creates log file."""
        add_file_handler(test_logger, log_file_path)

        test_logger.info("Test message")

        assert log_file_path.exists()
        assert "Test message" in log_file_path.read_text(encoding="utf-8")

    def test_add_file_handler_creates_directory(self, test_logger, tmp_path):
        """Test file handler creates log directory if missing."""
        log_file = tmp_path / "nested" / "logs" / "modulizer.log"

        add_file_handler(test_logger, log_file)
        test_logger.info("Test")

        assert log_file.parent.exists()
        assert log_file.exists()

    def test_add_file_handler_invalid_level(self, test_logger, log_file_path):
        with pytest.raises(ValueError, match="Invalid log level"):
            add_file_handler(test_logger, log_file_path, level="INVALID")

    def test_add_console_handler_invalid_level(self, test_logger):
        with pytest.raises(ValueError, match="Invalid log level"):
            add_console_handler(test_logger, level="INVALID")

    def test_log_rotation_configuration(self, test_logger, log_file_path):
        """Test that rotating file handler is configured correctly."""
        add_file_handler(test_logger, log_file_path)

        rotating = [
            handler
            for handler in test_logger.handlers
            if isinstance(handler, logging.handlers.RotatingFileHandler)
        ]
        assert len(rotating) == 1
        assert rotating[0].maxBytes == MAX_LOG_BYTES
        assert rotating[0].backupCount == LOG_BACKUP_COUNT


class TestLogFormatting:
    """Test log message formatting."""

    def test_file_format_detailed(self, test_logger, log_file_path):
        """Test file logs use detailed format."""
        add_file_handler(test_logger, log_file_path, "DEBUG")

        test_logger.debug("Debug message")

        content = log_file_path.read_text(encoding="utf-8")
        # Detailed format includes name, level, file, line and message
        assert "test_logger" in content
        assert "DEBUG" in content
        assert "test_logger.py" in content
        assert "Debug message" in content

    def test_log_file_encoding_utf8(self, test_logger, log_file_path):
        add_file_handler(test_logger, log_file_path)

        test_logger.info("Unicode test: 你好 мир 🎉")

        content = log_file_path.read_text(encoding="utf-8")
        assert "Unicode test: 你好 мир 🎉" in content

    def test_file_handler_level_filters(self, test_logger, log_file_path):
        """Records below the handler level do not reach the file."""
        add_file_handler(test_logger, log_file_path, "WARNING")

        test_logger.info("Info message")
        test_logger.warning("Warning message")

        content = log_file_path.read_text(encoding="utf-8")
        assert "Info message" not in content
        assert "Warning message" in content


class TestLoggerIntegration:
    """Integration tests for logger functionality."""

    def test_module_loggers_propagate_to_package_logger(self, log_file_path):
        """Loggers named modulizer.* reach the handlers of 'modulizer'."""
        package_logger = setup_logger("modulizer", level="DEBUG", log_file=log_file_path)
        try:
            get_logger("modulizer.core.orchestrator").info("State transition: A -> B")
            content = log_file_path.read_text(encoding="utf-8")
            assert "modulizer.core.orchestrator" in content
            assert "State transition: A -> B" in content
        finally:
            for handler in list(package_logger.handlers):
                handler.close()
                package_logger.removeHandler(handler)
            package_logger.setLevel(logging.NOTSET)

    def test_end_to_end_logging(self, unique_name, tmp_path):
        """Test complete logging workflow."""
        log_file = tmp_path / "logs" / "app.log"

        logger = setup_logger(unique_name, level="DEBUG", log_file=log_file)

        logger.debug("Debug info")
        logger.info("Info message")
        logger.warning("Warning message")
        logger.error("Error message")

        content = log_file.read_text(encoding="utf-8")
        for message in ("Debug info", "Info message", "Warning message", "Error message"):
            assert message in content
