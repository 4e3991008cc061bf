"""Tests for logging setup and text helpers."""

import logging

import pytest

from accessgate.common.logger import get_logger, setup_logger
from accessgate.common.text import ELLIPSIS, truncate


@pytest.fixture
def logger_name(request):
    name = f"accessgate-test-{request.node.name}"
    yield name
    logger = logging.getLogger(name)
    for handler in list(logger.handlers):
        handler.close()
        logger.removeHandler(handler)


class TestSetupLogger:
    """Tests for setup_logger."""

    def test_console_handler(self, logger_name):
        logger = setup_logger(logger_name, level="DEBUG")
        assert logger.level == logging.DEBUG
        assert any(isinstance(h, logging.StreamHandler) for h in logger.handlers)

    def test_file_handler(self, logger_name, tmp_path):
        """Test rotating file logging writes under the log directory."""
        logger = setup_logger(logger_name, log_dir=str(tmp_path), file_logging=True, console_logging=False)
        logger.info("hello")
        for handler in logger.handlers:
            handler.flush()
        assert (tmp_path / f"{logger_name}.log").read_text().strip().endswith("hello")

    def test_no_duplicate_handlers(self, logger_name):
        setup_logger(logger_name)
        logger = setup_logger(logger_name)
        assert len(logger.handlers) == 1

    def test_invalid_level(self, logger_name):
        with pytest.raises(ValueError):
            setup_logger(logger_name, level="LOUD")

    def test_get_logger(self, logger_name):
        assert get_logger(logger_name) is logging.getLogger(logger_name)


class TestTruncate:
    """Tests for message bounding."""

    def test_short_message_untouched(self):
        assert truncate("hello", 10) == "hello"

    def test_long_message_cut(self):
        result = truncate("x" * 200, 120)
        assert len(result) == 120
        assert result.endswith(ELLIPSIS)

    def test_exact_limit(self):
        assert truncate("x" * 120, 120) == "x" * 120
