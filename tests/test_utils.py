"""
Unit tests for logging configuration.
"""

import logging

import pytest

from volume_broker.utils import DEFAULT_FORMAT, configure_logging


@pytest.fixture
def restore_root_logger():
    root_logger = logging.getLogger()
    handlers = list(root_logger.handlers)
    level = root_logger.level
    yield root_logger
    for handler in root_logger.handlers:
        if handler not in handlers:
            handler.close()
    root_logger.handlers[:] = handlers
    root_logger.setLevel(level)


class TestConfigureLogging:
    """Tests for configure_logging."""

    def test_console_handler(self, restore_root_logger):
        configure_logging(level=logging.DEBUG)

        assert restore_root_logger.level == logging.DEBUG
        assert len(restore_root_logger.handlers) == 1
        assert restore_root_logger.handlers[0].formatter._fmt == DEFAULT_FORMAT

    def test_file_handler(self, restore_root_logger, temp_dir):
        log_file = temp_dir / "broker.log"

        configure_logging(level=logging.INFO, file_path=str(log_file))
        logging.getLogger("volume_broker.test").info("state restored")
        for handler in restore_root_logger.handlers:
            handler.flush()

        assert len(restore_root_logger.handlers) == 2
        assert "state restored" in log_file.read_text()

    def test_reconfigure_replaces_handlers(self, restore_root_logger):
        configure_logging()
        configure_logging(format="%(message)s")

        assert len(restore_root_logger.handlers) == 1
        assert restore_root_logger.handlers[0].formatter._fmt == "%(message)s"
