"""Tests for logging setup"""
import logging

import pytest
from rich.logging import RichHandler

from workmux.logging_config import get_logger, setup_logging


@pytest.fixture
def root_logger():
    """Restore the root logger's handlers and level after each test."""
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield root
    for handler in root.handlers[:]:
        root.removeHandler(handler)
        handler.close()
    for handler in handlers:
        root.addHandler(handler)
    root.setLevel(level)


class TestSetupLogging:
    """Test setup_logging levels and handlers."""

    def test_default_is_warning(self, root_logger):
        setup_logging()
        assert root_logger.level == logging.WARNING
        assert [type(h) for h in root_logger.handlers] == [RichHandler]

    def test_verbose_is_info(self, root_logger):
        setup_logging(verbose=True)
        assert root_logger.level == logging.INFO

    def test_debug_writes_log_file(self, root_logger, isolated_home):
        setup_logging(debug=True)
        get_logger("workmux.workflow.create").debug("create:start branch=x")

        for handler in root_logger.handlers:
            handler.flush()
        log_file = isolated_home / ".workmux" / "workmux.log"
        assert root_logger.level == logging.DEBUG
        assert "workflow.create - DEBUG - create:start branch=x" in log_file.read_text()


class TestGetLogger:
    """Test logger naming."""

    def test_strips_package_prefixes(self):
        assert get_logger("workmux.services.tmux_service").name == "tmux_service"
        assert get_logger("workmux.workflow.merge").name == "workflow.merge"
        assert get_logger("conftest").name == "conftest"
