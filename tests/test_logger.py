"""
Tests for the shared logger setup.
"""

import logging

import pytest

from src.common import logger as logger_module
from src.common.logger import set_level, setup_logger


@pytest.fixture(autouse=True)
def restore_level():
    """Put the global level back after each test."""
    level = logger_module._level
    yield
    set_level(level)


class TestSetupLogger:

    def test_single_handler(self):
        """Test repeated setup does not stack handlers."""
        first = setup_logger('tests.logger.single')
        second = setup_logger('tests.logger.single')

        assert first is second
        assert len(first.handlers) == 1
        assert first.propagate is False

    def test_explicit_level(self):
        log = setup_logger('tests.logger.explicit', level=logging.WARNING)
        assert log.level == logging.WARNING


class TestSetLevel:

    def test_by_name(self):
        """Test existing loggers follow a level name."""
        log = setup_logger('tests.logger.byname')
        set_level('debug')
        assert log.level == logging.DEBUG

    def test_new_loggers_inherit(self):
        """Test loggers created later use the new level."""
        set_level(logging.ERROR)
        assert setup_logger('tests.logger.later').level == logging.ERROR

    def test_unknown_name(self):
        with pytest.raises(ValueError):
            set_level('LOUD')
