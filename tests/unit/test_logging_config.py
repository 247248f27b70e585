"""
Unit tests for logging configuration.
"""

import logging

from persuader.logging_config import PACKAGE_LOGGER, configure_logging, reset_logging


class TestConfigureLogging:
    """Test handler installation on the package logger."""

    def setup_method(self):
        reset_logging()

    def teardown_method(self):
        reset_logging()

    def test_handler_on_package_logger_only(self):
        """Test that the root logger is left alone."""
        root_handlers = list(logging.getLogger().handlers)

        configure_logging("debug")

        package_logger = logging.getLogger(PACKAGE_LOGGER)
        assert len(package_logger.handlers) == 1
        assert package_logger.level == logging.DEBUG
        assert package_logger.propagate is False
        assert logging.getLogger().handlers == root_handlers

    def test_reconfigure_only_changes_level(self):
        """Test that per-run levels never stack handlers."""
        configure_logging("info")
        configure_logging("error", "production")

        package_logger = logging.getLogger(PACKAGE_LOGGER)
        assert len(package_logger.handlers) == 1
        assert package_logger.handlers[0].level == logging.ERROR
        assert package_logger.level == logging.ERROR

    def test_unknown_level_falls_back_to_info(self):
        configure_logging("chatty")

        assert logging.getLogger(PACKAGE_LOGGER).level == logging.INFO

    def test_reset(self):
        configure_logging("info")
        reset_logging()

        package_logger = logging.getLogger(PACKAGE_LOGGER)
        assert package_logger.handlers == []
        assert package_logger.propagate is True
