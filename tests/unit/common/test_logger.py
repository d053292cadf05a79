"""Tests for logging setup."""

import logging
import re

import pytest

from fleetguard.common.logger import ROOT_LOGGER, configure_logging, get_logger, setup_logger


@pytest.fixture
def logger_name(request):
    """A throwaway logger name, cleaned up after the test."""
    name = f"fleetguard-test-{request.node.name}"
    yield name
    logger = logging.getLogger(name)
    for handler in list(logger.handlers):
        handler.close()
        logger.removeHandler(handler)


class TestSetupLogger:
    def test_console_handler_by_default(self, logger_name):
        logger = setup_logger(name=logger_name)

        assert logger.level == logging.INFO
        assert len(logger.handlers) == 1
        assert isinstance(logger.handlers[0], logging.StreamHandler)

    def test_level_is_case_insensitive(self, logger_name):
        assert setup_logger(name=logger_name, level="debug").level == logging.DEBUG

    def test_invalid_level(self, logger_name):
        with pytest.raises(ValueError, match="Invalid log level"):
            setup_logger(name=logger_name, level="LOUD")

    def test_repeated_setup_does_not_duplicate_handlers(self, logger_name):
        setup_logger(name=logger_name)
        logger = setup_logger(name=logger_name, level="WARNING")

        assert len(logger.handlers) == 1
        assert logger.level == logging.WARNING

    def test_file_logging(self, logger_name, tmp_path):
        logger = setup_logger(
            name=logger_name,
            log_dir=str(tmp_path / "logs"),
            file_logging=True,
            console_logging=False,
        )
        logger.info("permission check")
        for handler in logger.handlers:
            handler.flush()

        log_file = tmp_path / "logs" / f"{logger_name}.log"
        content = log_file.read_text()
        assert "[INFO]" in content
        assert "permission check" in content
        stamp = r"\d{4}-\d\d-\d\dT\d\d:\d\d:\d\dZ"
        assert re.match(stamp + r" \[INFO\] \[" + re.escape(logger_name) + r"\]", content)


class TestGetLogger:
    def test_children_live_under_root(self):
        assert get_logger("rbac").name == "fleetguard.rbac"

    def test_qualified_names_are_kept(self):
        assert get_logger("fleetguard").name == "fleetguard"
        assert get_logger("fleetguard.tenancy").name == "fleetguard.tenancy"


def test_configure_logging_uses_settings(settings):
    logger = configure_logging(settings)

    assert logger.name == ROOT_LOGGER
    assert logger.level == logging.DEBUG
    assert logger.handlers
