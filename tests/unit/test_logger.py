"""
Unit tests for logging setup
"""
import logging
import logging.handlers

import pytest

from inventory_insights.utils.logger import (
    ROOT_LOGGER_NAME, get_logger, mask_token, setup_logging
)


@pytest.fixture
def log_dir(tmp_path, monkeypatch):
    """Route the package log file into a temporary directory"""
    monkeypatch.setenv("LOG_DIR", str(tmp_path))
    monkeypatch.setenv("LOG_LEVEL", "INFO")
    monkeypatch.setenv("DEBUG_MODE", "false")
    setup_logging()
    yield tmp_path
    monkeypatch.undo()
    setup_logging()


def file_handlers(logger):
    return [h for h in logger.handlers if isinstance(h, logging.handlers.RotatingFileHandler)]


class TestLoggerHierarchy:
    """Test that handlers live on the package logger only"""

    def test_module_loggers_propagate_without_handlers(self, log_dir):
        logger = get_logger("inventory_insights.services.audit_shipper")

        assert logger.handlers == []
        assert logger.propagate is True

    def test_foreign_names_are_nested_under_package(self, log_dir):
        assert get_logger("scanner").name == f"{ROOT_LOGGER_NAME}.scanner"
        assert get_logger(ROOT_LOGGER_NAME).name == ROOT_LOGGER_NAME

    def test_single_file_handler_after_repeated_setup(self, log_dir):
        setup_logging()
        setup_logging()

        root = logging.getLogger(ROOT_LOGGER_NAME)
        handlers = file_handlers(root)
        assert len(handlers) == 1
        assert handlers[0].baseFilename == str(log_dir / "inventory_insights.log")
        assert root.propagate is False

    def test_records_from_two_modules_share_one_file(self, log_dir):
        get_logger("inventory_insights.api.client").info("first module line")
        get_logger("inventory_insights.cli").info("second module line")

        content = (log_dir / "inventory_insights.log").read_text(encoding="utf-8")
        assert "first module line" in content
        assert "second module line" in content


class TestRotation:
    """Test rotation when several module loggers write"""

    def test_marker_lands_in_current_file_after_rollover(self, log_dir):
        writer = get_logger("inventory_insights.services.audit_trail")
        other = get_logger("inventory_insights.services.auth_service")
        line = "x" * 1000

        for _ in range(1100):
            writer.info(line)
        other.info("rotation-marker-after-rollover")

        current = (log_dir / "inventory_insights.log").read_text(encoding="utf-8")
        assert "rotation-marker-after-rollover" in current
        assert (log_dir / "inventory_insights.log.1").exists()
        assert (log_dir / "inventory_insights.log").stat().st_size <= 1024 * 1024


class TestMaskToken:
    """Test token shortening for log output"""

    def test_long_token_is_shortened(self):
        masked = mask_token("a" * 40)

        assert masked == "aaaaaaaaaaaa...(40 chars)"

    def test_short_and_missing_tokens(self):
        assert mask_token("short") == "***"
        assert mask_token(None) == "<none>"
