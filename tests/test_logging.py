"""
Tests for logging setup.
"""

import logging

import pytest

from medconsult.utils.logging import APP_LOGGERS, QUIET_LOGGERS, setup_logging


@pytest.fixture
def restore_loggers():
    """Put the application loggers back the way the test found them."""
    saved = {
        name: (logging.getLogger(name).handlers[:], logging.getLogger(name).level, logging.getLogger(name).propagate)
        for name in (*APP_LOGGERS, *QUIET_LOGGERS)
    }
    yield
    for name, (handlers, level, propagate) in saved.items():
        logger = logging.getLogger(name)
        for handler in logger.handlers:
            if handler not in handlers:
                handler.close()
        logger.handlers = handlers
        logger.setLevel(level)
        logger.propagate = propagate


class TestSetupLogging:

    def test_engine_and_api_loggers_are_configured(self, restore_loggers):
        loggers = setup_logging("DEBUG")

        assert [lg.name for lg in loggers] == ["medconsult", "api"]
        for name in ("medconsult.orchestration.manager", "api.routes.consultations"):
            child = logging.getLogger(name)
            assert child.getEffectiveLevel() == logging.DEBUG
            assert child.hasHandlers()

    def test_repeat_calls_do_not_duplicate_handlers(self, restore_loggers):
        setup_logging("INFO")
        setup_logging("INFO")

        assert len(logging.getLogger("api").handlers) == 1
        assert len(logging.getLogger("medconsult").handlers) == 1

    def test_log_file_receives_api_and_engine_lines(self, restore_loggers, tmp_path):
        log_file = tmp_path / "logs" / "medconsult.log"
        setup_logging("INFO", str(log_file))

        logging.getLogger("api.routes.consultations").info("request received")
        logging.getLogger("medconsult.delegate.client").info("task submitted")
        for handler in logging.getLogger("api").handlers:
            handler.flush()

        content = log_file.read_text()
        assert "api.routes.consultations" in content
        assert "request received" in content
        assert "task submitted" in content

    def test_http_client_logs_are_quieted(self, restore_loggers):
        setup_logging("DEBUG")

        assert logging.getLogger("httpx").level == logging.WARNING
