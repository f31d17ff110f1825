"""Tests for logging configuration."""

import logging

import pytest
import structlog

from spacehub.logging import QUIET_LOGGERS, setup_logging


@pytest.fixture(autouse=True)
def restore_logging():
    levels = {name: logging.getLogger(name).level for name in QUIET_LOGGERS}
    yield
    for name, level in levels.items():
        logging.getLogger(name).setLevel(level)
    structlog.reset_defaults()


class TestSetupLogging:
    """Tests for setup_logging."""

    def test_client_libraries_only_log_warnings(self):
        """Test that driver and HTTP client loggers, children included, are quieted."""
        setup_logging(debug=True)
        for name in ("pymongo", "pymongo.topology", "httpx", "httpcore.http11"):
            assert logging.getLogger(name).getEffectiveLevel() == logging.WARNING

    @pytest.mark.parametrize(
        ("debug", "renderer"),
        [(True, structlog.dev.ConsoleRenderer), (False, structlog.processors.JSONRenderer)],
    )
    def test_renderer_follows_debug_flag(self, debug, renderer):
        setup_logging(debug=debug)
        assert isinstance(structlog.get_config()["processors"][-1], renderer)
