"""Logging configuration tests."""

import pytest
import structlog

from app.core.config import get_settings
from app.core.logging import configure_logging


@pytest.fixture(autouse=True)
def _restore_structlog():
    yield
    settings = get_settings()
    configure_logging(settings.log_level, settings.log_format)


@pytest.mark.parametrize(
    "level,fmt",
    [("debug", "text"), ("info", "json"), ("WARNING", "json")],
)
def test_configure_logging_accepts_level_names(level, fmt):
    configure_logging(level, fmt)
    structlog.get_logger().warning("logging.configured", level=level)


def test_level_filters_lower_events(capsys):
    configure_logging("warning", "json")
    log = structlog.get_logger()
    log.info("logging.hidden")
    log.warning("logging.shown")

    out = capsys.readouterr().out
    assert "logging.shown" in out
    assert "logging.hidden" not in out
