# tests/test_logging_config.py
import logging

from pythonjsonlogger.json import JsonFormatter

from attendsync.core import logging as logging_module
from attendsync.core.logging import build_logging_config, setup_logging


class DummySettings:
    LOG_LEVEL = "debug"
    LOG_FORMAT = "json"


def test_standard_format_by_default():
    config = build_logging_config("INFO", "standard")

    assert config["handlers"]["console"]["formatter"] == "standard"
    assert config["loggers"][""]["level"] == "INFO"
    assert config["loggers"]["sqlalchemy.engine"]["level"] == "WARNING"


def test_json_format_uses_python_json_logger():
    config = build_logging_config("warning", "JSON")

    assert config["handlers"]["console"]["formatter"] == "json"
    assert config["formatters"]["json"]["()"] is JsonFormatter
    assert config["loggers"][""]["level"] == "WARNING"


def test_setup_logging_applies_settings(monkeypatch):
    monkeypatch.setattr(logging_module, "get_settings", lambda: DummySettings())

    logger = setup_logging()

    assert logger.name == "attendsync"
    assert logging.getLogger().level == logging.DEBUG
    root_handlers = logging.getLogger().handlers
    assert any(isinstance(h.formatter, JsonFormatter) for h in root_handlers)
