# attendsync/core/logging.py
"""
Logging configuration for the AttendSync service.

Everything goes to the console; `LOG_FORMAT=json` switches the console
formatter to structured JSON lines for log shipping.
"""
import logging
import logging.config
from typing import Any, Dict

from pythonjsonlogger.json import JsonFormatter

from attendsync.core.config import get_settings


def build_logging_config(level: str, fmt: str) -> Dict[str, Any]:
    formatter = "json" if fmt.lower() == "json" else "standard"
    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "standard": {
                "format": "%(asctime)s [%(levelname)s] %(name)s: %(message)s",
            },
            "json": {
                "()": JsonFormatter,
                "format": "%(asctime)s %(levelname)s %(name)s %(message)s",
            },
        },
        "handlers": {
            "console": {
                "class": "logging.StreamHandler",
                "formatter": formatter,
            },
        },
        "loggers": {
            "": {
                "handlers": ["console"],
                "level": level.upper(),
            },
            "sqlalchemy.engine": {
                "level": "WARNING",
            },
        },
    }


def setup_logging() -> logging.Logger:
    """Configure application logging from settings."""
    settings = get_settings()
    logging.config.dictConfig(build_logging_config(settings.LOG_LEVEL, settings.LOG_FORMAT))
    logger = logging.getLogger("attendsync")
    logger.debug("Logging initialized with level %s", settings.LOG_LEVEL)
    return logger
