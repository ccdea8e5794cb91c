"""
Logging configuration for agentcomm.

Console output is color coded per level in development; set
AGENTCOMM_LOG_JSON=1 to emit one JSON object per line for log shippers.
"""

import json
import logging
import sys
from typing import Optional

from app.config import get_settings


LOGGER_PREFIX = "agentcomm"
LINE_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"


class Colors:
    GREY = "\x1b[38;20m"
    GREEN = "\x1b[32;20m"
    YELLOW = "\x1b[33;20m"
    RED = "\x1b[31;20m"
    BOLD_RED = "\x1b[31;1m"
    RESET = "\x1b[0m"


class ColoredFormatter(logging.Formatter):
    """Formatter that wraps each line in the color for its level."""

    LEVEL_COLORS = {
        logging.DEBUG: Colors.GREY,
        logging.INFO: Colors.GREEN,
        logging.WARNING: Colors.YELLOW,
        logging.ERROR: Colors.RED,
        logging.CRITICAL: Colors.BOLD_RED,
    }

    def format(self, record):
        color = self.LEVEL_COLORS.get(record.levelno, Colors.RESET)
        formatter = logging.Formatter(color + LINE_FORMAT + Colors.RESET, datefmt="%Y-%m-%d %H:%M:%S")
        return formatter.format(record)


class JsonFormatter(logging.Formatter):
    def format(self, record):
        log_record = {
            "timestamp": self.formatTime(record, "%Y-%m-%dT%H:%M:%S"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        if record.exc_info:
            log_record["exception"] = self.formatException(record.exc_info)
        return json.dumps(log_record)


def setup_logging(
    level: Optional[str] = None,
    json_format: Optional[bool] = None,
) -> None:
    """
    Configure the root logger.

    Args:
        level: Log level name; falls back to AGENTCOMM_LOG_LEVEL, then DEBUG/INFO by debug flag
        json_format: Force JSON output on or off; defaults to AGENTCOMM_LOG_JSON
    """
    settings = get_settings()

    log_level = level or settings.log_level or ("DEBUG" if settings.debug else "INFO")
    numeric_level = getattr(logging, log_level.upper(), logging.INFO)
    if json_format is None:
        json_format = settings.log_json

    root_logger = logging.getLogger()
    root_logger.setLevel(numeric_level)

    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(numeric_level)
    console_handler.setFormatter(JsonFormatter() if json_format else ColoredFormatter())
    root_logger.addHandler(console_handler)

    # Silence noisy loggers
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("aiosqlite").setLevel(logging.WARNING)
    logging.getLogger("asyncpg").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)

    logging.getLogger(LOGGER_PREFIX).setLevel(numeric_level)


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger namespaced under ``agentcomm``.

    Usage:
        from app.logging_config import get_logger
        logger = get_logger(__name__)
    """
    if not name.startswith(LOGGER_PREFIX):
        name = f"{LOGGER_PREFIX}.{name}"
    return logging.getLogger(name)
