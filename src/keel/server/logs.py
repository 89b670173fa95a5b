"""Logging setup for keel applications.

Every keel module logs through a ``keel.*`` logger (``keel.server``,
``keel.data``, ``keel.validation``, ``keel.container``, ``keel.routing``).
``configure_logging`` attaches handlers to the ``keel`` parent logger:
stderr always, plus a file rotated at midnight when ``log_dir`` is set.
Nothing is installed unless the application asks for it.
"""

from __future__ import annotations

import json
import logging
import traceback
from datetime import UTC, datetime
from logging.handlers import TimedRotatingFileHandler
from pathlib import Path
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from keel.config import AppConfig

# Level names accepted in LOG_LEVEL, including the syslog-style extras
LEVELS: dict[str, int] = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "notice": logging.INFO,
    "warning": logging.WARNING,
    "error": logging.ERROR,
    "critical": logging.CRITICAL,
    "alert": logging.CRITICAL,
    "emergency": logging.CRITICAL,
}

TEXT_FORMAT = "[%(asctime)s] %(levelname)s %(name)s: %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# Marks handlers installed here so a second call can replace them
_KEEL_HANDLER = "_keel_handler"


class JsonFormatter(logging.Formatter):
    """One JSON object per line, for log aggregators."""

    def __init__(self, app_name: str = "keel", environment: str = "production") -> None:
        super().__init__()
        self.app_name = app_name
        self.environment = environment

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=UTC).isoformat(),
            "level": record.levelname.lower(),
            "logger": record.name,
            "message": record.getMessage(),
            "app": self.app_name,
            "env": self.environment,
        }
        if record.exc_info and record.exc_info[1] is not None:
            exc = record.exc_info[1]
            entry["error"] = {
                "type": type(exc).__name__,
                "message": str(exc),
                "stack": "".join(traceback.format_exception(*record.exc_info)),
            }
        return json.dumps(entry, default=str)


def resolve_level(name: str) -> int:
    """Map a LOG_LEVEL value to a ``logging`` level; unknown names mean INFO."""
    return LEVELS.get(name.strip().lower(), logging.INFO)


def configure_logging(config: AppConfig) -> logging.Logger:
    """Install keel's handlers on the ``keel`` logger and return it.

    Calling it again replaces the handlers from the previous call.
    """
    logger = logging.getLogger("keel")
    for handler in list(logger.handlers):
        if getattr(handler, _KEEL_HANDLER, False):
            logger.removeHandler(handler)
            handler.close()

    formatter: logging.Formatter
    if config.log_format == "json":
        formatter = JsonFormatter(app_name=config.name, environment=config.env)
    else:
        formatter = logging.Formatter(TEXT_FORMAT, datefmt=DATE_FORMAT)

    handlers: list[logging.Handler] = [logging.StreamHandler()]
    if config.log_dir:
        log_dir = Path(config.log_dir)
        log_dir.mkdir(parents=True, exist_ok=True)
        handlers.append(
            TimedRotatingFileHandler(
                log_dir / f"{config.name}.log",
                when="midnight",
                backupCount=config.log_max_files,
                encoding="utf-8",
            )
        )

    for handler in handlers:
        handler.setFormatter(formatter)
        setattr(handler, _KEEL_HANDLER, True)
        logger.addHandler(handler)

    logger.setLevel(resolve_level(config.log_level))
    return logger
