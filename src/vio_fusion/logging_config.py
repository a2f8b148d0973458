"""Console logging setup for scripts and demos.

The library itself only creates module loggers; call :func:`setup_logging`
from an application entry point.
"""

from __future__ import annotations

import logging
import logging.config
import sys


def setup_logging(level: str | int = "INFO", log_file: str | None = None) -> None:
    """Install a console handler (and optionally a file handler) on the root logger.

    Args:
        level: Level for the ``vio_fusion`` loggers, name or number
        log_file: Optional path of a log file receiving the same records
    """
    if isinstance(level, int):
        level = logging.getLevelName(level)

    handlers = ["console"]
    config = {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "detailed": {
                "format": "[%(asctime)s] %(levelname)s [%(name)s:%(lineno)d] %(message)s",
                "datefmt": "%Y-%m-%d %H:%M:%S",
            },
        },
        "handlers": {
            "console": {
                "level": level,
                "class": "logging.StreamHandler",
                "formatter": "detailed",
                "stream": sys.stdout,
            },
        },
        "loggers": {
            "vio_fusion": {"level": level, "propagate": True},
        },
        "root": {"level": "WARNING", "handlers": handlers},
    }

    if log_file is not None:
        config["handlers"]["file"] = {
            "level": level,
            "class": "logging.FileHandler",
            "formatter": "detailed",
            "filename": log_file,
            "encoding": "utf-8",
        }
        handlers.append("file")

    logging.config.dictConfig(config)
    logging.getLogger(__name__).debug("Logging initialized at level %s", level)
