from __future__ import annotations

import logging
import sys
from typing import TextIO

"""Labeled console logging for the importer.

Every line written by the importer starts with one of INFO|WARN|ERROR|SUMMARY
(DEBUG when --debug is on). Modules log through logging.getLogger(__name__);
their records propagate into the package logger configured here, which owns
the only handler.
"""

__all__ = [
    "LOGGER_NAME",
    "SUMMARY_LEVEL",
    "LabeledFormatter",
    "setup_logging",
    "get_logger",
    "set_debug",
    "log_summary",
    "reset_logging",
]

LOGGER_NAME = "stock_import"

# between INFO (20) and WARNING (30)
SUMMARY_LEVEL = 25

_LABELS = {
    logging.DEBUG: "DEBUG",
    logging.INFO: "INFO",
    SUMMARY_LEVEL: "SUMMARY",
    logging.WARNING: "WARN",
    logging.ERROR: "ERROR",
    logging.CRITICAL: "CRITICAL",
}

_configured: logging.Logger | None = None


class LabeledFormatter(logging.Formatter):
    """Renders "<LABEL> <message>"; unknown levels fall back to their name."""

    def format(self, record: logging.LogRecord) -> str:
        label = _LABELS.get(record.levelno, record.levelname)
        line = f"{label} {record.getMessage()}"
        if record.exc_info:
            line += "\n" + self.formatException(record.exc_info)
        return line


def setup_logging(level: int = logging.INFO, stream: TextIO | None = None) -> logging.Logger:
    """Attach the labeled stdout handler to the package logger.

    Only the first call configures anything; later calls return the same
    logger until reset_logging() is called.
    """
    global _configured
    if _configured is not None:
        return _configured

    logging.addLevelName(SUMMARY_LEVEL, "SUMMARY")
    pkg_logger = logging.getLogger(LOGGER_NAME)
    for existing in list(pkg_logger.handlers):
        pkg_logger.removeHandler(existing)

    console = logging.StreamHandler(stream if stream is not None else sys.stdout)
    console.setFormatter(LabeledFormatter())
    console.setLevel(level)
    pkg_logger.addHandler(console)
    pkg_logger.setLevel(level)
    # the handler above is the only output; the root logger stays quiet
    pkg_logger.propagate = False

    _configured = pkg_logger
    return pkg_logger


def get_logger() -> logging.Logger:
    return _configured if _configured is not None else setup_logging()


def set_debug(logger: logging.Logger) -> None:
    logger.setLevel(logging.DEBUG)
    for h in logger.handlers:
        h.setLevel(logging.DEBUG)


def log_summary(message: str) -> None:
    """Emit `message` with the SUMMARY label."""
    get_logger().log(SUMMARY_LEVEL, message)


def reset_logging() -> None:
    """Forget the configured logger so the next setup_logging() starts over (tests)."""
    global _configured
    _configured = None
