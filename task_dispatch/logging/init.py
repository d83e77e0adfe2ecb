from __future__ import annotations

import logging
import sys
from typing import TextIO

"""Console logging for the dispatcher.

Each output line is `LABEL message` with LABEL in DEBUG|INFO|WARN|ERROR|SUMMARY,
so wrapper scripts can filter on the first word. Module loggers live under
`task_dispatch.*` and reach the console through the application logger set up
here. In debug mode the emitting module is shown after the label.
"""

__all__ = [
    "APP_LOGGER_NAME",
    "SUMMARY_LEVEL",
    "LabeledFormatter",
    "setup_logging",
    "set_debug",
    "get_logger",
    "log_summary",
    "reset_logging",
]

APP_LOGGER_NAME = "task_dispatch"

SUMMARY_LEVEL = 25  # INFO < SUMMARY < WARNING
SUMMARY_LABEL = "SUMMARY"

_LABELS = {
    logging.DEBUG: "DEBUG",
    logging.INFO: "INFO",
    SUMMARY_LEVEL: SUMMARY_LABEL,
    logging.WARNING: "WARN",
    logging.ERROR: "ERROR",
    logging.CRITICAL: "CRITICAL",
}

_app_logger: logging.Logger | None = None


class LabeledFormatter(logging.Formatter):
    def __init__(self, show_origin: bool = False) -> None:
        super().__init__()
        self.show_origin = show_origin

    def format(self, record: logging.LogRecord) -> str:
        label = _LABELS.get(record.levelno, record.levelname)
        message = record.getMessage()
        if record.exc_info and record.levelno >= logging.ERROR:
            message = f"{message}\n{self.formatException(record.exc_info)}"
        if self.show_origin and record.name != APP_LOGGER_NAME:
            origin = record.name.rsplit(".", 1)[-1]
            return f"{label} [{origin}] {message}"
        return f"{label} {message}"


def setup_logging(stream: TextIO | None = None, level: int = logging.INFO) -> logging.Logger:
    """Configure the application logger once; later calls return it unchanged.

    Output defaults to stdout, the same stream the CLI prints JSON to, so log
    lines and results keep their relative order.
    """
    global _app_logger
    if _app_logger is not None:
        return _app_logger

    logging.addLevelName(SUMMARY_LEVEL, SUMMARY_LABEL)

    app = logging.getLogger(APP_LOGGER_NAME)
    for old in list(app.handlers):
        app.removeHandler(old)

    console = logging.StreamHandler(stream if stream is not None else sys.stdout)
    console.setFormatter(LabeledFormatter())
    console.setLevel(level)
    app.addHandler(console)
    app.setLevel(level)
    app.propagate = False  # root ハンドラとの二重出力防止

    _app_logger = app
    return app


def set_debug(logger: logging.Logger) -> None:
    """Lower `logger` and its handlers to DEBUG and show the emitting module."""
    logger.setLevel(logging.DEBUG)
    for handler in logger.handlers:
        handler.setLevel(logging.DEBUG)
        if isinstance(handler.formatter, LabeledFormatter):
            handler.formatter.show_origin = True


def get_logger() -> logging.Logger:
    return _app_logger if _app_logger is not None else setup_logging()


def log_summary(line: str) -> None:
    """Emit a rendered SUMMARY line; the formatter supplies the label."""
    prefix = f"{SUMMARY_LABEL} "
    if line.startswith(prefix):
        line = line[len(prefix):]
    get_logger().log(SUMMARY_LEVEL, line)


def reset_logging() -> None:
    """Forget the configured logger so the next setup_logging() rebuilds it (tests)."""
    global _app_logger
    _app_logger = None
