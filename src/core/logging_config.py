"""Structured logging configuration.

This module initializes structlog loggers that render JSON events into
the stdlib ``dumpscan`` logger tree, so the same events reach the console
and the per-run log file.
"""

from __future__ import annotations

from contextlib import contextmanager
import logging
from pathlib import Path
import sys
from typing import Any, Iterator

import structlog

ROOT_LOGGER_NAME = "dumpscan"
_CONSOLE_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s"
_RUN_LOG_FORMAT = "[%(asctime)s] %(message)s"


def get_logger(name: str) -> Any:
    """Return a module logger instance.

    Args:
        name: Logger name, usually __name__.

    Returns:
        A structlog logger bound to ``dumpscan.<name>``.
    """
    structlog.configure(
        processors=[
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.add_log_level,
            structlog.processors.JSONRenderer(sort_keys=True),
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )
    return structlog.get_logger(f"{ROOT_LOGGER_NAME}.{name}")


def configure_console_logging(level: int = logging.INFO) -> None:
    """Attach a stderr handler to the dumpscan logger tree once.

    Args:
        level: Minimum level emitted to the console.
    """
    root_logger = logging.getLogger(ROOT_LOGGER_NAME)
    root_logger.setLevel(level)
    if any(isinstance(handler, _ConsoleHandler) for handler in root_logger.handlers):
        return
    handler = _ConsoleHandler()
    handler.setFormatter(logging.Formatter(_CONSOLE_FORMAT))
    root_logger.addHandler(handler)


@contextmanager
def run_log(log_path: Path) -> Iterator[Path]:
    """Append timestamped run events to ``log_path`` for the block duration.

    Args:
        log_path: Plain-text run log file, opened in append mode.

    Yields:
        The run log path.
    """
    log_path.parent.mkdir(parents=True, exist_ok=True)
    root_logger = logging.getLogger(ROOT_LOGGER_NAME)
    previous_level = root_logger.level
    handler = logging.FileHandler(log_path, mode="a", encoding="utf-8")
    handler.setFormatter(logging.Formatter(_RUN_LOG_FORMAT))
    handler.setLevel(logging.INFO)
    root_logger.addHandler(handler)
    if previous_level == logging.NOTSET or previous_level > logging.INFO:
        root_logger.setLevel(logging.INFO)
    try:
        yield log_path
    finally:
        root_logger.removeHandler(handler)
        handler.close()
        root_logger.setLevel(previous_level)


class _ConsoleHandler(logging.StreamHandler):
    """Stream handler bound to whatever ``sys.stderr`` is at emit time."""

    def emit(self, record: logging.LogRecord) -> None:
        self.stream = sys.stderr
        super().emit(record)
