"""Logging setup for the command line: a rotating log file plus terse stderr output."""

from __future__ import annotations

import logging
import sys
from logging.handlers import RotatingFileHandler
from typing import Iterable

from .paths import ensure_app_structure, log_path

LOGGER_NAME = "meeting_timer"
LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s [%(threadName)s] %(message)s"
CONSOLE_FORMAT = "%(levelname)s: %(message)s"
DEFAULT_LOG_LEVEL = logging.INFO
LOG_MAX_BYTES = 5_000_000
LOG_BACKUP_COUNT = 5

_RESERVED_ATTRS = frozenset(vars(logging.makeLogRecord({}))) | {"message", "asctime"}
_configured = False


class EventFormatter(logging.Formatter):
    """Append the ``extra={...}`` fields of a record as ``key=value`` pairs."""

    def format(self, record: logging.LogRecord) -> str:
        text = super().format(record)
        fields = {key: value for key, value in vars(record).items() if key not in _RESERVED_ATTRS}
        if not fields:
            return text
        event = fields.pop("event", None)
        pairs = [f"event={event}"] if event is not None else []
        pairs.extend(f"{key}={value!r}" for key, value in sorted(fields.items()))
        head, sep, tail = text.partition("\n")
        return f"{head} | {' '.join(pairs)}{sep}{tail}"


def _build_handlers(console_level: int) -> list[logging.Handler]:
    file_handler = RotatingFileHandler(
        log_path(), maxBytes=LOG_MAX_BYTES, backupCount=LOG_BACKUP_COUNT, encoding="utf-8", delay=True
    )
    file_handler.setFormatter(EventFormatter(LOG_FORMAT))

    console = logging.StreamHandler(sys.stderr)
    console.setLevel(console_level)
    console.setFormatter(logging.Formatter(CONSOLE_FORMAT))
    return [file_handler, console]


def configure_logging(
    level: int | str = DEFAULT_LOG_LEVEL,
    extra_handlers: Iterable[logging.Handler] | None = None,
    *,
    verbose: bool = False,
) -> logging.Logger:
    """Configure the ``meeting_timer`` logger once per process and return it.

    The file handler records everything at ``level``. The console only shows
    warnings unless ``verbose`` is set, so command output stays readable.
    """
    global _configured
    logger = logging.getLogger(LOGGER_NAME)
    if _configured:
        logger.setLevel(level)
        return logger

    ensure_app_structure()
    logger.setLevel(level)
    logger.propagate = False
    for handler in list(logger.handlers):
        logger.removeHandler(handler)

    handlers = _build_handlers(logging.DEBUG if verbose else logging.WARNING)
    handlers.extend(extra_handlers or ())
    for handler in handlers:
        logger.addHandler(handler)

    logging.captureWarnings(True)
    _configured = True
    logger.info("Logging initialized", extra={"event": "logging_configured", "log_file": str(log_path())})
    return logger


def reset_logging(level: int | str = DEFAULT_LOG_LEVEL, *, reconfigure: bool = True) -> logging.Logger:
    """Close and detach every handler, then optionally configure again."""
    global _configured
    logger = logging.getLogger(LOGGER_NAME)
    for handler in list(logger.handlers):
        try:
            handler.close()
        finally:
            logger.removeHandler(handler)
    _configured = False
    if reconfigure:
        return configure_logging(level)
    return logger
