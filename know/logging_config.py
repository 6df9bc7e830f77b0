"""Logging setup for the CLI and the API server.

The server logs JSON lines outside development. The CLI keeps stdout for
answers and writes terse `level: message` lines to stderr.
"""

import json
import logging
import sys
from datetime import UTC, datetime
from typing import Any, TextIO

from know.config import Environment, LogFormat, get_settings

# Attributes every LogRecord carries; anything else came in via `extra=`.
_RESERVED_ATTRS = frozenset(
    vars(logging.LogRecord("", logging.INFO, "", 0, "", (), None))
) | {"message", "asctime", "taskName"}

# Libraries that log every request at INFO.
_NOISY_LOGGERS = ("httpx", "httpcore", "qdrant_client", "uvicorn.access")


def extra_fields(record: logging.LogRecord) -> dict[str, Any]:
    """Fields attached to a record through `extra=`."""
    return {
        key: value
        for key, value in record.__dict__.items()
        if key not in _RESERVED_ATTRS and not key.startswith("_")
    }


class JSONFormatter(logging.Formatter):
    """One JSON object per line, with `extra=` fields nested under "extra"."""

    def format(self, record: logging.LogRecord) -> str:
        log_data: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "location": f"{record.module}.{record.funcName}:{record.lineno}",
        }

        fields = extra_fields(record)
        if fields:
            log_data["extra"] = fields
        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_data, default=str, ensure_ascii=False)


class DevFormatter(logging.Formatter):
    """Aligned, timestamped lines for running the server locally."""

    FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
    DATE_FORMAT = "%H:%M:%S"

    def __init__(self) -> None:
        super().__init__(fmt=self.FORMAT, datefmt=self.DATE_FORMAT)


class ConsoleFormatter(logging.Formatter):
    """`warning: message` lines for interactive commands."""

    def format(self, record: logging.LogRecord) -> str:
        line = f"{record.levelname.lower()}: {record.getMessage()}"
        if record.exc_info:
            line = f"{line}\n{self.formatException(record.exc_info)}"
        return line


_FORMATTERS: dict[LogFormat, type[logging.Formatter]] = {
    LogFormat.JSON: JSONFormatter,
    LogFormat.DEV: DevFormatter,
    LogFormat.CONSOLE: ConsoleFormatter,
}


def setup_logging(
    level: str | None = None,
    log_format: LogFormat | None = None,
    stream: TextIO | None = None,
) -> logging.Logger:
    """Configure the root logger.

    Args:
        level: Log level (defaults to settings).
        log_format: Line format. Falls back to the configured format, then to
            JSON outside development.
        stream: Output stream (defaults to stderr).

    Returns:
        The root logger.
    """
    settings = get_settings()
    numeric_level = getattr(logging, (level or settings.log_level).upper(), logging.INFO)

    log_format = log_format or settings.log_format
    if log_format is None:
        log_format = (
            LogFormat.DEV
            if settings.environment == Environment.DEVELOPMENT
            else LogFormat.JSON
        )

    handler = logging.StreamHandler(stream or sys.stderr)
    handler.setFormatter(_FORMATTERS[log_format]())

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(numeric_level)

    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(max(numeric_level, logging.WARNING))

    return root_logger


def get_logger(name: str) -> logging.Logger:
    """Get a module logger."""
    return logging.getLogger(name)
