# PATH: core/logging.py
"""
Structured logging for the Portal client.

Contextual fields (url, attempt, dataset, ...) are passed only via
extra={"context": {...}}.
"""

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Optional, Union

from core.exceptions import PortalError

# httpx/httpcore log every request at INFO; the client logs its own attempts
NOISY_LOGGERS = ("httpx", "httpcore")


class StructuredFormatter(logging.Formatter):
    """
    JSON formatter for structured logging.

    Includes context fields from extra={"context": {...}}. A logged
    PortalError is also rendered as {kind, message, suggestions, context}.
    """

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        context = getattr(record, "context", None)
        if context:
            log_data["context"] = context

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)
            if isinstance(record.exc_info[1], PortalError):
                log_data["error"] = record.exc_info[1].render()

        return json.dumps(log_data, default=str)


class ConsoleFormatter(logging.Formatter):
    """Human-readable formatter for console output."""

    max_context_fields = 4

    def format(self, record: logging.LogRecord) -> str:
        timestamp = datetime.fromtimestamp(record.created).strftime("%Y-%m-%d %H:%M:%S")
        base = f"{timestamp} | {record.levelname:<8} | {record.name} | {record.getMessage()}"

        context = getattr(record, "context", None)
        if context:
            items = list(context.items())
            ctx_str = ", ".join(f"{k}={v}" for k, v in items[:self.max_context_fields])
            if len(items) > self.max_context_fields:
                ctx_str += f", ... (+{len(items) - self.max_context_fields} more)"
            base += f" | {ctx_str}"

        if record.exc_info:
            base += "\n" + self.formatException(record.exc_info)

        return base


def setup_logging(
    level: Union[int, str] = logging.INFO,
    log_file: Optional[str] = None,
    json_format: bool = False,
) -> None:
    """
    Setup logging configuration.

    Args:
        level: Logging level (int or name, e.g. "DEBUG")
        log_file: Optional file path for JSON log output
        json_format: Use JSON format (True) or console format (False)
    """
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())

    handlers: list[logging.Handler] = []

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setFormatter(
        StructuredFormatter() if json_format else ConsoleFormatter()
    )
    handlers.append(console_handler)

    if log_file:
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setFormatter(StructuredFormatter())
        handlers.append(file_handler)

    logging.basicConfig(
        level=level,
        handlers=handlers,
        force=True,
    )

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(max(level, logging.WARNING))


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger instance.

    Args:
        name: Logger name (typically module name)

    Returns:
        Logger instance
    """
    return logging.getLogger(name)
