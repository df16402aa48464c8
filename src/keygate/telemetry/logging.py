"""Structured logging with OTEL trace context.

Provides JSON logging with automatic trace context injection. All keygate
modules log through standard `logging.getLogger(__name__)` loggers under the
"keygate" namespace; configure_logging() installs the handler once.

Usage:
    from keygate.telemetry.logging import get_logger

    logger = get_logger("gate")
    logger.info("Request authorized", credential_id="...")
"""

from __future__ import annotations

import json
import logging
import sys
from datetime import UTC, datetime
from typing import Any

from opentelemetry import trace

from keygate.types import LogFormat

ROOT_LOGGER = "keygate"

# LogRecord attributes that are not user-supplied extra fields
_RESERVED_ATTRS = frozenset(
    {
        "name", "msg", "args", "created", "filename", "funcName",
        "levelname", "levelno", "lineno", "module", "msecs",
        "pathname", "process", "processName", "relativeCreated",
        "stack_info", "exc_info", "exc_text", "thread", "threadName",
        "message", "taskName",
    }
)


class StructuredLogFormatter(logging.Formatter):
    """JSON formatter with trace context injection.

    Formats log records as JSON with:
    - timestamp (ISO 8601)
    - level
    - component (logger name)
    - message
    - trace_id and span_id (if a span is recording)
    - exception (if exc_info is set)
    - Additional fields from extra
    """

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as JSON.

        Args:
            record: Log record to format

        Returns:
            JSON-formatted log string
        """
        log_data: dict[str, Any] = {
            "timestamp": datetime.now(UTC).isoformat(),
            "level": record.levelname,
            "component": record.name,
            "message": record.getMessage(),
        }

        span = trace.get_current_span()
        if span and span.is_recording():
            ctx = span.get_span_context()
            if ctx.is_valid:
                log_data["trace_id"] = format(ctx.trace_id, "032x")
                log_data["span_id"] = format(ctx.span_id, "016x")

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        for key, value in record.__dict__.items():
            if key not in _RESERVED_ATTRS:
                log_data[key] = value

        return json.dumps(log_data, default=str)


TEXT_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def configure_logging(
    level: str = "INFO",
    log_format: LogFormat | str = LogFormat.JSON,
    stream: Any = None,
) -> logging.Logger:
    """Install a single handler on the keygate root logger.

    Calling this again replaces the previous handler.

    Args:
        level: Level name (DEBUG, INFO, WARNING, ERROR)
        log_format: json or text
        stream: Output stream (stderr by default)

    Returns:
        The configured keygate logger
    """
    logger = logging.getLogger(ROOT_LOGGER)
    logger.setLevel(level.upper() if isinstance(level, str) else level)

    for handler in list(logger.handlers):
        logger.removeHandler(handler)

    handler = logging.StreamHandler(stream or sys.stderr)
    if LogFormat(log_format) is LogFormat.JSON:
        handler.setFormatter(StructuredLogFormatter())
    else:
        handler.setFormatter(logging.Formatter(TEXT_FORMAT))
    logger.addHandler(handler)
    logger.propagate = False
    return logger


class GateLogger:
    """Structured logger with keyword fields.

    Wraps Python logging so fields can be passed as keyword arguments and end
    up as top-level keys in the JSON output.
    """

    def __init__(self, name: str, level: int | None = None):
        """Initialize logger.

        Args:
            name: Component name (becomes keygate.<name>)
            level: Optional logging level override
        """
        self._logger = logging.getLogger(f"{ROOT_LOGGER}.{name}")
        if level is not None:
            self._logger.setLevel(level)

    @property
    def name(self) -> str:
        return self._logger.name

    def _log(self, level: int, message: str, **kwargs: Any) -> None:
        self._logger.log(level, message, extra=kwargs)

    def debug(self, message: str, **kwargs: Any) -> None:
        """Log debug message."""
        self._log(logging.DEBUG, message, **kwargs)

    def info(self, message: str, **kwargs: Any) -> None:
        """Log info message."""
        self._log(logging.INFO, message, **kwargs)

    def warning(self, message: str, **kwargs: Any) -> None:
        """Log warning message."""
        self._log(logging.WARNING, message, **kwargs)

    def error(self, message: str, **kwargs: Any) -> None:
        """Log error message."""
        self._log(logging.ERROR, message, **kwargs)

    def exception(self, message: str, **kwargs: Any) -> None:
        """Log exception with traceback."""
        self._logger.exception(message, extra=kwargs)


# Logger cache
_loggers: dict[str, GateLogger] = {}


def get_logger(name: str, level: int | None = None) -> GateLogger:
    """Get or create a structured logger.

    Args:
        name: Logger name (component name)
        level: Logging level

    Returns:
        GateLogger instance
    """
    if name not in _loggers:
        _loggers[name] = GateLogger(name, level)
    return _loggers[name]


def reset_loggers() -> None:
    """Reset logger cache (for testing)."""
    global _loggers
    _loggers = {}
