"""
Structured JSON logging for the shipper's own diagnostics.

Upload outcomes and write failures go through standard ``logging``. The
CLI renders them as one JSON object per line on stderr, so stdout stays
free for command output.
"""

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any

PACKAGE_LOGGER = "cloudwatch_log_shipper"

# Attributes every LogRecord carries; anything else came in through ``extra``
_RECORD_ATTRS = frozenset(logging.LogRecord("", 0, "", 0, "", None, None).__dict__) | {
    "message",
    "asctime",
}


class StructuredJsonFormatter(logging.Formatter):
    """
    JSON formatter for diagnostic records.

    Each record becomes one line with:
    - timestamp: record creation time, ISO 8601 in UTC
    - level, logger, message
    - source: ``module:lineno``, for warnings and above
    - any ``extra`` fields, such as log_group and log_stream from
      ShipperLoggerAdapter
    """

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as JSON."""
        log_obj: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        if record.levelno >= logging.WARNING:
            log_obj["source"] = f"{record.module}:{record.lineno}"

        if record.exc_info:
            log_obj["exception"] = self.formatException(record.exc_info)

        for key, value in record.__dict__.items():
            if key in _RECORD_ATTRS or key.startswith("_"):
                continue
            try:
                json.dumps(value)
                log_obj[key] = value
            except (TypeError, ValueError):
                log_obj[key] = str(value)

        return json.dumps(log_obj)


def configure_structured_logging(
    level: int = logging.INFO,
    logger_name: str = PACKAGE_LOGGER,
) -> logging.Logger:
    """
    Send the shipper's diagnostics to stderr as JSON lines.

    Args:
        level: Logging level (default: INFO)
        logger_name: Logger to configure (default: the package logger)

    Returns:
        Configured logger instance
    """
    logger = logging.getLogger(logger_name)

    # Reconfiguring replaces the previous handler
    logger.handlers.clear()

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(StructuredJsonFormatter())

    logger.addHandler(handler)
    logger.setLevel(level)

    return logger


class ShipperLoggerAdapter(logging.LoggerAdapter):
    """
    Tags every record with the upload destination.

    The upload engine wraps its module logger with
    ``{"log_group": ..., "log_stream": ...}`` for the duration of a cycle.
    Fields passed per call in ``extra`` take precedence.
    """

    def process(self, msg: str, kwargs: dict[str, Any]) -> tuple[str, dict[str, Any]]:
        kwargs["extra"] = {**self.extra, **kwargs.get("extra", {})}
        return msg, kwargs
