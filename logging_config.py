"""Centralized logging configuration.

This module provides:
- PlainFormatter for local, human-readable stderr output
- JSONFormatter for structured logging (one JSON object per line)
- mask_secret for writing codes and tokens to logs without leaking them

Messages follow the ``[TAG] message`` convention; the JSON formatter lifts the
tag into its own field.
"""

import json
import logging
import re
import sys
from typing import Optional

_TAG_RE = re.compile(r'\[([A-Z_]+)\]\s*(.*)', re.DOTALL)


class JSONFormatter(logging.Formatter):
    """JSON formatter for structured logging."""

    def __init__(self, service_name: str = None):
        super().__init__()
        self.service_name = service_name or "mcp-session-gateway"

    def format(self, record: logging.LogRecord) -> str:
        # Extract tag from message if present: [TAG] message
        tag = None
        message = record.getMessage()
        tag_match = _TAG_RE.match(message)
        if tag_match:
            tag = tag_match.group(1)
            message = tag_match.group(2)

        log_entry = {
            "service": self.service_name,
            "time": self.formatTime(record, "%Y-%m-%dT%H:%M:%S"),
            "level": record.levelname,
            "tag": tag,
            "message": message,
            "logger": record.name,
            "extra": {
                "function": record.funcName,
                "line": record.lineno,
            }
        }

        if record.exc_info:
            log_entry["extra"]["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_entry, default=str)


class PlainFormatter(logging.Formatter):
    """Plain text formatter for stderr output (local debugging)."""

    def __init__(self):
        super().__init__(
            fmt='%(asctime)s [%(levelname)s] %(name)s: %(message)s',
            datefmt='%Y-%m-%d %H:%M:%S'
        )


def mask_secret(value: Optional[str], keep: int = 6) -> str:
    """Return the first ``keep`` characters of a secret followed by ``****``."""
    if not value:
        return "-"
    return f"{value[:keep]}****"


def setup_logging(
    service_name: str = None,
    level: str = "INFO",
    fmt: str = "plain",
) -> logging.Logger:
    """Configure the root logger.

    Args:
        service_name: Name stamped on structured log entries.
        level: Log level name (DEBUG, INFO, ...).
        fmt: ``plain`` for readable stderr output, ``json`` for one JSON
            object per line.

    Returns:
        Configured root logger.
    """
    numeric_level = logging.getLevelName(str(level).upper())
    if not isinstance(numeric_level, int):
        raise ValueError(f"Unknown log level: {level}")

    root_logger = logging.getLogger()
    root_logger.setLevel(numeric_level)
    root_logger.handlers.clear()

    stderr_handler = logging.StreamHandler(sys.stderr)
    stderr_handler.setLevel(numeric_level)
    if fmt == "json":
        stderr_handler.setFormatter(JSONFormatter(service_name))
    else:
        stderr_handler.setFormatter(PlainFormatter())
    root_logger.addHandler(stderr_handler)

    # Suppress noisy HTTP client / access logs
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)

    logger = logging.getLogger(__name__)
    logger.info(f"[STARTUP] Logging configured (level={str(level).upper()}, format={fmt})")

    return root_logger
