# zos_connector/logging_config.py
"""
Stderr-only logging configuration.

Stdout is reserved for command output (reports, job logs, tables), so every
handler installed here writes to stderr.
"""

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any

HUMAN_FORMAT = "%(asctime)s  %(levelname)-7s  %(message)s"

_LEVELS = {
    "quiet": logging.WARNING,
    "normal": logging.INFO,
    "verbose": logging.DEBUG,
}


class JsonFormatter(logging.Formatter):
    """Formats log records as JSON for structured logging."""

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as JSON line."""
        log_data: dict[str, Any] = {
            "ts": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
        }

        if record.exc_info:
            log_data["exc"] = self.formatException(record.exc_info)

        return json.dumps(log_data)


def configure_logging(verbosity: str = "normal", json_output: bool = False) -> None:
    """
    Configure root logging to stderr.

    Args:
        verbosity: quiet, normal or verbose
        json_output: Emit JSON lines instead of the human-readable format
    """
    handler = logging.StreamHandler(sys.stderr)
    if json_output:
        handler.setFormatter(JsonFormatter())
    else:
        handler.setFormatter(logging.Formatter(HUMAN_FORMAT, datefmt="%H:%M:%S"))

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(_LEVELS.get(verbosity, logging.INFO))
