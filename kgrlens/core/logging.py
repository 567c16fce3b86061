"""Centralized logging configuration with JSON-formatted extras."""

import json
import logging
import sys
from typing import Any, TextIO

from kgrlens.config import settings

# Attributes every LogRecord carries; anything else came in through ``extra=``
_STANDARD_ATTRS = frozenset(vars(logging.LogRecord("", logging.INFO, "", 0, "", (), None))) | {
    "message",
    "asctime",
}


def record_extras(record: logging.LogRecord) -> dict[str, Any]:
    """Return the structured context attached to a record via ``extra=``."""
    return {
        key: value
        for key, value in record.__dict__.items()
        if key not in _STANDARD_ATTRS and not key.startswith("_")
    }


class JSONExtrasFormatter(logging.Formatter):
    """Formatter that outputs a readable log line with extras as JSON.

    Output format:
        2024-01-15 10:30:45 | WARNING  | kgrlens.services.serp.ledger | Low SERP credits warning: 42 credits remaining {"remaining": 42}
    """

    def format(self, record: logging.LogRecord) -> str:
        # Build the base message
        record.message = record.getMessage()
        timestamp = self.formatTime(record, self.datefmt)
        line = f"{timestamp} | {record.levelname:<8} | {record.name} | {record.message}"

        extras = record_extras(record)
        if extras:
            try:
                line = f"{line} {json.dumps(extras, default=str, ensure_ascii=False)}"
            except (TypeError, ValueError):
                line = f"{line} {extras!r}"

        # Append exception info if present
        if record.exc_info and not record.exc_text:
            record.exc_text = self.formatException(record.exc_info)
        if record.exc_text:
            line = f"{line}\n{record.exc_text}"

        return line


def setup_logging(level: str | None = None, stream: TextIO | None = None) -> None:
    """Configure the 'kgrlens' logger once; later calls only adjust the level.

    Logs default to stderr so the CLI can keep stdout for its JSON document.
    """
    logger = logging.getLogger("kgrlens")
    resolved_level = (level or settings.log_level).upper()
    logger.setLevel(resolved_level)

    # Avoid adding duplicate handlers if called multiple times
    if logger.handlers:
        for existing in logger.handlers:
            existing.setLevel(resolved_level)
        return

    handler = logging.StreamHandler(stream or sys.stderr)
    handler.setLevel(resolved_level)
    handler.setFormatter(JSONExtrasFormatter(datefmt="%Y-%m-%d %H:%M:%S"))
    logger.addHandler(handler)

    # Prevent propagation to root logger (avoid duplicate output)
    logger.propagate = False
