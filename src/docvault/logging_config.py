"""Logging setup for the DocVault CLI and server.

Modules log through logging.getLogger(__name__) with structured context in
extra={...}; configure_logging() renders every record as one JSON line
carrying that context.
"""

from __future__ import annotations

import json
import logging
import os
import sys
from datetime import UTC, datetime
from typing import Any, TextIO

LOG_LEVEL_ENV = "DOCVAULT_LOG_LEVEL"

# Attributes every LogRecord has; anything else came in through extra=.
_STANDARD_ATTRS = frozenset(
    vars(logging.LogRecord("docvault", logging.INFO, __file__, 0, "", None, None))
) | {"message", "asctime", "taskName"}


class JsonLineFormatter(logging.Formatter):
    """Formats records as JSON objects: ts, level, logger, message, extras."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created, UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        for name, value in vars(record).items():
            if name not in _STANDARD_ATTRS and not name.startswith("_"):
                payload[name] = value
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=True, default=str)


def configure_logging(level: str | None = None, stream: TextIO | None = None) -> None:
    """Install the JSON-lines handler on the root logger.

    Args:
        level: Level name; defaults to DOCVAULT_LOG_LEVEL, then INFO.
        stream: Output stream (default stderr).
    """
    resolved = (level or os.environ.get(LOG_LEVEL_ENV) or "INFO").upper()

    handler = logging.StreamHandler(stream or sys.stderr)
    handler.setFormatter(JsonLineFormatter())

    root = logging.getLogger()
    for existing in list(root.handlers):
        if isinstance(existing.formatter, JsonLineFormatter):
            root.removeHandler(existing)
    root.addHandler(handler)
    root.setLevel(resolved)

    # Silence noisy libraries
    logging.getLogger("botocore").setLevel(logging.WARNING)
    logging.getLogger("boto3").setLevel(logging.WARNING)
    logging.getLogger("urllib3").setLevel(logging.WARNING)
