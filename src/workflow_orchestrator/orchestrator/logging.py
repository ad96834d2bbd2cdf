"""Structured logging configuration.

Records are rendered as one JSON object per line. Workflow correlation ids passed
through ``extra=`` (``instance_id``, ``workflow_id``, ``step_id``) become top-level
keys; any other extra attributes are grouped under ``"extra"``.
"""

from __future__ import annotations

import json
import logging
import sys
from datetime import UTC, datetime
from typing import Any, TextIO

# Attributes every LogRecord carries; anything else on a record came from `extra=`.
_STANDARD_ATTRS = frozenset(vars(logging.LogRecord("", 0, "", 0, "", None, None))) | {
    "message",
    "asctime",
}

CORRELATION_KEYS = ("instance_id", "workflow_id", "step_id")

TEXT_FORMAT = "%(asctime)s %(levelname)-8s %(name)s: %(message)s"


class JsonFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:  # noqa: A003 (record)
        payload: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        extra: dict[str, Any] = {}
        for key, value in vars(record).items():
            if key in _STANDARD_ATTRS or key.startswith("_"):
                continue
            if key in CORRELATION_KEYS:
                payload[key] = value
            else:
                extra[key] = value
        if extra:
            payload["extra"] = extra

        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)

        # Workflow variables can hold arbitrary values; never fail a log line over them.
        return json.dumps(payload, ensure_ascii=False, default=repr)


def configure_logging(
    level: str, *, json_output: bool = True, stream: TextIO | None = None
) -> None:
    """Install a single root handler writing to `stream` (stdout by default)."""

    root = logging.getLogger()
    for existing in list(root.handlers):
        root.removeHandler(existing)

    handler = logging.StreamHandler(stream=stream or sys.stdout)
    handler.setFormatter(
        JsonFormatter() if json_output else logging.Formatter(TEXT_FORMAT, "%H:%M:%S")
    )
    root.addHandler(handler)
    root.setLevel(level.upper())

    # uvicorn logs every request at INFO.
    logging.getLogger("uvicorn.access").setLevel(max(root.level, logging.WARNING))
