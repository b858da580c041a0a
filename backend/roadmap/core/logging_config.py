"""Structured logging configuration.

Outside development every record is one JSON object per line. Records
emitted from inside a background propagation task carry the task's name, so
a reschedule can be traced back to the update that started it.
"""

from __future__ import annotations

import asyncio
import json
import logging
import sys
from datetime import datetime, timezone

# Attributes callers may attach via ``logger.info(..., extra={...})``
_EXTRA_FIELDS = ("request_id", "milestone_id", "dependency_id", "product_id", "task")

_DEV_FORMAT = "%(asctime)s %(levelname)-8s %(name)s - %(message)s"


class TaskNameFilter(logging.Filter):
    """Stamp records with the name of the asyncio task that emitted them."""

    def filter(self, record: logging.LogRecord) -> bool:
        if not hasattr(record, "task"):
            try:
                task = asyncio.current_task()
            except RuntimeError:
                task = None
            if task is not None:
                record.task = task.get_name()
        return True


class JSONFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        entry.update({f: getattr(record, f) for f in _EXTRA_FIELDS if hasattr(record, f)})
        if record.exc_info and record.exc_info[0] is not None:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, default=str)


def configure_logging(environment: str = "development", level: str = "INFO") -> None:
    """Replace the root logger's handlers; call once at startup."""
    root = logging.getLogger()
    root.setLevel(getattr(logging, level.upper(), logging.INFO))
    for existing in root.handlers[:]:
        root.removeHandler(existing)

    handler = logging.StreamHandler(sys.stdout)
    if environment == "development":
        handler.setFormatter(logging.Formatter(_DEV_FORMAT, datefmt="%H:%M:%S"))
    else:
        handler.setFormatter(JSONFormatter())
    handler.addFilter(TaskNameFilter())
    root.addHandler(handler)

    for noisy in ("uvicorn.access", "sqlalchemy.engine", "aiosqlite"):
        logging.getLogger(noisy).setLevel(logging.WARNING)
