"""Logging setup for instructor-analytics.

LOG_JSON picks the output shape:

  plain lines for local dev and `docker logs`; WARNING and above carry
  the [file:line] that emitted them.

  JSON lines for production.  Context passed with `extra=` (request_id,
  path, duration_ms from the request middleware; operation and
  instructor_id from the analytics service) becomes top-level keys, so
  `operation == "students" AND level == "ERROR"` is a query, not a grep.

The current request id lives in `request_id_var`.  RequestContextMiddleware
sets it; `_RequestIdFilter` copies it onto every record that reaches the
handler, including records from tasks spawned by asyncio.gather, which
inherit the context of the request task.

Metrics live in instructor_analytics/core/metrics.py.
"""

from __future__ import annotations

import json
import logging
import sys
from contextvars import ContextVar

request_id_var: ContextVar[str] = ContextVar("request_id", default="-")

# Attributes copied into JSON output when a record carries them.
CONTEXT_FIELDS = (
    "request_id",
    "method",
    "path",
    "status_code",
    "duration_ms",
    "operation",
    "instructor_id",
)

# Libraries that are chatty at DEBUG.
_NOISY_LOGGERS = (
    "uvicorn",
    "uvicorn.access",
    "uvicorn.error",
    "httpcore",
    "httpx",
    "asyncio",
    "sqlalchemy.engine",
)


class _RequestIdFilter(logging.Filter):
    # Handler-level: logger-level filters do not see propagated records.
    def filter(self, record: logging.LogRecord) -> bool:
        if getattr(record, "request_id", None) is None:
            record.request_id = request_id_var.get()  # type: ignore[attr-defined]
        return True


class _ContainerFormatter(logging.Formatter):
    _FMT = "%(asctime)s %(levelname)-8s %(name)s [%(request_id)s]  %(message)s"
    _FMT_WITH_LOCATION = _FMT + "  [%(filename)s:%(lineno)d]"

    def __init__(self) -> None:
        super().__init__(self._FMT, datefmt="%Y-%m-%dT%H:%M:%S")
        self._plain = self._style
        self._with_location = logging.PercentStyle(self._FMT_WITH_LOCATION)

    def formatTime(self, record: logging.LogRecord, datefmt: str | None = None) -> str:
        return f"{super().formatTime(record, datefmt)}.{int(record.msecs):03d}"

    def format(self, record: logging.LogRecord) -> str:
        if not hasattr(record, "request_id"):
            record.request_id = "-"  # type: ignore[attr-defined]
        if record.levelno >= logging.WARNING:
            self._style = self._with_location
        else:
            self._style = self._plain
        return super().format(record)


class _JsonFormatter(logging.Formatter):
    def __init__(self) -> None:
        super().__init__(datefmt="%Y-%m-%dT%H:%M:%S%z")

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, object] = {
            "timestamp": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        for key in CONTEXT_FIELDS:
            value = getattr(record, key, None)
            if value is not None:
                entry[key] = value
        if record.exc_info and record.exc_info[0] is not None:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, default=str)


def setup_logging(level_name: str, *, json_format: bool = False) -> None:
    """Replace the root handlers with one stdout handler.

    Unknown level names fall back to INFO.  Noisy libraries are held at
    WARNING or above whatever the service level is.
    """
    level = getattr(logging, level_name.upper(), logging.INFO)

    handler = logging.StreamHandler(sys.stdout)
    handler.addFilter(_RequestIdFilter())
    handler.setFormatter(_JsonFormatter() if json_format else _ContainerFormatter())

    root = logging.getLogger()
    root.setLevel(level)
    root.handlers.clear()
    root.addHandler(handler)

    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(max(level, logging.WARNING))
