"""Logging configuration for the exporter.

An exporter is mostly silent: it logs its configuration once at startup,
one access line per scrape, and one ERROR line whenever a collection
cycle is abandoned because nginx could not be reached or returned a
payload we could not decode.  Those ERROR lines are the only trace of a
failed cycle, because the scrape itself still answers 200 with an empty
set of nginx samples.

TWO FORMATTERS
----------------
  _ContainerFormatter: human-readable, single-line, for a terminal or
    `docker logs`.  Scrape context is appended as key=value pairs.

  _JsonFormatter: one JSON object per line, for log aggregation.
    Scrape context (request_id, scrape_uri, upstream_status, ...) becomes
    top-level keys so you can filter on, say, every failed scrape of one
    nginx instance:

      level == "ERROR" AND scrape_uri == "http://10.0.0.7/status"

    Set LOG_JSON=true (or pass --log.json) to switch to JSON output.
"""

from __future__ import annotations

import json
import logging
import sys
from datetime import datetime

# Attributes that callers attach with `extra=` (the request middleware, the
# collector).  Anything else on a LogRecord is logging's own bookkeeping.
CONTEXT_FIELDS = (
    "request_id",
    "method",
    "path",
    "status_code",
    "duration_ms",
    "scrape_uri",
    "upstream_status",
    "samples",
)
_ACCESS_FIELDS = ("method", "path", "status_code", "duration_ms")


def _timestamp(record: logging.LogRecord) -> str:
    """Local ISO-8601 time with milliseconds, e.g. 2026-10-17T22:51:03.120+00:00."""
    return datetime.fromtimestamp(record.created).astimezone().isoformat(timespec="milliseconds")


def _context(record: logging.LogRecord) -> dict[str, object]:
    fields = {key: getattr(record, key, None) for key in CONTEXT_FIELDS}
    # "-" is the request-ID placeholder outside a request.
    return {k: v for k, v in fields.items() if v is not None and v != "-"}


class _ContainerFormatter(logging.Formatter):
    """One line per record: time, level, logger, message, then context.

        2026-10-17T22:51:03.120+00:00 ERROR    nginx_plus_exporter.services.collector  nginx status scrape failed ...  request_id=4f1c  [collector.py:147]

    The source location is only added for WARNING and above; a traceback
    follows on the next lines when the record carries exc_info.
    """

    def formatTime(self, record: logging.LogRecord, datefmt: str | None = None) -> str:
        return _timestamp(record)

    def format(self, record: logging.LogRecord) -> str:
        parts = [
            f"{self.formatTime(record)} {record.levelname:<8} {record.name}  {record.getMessage()}"
        ]
        context = _context(record)
        # Access lines already spell out method, path and status in the message.
        for key in _ACCESS_FIELDS:
            context.pop(key, None)
        parts.extend(f"{key}={value}" for key, value in context.items())
        if record.levelno >= logging.WARNING:
            parts.append(f"[{record.filename}:{record.lineno}]")

        line = "  ".join(parts)
        if record.exc_info:
            line += "\n" + self.formatException(record.exc_info)
        return line


class _JsonFormatter(logging.Formatter):
    """JSON Lines: fixed keys first, then whatever context the record carries."""

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, object] = {
            "timestamp": _timestamp(record),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            **_context(record),
        }
        if record.exc_info and record.exc_info[0] is not None:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, default=str)


def setup_logging(level_name: str, *, json_format: bool = False) -> None:
    """Configure the root logger for container environments.

    Args:
        level_name: Log level string (debug/info/warning/error)
        json_format: If True, emit JSON lines. If False, human-readable.
    """
    level = getattr(logging, level_name.upper(), logging.INFO)

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(_JsonFormatter() if json_format else _ContainerFormatter())

    root = logging.getLogger()
    root.setLevel(level)
    root.handlers.clear()
    root.addHandler(handler)

    # httpx logs every request at INFO; one line per scrape is already
    # written by the access log.
    for name in ("uvicorn", "uvicorn.access", "uvicorn.error", "httpcore", "httpx"):
        logging.getLogger(name).setLevel(max(level, logging.WARNING))
