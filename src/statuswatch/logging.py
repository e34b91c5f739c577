"""Logging setup for StatusWatch.

Two output formats share the same record fields:

- ``StructuredFormatter`` for terminals:
  ``2024-01-15 10:30:00.123 [WARNING ] [fetcher   ] [route_id=1 attempt=2] Route 1 failed``
- ``JSONFormatter`` for log shippers: one JSON object per line.

Poll context (cycle number, route, attempt, outcome) travels on the record as
``extra`` attributes, usually attached through ``logger.with_context(...)``.
"""

from __future__ import annotations

import json
import logging
import sys
from collections.abc import MutableMapping
from datetime import UTC, datetime
from typing import Any

# Record attributes rendered as context, in display order
CONTEXT_FIELDS = ("cycle", "route_id", "attempt", "outcome")

# Extra attributes only emitted in JSON output
JSON_ONLY_FIELDS = ("error_type",)

PACKAGE_LOGGER = "statuswatch"


def _component(record: logging.LogRecord) -> str:
    """Last dotted part of the logger name ("statuswatch.fetcher" -> "fetcher")."""
    return record.name.rsplit(".", 1)[-1]


def _record_time(record: logging.LogRecord) -> datetime:
    return datetime.fromtimestamp(record.created, tz=UTC)


def _context(record: logging.LogRecord, fields: tuple[str, ...]) -> dict[str, Any]:
    return {key: getattr(record, key) for key in fields if hasattr(record, key)}


class StructuredFormatter(logging.Formatter):
    """Single-line, column-aligned text output."""

    def format(self, record: logging.LogRecord) -> str:
        stamp = _record_time(record).strftime("%Y-%m-%d %H:%M:%S.%f")[:-3]
        line = f"{stamp} [{record.levelname:8}] [{_component(record):10}]"

        context = _context(record, CONTEXT_FIELDS)
        if context:
            rendered = " ".join(f"{key}={value}" for key, value in context.items())
            line = f"{line} [{rendered}]"

        line = f"{line} {record.getMessage()}"
        if record.exc_info:
            line = f"{line} {self.formatException(record.exc_info)}"
        return line


class JSONFormatter(logging.Formatter):
    """One JSON object per record, for machine parsing."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "timestamp": _record_time(record).isoformat(),
            "level": record.levelname,
            "component": _component(record),
            "message": record.getMessage(),
        }
        payload.update(_context(record, CONTEXT_FIELDS + JSON_ONLY_FIELDS))
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)
        return json.dumps(payload, default=str)


class ContextAdapter(logging.LoggerAdapter[logging.Logger]):
    """Adapter that merges fixed context into each call's ``extra``.

    Per-call ``extra`` keys are kept; the adapter's context is layered on top.
    """

    def process(
        self, msg: str, kwargs: MutableMapping[str, Any]
    ) -> tuple[str, MutableMapping[str, Any]]:
        merged = dict(kwargs.get("extra") or {})
        merged.update(self.extra or {})
        kwargs["extra"] = merged
        return msg, kwargs


class StatusWatchLogger(logging.Logger):
    """Logger class installed for the whole process by this module."""

    def with_context(self, **context: Any) -> ContextAdapter:
        """Bind context fields, e.g. ``logger.with_context(cycle=3, route_id=1)``."""
        return ContextAdapter(self, context)


logging.setLoggerClass(StatusWatchLogger)


def get_logger(name: str) -> StatusWatchLogger:
    """Return the named logger, typed as StatusWatchLogger."""
    return logging.getLogger(name)  # type: ignore[return-value]


def setup_logging(
    level: str = "INFO",
    json_format: bool = False,
    replace_handlers: bool = True,
) -> logging.Handler:
    """Send log output to stderr in the chosen format.

    Args:
        level: Level name; unknown names fall back to INFO.
        json_format: Emit JSON lines instead of aligned text.
        replace_handlers: Drop handlers already attached to the root logger.
            Pass False to keep handlers installed by other libraries.

    Returns:
        The stderr handler that was installed.
    """
    numeric_level = logging.getLevelNamesMapping().get(level.upper(), logging.INFO)

    root = logging.getLogger()
    if replace_handlers:
        for existing in list(root.handlers):
            root.removeHandler(existing)

    stream_handler = logging.StreamHandler(sys.stderr)
    stream_handler.setLevel(numeric_level)
    stream_handler.setFormatter(JSONFormatter() if json_format else StructuredFormatter())
    root.addHandler(stream_handler)
    root.setLevel(numeric_level)

    logging.getLogger(PACKAGE_LOGGER).setLevel(numeric_level)
    # httpx logs every request at INFO; keep that out of the poll log
    logging.getLogger("httpx").setLevel(max(numeric_level, logging.WARNING))
    return stream_handler
