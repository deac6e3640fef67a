"""Logging configuration for pgauth.

``configure_logging`` installs one console handler on the ``pgauth``
logger (JSON lines or plain text) and, when an audit file is
configured, a rotating JSON file shared by ``pgauth.audit`` and
``pgauth.security``.  Every record carries an ``operation`` attribute,
set by the engine through ``extra=`` and defaulted to ``"-"``.
"""

from __future__ import annotations

import json
import logging
import sys
from datetime import UTC, datetime
from logging.handlers import RotatingFileHandler
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from pgauth.config.settings import AuditLogSettings, LoggingSettings

# Anything on a record that is not in this set came in through ``extra=``.
_RECORD_ATTRS = frozenset(vars(logging.makeLogRecord({}))) | {"message", "asctime", "operation"}

_QUIET_LOGGERS = ("psycopg", "psycopg.pool", "pypgkit")


class StructuredFormatter(logging.Formatter):
    """One JSON object per record: timestamp, level, logger, message,
    operation, any ``extra=`` fields and the formatted exception.
    """

    def format(self, record: logging.LogRecord) -> str:
        data: dict = {
            "timestamp": datetime.fromtimestamp(record.created, tz=UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "operation": getattr(record, "operation", "-"),
        }
        data.update(
            (key, value)
            for key, value in vars(record).items()
            if key not in _RECORD_ATTRS and not key.startswith("_")
        )
        if record.exc_info and record.exc_info[0] is not None:
            data["exception"] = self.formatException(record.exc_info)
        return json.dumps(data, default=str)


class TextFormatter(logging.Formatter):
    def __init__(self) -> None:
        super().__init__(
            fmt="%(asctime)s %(levelname)-8s %(operation)s %(name)s: %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )


class OperationContextFilter(logging.Filter):
    """Default ``operation`` to ``"-"`` so the text format never raises."""

    def filter(self, record: logging.LogRecord) -> bool:  # type: ignore[override]
        if not hasattr(record, "operation"):
            record.operation = "-"  # type: ignore[attr-defined]
        return True


def _audit_file_handler(audit: AuditLogSettings) -> logging.Handler | None:
    try:
        handler = RotatingFileHandler(
            audit.file,
            maxBytes=audit.max_file_size_bytes,
            backupCount=audit.backup_count,
        )
    except OSError as exc:
        logging.getLogger("pgauth").warning("Could not open audit log file %s: %s", audit.file, exc)
        return None
    handler.setFormatter(StructuredFormatter())
    handler.addFilter(OperationContextFilter())
    return handler


def configure_logging(settings: LoggingSettings) -> logging.Logger:
    """Configure the ``pgauth`` logger hierarchy and return its root.

    Safe to call again: existing handlers on the configured loggers
    are replaced.
    """
    root = logging.getLogger("pgauth")
    root.setLevel(getattr(logging, settings.level.upper(), logging.INFO))
    root.handlers.clear()
    root.propagate = False

    console = logging.StreamHandler(sys.stderr)
    console.setFormatter(StructuredFormatter() if settings.format == "json" else TextFormatter())
    console.addFilter(OperationContextFilter())
    root.addHandler(console)

    security = logging.getLogger("pgauth.security")
    audit = logging.getLogger("pgauth.audit")
    for logger in (security, audit):
        logger.setLevel(logging.INFO)
        logger.handlers.clear()

    if settings.audit.enabled and settings.audit.file:
        handler = _audit_file_handler(settings.audit)
        if handler is not None:
            audit.addHandler(handler)
            security.addHandler(handler)

    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    return root
