"""
Structured Logging
==================

Every module change is logged with the tenant, module and action it
touched. JSON lines carry them as fields; the text format appends them
as a bracketed suffix:

    2026-01-05 10:12:00 INFO     clinic_modules.engine: Modules updated for clinic-1: +stock [tenant=clinic-1 module=stock action=enable]

Logs go to stderr so CLI output on stdout stays machine-readable.
"""

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any, Dict

# record attribute -> short label used by the text format
CONTEXT_FIELDS = {
    "tenant_id": "tenant",
    "module_id": "module",
    "action": "action",
}


def record_context(record: logging.LogRecord) -> Dict[str, Any]:
    """The tenant/module/action fields set on a record via `extra=`."""
    return {
        key: getattr(record, key)
        for key in CONTEXT_FIELDS
        if getattr(record, key, None) is not None
    }


class JSONFormatter(logging.Formatter):
    """Output log records as JSON lines."""

    def format(self, record: logging.LogRecord) -> str:
        log_entry = {
            "timestamp": datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        log_entry.update(record_context(record))

        if record.exc_info and record.exc_info[1]:
            log_entry["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_entry)


class ContextFormatter(logging.Formatter):
    """Plain text lines with the module-change context appended."""

    def __init__(self):
        super().__init__("%(asctime)s %(levelname)-8s %(name)s: %(message)s", datefmt="%Y-%m-%d %H:%M:%S")

    def format(self, record: logging.LogRecord) -> str:
        line = super().format(record)
        context = record_context(record)
        if not context:
            return line
        suffix = " ".join(f"{CONTEXT_FIELDS[key]}={value}" for key, value in context.items())
        # Keep the traceback, if any, below the context
        first, sep, rest = line.partition("\n")
        return f"{first} [{suffix}]{sep}{rest}"


def configure_logging(level: str = "INFO", fmt: str = "json"):
    """
    Configure application logging.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR)
        fmt: Format - "json" for structured, "text" for plain
    """
    root = logging.getLogger()
    root.setLevel(getattr(logging, level.upper(), logging.INFO))

    root.handlers.clear()

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(JSONFormatter() if fmt == "json" else ContextFormatter())
    root.addHandler(handler)

    logging.getLogger("aiosqlite").setLevel(logging.WARNING)
    logging.getLogger("asyncpg").setLevel(logging.WARNING)
