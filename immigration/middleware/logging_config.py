"""
Logging setup for the case-management API.

One stderr handler on the root logger.  Production emits one JSON object
per line; development and tests get a short coloured line.  A filter stamps
every record emitted inside a request with the request id, tenant and actor,
so service-layer messages ("status appended", "transition rejected") can be
traced back to the consultancy and user that caused them.
"""

import json
import logging
import os
import sys
from datetime import datetime, timezone

from flask import g, has_request_context

_CONTEXT_KEYS = ("request_id", "tenant_id", "actor")
_RECORD_KEYS = ("method", "path", "status", "duration_ms", "event_type") + _CONTEXT_KEYS

_QUIET_LOGGERS = ("werkzeug", "urllib3", "sqlalchemy.engine")


class RequestContextFilter(logging.Filter):
    """Copy request-scoped values from ``g`` onto the record."""

    def filter(self, record):
        if has_request_context():
            for key in _CONTEXT_KEYS:
                if getattr(record, key, None) is None:
                    setattr(record, key, g.get(key))
        return True


class JSONFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "ts": datetime.now(timezone.utc).isoformat(timespec="milliseconds"),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
            "where": f"{record.module}.{record.funcName}:{record.lineno}",
        }
        entry.update({
            key: getattr(record, key)
            for key in _RECORD_KEYS
            if getattr(record, key, None) is not None
        })
        if record.exc_info and record.exc_info[0] is not None:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, ensure_ascii=False, default=str)


class ReadableFormatter(logging.Formatter):
    LEVEL_COLORS = {
        logging.DEBUG: "\033[2m",
        logging.INFO: "\033[32m",
        logging.WARNING: "\033[33m",
        logging.ERROR: "\033[31m",
        logging.CRITICAL: "\033[1;31m",
    }
    RESET = "\033[0m"

    def format(self, record: logging.LogRecord) -> str:
        color = self.LEVEL_COLORS.get(record.levelno, "")
        parts = [
            f"{color}{record.levelname[0]}{self.RESET}",
            datetime.now().strftime("%H:%M:%S"),
        ]
        request_id = getattr(record, "request_id", None)
        if request_id:
            parts.append(f"[{request_id}]")
        tenant_id = getattr(record, "tenant_id", None)
        if tenant_id is not None:
            parts.append(f"t{tenant_id}/{getattr(record, 'actor', None) or '-'}")
        parts.append(f"{record.name}: {record.getMessage()}")
        line = " ".join(parts)
        if record.exc_info and record.exc_info[0] is not None:
            line += "\n" + self.formatException(record.exc_info)
        return line


def configure_logging(app):
    """Install the handler and level for ``app``.

    LOG_LEVEL (config, then environment) wins; otherwise INFO in production
    and DEBUG elsewhere.
    """
    testing = app.config.get("TESTING", False)
    production = not app.config.get("DEBUG", False) and not testing

    level_name = (app.config.get("LOG_LEVEL") or os.getenv("LOG_LEVEL")
                  or ("INFO" if production else "DEBUG")).upper()
    level = logging.getLevelName(level_name)
    if not isinstance(level, int):
        level = logging.INFO

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(JSONFormatter() if production else ReadableFormatter())
    handler.addFilter(RequestContextFilter())

    root = logging.getLogger()
    for old in list(root.handlers):
        root.removeHandler(old)
    root.addHandler(handler)
    root.setLevel(level)
    app.logger.setLevel(level)

    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    if not testing:
        app.logger.info("Logging at %s (%s output)", level_name, "json" if production else "text")
