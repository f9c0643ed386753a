"""
Logging setup for the API and the Celery worker.

Records may carry structured context through
`extra={"extra_fields": {...}}`. The JSON formatter merges those fields
into the log line; the text formatter appends them as key=value pairs.
"""
import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any, Dict

from core.config import settings

SERVICE_NAME = "findplayer-challenges"

# Third-party loggers that are too chatty at INFO
QUIET_LOGGERS = {
    "sqlalchemy.engine": logging.WARNING,
    "uvicorn.access": logging.WARNING,
    "celery": logging.INFO,
}


def _extra_fields(record: logging.LogRecord) -> Dict[str, Any]:
    fields = getattr(record, "extra_fields", None)
    return fields if isinstance(fields, dict) else {}


class JSONFormatter(logging.Formatter):
    """One JSON object per line, for log aggregation."""

    def format(self, record: logging.LogRecord) -> str:
        payload: Dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "service": SERVICE_NAME,
            "environment": settings.ENVIRONMENT,
            "logger": record.name,
            "message": record.getMessage(),
            "location": f"{record.module}.{record.funcName}:{record.lineno}",
        }
        payload.update(_extra_fields(record))
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)
        return json.dumps(payload, default=str)


class TextFormatter(logging.Formatter):
    """Human-readable lines for local development."""

    def __init__(self):
        super().__init__("%(asctime)s %(levelname)-7s %(name)s: %(message)s")

    def format(self, record: logging.LogRecord) -> str:
        line = super().format(record)
        fields = _extra_fields(record)
        if fields:
            line += " | " + " ".join(f"{k}={v}" for k, v in fields.items())
        return line


def setup_logging() -> logging.Logger:
    """
    Configure the root logger once per process.

    JSON in production or when LOG_FORMAT=json, text otherwise.
    """
    level = getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO)
    use_json = settings.LOG_FORMAT == "json" or settings.ENVIRONMENT == "production"

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(level)
    handler.setFormatter(JSONFormatter() if use_json else TextFormatter())

    root = logging.getLogger()
    root.setLevel(level)
    root.handlers.clear()
    root.addHandler(handler)

    for name, quiet_level in QUIET_LOGGERS.items():
        logging.getLogger(name).setLevel(quiet_level)

    return root
