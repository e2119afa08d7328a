"""
Structured JSON logging for the Policy Lifecycle Manager.
All modules must use get_logger(), never print().
"""
import logging
import json
import sys
from datetime import datetime, timezone


# Fields promoted to the top of every entry when present on the record
_PROMOTED_FIELDS = (
    "event",
    "operation",
    "policy_id",
    "revision_id",
    "form_id",
    "actor_id",
    "from_status",
    "to_status",
    "policy_number",
    "attempt",
    "error",
)

_STANDARD_KEYS = {
    "name", "msg", "args", "created", "relativeCreated",
    "exc_info", "exc_text", "stack_info", "lineno", "funcName",
    "pathname", "filename", "module", "levelno", "levelname",
    "message", "msecs", "thread", "threadName", "process",
    "processName", "taskName",
}


class JSONFormatter(logging.Formatter):
    """Formats log records as single-line JSON objects."""

    def format(self, record: logging.LogRecord) -> str:
        log_entry = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        for field in _PROMOTED_FIELDS:
            if hasattr(record, field):
                log_entry[field] = getattr(record, field)

        # Catch-all for any extra fields passed via `extra={}` dict
        for key, value in record.__dict__.items():
            if key not in _STANDARD_KEYS and key not in log_entry:
                try:
                    json.dumps(value)  # Only include JSON-serializable values
                    log_entry[key] = value
                except (TypeError, ValueError):
                    log_entry[key] = str(value)

        if record.exc_info and record.exc_info[1]:
            log_entry["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_entry, default=str)


_initialized = False


def setup_logging(level: str = "INFO") -> None:
    """Initialize structured logging for the application. Call once at startup."""
    global _initialized
    if _initialized:
        return

    root = logging.getLogger()
    root.setLevel(getattr(logging, level.upper(), logging.INFO))

    root.handlers.clear()

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(JSONFormatter())
    root.addHandler(handler)

    # Suppress noisy third-party loggers
    for noisy in ("uvicorn.access", "watchfiles", "httpcore", "httpx", "sqlalchemy.engine"):
        logging.getLogger(noisy).setLevel(logging.WARNING)

    _initialized = True


def get_logger(name: str) -> logging.Logger:
    """Get a named logger. Use __name__ as convention."""
    return logging.getLogger(name)
