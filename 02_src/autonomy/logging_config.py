"""JSON logging for the coordination core.

Every record is one JSON line. Records logged with
``extra={"loop_id": ..., "agent_id": ...}`` carry those ids as top-level
keys so a loop's or an agent's history can be grepped out of the log.
"""

import json
import logging
import logging.config
import logging.handlers
import os
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from .config import DEFAULT_LOG_PATH

CONTEXT_FIELDS = ("loop_id", "agent_id", "message_id", "task_id")

# Third-party loggers that flood INFO with per-request or per-query lines.
QUIET_LOGGERS = ("aiosqlite", "httpx", "anthropic", "uvicorn.access")


class JSONFormatter(logging.Formatter):
    """One JSON object per record, stamped with the record's creation time."""

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "location": f"{record.module}:{record.funcName}:{record.lineno}",
        }
        entry.update(
            {
                name: getattr(record, name)
                for name in CONTEXT_FIELDS
                if getattr(record, name, None) is not None
            }
        )
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, default=str)


def build_logging_config(log_level: str, log_file: str, console: bool) -> dict[str, Any]:
    """dictConfig for a rotating JSON file log, optionally mirrored to stdout."""
    handlers: dict[str, dict[str, Any]] = {
        "file": {
            "class": "logging.handlers.RotatingFileHandler",
            "filename": log_file,
            "maxBytes": 10 * 1024 * 1024,
            "backupCount": 5,
            "formatter": "json",
            "encoding": "utf-8",
        },
    }
    if console:
        handlers["console"] = {
            "class": "logging.StreamHandler",
            "formatter": "json",
            "stream": "ext://sys.stdout",
        }

    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {"json": {"()": JSONFormatter}},
        "handlers": handlers,
        "loggers": {name: {"level": "WARNING"} for name in QUIET_LOGGERS},
        "root": {"level": log_level.upper(), "handlers": list(handlers)},
    }


def setup_logging(
    log_level: str | None = None,
    log_file: str | None = None,
    console: bool | None = None,
) -> None:
    """
    Configure logging for the process.

    Args:
        log_level: DEBUG, INFO, WARNING, ERROR or CRITICAL.
                   Defaults to LOG_LEVEL env var or INFO.
        log_file: Defaults to LOG_FILE env var or 04_logs/app.log.
        console: Mirror to stdout. Defaults to LOG_CONSOLE env var or true.
    """
    log_level = log_level or os.getenv("LOG_LEVEL", "INFO")
    log_file = log_file or os.getenv("LOG_FILE") or str(DEFAULT_LOG_PATH)
    if console is None:
        console = os.getenv("LOG_CONSOLE", "true").lower() in ("1", "true", "yes")

    Path(log_file).parent.mkdir(parents=True, exist_ok=True)
    logging.config.dictConfig(build_logging_config(log_level, log_file, console))


def get_logger(name: str) -> logging.Logger:
    """Get a logger instance (typically for ``__name__``)."""
    return logging.getLogger(name)
