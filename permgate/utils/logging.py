"""Logging setup for permgate.

Modules log through :func:`get_logger` and pass ``permittable_id``, ``node``,
``backend``, ``path`` or ``error`` in ``extra``. :func:`configure_logging` is
for hosts that do not manage logging themselves.
"""

from __future__ import annotations

import json
import logging
import logging.config
import os
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Optional

CONTEXT_FIELDS = ("permittable_id", "node", "backend", "path", "error")


class JsonFormatter(logging.Formatter):
    """One JSON object per record, with any :data:`CONTEXT_FIELDS` stringified."""

    default_time_format = "%Y-%m-%dT%H:%M:%S"

    def format(self, record: logging.LogRecord) -> str:
        payload: Dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).strftime(
                self.default_time_format
            ),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)
        if record.stack_info:
            payload["stack_info"] = self.formatStack(record.stack_info)
        for key in CONTEXT_FIELDS:
            if key in record.__dict__:
                payload[key] = str(record.__dict__[key])
        return json.dumps(payload, ensure_ascii=False)


def _build_handlers(log_dir: Path, enable_rich: bool) -> Dict[str, Dict[str, Any]]:
    handlers: Dict[str, Dict[str, Any]] = {
        "file": {
            "class": "logging.handlers.RotatingFileHandler",
            "formatter": "json",
            "filename": str(log_dir / "permgate.log"),
            "maxBytes": 5 * 1024 * 1024,
            "backupCount": 5,
        }
    }
    if enable_rich:
        handlers["console"] = {
            "class": "rich.logging.RichHandler",
            "formatter": "rich",
            "level": "DEBUG",
            "rich_tracebacks": True,
            "show_path": False,
        }
    else:
        handlers["console"] = {
            "class": "logging.StreamHandler",
            "formatter": "json",
        }
    return handlers


def configure_logging(*, level: str = "INFO", log_dir: Optional[Path] = None) -> None:
    """Send permgate records to ``<log_dir>/permgate.log`` and the console.

    ``log_dir`` falls back to ``$PERMGATE_LOG_DIR``, then ``~/.permgate/logs``.
    ``PERMGATE_RICH=0`` swaps the Rich console handler for plain JSON lines.
    Each call replaces the root configuration.
    """

    log_dir = log_dir or Path(os.environ.get("PERMGATE_LOG_DIR", Path.home() / ".permgate" / "logs"))
    log_dir.mkdir(parents=True, exist_ok=True)

    enable_rich = os.environ.get("PERMGATE_RICH", "1") != "0"
    handlers = _build_handlers(log_dir, enable_rich)

    config = {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "json": {
                "()": "permgate.utils.logging.JsonFormatter",
            },
            "rich": {
                "format": "%(message)s",
                "datefmt": "%H:%M:%S",
            },
        },
        "handlers": handlers,
        "root": {
            "level": level,
            "handlers": list(handlers.keys()),
        },
    }

    logging.config.dictConfig(config)


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)


__all__ = ["configure_logging", "get_logger", "JsonFormatter"]
