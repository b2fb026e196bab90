"""Logging setup for applications embedding the engine.

The library only creates module loggers; call `configure_logging()` from the
application entry point.

Environment variables:
- TALLY_LOG_LEVEL: DEBUG, INFO, WARNING, ERROR (default: INFO)
- TALLY_LOG_FORMAT: "console" or "json" (default: console)
"""

import logging
import os
from datetime import datetime, timezone

import simplejson as json  # type: ignore

STANDARD_ATTRS = set(vars(logging.makeLogRecord({}))) | {"message", "asctime"}


class JsonFormatter(logging.Formatter):
    """Format records as JSON lines with any `extra=` fields under "extra"."""

    def format(self, record: logging.LogRecord) -> str:
        log_entry = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        if record.exc_info:
            log_entry["exception"] = self.formatException(record.exc_info)
        extras = {k: v for k, v in record.__dict__.items() if k not in STANDARD_ATTRS}
        if extras:
            log_entry["extra"] = extras
        return json.dumps(log_entry, default=str)


def configure_logging(
    level: str | None = None, fmt: str | None = None, logger_name: str = "tally"
) -> logging.Logger:
    level = level or os.environ.get("TALLY_LOG_LEVEL", "INFO")
    fmt = fmt or os.environ.get("TALLY_LOG_FORMAT", "console")
    handler = logging.StreamHandler()
    if fmt == "json":
        handler.setFormatter(JsonFormatter())
    else:
        handler.setFormatter(
            logging.Formatter("[{asctime}] {levelname} {name} {message}", style="{")
        )
    logger = logging.getLogger(logger_name)
    for old in list(logger.handlers):
        logger.removeHandler(old)
    logger.addHandler(handler)
    logger.setLevel(level.upper())
    return logger
