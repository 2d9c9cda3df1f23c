"""Logging setup driven by application settings."""

import json
import logging
from datetime import UTC, datetime

from app.core.config import LogFormatEnum, settings

SIMPLE_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


class JsonFormatter(logging.Formatter):
    """Render log records as single-line JSON objects."""

    def format(self, record: logging.LogRecord) -> str:
        payload = {
            "timestamp": datetime.fromtimestamp(record.created, UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        if record.exc_info:
            payload["error"] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=False)


def configure_logging(level: str | None = None, log_format: str | None = None) -> None:
    """Install a single stream handler on the root logger.

    Safe to call more than once; the previous handler installed here is replaced.
    """
    level = level or settings.log_level.value
    log_format = log_format or settings.log_format.value

    handler = logging.StreamHandler()
    if log_format == LogFormatEnum.json.value:
        handler.setFormatter(JsonFormatter())
    else:
        handler.setFormatter(logging.Formatter(SIMPLE_FORMAT))
    handler.set_name("shadowquill")

    root = logging.getLogger()
    for existing in list(root.handlers):
        if existing.get_name() == "shadowquill":
            root.removeHandler(existing)
    root.addHandler(handler)
    root.setLevel(level)
