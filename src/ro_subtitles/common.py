"""Logging setup shared by the package and its CLI.

Adds optional structured JSON logging and a per-request correlation id.
"""

from __future__ import annotations

import contextvars
import datetime
import json
import logging
import sys
from typing import IO, Optional

from .settings import Settings, settings as default_settings

# Per-request context for correlation
REQUEST_ID: contextvars.ContextVar[str] = contextvars.ContextVar("request_id", default="")

TEXT_FORMAT = "%(asctime)s [%(levelname)s] [%(name)s] %(message)s"
DATE_FORMAT = "%H:%M:%S"

logger = logging.getLogger("ro_subtitles")


class RequestIdFilter(logging.Filter):
    def filter(self, record: logging.LogRecord) -> bool:
        record.rid = REQUEST_ID.get("")
        return True


class TextFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        text = super().format(record)
        rid = getattr(record, "rid", "")
        if rid:
            return f"[rid={rid}] {text}"
        return text


class JSONFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:  # noqa: D401
        payload = {
            "ts": datetime.datetime.now(datetime.timezone.utc).isoformat(timespec="seconds"),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
        }
        rid = getattr(record, "rid", "")
        if rid:
            payload["rid"] = rid
        if record.exc_info:
            payload["exc"] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=False)


def configure_logging(config: Optional[Settings] = None, stream: Optional[IO[str]] = None) -> logging.Logger:
    """Attach a stream handler (stdout by default) to the ``ro_subtitles`` logger (idempotent)."""
    config = config or default_settings
    level = config.log_level.upper()

    handler = logging.StreamHandler(stream or sys.stdout)
    handler.addFilter(RequestIdFilter())
    if config.json_logs:
        handler.setFormatter(JSONFormatter())
    else:
        handler.setFormatter(TextFormatter(TEXT_FORMAT, datefmt=DATE_FORMAT))

    for existing in list(logger.handlers):
        if getattr(existing, "_ro_subtitles", False):
            logger.removeHandler(existing)
    handler._ro_subtitles = True  # type: ignore[attr-defined]
    logger.addHandler(handler)
    logger.setLevel(level)

    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
    return logger
