"""Logging configuration with request-id injection."""

from __future__ import annotations

import json
import logging
import sys
from contextvars import ContextVar
from typing import Optional

from smolchat.config.settings import Settings

request_id_var: ContextVar[Optional[str]] = ContextVar("request_id", default=None)

_TEXT_FORMAT = "%(asctime)s %(levelname)-8s [%(request_id)s] %(name)s: %(message)s"


class RequestIdFilter(logging.Filter):
    """Attach the current request id (or '-') to every record."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.request_id = request_id_var.get() or "-"
        return True


class JsonFormatter(logging.Formatter):
    """Render records as single-line JSON objects."""

    def format(self, record: logging.LogRecord) -> str:
        payload = {
            "timestamp": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "request_id": getattr(record, "request_id", None),
        }
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=False)


def configure_logging(settings: Settings) -> None:
    """Install a single stdout handler on the root logger."""

    handler = logging.StreamHandler(sys.stdout)
    handler.addFilter(RequestIdFilter())
    if settings.log_format == "json":
        handler.setFormatter(JsonFormatter())
    else:
        handler.setFormatter(logging.Formatter(_TEXT_FORMAT))

    root = logging.getLogger()
    for existing in list(root.handlers):
        if getattr(existing, "_smolchat_handler", False):
            root.removeHandler(existing)
    handler._smolchat_handler = True  # type: ignore[attr-defined]
    root.addHandler(handler)
    root.setLevel(settings.log_level)

    # llama.cpp and httpx are chatty at DEBUG
    logging.getLogger("httpx").setLevel(max(logging.INFO, root.level))
    logging.getLogger("httpcore").setLevel(max(logging.INFO, root.level))
