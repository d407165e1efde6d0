from __future__ import annotations

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any

from leadflow_app.core.env import (
    LEADFLOW_LOG_CAPTURE_ROOT,
    LEADFLOW_LOG_JSON,
    LEADFLOW_LOG_LEVEL,
    get_env,
    get_env_bool,
)
from leadflow_app.infrastructure.db import get_request_perf_context

APP_LOGGER_NAME = "leadflow_app"
TEXT_LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s [%(request_id)s] %(message)s"

# Client libraries that log every webhook call or multipart part at INFO.
_CHATTY_LIBRARY_LOGGERS = ("httpx", "httpcore", "multipart", "python_multipart")
_BUILTIN_RECORD_FIELDS = frozenset(
    vars(logging.LogRecord("", logging.INFO, "", 0, "", None, None))
) | {"message", "asctime", "taskName"}

_configured = False


class RequestIdFilter(logging.Filter):
    """Stamps each record with the id of the API request being served ("-" outside one)."""

    def filter(self, record: logging.LogRecord) -> bool:
        if not getattr(record, "request_id", None):
            perf = get_request_perf_context()
            record.request_id = perf.request_id if perf is not None else "-"
        return True


class JsonLogFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        # `extra={"event": ..., "job_id": ...}` fields land on the record itself.
        payload.update(
            (key, value)
            for key, value in vars(record).items()
            if key not in _BUILTIN_RECORD_FIELDS and not key.startswith("_")
        )
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(payload, default=str)


def build_log_handler(level: int, *, use_json: bool) -> logging.Handler:
    handler = logging.StreamHandler(stream=sys.stdout)
    handler.setLevel(level)
    handler.addFilter(RequestIdFilter())
    handler.setFormatter(JsonLogFormatter() if use_json else logging.Formatter(TEXT_LOG_FORMAT))
    return handler


def setup_app_logging(*, force: bool = False) -> None:
    """Attach one stdout handler to the ``leadflow_app`` logger tree. Safe to call repeatedly."""
    global _configured  # pylint: disable=global-statement
    if _configured and not force:
        return

    level_name = get_env(LEADFLOW_LOG_LEVEL, "INFO").upper() or "INFO"
    level = logging.getLevelName(level_name)
    if not isinstance(level, int):
        level = logging.INFO
    use_json = get_env_bool(LEADFLOW_LOG_JSON, default=False)
    handler = build_log_handler(level, use_json=use_json)

    app_logger = logging.getLogger(APP_LOGGER_NAME)
    app_logger.handlers.clear()
    app_logger.addHandler(handler)
    app_logger.setLevel(level)
    app_logger.propagate = False

    if get_env_bool(LEADFLOW_LOG_CAPTURE_ROOT, default=False):
        root = logging.getLogger()
        root.handlers.clear()
        root.addHandler(handler)
        root.setLevel(level)
    for name in _CHATTY_LIBRARY_LOGGERS:
        logging.getLogger(name).setLevel(max(level, logging.WARNING))

    app_logger.debug("Logging configured. level=%s json=%s", level_name, str(use_json).lower())
    _configured = True
