"""
Structured logging configuration for redis-session.

Session log calls attach their context through ``extra``: ``session_id``,
``operation`` (load, save, delete) and ``outcome`` (noop, deleted, saved).
``SessionLogFormatter`` renders each line as JSON with that context under a
``session`` key, masks identifiers, drops record bodies and cookie values,
and stamps the request id set by the middleware.
"""

import json
import logging
import sys
from contextvars import ContextVar
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from redis_session.core.config import SessionSettings, settings as default_settings
from redis_session.core.security import mask_session_id

# Request id for the request being handled, set by the middleware
request_id_ctx: ContextVar[Optional[str]] = ContextVar("request_id", default=None)

SESSION_LOG_FIELDS = ("session_id", "operation", "outcome", "record", "cookie")
REDACTED_LOG_FIELDS = {"record", "cookie"}


class SessionLogFormatter(logging.Formatter):
    """JSON formatter aware of the session context carried on log records."""

    def __init__(self, include_sensitive: bool = False):
        """
        Args:
            include_sensitive: Log full session ids and record bodies (development only)
        """
        super().__init__()
        self.include_sensitive = include_sensitive

    def format(self, record: logging.LogRecord) -> str:
        entry: Dict[str, Any] = {
            "time": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        request_id = request_id_ctx.get()
        if request_id:
            entry["request_id"] = request_id

        session = self.session_context(record)
        if session:
            entry["session"] = session

        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)

        return json.dumps(entry, default=str)

    def session_context(self, record: logging.LogRecord) -> Dict[str, Any]:
        """Collect the session fields attached to ``record``, redacted for output."""
        context = {}
        for field in SESSION_LOG_FIELDS:
            if not hasattr(record, field):
                continue
            value = getattr(record, field)
            if self.include_sensitive:
                context[field] = value
            elif field == "session_id":
                context[field] = mask_session_id(value)
            elif field in REDACTED_LOG_FIELDS:
                context[field] = "[REDACTED]"
            else:
                context[field] = value
        return context


def setup_logging(
    log_level: str = "INFO",
    enable_json: bool = True,
    include_sensitive: bool = False,
) -> None:
    """
    Configure root logging for the application.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR)
        enable_json: Whether to use JSON formatting
        include_sensitive: Whether to log full session ids and records
    """
    logging.root.handlers.clear()

    if enable_json:
        formatter = SessionLogFormatter(include_sensitive=include_sensitive)
    else:
        formatter = logging.Formatter("%(asctime)s %(levelname)s [%(name)s] %(message)s")

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, log_level.upper()))
    root_logger.addHandler(handler)

    # redis-py logs every connection at debug
    logging.getLogger("redis").setLevel(logging.WARNING)
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)


def set_request_id(request_id: Optional[str]) -> None:
    """Bind a request id to the current context."""
    request_id_ctx.set(request_id)


def init_application_logging(app_settings: Optional[SessionSettings] = None) -> None:
    """Initialize logging for the demo application"""
    app_settings = app_settings or default_settings
    is_dev = app_settings.dev_mode
    log_level = "DEBUG" if is_dev else app_settings.log_level

    # plain text in development
    setup_logging(log_level=log_level, enable_json=not is_dev, include_sensitive=is_dev)

    logging.getLogger("redis_session.startup").info(
        "Logging initialized at %s (%s)", log_level, "text" if is_dev else "json"
    )
