"""Structured JSON logging shared by the HTTP API and the Telegram bot."""

from __future__ import annotations

import json
import logging
import sys
import uuid
from contextvars import ContextVar
from datetime import UTC, datetime
from typing import TYPE_CHECKING, cast

from typing_extensions import override

if TYPE_CHECKING:
    from contextvars import Token

    from authrelay.config.settings import LogLevel

SERVICE_NAME = "authrelay"

# Set per inbound HTTP request or Telegram update.
correlation_id: ContextVar[str | None] = ContextVar("correlation_id", default=None)

_STANDARD_RECORD_ATTRS = frozenset(
    {
        "name",
        "msg",
        "args",
        "levelname",
        "levelno",
        "pathname",
        "filename",
        "module",
        "exc_info",
        "exc_text",
        "stack_info",
        "lineno",
        "funcName",
        "created",
        "msecs",
        "relativeCreated",
        "thread",
        "threadName",
        "processName",
        "process",
        "taskName",
    },
)


class JSONFormatter(logging.Formatter):
    """Render each log record as one JSON object per line."""

    @override
    def format(self, record: logging.LogRecord) -> str:
        log_data: dict[str, object] = {
            "timestamp": datetime.fromtimestamp(
                record.created,
                tz=UTC,
            ).isoformat(),
            "level": record.levelname,
            "service": SERVICE_NAME,
            "logger": record.name,
            "message": record.getMessage(),
            "correlation_id": correlation_id.get(),
        }
        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)
        if record.stack_info:
            log_data["stack_trace"] = self.formatStack(record.stack_info)

        protected_keys = set(log_data)
        record_dict = cast("dict[str, object]", record.__dict__)
        for key, value in record_dict.items():
            if key in _STANDARD_RECORD_ATTRS or key.startswith("_"):
                continue
            if key in protected_keys:
                log_data[f"extra_{key}"] = value
                continue
            log_data[key] = value

        return json.dumps(log_data, default=str)


def init_logging(level: LogLevel) -> None:
    """Install the JSON stdout handler on the root logger."""
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(JSONFormatter())

    root_logger = logging.getLogger()
    root_logger.setLevel(level)

    # pytest's caplog handler must survive re-initialization.
    for existing in root_logger.handlers[:]:
        if type(existing).__name__ != "LogCaptureHandler":
            root_logger.removeHandler(existing)
    root_logger.addHandler(handler)

    # Telethon is chatty at INFO about reconnects and datacenter switches.
    logging.getLogger("telethon").setLevel(max(logging.WARNING, root_logger.level))


def bind_correlation_id(value: str | None = None) -> Token[str | None]:
    """Bind a correlation id for the current task, generating one if absent."""
    return correlation_id.set(value or uuid.uuid4().hex)


def reset_correlation_id(token: Token[str | None]) -> None:
    """Restore the correlation id that was active before `bind_correlation_id`."""
    correlation_id.reset(token)
