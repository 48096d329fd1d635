"""Structured logging for mediastore.

Provides:
- JSON-formatted logs for log aggregation systems (ELK, Loki, etc.)
- Upload context (provider, object key, operation) carried in context vars
- Configurable log levels and formats

Usage:
    from mediastore.observability.logging import LogContext, configure_logging

    configure_logging(json_format=True, level="INFO")

    logger = logging.getLogger(__name__)
    with LogContext(provider="r2", object_key="assets/abc.png"):
        logger.info("Uploading")  # Includes provider and object_key
"""

from __future__ import annotations

import contextvars
import json
import logging
import sys
from datetime import UTC, datetime
from typing import Any

provider_var: contextvars.ContextVar[str] = contextvars.ContextVar("provider", default="")
object_key_var: contextvars.ContextVar[str] = contextvars.ContextVar("object_key", default="")
operation_var: contextvars.ContextVar[str] = contextvars.ContextVar("operation", default="")

_CONTEXT_VARS: dict[str, contextvars.ContextVar[str]] = {
    "provider": provider_var,
    "object_key": object_key_var,
    "operation": operation_var,
}

# Standard LogRecord attributes, excluded from "extra" fields
_STANDARD_ATTRS = frozenset(
    {
        "name",
        "msg",
        "args",
        "created",
        "filename",
        "funcName",
        "levelname",
        "levelno",
        "lineno",
        "module",
        "msecs",
        "pathname",
        "process",
        "processName",
        "relativeCreated",
        "stack_info",
        "exc_info",
        "exc_text",
        "thread",
        "threadName",
        "taskName",
        "message",
    }
)


def _current_context() -> dict[str, str]:
    return {name: var.get() for name, var in _CONTEXT_VARS.items() if var.get()}


class JsonFormatter(logging.Formatter):
    """JSON log formatter with upload context support.

    Output format:
    {
        "timestamp": "2026-01-10T12:34:56.789Z",
        "level": "INFO",
        "logger": "mediastore.storage.uploader",
        "message": "Upload verified",
        "module": "uploader",
        "function": "upload",
        "line": 42,
        "provider": "r2",
        "object_key": "assets/3f2a9c.png"
    }
    """

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as JSON."""
        log_data: dict[str, Any] = {
            "timestamp": datetime.now(UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }
        log_data.update(_current_context())

        if record.exc_info:
            log_data["exception"] = {
                "type": record.exc_info[0].__name__ if record.exc_info[0] else None,
                "message": str(record.exc_info[1]) if record.exc_info[1] else None,
                "traceback": self.formatException(record.exc_info),
            }

        for key, value in record.__dict__.items():
            if key not in _STANDARD_ATTRS and not key.startswith("_"):
                try:
                    json.dumps(value)
                    log_data[key] = value
                except (TypeError, ValueError):
                    log_data[key] = str(value)

        return json.dumps(log_data, default=str, ensure_ascii=False)


class ConsoleFormatter(logging.Formatter):
    """Human-readable formatter for development.

    Output format:
    2026-01-10 12:34:56 | INFO | mediastore.storage.uploader | Upload verified | provider=r2
    """

    COLORS = {
        "DEBUG": "\033[36m",  # Cyan
        "INFO": "\033[32m",  # Green
        "WARNING": "\033[33m",  # Yellow
        "ERROR": "\033[31m",  # Red
        "CRITICAL": "\033[35m",  # Magenta
    }
    RESET = "\033[0m"

    def __init__(self, use_colors: bool = True) -> None:
        super().__init__()
        self.use_colors = use_colors and sys.stderr.isatty()

    def format(self, record: logging.LogRecord) -> str:
        """Format log record for console output."""
        timestamp = datetime.now().strftime("%Y-%m-%d %H:%M:%S")
        level = record.levelname

        if self.use_colors:
            color = self.COLORS.get(level, "")
            level = f"{color}{level}{self.RESET}"

        message = record.getMessage()
        context = " ".join(f"{k}={v}" for k, v in _current_context().items())
        result = f"{timestamp} | {level:8} | {record.name} | {message}"
        if context:
            result += f" | {context}"

        if record.exc_info:
            result += "\n" + self.formatException(record.exc_info)

        return result


def configure_logging(
    json_format: bool = True,
    level: str = "INFO",
    use_colors: bool = True,
) -> None:
    """Configure application-wide logging.

    Args:
        json_format: Use JSON format (recommended for production)
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        use_colors: Use ANSI colors in console format
    """
    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, level.upper()))

    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    handler = logging.StreamHandler(sys.stderr)
    if json_format:
        handler.setFormatter(JsonFormatter())
    else:
        handler.setFormatter(ConsoleFormatter(use_colors=use_colors))
    root_logger.addHandler(handler)

    # Reduce noise from backend SDKs
    logging.getLogger("botocore").setLevel(logging.WARNING)
    logging.getLogger("aiobotocore").setLevel(logging.WARNING)
    logging.getLogger("urllib3").setLevel(logging.WARNING)
    logging.getLogger("googleapiclient.discovery").setLevel(logging.WARNING)
    logging.getLogger("google.auth").setLevel(logging.WARNING)


class LogContext:
    """Context manager for adding temporary log context.

    Usage:
        with LogContext(provider="firebase", object_key="assets/abc.png"):
            logger.info("Probing")  # Includes provider and object_key
    """

    def __init__(self, **kwargs: Any) -> None:
        self.extra = kwargs
        self._tokens: dict[str, contextvars.Token[str]] = {}

    def __enter__(self) -> "LogContext":
        for name, value in self.extra.items():
            var = _CONTEXT_VARS.get(name)
            if var is not None:
                self._tokens[name] = var.set(str(value))
        return self

    def __exit__(self, *args: Any) -> None:
        for name, token in self._tokens.items():
            _CONTEXT_VARS[name].reset(token)
        self._tokens.clear()
