"""
Structured Logging for the gwadmin client

Provides JSON-structured log lines with operation IDs and event types so that
every exchange with the admin server, and every change of the known
configuration version, can be traced.
"""

import json
import logging
import sys
import time
import uuid
from contextvars import ContextVar
from datetime import datetime, timezone
from enum import Enum
from typing import Optional

# Context variable for correlating the log lines of one client operation
operation_id_context: ContextVar[Optional[str]] = ContextVar("operation_id", default=None)


class LogLevel(Enum):
    """Log levels for structured logging."""

    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class EventType(Enum):
    """Event types for structured logging."""

    # Exchange events
    REQUEST_START = "request_start"
    REQUEST_END = "request_end"
    REQUEST_ERROR = "request_error"

    # Version protocol events
    VERSION_ADOPTED = "version_adopted"
    VERSION_CONFLICT = "version_conflict"

    # Authentication events
    AUTH_SUCCESS = "auth_success"
    AUTH_FAILURE = "auth_failure"

    # Client lifecycle events
    CLIENT_OPEN = "client_open"
    CLIENT_CLOSE = "client_close"
    CONFIG_LOADED = "config_loaded"


class StructuredFormatter(logging.Formatter):
    """Custom formatter for structured JSON logging."""

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as structured JSON."""
        log_entry = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        operation_id = getattr(record, "operation_id", None) or operation_id_context.get()
        if operation_id:
            log_entry["operation_id"] = operation_id

        for field in ("event_type", "duration_ms", "status_code", "method", "path", "metadata"):
            if hasattr(record, field):
                log_entry[field] = getattr(record, field)

        if record.exc_info:
            log_entry["exception"] = self.formatException(record.exc_info)

        if hasattr(record, "extra_fields"):
            log_entry.update(getattr(record, "extra_fields"))

        return json.dumps(log_entry, default=str)


class SafeStreamHandler(logging.StreamHandler):
    """StreamHandler that gracefully handles closed streams during shutdown."""

    def emit(self, record):
        """Emit a record, handling closed stream errors gracefully."""
        try:
            if hasattr(self.stream, "closed") and self.stream.closed:
                return
            super().emit(record)
        except (ValueError, OSError) as e:
            error_msg = str(e).lower()
            if any(
                phrase in error_msg
                for phrase in ["closed file", "bad file descriptor", "i/o operation on closed file"]
            ):
                return
            raise


class AdminLogger:
    """Structured logger for the gwadmin client."""

    def __init__(self, name: str = "gwadmin", level: Optional[LogLevel] = None):
        """
        Wrap the stdlib logger ``name``.

        No handler is attached here, so records propagate to whatever the host
        application configured. Call ``configure_logging()`` to get JSON lines
        on stderr.
        """
        self.name = name
        self.logger = logging.getLogger(name)
        if level is not None:
            self.set_level(level)

    def attach_stream_handler(self):
        """Write JSON lines to stderr, once per logger."""
        for handler in self.logger.handlers:
            if isinstance(handler, SafeStreamHandler):
                return
        handler = SafeStreamHandler(sys.stderr)
        handler.setFormatter(StructuredFormatter())
        self.logger.addHandler(handler)

    def set_level(self, level: LogLevel):
        """Set the logging level."""
        self.logger.setLevel(getattr(logging, level.value))

    def _log(self, level: LogLevel, message: str, **kwargs):
        extra = {}

        operation_id = operation_id_context.get()
        if operation_id:
            extra["operation_id"] = operation_id

        if "event_type" in kwargs:
            event_type = kwargs.pop("event_type")
            extra["event_type"] = (
                event_type.value if isinstance(event_type, EventType) else event_type
            )

        for field in ["duration_ms", "status_code", "method", "path", "metadata"]:
            if field in kwargs:
                extra[field] = kwargs.pop(field)

        if kwargs:
            extra["extra_fields"] = kwargs

        getattr(self.logger, level.value.lower())(message, extra=extra)

    def debug(self, message: str, **kwargs):
        """Log debug message."""
        self._log(LogLevel.DEBUG, message, **kwargs)

    def info(self, message: str, **kwargs):
        """Log info message."""
        self._log(LogLevel.INFO, message, **kwargs)

    def warning(self, message: str, **kwargs):
        """Log warning message."""
        self._log(LogLevel.WARNING, message, **kwargs)

    def error(self, message: str, **kwargs):
        """Log error message."""
        self._log(LogLevel.ERROR, message, **kwargs)

    def log_event(self, event_type: EventType, message: str, level: LogLevel = LogLevel.INFO, **kwargs):
        """Log a structured event."""
        self._log(level, message, event_type=event_type, **kwargs)

    def log_request_start(self, method: str, path: str, client_version: str, **kwargs):
        """Log an outgoing exchange."""
        self.log_event(
            EventType.REQUEST_START,
            f"{method} {path}",
            level=LogLevel.DEBUG,
            method=method,
            path=path,
            metadata={"client_version": client_version},
            **kwargs,
        )

    def log_request_end(
        self, method: str, path: str, status_code: int, duration_ms: float, **kwargs
    ):
        """Log a completed exchange."""
        self.log_event(
            EventType.REQUEST_END,
            f"{method} {path} - {status_code} ({duration_ms:.1f}ms)",
            level=LogLevel.DEBUG,
            method=method,
            path=path,
            status_code=status_code,
            duration_ms=duration_ms,
            **kwargs,
        )

    def log_request_error(self, method: str, path: str, error: Exception, **kwargs):
        """Log an exchange that failed before a response was classified."""
        self.log_event(
            EventType.REQUEST_ERROR,
            f"{method} {path} failed: {error}",
            level=LogLevel.WARNING,
            method=method,
            path=path,
            metadata={"error": str(error), "error_type": type(error).__name__},
            **kwargs,
        )

    def log_version_adopted(self, old_version: str, new_version: str, **kwargs):
        """Log an opportunistic update of the known version."""
        self.log_event(
            EventType.VERSION_ADOPTED,
            f"Known version {old_version} -> {new_version}",
            level=LogLevel.DEBUG,
            metadata={"old_version": old_version, "new_version": new_version},
            **kwargs,
        )

    def log_version_conflict(
        self, method: str, path: str, known_version: str, server_version: Optional[str], **kwargs
    ):
        """Log a write rejected because the known version is stale."""
        self.log_event(
            EventType.VERSION_CONFLICT,
            f"Version conflict on {method} {path}: client {known_version}, server {server_version}",
            level=LogLevel.WARNING,
            method=method,
            path=path,
            metadata={"known_version": known_version, "server_version": server_version},
            **kwargs,
        )

    def log_auth_failure(self, method: str, path: str, status_code: int, **kwargs):
        """Log a rejected credential."""
        self.log_event(
            EventType.AUTH_FAILURE,
            f"Unauthorized on {method} {path}",
            level=LogLevel.WARNING,
            method=method,
            path=path,
            status_code=status_code,
            **kwargs,
        )


# Global logger instance
logger = AdminLogger()


def get_logger(name: str = "gwadmin") -> AdminLogger:
    """Get a logger instance."""
    if name == "gwadmin":
        return logger
    return AdminLogger(name)


def set_operation_id(operation_id: Optional[str] = None) -> str:
    """Set operation ID in context. If not provided, generates a new one."""
    if operation_id is None:
        operation_id = f"op_{uuid.uuid4().hex[:12]}"

    operation_id_context.set(operation_id)
    return operation_id


def get_operation_id() -> Optional[str]:
    """Get current operation ID from context."""
    return operation_id_context.get()


def clear_operation_id():
    """Clear operation ID from context."""
    operation_id_context.set(None)


class RequestTimer:
    """Context manager timing one exchange and logging its start and end."""

    def __init__(self, logger: AdminLogger, method: str, path: str, client_version: str):
        self.logger = logger
        self.method = method
        self.path = path
        self.client_version = client_version
        self.start_time = None
        self.status_code = None
        self.duration_ms = None

    def __enter__(self):
        self.start_time = time.time()
        self.logger.log_request_start(self.method, self.path, self.client_version)
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        if self.start_time:
            self.duration_ms = (time.time() - self.start_time) * 1000
            if self.status_code is not None:
                self.logger.log_request_end(
                    self.method, self.path, self.status_code, self.duration_ms
                )
            elif exc_val is not None:
                self.logger.log_request_error(self.method, self.path, exc_val)

    def set_status_code(self, status_code: int):
        """Set the response status code."""
        self.status_code = status_code


def configure_logging(level: LogLevel = LogLevel.INFO, enable_debug: bool = False):
    """Set the level and attach the JSON stderr handler to the package logger."""
    if enable_debug:
        level = LogLevel.DEBUG

    logger.set_level(level)
    logger.attach_stream_handler()
    logger.debug(
        "Logging configured",
        event_type=EventType.CONFIG_LOADED,
        metadata={"log_level": level.value, "debug_enabled": enable_debug},
    )
