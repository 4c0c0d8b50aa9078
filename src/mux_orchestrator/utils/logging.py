"""
Logging and error handling framework for mux-orchestrator.

This module provides:
- Structured logging configuration
- The exception hierarchy shared by the loader, adapter and engine
- Context-aware logging utilities
- Audit logging for session lifecycle operations
"""

import functools
import json
import logging
import sys
import traceback
from collections.abc import Callable
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Any


class LogLevel(str, Enum):
    """Log level enumeration for type safety."""

    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class LogContext(str, Enum):
    """Log context categories for structured logging."""

    CONFIG = "config"
    SESSION = "session"
    TMUX = "tmux"
    CLI = "cli"


class MuxOrchestratorException(Exception):
    """Base exception class for all mux-orchestrator errors."""

    def __init__(self, message: str, context: dict[str, Any] | None = None):
        super().__init__(message)
        self.message = message
        self.context = context or {}
        self.timestamp = datetime.now(timezone.utc)


class ConfigurationError(MuxOrchestratorException):
    """Missing or malformed session configuration."""

    pass


class UnknownPaneError(MuxOrchestratorException):
    """A pane name did not match any pane declared in the configuration."""

    def __init__(self, pane_name: str):
        super().__init__(f"Unknown pane: {pane_name}", {"pane_name": pane_name})
        self.pane_name = pane_name


class AdapterError(MuxOrchestratorException):
    """A tmux invocation failed or could not be spawned."""

    def __init__(
        self,
        message: str,
        target: str | None = None,
        command: list[str] | None = None,
        stderr: str | None = None,
    ):
        super().__init__(
            message, {"target": target, "command": command, "stderr": stderr}
        )
        self.target = target
        self.command = command or []
        self.stderr = stderr or ""


class StaleTopologyWarning(MuxOrchestratorException):
    """A declared pane has no live counterpart in the running session."""

    def __init__(self, pane_name: str, window_index: int, pane_index: int):
        super().__init__(
            f'Pane "{pane_name}" not found in tmux session',
            {
                "pane_name": pane_name,
                "window_index": window_index,
                "pane_index": pane_index,
            },
        )
        self.pane_name = pane_name
        self.window_index = window_index
        self.pane_index = pane_index


class StructuredFormatter(logging.Formatter):
    """Custom formatter for structured JSON logging."""

    standard_fields = {
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
        "getMessage",
        "context",
    }

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }

        if hasattr(record, "context"):
            log_data["context"] = record.context

        # Remaining extra fields passed through ContextualLogger kwargs
        for key, value in record.__dict__.items():
            if key not in self.standard_fields and not key.startswith("_"):
                log_data[key] = value

        if record.exc_info:
            log_data["exception"] = {
                "type": record.exc_info[0].__name__,
                "message": str(record.exc_info[1]),
                "traceback": traceback.format_exception(*record.exc_info),
            }

        return json.dumps(log_data, default=str)


class ContextualLogger:
    """Logger with context management for structured logging."""

    def __init__(self, name: str, context: LogContext):
        self.logger = logging.getLogger(name)
        self.context = context.value

    def _log(
        self, level: int, message: str, extra_context: dict[str, Any] | None = None
    ) -> None:
        """Internal logging method with context injection."""
        extra: dict[str, Any] = {
            "context": self.context,
        }

        if extra_context:
            extra.update(extra_context)

        self.logger.log(level, message, extra=extra)

    def debug(self, message: str, **kwargs) -> None:
        """Log debug message with context."""
        self._log(logging.DEBUG, message, kwargs)

    def info(self, message: str, **kwargs) -> None:
        """Log info message with context."""
        self._log(logging.INFO, message, kwargs)

    def warning(self, message: str, **kwargs) -> None:
        """Log warning message with context."""
        self._log(logging.WARNING, message, kwargs)

    def error(self, message: str, exception: Exception | None = None, **kwargs) -> None:
        """Log error message with context and optional exception."""
        if exception:
            extra: dict[str, Any] = {"context": self.context, **kwargs}
            self.logger.error(message, exc_info=exception, extra=extra)
        else:
            self._log(logging.ERROR, message, kwargs)


def get_logger(name: str, context: LogContext) -> ContextualLogger:
    """Get a contextual logger instance."""
    return ContextualLogger(name, context)


def setup_logging(
    log_level: str | LogLevel = LogLevel.WARNING,
    log_file: Path | None = None,
    enable_structured: bool = False,
    enable_console: bool = True,
) -> None:
    """
    Setup logging configuration.

    Console output goes to stderr so that it never interleaves with the
    lines a command prints for the user.

    Args:
        log_level: Minimum log level to capture
        log_file: Optional file path for log output
        enable_structured: Use JSON structured logging format
        enable_console: Enable console output
    """
    if isinstance(log_level, LogLevel):
        log_level = log_level.value

    if log_file:
        log_file.parent.mkdir(parents=True, exist_ok=True)

    handlers: list[logging.Handler] = []

    if enable_console:
        console_handler = logging.StreamHandler(sys.stderr)
        if enable_structured:
            console_handler.setFormatter(StructuredFormatter())
        else:
            console_handler.setFormatter(
                logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")
            )
        handlers.append(console_handler)

    if log_file:
        # Files always get JSON lines
        file_handler = logging.FileHandler(log_file)
        file_handler.setFormatter(StructuredFormatter())
        handlers.append(file_handler)

    root_logger = logging.getLogger()

    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    root_logger.setLevel(getattr(logging, log_level.upper(), logging.WARNING))
    for handler in handlers:
        root_logger.addHandler(handler)

    # libtmux logs every command it runs at DEBUG
    logging.getLogger("libtmux").setLevel(logging.WARNING)


def audit_log(action: str, log_context: LogContext = LogContext.SESSION):
    """Decorator for audit logging of session lifecycle operations."""

    def decorator(func: Callable) -> Callable:
        @functools.wraps(func)
        def wrapper(*args, **kwargs):
            logger = get_logger(f"{func.__module__}.audit", log_context)

            logger.info(
                f"Audit: {action} started",
                action=action,
                function=func.__name__,
            )

            try:
                result = func(*args, **kwargs)

                logger.info(
                    f"Audit: {action} completed successfully",
                    action=action,
                    function=func.__name__,
                    status="success",
                )

                return result

            except Exception as e:
                logger.error(
                    f"Audit: {action} failed",
                    action=action,
                    function=func.__name__,
                    status="error",
                    error=str(e),
                )

                raise

        return wrapper

    return decorator
