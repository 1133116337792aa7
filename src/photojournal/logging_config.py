"""
Centralized logging configuration for photojournal.

Structured logging via structlog on top of the standard library logger:
a console renderer in development and JSON lines in production.
"""

import logging
import os
import sys
import time
from typing import Any

import structlog

LEVEL_NAMES = {
    "DEBUG": logging.DEBUG,
    "INFO": logging.INFO,
    "WARNING": logging.WARNING,
    "ERROR": logging.ERROR,
    "CRITICAL": logging.CRITICAL,
}


def get_log_level() -> int:
    """
    Get log level from the LOG_LEVEL environment variable, INFO by default.

    Returns:
        int: Log level constant from the logging module
    """
    return LEVEL_NAMES.get(os.getenv("LOG_LEVEL", "INFO").upper(), logging.INFO)


def is_development_environment() -> bool:
    """Check if running in a development environment."""
    return os.getenv("ENVIRONMENT", "development").lower() in ["development", "dev", "local", "test"]


def configure_structured_logging(json_logs: bool | None = None) -> None:
    """
    Configure structured logging for the whole application.

    Args:
        json_logs: Force JSON output. Defaults to JSON outside development.
    """
    log_level = get_log_level()
    is_dev = is_development_environment()
    if json_logs is None:
        json_logs = not is_dev

    logging.basicConfig(level=log_level, format="%(message)s", stream=sys.stderr)

    processors: list[Any] = [
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
    ]

    if json_logs:
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty()))

    structlog.configure(
        processors=processors,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    logging.getLogger().setLevel(log_level)
    # uvicorn access lines duplicate the request log emitted by the API middleware
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)

    structlog.get_logger("photojournal.logging").info(
        "logging_configured",
        log_level=logging.getLevelName(log_level),
        environment="development" if is_dev else "production",
        json_logs=json_logs,
    )


def get_logger(name: str | None = None) -> Any:
    """
    Get a structured logger instance.

    Args:
        name: Logger name, usually ``__name__``

    Returns:
        structlog.BoundLogger: Configured logger instance
    """
    return structlog.get_logger(name)


def log_performance(operation: str, duration: float, **context: Any) -> None:
    """Log how long an operation took, in seconds."""
    get_logger("photojournal.performance").info(
        "performance_metric", operation=operation, duration_seconds=round(duration, 4), **context
    )


def log_user_action(user_id: str, action: str, **context: Any) -> None:
    """Log user actions for the audit trail."""
    get_logger("photojournal.user_actions").info("user_action", user_id=user_id, action=action, **context)


def log_error(error: Exception, context: dict[str, Any] | None = None) -> None:
    """
    Log errors with structured context.

    Args:
        error: Exception that occurred
        context: Additional context information
    """
    error_context = {
        "error_type": type(error).__name__,
        "error_message": str(error),
    }
    if context:
        error_context.update(context)

    get_logger("photojournal.errors").error("error_occurred", **error_context)


def log_security_event(event_type: str, user_id: str | None = None, **context: Any) -> None:
    """Log security-related events such as failed ownership checks."""
    get_logger("photojournal.security").warning("security_event", event_type=event_type, user_id=user_id, **context)


class LogContext:
    """Context manager binding structured context and timing an operation."""

    def __init__(self, logger: Any, operation: str, **context: Any):
        self.logger = logger
        self.operation = operation
        self.context = context
        self.bound_logger: Any = None
        self._started = 0.0

    def __enter__(self) -> Any:
        self._started = time.perf_counter()
        self.bound_logger = self.logger.bind(operation=self.operation, **self.context)
        return self.bound_logger

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        duration = time.perf_counter() - self._started
        if exc_type is not None:
            self.bound_logger.error(
                "operation_failed",
                exception_type=exc_type.__name__,
                exception_message=str(exc_val),
                duration_seconds=round(duration, 4),
            )
        else:
            log_performance(self.operation, duration, **self.context)


def log_context(operation: str, logger: Any = None, **context: Any) -> LogContext:
    """
    Create a logging context manager for one operation.

    Args:
        operation: Operation name recorded on every event
        logger: Logger to bind; defaults to the photojournal root logger
        **context: Context variables to add to all log messages
    """
    return LogContext(logger or get_logger("photojournal"), operation, **context)
