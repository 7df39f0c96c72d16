"""Structured logging shared by the engine and the API: loguru sinks plus a contextvars-backed context."""

import contextvars
import sys
from typing import Any

from loguru import logger

from sensorwatch.config import LoggingConfig

# Context variables for maintaining device/batch context
log_context: contextvars.ContextVar[dict[str, Any]] = contextvars.ContextVar("log_context", default={})

CONTEXT_DEFAULTS = {"device_id": "-", "batch_id": "-"}


class LoggingContext:
    """
    Context manager for structured logging with automatic context injection.

    Example:
        with LoggingContext(device_id="dev-1", batch_id="a1b2c3d4"):
            logger.info("Reconciling alerts")  # Will include device_id and batch_id
    """

    def __init__(self, **context_data):
        """
        Initialize logging context.

        Args:
            **context_data: Key-value pairs to add to logging context
        """
        self.context_data = context_data
        self.token = None

    def __enter__(self):
        """Enter context and set context variables."""
        current = log_context.get().copy()
        current.update(self.context_data)
        self.token = log_context.set(current)
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Exit context and restore previous context."""
        if self.token:
            log_context.reset(self.token)


def get_logging_context() -> dict[str, Any]:
    """
    Get current logging context.

    Returns:
        Dictionary of current context variables
    """
    return log_context.get().copy()


def context_filter(record) -> bool:
    """Add context variables to log record."""
    record["extra"].update(log_context.get())
    for key, default in CONTEXT_DEFAULTS.items():
        record["extra"].setdefault(key, default)
    return True


def configure_structured_logging(config: LoggingConfig | None = None):
    """
    Configure loguru to include context variables in all log messages.

    This should be called once at application startup.
    """
    config = config or LoggingConfig()

    logger.remove()

    logger.add(
        sink=sys.stderr,
        format=(
            "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | "
            "<level>{level: <8}</level> | "
            "<cyan>{extra[device_id]}</cyan>:<cyan>{extra[batch_id]}</cyan> | "
            "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> | "
            "<level>{message}</level>"
        ),
        filter=context_filter,
        level=config.level.upper(),
        colorize=True,
    )

    if config.file:
        logger.add(
            sink=config.file,
            format="{time:YYYY-MM-DD HH:mm:ss.SSS} | {level} | {extra} | {name}:{function}:{line} | {message}",
            filter=context_filter,
            level="INFO",
            rotation=config.rotation,
            retention=config.retention,
            compression="zip",
            serialize=False,
        )
