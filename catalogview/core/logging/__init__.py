"""Logging utilities for monitoring and debugging."""

from catalogview.core.logging.config import LogConfig
from catalogview.core.logging.logger import (
    StructuredLogger,
    bind,
    configure_logging,
    log_context,
    logger,
)

__all__ = [
    "LogConfig",
    "StructuredLogger",
    "bind",
    "configure_logging",
    "log_context",
    "logger",
]
