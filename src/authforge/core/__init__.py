"""Core AuthForge utilities.

This module exports core utilities for use throughout the application.
"""

from authforge.core.clock import Clock, FrozenClock, ensure_aware, utc_now
from authforge.core.config import Settings, get_settings
from authforge.core.logging import (
    LoggingContext,
    bind_correlation_id,
    clear_context,
    configure_logging,
    get_logger,
)

__all__ = [
    "Clock",
    "FrozenClock",
    "LoggingContext",
    "Settings",
    "bind_correlation_id",
    "clear_context",
    "configure_logging",
    "ensure_aware",
    "get_logger",
    "get_settings",
    "utc_now",
]
