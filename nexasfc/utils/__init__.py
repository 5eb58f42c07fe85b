"""
NexaSFC Utils Package
=====================

Structured logging and JSON serialization.
"""

from __future__ import annotations

from nexasfc.utils import serializer
from nexasfc.utils.logger import (
    Logger,
    LogLevel,
    configure_logging,
    get_logger,
    timed_operation,
)

__all__ = [
    "serializer",
    "Logger",
    "LogLevel",
    "configure_logging",
    "get_logger",
    "timed_operation",
]
