"""
NexaSFC Logger
==============

Structured logging for the compiler and hydration pipeline.

Loggers are named after the component emitting them
(``nexasfc.composition``, ``nexasfc.hydration`` ...) and carry key=value
context that formatters render as text or JSON.

Example:
    logger = get_logger("nexasfc.view").with_context(template="home")
    logger.debug("Rendering view")

    with timed_operation(logger, "Resolved composition", root="home"):
        composition.resolve()
"""

from __future__ import annotations

import logging
import sys
import time
import traceback
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import datetime
from enum import IntEnum
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional, TextIO, Union

from nexasfc.utils import serializer


class LogLevel(IntEnum):
    """Log levels, numerically compatible with :mod:`logging`."""

    DEBUG = logging.DEBUG
    INFO = logging.INFO
    WARNING = logging.WARNING
    ERROR = logging.ERROR
    CRITICAL = logging.CRITICAL

    @classmethod
    def parse(cls, value: Union[str, int, "LogLevel"]) -> "LogLevel":
        """Convert a level name or number to a LogLevel."""
        if isinstance(value, LogLevel):
            return value
        if isinstance(value, int):
            return cls(value)
        return cls[str(value).strip().upper()]


@dataclass
class LogRecord:
    """
    A single structured log entry.

    Attributes:
        level: Severity
        message: Human readable message
        logger_name: Name of the emitting logger
        context: Key/value context merged from the logger and the call
        exception: Attached exception, if any
    """

    level: LogLevel
    message: str
    logger_name: str = "nexasfc"
    timestamp: datetime = field(default_factory=datetime.now)
    context: Dict[str, Any] = field(default_factory=dict)
    exception: Optional[BaseException] = None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "timestamp": self.timestamp.isoformat(),
            "level": self.level.name,
            "logger": self.logger_name,
            "message": self.message,
        }
        if self.context:
            data["context"] = self.context
        if self.exception is not None:
            data["exception"] = {
                "type": type(self.exception).__name__,
                "message": str(self.exception),
            }
        return data


class LogFormatter:
    """Base log formatter."""

    def format(self, record: LogRecord) -> str:
        raise NotImplementedError


class TextFormatter(LogFormatter):
    """
    Plain text formatter.

    Example output:
        2026-01-15 10:30:45 [DEBUG] nexasfc.composition Resolved root=home
    """

    COLORS = {
        LogLevel.DEBUG: "\033[36m",
        LogLevel.INFO: "\033[32m",
        LogLevel.WARNING: "\033[33m",
        LogLevel.ERROR: "\033[31m",
        LogLevel.CRITICAL: "\033[35m",
    }
    RESET = "\033[0m"

    def __init__(
        self,
        format_string: str = "{timestamp} [{level}] {logger} {message}",
        date_format: str = "%Y-%m-%d %H:%M:%S",
        colors: bool = False,
    ):
        self.format_string = format_string
        self.date_format = date_format
        self.colors = colors

    def format(self, record: LogRecord) -> str:
        level = record.level.name
        if self.colors:
            level = f"{self.COLORS.get(record.level, '')}{level}{self.RESET}"

        message = record.message
        if record.context:
            pairs = " ".join(f"{k}={v}" for k, v in record.context.items())
            message = f"{message} {pairs}"

        output = self.format_string.format(
            timestamp=record.timestamp.strftime(self.date_format),
            level=level,
            logger=record.logger_name,
            message=message,
        )

        if record.exception is not None:
            output += "\n" + "".join(
                traceback.format_exception(
                    type(record.exception),
                    record.exception,
                    record.exception.__traceback__,
                )
            )
        return output


class JsonFormatter(LogFormatter):
    """One JSON object per line, serialized with orjson."""

    def __init__(self, pretty: bool = False):
        self.pretty = pretty

    def format(self, record: LogRecord) -> str:
        if self.pretty:
            return serializer.pretty_dumps(record.to_dict())
        return serializer.dumps(record.to_dict())


class LogHandler:
    """Base log handler with a level filter."""

    def __init__(
        self,
        formatter: Optional[LogFormatter] = None,
        level: LogLevel = LogLevel.DEBUG,
    ):
        self.formatter = formatter or TextFormatter()
        self.level = level

    def handle(self, record: LogRecord) -> None:
        if record.level >= self.level:
            self.emit(record)

    def emit(self, record: LogRecord) -> None:
        raise NotImplementedError


class StreamHandler(LogHandler):
    """Writes formatted records to a stream (stderr by default)."""

    def __init__(
        self,
        stream: Optional[TextIO] = None,
        formatter: Optional[LogFormatter] = None,
        level: LogLevel = LogLevel.DEBUG,
    ):
        super().__init__(formatter, level)
        self.stream = stream or sys.stderr

    def emit(self, record: LogRecord) -> None:
        self.stream.write(self.formatter.format(record) + "\n")
        self.stream.flush()


class FileHandler(LogHandler):
    """Appends formatted records to a file."""

    def __init__(
        self,
        path: Union[str, Path],
        formatter: Optional[LogFormatter] = None,
        level: LogLevel = LogLevel.DEBUG,
    ):
        super().__init__(formatter or JsonFormatter(), level)
        self.path = Path(path)
        self.path.parent.mkdir(parents=True, exist_ok=True)

    def emit(self, record: LogRecord) -> None:
        with open(self.path, "a", encoding="utf-8") as f:
            f.write(self.formatter.format(record) + "\n")


class MemoryHandler(LogHandler):
    """Keeps records in a list. Useful for inspecting log output in tests."""

    def __init__(self, level: LogLevel = LogLevel.DEBUG):
        super().__init__(None, level)
        self.records: List[LogRecord] = []

    def emit(self, record: LogRecord) -> None:
        self.records.append(record)

    def messages(self) -> List[str]:
        return [record.message for record in self.records]


class Logger:
    """
    Structured logger.

    Example:
        logger = Logger("nexasfc.engine")
        logger.debug("Parsed template", nodes=12)

        scoped = logger.with_context(template="home")
        scoped.warning("Unknown attribute", attribute="foo")
    """

    def __init__(
        self,
        name: str = "nexasfc",
        level: LogLevel = LogLevel.WARNING,
        handlers: Optional[List[LogHandler]] = None,
    ):
        self.name = name
        self.level = level
        self._handlers: List[LogHandler] = handlers if handlers is not None else []
        self._context: Dict[str, Any] = {}

    @property
    def handlers(self) -> List[LogHandler]:
        return self._handlers

    def add_handler(self, handler: LogHandler) -> "Logger":
        self._handlers.append(handler)
        return self

    def remove_handler(self, handler: LogHandler) -> "Logger":
        self._handlers.remove(handler)
        return self

    def with_context(self, **context: Any) -> "Logger":
        """
        Create a logger sharing handlers but carrying extra context.

        Args:
            **context: Context key-values

        Returns:
            New logger with merged context
        """
        child = Logger(name=self.name, level=self.level, handlers=self._handlers)
        child._context = {**self._context, **context}
        return child

    def is_enabled_for(self, level: LogLevel) -> bool:
        return level >= self.level

    def _log(
        self,
        level: LogLevel,
        message: str,
        exception: Optional[BaseException] = None,
        **context: Any,
    ) -> None:
        if level < self.level:
            return

        record = LogRecord(
            level=level,
            message=message,
            logger_name=self.name,
            context={**self._context, **context},
            exception=exception,
        )

        for handler in self._handlers:
            try:
                handler.handle(record)
            except (OSError, ValueError) as exc:
                # Report and continue with the remaining handlers
                sys.stderr.write(f"nexasfc: log handler failed: {exc}\n")

    def debug(self, message: str, **context: Any) -> None:
        self._log(LogLevel.DEBUG, message, **context)

    def info(self, message: str, **context: Any) -> None:
        self._log(LogLevel.INFO, message, **context)

    def warning(self, message: str, **context: Any) -> None:
        self._log(LogLevel.WARNING, message, **context)

    def error(
        self,
        message: str,
        exception: Optional[BaseException] = None,
        **context: Any,
    ) -> None:
        self._log(LogLevel.ERROR, message, exception, **context)

    def critical(
        self,
        message: str,
        exception: Optional[BaseException] = None,
        **context: Any,
    ) -> None:
        self._log(LogLevel.CRITICAL, message, exception, **context)


_loggers: Dict[str, Logger] = {}
_default_level = LogLevel.WARNING
_default_handlers: List[LogHandler] = [StreamHandler()]


def get_logger(name: str = "nexasfc", level: Optional[LogLevel] = None) -> Logger:
    """
    Get or create a named logger.

    New loggers share the handlers installed by :func:`configure_logging`.

    Args:
        name: Logger name
        level: Log level override

    Returns:
        Logger instance
    """
    if name not in _loggers:
        _loggers[name] = Logger(
            name=name,
            level=level if level is not None else _default_level,
            handlers=_default_handlers,
        )
    elif level is not None:
        _loggers[name].level = level
    return _loggers[name]


def configure_logging(
    level: Union[str, int, LogLevel] = LogLevel.INFO,
    format: str = "text",
    log_file: Optional[str] = None,
    colors: bool = False,
    stream: Optional[TextIO] = None,
) -> Logger:
    """
    Configure handlers and level for every ``nexasfc`` logger.

    Args:
        level: Minimum level (name or number)
        format: "text" or "json"
        log_file: Optional file that also receives records
        colors: Colorize text output
        stream: Output stream, stderr by default

    Returns:
        The root ``nexasfc`` logger
    """
    global _default_level

    parsed = LogLevel.parse(level)
    formatter: LogFormatter
    if format == "json":
        formatter = JsonFormatter()
    else:
        formatter = TextFormatter(colors=colors)

    handlers: List[LogHandler] = [StreamHandler(stream, formatter, parsed)]
    if log_file:
        handlers.append(FileHandler(log_file, level=parsed))

    _default_level = parsed
    _default_handlers[:] = handlers
    for logger in _loggers.values():
        logger.level = parsed

    return get_logger("nexasfc")


@contextmanager
def timed_operation(
    logger: Logger,
    message: str,
    level: LogLevel = LogLevel.DEBUG,
    **context: Any,
) -> Iterator[Dict[str, Any]]:
    """
    Log how long a block took.

    The yielded dict can be filled with extra context while the block runs.
    On failure the error is logged at ERROR level and re-raised.

    Example:
        with timed_operation(logger, "Rendered view", template=name) as extra:
            html = engine.render(document, context)
            extra["bytes"] = len(html)
    """
    extra: Dict[str, Any] = {}
    started = time.perf_counter()
    try:
        yield extra
    except Exception as exc:
        elapsed = (time.perf_counter() - started) * 1000
        fields = {**context, **extra, "duration_ms": round(elapsed, 3)}
        logger.error(f"{message} failed", exception=exc, **fields)
        raise
    elapsed = (time.perf_counter() - started) * 1000
    fields = {**context, **extra, "duration_ms": round(elapsed, 3)}
    logger._log(level, message, **fields)
