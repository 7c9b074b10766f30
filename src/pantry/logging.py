"""
Structured logging for the cache.

Every event is about a record: the cache key and, for file-level work, the
storage root it touched. Both are scoped with log_context() and merged into
the keyword fields of each log call.

- Console: rich, one line per event, `root/key` prefix and fields inline
- File: JSON lines, one flat object per event
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from contextvars import ContextVar
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Iterator

import orjson
from rich.console import Console
from rich.logging import RichHandler
from rich.text import Text

LOGGER_NAMESPACE = "pantry"

# Attribute on LogRecord holding the merged context and call fields
FIELDS_ATTR = "pantry_fields"

_MAX_KEY_DISPLAY = 32

_context: ContextVar[dict[str, str]] = ContextVar("pantry_log_context", default={})


def current_context() -> dict[str, str]:
    """Key and root currently in scope."""
    return dict(_context.get())


@contextmanager
def log_context(key: str | None = None, root: str | None = None) -> Iterator[None]:
    """Scope the cache key and/or storage root for nested log calls.

    Unset arguments keep the enclosing value.
    """
    scoped = {name: value for name, value in (("key", key), ("root", root)) if value}
    token = _context.set({**_context.get(), **scoped})
    try:
        yield
    finally:
        _context.reset(token)


class JSONLinesFormatter(logging.Formatter):
    """One JSON object per line: timestamp, level, logger, message, fields."""

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        for name, value in getattr(record, FIELDS_ATTR, {}).items():
            entry.setdefault(name, value)
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)
        return orjson.dumps(entry, default=str).decode("utf-8")


class RecordRichHandler(RichHandler):
    """Rich handler that prefixes `root/key` and appends fields as name=value."""

    def render_message(self, record: logging.LogRecord, message: str) -> Text:
        fields = dict(getattr(record, FIELDS_ATTR, {}))
        root = fields.pop("root", None)
        key = fields.pop("key", None)

        text = Text()
        if key is not None:
            key = str(key)
            if len(key) > _MAX_KEY_DISPLAY:
                key = f"{key[:_MAX_KEY_DISPLAY - 3]}..."
        location = "/".join(str(part) for part in (root, key) if part is not None)
        if location:
            text.append(f"{location} ", style="magenta")
        text.append(message)
        for name, value in fields.items():
            text.append(f" {name}=", style="dim")
            text.append(str(value), style="cyan")
        return text


class StructuredLogger:
    """Logger whose keyword arguments become structured fields.

    Example:
        logger.warning("Error writing record", path=str(path), error=str(e))
    """

    def __init__(self, logger: logging.Logger) -> None:
        self._logger = logger

    def _log(self, level: int, msg: str, fields: dict[str, Any]) -> None:
        if not self._logger.isEnabledFor(level):
            return
        merged: dict[str, Any] = {**_context.get(), **fields}
        # stacklevel points the record at the caller of debug()/info()/...
        self._logger.log(level, msg, extra={FIELDS_ATTR: merged}, stacklevel=3)

    def debug(self, msg: str, **fields: Any) -> None:
        self._log(logging.DEBUG, msg, fields)

    def info(self, msg: str, **fields: Any) -> None:
        self._log(logging.INFO, msg, fields)

    def warning(self, msg: str, **fields: Any) -> None:
        self._log(logging.WARNING, msg, fields)


def setup_logging(
    log_level: str = "INFO",
    log_file: Path | None = None,
    console_output: bool = True,
) -> None:
    """Configure the `pantry` logger tree.

    Replaces any handlers from a previous call. The file handler records
    every level; the console handler follows `log_level`.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL).
        log_file: JSON-lines log file. If None, only the console is used.
        console_output: Whether to log to stderr.
    """
    level = getattr(logging, log_level.upper())
    package_logger = logging.getLogger(LOGGER_NAMESPACE)
    package_logger.setLevel(logging.DEBUG if log_file else level)

    for handler in list(package_logger.handlers):
        package_logger.removeHandler(handler)
        handler.close()

    if log_file:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file, mode="a", encoding="utf-8")
        file_handler.setFormatter(JSONLinesFormatter())
        file_handler.setLevel(logging.DEBUG)
        package_logger.addHandler(file_handler)

    if console_output:
        console_handler = RecordRichHandler(
            console=Console(stderr=True),
            show_path=False,
            markup=False,
            rich_tracebacks=True,
        )
        console_handler.setLevel(level)
        package_logger.addHandler(console_handler)

    package_logger.propagate = False


def get_logger(name: str) -> StructuredLogger:
    """Get a structured logger under the `pantry` namespace.

    Configures console logging with defaults if nothing has been set up yet.
    """
    if not logging.getLogger(LOGGER_NAMESPACE).handlers:
        setup_logging()

    if name != LOGGER_NAMESPACE and not name.startswith(f"{LOGGER_NAMESPACE}."):
        name = f"{LOGGER_NAMESPACE}.{name}"

    return StructuredLogger(logging.getLogger(name))
