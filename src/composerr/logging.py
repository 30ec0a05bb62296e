"""Logging for composerr.

The pipeline logs through a ComposerrLogger, which tags every record with
the component and the file being expanded. The CLI installs a handler that
renders records as text or as one JSON object per line.
"""

from __future__ import annotations

import json
import logging
import sys
import time
from collections.abc import Iterator
from contextlib import contextmanager
from enum import Enum
from typing import Any


class LogFormat(Enum):
    """Log output format."""

    TEXT = "text"
    JSON = "json"


def record_fields(record: logging.LogRecord) -> dict[str, Any]:
    """Component, file and per-call fields a ComposerrLogger attached."""
    fields: dict[str, Any] = {}
    component = getattr(record, "component", "")
    if component:
        fields["component"] = component
    path = getattr(record, "source_path", "")
    if path:
        fields["path"] = path
    fields.update(getattr(record, "fields", {}))
    return fields


class JsonFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        data: dict[str, Any] = {
            "time": self.formatTime(record),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        data.update(record_fields(record))
        if record.exc_info:
            data["exception"] = self.formatException(record.exc_info)
        return json.dumps(data, default=str)


class TextFormatter(logging.Formatter):
    """``[component] path LEVEL message key=value``; missing parts are left out."""

    def format(self, record: logging.LogRecord) -> str:
        fields = record_fields(record)
        parts = []
        if "component" in fields:
            parts.append(f"[{fields.pop('component')}]")
        if "path" in fields:
            parts.append(fields.pop("path"))
        parts.append(super().format(record))
        parts.extend(f"{key}={value}" for key, value in fields.items())
        return " ".join(parts)


class ComposerrLogger:
    """Logger for one pipeline component.

    Records go to ``composerr.<component>`` and propagate to the
    ``composerr`` logger that configure_logging sets up.
    """

    def __init__(self, component: str, path: str = ""):
        self.component = component
        self.path = path
        self._logger = logging.getLogger(f"composerr.{component}")

    def with_path(self, path: str) -> ComposerrLogger:
        """The same component, logging about ``path``."""
        return ComposerrLogger(self.component, path)

    def _log(self, level: int, msg: str, fields: dict[str, Any]) -> None:
        if not self._logger.isEnabledFor(level):
            return
        extra = {"component": self.component, "source_path": self.path, "fields": fields}
        # Report the line that called debug() or info()
        self._logger.log(level, msg, extra=extra, stacklevel=3)

    def debug(self, msg: str, **fields: Any) -> None:
        self._log(logging.DEBUG, msg, fields)

    def info(self, msg: str, **fields: Any) -> None:
        self._log(logging.INFO, msg, fields)

    @contextmanager
    def timed(self, operation: str) -> Iterator[None]:
        """Log at debug level how long the block took."""
        start = time.perf_counter()
        try:
            yield
        finally:
            elapsed_ms = (time.perf_counter() - start) * 1000
            self.debug(f"{operation} took {elapsed_ms:.2f}ms")


_loggers: dict[str, ComposerrLogger] = {}


def get_logger(component: str) -> ComposerrLogger:
    if component not in _loggers:
        _loggers[component] = ComposerrLogger(component)
    return _loggers[component]


def configure_logging(
    level: int = logging.WARNING,
    log_format: LogFormat = LogFormat.TEXT,
) -> None:
    """Send ``composerr`` records at ``level`` and above to stderr.

    Calling it again replaces the previous handler.
    """
    handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(level)
    if log_format is LogFormat.JSON:
        handler.setFormatter(JsonFormatter())
    else:
        handler.setFormatter(TextFormatter("%(levelname)s %(message)s"))

    root = logging.getLogger("composerr")
    root.setLevel(level)
    root.handlers.clear()
    root.addHandler(handler)
