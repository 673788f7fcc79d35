"""
Structured logging configuration for Gridboard.

Provides consistent logging across the layout engine, the store and the
storage backends, with JSON and human-readable output formats.
"""

from __future__ import annotations

import json
import logging
import os
import sys
from datetime import datetime
from typing import Any

_RESERVED_ATTRS = frozenset(
    (
        "name",
        "msg",
        "args",
        "created",
        "filename",
        "funcName",
        "levelname",
        "levelno",
        "lineno",
        "module",
        "msecs",
        "pathname",
        "process",
        "processName",
        "relativeCreated",
        "stack_info",
        "exc_info",
        "exc_text",
        "thread",
        "threadName",
        "taskName",
        "message",
    )
)


class StructuredFormatter(logging.Formatter):
    """One JSON object per record, with extra logger fields as top-level keys."""

    def __init__(
        self,
        include_timestamp: bool = True,
        extra_fields: dict[str, Any] | None = None,
    ):
        super().__init__()
        self.include_timestamp = include_timestamp
        self.extra_fields = extra_fields or {}

    def format(self, record: logging.LogRecord) -> str:
        log_data: dict[str, Any] = {}
        if self.include_timestamp:
            log_data["timestamp"] = datetime.utcnow().isoformat() + "Z"
        log_data["level"] = record.levelname.lower()
        log_data["logger"] = record.name
        log_data["message"] = record.getMessage()

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        log_data.update(
            (key, value) for key, value in record.__dict__.items()
            if key not in _RESERVED_ATTRS
        )
        log_data.update(self.extra_fields)
        return json.dumps(log_data, default=str)


class HumanReadableFormatter(logging.Formatter):
    """Single-line text records for the CLI."""

    def __init__(self, include_timestamp: bool = True):
        super().__init__()
        self.include_timestamp = include_timestamp

    def format(self, record: logging.LogRecord) -> str:
        line = f"{record.levelname:>8} {record.name}: {record.getMessage()}"
        if self.include_timestamp:
            line = f"[{datetime.utcnow():%Y-%m-%d %H:%M:%S}] {line}"
        if record.exc_info:
            line += "\n" + self.formatException(record.exc_info)
        return line


class GridLogger:
    """
    Wrapper around Python logging for Gridboard events.

    Carries persistent context fields (for example the storage namespace)
    and exposes one method per engine event.
    """

    def __init__(self, name: str):
        self.logger = logging.getLogger(name)
        self._context: dict[str, Any] = {}

    def set_context(self, **kwargs: Any) -> None:
        """Set persistent context fields for all logs."""
        self._context.update(kwargs)

    def _log(
        self,
        level: int,
        message: str,
        exc_info: bool = False,
        **kwargs: Any,
    ) -> None:
        extra = {**self._context, **kwargs}
        self.logger.log(level, message, exc_info=exc_info, extra=extra)

    def debug(self, message: str, **kwargs: Any) -> None:
        """Log debug message."""
        self._log(logging.DEBUG, message, **kwargs)

    def info(self, message: str, **kwargs: Any) -> None:
        """Log info message."""
        self._log(logging.INFO, message, **kwargs)

    def warning(self, message: str, **kwargs: Any) -> None:
        """Log warning message."""
        self._log(logging.WARNING, message, **kwargs)

    def error(self, message: str, exc_info: bool = False, **kwargs: Any) -> None:
        """Log error message."""
        self._log(logging.ERROR, message, exc_info=exc_info, **kwargs)

    def widget_added(self, widget_id: str, widget_type: str, parent_id: str | None = None) -> None:
        """Log widget creation."""
        self.info(
            "Widget added",
            event_type="widget.added",
            widget_id=widget_id,
            widget_type=widget_type,
            parent_id=parent_id,
        )

    def widget_removed(self, widget_id: str, removed_count: int) -> None:
        """Log widget removal, including cascaded children."""
        self.info(
            "Widget removed",
            event_type="widget.removed",
            widget_id=widget_id,
            removed_count=removed_count,
        )

    def folder_toggled(self, folder_id: str, collapsed: bool) -> None:
        """Log a folder collapse or expand."""
        self.info(
            "Folder collapsed" if collapsed else "Folder expanded",
            event_type="folder.toggled",
            folder_id=folder_id,
            collapsed=collapsed,
        )

    def placement_fallback(self, widget_id: str, breakpoint: str, y: int) -> None:
        """Log that the placement scan gave up and appended below the layout."""
        self.warning(
            "Placement scan exhausted, appending below layout",
            event_type="placement.fallback",
            widget_id=widget_id,
            breakpoint=breakpoint,
            y=y,
        )

    def history_pushed(self, action: str, depth: int) -> None:
        """Log a history snapshot."""
        self.debug(
            "History snapshot pushed",
            event_type="history.pushed",
            action=action,
            depth=depth,
        )

    def state_persisted(self, namespace: str, workspace_count: int) -> None:
        """Log a successful save."""
        self.debug(
            "State persisted",
            event_type="state.persisted",
            namespace=namespace,
            workspace_count=workspace_count,
        )

    def persistence_failed(self, namespace: str, operation: str, error: str) -> None:
        """Log a storage failure that the store degraded around."""
        self.error(
            "Persistence failed, continuing with in-memory state",
            event_type="state.persistence_failed",
            namespace=namespace,
            operation=operation,
            error=error,
        )


def configure_logging(
    level: str = "INFO",
    format: str = "human",
    output: str = "stderr",
    extra_fields: dict[str, Any] | None = None,
) -> None:
    """
    Configure logging for Gridboard.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        format: Output format (human, json)
        output: Output destination (stderr, stdout)
        extra_fields: Extra fields to include in structured logs
    """
    root_logger = logging.getLogger("gridboard")
    root_logger.setLevel(getattr(logging, level.upper()))

    root_logger.handlers.clear()

    if output == "stdout":
        handler = logging.StreamHandler(sys.stdout)
    else:
        handler = logging.StreamHandler(sys.stderr)

    if format == "json":
        formatter: logging.Formatter = StructuredFormatter(extra_fields=extra_fields)
    else:
        formatter = HumanReadableFormatter()

    handler.setFormatter(formatter)
    root_logger.addHandler(handler)


def get_logger(name: str) -> GridLogger:
    """
    Get a Gridboard logger instance.

    Args:
        name: Logger name (typically module name without the package prefix)

    Returns:
        GridLogger instance
    """
    if not name.startswith("gridboard"):
        name = f"gridboard.{name}"
    return GridLogger(name)


# Configure logging from environment on import
_log_level = os.getenv("GRIDBOARD_LOG_LEVEL", "WARNING")
_log_format = os.getenv("GRIDBOARD_LOG_FORMAT", "human")
configure_logging(level=_log_level, format=_log_format)
