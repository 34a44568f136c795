# src/logging/logger.py — v1
"""Logging setup with JSON and text formatters.

Both formatters read the active log context (scope, job, document,
provider) so pipeline and search records can be correlated per job.
Fields passed through ``extra=`` are kept under ``data`` in JSON output.
"""

from __future__ import annotations

import json
import logging
import sys
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any, TextIO

from docsemantic.logging.context import get_context

if TYPE_CHECKING:
    from docsemantic.config.settings import Settings

ROOT_LOGGER_NAME = "docsemantic"

# Attributes every LogRecord carries; anything else came in via extra=.
_RECORD_ATTRS = frozenset(
    logging.LogRecord("", 0, "", 0, "", (), None).__dict__
) | {"message", "asctime", "taskName"}


def _extra_fields(record: logging.LogRecord) -> dict[str, Any]:
    return {k: v for k, v in record.__dict__.items() if k not in _RECORD_ATTRS}


class JsonFormatter(logging.Formatter):
    """One JSON object per line."""

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        context = get_context().as_dict()
        if context:
            entry["context"] = context

        extra = _extra_fields(record)
        data = extra.pop("data", None)
        if isinstance(data, dict):
            extra = {**data, **extra}
        if extra:
            entry["data"] = extra

        if record.exc_info and record.exc_info[1] is not None:
            exc = record.exc_info[1]
            entry["exception"] = self.formatException(record.exc_info)
            kind = getattr(exc, "kind", None)
            if kind is not None:
                entry["error_kind"] = getattr(kind, "value", str(kind))

        return json.dumps(entry, default=str)


class TextFormatter(logging.Formatter):
    """Single-line human-readable output for the CLI.

    ``2024-05-01 12:00:00 [INFO    ] docsemantic.search [alice] (openai) - message``
    """

    def __init__(self) -> None:
        super().__init__(datefmt="%Y-%m-%d %H:%M:%S")

    def format(self, record: logging.LogRecord) -> str:
        ctx = get_context()
        line = f"{self.formatTime(record, self.datefmt)} [{record.levelname:8s}] {record.name}"
        if ctx.scope:
            line += f" [{ctx.scope}]"
        if ctx.document_id:
            line += f" #{ctx.document_id}"
        if ctx.provider:
            line += f" ({ctx.provider})"
        line += f" - {record.getMessage()}"
        if record.exc_info and record.exc_info[1] is not None:
            line += "\n" + self.formatException(record.exc_info)
        return line


def setup_logging(
    level: str = "INFO",
    log_format: str = "json",
    log_file: str | None = None,
    rotation: str = "10MB",
    retention: int = 30,
    stream: TextIO | None = None,
) -> logging.Logger:
    """Configure the root docsemantic logger.

    Re-running replaces the previously installed handlers.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR).
        log_format: Output format ("json" or "text").
        log_file: Path to log file (None = console only).
        rotation: Max file size before rotation (e.g. "10MB").
        retention: Number of rotated files to keep.
        stream: Console stream (default stdout).
    """
    root_logger = logging.getLogger(ROOT_LOGGER_NAME)
    root_logger.setLevel(getattr(logging, level.upper(), logging.INFO))
    for handler in root_logger.handlers:
        handler.close()
    root_logger.handlers.clear()

    formatter: logging.Formatter = (
        JsonFormatter() if log_format == "json" else TextFormatter()
    )
    handlers: list[logging.Handler] = [logging.StreamHandler(stream or sys.stdout)]
    if log_file:
        from docsemantic.logging.handlers import create_rotating_handler

        handlers.append(
            create_rotating_handler(log_file, rotation=rotation, retention=retention)
        )
    for handler in handlers:
        handler.setFormatter(formatter)
        root_logger.addHandler(handler)
    return root_logger


def setup_logging_from_settings(
    settings: Settings, stream: TextIO | None = None
) -> logging.Logger:
    """Apply the LOG_* settings."""
    return setup_logging(
        level=settings.log_level,
        log_format=settings.log_format,
        log_file=str(settings.log_file) if settings.log_file else None,
        rotation=settings.log_rotation,
        retention=settings.log_retention,
        stream=stream,
    )
