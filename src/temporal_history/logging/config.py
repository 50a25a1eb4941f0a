"""Stdout logging for applications embedding the history layer.

Records carry the archive context bound at log time under a single
``history`` attribute; the formatters render it as a nested JSON object or a
``key=value`` tail.
"""

from __future__ import annotations

import json
import logging
import sys
from datetime import UTC, datetime
from typing import Any

from . import fields
from .context import current_context


class ArchiveContextFilter(logging.Filter):
    """Snapshot the archive context onto each record as ``record.history``."""

    def filter(self, record: logging.LogRecord) -> bool:
        if not isinstance(getattr(record, fields.HISTORY, None), dict):
            setattr(record, fields.HISTORY, current_context().as_fields())
        return True


def _history_of(record: logging.LogRecord) -> dict[str, object]:
    history = getattr(record, fields.HISTORY, None)
    return history if isinstance(history, dict) else {}


class JsonFormatter(logging.Formatter):
    """One JSON object per line; archive fields nest under ``history``."""

    def __init__(self, service: str | None = None) -> None:
        super().__init__()
        self.service = service

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            fields.TIMESTAMP: datetime.fromtimestamp(record.created, UTC).isoformat(),
            fields.LEVEL: record.levelname,
            fields.LOGGER: record.name,
            fields.MESSAGE: record.getMessage(),
        }
        if self.service:
            payload[fields.SERVICE] = self.service
        history = _history_of(record)
        if history:
            payload[fields.HISTORY] = history
        if record.exc_info:
            payload[fields.EXCEPTION] = self.formatException(record.exc_info)
        return json.dumps(payload, default=str, separators=(",", ":"))


class PlainFormatter(logging.Formatter):
    """Readable single-line output with the archive fields appended."""

    def __init__(self, service: str | None = None) -> None:
        prefix = f"[{service}] " if service else ""
        super().__init__(
            fmt=f"%(asctime)s %(levelname)s {prefix}%(name)s %(message)s",
            datefmt="%Y-%m-%dT%H:%M:%S%z",
        )

    def format(self, record: logging.LogRecord) -> str:
        message = super().format(record)
        history = _history_of(record)
        if not history:
            return message
        tail = " ".join(f"{key}={value}" for key, value in history.items())
        return f"{message} {tail}"


def configure_logging(settings: Any = None, **overrides: Any) -> logging.Handler:
    """Install a single stdout handler on the root logger.

    ``settings`` is a ``LoggingSettings`` instance (or ``None`` for defaults);
    keyword overrides replace individual fields. Existing root handlers are
    replaced so repeated calls do not duplicate output.
    """
    from ..config import LoggingSettings

    resolved = settings if settings is not None else LoggingSettings()
    if overrides:
        resolved = resolved.model_copy(update=overrides)

    formatter: logging.Formatter
    if resolved.json_output:
        formatter = JsonFormatter(service=resolved.service)
    else:
        formatter = PlainFormatter(service=resolved.service)

    handler = logging.StreamHandler(stream=sys.stdout)
    handler.setLevel(resolved.level)
    handler.addFilter(ArchiveContextFilter())
    handler.setFormatter(formatter)

    root = logging.getLogger()
    root.handlers.clear()
    root.setLevel(resolved.level)
    root.addHandler(handler)
    return handler
