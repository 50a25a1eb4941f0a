"""Structured logging helpers for the history layer.

``log_context`` binds archive fields for a block; ``configure_logging``
installs a stdout handler that renders them.
"""

from .config import (
    ArchiveContextFilter,
    JsonFormatter,
    PlainFormatter,
    configure_logging,
)
from .context import ArchiveContext, current_context, log_context

__all__ = [
    "ArchiveContext",
    "ArchiveContextFilter",
    "JsonFormatter",
    "PlainFormatter",
    "configure_logging",
    "current_context",
    "log_context",
]
