"""Append-only history tables for SQLAlchemy models.

``attach_history`` derives a read-only companion model for a mapped class and
archives row versions on every create, update, delete, restore and bulk
statement, inside the transaction that made the change.
"""

from .config import HistoryOptions, LoggingSettings, resolve_options
from .errors import (
    ErrorCategory,
    ErrorDetail,
    HistoryError,
    HistoryRegistrationError,
    HistoryValidationError,
)
from .logging import configure_logging, log_context
from .paranoid import ParanoidMixin, soft_delete_where
from .policy import ArchiveEvent, DefaultPolicy, FullPolicy, Snapshot
from .session import (
    async_transactional_session,
    create_async_session_factory,
    create_session_factory,
    transactional_session,
)
from .tracking import (
    HistoryTracker,
    attach_history,
    detach_history,
    history_model_for,
    tracked_models,
    tracker_for,
)

__all__ = [
    "ArchiveEvent",
    "DefaultPolicy",
    "ErrorCategory",
    "ErrorDetail",
    "FullPolicy",
    "HistoryError",
    "HistoryOptions",
    "HistoryRegistrationError",
    "HistoryTracker",
    "HistoryValidationError",
    "LoggingSettings",
    "ParanoidMixin",
    "Snapshot",
    "async_transactional_session",
    "attach_history",
    "configure_logging",
    "create_async_session_factory",
    "create_session_factory",
    "detach_history",
    "history_model_for",
    "log_context",
    "resolve_options",
    "soft_delete_where",
    "tracked_models",
    "tracker_for",
    "transactional_session",
]
