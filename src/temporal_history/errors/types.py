"""Error types raised by the history layer.

Storage failures are never wrapped: SQLAlchemy exceptions raised by the primary
mutation or by an archive insert reach the caller unchanged.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Mapping


class ErrorCategory(str, Enum):
    """High-level error categories."""

    VALIDATION = "validation"
    CONFLICT = "conflict"
    NOT_FOUND = "not_found"


@dataclass(frozen=True)
class ErrorDetail:
    """Structured error object carried by every history exception."""

    code: str
    message: str
    category: ErrorCategory
    metadata: Mapping[str, str] = field(default_factory=dict)


class HistoryError(Exception):
    """Base class for errors raised by the history layer."""

    def __init__(self, detail: ErrorDetail) -> None:
        super().__init__(detail.message)
        self.detail = detail

    @property
    def code(self) -> str:
        return self.detail.code


class HistoryValidationError(HistoryError):
    """Raised when a history row is updated or deleted directly."""


class HistoryRegistrationError(HistoryError):
    """Raised when a model cannot be attached to a history table."""
