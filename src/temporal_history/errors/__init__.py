"""Public error API for the history layer."""

from . import codes
from .factories import name_conflict_error, read_only_error, registration_error
from .types import (
    ErrorCategory,
    ErrorDetail,
    HistoryError,
    HistoryRegistrationError,
    HistoryValidationError,
)

__all__ = [
    "ErrorCategory",
    "ErrorDetail",
    "HistoryError",
    "HistoryRegistrationError",
    "HistoryValidationError",
    "codes",
    "name_conflict_error",
    "read_only_error",
    "registration_error",
]
