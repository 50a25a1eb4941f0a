"""Factory helpers for creating consistent history errors."""

from __future__ import annotations

from typing import Mapping

from . import codes
from .types import (
    ErrorCategory,
    ErrorDetail,
    HistoryRegistrationError,
    HistoryValidationError,
)


def read_only_error(model_name: str, operation: str) -> HistoryValidationError:
    """Create the error raised for a direct mutation of a history model."""
    return HistoryValidationError(
        ErrorDetail(
            code=codes.HISTORY_READ_ONLY,
            message=f"Validation error: {model_name} is read-only, {operation} rejected",
            category=ErrorCategory.VALIDATION,
            metadata={"model": model_name, "operation": operation},
        )
    )


def registration_error(
    message: str,
    *,
    code: str = codes.INVALID_ARGUMENT,
    category: ErrorCategory = ErrorCategory.VALIDATION,
    metadata: Mapping[str, object] | None = None,
) -> HistoryRegistrationError:
    """Create a registration-time error."""
    return HistoryRegistrationError(
        ErrorDetail(
            code=code,
            message=message,
            category=category,
            metadata=_meta(metadata),
        )
    )


def name_conflict_error(message: str, *, name: str) -> HistoryRegistrationError:
    """Create a registration error for a derived name that is already taken."""
    return registration_error(
        message,
        code=codes.HISTORY_NAME_CONFLICT,
        category=ErrorCategory.CONFLICT,
        metadata={"name": name},
    )


def _meta(metadata: Mapping[str, object] | None) -> dict[str, str]:
    """Normalize optional metadata into a string-keyed, string-valued dict."""
    if metadata is None:
        return {}
    return {str(key): str(value) for key, value in metadata.items()}
