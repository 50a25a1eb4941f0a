"""Soft-delete support for tracked models.

A paranoid model keeps deleted rows and marks them with a deletion timestamp.
History tracking treats a marker moving from unset to set as a destroy, and
from set to unset as a restore.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

from sqlalchemy import DateTime, update
from sqlalchemy.orm import Session, mapped_column


class ParanoidMixin:
    """Mixin adding a nullable ``deleted_at`` marker plus soft delete helpers."""

    # active_history loads the stored marker when it is overwritten unloaded
    deleted_at = mapped_column(
        DateTime(timezone=True),
        nullable=True,
        default=None,
        active_history=True,
    )

    @property
    def is_deleted(self) -> bool:
        return self.deleted_at is not None

    def soft_delete(self, now: datetime | None = None) -> None:
        """Mark the row deleted; the change is written on the next flush."""
        self.deleted_at = now or datetime.now(timezone.utc)

    def restore(self) -> None:
        """Clear the deletion marker; the change is written on the next flush."""
        self.deleted_at = None


def soft_delete_where(
    session: Session,
    model: Any,
    *criteria: Any,
    now: datetime | None = None,
) -> int:
    """Soft-delete every live row of ``model`` matching ``criteria``.

    Issued as a single ORM UPDATE, so each matched row is archived
    individually before the marker is set. Returns the matched row count.
    """
    statement = update(model).where(model.deleted_at.is_(None))
    if criteria:
        statement = statement.where(*criteria)
    statement = statement.values(deleted_at=now or datetime.now(timezone.utc))
    result = session.execute(statement)
    return result.rowcount
