"""Archive policies: which snapshot a lifecycle event writes to history.

``DefaultPolicy`` keeps only superseded versions; ``FullPolicy`` keeps every
version, including the initial insert and restores. A policy is chosen once at
registration and answers a single question through ``snapshot_for``.
"""

from __future__ import annotations

from enum import Enum
from types import MappingProxyType
from typing import ClassVar, Mapping

from .config import HistoryOptions


class ArchiveEvent(str, Enum):
    """Lifecycle events observed on a tracked model."""

    CREATE = "create"
    UPDATE = "update"
    SOFT_DESTROY = "soft_destroy"
    DESTROY = "destroy"
    RESTORE = "restore"
    BULK_UPDATE = "bulk_update"
    BULK_DESTROY = "bulk_destroy"


class Snapshot(str, Enum):
    """Which version of a row gets archived.

    ``PREVIOUS`` is the stored row before the statement runs; ``CURRENT`` is
    the stored row after it ran, still inside the same flush.
    """

    PREVIOUS = "previous"
    CURRENT = "current"


class ArchivePolicy:
    """Map each lifecycle event to the snapshot it archives."""

    name: ClassVar[str]
    rules: ClassVar[Mapping[ArchiveEvent, Snapshot | None]]
    # events whose archived row records the deletion itself
    marks_deletion: ClassVar[frozenset[ArchiveEvent]] = frozenset()

    def snapshot_for(self, event: ArchiveEvent) -> Snapshot | None:
        """Return the snapshot to archive, or ``None`` to archive nothing."""
        return self.rules.get(event)

    def archives(self, event: ArchiveEvent, snapshot: Snapshot) -> bool:
        return self.snapshot_for(event) is snapshot

    def stamps_deletion(self, event: ArchiveEvent) -> bool:
        return event in self.marks_deletion

    def __repr__(self) -> str:
        return f"{type(self).__name__}()"


class DefaultPolicy(ArchivePolicy):
    """Archive the previous version right before it is changed or removed."""

    name = "default"
    rules = MappingProxyType(
        {
            ArchiveEvent.CREATE: None,
            ArchiveEvent.UPDATE: Snapshot.PREVIOUS,
            ArchiveEvent.SOFT_DESTROY: Snapshot.PREVIOUS,
            ArchiveEvent.DESTROY: Snapshot.PREVIOUS,
            ArchiveEvent.RESTORE: None,
            ArchiveEvent.BULK_UPDATE: Snapshot.PREVIOUS,
            ArchiveEvent.BULK_DESTROY: Snapshot.PREVIOUS,
        }
    )


class FullPolicy(ArchivePolicy):
    """Archive every version a row ever had.

    Row-level changes archive the version they produce, so a soft destroy
    stores the row with its deletion marker set and a restore stores it
    cleared. Hard deletes and bulk statements leave no resulting row to read
    back and archive the version being removed or replaced instead.
    A version removed by a delete is stamped as deleted: its marker is set
    if it was still unset, and it is archived at deletion time.
    """

    name = "full"
    rules = MappingProxyType(
        {
            ArchiveEvent.CREATE: Snapshot.CURRENT,
            ArchiveEvent.UPDATE: Snapshot.CURRENT,
            ArchiveEvent.SOFT_DESTROY: Snapshot.CURRENT,
            ArchiveEvent.DESTROY: Snapshot.PREVIOUS,
            ArchiveEvent.RESTORE: Snapshot.CURRENT,
            ArchiveEvent.BULK_UPDATE: Snapshot.PREVIOUS,
            ArchiveEvent.BULK_DESTROY: Snapshot.PREVIOUS,
        }
    )
    marks_deletion = frozenset({ArchiveEvent.DESTROY, ArchiveEvent.BULK_DESTROY})


def policy_for(options: HistoryOptions) -> ArchivePolicy:
    """Select the archive policy for the configured mode."""
    return FullPolicy() if options.full else DefaultPolicy()
