"""Unit tests for archive policy selection and rules."""

from __future__ import annotations

import pytest

from temporal_history import ArchiveEvent, DefaultPolicy, FullPolicy, HistoryOptions, Snapshot
from temporal_history.policy import policy_for


def test_policy_for_selects_by_mode() -> None:
    assert isinstance(policy_for(HistoryOptions()), DefaultPolicy)
    assert isinstance(policy_for(HistoryOptions(full=True)), FullPolicy)


@pytest.mark.parametrize(
    ("event", "expected"),
    [
        (ArchiveEvent.CREATE, None),
        (ArchiveEvent.UPDATE, Snapshot.PREVIOUS),
        (ArchiveEvent.SOFT_DESTROY, Snapshot.PREVIOUS),
        (ArchiveEvent.DESTROY, Snapshot.PREVIOUS),
        (ArchiveEvent.RESTORE, None),
        (ArchiveEvent.BULK_UPDATE, Snapshot.PREVIOUS),
        (ArchiveEvent.BULK_DESTROY, Snapshot.PREVIOUS),
    ],
)
def test_default_policy_keeps_superseded_versions(
    event: ArchiveEvent, expected: Snapshot | None
) -> None:
    assert DefaultPolicy().snapshot_for(event) is expected


@pytest.mark.parametrize(
    ("event", "expected"),
    [
        (ArchiveEvent.CREATE, Snapshot.CURRENT),
        (ArchiveEvent.UPDATE, Snapshot.CURRENT),
        (ArchiveEvent.SOFT_DESTROY, Snapshot.CURRENT),
        (ArchiveEvent.DESTROY, Snapshot.PREVIOUS),
        (ArchiveEvent.RESTORE, Snapshot.CURRENT),
        (ArchiveEvent.BULK_UPDATE, Snapshot.PREVIOUS),
        (ArchiveEvent.BULK_DESTROY, Snapshot.PREVIOUS),
    ],
)
def test_full_policy_keeps_every_version(
    event: ArchiveEvent, expected: Snapshot
) -> None:
    assert FullPolicy().snapshot_for(event) is expected


def test_policies_cover_every_event() -> None:
    """No lifecycle event is left undecided by either policy."""
    assert set(DefaultPolicy.rules) == set(ArchiveEvent)
    assert set(FullPolicy.rules) == set(ArchiveEvent)


def test_archives_matches_only_the_configured_snapshot() -> None:
    policy = FullPolicy()

    assert policy.archives(ArchiveEvent.UPDATE, Snapshot.CURRENT)
    assert not policy.archives(ArchiveEvent.UPDATE, Snapshot.PREVIOUS)
    assert repr(policy) == "FullPolicy()"


def test_only_full_policy_stamps_deletions() -> None:
    """Full mode marks removed versions as deleted; default mode stores them as found."""
    full, default = FullPolicy(), DefaultPolicy()

    assert full.stamps_deletion(ArchiveEvent.DESTROY)
    assert full.stamps_deletion(ArchiveEvent.BULK_DESTROY)
    assert not full.stamps_deletion(ArchiveEvent.SOFT_DESTROY)
    assert not any(default.stamps_deletion(event) for event in ArchiveEvent)
