"""Write archived row versions into a history table.

Snapshots are read from the tracked table over the connection that carries
the triggering statement, and history rows are inserted over that same
connection. The archive therefore commits or rolls back with the mutation.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Iterable, Mapping, Sequence

from sqlalchemy import (
    Column,
    ColumnElement,
    Connection,
    Table,
    and_,
    insert,
    or_,
    select,
)

from .config import HistoryOptions
from .logging import log_context
from .policy import ArchiveEvent, ArchivePolicy

logger = logging.getLogger(__name__)

RowSnapshot = dict[str, Any]


def find_column(table: Table, name: str | None) -> Column | None:
    """Look a column up by key, falling back to its database name."""
    if name is None:
        return None
    column = table.columns.get(name)
    if column is not None:
        return column
    for candidate in table.columns:
        if candidate.name == name:
            return candidate
    return None


class Archiver:
    """Read snapshots of tracked rows and insert them as history rows."""

    def __init__(
        self,
        source: Table,
        history: Table,
        options: HistoryOptions,
        policy: ArchivePolicy,
    ) -> None:
        self.source = source
        self.history = history
        self.options = options
        self.policy = policy
        self._columns = tuple(source.columns)
        self._keys = tuple(column.key for column in self._columns)
        self._primary_key = tuple(source.primary_key.columns)
        self._date_key = history.columns[options.date_column].key
        self._modified = find_column(source, options.modified_column)
        self._marker = find_column(source, options.deleted_at_column)

    @property
    def primary_key(self) -> tuple[Column, ...]:
        return self._primary_key

    def read_rows(
        self,
        connection: Connection,
        criteria: ColumnElement[bool] | None = None,
    ) -> list[RowSnapshot]:
        """Return stored rows matching ``criteria`` (every row when ``None``)."""
        statement = select(*self._columns)
        if criteria is not None:
            statement = statement.where(criteria)
        if self._primary_key:
            statement = statement.order_by(*self._primary_key)
        result = connection.execute(statement)
        return [dict(zip(self._keys, row)) for row in result]

    def read_identity(
        self, connection: Connection, identity: Sequence[Any] | None
    ) -> list[RowSnapshot]:
        """Return the stored row with the given primary key values."""
        if identity is None or any(value is None for value in identity):
            return []
        return self.read_rows(connection, self.identity_clause(identity))

    def identity_clause(self, identity: Sequence[Any]) -> ColumnElement[bool]:
        return and_(
            *(column == value for column, value in zip(self._primary_key, identity))
        )

    def identities_clause(
        self, identities: Iterable[Sequence[Any]]
    ) -> ColumnElement[bool] | None:
        """Match any of several primary key tuples; ``None`` when there are none."""
        clauses = [self.identity_clause(identity) for identity in identities]
        if not clauses:
            return None
        return or_(*clauses)

    def archive(
        self,
        connection: Connection,
        snapshots: Sequence[Mapping[str, Any]],
        event: ArchiveEvent,
    ) -> int:
        """Insert one history row per snapshot and return the number inserted."""
        if not snapshots:
            return 0

        now = datetime.now(timezone.utc)
        rows = [self._history_row(snapshot, now, event) for snapshot in snapshots]
        with log_context(
            event=event.value,
            mode=self.policy.name,
            row_count=len(rows),
        ):
            connection.execute(insert(self.history), rows)
            logger.debug("Archived %d row(s) from %s.", len(rows), self.source.name)
        return len(rows)

    def _history_row(
        self, snapshot: Mapping[str, Any], now: datetime, event: ArchiveEvent
    ) -> RowSnapshot:
        row = {key: snapshot.get(key) for key in self._keys}
        if self.policy.stamps_deletion(event):
            if self._marker is not None and row.get(self._marker.key) is None:
                row[self._marker.key] = now
            row[self._date_key] = now
        else:
            row[self._date_key] = self._archived_at(snapshot, now)
        return row

    def _archived_at(self, snapshot: Mapping[str, Any], now: datetime) -> datetime:
        """Full mode stamps a version with the row's own modification time."""
        if self.options.full and self._modified is not None:
            modified = snapshot.get(self._modified.key)
            if isinstance(modified, datetime):
                return modified
        return now
