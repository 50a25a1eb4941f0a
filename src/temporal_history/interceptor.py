"""Lifecycle interception for tracked models.

Row-level changes are observed through mapper flush events, set-level changes
(ORM ``update()`` / ``delete()`` statements) through the session's
``do_orm_execute`` hook. Every handler archives over the connection of the
operation that triggered it and never touches the tracked row itself.
"""

from __future__ import annotations

import logging
from typing import Any, Sequence

from sqlalchemy import and_, event, inspect
from sqlalchemy.engine import Connection
from sqlalchemy.orm import Mapper, ORMExecuteState, Session
from sqlalchemy.orm.state import InstanceState

from .archiver import Archiver, RowSnapshot, find_column
from .config import HistoryOptions
from .logging import log_context
from .policy import ArchiveEvent, Snapshot

logger = logging.getLogger(__name__)

# session.info key for update events classified before the UPDATE ran
_PENDING_KEY = "temporal_history.pending"

_MAPPER_EVENTS = ("after_insert", "before_update", "after_update", "before_delete")


class LifecycleInterceptor:
    """Translate ORM lifecycle events of one model into archive calls."""

    def __init__(
        self,
        model: type,
        history_model: type,
        archiver: Archiver,
        options: HistoryOptions,
    ) -> None:
        self.model = model
        self.history_model = history_model
        self.archiver = archiver
        self.policy = archiver.policy
        self.mapper: Mapper[Any] = inspect(model)
        self._marker_column = find_column(archiver.source, options.deleted_at_column)
        self._marker_key: str | None = None
        if self._marker_column is not None:
            prop = self.mapper.get_property_by_column(self._marker_column)
            self._marker_key = prop.key
        self._primary_key_keys = tuple(
            self.mapper.get_property_by_column(column).key
            for column in archiver.primary_key
        )
        self._session_target: Any = None

    @property
    def paranoid(self) -> bool:
        """True when the model carries a soft-delete marker."""
        return self._marker_key is not None

    def _session_listeners(self) -> list[tuple[str, Any]]:
        return [
            ("do_orm_execute", self.on_orm_execute),
            ("after_flush_postexec", self.discard_pending),
            ("after_soft_rollback", self.discard_pending),
        ]

    def install(self, session_target: Any) -> None:
        """Register every listener; existing listeners on the model are untouched."""
        for name in _MAPPER_EVENTS:
            event.listen(self.model, name, getattr(self, name), propagate=True)
        for name, listener in self._session_listeners():
            event.listen(session_target, name, listener)
        self._session_target = session_target

    def uninstall(self) -> None:
        """Remove every listener ``install`` registered."""
        if self._session_target is None:
            return
        for name in _MAPPER_EVENTS:
            event.remove(self.model, name, getattr(self, name))
        for name, listener in self._session_listeners():
            event.remove(self._session_target, name, listener)
        self._session_target = None

    # Pending classifications

    def pending(self, session: Session) -> dict[int, ArchiveEvent]:
        """Update events classified in ``session`` whose UPDATE has not finished."""
        entries = session.info.get(_PENDING_KEY, {})
        return {
            target: kind
            for (owner, target), kind in entries.items()
            if owner == id(self)
        }

    def discard_pending(self, session: Session, *args: Any) -> None:
        """Forget classifications once a flush ends or its transaction rolls back."""
        entries = session.info.get(_PENDING_KEY)
        if not entries:
            return
        for key in [key for key in entries if key[0] == id(self)]:
            del entries[key]

    def _remember(self, target: Any, kind: ArchiveEvent | None) -> None:
        session = inspect(target).session
        if session is None:
            return
        entries = session.info.setdefault(_PENDING_KEY, {})
        key = (id(self), id(target))
        if kind is None:
            entries.pop(key, None)
        else:
            entries[key] = kind

    def _recall(self, target: Any) -> ArchiveEvent | None:
        session = inspect(target).session
        if session is None:
            return None
        entries = session.info.get(_PENDING_KEY, {})
        return entries.pop((id(self), id(target)), None)

    def _archive(
        self, connection: Connection, rows: Sequence[RowSnapshot], kind: ArchiveEvent
    ) -> int:
        with log_context(
            entity=self.model.__name__, history_model=self.history_model.__name__
        ):
            return self.archiver.archive(connection, rows, kind)

    # Row-level hooks

    def after_insert(self, mapper: Mapper[Any], connection: Connection, target: Any) -> None:
        if not self.policy.archives(ArchiveEvent.CREATE, Snapshot.CURRENT):
            return
        identity = mapper.primary_key_from_instance(target)
        rows = self.archiver.read_identity(connection, identity)
        self._archive(connection, rows, ArchiveEvent.CREATE)

    def before_update(self, mapper: Mapper[Any], connection: Connection, target: Any) -> None:
        state: InstanceState[Any] = inspect(target)
        self._remember(target, None)
        if not _has_net_changes(state):
            return

        previous: list[RowSnapshot] | None = None
        kind = ArchiveEvent.UPDATE
        if self._marker_key is not None:
            marker = state.attrs[self._marker_key].history
            if marker.has_changes():
                if marker.deleted:
                    before = marker.deleted[0]
                else:
                    # old value was None or never loaded; the stored row knows
                    previous = self.archiver.read_identity(connection, state.identity)
                    before = (
                        previous[0].get(self._marker_column.key) if previous else None
                    )
                after = marker.added[0] if marker.added else None
                kind = _marker_transition(before, after)

        self._remember(target, kind)
        if self.policy.archives(kind, Snapshot.PREVIOUS):
            if previous is None:
                previous = self.archiver.read_identity(connection, state.identity)
            self._archive(connection, previous, kind)

    def after_update(self, mapper: Mapper[Any], connection: Connection, target: Any) -> None:
        kind = self._recall(target)
        if kind is None or not self.policy.archives(kind, Snapshot.CURRENT):
            return
        identity = mapper.primary_key_from_instance(target)
        rows = self.archiver.read_identity(connection, identity)
        self._archive(connection, rows, kind)

    def before_delete(self, mapper: Mapper[Any], connection: Connection, target: Any) -> None:
        if not self.policy.archives(ArchiveEvent.DESTROY, Snapshot.PREVIOUS):
            return
        state: InstanceState[Any] = inspect(target)
        identity = state.identity or mapper.primary_key_from_instance(target)
        rows = self.archiver.read_identity(connection, identity)
        self._archive(connection, rows, ArchiveEvent.DESTROY)

    # Statement-level hook

    def on_orm_execute(self, orm_execute_state: ORMExecuteState) -> None:
        """Archive every row an ORM bulk UPDATE or DELETE is about to change."""
        if not (orm_execute_state.is_update or orm_execute_state.is_delete):
            return
        bind_mapper = orm_execute_state.bind_mapper
        if bind_mapper is None or not bind_mapper.isa(self.mapper):
            return

        kind = (
            ArchiveEvent.BULK_UPDATE
            if orm_execute_state.is_update
            else ArchiveEvent.BULK_DESTROY
        )
        if not self.policy.archives(kind, Snapshot.PREVIOUS):
            return

        matched, criteria = self._bulk_criteria(orm_execute_state)
        if not matched:
            return
        connection = orm_execute_state.session.connection(
            bind_arguments={"mapper": self.mapper}
        )
        rows = self.archiver.read_rows(connection, criteria)
        archived = self._archive(connection, rows, kind)
        logger.debug(
            "%s on %s matched %d row(s).", kind.value, self.model.__name__, archived
        )

    def _bulk_criteria(self, orm_execute_state: ORMExecuteState) -> tuple[bool, Any]:
        """Resolve the rows a bulk statement targets.

        Returns ``(matched, criteria)``. ``matched`` is false when the
        statement provably targets nothing; ``criteria`` of ``None`` means
        the whole table.
        """
        criteria = orm_execute_state.statement.whereclause
        parameters = orm_execute_state.parameters
        if isinstance(parameters, (list, tuple)) and parameters:
            # bulk UPDATE by primary key: one parameter set per row
            identities = [
                tuple(params.get(key) for key in self._primary_key_keys)
                for params in parameters
                if isinstance(params, dict)
            ]
            by_identity = self.archiver.identities_clause(
                identity for identity in identities if None not in identity
            )
            if by_identity is None:
                return False, None
            criteria = by_identity if criteria is None else and_(criteria, by_identity)
        return True, criteria


def _has_net_changes(state: InstanceState[Any]) -> bool:
    """True when a flushed instance changes at least one column value."""
    session = state.session
    if session is None:
        return True
    return session.is_modified(state.obj(), include_collections=False)


def _marker_transition(before: Any, after: Any) -> ArchiveEvent:
    """Classify an UPDATE by how it moves the soft-delete marker."""
    if before is None and after is not None:
        return ArchiveEvent.SOFT_DESTROY
    if before is not None and after is None:
        return ArchiveEvent.RESTORE
    return ArchiveEvent.UPDATE
