"""Read-only enforcement for history models."""

from __future__ import annotations

import logging
from typing import Any

from sqlalchemy import event, inspect
from sqlalchemy.engine import Connection
from sqlalchemy.orm import Mapper, ORMExecuteState, Session

from .errors import read_only_error
from .logging import log_context

logger = logging.getLogger(__name__)


class ReadOnlyGuard:
    """Reject every UPDATE or DELETE routed through the ORM for a history model.

    Inserts and reads pass through untouched. Flushed changes are rejected in
    ``before_flush``, before the flush opens its transaction, so a rejection
    leaves the session usable and keeps work flushed earlier in the same
    transaction. The mapper hooks only catch flushes of an explicit subset of
    objects that bypass that check.
    """

    def __init__(self, history_model: type) -> None:
        self.history_model = history_model
        self.mapper: Mapper[Any] = inspect(history_model)
        self._session_target: Any = None

    def _mapper_listeners(self) -> list[tuple[str, Any]]:
        return [("before_update", self.reject_update), ("before_delete", self.reject_delete)]

    def _session_listeners(self) -> list[tuple[str, Any]]:
        return [("before_flush", self.reject_flush), ("do_orm_execute", self.reject_statement)]

    def install(self, session_target: Any) -> None:
        for name, listener in self._mapper_listeners():
            event.listen(self.history_model, name, listener)
        for name, listener in self._session_listeners():
            event.listen(session_target, name, listener)
        self._session_target = session_target

    def uninstall(self) -> None:
        if self._session_target is None:
            return
        for name, listener in self._mapper_listeners():
            event.remove(self.history_model, name, listener)
        for name, listener in self._session_listeners():
            event.remove(self._session_target, name, listener)
        self._session_target = None

    def reject_flush(self, session: Session, flush_context: Any, instances: Any) -> None:
        for obj in session.deleted:
            if isinstance(obj, self.history_model):
                self._reject("delete")
        for obj in session.dirty:
            if isinstance(obj, self.history_model) and session.is_modified(
                obj, include_collections=False
            ):
                self._reject("update")

    def reject_update(self, mapper: Mapper[Any], connection: Connection, target: Any) -> None:
        del connection
        session = inspect(target).session
        if session is not None and not session.is_modified(target, include_collections=False):
            return
        self._reject("update")

    def reject_delete(self, mapper: Mapper[Any], connection: Connection, target: Any) -> None:
        del mapper, connection, target
        self._reject("delete")

    def reject_statement(self, orm_execute_state: ORMExecuteState) -> None:
        if not (orm_execute_state.is_update or orm_execute_state.is_delete):
            return
        bind_mapper = orm_execute_state.bind_mapper
        if bind_mapper is None or not bind_mapper.isa(self.mapper):
            return
        self._reject("bulk update" if orm_execute_state.is_update else "bulk delete")

    def _reject(self, operation: str) -> None:
        name = self.history_model.__name__
        with log_context(history_model=name, event=operation):
            logger.warning("Rejected %s on read-only history model %s.", operation, name)
        raise read_only_error(name, operation)
