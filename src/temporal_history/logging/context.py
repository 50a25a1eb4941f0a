"""Archive context carried across log lines.

While history is written, the layer binds which entity, history model, event
and mode it is working for. Records logged underneath pick that up through a
``contextvars`` variable, so the binding follows sync flushes and async
sessions alike.
"""

from __future__ import annotations

from contextlib import contextmanager
from contextvars import ContextVar
from dataclasses import asdict, dataclass, replace
from typing import Iterator


@dataclass(frozen=True)
class ArchiveContext:
    """History-specific fields attached to log records."""

    entity: str | None = None
    history_model: str | None = None
    event: str | None = None
    mode: str | None = None
    row_count: int | None = None

    def as_fields(self) -> dict[str, object]:
        """Return the bound fields in declaration order, skipping unset ones."""
        return {key: value for key, value in asdict(self).items() if value is not None}


_CURRENT: ContextVar[ArchiveContext] = ContextVar(
    "temporal_history_archive_context", default=ArchiveContext()
)


def current_context() -> ArchiveContext:
    return _CURRENT.get()


@contextmanager
def log_context(**values: object) -> Iterator[ArchiveContext]:
    """Layer archive fields over the current context for the duration of a block.

    ``None`` keeps whatever an enclosing block bound. Unknown field names
    raise ``TypeError``.
    """
    updates = {key: value for key, value in values.items() if value is not None}
    token = _CURRENT.set(replace(_CURRENT.get(), **updates))
    try:
        yield _CURRENT.get()
    finally:
        _CURRENT.reset(token)
