"""Shadow schema derivation for history tables.

A history table mirrors every column of the tracked table by name, key and
type, with all constraints and value generators removed, plus a surrogate
primary key and an archival timestamp. Derivation runs once, at registration.
"""

from __future__ import annotations

import logging
import re
from typing import Any

from sqlalchemy import Column, DateTime, Integer, Table, inspect
from sqlalchemy.exc import NoInspectionAvailable
from sqlalchemy.types import SchemaType

from .config import HistoryOptions
from .errors import codes, name_conflict_error, registration_error

logger = logging.getLogger(__name__)

_CAMEL_BOUNDARY = re.compile(r"(?<=[a-z0-9])(?=[A-Z])")


def history_model_name(entity_name: str, options: HistoryOptions) -> str:
    """Return ``<prefix><EntityName><suffix>``."""
    return f"{options.model_prefix}{entity_name}{options.model_suffix}"


def history_table_name(table_name: str, options: HistoryOptions) -> str:
    """Return the history table name for a tracked table.

    An explicit ``table_name`` option wins; otherwise the prefix is prepended
    and the snake_cased suffix appended (``users`` -> ``users_history``).
    """
    if options.table_name:
        return options.table_name
    suffix = _CAMEL_BOUNDARY.sub("_", options.model_suffix).lower()
    name = f"{options.model_prefix}{table_name}"
    return f"{name}_{suffix}" if suffix else name


def derive_history_columns(table: Table, options: HistoryOptions) -> list[Column]:
    """Copy the tracked columns as plain value columns and add history columns."""
    taken = {column.name for column in table.columns}
    taken.update(column.key for column in table.columns)
    for reserved in (options.id_column, options.date_column):
        if reserved in taken:
            raise name_conflict_error(
                f"history column {reserved!r} collides with a column of {table.name!r}",
                name=reserved,
            )

    columns: list[Column] = []
    for column in table.columns:
        type_ = column.type
        if isinstance(type_, SchemaType):
            # schema-bound types attach to a single table
            type_ = type_.copy()
        columns.append(
            Column(
                column.name,
                type_,
                key=column.key,
                nullable=True,
                comment=column.comment,
            )
        )

    columns.append(
        Column(options.id_column, Integer, primary_key=True, autoincrement=True)
    )
    columns.append(Column(options.date_column, DateTime(timezone=True), nullable=False))
    return columns


def tracked_table(model: type) -> Table:
    """Return the single table a tracked model persists to."""
    try:
        mapper = inspect(model)
    except NoInspectionAvailable as exc:
        raise registration_error(
            f"{model!r} is not a mapped class",
            code=codes.HISTORY_UNSUPPORTED_MAPPING,
        ) from exc

    table = mapper.persist_selectable
    if not isinstance(table, Table):
        raise registration_error(
            f"{model.__name__} does not persist to a single table",
            code=codes.HISTORY_UNSUPPORTED_MAPPING,
            metadata={"model": model.__name__},
        )
    return table


def build_history_model(model: type, base: Any, options: HistoryOptions) -> type:
    """Create and map the history class for ``model`` on ``base``.

    The class is registered in the base's registry under
    ``history_model_name`` and its table is added to the base's metadata, so
    ``metadata.create_all`` and migrations pick it up like any other model.
    """
    registry = getattr(base, "registry", None)
    metadata = getattr(base, "metadata", None)
    if registry is None or metadata is None:
        raise registration_error(
            f"{base!r} is not a declarative base",
            code=codes.HISTORY_UNSUPPORTED_MAPPING,
        )

    source = tracked_table(model)
    name = history_model_name(model.__name__, options)
    if name == model.__name__ or any(
        mapper.class_.__name__ == name for mapper in registry.mappers
    ):
        raise name_conflict_error(f"model name {name!r} is already mapped", name=name)

    table_name = history_table_name(source.name, options)
    table_key = f"{source.schema}.{table_name}" if source.schema else table_name
    if table_key in metadata.tables:
        raise name_conflict_error(
            f"table {table_key!r} already exists in metadata", name=table_key
        )

    table = Table(
        table_name,
        metadata,
        *derive_history_columns(source, options),
        schema=source.schema,
        comment=f"History of {source.name}",
    )
    history_model = type(
        name,
        (base,),
        {
            "__table__": table,
            "__module__": model.__module__,
            "__doc__": f"Read-only archived versions of {model.__name__}.",
        },
    )
    logger.debug(
        "Derived history model %s on table %s (%d columns).",
        name,
        table_key,
        len(table.columns),
    )
    return history_model
