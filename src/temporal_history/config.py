"""Typed configuration models for history tracking and logging."""

from __future__ import annotations

import re
from typing import Any, Literal, Mapping

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    ValidationError,
    field_validator,
    model_validator,
)

from .errors import registration_error

_IDENTIFIER = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


class HistoryOptions(BaseModel):
    """Per-model history settings, fixed at registration time.

    Every option accepts its camelCase alias (``modelPrefix``) as well as the
    snake_case field name (``model_prefix``).
    """

    model_config = ConfigDict(
        frozen=True,
        extra="forbid",
        populate_by_name=True,
        protected_namespaces=(),
    )

    model_prefix: str = Field(default="", alias="modelPrefix")
    model_suffix: str = Field(default="History", alias="modelSuffix")
    id_column: str = Field(default="hid", alias="idColumn")
    date_column: str = Field(default="archivedAt", alias="dateColumn")
    full: bool = False
    table_name: str | None = Field(default=None, alias="tableName")
    deleted_at_column: str = Field(default="deleted_at", alias="deletedAtColumn")
    modified_column: str | None = Field(default="updated_at", alias="modifiedColumn")

    @field_validator("model_prefix", "model_suffix")
    @classmethod
    def _check_affix(cls, value: str) -> str:
        if value and not re.fullmatch(r"[A-Za-z0-9_]*", value):
            raise ValueError("must contain only letters, digits and underscores")
        return value

    @field_validator("id_column", "date_column", "deleted_at_column")
    @classmethod
    def _check_column(cls, value: str) -> str:
        if not _IDENTIFIER.match(value):
            raise ValueError(f"{value!r} is not a valid column name")
        return value

    @field_validator("table_name", "modified_column")
    @classmethod
    def _check_optional_identifier(cls, value: str | None) -> str | None:
        if value is not None and not _IDENTIFIER.match(value):
            raise ValueError(f"{value!r} is not a valid identifier")
        return value

    @model_validator(mode="after")
    def _check_consistency(self) -> "HistoryOptions":
        if self.id_column == self.date_column:
            raise ValueError("id_column and date_column must differ")
        if not self.model_prefix and not self.model_suffix:
            raise ValueError("model_prefix and model_suffix cannot both be empty")
        return self

    @property
    def mode(self) -> str:
        return "full" if self.full else "default"


class LoggingSettings(BaseModel):
    """Structured logging configuration."""

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"
    json_output: bool = True
    service: str | None = None


def resolve_options(
    options: HistoryOptions | Mapping[str, Any] | None = None,
    **overrides: Any,
) -> HistoryOptions:
    """Merge options and keyword overrides into a validated ``HistoryOptions``.

    Invalid values raise ``HistoryRegistrationError`` so every configuration
    failure surfaces with the same type at registration time.
    """
    if isinstance(options, HistoryOptions):
        data: dict[str, Any] = options.model_dump()
    elif options is None:
        data = {}
    elif isinstance(options, Mapping):
        data = dict(options)
    else:
        raise registration_error(
            f"history options must be a mapping or HistoryOptions, got {type(options).__name__}"
        )
    data.update(overrides)

    try:
        return HistoryOptions.model_validate(_canonical_keys(data))
    except ValidationError as exc:
        first = exc.errors()[0]
        location = ".".join(str(part) for part in first.get("loc", ())) or "options"
        raise registration_error(
            f"invalid history options: {location}: {first.get('msg')}",
            metadata={"field": location},
        ) from exc


def _canonical_keys(data: Mapping[str, Any]) -> dict[str, Any]:
    """Map aliases onto field names so mixed alias/name input merges cleanly.

    When both spellings of one option are given the later key wins.
    """
    aliases = {
        field.alias: name
        for name, field in HistoryOptions.model_fields.items()
        if field.alias
    }
    return {aliases.get(key, key): value for key, value in data.items()}
