"""Unit tests for history option resolution and validation."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from temporal_history import HistoryOptions, HistoryRegistrationError, resolve_options
from temporal_history.errors import codes


def test_defaults() -> None:
    options = resolve_options()

    assert options.model_prefix == ""
    assert options.model_suffix == "History"
    assert options.id_column == "hid"
    assert options.date_column == "archivedAt"
    assert options.full is False
    assert options.mode == "default"


def test_aliases_and_field_names_are_equivalent() -> None:
    """camelCase aliases and snake_case names resolve to the same options."""
    by_alias = resolve_options({"modelSuffix": "Audit", "idColumn": "aid", "full": True})
    by_name = resolve_options({"model_suffix": "Audit", "id_column": "aid", "full": True})

    assert by_alias == by_name
    assert by_alias.mode == "full"


def test_overrides_win_over_mapping() -> None:
    options = resolve_options({"modelSuffix": "Audit"}, modelSuffix="Trail", full=True)

    assert options.model_suffix == "Trail"
    assert options.full is True


def test_existing_options_are_reused() -> None:
    base = HistoryOptions(modelPrefix="Old")

    options = resolve_options(base, date_column="stampedAt")

    assert options.model_prefix == "Old"
    assert options.date_column == "stampedAt"
    assert base.date_column == "archivedAt"


def test_options_are_frozen() -> None:
    options = HistoryOptions()

    with pytest.raises(ValidationError):
        options.full = True


@pytest.mark.parametrize(
    "raw",
    [
        {"unknownOption": 1},
        {"idColumn": "has space"},
        {"idColumn": "same", "dateColumn": "same"},
        {"modelPrefix": "", "modelSuffix": ""},
        {"modelSuffix": "Not-Valid"},
        {"tableName": "1bad"},
    ],
)
def test_invalid_options_raise_registration_error(raw: dict[str, object]) -> None:
    """Every invalid configuration surfaces as a registration error."""
    with pytest.raises(HistoryRegistrationError) as exc_info:
        resolve_options(raw)

    assert exc_info.value.code == codes.INVALID_ARGUMENT
    assert "invalid history options" in str(exc_info.value)


def test_non_mapping_options_are_rejected() -> None:
    with pytest.raises(HistoryRegistrationError, match="must be a mapping"):
        resolve_options(["full"])  # type: ignore[arg-type]
