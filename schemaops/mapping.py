"""
Translation between internal definitions and transfer DTOs.

The to_* functions are pure and total over well-formed inputs. The parse_*
functions are the validation stage for external payloads: malformed input is
rejected there with ValidationError and never reaches the orchestrator.
"""

from __future__ import annotations

from typing import Any, Mapping

from .db.models import IndexDefinition, PrimaryKeyDefinition, UniqueConstraintDefinition
from .dtos import IndexDto, PrimaryKeyConstraintDto, UniqueConstraintDto
from .errors import ValidationError
from .validation import Arguments


def _clean_name(name: str | None) -> str | None:
    if name is None or not name.strip():
        return None
    return name.strip()


def to_primary_key_dto(definition: PrimaryKeyDefinition) -> PrimaryKeyConstraintDto:
    return PrimaryKeyConstraintDto(
        column_names=list(definition.column_names),
        constraint_name=definition.constraint_name,
    )


def to_primary_key_definition(
    dto: PrimaryKeyConstraintDto,
    table_name: str,
    schema_name: str | None = None,
) -> PrimaryKeyDefinition:
    return PrimaryKeyDefinition(
        table_name=table_name,
        column_names=tuple(c.strip() for c in dto.column_names),
        constraint_name=_clean_name(dto.constraint_name),
        schema_name=schema_name,
    )


def to_index_dto(definition: IndexDefinition) -> IndexDto:
    return IndexDto(
        column_names=list(definition.column_names),
        index_name=definition.index_name,
        is_unique=definition.is_unique,
    )


def to_index_definition(
    dto: IndexDto,
    table_name: str,
    index_name: str,
    schema_name: str | None = None,
) -> IndexDefinition:
    return IndexDefinition(
        table_name=table_name,
        index_name=index_name,
        column_names=tuple(c.strip() for c in dto.column_names),
        is_unique=bool(dto.is_unique),
        schema_name=schema_name,
    )


def _pick(payload: Mapping[str, Any], *keys: str) -> Any:
    for key in keys:
        if key in payload:
            return payload[key]
    return None


def _require_mapping(payload: Any, name: str) -> Mapping[str, Any]:
    if not isinstance(payload, Mapping):
        raise ValidationError(f"{name} must be an object", {name: "must be an object"})
    return payload


def parse_primary_key_payload(payload: Any) -> PrimaryKeyConstraintDto:
    """
    Build a PrimaryKeyConstraintDto from an external mapping.

    Accepts camelCase ("constraintName", "columnNames") and snake_case keys.

    Raises:
        ValidationError: If the payload is malformed
    """
    payload = _require_mapping(payload, "primary_key")
    constraint_name = _pick(payload, "constraintName", "constraint_name")
    column_names = _pick(payload, "columnNames", "column_names")

    (
        Arguments()
        .custom(
            lambda: constraint_name is None or isinstance(constraint_name, str),
            "constraint_name",
            "must be a string",
        )
        .max_length(constraint_name, "constraint_name")
        .column_list(column_names, "column_names")
        .assert_valid()
    )

    return PrimaryKeyConstraintDto(
        column_names=[c.strip() for c in column_names],
        constraint_name=_clean_name(constraint_name),
    )


def parse_index_payload(payload: Any) -> IndexDto:
    """
    Build an IndexDto from an external mapping.

    Raises:
        ValidationError: If the payload is malformed
    """
    payload = _require_mapping(payload, "index")
    index_name = _pick(payload, "indexName", "index_name")
    column_names = _pick(payload, "columnNames", "column_names")
    is_unique = _pick(payload, "isUnique", "is_unique")

    (
        Arguments()
        .custom(
            lambda: index_name is None or isinstance(index_name, str),
            "index_name",
            "must be a string",
        )
        .max_length(index_name, "index_name")
        .column_list(column_names, "column_names")
        .custom(
            lambda: is_unique is None or isinstance(is_unique, bool),
            "is_unique",
            "must be a boolean",
        )
        .assert_valid()
    )

    return IndexDto(
        column_names=[c.strip() for c in column_names],
        index_name=_clean_name(index_name),
        is_unique=bool(is_unique),
    )


def primary_key_to_payload(dto: PrimaryKeyConstraintDto) -> dict[str, Any]:
    return {"constraintName": dto.constraint_name, "columnNames": list(dto.column_names)}


def index_to_payload(dto: IndexDto) -> dict[str, Any]:
    return {
        "indexName": dto.index_name,
        "columnNames": list(dto.column_names),
        "isUnique": dto.is_unique,
    }


def to_unique_constraint_dto(definition: UniqueConstraintDefinition) -> UniqueConstraintDto:
    return UniqueConstraintDto(
        column_names=list(definition.column_names),
        constraint_name=definition.constraint_name,
    )


def to_unique_constraint_definition(
    dto: UniqueConstraintDto,
    table_name: str,
    constraint_name: str,
    schema_name: str | None = None,
) -> UniqueConstraintDefinition:
    return UniqueConstraintDefinition(
        table_name=table_name,
        constraint_name=constraint_name,
        column_names=tuple(c.strip() for c in dto.column_names),
        schema_name=schema_name,
    )


def parse_unique_constraint_payload(payload: Any) -> UniqueConstraintDto:
    payload = _require_mapping(payload, "unique_constraint")
    constraint_name = _pick(payload, "constraintName", "constraint_name")
    column_names = _pick(payload, "columnNames", "column_names")

    (
        Arguments()
        .custom(
            lambda: constraint_name is None or isinstance(constraint_name, str),
            "constraint_name",
            "must be a string",
        )
        .max_length(constraint_name, "constraint_name")
        .column_list(column_names, "column_names")
        .assert_valid()
    )

    return UniqueConstraintDto(
        column_names=[c.strip() for c in column_names],
        constraint_name=_clean_name(constraint_name),
    )


def unique_constraint_to_payload(dto: UniqueConstraintDto) -> dict[str, Any]:
    return {"constraintName": dto.constraint_name, "columnNames": list(dto.column_names)}
