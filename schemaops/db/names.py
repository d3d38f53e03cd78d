from __future__ import annotations

from typing import Any

from ..errors import ValidationError

# Placeholder some callers use in URL paths for "no schema".
UNSPECIFIED_SCHEMA_PLACEHOLDER = "_"

MAX_IDENTIFIER_LENGTH = 128


def normalize_schema_name(schema_name: str | None) -> str | None:
    """
    Canonicalize an optional schema name.

    Empty, whitespace-only and placeholder ("_") names mean "use the backend
    default schema" and are normalized to None. Anything else is trimmed.

    Example:
        >>> normalize_schema_name("  ")
        >>> normalize_schema_name(" sales ")
        'sales'
    """
    if schema_name is None:
        return None
    if not isinstance(schema_name, str):
        raise ValidationError(
            f"schema_name must be a string, got {type(schema_name).__name__}",
            {"schema_name": "must be a string"},
        )
    trimmed = schema_name.strip()
    if not trimmed or trimmed == UNSPECIFIED_SCHEMA_PLACEHOLDER:
        return None
    return trimmed


def validate_identifier(name: Any, identifier_type: str = "identifier") -> str:
    """
    Validate that an identifier (table/column/constraint name) is usable.

    Identifiers are quoted by the SQLAlchemy DDL compiler, so no character
    whitelist is applied here; only type, emptiness and length are checked.

    Args:
        name: The identifier to validate
        identifier_type: Description of the identifier (for error messages)

    Returns:
        The identifier with surrounding whitespace removed

    Raises:
        ValidationError: If the identifier is not a string, is blank, or is
            longer than MAX_IDENTIFIER_LENGTH
    """
    if not isinstance(name, str):
        raise ValidationError(
            f"{identifier_type} must be a string, got {type(name).__name__}",
            {identifier_type: "must be a string"},
        )

    trimmed = name.strip()
    if not trimmed:
        raise ValidationError(
            f"{identifier_type} cannot be empty",
            {identifier_type: "cannot be empty"},
        )

    if len(trimmed) > MAX_IDENTIFIER_LENGTH:
        raise ValidationError(
            f"{identifier_type} {trimmed!r} exceeds the {MAX_IDENTIFIER_LENGTH}-character limit",
            {identifier_type: f"exceeds {MAX_IDENTIFIER_LENGTH} characters"},
        )

    return trimmed
