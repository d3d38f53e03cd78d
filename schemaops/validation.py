from __future__ import annotations

from collections.abc import Callable, Sequence
from typing import Any

from .db.names import MAX_IDENTIFIER_LENGTH, validate_identifier
from .errors import ValidationError


class Arguments:
    """
    Collects argument errors and raises them together.

    Usage:
        (
            Arguments()
            .not_blank(datasource_id, "datasource_id")
            .not_blank(table_name, "table_name")
            .column_list(dto.column_names, "column_names")
            .assert_valid()
        )
    """

    def __init__(self) -> None:
        self.errors: dict[str, str] = {}

    def _fail(self, name: str, message: str) -> "Arguments":
        self.errors.setdefault(name, message)
        return self

    def not_none(self, value: Any, name: str) -> "Arguments":
        if value is None:
            return self._fail(name, "is required")
        return self

    def not_blank(self, value: Any, name: str) -> "Arguments":
        if not isinstance(value, str) or not value.strip():
            return self._fail(name, "must be a non-empty string")
        return self

    def identifier(self, value: Any, name: str) -> "Arguments":
        try:
            validate_identifier(value, name)
        except ValidationError as exc:
            return self._fail(name, exc.errors.get(name, str(exc)))
        return self

    def max_length(self, value: str | None, name: str, limit: int = MAX_IDENTIFIER_LENGTH) -> "Arguments":
        if isinstance(value, str) and len(value) > limit:
            return self._fail(name, f"must be at most {limit} characters")
        return self

    def column_list(self, columns: Sequence[Any] | None, name: str) -> "Arguments":
        if not columns:
            return self._fail(name, "At least one column is required.")
        if isinstance(columns, (str, bytes)) or not isinstance(columns, Sequence):
            return self._fail(name, "must be a list of column names")
        if any(not isinstance(c, str) or not c.strip() for c in columns):
            return self._fail(name, "Column names must be non-empty strings.")
        normalized = [c.strip().lower() for c in columns]
        if len(set(normalized)) != len(normalized):
            return self._fail(name, "Column names must be unique.")
        return self

    def custom(self, predicate: Callable[[], bool], name: str, message: str) -> "Arguments":
        if not predicate():
            return self._fail(name, message)
        return self

    def assert_valid(self) -> None:
        if not self.errors:
            return
        details = "; ".join(f"{name}: {message}" for name, message in self.errors.items())
        raise ValidationError(f"Invalid arguments: {details}", self.errors)
