from __future__ import annotations

from typing import Mapping


class SchemaOpsError(Exception):
    """Base exception for schemaops errors."""


class ValidationError(SchemaOpsError):
    """Malformed request, detected before any I/O."""

    def __init__(self, message: str, errors: Mapping[str, str] | None = None) -> None:
        super().__init__(message)
        self.errors: dict[str, str] = dict(errors or {})


class PermissionDeniedError(SchemaOpsError):
    """The operation context is not authorized for the requested operation."""


class DatasourceResolutionError(SchemaOpsError):
    """The datasource is unknown or a connection to it cannot be opened."""


class NotFoundError(SchemaOpsError):
    """A required schema, table or schema object does not exist."""


class MutationFailedError(SchemaOpsError):
    """The store reported that a create/drop call did not succeed."""


class PostconditionViolationError(SchemaOpsError):
    """The store accepted a mutation but a follow-up read cannot confirm it."""


class StoreAccessError(SchemaOpsError):
    """Reading metadata from the store failed."""
