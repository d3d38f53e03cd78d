from .introspection import Introspector, SqlAlchemyIntrospector
from .models import (
    IndexDefinition,
    MutationResult,
    ObjectLocator,
    PrimaryKeyDefinition,
    UniqueConstraintDefinition,
)
from .names import normalize_schema_name
from .preconditions import assert_schema_exists, assert_table_exists, verify_preconditions
from .provisioner import ConnectionLease, ConnectionProvisioner, EngineProvisioner

__all__ = [
    "ConnectionLease",
    "ConnectionProvisioner",
    "EngineProvisioner",
    "IndexDefinition",
    "Introspector",
    "MutationResult",
    "ObjectLocator",
    "PrimaryKeyDefinition",
    "SqlAlchemyIntrospector",
    "UniqueConstraintDefinition",
    "assert_schema_exists",
    "assert_table_exists",
    "normalize_schema_name",
    "verify_preconditions",
]
