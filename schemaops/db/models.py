from dataclasses import dataclass
from enum import Enum
from typing import Optional, Tuple


class MutationResult(str, Enum):
    """
    Outcome of a store-level idempotent create/drop call.

    APPLIED: the store changed (object created or dropped).
    UNCHANGED: the target state already held (object already present / absent).
    FAILED: the store could not perform the change for an unspecified reason.
    """
    APPLIED = "applied"
    UNCHANGED = "unchanged"
    FAILED = "failed"


@dataclass(frozen=True)
class ObjectLocator:
    """
    Identifies the table scope a structural object lives under.
    """
    datasource_id: str
    table_name: str
    schema_name: Optional[str] = None
    # index or constraint name for named objects; unused for primary keys
    object_name: Optional[str] = None


@dataclass(frozen=True)
class PrimaryKeyDefinition:
    table_name: str
    column_names: Tuple[str, ...]
    constraint_name: Optional[str] = None
    schema_name: Optional[str] = None


@dataclass(frozen=True)
class IndexDefinition:
    table_name: str
    index_name: str
    column_names: Tuple[str, ...]
    is_unique: bool = False
    schema_name: Optional[str] = None


@dataclass(frozen=True)
class UniqueConstraintDefinition:
    table_name: str
    constraint_name: str
    column_names: Tuple[str, ...]
    schema_name: Optional[str] = None
