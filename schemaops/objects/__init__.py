from .base import NamedObjectCapability, SchemaObjectCapability
from .index import IndexCapability
from .kind import ObjectKind
from .primary_key import PrimaryKeyCapability
from .unique_constraint import UniqueConstraintCapability


def make_capability(kind: ObjectKind) -> SchemaObjectCapability:
    """
    Create the SQLAlchemy-backed capability for an object kind.
    """
    if kind == ObjectKind.PRIMARY_KEY:
        return PrimaryKeyCapability()

    if kind == ObjectKind.INDEX:
        return IndexCapability()

    if kind == ObjectKind.UNIQUE_CONSTRAINT:
        return UniqueConstraintCapability()

    raise ValueError(f"Unknown object kind: {kind}")


__all__ = [
    "IndexCapability",
    "NamedObjectCapability",
    "ObjectKind",
    "PrimaryKeyCapability",
    "SchemaObjectCapability",
    "UniqueConstraintCapability",
    "make_capability",
]
