from .context import OperationContext
from .dtos import IndexDto, PrimaryKeyConstraintDto, UniqueConstraintDto
from .service import Operations, SchemaObjectService

__all__ = [
    "IndexDto",
    "OperationContext",
    "Operations",
    "PrimaryKeyConstraintDto",
    "SchemaObjectService",
    "UniqueConstraintDto",
]
