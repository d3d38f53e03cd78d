from dataclasses import dataclass, field
from typing import List, Optional


@dataclass
class PrimaryKeyConstraintDto:
    """
    Transfer shape of a primary key constraint.
    """
    column_names: List[str] = field(default_factory=list)
    # None lets the backend assign a name
    constraint_name: Optional[str] = None


@dataclass
class IndexDto:
    """
    Transfer shape of an index.
    """
    column_names: List[str] = field(default_factory=list)
    # None means "generate ix_<table>_<columns>"
    index_name: Optional[str] = None
    is_unique: bool = False


@dataclass
class UniqueConstraintDto:
    column_names: List[str] = field(default_factory=list)
    # None means "generate uq_<table>_<columns>"
    constraint_name: Optional[str] = None
