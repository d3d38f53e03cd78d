from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, FrozenSet, Mapping


@dataclass(frozen=True)
class OperationContext:
    """
    Caller identity for a single operation.

    The context is forwarded to the permission check and the audit recorder;
    schemaops never stores it.
    """
    user: str | None = None
    roles: FrozenSet[str] = frozenset()
    is_authenticated: bool = False
    request_id: str | None = None
    ip_address: str | None = None
    properties: Mapping[str, Any] = field(default_factory=dict)

    def is_in_role(self, role: str) -> bool:
        return self.is_authenticated and role in self.roles
