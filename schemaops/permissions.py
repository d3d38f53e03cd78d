from __future__ import annotations

from enum import Enum
from typing import Protocol

from .context import OperationContext
from .errors import PermissionDeniedError, ValidationError

READ_OPERATION_SUFFIXES = ("/get", "/list")


def is_read_operation(operation: str) -> bool:
    return operation.endswith(READ_OPERATION_SUFFIXES)


class Permissions(Protocol):
    """
    Authorization hook consulted before any connection is opened.
    """

    async def is_authorized(self, context: OperationContext, operation: str) -> bool:
        ...


class PermissionDefault(str, Enum):
    ALLOW_ALL = "allow_all"
    REQUIRE_AUTHENTICATION = "require_authentication"
    REQUIRE_ROLE = "require_role"
    DENY_ALL = "deny_all"


class DefaultPermissions:
    """
    Role-based permissions.

    If require_role is set, only members of that role are authorized and the
    configured default is ignored. If read_only_role is set, its members may
    additionally run get/list operations.
    """

    def __init__(
        self,
        default: PermissionDefault = PermissionDefault.ALLOW_ALL,
        require_role: str | None = None,
        read_only_role: str | None = None,
    ) -> None:
        self.require_role = require_role
        self.read_only_role = read_only_role
        self.default = PermissionDefault.REQUIRE_ROLE if require_role else default

    async def is_authorized(self, context: OperationContext, operation: str) -> bool:
        in_required_role = bool(self.require_role) and context.is_in_role(self.require_role)

        if self.read_only_role and is_read_operation(operation):
            return in_required_role or context.is_in_role(self.read_only_role)

        if self.default == PermissionDefault.ALLOW_ALL:
            return True
        if self.default == PermissionDefault.REQUIRE_AUTHENTICATION:
            return context.is_authenticated
        if self.default == PermissionDefault.REQUIRE_ROLE:
            return in_required_role
        return False


def _present(value: object) -> bool:
    return isinstance(value, str) and bool(value.strip())


async def assert_permissions(
    permissions: Permissions,
    context: OperationContext | None,
    operation: str,
    datasource_id: str | None = None,
    schema_name: str | None = None,
    table_name: str | None = None,
) -> None:
    """
    Raise PermissionDeniedError unless the context may run the operation.

    Raises:
        ValidationError: If no context was supplied
        PermissionDeniedError: If the permissions hook refuses the operation
    """
    if context is None:
        raise ValidationError("context is required", {"context": "is required"})

    if await permissions.is_authorized(context, operation):
        return

    parts = [f"Access denied for operation '{operation}'"]
    if _present(datasource_id):
        target = [f"on datasource '{datasource_id}'"]
        if _present(schema_name):
            target.append(f"schema '{schema_name}'")
        if _present(table_name):
            target.append(f"table '{table_name}'")
        parts.append(", ".join(target))
    raise PermissionDeniedError(" ".join(parts) + ".")
