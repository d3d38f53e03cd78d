from __future__ import annotations

import dataclasses
import logging
import time
from typing import Any, Awaitable, Callable, Optional, TypeVar

from sqlalchemy.exc import SQLAlchemyError

from .audit import AuditRecorder
from .context import OperationContext
from .db.introspection import Introspector, SqlAlchemyIntrospector
from .db.metrics import observe_operation
from .db.models import MutationResult, ObjectLocator
from .db.names import normalize_schema_name
from .db.preconditions import verify_preconditions
from .db.provisioner import ConnectionProvisioner
from .errors import (
    MutationFailedError,
    NotFoundError,
    PostconditionViolationError,
    SchemaOpsError,
    StoreAccessError,
)
from .objects.base import SchemaObjectCapability
from .permissions import Permissions, assert_permissions
from .validation import Arguments

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Builds the object-specific definition from the normalized locator.
# Raises ValidationError for malformed input; runs before any connection is opened.
DefinitionBuilder = Callable[[ObjectLocator], Any]


def _sentence(text: str) -> str:
    return text[:1].upper() + text[1:]


class MutationOrchestrator:
    """
    Runs the verify -> mutate -> re-read -> audit protocol for any schema
    object type.

    Every operation walks the same states:

        permission check -> schema normalization -> argument validation
        -> connection acquired -> preconditions verified
        -> {read | created | dropped} -> audited -> connection released

    Permission and validation failures happen before a connection is opened
    and are never audited. Create and drop failures that occur after the
    preconditions pass are audited exactly once, as failures, before they
    propagate. Reads audit successes only.

    The orchestrator holds no per-call state and provides no mutual exclusion:
    concurrent creates against one table race inside the store, whose own
    invariants (one primary key per table, unique index names) decide the
    winner.
    """

    def __init__(
        self,
        provisioner: ConnectionProvisioner,
        permissions: Permissions,
        audit: AuditRecorder,
        introspector: Optional[Introspector] = None,
    ) -> None:
        self.provisioner = provisioner
        self.permissions = permissions
        self.audit = audit
        self.introspector = introspector or SqlAlchemyIntrospector()

    async def _prepare(
        self,
        context: OperationContext,
        operation: str,
        locator: ObjectLocator,
        require_name: bool = False,
    ) -> ObjectLocator:
        await assert_permissions(
            self.permissions,
            context,
            operation,
            datasource_id=locator.datasource_id,
            schema_name=locator.schema_name,
            table_name=locator.table_name,
        )

        locator = dataclasses.replace(locator, schema_name=normalize_schema_name(locator.schema_name))

        args = (
            Arguments()
            .not_blank(locator.datasource_id, "datasource_id")
            .identifier(locator.table_name, "table_name")
        )
        if require_name:
            args.identifier(locator.object_name, "object_name")
        args.assert_valid()
        return dataclasses.replace(
            locator,
            datasource_id=locator.datasource_id.strip(),
            table_name=locator.table_name.strip(),
            object_name=locator.object_name.strip() if locator.object_name else None,
        )

    async def _observed(
        self,
        capability: SchemaObjectCapability,
        operation: str,
        body: Callable[[], Awaitable[T]],
    ) -> T:
        start_time = time.monotonic()
        status = "error"
        try:
            result = await body()
            status = "success"
            return result
        finally:
            observe_operation(
                capability.object_type,
                operation.rsplit("/", 1)[-1],
                status,
                time.monotonic() - start_time,
            )

    async def _read_store(
        self,
        capability: SchemaObjectCapability,
        conn: Any,
        locator: ObjectLocator,
    ) -> Any | None:
        try:
            return await capability.read(conn, locator)
        except SQLAlchemyError as exc:
            raise StoreAccessError(
                f"Unable to read {capability.label(locator)} on table '{locator.table_name}'."
            ) from exc

    async def _record_failure(
        self,
        context: OperationContext,
        operation: str,
        locator: ObjectLocator,
        exc: Exception,
    ) -> None:
        if isinstance(exc, SchemaOpsError):
            message = str(exc)
        else:
            message = f"Operation '{operation}' failed unexpectedly ({type(exc).__name__})."
        await self.audit.record(
            context,
            False,
            message,
            operation=operation,
            locator=locator,
            object_name=locator.object_name,
        )

    async def read(
        self,
        context: OperationContext,
        capability: SchemaObjectCapability,
        operation: str,
        locator: ObjectLocator,
    ) -> Any:
        """
        Return the object addressed by the locator.

        Raises:
            NotFoundError: If the schema, table or object does not exist
        """

        async def body() -> Any:
            target = await self._prepare(context, operation, locator, capability.named)
            async with self.provisioner.acquire(target.datasource_id) as conn:
                await verify_preconditions(self.introspector, conn, target)

                found = await self._read_store(capability, conn, target)
                if found is None:
                    raise NotFoundError(
                        f"{_sentence(capability.label(target))} not found on table '{target.table_name}'"
                    )

                await self.audit.record(
                    context,
                    True,
                    f"Retrieved {capability.label(target)} for table '{target.table_name}'",
                    operation=operation,
                    locator=target,
                    object_name=capability.name_of(found),
                    column_names=capability.columns_of(found),
                )
                return found

        return await self._observed(capability, operation, body)

    async def read_all(
        self,
        context: OperationContext,
        capability: SchemaObjectCapability,
        operation: str,
        locator: ObjectLocator,
    ) -> list[Any]:
        """
        Return every object of the capability's type on the table.
        """

        async def body() -> list[Any]:
            target = await self._prepare(context, operation, locator)
            async with self.provisioner.acquire(target.datasource_id) as conn:
                await verify_preconditions(self.introspector, conn, target)

                try:
                    found = await capability.read_all(conn, target)
                except SQLAlchemyError as exc:
                    raise StoreAccessError(
                        f"Unable to read {capability.plural_name} on table '{target.table_name}'."
                    ) from exc

                await self.audit.record(
                    context,
                    True,
                    f"Retrieved {capability.plural_name} for table '{target.table_name}'",
                    operation=operation,
                    locator=target,
                )
                return found

        return await self._observed(capability, operation, body)

    async def create(
        self,
        context: OperationContext,
        capability: SchemaObjectCapability,
        operation: str,
        locator: ObjectLocator,
        build_definition: DefinitionBuilder,
    ) -> Any:
        """
        Idempotently create an object and return it as re-read from the store.

        Args:
            build_definition: Called with the normalized locator; validates
                the request and returns the definition to create. For named
                objects the definition's name becomes the locator's object_name.

        Raises:
            ValidationError: If the definition is malformed (no connection is opened)
            NotFoundError: If the schema or table does not exist
            MutationFailedError: If the store could not create the object
            PostconditionViolationError: If the store claims success but the
                object cannot be read back
        """

        async def body() -> Any:
            target = await self._prepare(context, operation, locator)
            definition = build_definition(target)
            target = capability.locate(target, definition)

            async with self.provisioner.acquire(target.datasource_id) as conn:
                await verify_preconditions(self.introspector, conn, target)

                try:
                    created, outcome = await self._create_and_confirm(conn, capability, target, definition)
                except Exception as exc:
                    await self._record_failure(context, operation, target, exc)
                    raise

                if outcome == MutationResult.APPLIED:
                    message = f"{_sentence(capability.identity(created))} created successfully."
                else:
                    message = (
                        f"{_sentence(capability.identity(created))} already exists "
                        f"on table '{target.table_name}'."
                    )
                await self.audit.record(
                    context,
                    True,
                    message,
                    operation=operation,
                    locator=target,
                    object_name=capability.name_of(created),
                    column_names=capability.columns_of(created),
                )
                return created

        return await self._observed(capability, operation, body)

    async def _create_and_confirm(
        self,
        conn: Any,
        capability: SchemaObjectCapability,
        locator: ObjectLocator,
        definition: Any,
    ) -> tuple[Any, MutationResult]:
        failure = f"Failed to create {capability.identity(definition)} for an unknown reason."
        try:
            outcome = await capability.create_if_absent(conn, locator, definition)
        except SQLAlchemyError as exc:
            raise MutationFailedError(failure) from exc

        if outcome == MutationResult.FAILED:
            raise MutationFailedError(failure)

        # Never trust the requested definition: names, column order and
        # defaults are whatever the store actually recorded.
        try:
            created = await capability.find_created(conn, locator, definition)
        except SQLAlchemyError as exc:
            raise StoreAccessError(
                f"Unable to read back the created {capability.display_name}."
            ) from exc

        if created is None:
            raise PostconditionViolationError(
                f"Failed to retrieve the created {capability.display_name}."
            )
        return created, outcome

    async def drop(
        self,
        context: OperationContext,
        capability: SchemaObjectCapability,
        operation: str,
        locator: ObjectLocator,
    ) -> None:
        """
        Drop an existing object.

        Dropping an object that is not there is reported as NotFoundError
        rather than treated as a successful no-op.

        Raises:
            NotFoundError: If the schema, table or object does not exist
            MutationFailedError: If the store could not drop the object
            PostconditionViolationError: If the object is still present afterwards
        """

        async def body() -> None:
            target = await self._prepare(context, operation, locator, capability.named)
            async with self.provisioner.acquire(target.datasource_id) as conn:
                await verify_preconditions(self.introspector, conn, target)

                try:
                    await self._drop_and_confirm(conn, capability, target)
                except Exception as exc:
                    await self._record_failure(context, operation, target, exc)
                    raise

                await self.audit.record(
                    context,
                    True,
                    f"{_sentence(capability.label(target))} dropped successfully.",
                    operation=operation,
                    locator=target,
                    object_name=target.object_name,
                )

        await self._observed(capability, operation, body)

    async def _drop_and_confirm(
        self,
        conn: Any,
        capability: SchemaObjectCapability,
        locator: ObjectLocator,
    ) -> None:
        label = capability.label(locator)
        existing = await self._read_store(capability, conn, locator)
        if existing is None:
            raise NotFoundError(f"{_sentence(label)} not found on table '{locator.table_name}'")

        failure = f"Failed to drop {label} on table '{locator.table_name}' for an unknown reason."
        try:
            outcome = await capability.drop_if_present(conn, locator)
        except SQLAlchemyError as exc:
            raise MutationFailedError(failure) from exc

        if outcome == MutationResult.FAILED:
            raise MutationFailedError(failure)

        if outcome == MutationResult.UNCHANGED:
            logger.info(
                "%s on %s vanished before drop; treating as dropped",
                _sentence(label),
                locator.table_name,
            )

        if await self._read_store(capability, conn, locator) is not None:
            raise PostconditionViolationError(
                f"{_sentence(label)} is still present on table '{locator.table_name}' after drop."
            )
