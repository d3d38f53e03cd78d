from __future__ import annotations

from typing import Optional

from .audit import AuditRecorder, AuditSink, LoggingAuditSink
from .context import OperationContext
from .db.introspection import Introspector
from .db.models import (
    IndexDefinition,
    ObjectLocator,
    PrimaryKeyDefinition,
    UniqueConstraintDefinition,
)
from .db.provisioner import ConnectionProvisioner
from .dtos import IndexDto, PrimaryKeyConstraintDto, UniqueConstraintDto
from .mapping import (
    to_index_definition,
    to_index_dto,
    to_primary_key_definition,
    to_primary_key_dto,
    to_unique_constraint_definition,
    to_unique_constraint_dto,
)
from .objects import ObjectKind, SchemaObjectCapability, make_capability
from .objects.index import default_index_name
from .objects.unique_constraint import default_unique_constraint_name
from .orchestrator import MutationOrchestrator
from .permissions import DefaultPermissions, Permissions
from .validation import Arguments


class Operations:
    PRIMARY_KEY_GET = "primary-keys/get"
    PRIMARY_KEY_CREATE = "primary-keys/create"
    PRIMARY_KEY_DROP = "primary-keys/drop"
    INDEX_LIST = "indexes/list"
    INDEX_GET = "indexes/get"
    INDEX_CREATE = "indexes/create"
    INDEX_DROP = "indexes/drop"
    UNIQUE_CONSTRAINT_LIST = "unique-constraints/list"
    UNIQUE_CONSTRAINT_GET = "unique-constraints/get"
    UNIQUE_CONSTRAINT_CREATE = "unique-constraints/create"
    UNIQUE_CONSTRAINT_DROP = "unique-constraints/drop"


class SchemaObjectService:
    """
    Public entry point for schema object operations.

    Usage:
        service = SchemaObjectService(EngineProvisioner(datasources_from_env()))
        pk = await service.create_primary_key(
            ctx, "main", "orders", PrimaryKeyConstraintDto(column_names=["id"])
        )
        await service.drop_primary_key(ctx, "main", "orders")
    """

    def __init__(
        self,
        provisioner: ConnectionProvisioner,
        permissions: Optional[Permissions] = None,
        audit_sink: Optional[AuditSink] = None,
        introspector: Optional[Introspector] = None,
        primary_keys: Optional[SchemaObjectCapability] = None,
        indexes: Optional[SchemaObjectCapability] = None,
        unique_constraints: Optional[SchemaObjectCapability] = None,
    ) -> None:
        self.orchestrator = MutationOrchestrator(
            provisioner=provisioner,
            permissions=permissions or DefaultPermissions(),
            audit=AuditRecorder(audit_sink or LoggingAuditSink()),
            introspector=introspector,
        )
        self.primary_keys = primary_keys or make_capability(ObjectKind.PRIMARY_KEY)
        self.indexes = indexes or make_capability(ObjectKind.INDEX)
        self.unique_constraints = unique_constraints or make_capability(ObjectKind.UNIQUE_CONSTRAINT)

    # -- primary keys ---------------------------------------------------------

    async def get_primary_key(
        self,
        context: OperationContext,
        datasource_id: str,
        table_name: str,
        schema_name: Optional[str] = None,
    ) -> PrimaryKeyConstraintDto:
        """
        Get the primary key constraint of a table.

        Raises:
            NotFoundError: If the schema, table or primary key does not exist
        """
        found = await self.orchestrator.read(
            context,
            self.primary_keys,
            Operations.PRIMARY_KEY_GET,
            ObjectLocator(datasource_id, table_name, schema_name),
        )
        return to_primary_key_dto(found)

    async def create_primary_key(
        self,
        context: OperationContext,
        datasource_id: str,
        table_name: str,
        primary_key: PrimaryKeyConstraintDto,
        schema_name: Optional[str] = None,
    ) -> PrimaryKeyConstraintDto:
        """
        Create the primary key constraint of a table unless it already has one.

        The returned constraint is read back from the store after the create
        and may differ from the request (e.g. a backend-assigned name). If the
        table already had a primary key, that key is returned.
        """

        def build(locator: ObjectLocator) -> PrimaryKeyDefinition:
            (
                Arguments()
                .not_none(primary_key, "primary_key")
                .assert_valid()
            )
            (
                Arguments()
                .column_list(primary_key.column_names, "column_names")
                .max_length(primary_key.constraint_name, "constraint_name")
                .assert_valid()
            )
            return to_primary_key_definition(primary_key, locator.table_name, locator.schema_name)

        created = await self.orchestrator.create(
            context,
            self.primary_keys,
            Operations.PRIMARY_KEY_CREATE,
            ObjectLocator(datasource_id, table_name, schema_name),
            build,
        )
        return to_primary_key_dto(created)

    async def drop_primary_key(
        self,
        context: OperationContext,
        datasource_id: str,
        table_name: str,
        schema_name: Optional[str] = None,
    ) -> None:
        await self.orchestrator.drop(
            context,
            self.primary_keys,
            Operations.PRIMARY_KEY_DROP,
            ObjectLocator(datasource_id, table_name, schema_name),
        )

    # -- indexes --------------------------------------------------------------

    async def get_indexes(
        self,
        context: OperationContext,
        datasource_id: str,
        table_name: str,
        schema_name: Optional[str] = None,
    ) -> list[IndexDto]:
        found = await self.orchestrator.read_all(
            context,
            self.indexes,
            Operations.INDEX_LIST,
            ObjectLocator(datasource_id, table_name, schema_name),
        )
        return [to_index_dto(index) for index in found]

    async def get_index(
        self,
        context: OperationContext,
        datasource_id: str,
        table_name: str,
        index_name: str,
        schema_name: Optional[str] = None,
    ) -> IndexDto:
        found = await self.orchestrator.read(
            context,
            self.indexes,
            Operations.INDEX_GET,
            ObjectLocator(datasource_id, table_name, schema_name, index_name),
        )
        return to_index_dto(found)

    async def create_index(
        self,
        context: OperationContext,
        datasource_id: str,
        table_name: str,
        index: IndexDto,
        schema_name: Optional[str] = None,
    ) -> IndexDto:
        """
        Create an index unless one with the same name already exists.

        Indexes without a name are named ix_<table>_<columns> (with the schema
        inserted after "ix_" when one is given).
        """

        def build(locator: ObjectLocator) -> IndexDefinition:
            (
                Arguments()
                .not_none(index, "index")
                .assert_valid()
            )
            (
                Arguments()
                .column_list(index.column_names, "column_names")
                .max_length(index.index_name, "index_name")
                .assert_valid()
            )
            name = (index.index_name or "").strip() or default_index_name(
                locator.table_name,
                [c.strip() for c in index.column_names],
                locator.schema_name,
            )
            return to_index_definition(index, locator.table_name, name, locator.schema_name)

        created = await self.orchestrator.create(
            context,
            self.indexes,
            Operations.INDEX_CREATE,
            ObjectLocator(datasource_id, table_name, schema_name),
            build,
        )
        return to_index_dto(created)

    async def drop_index(
        self,
        context: OperationContext,
        datasource_id: str,
        table_name: str,
        index_name: str,
        schema_name: Optional[str] = None,
    ) -> None:
        await self.orchestrator.drop(
            context,
            self.indexes,
            Operations.INDEX_DROP,
            ObjectLocator(datasource_id, table_name, schema_name, index_name),
        )

    # -- unique constraints ---------------------------------------------------

    async def get_unique_constraints(
        self,
        context: OperationContext,
        datasource_id: str,
        table_name: str,
        schema_name: Optional[str] = None,
    ) -> list[UniqueConstraintDto]:
        found = await self.orchestrator.read_all(
            context,
            self.unique_constraints,
            Operations.UNIQUE_CONSTRAINT_LIST,
            ObjectLocator(datasource_id, table_name, schema_name),
        )
        return [to_unique_constraint_dto(constraint) for constraint in found]

    async def get_unique_constraint(
        self,
        context: OperationContext,
        datasource_id: str,
        table_name: str,
        constraint_name: str,
        schema_name: Optional[str] = None,
    ) -> UniqueConstraintDto:
        found = await self.orchestrator.read(
            context,
            self.unique_constraints,
            Operations.UNIQUE_CONSTRAINT_GET,
            ObjectLocator(datasource_id, table_name, schema_name, constraint_name),
        )
        return to_unique_constraint_dto(found)

    async def create_unique_constraint(
        self,
        context: OperationContext,
        datasource_id: str,
        table_name: str,
        unique_constraint: UniqueConstraintDto,
        schema_name: Optional[str] = None,
    ) -> UniqueConstraintDto:
        """
        Create a unique constraint unless one with the same name already exists.

        Constraints without a name are named uq_<table>_<columns>, like indexes.
        """

        def build(locator: ObjectLocator) -> UniqueConstraintDefinition:
            (
                Arguments()
                .not_none(unique_constraint, "unique_constraint")
                .assert_valid()
            )
            (
                Arguments()
                .column_list(unique_constraint.column_names, "column_names")
                .max_length(unique_constraint.constraint_name, "constraint_name")
                .assert_valid()
            )
            name = (unique_constraint.constraint_name or "").strip() or default_unique_constraint_name(
                locator.table_name,
                [c.strip() for c in unique_constraint.column_names],
                locator.schema_name,
            )
            return to_unique_constraint_definition(
                unique_constraint, locator.table_name, name, locator.schema_name
            )

        created = await self.orchestrator.create(
            context,
            self.unique_constraints,
            Operations.UNIQUE_CONSTRAINT_CREATE,
            ObjectLocator(datasource_id, table_name, schema_name),
            build,
        )
        return to_unique_constraint_dto(created)

    async def drop_unique_constraint(
        self,
        context: OperationContext,
        datasource_id: str,
        table_name: str,
        constraint_name: str,
        schema_name: Optional[str] = None,
    ) -> None:
        await self.orchestrator.drop(
            context,
            self.unique_constraints,
            Operations.UNIQUE_CONSTRAINT_DROP,
            ObjectLocator(datasource_id, table_name, schema_name, constraint_name),
        )
