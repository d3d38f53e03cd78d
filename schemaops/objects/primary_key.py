from __future__ import annotations

import logging
from typing import Any, Sequence

from sqlalchemy import Column, MetaData, PrimaryKeyConstraint, Table, inspect
from sqlalchemy.schema import AddConstraint, DropConstraint

from ..db.models import MutationResult, ObjectLocator, PrimaryKeyDefinition
from .base import SchemaObjectCapability

logger = logging.getLogger(__name__)

# Dialects that cannot add or drop a primary key on an existing table.
_NO_ALTER_PRIMARY_KEY_DIALECTS = frozenset({"sqlite"})


def bound_primary_key(
    schema_name: str | None,
    table_name: str,
    column_names: Sequence[str],
    constraint_name: str | None,
) -> PrimaryKeyConstraint:
    # Throwaway Table so the DDL compiler can render the qualified table name.
    table = Table(
        table_name,
        MetaData(),
        *(Column(name) for name in column_names),
        schema=schema_name,
    )
    constraint = PrimaryKeyConstraint(*column_names, name=constraint_name)
    table.append_constraint(constraint)
    return constraint


class PrimaryKeyCapability(SchemaObjectCapability):
    object_type = "primary_key"
    display_name = "primary key constraint"
    plural_name = "primary key constraints"

    def name_of(self, definition: PrimaryKeyDefinition) -> str | None:
        return definition.constraint_name

    async def read(self, conn: Any, locator: ObjectLocator) -> PrimaryKeyDefinition | None:
        info = await conn.run_sync(
            lambda sync_conn: inspect(sync_conn).get_pk_constraint(
                locator.table_name, schema=locator.schema_name
            )
        )
        columns = tuple(info.get("constrained_columns") or ())
        if not columns:
            return None
        return PrimaryKeyDefinition(
            table_name=locator.table_name,
            column_names=columns,
            constraint_name=info.get("name"),
            schema_name=locator.schema_name,
        )

    async def create_if_absent(
        self, conn: Any, locator: ObjectLocator, definition: PrimaryKeyDefinition
    ) -> MutationResult:
        if await self.read(conn, locator) is not None:
            logger.info(
                "Primary key already present on %s; create suppressed", locator.table_name
            )
            return MutationResult.UNCHANGED

        if conn.dialect.name in _NO_ALTER_PRIMARY_KEY_DIALECTS:
            logger.warning(
                "Dialect %s cannot add a primary key to existing table %s",
                conn.dialect.name,
                locator.table_name,
            )
            return MutationResult.FAILED

        constraint = bound_primary_key(
            locator.schema_name,
            locator.table_name,
            definition.column_names,
            definition.constraint_name,
        )
        await conn.execute(AddConstraint(constraint))
        await conn.commit()
        logger.info(
            "Added primary key (%s) to %s", ", ".join(definition.column_names), locator.table_name
        )
        return MutationResult.APPLIED

    async def drop_if_present(self, conn: Any, locator: ObjectLocator) -> MutationResult:
        existing = await self.read(conn, locator)
        if existing is None:
            return MutationResult.UNCHANGED

        if conn.dialect.name in _NO_ALTER_PRIMARY_KEY_DIALECTS:
            logger.warning(
                "Dialect %s cannot drop the primary key of existing table %s",
                conn.dialect.name,
                locator.table_name,
            )
            return MutationResult.FAILED

        constraint = bound_primary_key(
            locator.schema_name,
            locator.table_name,
            existing.column_names,
            existing.constraint_name,
        )
        await conn.execute(DropConstraint(constraint))
        await conn.commit()
        logger.info("Dropped primary key of %s", locator.table_name)
        return MutationResult.APPLIED
