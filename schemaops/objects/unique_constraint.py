from __future__ import annotations

import logging
from typing import Any, Sequence

from sqlalchemy import Column, MetaData, Table, UniqueConstraint, inspect
from sqlalchemy.schema import AddConstraint, DropConstraint

from ..db.models import MutationResult, ObjectLocator, UniqueConstraintDefinition
from .base import NamedObjectCapability

logger = logging.getLogger(__name__)

# Dialects that cannot add or drop a table constraint with ALTER TABLE.
_NO_ALTER_CONSTRAINT_DIALECTS = frozenset({"sqlite"})


def default_unique_constraint_name(table_name: str, column_names, schema_name: str | None = None) -> str:
    prefix = f"uq_{schema_name}_{table_name}" if schema_name else f"uq_{table_name}"
    return "_".join([prefix, *column_names])


def bound_unique_constraint(
    schema_name: str | None,
    table_name: str,
    column_names: Sequence[str],
    constraint_name: str,
) -> UniqueConstraint:
    table = Table(
        table_name,
        MetaData(),
        *(Column(name) for name in column_names),
        schema=schema_name,
    )
    constraint = UniqueConstraint(*column_names, name=constraint_name)
    table.append_constraint(constraint)
    return constraint


class UniqueConstraintCapability(NamedObjectCapability):
    object_type = "unique_constraint"
    display_name = "unique constraint"
    plural_name = "unique constraints"

    def name_of(self, definition: UniqueConstraintDefinition) -> str | None:
        return definition.constraint_name

    async def read_all(self, conn: Any, locator: ObjectLocator) -> list[UniqueConstraintDefinition]:
        rows = await conn.run_sync(
            lambda sync_conn: inspect(sync_conn).get_unique_constraints(
                locator.table_name, schema=locator.schema_name
            )
        )
        constraints = [
            UniqueConstraintDefinition(
                table_name=locator.table_name,
                constraint_name=row["name"],
                column_names=tuple(row.get("column_names") or ()),
                schema_name=locator.schema_name,
            )
            # unnamed constraints cannot be addressed
            for row in rows
            if row.get("name")
        ]
        return sorted(constraints, key=lambda uq: uq.constraint_name)

    async def create_if_absent(
        self, conn: Any, locator: ObjectLocator, definition: UniqueConstraintDefinition
    ) -> MutationResult:
        if await self.read(conn, locator) is not None:
            logger.info(
                "Unique constraint %s already present on %s; create suppressed",
                definition.constraint_name,
                locator.table_name,
            )
            return MutationResult.UNCHANGED

        if conn.dialect.name in _NO_ALTER_CONSTRAINT_DIALECTS:
            logger.warning(
                "Dialect %s cannot add unique constraint %s to existing table %s",
                conn.dialect.name,
                definition.constraint_name,
                locator.table_name,
            )
            return MutationResult.FAILED

        constraint = bound_unique_constraint(
            locator.schema_name,
            locator.table_name,
            definition.column_names,
            definition.constraint_name,
        )
        await conn.execute(AddConstraint(constraint))
        await conn.commit()
        logger.info(
            "Added unique constraint %s to %s", definition.constraint_name, locator.table_name
        )
        return MutationResult.APPLIED

    async def drop_if_present(self, conn: Any, locator: ObjectLocator) -> MutationResult:
        existing = await self.read(conn, locator)
        if existing is None:
            return MutationResult.UNCHANGED

        if conn.dialect.name in _NO_ALTER_CONSTRAINT_DIALECTS:
            logger.warning(
                "Dialect %s cannot drop unique constraint %s of existing table %s",
                conn.dialect.name,
                existing.constraint_name,
                locator.table_name,
            )
            return MutationResult.FAILED

        constraint = bound_unique_constraint(
            locator.schema_name,
            locator.table_name,
            existing.column_names,
            existing.constraint_name,
        )
        await conn.execute(DropConstraint(constraint))
        await conn.commit()
        logger.info("Dropped unique constraint %s from %s", existing.constraint_name, locator.table_name)
        return MutationResult.APPLIED
