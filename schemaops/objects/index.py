from __future__ import annotations

import logging
from typing import Any

from sqlalchemy import Column, Index, MetaData, Table, inspect
from sqlalchemy.schema import CreateIndex, DropIndex

from ..db.models import IndexDefinition, MutationResult, ObjectLocator
from .base import NamedObjectCapability

logger = logging.getLogger(__name__)


def default_index_name(table_name: str, column_names, schema_name: str | None = None) -> str:
    """
    Name used for indexes created without an explicit name.

    Example:
        >>> default_index_name("orders", ["customer_id", "created_at"])
        'ix_orders_customer_id_created_at'
    """
    prefix = f"ix_{schema_name}_{table_name}" if schema_name else f"ix_{table_name}"
    return "_".join([prefix, *column_names])


def bound_index(locator: ObjectLocator, definition: IndexDefinition) -> Index:
    """
    Index attached to a throwaway Table so CreateIndex/DropIndex can render
    the qualified table name.
    """
    table = Table(
        locator.table_name,
        MetaData(),
        *(Column(name) for name in definition.column_names),
        schema=locator.schema_name,
    )
    return Index(
        definition.index_name,
        *(table.c[name] for name in definition.column_names),
        unique=definition.is_unique,
    )


class IndexCapability(NamedObjectCapability):
    object_type = "index"
    display_name = "index"
    plural_name = "indexes"

    def name_of(self, definition: IndexDefinition) -> str | None:
        return definition.index_name

    async def read_all(self, conn: Any, locator: ObjectLocator) -> list[IndexDefinition]:
        rows = await conn.run_sync(
            lambda sync_conn: inspect(sync_conn).get_indexes(
                locator.table_name, schema=locator.schema_name
            )
        )
        indexes = [
            IndexDefinition(
                table_name=locator.table_name,
                index_name=row["name"],
                # expression indexes report None for computed members
                column_names=tuple(c for c in row.get("column_names") or () if c),
                is_unique=bool(row.get("unique")),
                schema_name=locator.schema_name,
            )
            for row in rows
            if row.get("name")
        ]
        return sorted(indexes, key=lambda ix: ix.index_name)

    async def create_if_absent(
        self, conn: Any, locator: ObjectLocator, definition: IndexDefinition
    ) -> MutationResult:
        if await self.read(conn, locator) is not None:
            logger.info(
                "Index %s already present on %s; create suppressed",
                definition.index_name,
                locator.table_name,
            )
            return MutationResult.UNCHANGED

        await conn.execute(CreateIndex(bound_index(locator, definition)))
        await conn.commit()
        logger.info("Created index %s on %s", definition.index_name, locator.table_name)
        return MutationResult.APPLIED

    async def drop_if_present(self, conn: Any, locator: ObjectLocator) -> MutationResult:
        existing = await self.read(conn, locator)
        if existing is None:
            return MutationResult.UNCHANGED

        await conn.execute(DropIndex(bound_index(locator, existing)))
        await conn.commit()
        logger.info("Dropped index %s from %s", existing.index_name, locator.table_name)
        return MutationResult.APPLIED
