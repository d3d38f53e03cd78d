from __future__ import annotations

from typing import Any

from sqlalchemy.exc import SQLAlchemyError

from ..errors import NotFoundError, StoreAccessError
from .introspection import Introspector
from .models import ObjectLocator


async def assert_schema_exists(
    introspector: Introspector,
    conn: Any,
    datasource_id: str,
    schema_name: str | None,
) -> None:
    """
    Raise NotFoundError if an explicitly specified schema does not exist.

    A None schema means "backend default" and is not checked.
    """
    if schema_name is None:
        return

    try:
        exists = await introspector.schema_exists(conn, schema_name)
    except SQLAlchemyError as exc:
        raise StoreAccessError(
            f"Unable to check schema '{schema_name}' in datasource '{datasource_id}'."
        ) from exc

    if not exists:
        raise NotFoundError(f"Schema '{schema_name}' not found in datasource '{datasource_id}'")


async def assert_table_exists(
    introspector: Introspector,
    conn: Any,
    datasource_id: str,
    table_name: str,
    schema_name: str | None,
) -> None:
    try:
        exists = await introspector.table_exists(conn, table_name, schema_name)
    except SQLAlchemyError as exc:
        raise StoreAccessError(
            f"Unable to check table '{table_name}' in datasource '{datasource_id}'."
        ) from exc

    if not exists:
        raise NotFoundError(
            f"Table '{table_name}' not found in schema '{schema_name}' of datasource '{datasource_id}'"
            if schema_name is not None
            else f"Table '{table_name}' not found in datasource '{datasource_id}'"
        )


async def verify_preconditions(introspector: Introspector, conn: Any, locator: ObjectLocator) -> None:
    """
    Verify the ancestors of a schema object, outermost first.

    The schema check always runs before the table check so a missing schema is
    never reported as a missing table.
    """
    await assert_schema_exists(introspector, conn, locator.datasource_id, locator.schema_name)
    await assert_table_exists(
        introspector, conn, locator.datasource_id, locator.table_name, locator.schema_name
    )
