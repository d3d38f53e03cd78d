from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any

from sqlalchemy import inspect


class Introspector(ABC):
    """
    Answers structural existence questions for a connection.
    """

    @abstractmethod
    async def schema_exists(self, conn: Any, schema_name: str) -> bool:
        ...

    @abstractmethod
    async def table_exists(self, conn: Any, table_name: str, schema_name: str | None) -> bool:
        ...


class SqlAlchemyIntrospector(Introspector):
    """
    Introspector for SQLAlchemy AsyncConnection objects.

    Each call builds a fresh Inspector so no metadata is cached between the
    checks of one operation.
    """

    async def schema_exists(self, conn: Any, schema_name: str) -> bool:
        return await conn.run_sync(lambda sync_conn: inspect(sync_conn).has_schema(schema_name))

    async def table_exists(self, conn: Any, table_name: str, schema_name: str | None) -> bool:
        return await conn.run_sync(
            lambda sync_conn: inspect(sync_conn).has_table(table_name, schema=schema_name)
        )
