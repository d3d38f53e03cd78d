from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Any, AsyncContextManager, Mapping

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncConnection, AsyncEngine, create_async_engine
from sqlalchemy.pool import NullPool

from ..config import DatasourceConfig
from ..errors import DatasourceResolutionError
from .metrics import observe_connection_acquire

logger = logging.getLogger(__name__)


class ConnectionProvisioner(ABC):
    """
    Hands out connections bound to a datasource identifier.

    acquire() returns an async context manager; the connection it yields is
    owned exclusively by the caller and released when the block exits,
    whatever the exit path.
    """

    @abstractmethod
    def acquire(self, datasource_id: str) -> AsyncContextManager[Any]:
        """Return a scoped connection for the datasource."""
        ...


class ConnectionLease:
    """
    Scoped connection for one operation.

    Use as:
        async with provisioner.acquire("main") as conn:
            ...
    """

    def __init__(self, provisioner: "EngineProvisioner", datasource_id: str) -> None:
        self.provisioner = provisioner
        self.datasource_id = datasource_id
        self._conn: AsyncConnection | None = None

    async def __aenter__(self) -> AsyncConnection:
        if self._conn is not None:
            raise RuntimeError("ConnectionLease is already active; nested use is not allowed")

        engine = self.provisioner.engine_for(self.datasource_id)
        try:
            self._conn = await engine.connect()
        except (SQLAlchemyError, OSError) as exc:
            observe_connection_acquire(self.datasource_id, False)
            raise DatasourceResolutionError(
                f"Unable to connect to datasource '{self.datasource_id}'."
            ) from exc

        observe_connection_acquire(self.datasource_id, True)
        logger.debug("Acquired connection for datasource %s", self.datasource_id)
        return self._conn

    async def __aexit__(self, exc_type, exc, tb) -> bool:
        try:
            if self._conn is not None:
                await self._conn.close()
        finally:
            self._conn = None
            logger.debug("Released connection for datasource %s", self.datasource_id)

        # propagate exceptions (if any)
        return False


class EngineProvisioner(ConnectionProvisioner):
    """
    Provisioner backed by SQLAlchemy asyncio engines, one per datasource.

    Engines are built lazily with NullPool, so every acquisition opens a new
    DBAPI connection and releasing it really closes it.
    """

    def __init__(self, datasources: Mapping[str, DatasourceConfig]) -> None:
        self._datasources = dict(datasources)
        self._engines: dict[str, AsyncEngine] = {}

    def engine_for(self, datasource_id: str) -> AsyncEngine:
        """
        Resolve the engine for a datasource, creating it on first use.

        Raises:
            DatasourceResolutionError: If the datasource is unknown, has no
                connection URL, or its URL/driver cannot be loaded
        """
        engine = self._engines.get(datasource_id)
        if engine is not None:
            return engine

        datasource = self._datasources.get(datasource_id)
        if datasource is None:
            raise DatasourceResolutionError(f"Datasource '{datasource_id}' not found.")

        if not datasource.url:
            raise DatasourceResolutionError(
                f"Connection string for datasource '{datasource_id}' is not available."
            )

        try:
            engine = create_async_engine(
                datasource.url,
                poolclass=NullPool,
                echo=datasource.echo,
                connect_args=dict(datasource.connect_args),
            )
        except (SQLAlchemyError, ImportError) as exc:
            raise DatasourceResolutionError(
                f"Datasource '{datasource_id}' has an unusable connection configuration."
            ) from exc

        self._engines[datasource_id] = engine
        return engine

    def acquire(self, datasource_id: str) -> ConnectionLease:
        return ConnectionLease(self, datasource_id)

    async def dispose(self) -> None:
        """Dispose every engine created so far."""
        engines = list(self._engines.values())
        self._engines.clear()
        for engine in engines:
            await engine.dispose()
