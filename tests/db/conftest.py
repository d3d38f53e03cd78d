from __future__ import annotations

import os
import re
import uuid
from collections.abc import AsyncIterator, Callable, Iterator
from pathlib import Path

import pytest
import pytest_asyncio
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine

from schemaops.audit import AuditEvent, AuditSink
from schemaops.config import DatasourceConfig
from schemaops.context import OperationContext
from schemaops.db.provisioner import EngineProvisioner
from schemaops.service import SchemaObjectService


class ListAuditSink(AuditSink):
    def __init__(self) -> None:
        self.events: list[AuditEvent] = []

    async def write(self, event: AuditEvent) -> None:
        self.events.append(event)


@pytest.fixture
def sqlite_path(tmp_path: Path) -> Path:
    return tmp_path / "schemaops.db"


@pytest.fixture
def sync_engine(sqlite_path: Path) -> Iterator[Engine]:
    """
    Plain pysqlite engine used to set up tables outside the code under test.
    """
    eng = create_engine(f"sqlite:///{sqlite_path}")
    yield eng
    eng.dispose()


def _sanitize_table_name(name: str) -> str:
    name = re.sub(r"[^a-zA-Z0-9_]+", "_", name).strip("_").lower()
    if not name:
        name = "t"
    return name[:48]


@pytest.fixture
def table_factory(sync_engine: Engine, request: pytest.FixtureRequest) -> Callable[[str], str]:
    """
    Factory fixture creating per-test tables.

    Usage:
        table = table_factory("id INTEGER NOT NULL, customer_id INTEGER")
    """

    def _create(columns_sql: str) -> str:
        base = _sanitize_table_name(f"t_{request.node.name}")
        table = f"{base}_{uuid.uuid4().hex[:10]}"
        with sync_engine.begin() as conn:
            conn.exec_driver_sql(f'CREATE TABLE "{table}" ({columns_sql})')
        return table

    return _create


@pytest_asyncio.fixture
async def engine_provisioner(sqlite_path: Path) -> AsyncIterator[EngineProvisioner]:
    provisioner = EngineProvisioner(
        {"main": DatasourceConfig(datasource_id="main", url=f"sqlite+aiosqlite:///{sqlite_path}")}
    )
    yield provisioner
    await provisioner.dispose()


@pytest.fixture
def audit_events() -> ListAuditSink:
    return ListAuditSink()


@pytest.fixture
def sqlite_service(engine_provisioner: EngineProvisioner, audit_events: ListAuditSink) -> SchemaObjectService:
    return SchemaObjectService(engine_provisioner, audit_sink=audit_events)


@pytest.fixture
def ctx() -> OperationContext:
    return OperationContext(user="alice", is_authenticated=True)


@pytest.fixture(scope="session")
def server_db_url() -> str:
    """
    URL of a database that can alter primary keys, e.g.
    postgresql+asyncpg://user:pw@127.0.0.1:5432/test_db

    Tests using this fixture are skipped when SCHEMAOPS_TEST_DB_URL is unset.
    """
    url = os.environ.get("SCHEMAOPS_TEST_DB_URL")
    if not url:
        pytest.skip("SCHEMAOPS_TEST_DB_URL is not set")
    return url
