from __future__ import annotations

import pytest

from schemaops.context import OperationContext
from schemaops.service import SchemaObjectService

from tests._fakes import (
    FakeDatabase,
    FakeIndexCapability,
    FakeIntrospector,
    FakePrimaryKeyCapability,
    FakeUniqueConstraintCapability,
    RecordingAuditSink,
    RecordingProvisioner,
)


@pytest.fixture
def fake_db() -> FakeDatabase:
    """
    In-memory store with an "orders" table (no primary key) in the default
    schema and a "sales.invoices" table.
    """
    db = FakeDatabase()
    db.schemas.add("sales")
    db.add_table("orders")
    db.add_table("invoices", schema_name="sales")
    return db


@pytest.fixture
def provisioner(fake_db: FakeDatabase) -> RecordingProvisioner:
    return RecordingProvisioner({"main": fake_db})


@pytest.fixture
def audit_sink() -> RecordingAuditSink:
    return RecordingAuditSink()


@pytest.fixture
def pk_capability() -> FakePrimaryKeyCapability:
    return FakePrimaryKeyCapability()


@pytest.fixture
def index_capability() -> FakeIndexCapability:
    return FakeIndexCapability()


@pytest.fixture
def unique_capability() -> FakeUniqueConstraintCapability:
    return FakeUniqueConstraintCapability()


@pytest.fixture
def service(
    provisioner: RecordingProvisioner,
    audit_sink: RecordingAuditSink,
    pk_capability: FakePrimaryKeyCapability,
    index_capability: FakeIndexCapability,
    unique_capability: FakeUniqueConstraintCapability,
) -> SchemaObjectService:
    return SchemaObjectService(
        provisioner,
        audit_sink=audit_sink,
        introspector=FakeIntrospector(),
        primary_keys=pk_capability,
        indexes=index_capability,
        unique_constraints=unique_capability,
    )


@pytest.fixture
def ctx() -> OperationContext:
    return OperationContext(user="alice", is_authenticated=True, request_id="req-1")
