from __future__ import annotations

import asyncio

import pytest
from sqlalchemy.exc import OperationalError

from schemaops.context import OperationContext
from schemaops.db.models import MutationResult, PrimaryKeyDefinition
from schemaops.dtos import PrimaryKeyConstraintDto
from schemaops.errors import (
    DatasourceResolutionError,
    MutationFailedError,
    NotFoundError,
    PermissionDeniedError,
    PostconditionViolationError,
    ValidationError,
)
from schemaops.service import SchemaObjectService

from tests._fakes import DenyAllPermissions, FakeIntrospector


async def test_get_on_table_without_primary_key_raises_not_found(service, ctx, provisioner, audit_sink) -> None:
    with pytest.raises(NotFoundError) as exc_info:
        await service.get_primary_key(ctx, "main", "orders")

    assert str(exc_info.value) == "Primary key constraint not found on table 'orders'"
    # read failures are not audited
    assert audit_sink.events == []
    assert provisioner.active == 0


async def test_create_returns_store_state_and_audits_once(service, ctx, provisioner, audit_sink) -> None:
    created = await service.create_primary_key(
        ctx, "main", "orders", PrimaryKeyConstraintDto(column_names=["id"])
    )

    assert created.column_names == ["id"]
    # name assigned by the store, not taken from the request
    assert created.constraint_name == "pk_generated"

    assert len(audit_sink.events) == 1
    event = audit_sink.events[0]
    assert event.success is True
    assert event.operation == "primary-keys/create"
    assert event.message == "Primary key constraint 'pk_generated' created successfully."
    assert event.object_name == "pk_generated"
    assert event.column_names == ("id",)
    assert event.datasource_id == "main"
    assert event.table_name == "orders"
    assert event.user_identifier == "alice"
    assert event.request_id == "req-1"
    assert provisioner.active == 0


async def test_create_then_get_returns_same_column_set(service, ctx) -> None:
    await service.create_primary_key(
        ctx, "main", "orders", PrimaryKeyConstraintDto(column_names=["tenant_id", "id"])
    )

    found = await service.get_primary_key(ctx, "main", "orders")

    assert set(found.column_names) == {"tenant_id", "id"}


async def test_get_success_is_audited(service, ctx, audit_sink) -> None:
    await service.create_primary_key(ctx, "main", "orders", PrimaryKeyConstraintDto(column_names=["id"]))
    audit_sink.events.clear()

    await service.get_primary_key(ctx, "main", "orders")

    assert [(e.operation, e.success) for e in audit_sink.events] == [("primary-keys/get", True)]
    assert audit_sink.events[0].message == "Retrieved primary key constraint for table 'orders'"


async def test_drop_then_get_raises_not_found(service, ctx, audit_sink, provisioner) -> None:
    await service.create_primary_key(ctx, "main", "orders", PrimaryKeyConstraintDto(column_names=["id"]))

    await service.drop_primary_key(ctx, "main", "orders")

    with pytest.raises(NotFoundError):
        await service.get_primary_key(ctx, "main", "orders")

    assert [(e.operation, e.success) for e in audit_sink.events] == [
        ("primary-keys/create", True),
        ("primary-keys/drop", True),
    ]
    assert audit_sink.events[1].message == "Primary key constraint dropped successfully."
    assert provisioner.active == 0


async def test_create_twice_keeps_single_primary_key(service, ctx, fake_db, audit_sink) -> None:
    first = await service.create_primary_key(
        ctx, "main", "orders", PrimaryKeyConstraintDto(column_names=["id"], constraint_name="pk_orders")
    )
    second = await service.create_primary_key(
        ctx, "main", "orders", PrimaryKeyConstraintDto(column_names=["other_id"])
    )

    # the second call reports the pre-existing key rather than a duplicate
    assert second == first
    assert fake_db.tables[(None, "orders")].primary_key.column_names == ("id",)
    assert [e.success for e in audit_sink.events] == [True, True]
    assert audit_sink.events[1].message == (
        "Primary key constraint 'pk_orders' already exists on table 'orders'."
    )


async def test_create_with_zero_columns_fails_before_any_io(service, ctx, provisioner, audit_sink) -> None:
    with pytest.raises(ValidationError) as exc_info:
        await service.create_primary_key(ctx, "main", "orders", PrimaryKeyConstraintDto(column_names=[]))

    assert exc_info.value.errors == {"column_names": "At least one column is required."}
    assert provisioner.acquired == []
    assert audit_sink.events == []


@pytest.mark.parametrize(
    "column_names",
    [[" "], ["id", "ID"], ["id", None]],
)
async def test_create_rejects_malformed_columns(service, ctx, provisioner, column_names) -> None:
    with pytest.raises(ValidationError):
        await service.create_primary_key(
            ctx, "main", "orders", PrimaryKeyConstraintDto(column_names=column_names)
        )

    assert provisioner.acquired == []


async def test_create_rejects_missing_definition(service, ctx, provisioner) -> None:
    with pytest.raises(ValidationError) as exc_info:
        await service.create_primary_key(ctx, "main", "orders", None)

    assert "primary_key" in exc_info.value.errors
    assert provisioner.acquired == []


@pytest.mark.parametrize("datasource_id, table_name", [("", "orders"), ("main", "  ")])
async def test_blank_locator_fields_fail_validation(service, ctx, provisioner, datasource_id, table_name) -> None:
    with pytest.raises(ValidationError):
        await service.get_primary_key(ctx, datasource_id, table_name)

    assert provisioner.acquired == []


async def test_missing_schema_is_reported_before_missing_table(service, ctx, fake_db) -> None:
    with pytest.raises(NotFoundError) as exc_info:
        await service.create_primary_key(
            ctx, "main", "ghost", PrimaryKeyConstraintDto(column_names=["id"]), schema_name="nope"
        )

    assert str(exc_info.value) == "Schema 'nope' not found in datasource 'main'"
    assert fake_db.introspection_calls == ["schema:nope"]


async def test_missing_table_messages(service, ctx) -> None:
    with pytest.raises(NotFoundError) as exc_info:
        await service.get_primary_key(ctx, "main", "ghost")
    assert str(exc_info.value) == "Table 'ghost' not found in datasource 'main'"

    with pytest.raises(NotFoundError) as exc_info:
        await service.get_primary_key(ctx, "main", "ghost", schema_name="sales")
    assert str(exc_info.value) == "Table 'ghost' not found in schema 'sales' of datasource 'main'"


@pytest.mark.parametrize("schema_name", [None, "", "   ", "_"])
async def test_unspecified_schema_skips_schema_check(service, ctx, fake_db, schema_name) -> None:
    await service.create_primary_key(
        ctx, "main", "orders", PrimaryKeyConstraintDto(column_names=["id"]), schema_name=schema_name
    )

    assert fake_db.introspection_calls == ["table:orders"]


async def test_schema_name_is_trimmed(service, ctx, fake_db) -> None:
    created = await service.create_primary_key(
        ctx, "main", "invoices", PrimaryKeyConstraintDto(column_names=["id"]), schema_name=" sales "
    )

    assert created.column_names == ["id"]
    assert fake_db.tables[("sales", "invoices")].primary_key is not None


async def test_failed_create_names_columns_and_audits_failure(service, ctx, pk_capability, audit_sink) -> None:
    pk_capability.create_result = MutationResult.FAILED

    with pytest.raises(MutationFailedError) as exc_info:
        await service.create_primary_key(
            ctx, "main", "orders", PrimaryKeyConstraintDto(column_names=["id", "tenant_id"])
        )

    message = "Failed to create primary key constraint on columns (id, tenant_id) for an unknown reason."
    assert str(exc_info.value) == message
    assert [(e.success, e.message) for e in audit_sink.events] == [(False, message)]


async def test_failed_create_names_requested_constraint(service, ctx, pk_capability) -> None:
    pk_capability.create_result = MutationResult.FAILED

    with pytest.raises(MutationFailedError) as exc_info:
        await service.create_primary_key(
            ctx,
            "main",
            "orders",
            PrimaryKeyConstraintDto(column_names=["id"], constraint_name="pk_orders"),
        )

    assert str(exc_info.value) == "Failed to create primary key constraint 'pk_orders' for an unknown reason."


async def test_driver_error_is_wrapped_not_leaked(service, ctx, pk_capability, audit_sink, provisioner) -> None:
    pk_capability.raise_on_create = True

    with pytest.raises(MutationFailedError) as exc_info:
        await service.create_primary_key(ctx, "main", "orders", PrimaryKeyConstraintDto(column_names=["id"]))

    assert isinstance(exc_info.value.__cause__, OperationalError)
    assert "secret detail" not in str(exc_info.value)
    assert len(audit_sink.events) == 1
    assert audit_sink.events[0].success is False
    assert "secret detail" not in audit_sink.events[0].message
    assert provisioner.active == 0


async def test_create_that_silently_no_ops_is_a_postcondition_violation(
    service, ctx, pk_capability, audit_sink
) -> None:
    pk_capability.silently_ignore_create = True

    with pytest.raises(PostconditionViolationError) as exc_info:
        await service.create_primary_key(ctx, "main", "orders", PrimaryKeyConstraintDto(column_names=["id"]))

    assert str(exc_info.value) == "Failed to retrieve the created primary key constraint."
    assert [(e.operation, e.success) for e in audit_sink.events] == [("primary-keys/create", False)]


async def test_unchanged_create_with_successful_reread_is_success(service, ctx, pk_capability, fake_db) -> None:
    # store reports "already there" and the re-read confirms it
    fake_db.tables[(None, "orders")].primary_key = PrimaryKeyDefinition(
        table_name="orders", column_names=("id",), constraint_name="orders_pkey"
    )
    pk_capability.create_result = MutationResult.UNCHANGED

    created = await service.create_primary_key(
        ctx, "main", "orders", PrimaryKeyConstraintDto(column_names=["id"])
    )

    assert created.constraint_name == "orders_pkey"


async def test_drop_absent_primary_key_is_not_found(service, ctx, pk_capability, audit_sink) -> None:
    with pytest.raises(NotFoundError) as exc_info:
        await service.drop_primary_key(ctx, "main", "orders")

    assert str(exc_info.value) == "Primary key constraint not found on table 'orders'"
    assert pk_capability.drop_calls == 0
    assert [(e.operation, e.success) for e in audit_sink.events] == [("primary-keys/drop", False)]


async def test_failed_drop_raises_mutation_failed(service, ctx, pk_capability, audit_sink) -> None:
    await service.create_primary_key(ctx, "main", "orders", PrimaryKeyConstraintDto(column_names=["id"]))
    pk_capability.drop_result = MutationResult.FAILED

    with pytest.raises(MutationFailedError) as exc_info:
        await service.drop_primary_key(ctx, "main", "orders")

    assert str(exc_info.value) == (
        "Failed to drop primary key constraint on table 'orders' for an unknown reason."
    )
    assert [e.success for e in audit_sink.events] == [True, False]


async def test_drop_that_silently_no_ops_is_a_postcondition_violation(service, ctx, pk_capability, audit_sink) -> None:
    await service.create_primary_key(ctx, "main", "orders", PrimaryKeyConstraintDto(column_names=["id"]))
    pk_capability.silently_ignore_drop = True

    with pytest.raises(PostconditionViolationError):
        await service.drop_primary_key(ctx, "main", "orders")

    assert [e.success for e in audit_sink.events] == [True, False]


async def test_permission_denied_opens_no_connection(provisioner, audit_sink, pk_capability, ctx) -> None:
    permissions = DenyAllPermissions()
    service = SchemaObjectService(
        provisioner,
        permissions=permissions,
        audit_sink=audit_sink,
        introspector=FakeIntrospector(),
        primary_keys=pk_capability,
    )

    with pytest.raises(PermissionDeniedError) as exc_info:
        await service.create_primary_key(ctx, "main", "orders", PrimaryKeyConstraintDto(column_names=["id"]))

    assert str(exc_info.value) == (
        "Access denied for operation 'primary-keys/create' on datasource 'main', table 'orders'."
    )
    assert permissions.calls == ["primary-keys/create"]
    assert provisioner.acquired == []
    assert audit_sink.events == []


async def test_missing_context_is_rejected(service, provisioner) -> None:
    with pytest.raises(ValidationError) as exc_info:
        await service.get_primary_key(None, "main", "orders")

    assert exc_info.value.errors == {"context": "is required"}
    assert provisioner.acquired == []


async def test_unknown_datasource_is_not_audited(service, ctx, audit_sink) -> None:
    with pytest.raises(DatasourceResolutionError) as exc_info:
        await service.get_primary_key(ctx, "warehouse", "orders")

    assert str(exc_info.value) == "Datasource 'warehouse' not found."
    assert audit_sink.events == []


async def test_cancellation_after_acquire_releases_connection(service, ctx, pk_capability, provisioner, audit_sink) -> None:
    pk_capability.block_on_create = asyncio.Event()

    task = asyncio.create_task(
        service.create_primary_key(ctx, "main", "orders", PrimaryKeyConstraintDto(column_names=["id"]))
    )
    while pk_capability.create_calls == 0:
        await asyncio.sleep(0)
    assert provisioner.active == 1

    task.cancel()
    with pytest.raises(asyncio.CancelledError):
        await task

    assert provisioner.active == 0
    assert audit_sink.events == []


async def test_concurrent_creates_leave_one_primary_key(service, ctx, fake_db, audit_sink) -> None:
    results = await asyncio.gather(
        *(
            service.create_primary_key(
                ctx, "main", "orders", PrimaryKeyConstraintDto(column_names=[column])
            )
            for column in ("id", "code", "uuid")
        )
    )

    stored = fake_db.tables[(None, "orders")].primary_key
    assert stored is not None
    assert all(result.column_names == list(stored.column_names) for result in results)
    assert len(audit_sink.events) == 3


async def test_context_is_not_mutated(service) -> None:
    ctx = OperationContext(user="bob", properties={"tenant": "acme"})

    await service.create_primary_key(ctx, "main", "orders", PrimaryKeyConstraintDto(column_names=["id"]))

    assert ctx == OperationContext(user="bob", properties={"tenant": "acme"})


@pytest.mark.parametrize(
    "datasource_id, table_name, schema_name, field",
    [
        (42, "orders", None, "datasource_id"),
        ("main", 42, None, "table_name"),
        ("main", "orders", 42, "schema_name"),
    ],
)
async def test_non_string_locator_fields_fail_validation(
    service, ctx, provisioner, datasource_id, table_name, schema_name, field
) -> None:
    with pytest.raises(ValidationError) as exc_info:
        await service.get_primary_key(ctx, datasource_id, table_name, schema_name=schema_name)

    assert field in exc_info.value.errors
    assert provisioner.acquired == []


async def test_permission_denied_with_non_string_table_is_still_typed(provisioner, ctx) -> None:
    service = SchemaObjectService(provisioner, permissions=DenyAllPermissions(), introspector=FakeIntrospector())

    with pytest.raises(PermissionDeniedError) as exc_info:
        await service.drop_primary_key(ctx, "main", 42)

    assert str(exc_info.value) == "Access denied for operation 'primary-keys/drop' on datasource 'main'."
