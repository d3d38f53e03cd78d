from __future__ import annotations

from ..metrics.registry import (
    CONNECTION_ACQUIRE_TOTAL,
    OPERATION_LATENCY_SECONDS,
    OPERATION_TOTAL,
)


def observe_operation(object_type: str, operation: str, status: str, latency_s: float) -> None:
    """
    Record the outcome and latency of one schema object operation.

    Args:
        object_type: Object kind label (e.g. "primary_key", "index")
        operation: Operation label ("get", "list", "create", "drop")
        status: "success" or "error"
        latency_s: Wall-clock duration in seconds
    """
    OPERATION_TOTAL.labels(object_type=object_type, operation=operation, status=status).inc()
    OPERATION_LATENCY_SECONDS.labels(object_type=object_type, operation=operation).observe(latency_s)


def observe_connection_acquire(datasource_id: str, success: bool) -> None:
    status = "success" if success else "error"
    CONNECTION_ACQUIRE_TOTAL.labels(datasource_id=datasource_id, status=status).inc()
