from prometheus_client import Counter, Histogram

OPERATION_TOTAL = Counter(
    "schemaops_operation_total",
    "Schema object operations by object type, operation and outcome.",
    ["object_type", "operation", "status"],
)

OPERATION_LATENCY_SECONDS = Histogram(
    "schemaops_operation_latency_seconds",
    "End-to-end latency of schema object operations, connection acquisition included.",
    ["object_type", "operation"],
)

CONNECTION_ACQUIRE_TOTAL = Counter(
    "schemaops_connection_acquire_total",
    "Datasource connection acquisitions by outcome.",
    ["datasource_id", "status"],
)
