from .registry import (
    CONNECTION_ACQUIRE_TOTAL,
    OPERATION_LATENCY_SECONDS,
    OPERATION_TOTAL,
)

__all__ = [
    "CONNECTION_ACQUIRE_TOTAL",
    "OPERATION_LATENCY_SECONDS",
    "OPERATION_TOTAL",
]
