from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Mapping, Optional, Sequence, Tuple

from .context import OperationContext
from .db.models import ObjectLocator

audit_logger = logging.getLogger("schemaops.audit")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class AuditEvent:
    """
    Immutable record of one operation's outcome.
    """
    operation: str
    success: bool
    message: str
    user_identifier: Optional[str] = None
    datasource_id: Optional[str] = None
    schema_name: Optional[str] = None
    table_name: Optional[str] = None
    object_name: Optional[str] = None
    column_names: Tuple[str, ...] = ()
    timestamp: datetime = field(default_factory=_utcnow)
    request_id: Optional[str] = None
    ip_address: Optional[str] = None
    properties: Mapping[str, Any] = field(default_factory=dict)


class AuditSink(ABC):
    """
    Destination for audit events. Durability is the sink's concern.
    """

    @abstractmethod
    async def write(self, event: AuditEvent) -> None:
        ...


class LoggingAuditSink(AuditSink):
    """
    Audit sink writing one log record per event to the "schemaops.audit" logger.
    """

    def __init__(self, logger: logging.Logger | None = None) -> None:
        self.logger = logger or audit_logger

    async def write(self, event: AuditEvent) -> None:
        if event.success:
            self.logger.info(
                "Operation: %s by %s on %s - Success: %s",
                event.operation,
                event.user_identifier or "anonymous",
                event.datasource_id or "N/A",
                event.message,
            )
        else:
            self.logger.warning(
                "Operation: %s by %s on %s - Failed: %s",
                event.operation,
                event.user_identifier or "anonymous",
                event.datasource_id or "N/A",
                event.message or "Unknown error",
            )


class AuditRecorder:
    """
    Builds audit events from an operation's context and outcome and hands
    them to the sink.

    The orchestrator calls record() exactly once per logical operation, after
    the outcome (including any post-condition re-read) is known.
    """

    def __init__(self, sink: AuditSink) -> None:
        self.sink = sink

    async def record(
        self,
        context: OperationContext,
        success: bool,
        message: str,
        *,
        operation: str,
        locator: ObjectLocator | None = None,
        object_name: str | None = None,
        column_names: Sequence[str] = (),
    ) -> AuditEvent:
        event = AuditEvent(
            operation=operation,
            success=success,
            message=message,
            user_identifier=context.user,
            datasource_id=locator.datasource_id if locator else None,
            schema_name=locator.schema_name if locator else None,
            table_name=locator.table_name if locator else None,
            object_name=object_name,
            column_names=tuple(column_names),
            request_id=context.request_id,
            ip_address=context.ip_address,
            properties=dict(context.properties),
        )
        await self.sink.write(event)
        return event
