"""
Audit Logger

DESIGN DECISION: Every write, and every refused write, is logged.
This provides:
1. Traceability of who recorded what
2. Debugging capability when storage fails
3. A history that survives cascade deletes

The audit logger:
- Is async like the storage it writes to
- Gracefully handles failures (never breaks the request it is auditing)
- Supports correlation IDs to trace the events of one request
"""

from typing import Optional
from uuid import UUID, uuid4

import structlog

from ledger.models.audit import AuditEvent, AuditEventBuilder
from ledger.services.storage import AuditStorageInterface


# Configure structlog for local logging
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.processors.JSONRenderer()
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)


class AuditLogger:
    """
    Central audit logging service.

    Logs events both to:
    1. Structured local log (for debugging)
    2. Audit storage (for persistence), when configured
    """

    def __init__(
        self,
        storage: Optional[AuditStorageInterface] = None,
    ):
        """
        Initialize audit logger.

        Args:
            storage: Storage backend for persistence.
                    If None, only logs locally.
        """
        self._storage = storage
        self._logger = structlog.get_logger(__name__)

    async def log(self, event: AuditEvent) -> bool:
        """
        Log an audit event.

        Always logs locally. Persists to storage if available.

        Returns True if storage write succeeded (or no storage configured).
        """
        log_dict = event.to_log_dict()

        if event.severity.value in ("error", "critical"):
            self._logger.error("audit_event", **log_dict)
        elif event.severity.value == "warning":
            self._logger.warning("audit_event", **log_dict)
        elif event.severity.value == "debug":
            self._logger.debug("audit_event", **log_dict)
        else:
            self._logger.info("audit_event", **log_dict)

        if self._storage:
            try:
                return await self._storage.append_event(event)
            except Exception as e:
                # Log failure but don't raise
                self._logger.error(
                    "audit_storage_failed",
                    error=str(e),
                    event_id=str(event.event_id),
                )
                return False

        return True

    async def log_person_created(
        self,
        person_id: int,
        name: str,
        correlation_id: UUID,
    ) -> None:
        await self.log(AuditEventBuilder.person_created(
            person_id=person_id,
            name=name,
            correlation_id=correlation_id,
        ))

    async def log_person_updated(
        self,
        person_id: int,
        name: str,
        correlation_id: UUID,
    ) -> None:
        await self.log(AuditEventBuilder.person_updated(
            person_id=person_id,
            name=name,
            correlation_id=correlation_id,
        ))

    async def log_person_deleted(
        self,
        person_id: int,
        correlation_id: UUID,
    ) -> None:
        await self.log(AuditEventBuilder.person_deleted(
            person_id=person_id,
            correlation_id=correlation_id,
        ))

    async def log_category_created(
        self,
        category_id: int,
        description: str,
        purpose: str,
        correlation_id: UUID,
    ) -> None:
        await self.log(AuditEventBuilder.category_created(
            category_id=category_id,
            description=description,
            purpose=purpose,
            correlation_id=correlation_id,
        ))

    async def log_category_deleted(
        self,
        category_id: int,
        correlation_id: UUID,
    ) -> None:
        await self.log(AuditEventBuilder.category_deleted(
            category_id=category_id,
            correlation_id=correlation_id,
        ))

    async def log_category_delete_blocked(
        self,
        category_id: int,
        error_message: str,
        correlation_id: UUID,
    ) -> None:
        await self.log(AuditEventBuilder.category_delete_blocked(
            category_id=category_id,
            error_message=error_message,
            correlation_id=correlation_id,
        ))

    async def log_transaction_accepted(
        self,
        person_id: int,
        category_id: int,
        correlation_id: UUID,
    ) -> None:
        await self.log(AuditEventBuilder.transaction_accepted(
            person_id=person_id,
            category_id=category_id,
            correlation_id=correlation_id,
        ))

    async def log_transaction_rejected(
        self,
        reason: str,
        message: str,
        details: dict,
        correlation_id: UUID,
    ) -> None:
        await self.log(AuditEventBuilder.transaction_rejected(
            reason=reason,
            message=message,
            details=details,
            correlation_id=correlation_id,
        ))

    async def log_transaction_saved(
        self,
        transaction_id: int,
        transaction_type: str,
        value: str,
        correlation_id: UUID,
    ) -> None:
        await self.log(AuditEventBuilder.transaction_saved(
            transaction_id=transaction_id,
            transaction_type=transaction_type,
            value=value,
            correlation_id=correlation_id,
        ))

    async def log_save_failed(
        self,
        entity_type: str,
        error_message: str,
        correlation_id: UUID,
    ) -> None:
        await self.log(AuditEventBuilder.save_failed(
            entity_type=entity_type,
            error_message=error_message,
            correlation_id=correlation_id,
        ))

    async def log_report_generated(
        self,
        report_type: str,
        row_count: int,
        correlation_id: UUID,
    ) -> None:
        await self.log(AuditEventBuilder.report_generated(
            report_type=report_type,
            row_count=row_count,
            correlation_id=correlation_id,
        ))

    async def log_storage_error(
        self,
        operation: str,
        error_message: str,
        correlation_id: UUID,
    ) -> None:
        await self.log(AuditEventBuilder.storage_error(
            operation=operation,
            error_message=error_message,
            correlation_id=correlation_id,
        ))


def create_correlation_id() -> UUID:
    """
    Create a new correlation ID for tracking related events.

    Use this at the start of each request and pass it through
    every subsequent step.
    """
    return uuid4()
