"""
Audit Models for Household Ledger

Every write and every rejected write is logged for audit purposes.
This provides:
1. Traceability of who recorded what
2. Debugging information when a write fails
3. Ability to reconstruct history after deletions

DESIGN DECISION: Audit logs are append-only. We never delete or modify them.
"""

import json
from datetime import datetime
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field


class AuditEventType(str, Enum):
    """Types of events we audit."""
    # People
    PERSON_CREATED = "person_created"
    PERSON_UPDATED = "person_updated"
    PERSON_DELETED = "person_deleted"

    # Categories
    CATEGORY_CREATED = "category_created"
    CATEGORY_DELETED = "category_deleted"
    CATEGORY_DELETE_BLOCKED = "category_delete_blocked"

    # Transactions
    TRANSACTION_ACCEPTED = "transaction_accepted"
    TRANSACTION_REJECTED = "transaction_rejected"
    TRANSACTION_SAVED = "transaction_saved"
    SAVE_FAILED = "save_failed"

    # Reports
    REPORT_GENERATED = "report_generated"

    # Storage events
    STORAGE_ERROR = "storage_error"


class AuditSeverity(str, Enum):
    """Severity level for audit events."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class AuditEvent(BaseModel):
    """
    A single audit event.

    This is the core unit of our audit trail.
    """

    # Identity
    event_id: UUID = Field(
        default_factory=uuid4,
        description="Unique event identifier"
    )
    timestamp: datetime = Field(
        default_factory=datetime.utcnow,
        description="When the event occurred (UTC)"
    )

    # Event classification
    event_type: AuditEventType
    severity: AuditSeverity = Field(default=AuditSeverity.INFO)

    # Context - what entity is this about?
    entity_type: Optional[str] = Field(
        default=None,
        description="Type of entity (e.g., 'person', 'category', 'transaction')"
    )
    entity_id: Optional[int] = Field(
        default=None,
        description="Storage id of the entity this event relates to"
    )

    # Correlation - for tracking related events
    correlation_id: Optional[UUID] = Field(
        default=None,
        description="ID shared by all events of one request"
    )

    description: str = Field(
        ...,
        max_length=500,
        description="Human-readable description of what happened"
    )
    details: dict[str, Any] = Field(default_factory=dict)

    error_message: Optional[str] = None

    is_user_action: bool = Field(
        default=False,
        description="Was this triggered by a user action?"
    )

    def to_log_dict(self) -> dict:
        """Convert to a dictionary suitable for structured logging."""
        return {
            "event_id": str(self.event_id),
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type.value,
            "severity": self.severity.value,
            "entity_type": self.entity_type,
            "entity_id": self.entity_id,
            "correlation_id": str(self.correlation_id) if self.correlation_id else None,
            "description": self.description,
            "details": self.details,
            "error_message": self.error_message,
            "is_user_action": self.is_user_action,
        }

    def to_sheets_row(self) -> list:
        """
        Convert to a row suitable for Google Sheets storage.

        Returns columns in order:
        [event_id, timestamp, event_type, severity, entity_type, entity_id,
         correlation_id, description, details_json, error_message, is_user_action]
        """
        return [
            str(self.event_id),
            self.timestamp.isoformat(),
            self.event_type.value,
            self.severity.value,
            self.entity_type or "",
            str(self.entity_id) if self.entity_id is not None else "",
            str(self.correlation_id) if self.correlation_id else "",
            self.description,
            json.dumps(self.details) if self.details else "",
            self.error_message or "",
            str(self.is_user_action),
        ]


class AuditEventBuilder:
    """
    Helper class to build audit events with common patterns.

    Usage:
        event = AuditEventBuilder.person_created(person_id, name, correlation_id)
        event = AuditEventBuilder.transaction_rejected(reason, message, ...)
    """

    @staticmethod
    def person_created(
        person_id: int,
        name: str,
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.PERSON_CREATED,
            entity_type="person",
            entity_id=person_id,
            correlation_id=correlation_id,
            description=f"Person created: {name}",
            details={"name": name},
            is_user_action=True,
        )

    @staticmethod
    def person_updated(
        person_id: int,
        name: str,
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.PERSON_UPDATED,
            entity_type="person",
            entity_id=person_id,
            correlation_id=correlation_id,
            description=f"Person updated: {name}",
            details={"name": name},
            is_user_action=True,
        )

    @staticmethod
    def person_deleted(
        person_id: int,
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.PERSON_DELETED,
            entity_type="person",
            entity_id=person_id,
            correlation_id=correlation_id,
            description="Person deleted along with their transactions",
            is_user_action=True,
        )

    @staticmethod
    def category_created(
        category_id: int,
        description: str,
        purpose: str,
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.CATEGORY_CREATED,
            entity_type="category",
            entity_id=category_id,
            correlation_id=correlation_id,
            description=f"Category created: {description}",
            details={"purpose": purpose},
            is_user_action=True,
        )

    @staticmethod
    def category_deleted(
        category_id: int,
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.CATEGORY_DELETED,
            entity_type="category",
            entity_id=category_id,
            correlation_id=correlation_id,
            description="Category deleted",
            is_user_action=True,
        )

    @staticmethod
    def category_delete_blocked(
        category_id: int,
        error_message: str,
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.CATEGORY_DELETE_BLOCKED,
            severity=AuditSeverity.WARNING,
            entity_type="category",
            entity_id=category_id,
            correlation_id=correlation_id,
            description="Category still has transactions and was not deleted",
            error_message=error_message,
            is_user_action=True,
        )

    @staticmethod
    def transaction_accepted(
        person_id: int,
        category_id: int,
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.TRANSACTION_ACCEPTED,
            entity_type="person",
            entity_id=person_id,
            correlation_id=correlation_id,
            description="Transaction draft passed validation",
            details={"category_id": category_id},
        )

    @staticmethod
    def transaction_rejected(
        reason: str,
        message: str,
        details: dict,
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.TRANSACTION_REJECTED,
            severity=AuditSeverity.WARNING,
            entity_type="transaction",
            correlation_id=correlation_id,
            description=f"Transaction rejected: {reason}",
            details={**details, "reason": reason, "message": message},
            is_user_action=True,
        )

    @staticmethod
    def transaction_saved(
        transaction_id: int,
        transaction_type: str,
        value: str,
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.TRANSACTION_SAVED,
            entity_type="transaction",
            entity_id=transaction_id,
            correlation_id=correlation_id,
            description=f"Transaction saved: {transaction_type} {value}",
            details={
                "type": transaction_type,
                "value": value,
            },
        )

    @staticmethod
    def save_failed(
        entity_type: str,
        error_message: str,
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SAVE_FAILED,
            severity=AuditSeverity.ERROR,
            entity_type=entity_type,
            correlation_id=correlation_id,
            description=f"Failed to save {entity_type}",
            error_message=error_message,
        )

    @staticmethod
    def report_generated(
        report_type: str,
        row_count: int,
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.REPORT_GENERATED,
            severity=AuditSeverity.DEBUG,
            entity_type="report",
            correlation_id=correlation_id,
            description=f"Report generated: {report_type} with {row_count} rows",
            details={
                "report_type": report_type,
                "row_count": row_count,
            },
        )

    @staticmethod
    def storage_error(
        operation: str,
        error_message: str,
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.STORAGE_ERROR,
            severity=AuditSeverity.ERROR,
            description=f"Storage error during {operation}",
            error_message=error_message,
            details={"operation": operation},
            correlation_id=correlation_id,
        )
