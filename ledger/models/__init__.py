"""
Data Models Package

This package contains all Pydantic models used in the Household Ledger.
All data flowing through the system must conform to these schemas.
"""

from ledger.models.entities import (
    MAX_DESCRIPTION_LENGTH,
    MAX_NAME_LENGTH,
    MAX_TRANSACTION_VALUE,
    Category,
    CategoryWithTransactions,
    Person,
    PersonWithTransactions,
    Purpose,
    Transaction,
    TransactionDraft,
    TransactionType,
)
from ledger.models.report import (
    CategoryReport,
    CategoryTotals,
    PersonReport,
    PersonTotals,
    Totals,
)
from ledger.models.validation import (
    OutcomeStatus,
    RejectionReason,
    TransactionOutcome,
    ValidationResult,
)
from ledger.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)

__all__ = [
    # Entity models
    "MAX_DESCRIPTION_LENGTH",
    "MAX_NAME_LENGTH",
    "MAX_TRANSACTION_VALUE",
    "Category",
    "CategoryWithTransactions",
    "Person",
    "PersonWithTransactions",
    "Purpose",
    "Transaction",
    "TransactionDraft",
    "TransactionType",
    # Report models
    "CategoryReport",
    "CategoryTotals",
    "PersonReport",
    "PersonTotals",
    "Totals",
    # Validation models
    "OutcomeStatus",
    "RejectionReason",
    "TransactionOutcome",
    "ValidationResult",
    # Audit models
    "AuditEvent",
    "AuditEventBuilder",
    "AuditEventType",
    "AuditSeverity",
]
