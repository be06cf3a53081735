"""
Validation and Outcome Models

A rejected draft is an expected result, not an error. The validator
returns a ValidationResult; the transaction flow wraps it, together with
the storage write, into a TransactionOutcome.
"""

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field

from ledger.models.entities import Transaction


class RejectionReason(str, Enum):
    """Why a draft was refused."""
    INVALID_VALUE = "invalid_value"
    INVALID_FIELD = "invalid_field"
    PERSON_NOT_FOUND = "person_not_found"
    CATEGORY_NOT_FOUND = "category_not_found"
    MINOR_RESTRICTED_TO_EXPENSE = "minor_restricted_to_expense"
    CATEGORY_PURPOSE_MISMATCH = "category_purpose_mismatch"


REJECTION_MESSAGES = {
    RejectionReason.INVALID_VALUE: "Transaction value must be a positive amount.",
    RejectionReason.INVALID_FIELD: "Transaction description is required.",
    RejectionReason.PERSON_NOT_FOUND: "Person not found.",
    RejectionReason.CATEGORY_NOT_FOUND: "Category not found.",
    RejectionReason.MINOR_RESTRICTED_TO_EXPENSE: (
        "Minors may only record expense transactions."
    ),
    RejectionReason.CATEGORY_PURPOSE_MISMATCH: (
        "Category purpose does not match transaction type."
    ),
}


class ValidationResult(BaseModel):
    """Result of validating one draft."""

    validated_at: datetime = Field(
        default_factory=datetime.utcnow
    )
    accepted: bool = Field(
        ...,
        description="Did the draft pass every check?"
    )
    reason: Optional[RejectionReason] = None
    message: Optional[str] = Field(
        default=None,
        description="Human-readable reason, set only on rejection"
    )

    @classmethod
    def accept(cls) -> "ValidationResult":
        return cls(accepted=True)

    @classmethod
    def reject(
        cls,
        reason: RejectionReason,
        message: Optional[str] = None,
    ) -> "ValidationResult":
        return cls(
            accepted=False,
            reason=reason,
            message=message or REJECTION_MESSAGES[reason],
        )

    @property
    def is_rejected(self) -> bool:
        return not self.accepted


class OutcomeStatus(str, Enum):
    """Final status of a transaction-creation request."""
    CREATED = "created"
    REJECTED = "rejected"
    PERSISTENCE_FAILURE = "persistence_failure"


class TransactionOutcome(BaseModel):
    """
    What the transport layer gets back from a creation request.

    CREATED carries the stored transaction (with its storage-assigned id).
    REJECTED carries the rejection reason. PERSISTENCE_FAILURE carries the
    storage error text verbatim.
    """

    status: OutcomeStatus
    transaction: Optional[Transaction] = None
    reason: Optional[RejectionReason] = None
    message: Optional[str] = None

    @property
    def is_created(self) -> bool:
        return self.status == OutcomeStatus.CREATED

    def to_wire(self) -> dict:
        """Body for the transport response."""
        if self.is_created and self.transaction is not None:
            return self.transaction.to_wire()
        return {
            "error": self.status.value,
            "reason": self.reason.value if self.reason else None,
            "message": self.message,
        }
