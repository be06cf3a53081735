"""
Transaction Validation

DESIGN DECISION: Validation happens in two stages, first failure wins:

STAGE 1 - INPUT CHECKS:
- Value is a finite, positive amount of at least one cent once rounded
- Description is present and not too long
- Referenced person and category exist

STAGE 2 - BUSINESS RULES:
- Minors may only record expenses
- The category's purpose must accept the transaction type

The order is fixed so a given draft always produces the same rejection.

IMPORTANT: The validator never raises for a rejected draft and never
touches storage. The caller looks up the person and category, and
persists the transaction only after acceptance.
"""

from decimal import Decimal
from typing import Optional

from ledger.config import get_settings
from ledger.models.entities import (
    CENT,
    Category,
    Person,
    Purpose,
    TransactionDraft,
    TransactionType,
    round_to_cents,
)
from ledger.models.validation import RejectionReason, ValidationResult


DEFAULT_ADULT_AGE = 18

# Which transaction types each purpose accepts. Every purpose has an entry,
# so the table is total.
PURPOSE_ACCEPTS = {
    Purpose.EXPENSE: frozenset({TransactionType.EXPENSE}),
    Purpose.INCOME: frozenset({TransactionType.INCOME}),
    Purpose.BOTH: frozenset({TransactionType.EXPENSE, TransactionType.INCOME}),
}


def is_category_compatible(purpose: Purpose, transaction_type: TransactionType) -> bool:
    """Does a category with this purpose accept this transaction type?"""
    return transaction_type in PURPOSE_ACCEPTS[purpose]


def check_rules(
    age: int,
    purpose: Purpose,
    transaction_type: TransactionType,
    adult_age: int = DEFAULT_ADULT_AGE,
) -> Optional[RejectionReason]:
    """
    Business rule table.

    Returns the first violated rule, or None if the combination is allowed.
    """
    if age < adult_age and transaction_type != TransactionType.EXPENSE:
        return RejectionReason.MINOR_RESTRICTED_TO_EXPENSE

    if not is_category_compatible(purpose, transaction_type):
        return RejectionReason.CATEGORY_PURPOSE_MISMATCH

    return None


class TransactionValidator:
    """
    Decides whether a transaction draft may be recorded.

    Thresholds come from settings unless given explicitly.
    """

    def __init__(
        self,
        adult_age: Optional[int] = None,
        max_value: Optional[Decimal] = None,
        max_description_length: Optional[int] = None,
    ):
        settings = get_settings().app
        self._adult_age = settings.adult_age if adult_age is None else adult_age
        self._max_value = settings.max_transaction_value if max_value is None else max_value
        self._max_description_length = (
            settings.max_description_length
            if max_description_length is None
            else max_description_length
        )

    @property
    def adult_age(self) -> int:
        return self._adult_age

    def _check_value(self, value: Decimal) -> Optional[str]:
        if not value.is_finite():
            return "Transaction value must be a finite number."
        if value <= 0:
            return "Transaction value must be greater than zero."
        if value > self._max_value:
            return f"Transaction value must not exceed {self._max_value}."
        # Sub-cent values are accepted and stored rounded to cents
        rounded = round_to_cents(value)
        if rounded < CENT:
            return f"Transaction value must be at least {CENT}."
        if rounded > self._max_value:
            return f"Transaction value must not exceed {self._max_value}."
        return None

    def _check_description(self, description: str) -> Optional[str]:
        if not description or not description.strip():
            return "Transaction description is required."
        if len(description) > self._max_description_length:
            return (
                "Transaction description must be at most "
                f"{self._max_description_length} characters."
            )
        return None

    def validate(
        self,
        draft: TransactionDraft,
        person: Optional[Person],
        category: Optional[Category],
    ) -> ValidationResult:
        """
        Run both stages against an already-fetched person and category.

        Args:
            draft: The transaction submitted for recording
            person: The person draft.person_id resolved to, or None
            category: The category draft.category_id resolved to, or None

        Returns:
            ValidationResult, accepted or carrying the first rejection
        """
        # Stage 1: input checks
        value_problem = self._check_value(draft.value)
        if value_problem:
            return ValidationResult.reject(RejectionReason.INVALID_VALUE, value_problem)

        description_problem = self._check_description(draft.description)
        if description_problem:
            return ValidationResult.reject(
                RejectionReason.INVALID_FIELD, description_problem
            )

        if person is None:
            return ValidationResult.reject(RejectionReason.PERSON_NOT_FOUND)

        if category is None:
            return ValidationResult.reject(RejectionReason.CATEGORY_NOT_FOUND)

        # Stage 2: business rules
        reason = check_rules(
            age=person.age,
            purpose=category.purpose,
            transaction_type=draft.type,
            adult_age=self._adult_age,
        )
        if reason is not None:
            return ValidationResult.reject(reason)

        return ValidationResult.accept()
