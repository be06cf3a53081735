"""Transaction validation package."""

from ledger.validation.validator import (
    PURPOSE_ACCEPTS,
    TransactionValidator,
    check_rules,
    is_category_compatible,
)

__all__ = [
    "PURPOSE_ACCEPTS",
    "TransactionValidator",
    "check_rules",
    "is_category_compatible",
]
