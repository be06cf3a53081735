"""
Core Data Models for Household Ledger

These models define the schemas for people, categories and transactions.
They are designed to:
1. Enforce field constraints at runtime
2. Translate enums between integer codes and their wire names
3. Be serializable for storage and for the JSON boundary

DESIGN DECISION: Enums are integers in memory (0=Expense, 1=Income, 2=Both)
and symbolic names on the wire ("Despesa", "Receita", "Ambas"). The
translation lives in the field type so every model gets it for free.
"""

from decimal import ROUND_HALF_UP, Decimal
from enum import IntEnum
from typing import Annotated, Any, Optional

from pydantic import (
    BaseModel,
    BeforeValidator,
    ConfigDict,
    Field,
    PlainSerializer,
)
from pydantic.alias_generators import to_camel


CENT = Decimal("0.01")
MAX_TRANSACTION_VALUE = Decimal("999999999.99")
MAX_NAME_LENGTH = 200
MAX_DESCRIPTION_LENGTH = 400


def round_to_cents(value: Decimal) -> Decimal:
    """Round half up to two decimal places, the precision values are stored at."""
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


# =============================================================================
# ENUMS - Finite set of valid values
# =============================================================================

class TransactionType(IntEnum):
    """
    Kind of a transaction.

    The integer value is what consumer code compares against;
    the wire name is what the JSON boundary carries.
    """
    EXPENSE = 0
    INCOME = 1

    @property
    def wire_name(self) -> str:
        return _TRANSACTION_TYPE_WIRE_NAMES[self]

    @classmethod
    def from_wire(cls, value: Any) -> "TransactionType":
        return _parse_enum(cls, value, _TRANSACTION_TYPE_WIRE_NAMES)


class Purpose(IntEnum):
    """
    Which transaction types a category accepts.

    BOTH accepts expenses and incomes alike.
    """
    EXPENSE = 0
    INCOME = 1
    BOTH = 2

    @property
    def wire_name(self) -> str:
        return _PURPOSE_WIRE_NAMES[self]

    @classmethod
    def from_wire(cls, value: Any) -> "Purpose":
        return _parse_enum(cls, value, _PURPOSE_WIRE_NAMES)


_TRANSACTION_TYPE_WIRE_NAMES = {
    TransactionType.EXPENSE: "Despesa",
    TransactionType.INCOME: "Receita",
}

_PURPOSE_WIRE_NAMES = {
    Purpose.EXPENSE: "Despesa",
    Purpose.INCOME: "Receita",
    Purpose.BOTH: "Ambas",
}


def _parse_enum(enum_cls, value: Any, wire_names: dict):
    """
    Accept an enum member, its integer code, its wire name or its
    English member name (case-insensitive).
    """
    if isinstance(value, enum_cls):
        return value
    if isinstance(value, bool):
        raise ValueError(f"Invalid {enum_cls.__name__}: {value!r}")
    if isinstance(value, int):
        return enum_cls(value)
    if isinstance(value, str):
        text = value.strip()
        for member, wire_name in wire_names.items():
            if text == wire_name or text.upper() == member.name:
                return member
        if text.isdigit():
            return enum_cls(int(text))
    allowed = ", ".join(wire_names.values())
    raise ValueError(f"Invalid {enum_cls.__name__}: {value!r}. Allowed: {allowed}")


TransactionTypeField = Annotated[
    TransactionType,
    BeforeValidator(TransactionType.from_wire),
    PlainSerializer(lambda t: t.wire_name, return_type=str, when_used="json"),
]

PurposeField = Annotated[
    Purpose,
    BeforeValidator(Purpose.from_wire),
    PlainSerializer(lambda p: p.wire_name, return_type=str, when_used="json"),
]


# =============================================================================
# ENTITIES
# =============================================================================

class LedgerModel(BaseModel):
    """Shared config: stripped strings, camelCase aliases on the wire."""
    model_config = ConfigDict(
        str_strip_whitespace=True,
        alias_generator=to_camel,
        populate_by_name=True,
    )

    def to_wire(self) -> dict:
        """JSON-ready dict with camelCase keys and enum wire names."""
        return self.model_dump(mode="json", by_alias=True)


class Person(LedgerModel):
    """
    A member of the household.

    The id is assigned by storage; it is None until the person is saved.
    """

    id: Optional[int] = None
    name: str = Field(
        ...,
        min_length=1,
        max_length=MAX_NAME_LENGTH,
        description="Person's name"
    )
    age: int = Field(
        ...,
        ge=0,
        description="Age in whole years"
    )


class Category(LedgerModel):
    """A grouping for transactions, restricted by purpose."""

    id: Optional[int] = None
    description: str = Field(
        ...,
        min_length=1,
        max_length=MAX_DESCRIPTION_LENGTH,
    )
    purpose: PurposeField


class Transaction(LedgerModel):
    """
    A recorded transaction.

    CRITICAL: Only drafts accepted by the validator become Transactions.
    Transactions are never updated; they disappear only when their
    person is deleted.
    """

    id: Optional[int] = None
    description: str = Field(
        ...,
        min_length=1,
        max_length=MAX_DESCRIPTION_LENGTH,
    )
    value: Decimal = Field(
        ...,
        gt=0,
        le=MAX_TRANSACTION_VALUE,
        decimal_places=2,
        description="Amount, always positive; the type gives the direction"
    )
    type: TransactionTypeField
    person_id: int
    category_id: int


class TransactionDraft(LedgerModel):
    """
    A transaction submitted for validation, not yet persisted.

    Value and description are deliberately unconstrained here: bad input
    must reach the validator and come back as a typed rejection rather
    than fail at parse time.
    """

    description: str = ""
    value: Decimal = Field(..., allow_inf_nan=True)
    type: TransactionTypeField
    person_id: int
    category_id: int

    def to_transaction(self) -> Transaction:
        """Build the persistable transaction. Only call after acceptance."""
        return Transaction(
            description=self.description,
            value=round_to_cents(self.value),
            type=self.type,
            person_id=self.person_id,
            category_id=self.category_id,
        )


class PersonWithTransactions(BaseModel):
    """A person paired with every transaction they own."""

    person: Person
    transactions: list[Transaction] = Field(default_factory=list)


class CategoryWithTransactions(BaseModel):
    """A category paired with every transaction filed under it."""

    category: Category
    transactions: list[Transaction] = Field(default_factory=list)
