"""
Report Models

Shapes produced by the aggregator. All amounts are Decimal; on the wire
they serialize as decimal strings so no precision is lost in transit.
"""

from decimal import Decimal

from pydantic import Field

from ledger.models.entities import LedgerModel, PurposeField


ZERO = Decimal("0")


class Totals(LedgerModel):
    """Income, expenses and balance for one entity or a whole report."""

    total_income: Decimal = Field(default=ZERO)
    total_expenses: Decimal = Field(default=ZERO)
    balance: Decimal = Field(default=ZERO)


class PersonTotals(LedgerModel):
    """Totals for a single person."""

    id: int
    name: str
    age: int
    total_income: Decimal = Field(default=ZERO)
    total_expenses: Decimal = Field(default=ZERO)
    balance: Decimal = Field(default=ZERO)


class CategoryTotals(LedgerModel):
    """Totals for a single category."""

    id: int
    description: str
    purpose: PurposeField
    total_income: Decimal = Field(default=ZERO)
    total_expenses: Decimal = Field(default=ZERO)
    balance: Decimal = Field(default=ZERO)


class PersonReport(LedgerModel):
    """
    Totals by person.

    `overall` is the sum of the per-person rows, so it always agrees
    with what the rows show.
    """

    persons: list[PersonTotals] = Field(default_factory=list)
    overall: Totals = Field(default_factory=Totals)


class CategoryReport(LedgerModel):
    """Totals by category, with the same overall semantics as PersonReport."""

    categories: list[CategoryTotals] = Field(default_factory=list)
    overall: Totals = Field(default_factory=Totals)
