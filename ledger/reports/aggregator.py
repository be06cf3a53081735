"""
Report Aggregation Engine

DESIGN DECISION: Aggregation is DETERMINISTIC and storage-free.
The caller hands in entities already paired with their transactions;
this module only adds numbers up.

GUARANTEES:
- Output rows follow input order, no sorting
- Entities without transactions appear with zero totals
- `overall` is the sum of the rows, never a separate pass over raw data
- All arithmetic is Decimal
"""

from typing import Iterable

from ledger.models.entities import (
    CategoryWithTransactions,
    PersonWithTransactions,
    Transaction,
    TransactionType,
)
from ledger.models.report import (
    ZERO,
    CategoryReport,
    CategoryTotals,
    PersonReport,
    PersonTotals,
    Totals,
)


def summarize_transactions(transactions: Iterable[Transaction]) -> Totals:
    """Income, expenses and balance over one entity's transactions."""
    total_income = ZERO
    total_expenses = ZERO

    for transaction in transactions:
        if transaction.type == TransactionType.INCOME:
            total_income += transaction.value
        elif transaction.type == TransactionType.EXPENSE:
            total_expenses += transaction.value

    return Totals(
        total_income=total_income,
        total_expenses=total_expenses,
        balance=total_income - total_expenses,
    )


def sum_totals(rows: Iterable) -> Totals:
    """Add up the totals fields of already-computed rows."""
    total_income = ZERO
    total_expenses = ZERO
    balance = ZERO

    for row in rows:
        total_income += row.total_income
        total_expenses += row.total_expenses
        balance += row.balance

    return Totals(
        total_income=total_income,
        total_expenses=total_expenses,
        balance=balance,
    )


def aggregate_by_person(persons: Iterable[PersonWithTransactions]) -> PersonReport:
    """Totals per person plus the overall grand total."""
    rows = []
    for entry in persons:
        totals = summarize_transactions(entry.transactions)
        rows.append(PersonTotals(
            id=entry.person.id,
            name=entry.person.name,
            age=entry.person.age,
            total_income=totals.total_income,
            total_expenses=totals.total_expenses,
            balance=totals.balance,
        ))

    return PersonReport(persons=rows, overall=sum_totals(rows))


def aggregate_by_category(
    categories: Iterable[CategoryWithTransactions],
) -> CategoryReport:
    """Totals per category plus the overall grand total."""
    rows = []
    for entry in categories:
        totals = summarize_transactions(entry.transactions)
        rows.append(CategoryTotals(
            id=entry.category.id,
            description=entry.category.description,
            purpose=entry.category.purpose,
            total_income=totals.total_income,
            total_expenses=totals.total_expenses,
            balance=totals.balance,
        ))

    return CategoryReport(categories=rows, overall=sum_totals(rows))
