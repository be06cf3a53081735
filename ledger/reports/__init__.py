"""Report aggregation package."""

from ledger.reports.aggregator import (
    aggregate_by_category,
    aggregate_by_person,
    sum_totals,
    summarize_transactions,
)

__all__ = [
    "aggregate_by_category",
    "aggregate_by_person",
    "sum_totals",
    "summarize_transactions",
]
