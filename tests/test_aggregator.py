"""Tests for report aggregation."""

from decimal import Decimal

from ledger.models.entities import (
    Category,
    CategoryWithTransactions,
    Person,
    PersonWithTransactions,
    Purpose,
    Transaction,
    TransactionType,
)
from ledger.reports import (
    aggregate_by_category,
    aggregate_by_person,
    sum_totals,
    summarize_transactions,
)


def income(value: str, person_id: int = 1, category_id: int = 1) -> Transaction:
    return Transaction(
        description="Income",
        value=Decimal(value),
        type=TransactionType.INCOME,
        person_id=person_id,
        category_id=category_id,
    )


def expense(value: str, person_id: int = 1, category_id: int = 1) -> Transaction:
    return Transaction(
        description="Expense",
        value=Decimal(value),
        type=TransactionType.EXPENSE,
        person_id=person_id,
        category_id=category_id,
    )


def person_entry(person_id: int, name: str, transactions=None, age: int = 30):
    return PersonWithTransactions(
        person=Person(id=person_id, name=name, age=age),
        transactions=transactions or [],
    )


class TestPersonAggregation:

    def test_single_person_totals(self):
        report = aggregate_by_person([
            person_entry(1, "P1", [income("200"), expense("50")]),
        ])
        row = report.persons[0]
        assert row.total_income == Decimal("200")
        assert row.total_expenses == Decimal("50")
        assert row.balance == Decimal("150")

    def test_person_without_transactions_appears_with_zeros(self):
        report = aggregate_by_person([
            person_entry(1, "Busy", [income("200"), expense("50")]),
            person_entry(2, "Idle"),
        ])
        idle = report.persons[1]
        assert idle.name == "Idle"
        assert (idle.total_income, idle.total_expenses, idle.balance) == (0, 0, 0)

        busy = report.persons[0]
        assert report.overall.total_income == busy.total_income
        assert report.overall.total_expenses == busy.total_expenses
        assert report.overall.balance == busy.balance

    def test_rows_keep_input_order(self):
        report = aggregate_by_person([
            person_entry(3, "Carla"),
            person_entry(1, "Ana"),
            person_entry(2, "Bruno"),
        ])
        assert [row.id for row in report.persons] == [3, 1, 2]

    def test_overall_is_sum_of_rows(self):
        report = aggregate_by_person([
            person_entry(1, "A", [income("10.10"), expense("3.05")]),
            person_entry(2, "B", [expense("7.00")]),
            person_entry(3, "C", [income("0.01")]),
        ])
        assert report.overall.total_income == sum(r.total_income for r in report.persons)
        assert report.overall.total_expenses == sum(r.total_expenses for r in report.persons)
        assert report.overall.balance == (
            report.overall.total_income - report.overall.total_expenses
        )

    def test_aggregation_is_idempotent(self):
        persons = [
            person_entry(1, "A", [income("10"), expense("2.50")]),
            person_entry(2, "B"),
        ]
        assert aggregate_by_person(persons) == aggregate_by_person(persons)

    def test_no_persons_gives_zero_overall(self):
        report = aggregate_by_person([])
        assert report.persons == []
        assert report.overall.total_income == Decimal("0")
        assert report.overall.balance == Decimal("0")

    def test_decimal_sums_do_not_drift(self):
        report = aggregate_by_person([
            person_entry(1, "A", [income("0.10") for _ in range(10)]),
        ])
        assert report.persons[0].total_income == Decimal("1.00")

    def test_negative_balance(self):
        report = aggregate_by_person([
            person_entry(1, "A", [income("20"), expense("45.99")]),
        ])
        assert report.persons[0].balance == Decimal("-25.99")


class TestCategoryAggregation:

    def test_category_totals(self):
        report = aggregate_by_category([
            CategoryWithTransactions(
                category=Category(id=1, description="Food", purpose=Purpose.EXPENSE),
                transactions=[expense("12.50"), expense("7.50")],
            ),
            CategoryWithTransactions(
                category=Category(id=2, description="Misc", purpose=Purpose.BOTH),
                transactions=[income("100"), expense("30")],
            ),
            CategoryWithTransactions(
                category=Category(id=3, description="Unused", purpose=Purpose.INCOME),
            ),
        ])
        food, misc, unused = report.categories
        assert food.total_expenses == Decimal("20.00")
        assert food.balance == Decimal("-20.00")
        assert misc.balance == Decimal("70")
        assert misc.purpose == Purpose.BOTH
        assert unused.total_income == Decimal("0")
        assert report.overall.total_income == Decimal("100")
        assert report.overall.total_expenses == Decimal("50.00")
        assert report.overall.balance == Decimal("50.00")

    def test_category_wire_shape(self):
        report = aggregate_by_category([
            CategoryWithTransactions(
                category=Category(id=1, description="Misc", purpose=Purpose.BOTH),
                transactions=[income("5.00")],
            ),
        ])
        wire = report.to_wire()
        assert set(wire) == {"categories", "overall"}
        assert wire["categories"][0] == {
            "id": 1,
            "description": "Misc",
            "purpose": "Ambas",
            "totalIncome": "5.00",
            "totalExpenses": "0",
            "balance": "5.00",
        }


class TestHelpers:

    def test_summarize_empty(self):
        totals = summarize_transactions([])
        assert totals.total_income == 0
        assert totals.total_expenses == 0
        assert totals.balance == 0

    def test_sum_totals(self):
        rows = [
            summarize_transactions([income("3")]),
            summarize_transactions([expense("1")]),
        ]
        overall = sum_totals(rows)
        assert overall.total_income == Decimal("3")
        assert overall.total_expenses == Decimal("1")
        assert overall.balance == Decimal("2")
