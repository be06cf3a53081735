"""Integration tests for the flows, run against in-memory storage."""

import asyncio
from decimal import Decimal
from uuid import uuid4

import pytest

from ledger.audit import AuditLogger
from ledger.config import get_settings
from ledger.models.audit import AuditEventType
from ledger.models.entities import (
    Category,
    Person,
    Purpose,
    Transaction,
    TransactionDraft,
    TransactionType,
)
from ledger.models.validation import OutcomeStatus, RejectionReason
from ledger.orchestrator import (
    CategoryFlow,
    PersonFlow,
    ReportFlow,
    TransactionFlow,
    create_app_components,
)
from ledger.services.storage import (
    InMemoryAuditStorage,
    InMemoryLedgerStorage,
    IntegrityError,
    StorageError,
)
from ledger.validation import TransactionValidator


class FailingWriteStorage(InMemoryLedgerStorage):
    """Reads work, transaction writes fail."""

    async def save_transaction(self, transaction: Transaction) -> Transaction:
        raise StorageError("Failed to save transaction: quota exceeded")


class FailingReadStorage(InMemoryLedgerStorage):
    """Every lookup and report read fails."""

    async def find_person(self, person_id: int):
        raise StorageError("Failed to get person: read timeout")

    async def list_persons_with_transactions(self):
        raise StorageError("Failed to load persons report data: read timeout")


def draft(person_id, category_id, transaction_type, value="50.00", description="Entry"):
    return TransactionDraft(
        description=description,
        value=Decimal(value),
        type=transaction_type,
        person_id=person_id,
        category_id=category_id,
    )


def build(storage=None):
    storage = storage or InMemoryLedgerStorage()
    audit_storage = InMemoryAuditStorage()
    audit_logger = AuditLogger(audit_storage)
    validator = TransactionValidator(adult_age=18)
    return (
        storage,
        audit_storage,
        PersonFlow(storage, audit_logger),
        CategoryFlow(storage, audit_logger),
        TransactionFlow(storage, validator, audit_logger),
        ReportFlow(storage, audit_logger),
    )


class TestTransactionFlow:

    def test_accepted_draft_is_saved_with_identity(self):
        async def scenario():
            storage, audit, persons, categories, transactions, _ = build()
            ana = await persons.create_person(Person(name="Ana", age=30))
            misc = await categories.create_category(
                Category(description="Misc", purpose=Purpose.BOTH)
            )
            correlation_id = uuid4()
            outcome = await transactions.create_transaction(
                draft(ana.id, misc.id, TransactionType.INCOME, "100.50"),
                correlation_id=correlation_id,
            )
            events = await audit.get_events_by_correlation_id(correlation_id)
            return outcome, await transactions.list_transactions(), events

        outcome, stored, events = asyncio.run(scenario())
        assert outcome.status == OutcomeStatus.CREATED
        assert outcome.transaction.id == 1
        assert outcome.transaction.value == Decimal("100.50")
        assert outcome.to_wire()["type"] == "Receita"
        assert len(stored) == 1
        assert [e.event_type for e in events] == [
            AuditEventType.TRANSACTION_ACCEPTED,
            AuditEventType.TRANSACTION_SAVED,
        ]

    def test_rejected_draft_is_not_saved(self):
        async def scenario():
            storage, audit, persons, categories, transactions, _ = build()
            kid = await persons.create_person(Person(name="Kid", age=16))
            misc = await categories.create_category(
                Category(description="Misc", purpose=Purpose.BOTH)
            )
            outcome = await transactions.create_transaction(
                draft(kid.id, misc.id, TransactionType.INCOME)
            )
            return outcome, await transactions.list_transactions(), await audit.get_recent_events()

        outcome, stored, events = asyncio.run(scenario())
        assert outcome.status == OutcomeStatus.REJECTED
        assert outcome.reason == RejectionReason.MINOR_RESTRICTED_TO_EXPENSE
        assert outcome.message == "Minors may only record expense transactions."
        assert stored == []
        rejected = [
            e for e in events if e.event_type == AuditEventType.TRANSACTION_REJECTED
        ]
        assert len(rejected) == 1
        assert rejected[0].details["reason"] == "minor_restricted_to_expense"

    def test_unknown_references_are_rejected(self):
        async def scenario():
            _, _, persons, _, transactions, _ = build()
            ana = await persons.create_person(Person(name="Ana", age=30))
            no_person = await transactions.create_transaction(
                draft(42, 1, TransactionType.EXPENSE)
            )
            no_category = await transactions.create_transaction(
                draft(ana.id, 42, TransactionType.EXPENSE)
            )
            return no_person, no_category

        no_person, no_category = asyncio.run(scenario())
        assert no_person.reason == RejectionReason.PERSON_NOT_FOUND
        assert no_category.reason == RejectionReason.CATEGORY_NOT_FOUND

    def test_validate_only_does_not_save(self):
        async def scenario():
            _, _, persons, categories, transactions, _ = build()
            ana = await persons.create_person(Person(name="Ana", age=30))
            food = await categories.create_category(
                Category(description="Food", purpose=Purpose.EXPENSE)
            )
            result = await transactions.validate_transaction(
                draft(ana.id, food.id, TransactionType.EXPENSE)
            )
            return result, await transactions.list_transactions()

        result, stored = asyncio.run(scenario())
        assert result.accepted
        assert stored == []

    def test_write_failure_is_reported_verbatim(self):
        async def scenario():
            _, audit, persons, categories, transactions, _ = build(FailingWriteStorage())
            ana = await persons.create_person(Person(name="Ana", age=30))
            food = await categories.create_category(
                Category(description="Food", purpose=Purpose.EXPENSE)
            )
            outcome = await transactions.create_transaction(
                draft(ana.id, food.id, TransactionType.EXPENSE)
            )
            return outcome, await audit.get_recent_events()

        outcome, events = asyncio.run(scenario())
        assert outcome.status == OutcomeStatus.PERSISTENCE_FAILURE
        assert outcome.message == "Failed to save transaction: quota exceeded"
        assert outcome.to_wire()["error"] == "persistence_failure"
        assert AuditEventType.SAVE_FAILED in [e.event_type for e in events]

    def test_sub_cent_value_is_stored_rounded(self):
        async def scenario():
            _, _, persons, categories, transactions, _ = build()
            ana = await persons.create_person(Person(name="Ana", age=30))
            food = await categories.create_category(
                Category(description="Food", purpose=Purpose.EXPENSE)
            )
            return await transactions.create_transaction(
                draft(ana.id, food.id, TransactionType.EXPENSE, "10.005")
            )

        outcome = asyncio.run(scenario())
        assert outcome.is_created
        assert outcome.to_wire()["value"] == "10.01"

    def test_lookup_failure_is_audited_and_raised(self):
        async def scenario():
            _, audit, _, _, transactions, _ = build(FailingReadStorage())
            correlation_id = uuid4()
            try:
                await transactions.create_transaction(
                    draft(1, 1, TransactionType.EXPENSE),
                    correlation_id=correlation_id,
                )
            except StorageError as e:
                events = await audit.get_events_by_correlation_id(correlation_id)
                return str(e), events
            return None, []

        error, events = asyncio.run(scenario())
        assert error == "Failed to get person: read timeout"
        assert [e.event_type for e in events] == [AuditEventType.STORAGE_ERROR]
        assert events[0].details == {"operation": "transaction_lookup"}

    def test_get_transaction(self):
        async def scenario():
            _, _, persons, categories, transactions, _ = build()
            ana = await persons.create_person(Person(name="Ana", age=30))
            food = await categories.create_category(
                Category(description="Food", purpose=Purpose.EXPENSE)
            )
            outcome = await transactions.create_transaction(
                draft(ana.id, food.id, TransactionType.EXPENSE, "9.99")
            )
            return (
                await transactions.get_transaction(outcome.transaction.id),
                await transactions.get_transaction(999),
            )

        found, missing = asyncio.run(scenario())
        assert found.value == Decimal("9.99")
        assert missing is None


class TestReportFlow:

    def test_totals_by_person_wire_shape(self):
        async def scenario():
            _, _, persons, categories, transactions, reports = build()
            ana = await persons.create_person(Person(name="Ana", age=30))
            await persons.create_person(Person(name="Bruno", age=15))
            misc = await categories.create_category(
                Category(description="Misc", purpose=Purpose.BOTH)
            )
            await transactions.create_transaction(
                draft(ana.id, misc.id, TransactionType.INCOME, "200.00")
            )
            await transactions.create_transaction(
                draft(ana.id, misc.id, TransactionType.EXPENSE, "50.00")
            )
            return await reports.totals_by_person()

        wire = asyncio.run(scenario())
        assert wire["persons"] == [
            {
                "id": 1,
                "name": "Ana",
                "age": 30,
                "totalIncome": "200.00",
                "totalExpenses": "50.00",
                "balance": "150.00",
            },
            {
                "id": 2,
                "name": "Bruno",
                "age": 15,
                "totalIncome": "0",
                "totalExpenses": "0",
                "balance": "0",
            },
        ]
        assert wire["overall"] == {
            "totalIncome": "200.00",
            "totalExpenses": "50.00",
            "balance": "150.00",
        }

    def test_totals_by_category(self):
        async def scenario():
            _, _, persons, categories, transactions, reports = build()
            ana = await persons.create_person(Person(name="Ana", age=30))
            food = await categories.create_category(
                Category(description="Food", purpose=Purpose.EXPENSE)
            )
            await categories.create_category(
                Category(description="Salary", purpose=Purpose.INCOME)
            )
            await transactions.create_transaction(
                draft(ana.id, food.id, TransactionType.EXPENSE, "12.34")
            )
            return await reports.totals_by_category()

        wire = asyncio.run(scenario())
        assert [c["description"] for c in wire["categories"]] == ["Food", "Salary"]
        assert wire["categories"][0]["purpose"] == "Despesa"
        assert wire["categories"][0]["balance"] == "-12.34"
        assert wire["categories"][1]["purpose"] == "Receita"
        assert wire["overall"]["totalExpenses"] == "12.34"

    def test_report_read_failure_is_audited_and_raised(self):
        async def scenario():
            _, audit, _, _, _, reports = build(FailingReadStorage())
            correlation_id = uuid4()
            with pytest.raises(StorageError):
                await reports.person_report(correlation_id=correlation_id)
            return await audit.get_events_by_correlation_id(correlation_id)

        events = asyncio.run(scenario())
        assert [e.event_type for e in events] == [AuditEventType.STORAGE_ERROR]
        assert events[0].error_message == (
            "Failed to load persons report data: read timeout"
        )

    def test_deleting_person_removes_their_totals(self):
        async def scenario():
            _, _, persons, categories, transactions, reports = build()
            ana = await persons.create_person(Person(name="Ana", age=30))
            bruno = await persons.create_person(Person(name="Bruno", age=30))
            misc = await categories.create_category(
                Category(description="Misc", purpose=Purpose.BOTH)
            )
            await transactions.create_transaction(
                draft(ana.id, misc.id, TransactionType.INCOME, "80.00")
            )
            await transactions.create_transaction(
                draft(bruno.id, misc.id, TransactionType.INCOME, "20.00")
            )
            await persons.delete_person(ana.id)
            return await reports.person_report(), await reports.category_report()

        by_person, by_category = asyncio.run(scenario())
        assert [row.name for row in by_person.persons] == ["Bruno"]
        assert by_person.overall.total_income == Decimal("20.00")
        assert by_category.overall.total_income == Decimal("20.00")


class TestPersonAndCategoryFlows:

    def test_update_person(self):
        async def scenario():
            _, _, persons, _, _, _ = build()
            ana = await persons.create_person(Person(name="Ana", age=17))
            await persons.update_person(ana.id, Person(name="Ana", age=18))
            return await persons.get_person(ana.id)

        assert asyncio.run(scenario()).age == 18

    def test_update_person_with_mismatched_id(self):
        async def scenario():
            _, _, persons, _, _, _ = build()
            ana = await persons.create_person(Person(name="Ana", age=17))
            await persons.update_person(ana.id, Person(id=ana.id + 1, name="Ana", age=18))

        with pytest.raises(ValueError):
            asyncio.run(scenario())

    def test_delete_category_in_use_is_blocked_and_audited(self):
        async def scenario():
            _, audit, persons, categories, transactions, _ = build()
            ana = await persons.create_person(Person(name="Ana", age=30))
            food = await categories.create_category(
                Category(description="Food", purpose=Purpose.EXPENSE)
            )
            await transactions.create_transaction(
                draft(ana.id, food.id, TransactionType.EXPENSE)
            )
            try:
                await categories.delete_category(food.id)
            except IntegrityError:
                return await audit.get_events_by_entity("category", food.id)
            return None

        events = asyncio.run(scenario())
        assert events is not None
        assert events[-1].event_type == AuditEventType.CATEGORY_DELETE_BLOCKED

    def test_list_and_get(self):
        async def scenario():
            _, _, persons, categories, _, _ = build()
            await persons.create_person(Person(name="Ana", age=30))
            salary = await categories.create_category(
                Category(description="Salary", purpose="Receita")
            )
            return (
                await persons.list_persons(),
                await categories.list_categories(),
                await categories.get_category(salary.id),
            )

        all_persons, all_categories, salary = asyncio.run(scenario())
        assert [p.name for p in all_persons] == ["Ana"]
        assert len(all_categories) == 1
        assert salary.purpose == Purpose.INCOME


class TestAppComponents:

    def test_unconfigured_sheets_falls_back_to_memory(self, monkeypatch, tmp_path):
        monkeypatch.chdir(tmp_path)
        monkeypatch.setenv("STORAGE_BACKEND", "google_sheets")
        monkeypatch.delenv("GOOGLE_SHEETS_CREDENTIALS_PATH", raising=False)
        monkeypatch.delenv("GOOGLE_SHEETS_SPREADSHEET_ID", raising=False)
        get_settings.cache_clear()
        try:
            components = create_app_components()
        finally:
            get_settings.cache_clear()
        assert isinstance(components.storage, InMemoryLedgerStorage)

    def test_without_storage_uses_memory(self):
        components = create_app_components(use_storage=False)
        assert isinstance(components.storage, InMemoryLedgerStorage)

        async def scenario():
            person = await components.persons.create_person(Person(name="Ana", age=30))
            category = await components.categories.create_category(
                Category(description="Misc", purpose=Purpose.BOTH)
            )
            outcome = await components.transactions.create_transaction(
                draft(person.id, category.id, TransactionType.INCOME)
            )
            return outcome, await components.reports.totals_by_person()

        outcome, wire = asyncio.run(scenario())
        assert outcome.is_created
        assert wire["overall"]["totalIncome"] == "50.00"
