"""Tests for the in-memory storage backends."""

import asyncio
from decimal import Decimal
from uuid import uuid4

import pytest

from ledger.models.audit import AuditEventBuilder
from ledger.models.entities import Category, Person, Purpose, Transaction, TransactionType
from ledger.services.storage import (
    InMemoryAuditStorage,
    InMemoryLedgerStorage,
    IntegrityError,
    NotFoundError,
)


def run(coro):
    return asyncio.run(coro)


def make_transaction(person_id: int, category_id: int, value: str = "10.00") -> Transaction:
    return Transaction(
        description="Test",
        value=Decimal(value),
        type=TransactionType.EXPENSE,
        person_id=person_id,
        category_id=category_id,
    )


class TestInMemoryLedgerStorage:

    def test_ids_are_assigned_in_sequence(self):
        async def scenario():
            storage = InMemoryLedgerStorage()
            first = await storage.save_person(Person(name="Ana", age=30))
            second = await storage.save_person(Person(name="Bruno", age=12))
            return first, second

        first, second = run(scenario())
        assert first.id == 1
        assert second.id == 2

    def test_find_missing_returns_none(self):
        async def scenario():
            storage = InMemoryLedgerStorage()
            return (
                await storage.find_person(99),
                await storage.find_category(99),
                await storage.find_transaction(99),
            )

        assert run(scenario()) == (None, None, None)

    def test_returned_objects_are_copies(self):
        async def scenario():
            storage = InMemoryLedgerStorage()
            saved = await storage.save_person(Person(name="Ana", age=30))
            saved.name = "Changed"
            return await storage.find_person(saved.id)

        assert run(scenario()).name == "Ana"

    def test_update_person(self):
        async def scenario():
            storage = InMemoryLedgerStorage()
            saved = await storage.save_person(Person(name="Ana", age=30))
            await storage.update_person(saved.model_copy(update={"age": 31}))
            return await storage.find_person(saved.id)

        assert run(scenario()).age == 31

    def test_update_missing_person_raises(self):
        storage = InMemoryLedgerStorage()
        with pytest.raises(NotFoundError):
            run(storage.update_person(Person(id=7, name="Ghost", age=40)))

    def test_delete_person_cascades_to_transactions(self):
        async def scenario():
            storage = InMemoryLedgerStorage()
            ana = await storage.save_person(Person(name="Ana", age=30))
            bruno = await storage.save_person(Person(name="Bruno", age=30))
            food = await storage.save_category(
                Category(description="Food", purpose=Purpose.EXPENSE)
            )
            await storage.save_transaction(make_transaction(ana.id, food.id))
            await storage.save_transaction(make_transaction(bruno.id, food.id))

            deleted = await storage.delete_person(ana.id)
            return deleted, await storage.list_transactions()

        deleted, remaining = run(scenario())
        assert deleted is True
        assert [t.person_id for t in remaining] == [2]

    def test_delete_missing_person_returns_false(self):
        assert run(InMemoryLedgerStorage().delete_person(1)) is False

    def test_delete_category_in_use_is_restricted(self):
        async def scenario():
            storage = InMemoryLedgerStorage()
            ana = await storage.save_person(Person(name="Ana", age=30))
            food = await storage.save_category(
                Category(description="Food", purpose=Purpose.EXPENSE)
            )
            await storage.save_transaction(make_transaction(ana.id, food.id))
            await storage.delete_category(food.id)

        with pytest.raises(IntegrityError):
            run(scenario())

    def test_delete_unused_category(self):
        async def scenario():
            storage = InMemoryLedgerStorage()
            food = await storage.save_category(
                Category(description="Food", purpose=Purpose.EXPENSE)
            )
            deleted = await storage.delete_category(food.id)
            return deleted, await storage.list_categories()

        deleted, categories = run(scenario())
        assert deleted is True
        assert categories == []

    def test_save_transaction_with_dangling_reference_fails(self):
        storage = InMemoryLedgerStorage()
        with pytest.raises(IntegrityError):
            run(storage.save_transaction(make_transaction(1, 1)))

    def test_report_reads_pair_entities_with_transactions(self):
        async def scenario():
            storage = InMemoryLedgerStorage()
            ana = await storage.save_person(Person(name="Ana", age=30))
            await storage.save_person(Person(name="Bruno", age=30))
            food = await storage.save_category(
                Category(description="Food", purpose=Purpose.EXPENSE)
            )
            await storage.save_category(Category(description="Misc", purpose=Purpose.BOTH))
            await storage.save_transaction(make_transaction(ana.id, food.id, "5.00"))
            return (
                await storage.list_persons_with_transactions(),
                await storage.list_categories_with_transactions(),
            )

        persons, categories = run(scenario())
        assert [p.person.name for p in persons] == ["Ana", "Bruno"]
        assert len(persons[0].transactions) == 1
        assert persons[1].transactions == []
        assert [c.category.description for c in categories] == ["Food", "Misc"]
        assert categories[0].transactions[0].value == Decimal("5.00")


class TestInMemoryAuditStorage:

    def test_events_by_correlation_and_entity(self):
        async def scenario():
            storage = InMemoryAuditStorage()
            correlation_id = uuid4()
            await storage.append_event(AuditEventBuilder.person_created(1, "Ana", correlation_id))
            await storage.append_event(AuditEventBuilder.person_deleted(1, correlation_id))
            await storage.append_event(AuditEventBuilder.person_created(2, "Bruno", uuid4()))
            return (
                await storage.get_events_by_correlation_id(correlation_id),
                await storage.get_events_by_entity("person", 1),
                await storage.get_recent_events(limit=2),
            )

        by_correlation, by_entity, recent = run(scenario())
        assert len(by_correlation) == 2
        assert len(by_entity) == 2
        assert len(recent) == 2
