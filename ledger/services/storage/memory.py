"""
In-Memory Storage Implementation

Used by tests and local development. Holds everything in insertion-ordered
dicts and hands out copies, so callers can never mutate stored state.
"""

import asyncio
from itertools import count
from typing import Optional
from uuid import UUID

from ledger.models.audit import AuditEvent
from ledger.models.entities import (
    Category,
    CategoryWithTransactions,
    Person,
    PersonWithTransactions,
    Transaction,
)
from ledger.services.storage.interface import (
    AuditStorageInterface,
    IntegrityError,
    LedgerStorageInterface,
    NotFoundError,
)


class InMemoryLedgerStorage(LedgerStorageInterface):
    """In-memory ledger storage used by tests/dev."""

    def __init__(self) -> None:
        self._persons: dict[int, Person] = {}
        self._categories: dict[int, Category] = {}
        self._transactions: dict[int, Transaction] = {}
        self._person_ids = count(1)
        self._category_ids = count(1)
        self._transaction_ids = count(1)
        self._lock = asyncio.Lock()

    async def find_person(self, person_id: int) -> Optional[Person]:
        person = self._persons.get(person_id)
        return person.model_copy() if person else None

    async def list_persons(self) -> list[Person]:
        return [person.model_copy() for person in self._persons.values()]

    async def save_person(self, person: Person) -> Person:
        async with self._lock:
            stored = person.model_copy(update={"id": next(self._person_ids)})
            self._persons[stored.id] = stored
            return stored.model_copy()

    async def update_person(self, person: Person) -> Person:
        async with self._lock:
            if person.id not in self._persons:
                raise NotFoundError(f"Person not found: {person.id}")
            stored = person.model_copy()
            self._persons[person.id] = stored
            return stored.model_copy()

    async def delete_person(self, person_id: int) -> bool:
        async with self._lock:
            if person_id not in self._persons:
                return False
            del self._persons[person_id]
            # Cascade
            self._transactions = {
                transaction_id: transaction
                for transaction_id, transaction in self._transactions.items()
                if transaction.person_id != person_id
            }
            return True

    async def find_category(self, category_id: int) -> Optional[Category]:
        category = self._categories.get(category_id)
        return category.model_copy() if category else None

    async def list_categories(self) -> list[Category]:
        return [category.model_copy() for category in self._categories.values()]

    async def save_category(self, category: Category) -> Category:
        async with self._lock:
            stored = category.model_copy(update={"id": next(self._category_ids)})
            self._categories[stored.id] = stored
            return stored.model_copy()

    async def delete_category(self, category_id: int) -> bool:
        async with self._lock:
            if category_id not in self._categories:
                return False
            in_use = sum(
                1 for transaction in self._transactions.values()
                if transaction.category_id == category_id
            )
            if in_use:
                raise IntegrityError(
                    f"Category {category_id} is referenced by {in_use} transaction(s)"
                )
            del self._categories[category_id]
            return True

    async def find_transaction(self, transaction_id: int) -> Optional[Transaction]:
        transaction = self._transactions.get(transaction_id)
        return transaction.model_copy() if transaction else None

    async def list_transactions(self) -> list[Transaction]:
        return [transaction.model_copy() for transaction in self._transactions.values()]

    async def save_transaction(self, transaction: Transaction) -> Transaction:
        async with self._lock:
            if transaction.person_id not in self._persons:
                raise IntegrityError(f"Person not found: {transaction.person_id}")
            if transaction.category_id not in self._categories:
                raise IntegrityError(f"Category not found: {transaction.category_id}")
            stored = transaction.model_copy(update={"id": next(self._transaction_ids)})
            self._transactions[stored.id] = stored
            return stored.model_copy()

    async def list_persons_with_transactions(self) -> list[PersonWithTransactions]:
        return [
            PersonWithTransactions(
                person=person.model_copy(),
                transactions=[
                    transaction.model_copy()
                    for transaction in self._transactions.values()
                    if transaction.person_id == person.id
                ],
            )
            for person in self._persons.values()
        ]

    async def list_categories_with_transactions(self) -> list[CategoryWithTransactions]:
        return [
            CategoryWithTransactions(
                category=category.model_copy(),
                transactions=[
                    transaction.model_copy()
                    for transaction in self._transactions.values()
                    if transaction.category_id == category.id
                ],
            )
            for category in self._categories.values()
        ]


class InMemoryAuditStorage(AuditStorageInterface):
    """In-memory, append-only audit log used by tests/dev."""

    def __init__(self) -> None:
        self._events: list[AuditEvent] = []

    async def append_event(self, event: AuditEvent) -> bool:
        self._events.append(event)
        return True

    async def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        events = [e for e in self._events if e.correlation_id == correlation_id]
        return sorted(events, key=lambda e: e.timestamp)

    async def get_events_by_entity(
        self,
        entity_type: str,
        entity_id: int,
    ) -> list[AuditEvent]:
        events = [
            e for e in self._events
            if e.entity_type == entity_type and e.entity_id == entity_id
        ]
        return sorted(events, key=lambda e: e.timestamp)

    async def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        events = sorted(self._events, key=lambda e: e.timestamp, reverse=True)
        return events[:limit]
