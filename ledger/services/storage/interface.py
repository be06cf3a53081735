"""
Abstract Storage Interface

DESIGN DECISION: We define an abstract interface for storage operations.
This allows us to:
1. Swap Google Sheets for a real database later
2. Use in-memory storage for testing
3. Keep validation and aggregation decoupled from storage

Referential policies belong to storage, not to the engine:
- Deleting a person deletes their transactions (cascade)
- Deleting a category that still has transactions fails (restrict)
Every implementation must guarantee both.
"""

from abc import ABC, abstractmethod
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


class LedgerStorageInterface(ABC):
    """
    Abstract interface for ledger storage operations.

    Identities are assigned by storage on save.
    """

    # --- People ---------------------------------------------------------

    @abstractmethod
    async def find_person(self, person_id: int) -> Optional[Person]:
        """Return the person, or None if no such id."""
        pass

    @abstractmethod
    async def list_persons(self) -> list[Person]:
        """All persons in storage order."""
        pass

    @abstractmethod
    async def save_person(self, person: Person) -> Person:
        """
        Store a new person.

        Returns:
            The stored person, with its id assigned

        Raises:
            StorageError: If save fails
        """
        pass

    @abstractmethod
    async def update_person(self, person: Person) -> Person:
        """
        Replace an existing person's fields.

        Raises:
            NotFoundError: If the person doesn't exist
            StorageError: If update fails
        """
        pass

    @abstractmethod
    async def delete_person(self, person_id: int) -> bool:
        """
        Delete a person and every transaction they own.

        Returns:
            True if deleted, False if no such person
        """
        pass

    # --- Categories -----------------------------------------------------

    @abstractmethod
    async def find_category(self, category_id: int) -> Optional[Category]:
        """Return the category, or None if no such id."""
        pass

    @abstractmethod
    async def list_categories(self) -> list[Category]:
        """All categories in storage order."""
        pass

    @abstractmethod
    async def save_category(self, category: Category) -> Category:
        """Store a new category and return it with its id assigned."""
        pass

    @abstractmethod
    async def delete_category(self, category_id: int) -> bool:
        """
        Delete a category.

        Returns:
            True if deleted, False if no such category

        Raises:
            IntegrityError: If any transaction still references it
        """
        pass

    # --- Transactions ---------------------------------------------------

    @abstractmethod
    async def find_transaction(self, transaction_id: int) -> Optional[Transaction]:
        """Return the transaction, or None if no such id."""
        pass

    @abstractmethod
    async def list_transactions(self) -> list[Transaction]:
        """All transactions in storage order."""
        pass

    @abstractmethod
    async def save_transaction(self, transaction: Transaction) -> Transaction:
        """
        Store an accepted transaction.

        Single attempt; callers must not retry.

        Raises:
            StorageError: If save fails
        """
        pass

    # --- Report reads ---------------------------------------------------

    @abstractmethod
    async def list_persons_with_transactions(self) -> list[PersonWithTransactions]:
        """Every person, in storage order, paired with their transactions."""
        pass

    @abstractmethod
    async def list_categories_with_transactions(self) -> list[CategoryWithTransactions]:
        """Every category, in storage order, paired with its transactions."""
        pass


class AuditStorageInterface(ABC):
    """
    Abstract interface for audit log storage.

    Audit logs are append-only - we never delete or modify them.
    """

    @abstractmethod
    async def append_event(self, event: AuditEvent) -> bool:
        """
        Append an audit event to the log.

        Returns:
            True if logged successfully
        """
        pass

    @abstractmethod
    async def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        """All events of one request, in chronological order."""
        pass

    @abstractmethod
    async def get_events_by_entity(
        self,
        entity_type: str,
        entity_id: int,
    ) -> list[AuditEvent]:
        """All events for one entity, in chronological order."""
        pass

    @abstractmethod
    async def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        """Most recent events, newest first."""
        pass


class StorageError(Exception):
    """Base exception for storage operations."""
    pass


class NotFoundError(StorageError):
    """Entity not found in storage."""
    pass


class IntegrityError(StorageError):
    """Operation would break a referential policy."""
    pass


class ConnectionError(StorageError):
    """Could not connect to storage backend."""
    pass
