"""
Main Orchestrator for Household Ledger

This module ties together storage, validation, aggregation and audit,
and defines the end-to-end flows a transport layer calls:
1. Transaction creation (lookup → validate → save)
2. Reports (load → aggregate → wire shape)
3. Person and category maintenance

DESIGN DECISION: The orchestrator enforces the boundaries:
- No transaction persists without passing the validator
- A write is attempted exactly once; failures come back as outcomes
- Every write and every refusal is audited
"""

from typing import NamedTuple, Optional
from uuid import UUID

import structlog

from ledger.audit import AuditLogger, create_correlation_id
from ledger.config import get_settings, validate_all_settings
from ledger.models.entities import (
    Category,
    Person,
    Transaction,
    TransactionDraft,
)
from ledger.models.report import CategoryReport, PersonReport
from ledger.models.validation import (
    OutcomeStatus,
    TransactionOutcome,
    ValidationResult,
)
from ledger.reports import aggregate_by_category, aggregate_by_person
from ledger.services.storage import (
    GoogleSheetsAuditStorage,
    GoogleSheetsClient,
    GoogleSheetsLedgerStorage,
    InMemoryAuditStorage,
    InMemoryLedgerStorage,
    IntegrityError,
    LedgerStorageInterface,
    StorageError,
)
from ledger.validation import TransactionValidator


logger = structlog.get_logger(__name__)


class PersonFlow:
    """Create, read, update and delete household members."""

    def __init__(
        self,
        storage: LedgerStorageInterface,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._storage = storage
        self._audit_logger = audit_logger

    async def list_persons(self) -> list[Person]:
        return await self._storage.list_persons()

    async def get_person(self, person_id: int) -> Optional[Person]:
        return await self._storage.find_person(person_id)

    async def create_person(
        self,
        person: Person,
        correlation_id: Optional[UUID] = None,
    ) -> Person:
        correlation_id = correlation_id or create_correlation_id()

        stored = await self._storage.save_person(person)

        if self._audit_logger:
            await self._audit_logger.log_person_created(
                person_id=stored.id,
                name=stored.name,
                correlation_id=correlation_id,
            )
        return stored

    async def update_person(
        self,
        person_id: int,
        person: Person,
        correlation_id: Optional[UUID] = None,
    ) -> Person:
        """
        Replace a person's name and age.

        Raises:
            ValueError: If the body's id disagrees with person_id
            NotFoundError: If the person doesn't exist
        """
        correlation_id = correlation_id or create_correlation_id()

        if person.id is not None and person.id != person_id:
            raise ValueError(
                f"Person id in body ({person.id}) does not match {person_id}"
            )

        updated = await self._storage.update_person(
            person.model_copy(update={"id": person_id})
        )

        if self._audit_logger:
            await self._audit_logger.log_person_updated(
                person_id=person_id,
                name=updated.name,
                correlation_id=correlation_id,
            )
        return updated

    async def delete_person(
        self,
        person_id: int,
        correlation_id: Optional[UUID] = None,
    ) -> bool:
        """Delete a person; storage removes their transactions too."""
        correlation_id = correlation_id or create_correlation_id()

        deleted = await self._storage.delete_person(person_id)

        if deleted and self._audit_logger:
            await self._audit_logger.log_person_deleted(
                person_id=person_id,
                correlation_id=correlation_id,
            )
        return deleted


class CategoryFlow:
    """Create, read and delete categories."""

    def __init__(
        self,
        storage: LedgerStorageInterface,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._storage = storage
        self._audit_logger = audit_logger

    async def list_categories(self) -> list[Category]:
        return await self._storage.list_categories()

    async def get_category(self, category_id: int) -> Optional[Category]:
        return await self._storage.find_category(category_id)

    async def create_category(
        self,
        category: Category,
        correlation_id: Optional[UUID] = None,
    ) -> Category:
        correlation_id = correlation_id or create_correlation_id()

        stored = await self._storage.save_category(category)

        if self._audit_logger:
            await self._audit_logger.log_category_created(
                category_id=stored.id,
                description=stored.description,
                purpose=stored.purpose.wire_name,
                correlation_id=correlation_id,
            )
        return stored

    async def delete_category(
        self,
        category_id: int,
        correlation_id: Optional[UUID] = None,
    ) -> bool:
        """
        Delete a category.

        Raises:
            IntegrityError: If transactions still reference it
        """
        correlation_id = correlation_id or create_correlation_id()

        try:
            deleted = await self._storage.delete_category(category_id)
        except IntegrityError as e:
            if self._audit_logger:
                await self._audit_logger.log_category_delete_blocked(
                    category_id=category_id,
                    error_message=str(e),
                    correlation_id=correlation_id,
                )
            raise

        if deleted and self._audit_logger:
            await self._audit_logger.log_category_deleted(
                category_id=category_id,
                correlation_id=correlation_id,
            )
        return deleted


class TransactionFlow:
    """
    Orchestrates transaction creation.

    Flow:
    1. Lookup → fetch the referenced person and category
    2. Validate → input checks, then business rules
    3. Save → single write attempt

    Step 3 only runs when step 2 accepts.
    """

    def __init__(
        self,
        storage: LedgerStorageInterface,
        validator: Optional[TransactionValidator] = None,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._storage = storage
        self._validator = validator or TransactionValidator()
        self._audit_logger = audit_logger

    async def list_transactions(self) -> list[Transaction]:
        return await self._storage.list_transactions()

    async def get_transaction(self, transaction_id: int) -> Optional[Transaction]:
        return await self._storage.find_transaction(transaction_id)

    async def validate_transaction(
        self,
        draft: TransactionDraft,
        correlation_id: Optional[UUID] = None,
    ) -> ValidationResult:
        """
        Look up the draft's references and validate it. Nothing is saved.

        Storage faults during the lookup are audited, then propagate as
        StorageError.
        """
        correlation_id = correlation_id or create_correlation_id()

        try:
            person = await self._storage.find_person(draft.person_id)
            category = await self._storage.find_category(draft.category_id)
        except StorageError as e:
            if self._audit_logger:
                await self._audit_logger.log_storage_error(
                    operation="transaction_lookup",
                    error_message=str(e),
                    correlation_id=correlation_id,
                )
            raise

        result = self._validator.validate(draft, person, category)

        if self._audit_logger:
            if result.accepted:
                await self._audit_logger.log_transaction_accepted(
                    person_id=draft.person_id,
                    category_id=draft.category_id,
                    correlation_id=correlation_id,
                )
            else:
                await self._audit_logger.log_transaction_rejected(
                    reason=result.reason.value,
                    message=result.message,
                    details={
                        "person_id": draft.person_id,
                        "category_id": draft.category_id,
                        "type": draft.type.wire_name,
                    },
                    correlation_id=correlation_id,
                )

        return result

    async def create_transaction(
        self,
        draft: TransactionDraft,
        correlation_id: Optional[UUID] = None,
    ) -> TransactionOutcome:
        """
        Validate and, on acceptance, persist a transaction.

        Returns:
            TransactionOutcome: CREATED with the stored transaction,
            REJECTED with the reason, or PERSISTENCE_FAILURE with the
            storage error text.
        """
        correlation_id = correlation_id or create_correlation_id()

        result = await self.validate_transaction(draft, correlation_id)
        if result.is_rejected:
            return TransactionOutcome(
                status=OutcomeStatus.REJECTED,
                reason=result.reason,
                message=result.message,
            )

        try:
            stored = await self._storage.save_transaction(draft.to_transaction())
        except StorageError as e:
            logger.error(
                "transaction_save_failed",
                error=str(e),
                correlation_id=str(correlation_id),
            )
            if self._audit_logger:
                await self._audit_logger.log_save_failed(
                    entity_type="transaction",
                    error_message=str(e),
                    correlation_id=correlation_id,
                )
            return TransactionOutcome(
                status=OutcomeStatus.PERSISTENCE_FAILURE,
                message=str(e),
            )

        if self._audit_logger:
            await self._audit_logger.log_transaction_saved(
                transaction_id=stored.id,
                transaction_type=stored.type.wire_name,
                value=str(stored.value),
                correlation_id=correlation_id,
            )

        return TransactionOutcome(
            status=OutcomeStatus.CREATED,
            transaction=stored,
        )


class ReportFlow:
    """
    Orchestrates report generation.

    Storage supplies entities paired with their transactions; the
    aggregator does the arithmetic. Nothing here writes.
    """

    def __init__(
        self,
        storage: LedgerStorageInterface,
        audit_logger: Optional[AuditLogger] = None,
    ):
        self._storage = storage
        self._audit_logger = audit_logger

    async def _read(self, report_type: str, load, correlation_id: UUID):
        try:
            return await load()
        except StorageError as e:
            if self._audit_logger:
                await self._audit_logger.log_storage_error(
                    operation=report_type,
                    error_message=str(e),
                    correlation_id=correlation_id,
                )
            raise

    async def person_report(
        self,
        correlation_id: Optional[UUID] = None,
    ) -> PersonReport:
        correlation_id = correlation_id or create_correlation_id()

        persons = await self._read(
            "totals_by_person",
            self._storage.list_persons_with_transactions,
            correlation_id,
        )
        report = aggregate_by_person(persons)

        if self._audit_logger:
            await self._audit_logger.log_report_generated(
                report_type="totals_by_person",
                row_count=len(report.persons),
                correlation_id=correlation_id,
            )
        return report

    async def category_report(
        self,
        correlation_id: Optional[UUID] = None,
    ) -> CategoryReport:
        correlation_id = correlation_id or create_correlation_id()

        categories = await self._read(
            "totals_by_category",
            self._storage.list_categories_with_transactions,
            correlation_id,
        )
        report = aggregate_by_category(categories)

        if self._audit_logger:
            await self._audit_logger.log_report_generated(
                report_type="totals_by_category",
                row_count=len(report.categories),
                correlation_id=correlation_id,
            )
        return report

    async def totals_by_person(self) -> dict:
        """{"persons": [...], "overall": {...}} with camelCase keys."""
        report = await self.person_report()
        return report.to_wire()

    async def totals_by_category(self) -> dict:
        """{"categories": [...], "overall": {...}} with camelCase keys."""
        report = await self.category_report()
        return report.to_wire()


class AppComponents(NamedTuple):
    persons: PersonFlow
    categories: CategoryFlow
    transactions: TransactionFlow
    reports: ReportFlow
    storage: LedgerStorageInterface


def create_app_components(
    use_storage: bool = True,
) -> AppComponents:
    """
    Factory function to create all application components.

    Args:
        use_storage: Whether to use the configured persistent backend.
                    Set to False for in-memory storage.

    If Google Sheets is selected but its settings are incomplete or the
    spreadsheet is unreachable, falls back to in-memory storage so the app
    still starts.
    """
    settings = get_settings().app

    ledger_storage: LedgerStorageInterface = InMemoryLedgerStorage()
    audit_logger = AuditLogger(InMemoryAuditStorage())

    if use_storage and settings.storage_backend == "google_sheets":
        status = validate_all_settings()
        if not status["google_sheets"]:
            logger.warning(
                "storage_not_configured",
                error=status.get("google_sheets_error"),
            )
            use_storage = False

    if use_storage and settings.storage_backend == "google_sheets":
        try:
            sheets_client = GoogleSheetsClient()
            sheets_client.get_spreadsheet()
            ledger_storage = GoogleSheetsLedgerStorage(sheets_client)
            audit_logger = AuditLogger(GoogleSheetsAuditStorage(sheets_client))
        except Exception as e:
            # Storage not configured - continue without it
            logger.warning("storage_not_configured", error=str(e))

    validator = TransactionValidator()

    return AppComponents(
        persons=PersonFlow(ledger_storage, audit_logger),
        categories=CategoryFlow(ledger_storage, audit_logger),
        transactions=TransactionFlow(ledger_storage, validator, audit_logger),
        reports=ReportFlow(ledger_storage, audit_logger),
        storage=ledger_storage,
    )
