"""
Google Sheets Storage Implementation

DESIGN DECISION: Google Sheets is used as the persistent backend because:
1. Household members can view their data directly in Sheets
2. No database setup required
3. Built-in backup (Google's infrastructure)

TRADEOFFS:
- Not suitable for high-volume data (fine for a household)
- No transactions (we handle this with careful ordering)
- Identities are max(id) + 1, so concurrent writers can collide
- Deleting the highest-id row frees its id for the next save; audit
  events keyed by that entity_id then also match the new entity

Each entity lives in its own worksheet, one row per record, with a header
row. Enums are stored by wire name so the sheet stays readable.

Reads and the initial connection are retried. Writes are attempted once;
a failed write surfaces as StorageError.
"""

import json
from datetime import datetime
from decimal import Decimal
from typing import Optional
from uuid import UUID

import gspread
from google.oauth2.service_account import Credentials
from tenacity import retry, stop_after_attempt, wait_exponential

from ledger.config import get_settings
from ledger.models.audit import AuditEvent, AuditEventType, AuditSeverity
from ledger.models.entities import (
    Category,
    CategoryWithTransactions,
    Person,
    PersonWithTransactions,
    Purpose,
    Transaction,
    TransactionType,
)
from ledger.services.storage.interface import (
    AuditStorageInterface,
    ConnectionError,
    IntegrityError,
    LedgerStorageInterface,
    NotFoundError,
    StorageError,
)


PERSON_COLUMNS = ["id", "name", "age"]

CATEGORY_COLUMNS = ["id", "description", "purpose"]

TRANSACTION_COLUMNS = [
    "id",
    "description",
    "value",
    "type",
    "person_id",
    "category_id",
]

# Column mappings for Audit sheet
AUDIT_COLUMNS = [
    "event_id",
    "timestamp",
    "event_type",
    "severity",
    "entity_type",
    "entity_id",
    "correlation_id",
    "description",
    "details_json",
    "error_message",
    "is_user_action",
]


class GoogleSheetsClient:
    """
    Low-level Google Sheets client wrapper.

    Handles authentication and worksheet creation.
    """

    def __init__(self):
        self._client: Optional[gspread.Client] = None
        self._spreadsheet: Optional[gspread.Spreadsheet] = None
        self._settings = get_settings().google_sheets

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    def connect(self) -> gspread.Client:
        """
        Establish connection to Google Sheets.

        Uses service account credentials for authentication.
        """
        if self._client is None:
            try:
                scopes = [
                    "https://www.googleapis.com/auth/spreadsheets",
                    "https://www.googleapis.com/auth/drive",
                ]
                credentials = Credentials.from_service_account_file(
                    self._settings.credentials_path,
                    scopes=scopes,
                )
                self._client = gspread.authorize(credentials)
            except FileNotFoundError:
                raise ConnectionError(
                    f"Google credentials file not found: {self._settings.credentials_path}"
                )
            except Exception as e:
                raise ConnectionError(f"Failed to connect to Google Sheets: {e}")

        return self._client

    def get_spreadsheet(self) -> gspread.Spreadsheet:
        """Get the configured spreadsheet."""
        if self._spreadsheet is None:
            client = self.connect()
            try:
                self._spreadsheet = client.open_by_key(
                    self._settings.spreadsheet_id
                )
            except gspread.SpreadsheetNotFound:
                raise ConnectionError(
                    f"Spreadsheet not found: {self._settings.spreadsheet_id}"
                )
        return self._spreadsheet

    def _get_or_create_sheet(
        self,
        title: str,
        columns: list[str],
        rows: int = 1000,
    ) -> gspread.Worksheet:
        spreadsheet = self.get_spreadsheet()
        try:
            sheet = spreadsheet.worksheet(title)
        except gspread.WorksheetNotFound:
            # Create the sheet with headers
            sheet = spreadsheet.add_worksheet(
                title=title,
                rows=rows,
                cols=len(columns),
            )
            sheet.append_row(columns)
        return sheet

    def get_persons_sheet(self) -> gspread.Worksheet:
        return self._get_or_create_sheet(self._settings.persons_sheet_name, PERSON_COLUMNS)

    def get_categories_sheet(self) -> gspread.Worksheet:
        return self._get_or_create_sheet(
            self._settings.categories_sheet_name, CATEGORY_COLUMNS
        )

    def get_transactions_sheet(self) -> gspread.Worksheet:
        return self._get_or_create_sheet(
            self._settings.transactions_sheet_name, TRANSACTION_COLUMNS
        )

    def get_audit_sheet(self) -> gspread.Worksheet:
        return self._get_or_create_sheet(
            self._settings.audit_sheet_name,
            AUDIT_COLUMNS,
            rows=5000,  # More rows for audit log
        )


def _safe_get(row: list, index: int, default: str = "") -> str:
    try:
        return row[index] if row[index] else default
    except IndexError:
        return default


@retry(
    stop=stop_after_attempt(3),
    wait=wait_exponential(multiplier=1, min=2, max=10),
    reraise=True,
)
def _read_rows(sheet: gspread.Worksheet) -> list[list]:
    """All non-empty data rows (header excluded)."""
    return [row for row in sheet.get_all_values()[1:] if row and row[0]]


def _next_id(rows: list[list]) -> int:
    """max(id) + 1. The id of a deleted last row is handed out again."""
    ids = [int(row[0]) for row in rows]
    return max(ids, default=0) + 1


class GoogleSheetsLedgerStorage(LedgerStorageInterface):
    """
    Google Sheets implementation of ledger storage.

    Cascade and restrict are enforced here, since Sheets has no foreign keys.
    """

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()

    # --- Row conversion -------------------------------------------------

    def _person_to_row(self, person: Person) -> list:
        return [str(person.id), person.name, str(person.age)]

    def _row_to_person(self, row: list) -> Person:
        return Person(
            id=int(_safe_get(row, 0)),
            name=_safe_get(row, 1),
            age=int(_safe_get(row, 2, "0")),
        )

    def _category_to_row(self, category: Category) -> list:
        return [str(category.id), category.description, category.purpose.wire_name]

    def _row_to_category(self, row: list) -> Category:
        return Category(
            id=int(_safe_get(row, 0)),
            description=_safe_get(row, 1),
            purpose=Purpose.from_wire(_safe_get(row, 2)),
        )

    def _transaction_to_row(self, transaction: Transaction) -> list:
        return [
            str(transaction.id),
            transaction.description,
            str(transaction.value),
            transaction.type.wire_name,
            str(transaction.person_id),
            str(transaction.category_id),
        ]

    def _row_to_transaction(self, row: list) -> Transaction:
        return Transaction(
            id=int(_safe_get(row, 0)),
            description=_safe_get(row, 1),
            value=Decimal(_safe_get(row, 2)),
            type=TransactionType.from_wire(_safe_get(row, 3)),
            person_id=int(_safe_get(row, 4)),
            category_id=int(_safe_get(row, 5)),
        )

    # --- Reads ----------------------------------------------------------

    def _load_persons(self) -> list[Person]:
        return [self._row_to_person(row) for row in _read_rows(self._client.get_persons_sheet())]

    def _load_categories(self) -> list[Category]:
        return [
            self._row_to_category(row)
            for row in _read_rows(self._client.get_categories_sheet())
        ]

    def _load_transactions(self) -> list[Transaction]:
        # Rows left behind by an interrupted person delete are skipped
        person_ids = {person.id for person in self._load_persons()}
        transactions = [
            self._row_to_transaction(row)
            for row in _read_rows(self._client.get_transactions_sheet())
        ]
        return [t for t in transactions if t.person_id in person_ids]

    async def find_person(self, person_id: int) -> Optional[Person]:
        try:
            for person in self._load_persons():
                if person.id == person_id:
                    return person
            return None
        except Exception as e:
            raise StorageError(f"Failed to get person: {e}")

    async def list_persons(self) -> list[Person]:
        try:
            return self._load_persons()
        except Exception as e:
            raise StorageError(f"Failed to list persons: {e}")

    async def find_category(self, category_id: int) -> Optional[Category]:
        try:
            for category in self._load_categories():
                if category.id == category_id:
                    return category
            return None
        except Exception as e:
            raise StorageError(f"Failed to get category: {e}")

    async def list_categories(self) -> list[Category]:
        try:
            return self._load_categories()
        except Exception as e:
            raise StorageError(f"Failed to list categories: {e}")

    async def find_transaction(self, transaction_id: int) -> Optional[Transaction]:
        try:
            for transaction in self._load_transactions():
                if transaction.id == transaction_id:
                    return transaction
            return None
        except Exception as e:
            raise StorageError(f"Failed to get transaction: {e}")

    async def list_transactions(self) -> list[Transaction]:
        try:
            return self._load_transactions()
        except Exception as e:
            raise StorageError(f"Failed to list transactions: {e}")

    async def list_persons_with_transactions(self) -> list[PersonWithTransactions]:
        try:
            persons = self._load_persons()
            transactions = self._load_transactions()
        except Exception as e:
            raise StorageError(f"Failed to load persons report data: {e}")

        return [
            PersonWithTransactions(
                person=person,
                transactions=[t for t in transactions if t.person_id == person.id],
            )
            for person in persons
        ]

    async def list_categories_with_transactions(self) -> list[CategoryWithTransactions]:
        try:
            categories = self._load_categories()
            transactions = self._load_transactions()
        except Exception as e:
            raise StorageError(f"Failed to load categories report data: {e}")

        return [
            CategoryWithTransactions(
                category=category,
                transactions=[t for t in transactions if t.category_id == category.id],
            )
            for category in categories
        ]

    # --- Writes ---------------------------------------------------------

    async def save_person(self, person: Person) -> Person:
        try:
            sheet = self._client.get_persons_sheet()
            stored = person.model_copy(update={"id": _next_id(_read_rows(sheet))})
            sheet.append_row(self._person_to_row(stored), value_input_option="RAW")
            return stored
        except Exception as e:
            raise StorageError(f"Failed to save person: {e}")

    async def update_person(self, person: Person) -> Person:
        try:
            sheet = self._client.get_persons_sheet()
            all_rows = sheet.get_all_values()

            for idx, row in enumerate(all_rows[1:], start=2):  # Row 1 is header
                if row and row[0] == str(person.id):
                    for col_idx, value in enumerate(self._person_to_row(person), start=1):
                        sheet.update_cell(idx, col_idx, value)
                    return person

            raise NotFoundError(f"Person not found: {person.id}")
        except NotFoundError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to update person: {e}")

    async def delete_person(self, person_id: int) -> bool:
        try:
            persons_sheet = self._client.get_persons_sheet()
            person_rows = persons_sheet.get_all_values()
            person_idx = None
            for idx, row in enumerate(person_rows[1:], start=2):
                if row and row[0] == str(person_id):
                    person_idx = idx
                    break
            if person_idx is None:
                return False

            # Person row first: a failed cascade leaves only orphaned rows,
            # which _load_transactions skips
            persons_sheet.delete_rows(person_idx)

            # Cascade: bottom-up so earlier row numbers stay valid
            transactions_sheet = self._client.get_transactions_sheet()
            transaction_rows = transactions_sheet.get_all_values()
            owned = [
                idx for idx, row in enumerate(transaction_rows[1:], start=2)
                if len(row) > 4 and row[4] == str(person_id)
            ]
            for idx in reversed(owned):
                transactions_sheet.delete_rows(idx)
            return True
        except Exception as e:
            raise StorageError(f"Failed to delete person: {e}")

    async def save_category(self, category: Category) -> Category:
        try:
            sheet = self._client.get_categories_sheet()
            stored = category.model_copy(update={"id": _next_id(_read_rows(sheet))})
            sheet.append_row(self._category_to_row(stored), value_input_option="RAW")
            return stored
        except Exception as e:
            raise StorageError(f"Failed to save category: {e}")

    async def delete_category(self, category_id: int) -> bool:
        try:
            in_use = sum(
                1 for t in self._load_transactions()
                if t.category_id == category_id
            )
            if in_use:
                raise IntegrityError(
                    f"Category {category_id} is referenced by {in_use} transaction(s)"
                )

            sheet = self._client.get_categories_sheet()
            all_rows = sheet.get_all_values()
            for idx, row in enumerate(all_rows[1:], start=2):
                if row and row[0] == str(category_id):
                    sheet.delete_rows(idx)
                    return True
            return False
        except IntegrityError:
            raise
        except Exception as e:
            raise StorageError(f"Failed to delete category: {e}")

    async def save_transaction(self, transaction: Transaction) -> Transaction:
        try:
            sheet = self._client.get_transactions_sheet()
            stored = transaction.model_copy(update={"id": _next_id(_read_rows(sheet))})
            sheet.append_row(self._transaction_to_row(stored), value_input_option="RAW")
            return stored
        except Exception as e:
            raise StorageError(f"Failed to save transaction: {e}")


class GoogleSheetsAuditStorage(AuditStorageInterface):
    """
    Google Sheets implementation of audit log storage.

    Audit events are append-only.
    """

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()

    def _row_to_event(self, row: list) -> AuditEvent:
        """Convert a spreadsheet row to an AuditEvent."""
        return AuditEvent(
            event_id=UUID(_safe_get(row, 0)),
            timestamp=datetime.fromisoformat(_safe_get(row, 1)),
            event_type=AuditEventType(_safe_get(row, 2)),
            severity=AuditSeverity(_safe_get(row, 3)),
            entity_type=_safe_get(row, 4) or None,
            entity_id=int(_safe_get(row, 5)) if _safe_get(row, 5) else None,
            correlation_id=UUID(_safe_get(row, 6)) if _safe_get(row, 6) else None,
            description=_safe_get(row, 7),
            details=json.loads(_safe_get(row, 8)) if _safe_get(row, 8) else {},
            error_message=_safe_get(row, 9) or None,
            is_user_action=_safe_get(row, 10).lower() == "true",
        )

    def _load_events(self) -> list[AuditEvent]:
        events = []
        for row in _read_rows(self._client.get_audit_sheet()):
            try:
                events.append(self._row_to_event(row))
            except (ValueError, json.JSONDecodeError):
                continue  # Skip malformed rows
        return events

    async def append_event(self, event: AuditEvent) -> bool:
        """Append an audit event. Failures are reported, never raised."""
        try:
            sheet = self._client.get_audit_sheet()
            sheet.append_row(event.to_sheets_row(), value_input_option="RAW")
            return True
        except Exception:
            return False

    async def get_events_by_correlation_id(
        self,
        correlation_id: UUID,
    ) -> list[AuditEvent]:
        try:
            events = [e for e in self._load_events() if e.correlation_id == correlation_id]
        except Exception as e:
            raise StorageError(f"Failed to get audit events: {e}")
        events.sort(key=lambda e: e.timestamp)
        return events

    async def get_events_by_entity(
        self,
        entity_type: str,
        entity_id: int,
    ) -> list[AuditEvent]:
        try:
            events = [
                e for e in self._load_events()
                if e.entity_type == entity_type and e.entity_id == entity_id
            ]
        except Exception as e:
            raise StorageError(f"Failed to get audit events: {e}")
        events.sort(key=lambda e: e.timestamp)
        return events

    async def get_recent_events(
        self,
        limit: int = 100,
    ) -> list[AuditEvent]:
        try:
            events = self._load_events()
        except Exception as e:
            raise StorageError(f"Failed to get audit events: {e}")
        # Sort newest first
        events.sort(key=lambda e: e.timestamp, reverse=True)
        return events[:limit]
