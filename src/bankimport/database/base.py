"""Abstract database interface."""

from abc import ABC, abstractmethod
from typing import Optional, Sequence
from datetime import date, datetime
from decimal import Decimal

# Import entities directly to avoid circular import through domain/__init__.py
from bankimport.domain.entities import (
    Business,
    Category,
    ImportedTransactionRow,
    ImportHistoryItem,
    LedgerRecord,
    TransactionType,
)


class Database(ABC):
    """Abstract ledger store for bankimport.

    Every record query is scoped to one business. Committing and undoing an
    import batch are each a single all-or-nothing write.
    """

    @abstractmethod
    def connect(self) -> None:
        """Connect to the database."""
        pass

    @abstractmethod
    def disconnect(self) -> None:
        """Disconnect from the database."""
        pass

    @abstractmethod
    def initialize_schema(self) -> None:
        """Initialize database schema (create tables)."""
        pass

    # Business operations
    @abstractmethod
    def create_business(self, name: str) -> int:
        """Create a new business. Returns business ID."""
        pass

    @abstractmethod
    def get_business(self, business_id: int) -> Optional[Business]:
        """Get business by ID."""
        pass

    @abstractmethod
    def get_business_by_name(self, name: str) -> Optional[Business]:
        """Get business by exact name."""
        pass

    @abstractmethod
    def list_businesses(self) -> list[Business]:
        """List all businesses."""
        pass

    # Ledger record operations
    @abstractmethod
    def create_record(
        self,
        business_id: int,
        date: date,
        amount: Decimal,
        direction: TransactionType,
        description: Optional[str] = None,
        category: Optional[Category] = None,
        reference: Optional[str] = None,
    ) -> int:
        """Create a ledger record outside any import batch. Returns record ID."""
        pass

    @abstractmethod
    def get_record(self, record_id: int) -> Optional[LedgerRecord]:
        """Get ledger record by ID, including tombstoned records."""
        pass

    @abstractmethod
    def list_records(
        self,
        business_id: int,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        include_deleted: bool = False,
    ) -> list[LedgerRecord]:
        """List a business's records ordered by date then ID."""
        pass

    # Import batch operations
    @abstractmethod
    def commit_import_batch(
        self,
        business_id: int,
        source_filename: str,
        bank_format: str,
        rows: Sequence[ImportedTransactionRow],
        imported_at: datetime,
    ) -> ImportHistoryItem:
        """Write rows and their batch record atomically.

        Either every row and the batch are stored, or nothing is. Any
        exception is re-raised after the write has been rolled back.
        """
        pass

    @abstractmethod
    def get_import_batch(self, batch_id: int) -> Optional[ImportHistoryItem]:
        """Get import batch by ID."""
        pass

    @abstractmethod
    def list_import_batches(
        self, business_id: int, since: Optional[datetime] = None
    ) -> list[ImportHistoryItem]:
        """List a business's import batches, newest first."""
        pass

    @abstractmethod
    def get_batch_record_ids(self, batch_id: int, include_deleted: bool = False) -> list[int]:
        """Get IDs of the records a batch contributed."""
        pass

    @abstractmethod
    def undo_import_batch(self, batch_id: int, undone_at: datetime) -> int:
        """Tombstone a batch's records and mark it UNDONE atomically.

        Returns:
            Number of records removed from the ledger
        """
        pass

    @abstractmethod
    def lock_import_batch(self, batch_id: int, used_at: datetime) -> ImportHistoryItem:
        """Record a tax submission against a batch, marking it LOCKED."""
        pass
