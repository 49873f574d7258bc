"""Import audit ledger: history, undo and tax-submission locking."""

from dataclasses import dataclass
from datetime import datetime, UTC
from typing import Callable, Optional

from bankimport.database.base import Database
from bankimport.domain.entities import ImportHistoryItem, ImportStatus
from bankimport.domain.errors import (
    ConflictError,
    NotFoundError,
    UndoDeniedError,
    batch_not_found,
    undo_already_undone_reason,
    undo_locked_reason,
    undo_window_reason,
)
from bankimport.domain.settings import UndoPolicy
from bankimport.utils.logging_config import LogContext, get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class UndoEligibility:
    """Whether a batch can be undone, and why not when it cannot."""

    eligible: bool
    reason: Optional[str] = None


@dataclass(frozen=True)
class UndoResult:
    """Outcome of a successful undo."""

    batch_id: int
    records_removed: int
    undone_at: datetime


def _utc_now() -> datetime:
    return datetime.now(UTC)


class ImportAuditService:
    """Service for reading and transitioning committed import batches."""

    def __init__(
        self,
        db: Database,
        policy: Optional[UndoPolicy] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        """Initialize import audit service.

        Args:
            db: Database instance
            policy: Undo retention window, defaults to 7 days
            clock: Returns the current UTC time
        """
        self.db = db
        self.policy = policy or UndoPolicy()
        self.clock = clock or _utc_now

    def get_import(self, batch_id: int) -> ImportHistoryItem:
        """Get an import batch.

        Raises:
            NotFoundError: If the batch does not exist
        """
        item = self.db.get_import_batch(batch_id)
        if item is None:
            raise NotFoundError(batch_not_found(batch_id))
        return item

    def check_undo_eligibility(
        self, item: ImportHistoryItem, now: Optional[datetime] = None
    ) -> UndoEligibility:
        """Explain whether ``item`` can be undone at ``now``.

        A tax submission locks a batch for good: the lock is checked before
        the retention window, so elapsed time never matters once set.
        """
        now = now or self.clock()
        if item.status == ImportStatus.UNDONE:
            return UndoEligibility(False, undo_already_undone_reason())
        if item.is_locked:
            return UndoEligibility(False, undo_locked_reason())
        if not item.is_within_undo_window(now, self.policy.window_days):
            return UndoEligibility(False, undo_window_reason(self.policy.window_days))
        return UndoEligibility(True)

    def can_undo(self, item: ImportHistoryItem, now: Optional[datetime] = None) -> bool:
        return self.check_undo_eligibility(item, now).eligible

    def undo_disabled_reason(self, item: ImportHistoryItem, now: Optional[datetime] = None) -> Optional[str]:
        """Text explaining why undo is unavailable, or None if it is available."""
        eligibility = self.check_undo_eligibility(item, now)
        if eligibility.eligible:
            return None
        return f"Cannot undo: {eligibility.reason}"

    def undo(self, batch_id: int) -> UndoResult:
        """Remove a batch's records from the ledger and mark it UNDONE.

        Args:
            batch_id: Import batch ID

        Returns:
            UndoResult with the number of records removed

        Raises:
            NotFoundError: If the batch does not exist
            UndoDeniedError: If the batch is undone, locked or too old
        """
        item = self.get_import(batch_id)
        now = self.clock()
        eligibility = self.check_undo_eligibility(item, now)
        if not eligibility.eligible:
            logger.info(f"Undo of import {batch_id} denied: {eligibility.reason}")
            raise UndoDeniedError(batch_id, eligibility.reason)

        with LogContext(logger, "undo import", batch_id=batch_id):
            try:
                removed = self.db.undo_import_batch(batch_id, now)
            except ValueError as e:
                # Lost a race with another status change
                raise ConflictError(str(e)) from e

        logger.info(f"Undid import {batch_id}: removed {removed} records")
        return UndoResult(batch_id=batch_id, records_removed=removed, undone_at=now)

    def mark_tax_submission_used(
        self, batch_id: int, used_at: Optional[datetime] = None
    ) -> ImportHistoryItem:
        """Lock a batch because a tax submission references its records.

        Reserved for the tax-submission workflow; the import flow never
        calls it. Locking an already LOCKED batch is a no-op.

        Raises:
            NotFoundError: If the batch does not exist
            ConflictError: If the batch has been undone
        """
        item = self.get_import(batch_id)
        if item.status == ImportStatus.LOCKED:
            return item
        if item.status == ImportStatus.UNDONE:
            raise ConflictError(f"Import {batch_id} has been undone and cannot be locked")

        locked = self.db.lock_import_batch(batch_id, used_at or self.clock())
        logger.info(f"Locked import {batch_id} for tax submission")
        return locked

    def list_history(
        self,
        business_id: int,
        since: Optional[datetime] = None,
        undoable_only: bool = False,
        now: Optional[datetime] = None,
    ) -> list[ImportHistoryItem]:
        """List a business's imports, newest first.

        Args:
            business_id: Business ID
            since: Only imports committed at or after this time
            undoable_only: Only imports that can currently be undone
            now: Reference time for the undo check

        Returns:
            List of history items
        """
        items = self.db.list_import_batches(business_id, since=since)
        if undoable_only:
            now = now or self.clock()
            items = [item for item in items if self.can_undo(item, now)]
        return items

    def list_undoable(self, business_id: int, now: Optional[datetime] = None) -> list[ImportHistoryItem]:
        return self.list_history(business_id, undoable_only=True, now=now)
