"""Mapper functions to convert between domain models and SQLAlchemy models.

SQLite hands datetimes back without tzinfo; the domain works in UTC, so
every timestamp crossing this layer is normalised here.
"""

from datetime import datetime, UTC
from typing import Optional

from bankimport.domain import entities as domain
from bankimport.database.models import (
    Business as ORMBusiness,
    ImportBatch as ORMImportBatch,
    LedgerRecord as ORMLedgerRecord,
)


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Attach UTC to naive datetimes and convert aware ones to UTC."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


def business_to_domain(orm_business: ORMBusiness) -> domain.Business:
    """Convert SQLAlchemy Business model to domain Business entity."""
    return domain.Business(
        id=orm_business.id,
        name=orm_business.name,
        created_at=as_utc(orm_business.created_at),
    )


def record_to_domain(orm_record: ORMLedgerRecord) -> domain.LedgerRecord:
    """Convert SQLAlchemy LedgerRecord model to domain LedgerRecord entity."""
    return domain.LedgerRecord(
        id=orm_record.id,
        business_id=orm_record.business_id,
        date=orm_record.date,
        amount=orm_record.amount,
        direction=domain.TransactionType(orm_record.direction),
        description=orm_record.description,
        category=domain.category_from_value(orm_record.category),
        reference=orm_record.reference,
        batch_id=orm_record.batch_id,
        created_at=as_utc(orm_record.created_at),
        deleted_at=as_utc(orm_record.deleted_at),
    )


def import_batch_to_domain(orm_batch: ORMImportBatch) -> domain.ImportHistoryItem:
    """Convert SQLAlchemy ImportBatch model to domain ImportHistoryItem entity."""
    return domain.ImportHistoryItem(
        id=orm_batch.id,
        business_id=orm_batch.business_id,
        imported_at=as_utc(orm_batch.imported_at),
        source_filename=orm_batch.source_filename,
        bank_format=orm_batch.bank_format,
        income_count=orm_batch.income_count,
        expense_count=orm_batch.expense_count,
        income_total=orm_batch.income_total,
        expense_total=orm_batch.expense_total,
        status=domain.ImportStatus(orm_batch.status),
        undone_at=as_utc(orm_batch.undone_at),
        tax_submission_used_at=as_utc(orm_batch.tax_submission_used_at),
    )


def imported_row_to_orm(
    row: domain.ImportedTransactionRow,
    business_id: int,
    batch_id: int,
    created_at: datetime,
) -> ORMLedgerRecord:
    """Build the ledger record written for one committed statement row."""
    return ORMLedgerRecord(
        business_id=business_id,
        date=row.date,
        amount=row.amount,
        direction=row.direction.value,
        description=row.description,
        category=row.category.value if row.category is not None else None,
        reference=row.reference,
        batch_id=batch_id,
        created_at=created_at,
    )
