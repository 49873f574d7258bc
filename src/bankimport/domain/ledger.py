"""Ledger record domain service for entries made outside an import."""

from typing import Optional
from datetime import date
from decimal import Decimal
from bankimport.database.base import Database
from bankimport.domain.entities import (
    Category,
    LedgerRecord,
    TransactionType,
    category_matches_direction,
)
from bankimport.domain.errors import NotFoundError, ValidationError, business_not_found


class LedgerService:
    """Service for manual ledger records."""

    def __init__(self, db: Database):
        """Initialize ledger service.

        Args:
            db: Database instance
        """
        self.db = db

    def add_record(
        self,
        business_id: int,
        date: date,
        amount: Decimal,
        description: Optional[str] = None,
        category: Optional[Category] = None,
        reference: Optional[str] = None,
    ) -> int:
        """Add a manual ledger record.

        Args:
            business_id: Business ID
            date: Record date
            amount: Signed amount; negative is an expense
            description: Optional description
            category: Optional category of the matching kind
            reference: Optional reference

        Returns:
            Record ID

        Raises:
            NotFoundError: If the business doesn't exist
            ValidationError: If the amount is zero or the category kind is wrong
        """
        if self.db.get_business(business_id) is None:
            raise NotFoundError(business_not_found(business_id))
        if amount == 0:
            raise ValidationError("Amount cannot be zero")

        direction = TransactionType.EXPENSE if amount < 0 else TransactionType.INCOME
        if category is not None and not category_matches_direction(category, direction):
            raise ValidationError(
                f"Category {category.value} cannot be used for an {direction.value.lower()} record"
            )

        return self.db.create_record(
            business_id=business_id,
            date=date,
            amount=abs(amount),
            direction=direction,
            description=description,
            category=category,
            reference=reference,
        )

    def list_records(
        self,
        business_id: int,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
    ) -> list[LedgerRecord]:
        """List a business's live records ordered by date."""
        return self.db.list_records(business_id, start_date, end_date)
