"""Business domain service."""

from typing import Optional
from bankimport.database.base import Database
from bankimport.domain.entities import Business as BusinessEntity
from bankimport.domain.errors import ConflictError, ValidationError


class BusinessService:
    """Service for managing businesses."""

    def __init__(self, db: Database):
        """Initialize business service.

        Args:
            db: Database instance
        """
        self.db = db

    def create_business(self, name: str) -> int:
        """Create a new business.

        Args:
            name: Business name

        Returns:
            Business ID

        Raises:
            ValidationError: If the name is blank
            ConflictError: If a business with this name already exists
        """
        name = name.strip()
        if not name:
            raise ValidationError("Business name cannot be empty")
        if self.db.get_business_by_name(name) is not None:
            raise ConflictError(f"Business with name '{name}' already exists")
        return self.db.create_business(name=name)

    def get_business(self, business_id: int) -> Optional[BusinessEntity]:
        """Get business by ID.

        Args:
            business_id: Business ID

        Returns:
            Business entity or None if not found
        """
        return self.db.get_business(business_id)

    def get_business_by_name(self, name: str) -> Optional[BusinessEntity]:
        return self.db.get_business_by_name(name)

    def list_businesses(self) -> list[BusinessEntity]:
        """List all businesses.

        Returns:
            List of business entities
        """
        return self.db.list_businesses()
