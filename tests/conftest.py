"""Shared pytest fixtures for bankimport tests."""

import logging
import tempfile
import os
from datetime import date, datetime, UTC
from decimal import Decimal
from pathlib import Path
from uuid import uuid4
import pytest

from bankimport.database.factories import create_sqlite_database
from bankimport.domain.audit import ImportAuditService
from bankimport.domain.business import BusinessService
from bankimport.domain.entities import ImportedTransactionRow, TransactionType
from bankimport.domain.import_service import BankImportService
from bankimport.domain.ledger import LedgerService
from bankimport.utils.logging_config import ROOT_LOGGER_NAME

# Fixed "now" used by services that take a clock
NOW = datetime(2024, 2, 1, 12, 0, tzinfo=UTC)


def make_row(
    txn_date=date(2024, 1, 15),
    amount="100.00",
    direction=TransactionType.EXPENSE,
    description="Test transaction",
    row_number=2,
    **kwargs,
) -> ImportedTransactionRow:
    """Build a parsed statement row."""
    return ImportedTransactionRow(
        id=uuid4(),
        row_number=row_number,
        date=txn_date,
        description=description,
        amount=Decimal(amount),
        direction=direction,
        **kwargs,
    )


@pytest.fixture(autouse=True)
def reset_logging():
    """Drop handlers the CLI attaches so they don't outlive the test runner streams."""
    yield
    logging.getLogger(ROOT_LOGGER_NAME).handlers.clear()


@pytest.fixture
def temp_db():
    """Create a temporary database for testing."""
    # Create a temporary file for the database
    fd, db_path = tempfile.mkstemp(suffix=".db")
    os.close(fd)

    # Create database
    db = create_sqlite_database(database_path=db_path)
    # Store the path for tests that need it
    db.database_path = db_path
    db.connect()
    db.initialize_schema()

    yield db

    # Cleanup
    db.disconnect()
    if os.path.exists(db_path):
        os.unlink(db_path)


@pytest.fixture
def business_service(temp_db):
    """Create a BusinessService with a temporary database."""
    return BusinessService(temp_db)


@pytest.fixture
def ledger_service(temp_db):
    """Create a LedgerService with a temporary database."""
    return LedgerService(temp_db)


@pytest.fixture
def import_service(temp_db):
    """Create a BankImportService with a fixed clock."""
    return BankImportService(temp_db, clock=lambda: NOW)


@pytest.fixture
def audit_service(temp_db):
    """Create an ImportAuditService with a fixed clock."""
    return ImportAuditService(temp_db, clock=lambda: NOW)


@pytest.fixture
def sample_business(business_service):
    """Create a sample business for testing."""
    business_id = business_service.create_business("Test Business")
    return business_service.get_business(business_id)


@pytest.fixture
def cli_runner():
    """Create a Click CLI test runner."""
    from click.testing import CliRunner

    return CliRunner()


@pytest.fixture
def fixtures_dir():
    """Return the path to the test fixtures directory."""
    return Path(__file__).parent / "fixtures"


@pytest.fixture
def row_factory():
    """Return a builder for parsed statement rows."""
    return make_row


@pytest.fixture
def fixed_now():
    """Return the fixed time used by service clocks."""
    return NOW
