"""SQLAlchemy models for the bankimport ledger."""

from datetime import datetime, UTC
from sqlalchemy import (
    Column,
    Integer,
    String,
    ForeignKey,
    DateTime,
    Date,
    Numeric,
    Index,
    create_engine,
)
from sqlalchemy.orm import declarative_base, relationship, sessionmaker, Session

Base = declarative_base()


class Business(Base):
    """Self-employed business owning a ledger partition."""

    __tablename__ = "businesses"

    id = Column(Integer, primary_key=True)
    name = Column(String, unique=True, nullable=False)
    created_at = Column(DateTime, default=lambda: datetime.now(UTC), nullable=False)

    # Relationships
    records = relationship("LedgerRecord", back_populates="business", cascade="all, delete-orphan")
    import_batches = relationship("ImportBatch", back_populates="business", cascade="all, delete-orphan")


class ImportBatch(Base):
    """Audit row for one committed statement import."""

    __tablename__ = "import_batches"

    id = Column(Integer, primary_key=True)
    business_id = Column(Integer, ForeignKey("businesses.id"), nullable=False)
    imported_at = Column(DateTime, default=lambda: datetime.now(UTC), nullable=False)
    source_filename = Column(String, nullable=False)
    bank_format = Column(String, nullable=False)
    income_count = Column(Integer, default=0, nullable=False)
    expense_count = Column(Integer, default=0, nullable=False)
    income_total = Column(Numeric(12, 2), default=0, nullable=False)
    expense_total = Column(Numeric(12, 2), default=0, nullable=False)
    status = Column(String, default="ACTIVE", nullable=False)
    undone_at = Column(DateTime, nullable=True)
    tax_submission_used_at = Column(DateTime, nullable=True)

    # Relationships
    business = relationship("Business", back_populates="import_batches")
    records = relationship("LedgerRecord", back_populates="batch")


class LedgerRecord(Base):
    """Income or expense record. Amount is unsigned; direction gives the sign."""

    __tablename__ = "ledger_records"

    id = Column(Integer, primary_key=True)
    business_id = Column(Integer, ForeignKey("businesses.id"), nullable=False)
    date = Column(Date, nullable=False)
    amount = Column(Numeric(12, 2), nullable=False)
    direction = Column(String, nullable=False)
    description = Column(String, nullable=True)
    category = Column(String, nullable=True)
    reference = Column(String, nullable=True)
    batch_id = Column(Integer, ForeignKey("import_batches.id"), nullable=True)
    created_at = Column(DateTime, default=lambda: datetime.now(UTC), nullable=False)
    # Set by undo; tombstoned records are invisible to normal queries
    deleted_at = Column(DateTime, nullable=True)

    __table_args__ = (Index("ix_ledger_records_business_date", "business_id", "date"),)

    # Relationships
    business = relationship("Business", back_populates="records")
    batch = relationship("ImportBatch", back_populates="records")


def create_session_factory(database_url: str, echo: bool = False) -> sessionmaker[Session]:
    """Create a SQLAlchemy session factory."""
    engine = create_engine(database_url, echo=echo)
    Base.metadata.create_all(engine)
    return sessionmaker(bind=engine)
