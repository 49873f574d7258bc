"""Domain model entities for bankimport.

These are pure data classes representing business concepts, independent of
database schema. Parsed statement rows are immutable and are replaced (not
mutated) when the categorizer, the matcher or the operator changes them;
match candidates carry the one piece of mutable review state, the action.
"""

from dataclasses import dataclass, field, replace
from datetime import datetime, date, timedelta
from decimal import Decimal
from enum import Enum
from typing import Optional, Union
from uuid import UUID


class TransactionType(str, Enum):
    """Direction of money movement."""

    INCOME = "INCOME"
    EXPENSE = "EXPENSE"


class RowStatus(str, Enum):
    """Outcome of parsing a single statement row."""

    OK = "OK"
    PARSE_ERROR = "PARSE_ERROR"


class MatchType(str, Enum):
    """Classification of an incoming row against the existing ledger."""

    NEW = "NEW"
    LIKELY = "LIKELY"
    EXACT = "EXACT"


class ImportAction(str, Enum):
    """What the commit does with a reviewed row."""

    IMPORT = "IMPORT"
    SKIP = "SKIP"


class ImportStatus(str, Enum):
    """Lifecycle status of a committed import batch."""

    ACTIVE = "ACTIVE"
    UNDONE = "UNDONE"
    LOCKED = "LOCKED"


class TransactionFilter(str, Enum):
    """Preview filters over parsed rows."""

    ALL = "ALL"
    INCOME_ONLY = "INCOME_ONLY"
    EXPENSES_ONLY = "EXPENSES_ONLY"
    UNCATEGORIZED = "UNCATEGORIZED"
    DUPLICATES = "DUPLICATES"


class ConfidenceBand(str, Enum):
    """Categorization confidence bands."""

    HIGH = "HIGH"
    MEDIUM = "MEDIUM"
    LOW = "LOW"


class IssueSeverity(str, Enum):
    """Severity of a reconciliation issue, declared most severe first."""

    HIGH = "HIGH"
    MEDIUM = "MEDIUM"
    LOW = "LOW"

    @property
    def rank(self) -> int:
        """Sort key placing HIGH before MEDIUM before LOW."""
        return list(IssueSeverity).index(self)


class IssueCategory(str, Enum):
    """Kinds of data-quality findings."""

    DUPLICATES = "DUPLICATES"
    MISSING_CATEGORIES = "MISSING_CATEGORIES"
    DATE_GAPS = "DATE_GAPS"


class ExpenseCategory(str, Enum):
    """SA103F allowable expense boxes."""

    COST_OF_GOODS = "COST_OF_GOODS"
    SUBCONTRACTOR_COSTS = "SUBCONTRACTOR_COSTS"
    STAFF_COSTS = "STAFF_COSTS"
    TRAVEL = "TRAVEL"
    TRAVEL_MILEAGE = "TRAVEL_MILEAGE"
    PREMISES = "PREMISES"
    REPAIRS = "REPAIRS"
    OFFICE_COSTS = "OFFICE_COSTS"
    ADVERTISING = "ADVERTISING"
    BUSINESS_ENTERTAINMENT = "BUSINESS_ENTERTAINMENT"
    INTEREST = "INTEREST"
    FINANCIAL_CHARGES = "FINANCIAL_CHARGES"
    BAD_DEBTS = "BAD_DEBTS"
    PROFESSIONAL_FEES = "PROFESSIONAL_FEES"
    DEPRECIATION = "DEPRECIATION"
    OTHER_EXPENSES = "OTHER_EXPENSES"


class IncomeCategory(str, Enum):
    """Self-employment income categories."""

    SALES = "SALES"
    OTHER_INCOME = "OTHER_INCOME"


Category = Union[ExpenseCategory, IncomeCategory]


def category_from_value(value: Optional[str]) -> Optional[Category]:
    """Resolve a stored category name to its enum member.

    Raises:
        ValueError: If the name is not a known category
    """
    if value is None:
        return None
    for enum_cls in (ExpenseCategory, IncomeCategory):
        try:
            return enum_cls(value)
        except ValueError:
            continue
    raise ValueError(f"Unknown category '{value}'")


def category_matches_direction(category: Category, direction: TransactionType) -> bool:
    """Return True if the category kind fits the transaction direction."""
    if direction == TransactionType.INCOME:
        return isinstance(category, IncomeCategory)
    return isinstance(category, ExpenseCategory)


@dataclass(frozen=True)
class Business:
    """Self-employed business that owns a ledger partition."""

    id: int
    name: str
    created_at: datetime


@dataclass(frozen=True)
class LedgerRecord:
    """Income or expense record stored in the ledger.

    Amounts are unsigned; direction says which way the money moved.
    """

    id: int
    business_id: int
    date: date
    amount: Decimal
    direction: TransactionType
    description: Optional[str]
    category: Optional[Category]
    reference: Optional[str]
    batch_id: Optional[int]
    created_at: datetime
    deleted_at: Optional[datetime] = None

    @property
    def is_income(self) -> bool:
        return self.direction == TransactionType.INCOME


@dataclass(frozen=True)
class ImportedTransactionRow:
    """Canonical transaction parsed from one statement row, not yet persisted."""

    id: UUID
    row_number: int
    date: Optional[date]
    description: str
    amount: Decimal
    direction: TransactionType
    category: Optional[Category] = None
    confidence: int = 0
    is_duplicate: bool = False
    status: RowStatus = RowStatus.OK
    error: Optional[str] = None
    reference: Optional[str] = None
    bank_category: Optional[str] = None

    @property
    def is_income(self) -> bool:
        return self.direction == TransactionType.INCOME

    @property
    def is_parsed(self) -> bool:
        return self.status == RowStatus.OK

    def with_category(
        self, category: Optional[Category], confidence: Optional[int] = None
    ) -> "ImportedTransactionRow":
        """Return a copy with a new category (operator overrides score 100)."""
        if confidence is None:
            confidence = 100 if category is not None else 0
        return replace(self, category=category, confidence=confidence)

    def with_duplicate(self, is_duplicate: bool) -> "ImportedTransactionRow":
        return replace(self, is_duplicate=is_duplicate)

    def matches_filter(self, transaction_filter: TransactionFilter) -> bool:
        """Check whether this row is visible under a preview filter."""
        if transaction_filter == TransactionFilter.INCOME_ONLY:
            return self.direction == TransactionType.INCOME
        if transaction_filter == TransactionFilter.EXPENSES_ONLY:
            return self.direction == TransactionType.EXPENSE
        if transaction_filter == TransactionFilter.UNCATEGORIZED:
            return self.category is None
        if transaction_filter == TransactionFilter.DUPLICATES:
            return self.is_duplicate
        return True

    def matches_search(self, text: Optional[str]) -> bool:
        """Case-insensitive description substring search; blank matches all."""
        if text is None or not text.strip():
            return True
        return text.strip().lower() in (self.description or "").lower()


@dataclass
class MatchCandidate:
    """Parsed row paired with its duplicate classification and review action."""

    row: ImportedTransactionRow
    match_type: MatchType = MatchType.NEW
    matched_record_id: Optional[int] = None
    matched_record: Optional[LedgerRecord] = None
    similarity: float = 0.0
    action: Optional[ImportAction] = None

    def __post_init__(self) -> None:
        if self.action is None:
            self.action = self.default_action

    @property
    def default_action(self) -> ImportAction:
        """EXACT matches are skipped by default, everything else imported."""
        if self.match_type == MatchType.EXACT:
            return ImportAction.SKIP
        return ImportAction.IMPORT

    @property
    def will_import(self) -> bool:
        return self.action == ImportAction.IMPORT and self.row.is_parsed


@dataclass(frozen=True)
class ImportHistoryItem:
    """Audit record of one committed import batch.

    Immutable except for status transitions, which produce a new instance:
    ACTIVE -> UNDONE (operator, time-boxed) or ACTIVE -> LOCKED (tax
    submission, permanent).
    """

    id: int
    business_id: int
    imported_at: datetime
    source_filename: str
    bank_format: str
    income_count: int
    expense_count: int
    income_total: Decimal
    expense_total: Decimal
    status: ImportStatus = ImportStatus.ACTIVE
    undone_at: Optional[datetime] = None
    tax_submission_used_at: Optional[datetime] = None

    @property
    def total_records(self) -> int:
        return self.income_count + self.expense_count

    @property
    def is_locked(self) -> bool:
        return self.status == ImportStatus.LOCKED or self.tax_submission_used_at is not None

    def is_within_undo_window(self, now: datetime, window_days: int) -> bool:
        return now - self.imported_at <= timedelta(days=window_days)

    def can_undo(self, now: datetime, window_days: int) -> bool:
        """Undo requires ACTIVE status, no tax submission and a fresh batch."""
        if self.status != ImportStatus.ACTIVE:
            return False
        if self.tax_submission_used_at is not None:
            return False
        return self.is_within_undo_window(now, window_days)


@dataclass(frozen=True)
class CategoryBreakdownItem:
    """Count and total for one category in the confirm summary."""

    count: int
    total: Decimal


@dataclass(frozen=True)
class ReconciliationIssue:
    """Advisory data-quality finding. Computed on demand, never persisted."""

    category: IssueCategory
    severity: IssueSeverity
    title: str
    affected_count: int
    action: str
    samples: tuple[str, ...] = field(default_factory=tuple)
