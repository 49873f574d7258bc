"""Bank statement format detection.

Each supported bank is a declarative ``BankProfile`` in ``BANK_PROFILES``:
the headers its CSV export always carries plus the column mapping to use
for it. Detection is a lookup over that table, so adding a bank means
adding a profile, not a branch.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional, Sequence

from bankimport.domain.column_mapping import ColumnMapping
from bankimport.utils.date_parser import AUTO_DATE_FORMAT
from bankimport.utils.logging_config import get_logger

logger = get_logger(__name__)


class BankFormat(str, Enum):
    """Known bank CSV export formats."""

    BARCLAYS = "BARCLAYS"
    HSBC = "HSBC"
    LLOYDS = "LLOYDS"
    NATIONWIDE = "NATIONWIDE"
    STARLING = "STARLING"
    MONZO = "MONZO"
    REVOLUT = "REVOLUT"
    SANTANDER = "SANTANDER"
    METRO_BANK = "METRO_BANK"
    UNKNOWN = "UNKNOWN"


def normalize_header(header: str) -> str:
    """Normalize a header for comparison (trimmed, case-insensitive, BOM-free)."""
    return " ".join(header.replace("\ufeff", "").split()).casefold()


@dataclass(frozen=True)
class BankProfile:
    """Declarative description of one bank's CSV export."""

    bank: BankFormat
    display_name: str
    expected_headers: tuple[str, ...]
    date_column: Optional[str] = None
    description_column: Optional[str] = None
    date_format: Optional[str] = None
    amount_column: Optional[str] = None
    income_column: Optional[str] = None
    expense_column: Optional[str] = None
    category_column: Optional[str] = None
    reference_column: Optional[str] = None

    @property
    def is_known(self) -> bool:
        return self.bank != BankFormat.UNKNOWN

    def matches(self, headers: Sequence[str]) -> bool:
        """True if every expected header is present, in any order."""
        if not self.expected_headers:
            return False
        observed = {normalize_header(h) for h in headers}
        return all(normalize_header(h) in observed for h in self.expected_headers)

    def create_mapping(self) -> ColumnMapping:
        """Build a fresh, mutable column mapping from this profile's defaults."""
        mapping = ColumnMapping(
            date_column=self.date_column,
            description_column=self.description_column,
            date_format=self.date_format,
            category_column=self.category_column,
            reference_column=self.reference_column,
        )
        if self.income_column is not None and self.expense_column is not None:
            mapping.use_separate_columns(self.income_column, self.expense_column)
        elif self.amount_column is not None:
            mapping.use_amount_column(self.amount_column)
        return mapping


UNKNOWN_PROFILE = BankProfile(
    bank=BankFormat.UNKNOWN,
    display_name="Unknown format",
    expected_headers=(),
)

# Declaration order breaks ties between equally specific matches
BANK_PROFILES: tuple[BankProfile, ...] = (
    BankProfile(
        bank=BankFormat.BARCLAYS,
        display_name="Barclays",
        expected_headers=("Date", "Type", "Description", "Money out", "Money in"),
        date_column="Date",
        description_column="Description",
        date_format="%d/%m/%Y",
        income_column="Money in",
        expense_column="Money out",
    ),
    BankProfile(
        bank=BankFormat.HSBC,
        display_name="HSBC",
        expected_headers=("Date", "Type", "Description", "Paid out", "Paid in"),
        date_column="Date",
        description_column="Description",
        date_format="%d/%m/%Y",
        income_column="Paid in",
        expense_column="Paid out",
    ),
    BankProfile(
        bank=BankFormat.LLOYDS,
        display_name="Lloyds",
        expected_headers=(
            "Transaction Date",
            "Transaction Type",
            "Transaction Description",
            "Debit Amount",
            "Credit Amount",
        ),
        date_column="Transaction Date",
        description_column="Transaction Description",
        date_format="%d/%m/%Y",
        income_column="Credit Amount",
        expense_column="Debit Amount",
    ),
    BankProfile(
        bank=BankFormat.NATIONWIDE,
        display_name="Nationwide",
        expected_headers=("Date", "Transaction type", "Description", "Paid out", "Paid in"),
        date_column="Date",
        description_column="Description",
        date_format="%d %b %Y",
        income_column="Paid in",
        expense_column="Paid out",
    ),
    BankProfile(
        bank=BankFormat.STARLING,
        display_name="Starling",
        expected_headers=("Date", "Counter Party", "Reference", "Type", "Amount (GBP)"),
        date_column="Date",
        description_column="Counter Party",
        date_format="%d/%m/%Y",
        amount_column="Amount (GBP)",
        reference_column="Reference",
    ),
    BankProfile(
        bank=BankFormat.MONZO,
        display_name="Monzo",
        expected_headers=(
            "Transaction ID",
            "Date",
            "Time",
            "Type",
            "Name",
            "Emoji",
            "Category",
            "Amount",
        ),
        date_column="Date",
        description_column="Name",
        date_format="%d/%m/%Y",
        amount_column="Amount",
        category_column="Category",
    ),
    BankProfile(
        bank=BankFormat.REVOLUT,
        display_name="Revolut",
        expected_headers=("Type", "Product", "Started Date", "Completed Date", "Description", "Amount"),
        date_column="Completed Date",
        description_column="Description",
        date_format="%Y-%m-%d %H:%M:%S",
        amount_column="Amount",
    ),
    BankProfile(
        bank=BankFormat.SANTANDER,
        display_name="Santander",
        expected_headers=("Date", "Description", "Amount", "Balance"),
        date_column="Date",
        description_column="Description",
        date_format=AUTO_DATE_FORMAT,
        amount_column="Amount",
    ),
    BankProfile(
        bank=BankFormat.METRO_BANK,
        display_name="Metro Bank",
        expected_headers=("Date", "Transaction type", "Description", "Money out", "Money in"),
        date_column="Date",
        description_column="Description",
        date_format="%d/%m/%Y",
        income_column="Money in",
        expense_column="Money out",
    ),
)


def get_profile(bank: BankFormat | str) -> BankProfile:
    """Look up a profile by bank identifier.

    Raises:
        ValueError: If the identifier is not a known bank format
    """
    bank = BankFormat(bank)
    for profile in BANK_PROFILES:
        if profile.bank == bank:
            return profile
    return UNKNOWN_PROFILE


def detect_format(headers: Sequence[str]) -> BankProfile:
    """Detect which bank produced a CSV from its header row.

    The winning profile is the one whose expected headers are all present
    and which matches the most of them; ties go to the earlier profile.

    Args:
        headers: Header row of the CSV file

    Returns:
        Matching profile, or UNKNOWN_PROFILE when nothing matches
    """
    best: Optional[BankProfile] = None
    for profile in BANK_PROFILES:
        if not profile.matches(headers):
            continue
        if best is None or len(profile.expected_headers) > len(best.expected_headers):
            best = profile

    if best is None:
        logger.info(f"No bank format matched headers {list(headers)}")
        return UNKNOWN_PROFILE

    logger.info(f"Detected bank format {best.bank.value}")
    return best
