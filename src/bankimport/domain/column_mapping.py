"""Column mapping from bank CSV headers onto the canonical transaction shape."""

from dataclasses import dataclass, fields
from enum import Enum
from typing import Optional

from bankimport.utils.date_parser import AUTO_DATE_FORMAT


# strptime patterns offered for manual mapping, most common UK layout first
AVAILABLE_DATE_FORMATS = [
    "%d/%m/%Y",
    "%m/%d/%Y",
    "%Y-%m-%d",
    "%d %b %Y",
    "%d-%m-%Y",
    "%Y-%m-%d %H:%M:%S",
    AUTO_DATE_FORMAT,
]


class AmountInterpretation(str, Enum):
    """Sign convention of a single signed amount column."""

    STANDARD = "STANDARD"  # negative = expense
    INVERTED = "INVERTED"  # positive = expense


def _is_blank(value: Optional[str]) -> bool:
    return value is None or not value.strip()


@dataclass
class ColumnMapping:
    """Mutable mapping of CSV column names to canonical fields.

    Either ``amount_column`` (single signed column) or ``income_column`` plus
    ``expense_column`` (``separate_amount_columns`` set) supplies the amount.
    An incomplete mapping is a normal state, not an error.
    """

    date_column: Optional[str] = None
    description_column: Optional[str] = None
    date_format: Optional[str] = None
    separate_amount_columns: bool = False
    amount_column: Optional[str] = None
    income_column: Optional[str] = None
    expense_column: Optional[str] = None
    amount_interpretation: AmountInterpretation = AmountInterpretation.STANDARD
    category_column: Optional[str] = None
    reference_column: Optional[str] = None

    def has_separate_amount_columns(self) -> bool:
        """Whether income and expense come from distinct columns."""
        return self.separate_amount_columns

    def use_amount_column(self, column: str) -> None:
        """Switch to a single signed amount column."""
        self.separate_amount_columns = False
        self.amount_column = column

    def use_separate_columns(self, income_column: str, expense_column: str) -> None:
        """Switch to separate money-in / money-out columns."""
        self.separate_amount_columns = True
        self.income_column = income_column
        self.expense_column = expense_column

    def missing_fields(self) -> list[str]:
        """List the canonical fields that still need a column."""
        missing = []
        if _is_blank(self.date_column):
            missing.append("date")
        if _is_blank(self.description_column):
            missing.append("description")
        if self.separate_amount_columns:
            if _is_blank(self.income_column):
                missing.append("income")
            if _is_blank(self.expense_column):
                missing.append("expense")
        elif _is_blank(self.amount_column):
            missing.append("amount")
        if _is_blank(self.date_format):
            missing.append("date_format")
        return missing

    def is_complete(self) -> bool:
        """True iff date, description, amount configuration and date format are set."""
        return not self.missing_fields()

    def mapped_columns(self) -> list[str]:
        """Return the CSV columns this mapping reads, in canonical order."""
        if self.separate_amount_columns:
            amount_columns = [self.income_column, self.expense_column]
        else:
            amount_columns = [self.amount_column]
        columns = [self.date_column, self.description_column, *amount_columns]
        columns += [self.category_column, self.reference_column]
        return [c for c in columns if not _is_blank(c)]

    def apply(self, other: "ColumnMapping") -> None:
        """Overwrite every field with the values from another mapping."""
        for f in fields(self):
            setattr(self, f.name, getattr(other, f.name))

    def copy(self) -> "ColumnMapping":
        clone = ColumnMapping()
        clone.apply(self)
        return clone

    def reset(self) -> None:
        """Return the mapping to its empty state."""
        self.apply(ColumnMapping())
