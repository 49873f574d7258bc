"""Statement parsing: raw CSV rows + column mapping -> canonical rows."""

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Mapping, Optional, Sequence
from uuid import uuid4

from bankimport.domain.column_mapping import AmountInterpretation, ColumnMapping
from bankimport.domain.entities import ImportedTransactionRow, RowStatus, TransactionType
from bankimport.domain.errors import MappingIncompleteError
from bankimport.utils.amount_parser import parse_amount
from bankimport.utils.date_parser import parse_statement_date
from bankimport.utils.logging_config import get_logger

logger = get_logger(__name__)

# Data rows start at CSV line 2 (the header is line 1)
FIRST_DATA_ROW = 2


class RowParseError(ValueError):
    """A single statement row could not be parsed."""


@dataclass
class ParseResult:
    """Parsed rows in input order, split into usable rows and parse errors."""

    transactions: list[ImportedTransactionRow] = field(default_factory=list)
    errors: list[ImportedTransactionRow] = field(default_factory=list)

    @property
    def row_count(self) -> int:
        return len(self.transactions) + len(self.errors)

    @property
    def error_count(self) -> int:
        return len(self.errors)

    def error_messages(self) -> list[str]:
        return [f"Row {row.row_number}: {row.error}" for row in self.errors]


class ColumnIndex:
    """Resolves mapped column names against a row, exact name first."""

    def __init__(self, headers: Sequence[str]):
        self._by_folded = {}
        for header in headers:
            # csv.DictReader files surplus cells under a None key
            if not isinstance(header, str):
                continue
            self._by_folded.setdefault(" ".join(header.split()).casefold(), header)

    def get(self, row: Mapping[str, Optional[str]], column: Optional[str]) -> Optional[str]:
        if column is None:
            return None
        if column in row:
            value = row[column]
        else:
            actual = self._by_folded.get(" ".join(column.split()).casefold())
            value = row.get(actual) if actual is not None else None
        if not isinstance(value, str):
            return None
        value = value.strip()
        return value or None


class StatementParser:
    """Applies a completed ColumnMapping to raw CSV rows.

    Rows are independent: ``parse_row`` is pure, so callers may parse rows in
    any order or concurrently. Amounts are stored as an unsigned magnitude
    plus a direction.
    """

    def parse(
        self,
        rows: Sequence[Mapping[str, Optional[str]]],
        mapping: ColumnMapping,
        first_row_number: int = FIRST_DATA_ROW,
    ) -> ParseResult:
        """Parse every row, collecting row-level failures instead of raising.

        Args:
            rows: CSV rows as dicts keyed by header
            mapping: Complete column mapping
            first_row_number: CSV line number of the first row

        Returns:
            ParseResult with OK rows and PARSE_ERROR rows, each in input order

        Raises:
            MappingIncompleteError: If the mapping is not complete
        """
        self.ensure_complete(mapping)

        headers = list(rows[0].keys()) if rows else []
        index = ColumnIndex(headers)
        result = ParseResult()
        for offset, row in enumerate(rows):
            parsed = self.parse_row(row, mapping, first_row_number + offset, index)
            if parsed.is_parsed:
                result.transactions.append(parsed)
            else:
                result.errors.append(parsed)

        if result.error_count:
            logger.warning(f"{result.error_count} of {result.row_count} rows could not be parsed")
        logger.info(f"Parsed {len(result.transactions)} transactions")
        return result

    @staticmethod
    def ensure_complete(mapping: ColumnMapping) -> None:
        if not mapping.is_complete():
            raise MappingIncompleteError(mapping.missing_fields())

    def parse_row(
        self,
        row: Mapping[str, Optional[str]],
        mapping: ColumnMapping,
        row_number: int,
        index: Optional[ColumnIndex] = None,
    ) -> ImportedTransactionRow:
        """Parse a single row; failures yield a PARSE_ERROR row, never an exception."""
        if index is None:
            index = ColumnIndex(list(row.keys()))

        description = index.get(row, mapping.description_column) or ""
        try:
            txn_date = parse_statement_date(
                index.get(row, mapping.date_column), mapping.date_format
            )
            amount, direction = self._resolve_amount(row, mapping, index)
        except ValueError as e:
            return ImportedTransactionRow(
                id=uuid4(),
                row_number=row_number,
                date=None,
                description=description,
                amount=Decimal("0"),
                direction=TransactionType.EXPENSE,
                status=RowStatus.PARSE_ERROR,
                error=str(e),
            )

        return ImportedTransactionRow(
            id=uuid4(),
            row_number=row_number,
            date=txn_date,
            description=description,
            amount=amount,
            direction=direction,
            reference=index.get(row, mapping.reference_column),
            bank_category=index.get(row, mapping.category_column),
        )

    def _resolve_amount(
        self,
        row: Mapping[str, Optional[str]],
        mapping: ColumnMapping,
        index: ColumnIndex,
    ) -> tuple[Decimal, TransactionType]:
        if mapping.has_separate_amount_columns():
            expense_value = index.get(row, mapping.expense_column)
            income_value = index.get(row, mapping.income_column)
            if expense_value is None and income_value is None:
                raise RowParseError("Missing amount")
            # A non-zero money-out cell decides the direction; some banks zero-fill the unused column
            amount = abs(parse_amount(expense_value)) if expense_value is not None else Decimal("0")
            direction = TransactionType.EXPENSE
            if amount == 0 and income_value is not None:
                amount = abs(parse_amount(income_value))
                direction = TransactionType.INCOME
        else:
            amount_value = index.get(row, mapping.amount_column)
            if amount_value is None:
                raise RowParseError("Missing amount")
            signed = parse_amount(amount_value)
            if mapping.amount_interpretation == AmountInterpretation.INVERTED:
                signed = -signed
            amount = abs(signed)
            direction = TransactionType.EXPENSE if signed < 0 else TransactionType.INCOME

        if amount == 0:
            raise RowParseError("Zero amount")
        return amount, direction
