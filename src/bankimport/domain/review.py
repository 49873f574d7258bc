"""Preview and confirm state for one import session.

Holds the classified rows, the active filter and search text, and the
operator's row selection. Filtering is a view: it never changes the rows.
Selection is scoped to the visible rows and is cleared whenever the filter
or the search text changes.
"""

from decimal import Decimal
from typing import Iterable, Optional
from uuid import UUID

from bankimport.domain.entities import (
    Category,
    CategoryBreakdownItem,
    ImportAction,
    ImportedTransactionRow,
    MatchCandidate,
    MatchType,
    TransactionFilter,
    TransactionType,
    category_matches_direction,
)
from bankimport.domain.errors import NotFoundError, ValidationError


class ReviewSession:
    """Operator review of classified rows before commit."""

    def __init__(self, candidates: Optional[Iterable[MatchCandidate]] = None):
        self._candidates: list[MatchCandidate] = list(candidates or [])
        self._filter = TransactionFilter.ALL
        self._search_text = ""
        self._selected: set[UUID] = set()

    def load(self, candidates: Iterable[MatchCandidate]) -> None:
        """Replace all rows, resetting filter, search and selection."""
        self._candidates = list(candidates)
        self._filter = TransactionFilter.ALL
        self._search_text = ""
        self._selected.clear()

    def clear(self) -> None:
        self.load([])

    @property
    def candidates(self) -> list[MatchCandidate]:
        return list(self._candidates)

    @property
    def transactions(self) -> list[ImportedTransactionRow]:
        return [c.row for c in self._candidates]

    def get_candidate(self, row_id: UUID) -> MatchCandidate:
        for candidate in self._candidates:
            if candidate.row.id == row_id:
                return candidate
        raise NotFoundError(f"Transaction {row_id} not found")

    @property
    def filter(self) -> TransactionFilter:
        return self._filter

    def set_filter(self, transaction_filter: TransactionFilter) -> None:
        """Change the active filter; clears the selection."""
        self._filter = TransactionFilter(transaction_filter)
        self._selected.clear()

    @property
    def search_text(self) -> str:
        return self._search_text

    def set_search_text(self, text: Optional[str]) -> None:
        """Change the search text; clears the selection."""
        self._search_text = text or ""
        self._selected.clear()

    def _visible(self) -> list[MatchCandidate]:
        return [
            c
            for c in self._candidates
            if c.row.is_parsed
            and c.row.matches_filter(self._filter)
            and c.row.matches_search(self._search_text)
        ]

    def get_filtered_transactions(self) -> list[ImportedTransactionRow]:
        """Parsed rows visible under the current filter and search text."""
        return [c.row for c in self._visible()]

    def get_filtered_candidates(self) -> list[MatchCandidate]:
        return self._visible()

    @property
    def selected_ids(self) -> frozenset[UUID]:
        return frozenset(self._selected)

    @property
    def selected_count(self) -> int:
        return len(self._selected)

    def is_selected(self, row_id: UUID) -> bool:
        return row_id in self._selected

    def select(self, row_id: UUID) -> None:
        self.get_candidate(row_id)
        self._selected.add(row_id)

    def deselect(self, row_id: UUID) -> None:
        self._selected.discard(row_id)

    def toggle_selection(self, row_id: UUID) -> None:
        if row_id in self._selected:
            self.deselect(row_id)
        else:
            self.select(row_id)

    def select_all(self) -> None:
        """Select every row visible under the current filter and search."""
        self._selected = {c.row.id for c in self._visible()}

    def clear_selection(self) -> None:
        self._selected.clear()

    def _replace_row(self, candidate: MatchCandidate, row: ImportedTransactionRow) -> None:
        candidate.row = row

    def update_transaction_category(self, row_id: UUID, category: Optional[Category]) -> None:
        """Override the category of one row.

        Raises:
            NotFoundError: If the row does not exist
            ValidationError: If the category kind does not fit the row direction
        """
        candidate = self.get_candidate(row_id)
        if category is not None and not category_matches_direction(category, candidate.row.direction):
            kind = "income" if candidate.row.is_income else "expense"
            raise ValidationError(f"Category {category.value} cannot be used for an {kind} transaction")
        self._replace_row(candidate, candidate.row.with_category(category))

    def apply_bulk_category(self, category: Category) -> int:
        """Apply a category to every selected row of the matching kind.

        Rows whose direction does not fit the category are left alone. The
        selection is cleared afterwards.

        Returns:
            Number of rows changed
        """
        changed = 0
        for candidate in self._candidates:
            if candidate.row.id not in self._selected:
                continue
            if not category_matches_direction(category, candidate.row.direction):
                continue
            self._replace_row(candidate, candidate.row.with_category(category))
            changed += 1
        self._selected.clear()
        return changed

    def set_action(self, row_id: UUID, action: ImportAction) -> None:
        self.get_candidate(row_id).action = ImportAction(action)

    def set_action_for_selected(self, action: ImportAction) -> int:
        """Set the action on every selected row and return how many changed."""
        changed = 0
        for candidate in self._candidates:
            if candidate.row.id in self._selected and candidate.action != action:
                candidate.action = ImportAction(action)
                changed += 1
        return changed

    def skip_all_duplicates(self) -> int:
        """Set SKIP on every EXACT match; NEW and LIKELY rows are untouched."""
        changed = 0
        for candidate in self._candidates:
            if candidate.match_type == MatchType.EXACT and candidate.action != ImportAction.SKIP:
                candidate.action = ImportAction.SKIP
                changed += 1
        return changed

    def import_all_new(self) -> int:
        """Set IMPORT on every NEW row."""
        changed = 0
        for candidate in self._candidates:
            if candidate.match_type == MatchType.NEW and candidate.action != ImportAction.IMPORT:
                candidate.action = ImportAction.IMPORT
                changed += 1
        return changed

    def get_candidates_to_import(self) -> list[MatchCandidate]:
        return [c for c in self._candidates if c.will_import]

    def get_transactions_to_import(self) -> list[ImportedTransactionRow]:
        """Parsed rows whose resolved action is IMPORT, in row order."""
        return [c.row for c in self.get_candidates_to_import()]

    def _to_import(self, direction: TransactionType) -> list[ImportedTransactionRow]:
        return [r for r in self.get_transactions_to_import() if r.direction == direction]

    @property
    def income_count(self) -> int:
        return len(self._to_import(TransactionType.INCOME))

    @property
    def expense_count(self) -> int:
        return len(self._to_import(TransactionType.EXPENSE))

    @property
    def income_total(self) -> Decimal:
        return sum((r.amount for r in self._to_import(TransactionType.INCOME)), Decimal("0"))

    @property
    def expense_total(self) -> Decimal:
        return sum((r.amount for r in self._to_import(TransactionType.EXPENSE)), Decimal("0"))

    @property
    def net_total(self) -> Decimal:
        return self.income_total - self.expense_total

    @property
    def skipped_count(self) -> int:
        """Parsed rows excluded from the commit (duplicates or manual skips)."""
        return sum(1 for c in self._candidates if c.row.is_parsed and not c.will_import)

    def get_parse_errors(self) -> list[ImportedTransactionRow]:
        return [c.row for c in self._candidates if not c.row.is_parsed]

    @property
    def parse_error_count(self) -> int:
        return len(self.get_parse_errors())

    def get_category_breakdown(self) -> dict[Optional[Category], CategoryBreakdownItem]:
        """Count and total per category over the rows to import.

        Uncategorized rows are grouped under ``None``.
        """
        counts: dict[Optional[Category], int] = {}
        totals: dict[Optional[Category], Decimal] = {}
        for row in self.get_transactions_to_import():
            counts[row.category] = counts.get(row.category, 0) + 1
            totals[row.category] = totals.get(row.category, Decimal("0")) + row.amount
        return {cat: CategoryBreakdownItem(counts[cat], totals[cat]) for cat in counts}

    def count_by_match_type(self, match_type: MatchType) -> int:
        return sum(1 for c in self._candidates if c.row.is_parsed and c.match_type == match_type)

    @property
    def new_count(self) -> int:
        return self.count_by_match_type(MatchType.NEW)

    @property
    def likely_count(self) -> int:
        return self.count_by_match_type(MatchType.LIKELY)

    @property
    def exact_count(self) -> int:
        return self.count_by_match_type(MatchType.EXACT)

    @property
    def duplicate_count(self) -> int:
        return sum(1 for c in self._candidates if c.row.is_parsed and c.row.is_duplicate)

    @property
    def uncategorized_count(self) -> int:
        return sum(1 for c in self._candidates if c.row.is_parsed and c.row.category is None)

    def import_button_text(self) -> str:
        count = len(self.get_transactions_to_import())
        return f"Import {count} Transaction{'s' if count != 1 else ''}"
