"""Import wizard: a four-step finite-state machine.

Steps advance linearly SELECT_FILE -> MAP_COLUMNS -> PREVIEW -> CONFIRM.
Each forward transition is guarded by the active step's completeness
predicate; a blocked ``go_next`` leaves the state untouched.
"""

from enum import IntEnum
from typing import Callable, Mapping, Optional, Sequence

from bankimport.domain.bank_format import UNKNOWN_PROFILE, BankProfile, detect_format
from bankimport.domain.column_mapping import ColumnMapping
from bankimport.domain.entities import (
    ImportedTransactionRow,
    ImportHistoryItem,
    MatchCandidate,
    TransactionFilter,
)
from bankimport.domain.errors import MappingIncompleteError
from bankimport.domain.review import ReviewSession
from bankimport.utils.logging_config import get_logger

logger = get_logger(__name__)

RawRow = Mapping[str, Optional[str]]
# Called on MAP_COLUMNS -> PREVIEW to parse, categorize and match the rows
Preparer = Callable[["ImportWizard"], Sequence[MatchCandidate]]


class WizardStep(IntEnum):
    """Wizard steps in order."""

    SELECT_FILE = 1
    MAP_COLUMNS = 2
    PREVIEW = 3
    CONFIRM = 4


FIRST_STEP = WizardStep.SELECT_FILE
LAST_STEP = WizardStep.CONFIRM


class ImportWizard:
    """Sequences detection, mapping, preview and confirm for one file."""

    def __init__(self, preparer: Optional[Preparer] = None):
        self.preparer = preparer
        self.current_step = FIRST_STEP
        self.filename: Optional[str] = None
        self.headers: list[str] = []
        self.rows: list[RawRow] = []
        self.profile: BankProfile = UNKNOWN_PROFILE
        self.mapping = ColumnMapping()
        self.review = ReviewSession()
        self.is_importing = False
        self.progress = 0.0
        self.completed_import: Optional[ImportHistoryItem] = None

    def select_file(self, filename: str, headers: Sequence[str], rows: Sequence[RawRow]) -> BankProfile:
        """Load a file's header row and data rows.

        Clears any state from a previously selected file, detects the bank
        format and auto-populates the mapping for known formats. A wizard
        past the mapping step returns to it, since the new file must be
        mapped before it can be previewed.

        Returns:
            Detected profile (UNKNOWN_PROFILE if no bank matched)
        """
        self._clear_file_state()
        self.filename = filename
        self.headers = [h for h in headers if h is not None]
        self.rows = list(rows)
        self.profile = detect_format(self.headers)
        if self.profile.is_known:
            self.mapping.apply(self.profile.create_mapping())
        self.current_step = min(self.current_step, WizardStep.MAP_COLUMNS)
        logger.debug(f"Selected {filename}: {len(self.rows)} rows, format {self.profile.bank.value}")
        return self.profile

    @property
    def has_file(self) -> bool:
        return self.filename is not None and bool(self.headers)

    def is_step_complete(self, step: Optional[WizardStep] = None) -> bool:
        """Completeness predicate guarding the transition out of ``step``."""
        step = self.current_step if step is None else WizardStep(step)
        if step == WizardStep.SELECT_FILE:
            return self.has_file
        # Later steps stay gated on the mapping, which remains editable
        return self.has_file and self.mapping.is_complete()

    def can_go_next(self) -> bool:
        return self.current_step < LAST_STEP and self.is_step_complete()

    def can_go_previous(self) -> bool:
        return self.current_step > FIRST_STEP and not self.is_importing

    def go_next(self) -> bool:
        """Advance one step if the current step is complete.

        Returns:
            True if the step changed
        """
        if not self.can_go_next():
            return False
        if self.current_step == WizardStep.MAP_COLUMNS and self.preparer is not None:
            self.review.load(self.preparer(self))
        self.current_step = WizardStep(self.current_step + 1)
        return True

    def go_previous(self) -> bool:
        if not self.can_go_previous():
            return False
        self.current_step = WizardStep(self.current_step - 1)
        return True

    def require_complete_mapping(self) -> ColumnMapping:
        """Return the mapping, raising if it cannot be used to parse yet.

        Raises:
            MappingIncompleteError: If any required field is unset
        """
        if not self.mapping.is_complete():
            raise MappingIncompleteError(self.mapping.missing_fields())
        return self.mapping

    def begin_import(self) -> None:
        self.is_importing = True
        self.progress = 0.0

    def set_progress(self, fraction: float) -> None:
        self.progress = min(1.0, max(0.0, fraction))

    def end_import(self, item: Optional[ImportHistoryItem] = None) -> None:
        """Clear the in-flight flags, recording the committed batch if any."""
        self.is_importing = False
        if item is not None:
            self.completed_import = item
            self.progress = 1.0
        else:
            self.progress = 0.0

    def reset(self) -> None:
        """Discard the started import and return to step 1."""
        self._clear_file_state()
        self.current_step = FIRST_STEP
        self.is_importing = False
        self.progress = 0.0
        self.completed_import = None

    def _clear_file_state(self) -> None:
        self.filename = None
        self.headers = []
        self.rows = []
        self.profile = UNKNOWN_PROFILE
        self.mapping.reset()
        self.review.clear()

    # Preview and confirm delegate to the review session

    def set_filter(self, transaction_filter: TransactionFilter) -> None:
        self.review.set_filter(transaction_filter)

    def set_search_text(self, text: Optional[str]) -> None:
        self.review.set_search_text(text)

    def get_filtered_transactions(self) -> list[ImportedTransactionRow]:
        return self.review.get_filtered_transactions()

    def get_transactions_to_import(self) -> list[ImportedTransactionRow]:
        return self.review.get_transactions_to_import()

    def skip_all_duplicates(self) -> int:
        return self.review.skip_all_duplicates()
