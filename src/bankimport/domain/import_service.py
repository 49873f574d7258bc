"""Bank statement import domain service."""

import csv
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from datetime import datetime, UTC
from pathlib import Path
from typing import Callable, Iterable, Mapping, Optional, Sequence, TypeVar

from bankimport.database.base import Database
from bankimport.domain.bank_format import BankProfile, detect_format
from bankimport.domain.categorizer import Categorizer
from bankimport.domain.column_mapping import ColumnMapping
from bankimport.domain.duplicate_matcher import DuplicateMatcher, LedgerSnapshot, snapshot_date_range
from bankimport.domain.entities import ImportedTransactionRow, ImportHistoryItem, MatchCandidate
from bankimport.domain.errors import (
    CommitFailure,
    NotFoundError,
    ValidationError,
    business_not_found,
)
from bankimport.domain.settings import ImportSettings
from bankimport.domain.statement_parser import FIRST_DATA_ROW, ColumnIndex, StatementParser
from bankimport.domain.wizard import ImportWizard, WizardStep
from bankimport.utils.logging_config import LogContext, get_logger

logger = get_logger(__name__)

# UK bank exports are UTF-8 (often with a BOM) or Windows-1252
STATEMENT_ENCODINGS = ("utf-8-sig", "cp1252")

ProgressCallback = Callable[[float], None]
T = TypeVar("T")
R = TypeVar("R")


@dataclass
class StatementFile:
    """Header row and data rows read from a statement CSV."""

    filename: str
    headers: list[str]
    rows: list[dict[str, Optional[str]]] = field(default_factory=list)


def _utc_now() -> datetime:
    return datetime.now(UTC)


class BankImportService:
    """Service for importing bank statements into a business ledger."""

    def __init__(
        self,
        db: Database,
        settings: Optional[ImportSettings] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        """Initialize bank import service.

        Args:
            db: Database instance
            settings: Policy values, defaults to ImportSettings()
            clock: Returns the current UTC time, used for batch timestamps
        """
        self.db = db
        self.settings = settings or ImportSettings()
        self.clock = clock or _utc_now
        self.parser = StatementParser()
        self.categorizer = Categorizer(policy=self.settings.confidence)
        self.matcher = DuplicateMatcher(self.settings.matching)

    def read_statement(self, csv_file_path: str) -> StatementFile:
        """Read a statement CSV file.

        Args:
            csv_file_path: Path to CSV file

        Returns:
            StatementFile with headers and rows keyed by header

        Raises:
            FileNotFoundError: If CSV file doesn't exist
            ValidationError: If the file cannot be decoded, is not valid CSV
                or has no header row
        """
        csv_path = Path(csv_file_path)
        if not csv_path.exists():
            raise FileNotFoundError(f"CSV file not found: {csv_file_path}")

        for encoding in STATEMENT_ENCODINGS:
            try:
                headers, rows = self._read_csv(csv_path, encoding)
                break
            except UnicodeDecodeError:
                logger.debug(f"{csv_path.name} is not {encoding}")
            except csv.Error as e:
                raise ValidationError(f"Could not read CSV file {csv_path.name}: {e}") from e
        else:
            raise ValidationError(
                f"Could not decode {csv_path.name}; expected one of: {', '.join(STATEMENT_ENCODINGS)}"
            )

        if not headers:
            raise ValidationError(f"CSV file has no header row: {csv_path.name}")

        logger.info(f"Read {len(rows)} rows from {csv_path.name} ({encoding})")
        return StatementFile(filename=csv_path.name, headers=[h.strip() for h in headers], rows=rows)

    @staticmethod
    def _read_csv(csv_path: Path, encoding: str) -> tuple[list[str], list[dict[str, Optional[str]]]]:
        with open(csv_path, "r", encoding=encoding, newline="") as f:
            # Try to detect delimiter
            sample = f.read(4096)
            f.seek(0)
            try:
                delimiter = csv.Sniffer().sniff(sample, delimiters=",;\t|").delimiter
            except csv.Error:
                delimiter = ","

            reader = csv.DictReader(f, delimiter=delimiter)
            headers = list(reader.fieldnames or [])
            rows = [dict(row) for row in reader]
        return headers, rows

    def detect(self, csv_file_path: str) -> tuple[StatementFile, BankProfile]:
        """Read a statement and detect which bank produced it."""
        statement = self.read_statement(csv_file_path)
        return statement, detect_format(statement.headers)

    def _require_business(self, business_id: int) -> None:
        if self.db.get_business(business_id) is None:
            raise NotFoundError(business_not_found(business_id))

    def load_snapshot(
        self, business_id: int, rows: Sequence[ImportedTransactionRow]
    ) -> LedgerSnapshot:
        """Take the ledger snapshot used to match ``rows`` for one session."""
        date_range = snapshot_date_range(rows, self.settings.matching)
        if date_range is None:
            return LedgerSnapshot([])
        start_date, end_date = date_range
        return LedgerSnapshot(self.db.list_records(business_id, start_date, end_date))

    def prepare(
        self,
        rows: Sequence[Mapping[str, Optional[str]]],
        mapping: ColumnMapping,
        business_id: int,
        workers: int = 1,
        progress: Optional[ProgressCallback] = None,
    ) -> list[MatchCandidate]:
        """Parse, categorize and match statement rows.

        Rows are independent, so each stage may fan out over ``workers``
        threads; results always come back in original row order. The
        ledger is read once, as a single snapshot, between the stages.

        Args:
            rows: CSV rows keyed by header
            mapping: Complete column mapping
            business_id: Business whose ledger is matched against
            workers: Worker threads per stage (1 runs inline)
            progress: Receives the completed fraction, 0.0 to 1.0

        Returns:
            One MatchCandidate per input row, parse errors included

        Raises:
            MappingIncompleteError: If the mapping is not complete
            NotFoundError: If the business does not exist
        """
        self.parser.ensure_complete(mapping)
        self._require_business(business_id)

        total = max(1, 2 * len(rows))
        done = 0

        def tick() -> None:
            nonlocal done
            done += 1
            if progress is not None:
                progress(done / total)

        headers = list(rows[0].keys()) if rows else []
        index = ColumnIndex(headers)

        def parse_one(item: tuple[int, Mapping[str, Optional[str]]]) -> ImportedTransactionRow:
            offset, raw = item
            row = self.parser.parse_row(raw, mapping, FIRST_DATA_ROW + offset, index)
            if row.is_parsed:
                row = self.categorizer.categorize(row)
            return row

        parsed = self._run(parse_one, enumerate(rows), workers, tick)
        errors = [row for row in parsed if not row.is_parsed]
        if errors:
            logger.warning(f"{len(errors)} of {len(parsed)} rows could not be parsed")

        snapshot = self.load_snapshot(business_id, [row for row in parsed if row.is_parsed])
        candidates = self._run(lambda row: self.matcher.match(row, snapshot), parsed, workers, tick)

        if progress is not None:
            progress(1.0)
        logger.info(
            f"Prepared {len(candidates)} rows for business {business_id} "
            f"({len(errors)} parse errors, snapshot of {len(snapshot)} records)"
        )
        return candidates

    @staticmethod
    def _run(
        func: Callable[[T], R], items: Iterable[T], workers: int, tick: Callable[[], None]
    ) -> list[R]:
        results = []
        if workers <= 1:
            for item in items:
                results.append(func(item))
                tick()
            return results

        with ThreadPoolExecutor(max_workers=workers) as executor:
            # Executor.map yields in submission order
            for result in executor.map(func, items):
                results.append(result)
                tick()
        return results

    def start_wizard(self, business_id: int, workers: int = 1) -> ImportWizard:
        """Create a wizard that prepares rows against a business's ledger.

        Raises:
            NotFoundError: If the business does not exist
        """
        self._require_business(business_id)

        def preparer(wizard: ImportWizard) -> list[MatchCandidate]:
            return self.prepare(
                wizard.rows,
                wizard.require_complete_mapping(),
                business_id,
                workers=workers,
                progress=wizard.set_progress,
            )

        return ImportWizard(preparer=preparer)

    def commit(
        self,
        business_id: int,
        candidates: Sequence[MatchCandidate],
        source_filename: str,
        bank_format: str,
    ) -> ImportHistoryItem:
        """Write every IMPORT-resolved, parsed row as one audited batch.

        Args:
            business_id: Business the records belong to
            candidates: Reviewed rows; only ``will_import`` rows are written
            source_filename: Name of the imported file
            bank_format: Detected bank format identifier

        Returns:
            History item for the committed batch

        Raises:
            NotFoundError: If the business does not exist
            ValidationError: If no row resolves to IMPORT
            CommitFailure: If the ledger write failed; nothing was written
        """
        self._require_business(business_id)
        rows = [c.row for c in candidates if c.will_import]
        if not rows:
            raise ValidationError("No transactions selected for import")

        try:
            with LogContext(
                logger,
                "commit import",
                business_id=business_id,
                source_filename=source_filename,
                rows=len(rows),
            ):
                item = self.db.commit_import_batch(
                    business_id=business_id,
                    source_filename=source_filename,
                    bank_format=bank_format,
                    rows=rows,
                    imported_at=self.clock(),
                )
        except Exception as e:
            raise CommitFailure(len(rows), e) from e

        logger.info(
            f"Committed import {item.id}: {item.income_count} income, "
            f"{item.expense_count} expense records from {source_filename}"
        )
        return item

    def commit_wizard(self, wizard: ImportWizard, business_id: int) -> ImportHistoryItem:
        """Commit the rows reviewed in a wizard at its confirm step.

        On failure the wizard is left exactly as it was, so the operator can
        retry.

        Raises:
            ValidationError: If the wizard is not at the confirm step
            CommitFailure: If the ledger write failed
        """
        if wizard.current_step != WizardStep.CONFIRM:
            raise ValidationError("Import can only be committed from the confirm step")

        previous_progress = wizard.progress
        wizard.begin_import()
        try:
            item = self.commit(
                business_id,
                wizard.review.candidates,
                wizard.filename or "",
                wizard.profile.bank.value,
            )
        except Exception:
            wizard.end_import()
            wizard.progress = previous_progress
            raise
        wizard.end_import(item)
        return item
