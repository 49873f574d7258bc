"""Tests for BankImportService."""

from datetime import date
from decimal import Decimal

import pytest

from bankimport.database import sqlalchemy_db
from bankimport.database.factories import create_sqlite_database
from bankimport.domain.bank_format import BankFormat
from bankimport.domain.column_mapping import ColumnMapping
from bankimport.domain.entities import (
    ExpenseCategory,
    ImportAction,
    IncomeCategory,
    MatchType,
    RowStatus,
    TransactionType,
)
from bankimport.domain.errors import (
    CommitFailure,
    MappingIncompleteError,
    NotFoundError,
    ValidationError,
)
from bankimport.domain.wizard import WizardStep


def prepare_file(import_service, path, business_id, **kwargs):
    statement, profile = import_service.detect(str(path))
    candidates = import_service.prepare(
        statement.rows, profile.create_mapping(), business_id, **kwargs
    )
    return statement, profile, candidates


class TestReadStatement:
    """Tests for reading statement files."""

    def test_read_barclays(self, import_service, fixtures_dir):
        statement = import_service.read_statement(str(fixtures_dir / "barclays.csv"))

        assert statement.filename == "barclays.csv"
        assert statement.headers[:3] == ["Date", "Type", "Description"]
        assert len(statement.rows) == 5

    def test_semicolon_delimited(self, import_service, tmp_path):
        """The delimiter is sniffed from the file."""
        path = tmp_path / "semi.csv"
        path.write_text("Date;Description;Amount\n01/01/2024;Fee;-1.00\n02/01/2024;Sale;10.00\n")

        statement = import_service.read_statement(str(path))

        assert statement.headers == ["Date", "Description", "Amount"]
        assert statement.rows[0]["Amount"] == "-1.00"

    def test_byte_order_mark_is_stripped(self, import_service, tmp_path):
        path = tmp_path / "bom.csv"
        path.write_bytes("\ufeffDate,Description,Amount\n01/01/2024,Fee,-1.00\n".encode("utf-8"))

        statement = import_service.read_statement(str(path))

        assert statement.headers[0] == "Date"

    def test_windows_1252_export(self, import_service, fixtures_dir):
        """Statements saved as Windows-1252 are decoded rather than rejected."""
        statement = import_service.read_statement(str(fixtures_dir / "barclays_cp1252.csv"))

        assert statement.headers[:3] == ["Date", "Type", "Description"]
        assert statement.rows[0]["Description"] == "CAFÉ NERO £ LUNCH"

    def test_undecodable_file(self, import_service, tmp_path):
        path = tmp_path / "binary.csv"
        path.write_bytes(b"Date,Description,Amount\n01/01/2024,\x81\x8d\x9d,-1.00\n")

        with pytest.raises(ValidationError, match="Could not decode binary.csv"):
            import_service.read_statement(str(path))

    def test_missing_file(self, import_service):
        with pytest.raises(FileNotFoundError):
            import_service.read_statement("/nonexistent/statement.csv")

    def test_empty_file(self, import_service, fixtures_dir):
        with pytest.raises(ValidationError, match="no header row"):
            import_service.read_statement(str(fixtures_dir / "empty.csv"))

    def test_detect(self, import_service, fixtures_dir):
        _, profile = import_service.detect(str(fixtures_dir / "starling.csv"))

        assert profile.bank == BankFormat.STARLING


class TestPrepare:
    """Tests for parse, categorize and match."""

    def test_prepare_barclays(self, import_service, sample_business, fixtures_dir):
        """Parsed rows are categorized; the broken row is kept as a parse error."""
        _, _, candidates = prepare_file(import_service, fixtures_dir / "barclays.csv", sample_business.id)

        assert len(candidates) == 5
        assert [c.row.row_number for c in candidates] == [2, 3, 4, 5, 6]

        amazon = candidates[0].row
        assert amazon.direction == TransactionType.EXPENSE
        assert amazon.amount == Decimal("45.50")
        assert amazon.category == ExpenseCategory.OFFICE_COSTS

        assert candidates[2].row.category == IncomeCategory.SALES
        assert candidates[3].row.category == ExpenseCategory.TRAVEL

        broken = candidates[4]
        assert broken.row.status == RowStatus.PARSE_ERROR
        assert not broken.will_import
        assert all(c.match_type == MatchType.NEW for c in candidates)

    def test_prepare_detects_existing_records(
        self, import_service, ledger_service, sample_business, fixtures_dir
    ):
        """Rows already in the ledger are classified against it."""
        ledger_service.add_record(sample_business.id, date(2024, 1, 15), Decimal("-45.50"), "Amazon Marketplace")
        ledger_service.add_record(sample_business.id, date(2024, 1, 21), Decimal("2000.00"), "Stripe")

        _, _, candidates = prepare_file(import_service, fixtures_dir / "barclays.csv", sample_business.id)

        assert candidates[0].match_type == MatchType.EXACT
        assert candidates[0].action == ImportAction.SKIP
        assert candidates[2].match_type == MatchType.LIKELY
        assert candidates[2].action == ImportAction.IMPORT
        assert candidates[1].match_type == MatchType.NEW

    def test_threaded_prepare_keeps_order(self, import_service, sample_business, fixtures_dir):
        """Worker threads return the same rows in the same order."""
        _, _, inline = prepare_file(import_service, fixtures_dir / "barclays.csv", sample_business.id)
        _, _, threaded = prepare_file(
            import_service, fixtures_dir / "barclays.csv", sample_business.id, workers=4
        )

        def summary(candidates):
            return [(c.row.row_number, c.row.amount, c.row.category, c.match_type) for c in candidates]

        assert summary(threaded) == summary(inline)

    def test_progress_reaches_one(self, import_service, sample_business, fixtures_dir):
        seen = []

        prepare_file(import_service, fixtures_dir / "barclays.csv", sample_business.id, progress=seen.append)

        assert seen == sorted(seen)
        assert seen[-1] == 1.0

    def test_incomplete_mapping(self, import_service, sample_business):
        with pytest.raises(MappingIncompleteError):
            import_service.prepare([], ColumnMapping(), sample_business.id)

    def test_unknown_business(self, import_service, fixtures_dir):
        statement, profile = import_service.detect(str(fixtures_dir / "barclays.csv"))

        with pytest.raises(NotFoundError):
            import_service.prepare(statement.rows, profile.create_mapping(), 999)


class TestCommit:
    """Tests for atomic commit."""

    def test_commit_writes_batch(self, import_service, temp_db, sample_business, fixtures_dir):
        _, profile, candidates = prepare_file(import_service, fixtures_dir / "barclays.csv", sample_business.id)

        item = import_service.commit(sample_business.id, candidates, "barclays.csv", profile.bank.value)

        assert item.income_count == 2
        assert item.expense_count == 2
        assert item.income_total == Decimal("3500.00")
        assert item.expense_total == Decimal("57.80")
        assert item.bank_format == "BARCLAYS"
        records = temp_db.list_records(sample_business.id)
        assert len(records) == 4
        assert {r.batch_id for r in records} == {item.id}
        assert temp_db.get_batch_record_ids(item.id) == [r.id for r in records]

    def test_reimport_is_all_exact(self, import_service, sample_business, fixtures_dir):
        """Importing the same statement twice finds every row already present."""
        _, profile, candidates = prepare_file(import_service, fixtures_dir / "barclays.csv", sample_business.id)
        import_service.commit(sample_business.id, candidates, "barclays.csv", profile.bank.value)

        _, _, again = prepare_file(import_service, fixtures_dir / "barclays.csv", sample_business.id)

        parsed = [c for c in again if c.row.is_parsed]
        assert all(c.match_type == MatchType.EXACT for c in parsed)
        with pytest.raises(ValidationError, match="No transactions selected"):
            import_service.commit(sample_business.id, again, "barclays.csv", profile.bank.value)

    def test_failure_mid_batch_writes_nothing(
        self, import_service, temp_db, sample_business, fixtures_dir, monkeypatch
    ):
        """A failure after some rows leaves the ledger and history untouched."""
        _, profile, candidates = prepare_file(import_service, fixtures_dir / "barclays.csv", sample_business.id)
        original = sqlalchemy_db.imported_row_to_orm
        calls = []

        def failing(*args, **kwargs):
            calls.append(args)
            if len(calls) == 3:
                raise RuntimeError("disk full")
            return original(*args, **kwargs)

        monkeypatch.setattr(sqlalchemy_db, "imported_row_to_orm", failing)

        with pytest.raises(CommitFailure) as exc_info:
            import_service.commit(sample_business.id, candidates, "barclays.csv", profile.bank.value)

        assert exc_info.value.attempted == 4
        assert "disk full" in str(exc_info.value)
        fresh = create_sqlite_database(temp_db.database_path)
        try:
            assert fresh.list_records(sample_business.id, include_deleted=True) == []
            assert fresh.list_import_batches(sample_business.id) == []
        finally:
            fresh.disconnect()

    def test_commit_unknown_business(self, import_service):
        with pytest.raises(NotFoundError):
            import_service.commit(999, [], "x.csv", "UNKNOWN")


class TestWizardFlow:
    """Tests for driving an import through the wizard."""

    def test_end_to_end(self, import_service, sample_business, fixtures_dir):
        statement, _ = import_service.detect(str(fixtures_dir / "starling.csv"))
        wizard = import_service.start_wizard(sample_business.id)

        wizard.select_file(statement.filename, statement.headers, statement.rows)
        while wizard.go_next():
            pass

        assert wizard.current_step == WizardStep.CONFIRM
        assert wizard.progress == 1.0
        assert wizard.review.income_total == Decimal("1200.00")
        assert wizard.review.expense_total == Decimal("57.30")

        item = import_service.commit_wizard(wizard, sample_business.id)

        assert item.bank_format == "STARLING"
        assert item.total_records == 3
        assert wizard.completed_import == item
        assert not wizard.is_importing

    def test_commit_before_confirm(self, import_service, sample_business):
        wizard = import_service.start_wizard(sample_business.id)

        with pytest.raises(ValidationError, match="confirm step"):
            import_service.commit_wizard(wizard, sample_business.id)

    def test_failed_commit_keeps_wizard_state(
        self, import_service, sample_business, fixtures_dir, monkeypatch
    ):
        """The operator can retry after a failed commit."""
        statement, _ = import_service.detect(str(fixtures_dir / "starling.csv"))
        wizard = import_service.start_wizard(sample_business.id)
        wizard.select_file(statement.filename, statement.headers, statement.rows)
        while wizard.go_next():
            pass

        def failing(*args, **kwargs):
            raise RuntimeError("database is locked")

        monkeypatch.setattr(sqlalchemy_db, "imported_row_to_orm", failing)

        with pytest.raises(CommitFailure):
            import_service.commit_wizard(wizard, sample_business.id)

        assert wizard.current_step == WizardStep.CONFIRM
        assert not wizard.is_importing
        assert wizard.progress == 1.0
        assert wizard.completed_import is None
        assert len(wizard.get_transactions_to_import()) == 3

        monkeypatch.undo()
        item = import_service.commit_wizard(wizard, sample_business.id)
        assert item.total_records == 3

    def test_start_wizard_unknown_business(self, import_service):
        with pytest.raises(NotFoundError):
            import_service.start_wizard(999)
