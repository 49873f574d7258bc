"""Tests for ledger reconciliation."""

from datetime import date, datetime, timedelta, UTC
from decimal import Decimal

import pytest

from bankimport.domain.entities import (
    ExpenseCategory,
    IncomeCategory,
    IssueCategory,
    IssueSeverity,
    LedgerRecord,
    TransactionType,
)
from bankimport.domain.errors import NotFoundError
from bankimport.domain.reconciliation import (
    DateGap,
    ReconciliationAnalyzer,
    ReconciliationService,
    issues_by_severity,
)
from bankimport.domain.settings import ReconciliationPolicy

TODAY = date(2024, 2, 1)


def record(
    record_id,
    record_date,
    amount="10.00",
    direction=TransactionType.EXPENSE,
    description="Card payment",
    category=ExpenseCategory.OFFICE_COSTS,
    deleted_at=None,
):
    return LedgerRecord(
        id=record_id,
        business_id=1,
        date=record_date,
        amount=Decimal(amount),
        direction=direction,
        description=description,
        category=category,
        reference=None,
        batch_id=None,
        created_at=datetime(2024, 1, 1, tzinfo=UTC),
        deleted_at=deleted_at,
    )


def daily(start, days, first_id=1):
    """One distinct record per day, so there are no gaps or duplicates."""
    return [
        record(first_id + n, start + timedelta(days=n), amount=f"{10 + n}.00", description=f"Payment {n}")
        for n in range(days)
    ]


@pytest.fixture
def analyzer():
    return ReconciliationAnalyzer()


def by_category(issues, category):
    return next((issue for issue in issues if issue.category == category), None)


class TestAllClear:
    """Tests for a clean ledger."""

    def test_no_issues(self, analyzer):
        records = daily(date(2024, 1, 20), 13)

        assert analyzer.analyze(records, TODAY) == []
        assert analyzer.summarize(records, TODAY).all_clear

    def test_empty_ledger(self, analyzer):
        assert analyzer.analyze([], TODAY) == []


class TestDuplicates:
    """Tests for duplicate clusters."""

    def test_exact_copies_are_high(self, analyzer):
        records = daily(date(2024, 1, 20), 13) + [
            record(100, date(2024, 1, 25), amount="99.00", description="AMAZON"),
            record(101, date(2024, 1, 25), amount="99.00", description="amazon"),
        ]

        issue = by_category(analyzer.analyze(records, TODAY), IssueCategory.DUPLICATES)

        assert issue.severity == IssueSeverity.HIGH
        assert issue.affected_count == 1
        assert issue.title == "1 possible duplicate record"
        assert issue.samples == ("2024-01-25 £99.00 AMAZON (x2)",)

    def test_similar_copies_are_medium(self, analyzer):
        records = [
            record(1, date(2024, 1, 25), amount="99.00", description="Amazon Prime"),
            record(2, date(2024, 1, 25), amount="99.00", description="Amazon Prim"),
        ]

        issue = by_category(analyzer.analyze(records, TODAY), IssueCategory.DUPLICATES)

        assert issue.severity == IssueSeverity.MEDIUM

    def test_cluster_rules(self, analyzer):
        """Clusters need the same direction, date and amount and a similar description."""
        records = [
            record(1, date(2024, 1, 25), description="Rent"),
            record(2, date(2024, 1, 25), description="Rent"),
            record(3, date(2024, 1, 25), description="Rent", direction=TransactionType.INCOME,
                   category=IncomeCategory.SALES),
            record(4, date(2024, 1, 26), description="Rent"),
            record(5, date(2024, 1, 25), amount="10.01", description="Rent"),
            record(6, date(2024, 1, 25), description="Completely different"),
        ]

        clusters = analyzer.find_duplicate_clusters(records)

        assert [[r.id for r in c] for c in clusters] == [[1, 2]]

    def test_deleted_records_ignored(self, analyzer):
        records = [
            record(1, date(2024, 1, 25)),
            record(2, date(2024, 1, 25), deleted_at=datetime(2024, 1, 26, tzinfo=UTC)),
        ]

        assert by_category(analyzer.analyze(records, TODAY), IssueCategory.DUPLICATES) is None


class TestMissingCategories:
    """Tests for uncategorized records."""

    @pytest.mark.parametrize(
        "uncategorized, severity",
        [(1, IssueSeverity.LOW), (2, IssueSeverity.MEDIUM), (7, IssueSeverity.HIGH)],
    )
    def test_severity_by_ratio(self, analyzer, uncategorized, severity):
        """Share of 25 records: 4% is LOW, 8% MEDIUM and 28% HIGH."""
        records = daily(date(2024, 1, 8), 25)
        records = [
            record(r.id, r.date, amount=str(r.amount), description=r.description, category=None)
            if n < uncategorized
            else r
            for n, r in enumerate(records)
        ]

        issue = by_category(analyzer.analyze(records, TODAY), IssueCategory.MISSING_CATEGORIES)

        assert issue.affected_count == uncategorized
        assert issue.severity == severity
        assert len(issue.samples) == min(uncategorized, 3)


class TestDateGaps:
    """Tests for coverage gaps."""

    def test_gap_between_records(self, analyzer):
        records = [record(1, date(2024, 1, 1), description="A"), record(2, date(2024, 1, 20), description="B"),
                   record(3, date(2024, 1, 30), description="C")]

        assert analyzer.find_date_gaps(records, TODAY) == [DateGap(date(2024, 1, 1), date(2024, 1, 20))]

    def test_trailing_gap_to_today(self, analyzer):
        """No records since the last statement is reported, but only as LOW."""
        records = [record(1, date(2023, 11, 1))]

        gaps = analyzer.find_date_gaps(records, TODAY)
        issue = by_category(analyzer.analyze(records, TODAY), IssueCategory.DATE_GAPS)

        assert gaps == [DateGap(date(2023, 11, 1), TODAY, trailing=True)]
        assert gaps[0].days == 92
        assert issue.severity == IssueSeverity.LOW
        assert issue.samples == ("2023-11-01 to 2024-02-01 (92 days, no records since)",)

    def test_past_tax_year_only_is_not_high(self, analyzer):
        """A ledger holding just last tax year's statements is not alarming."""
        records = daily(date(2022, 4, 6), 365)

        issue = by_category(analyzer.analyze(records, TODAY), IssueCategory.DATE_GAPS)

        assert issue.severity == IssueSeverity.LOW
        assert issue.affected_count == 1

    def test_gap_between_records_sets_severity(self, analyzer):
        """Severity follows the longest gap between records, not the trailing one."""
        records = [record(1, date(2023, 6, 1), description="A"), record(2, date(2023, 7, 20), description="B")]

        gaps = analyzer.find_date_gaps(records, TODAY)
        issue = by_category(analyzer.analyze(records, TODAY), IssueCategory.DATE_GAPS)

        assert [gap.trailing for gap in gaps] == [False, True]
        assert issue.severity == IssueSeverity.MEDIUM
        assert "longest 196 days" in issue.title

    def test_trailing_gap_can_be_excluded(self):
        analyzer = ReconciliationAnalyzer(ReconciliationPolicy(include_trailing_gap=False))
        records = [record(1, date(2023, 11, 1))]

        assert analyzer.find_date_gaps(records, TODAY) == []
        assert analyzer.analyze(records, TODAY) == []

    @pytest.mark.parametrize(
        "days, severity",
        [(20, IssueSeverity.LOW), (40, IssueSeverity.MEDIUM), (70, IssueSeverity.HIGH)],
    )
    def test_severity_by_longest_gap(self, analyzer, days, severity):
        records = [record(1, TODAY - timedelta(days=days), description="A"), record(2, TODAY, description="B")]

        issue = by_category(analyzer.analyze(records, TODAY), IssueCategory.DATE_GAPS)

        assert issue.severity == severity

    def test_short_gap_not_reported(self, analyzer):
        records = [record(1, TODAY - timedelta(days=14), description="A"), record(2, TODAY, description="B")]

        assert analyzer.find_date_gaps(records, TODAY) == []


class TestOrdering:
    """Tests for issue ordering and summaries."""

    def test_issues_sorted_by_severity(self, analyzer):
        records = [
            record(1, date(2023, 10, 1), description="Rent", category=None),
            record(2, date(2023, 10, 1), description="Rent", category=None),
            record(3, date(2024, 1, 31), description="Office chair"),
        ]

        issues = analyzer.analyze(records, TODAY)

        ranks = [issue.severity.rank for issue in issues]
        assert ranks == sorted(ranks)
        assert len(issues_by_severity(issues, IssueSeverity.HIGH)) == 3

    def test_summary_totals(self, analyzer):
        records = [
            record(1, TODAY, amount="1500.00", direction=TransactionType.INCOME,
                   description="Invoice", category=IncomeCategory.SALES),
            record(2, TODAY, amount="45.50", description="Amazon"),
            record(3, TODAY, amount="45.50", description="Amazon"),
        ]

        summary = analyzer.summarize(records, TODAY)

        assert summary.income_total == Decimal("1500.00")
        assert summary.expense_total == Decimal("91.00")
        assert summary.net_total == Decimal("1409.00")
        assert summary.income_count == 1
        assert summary.expense_count == 2
        assert summary.duplicate_count == 1
        assert summary.uncategorized_count == 0
        assert not summary.all_clear


class TestReconciliationService:
    """Tests for running reconciliation against the database."""

    def test_analyze_business(self, temp_db, sample_business, ledger_service):
        ledger_service.add_record(sample_business.id, TODAY, Decimal("-20.00"), "Parking")
        ledger_service.add_record(sample_business.id, TODAY, Decimal("-20.00"), "Parking")

        service = ReconciliationService(temp_db)
        issues = service.analyze(sample_business.id, TODAY)

        assert {issue.category for issue in issues} == {
            IssueCategory.DUPLICATES,
            IssueCategory.MISSING_CATEGORIES,
        }
        assert service.summarize(sample_business.id, TODAY).expense_total == Decimal("40.00")

    def test_unknown_business(self, temp_db):
        with pytest.raises(NotFoundError):
            ReconciliationService(temp_db).analyze(999, TODAY)
