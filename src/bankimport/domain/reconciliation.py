"""Post-commit reconciliation of a business ledger.

The analyzer is read-only and advisory. Findings include:
- Duplicate clusters (same direction, date and amount, similar description)
- Uncategorized records
- Gaps in date coverage
"""

from collections import defaultdict
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import Optional, Sequence

from bankimport.database.base import Database
from bankimport.domain.categorizer import normalize_description
from bankimport.domain.duplicate_matcher import description_similarity
from bankimport.domain.entities import (
    IssueCategory,
    IssueSeverity,
    LedgerRecord,
    ReconciliationIssue,
    TransactionType,
)
from bankimport.domain.errors import NotFoundError, business_not_found
from bankimport.domain.settings import ReconciliationPolicy
from bankimport.utils.logging_config import get_logger

logger = get_logger(__name__)


def _describe(record: LedgerRecord) -> str:
    return f"{record.date.isoformat()} £{record.amount:,.2f} {record.description or '(no description)'}"


def issues_by_severity(
    issues: Sequence[ReconciliationIssue], severity: IssueSeverity
) -> list[ReconciliationIssue]:
    """Filter issues to one severity."""
    return [issue for issue in issues if issue.severity == severity]


@dataclass(frozen=True)
class DateGap:
    """Stretch of days with no ledger records.

    A trailing gap runs from the last record to the end of the coverage
    period rather than between two records.
    """

    start: date
    end: date
    trailing: bool = False

    @property
    def days(self) -> int:
        return (self.end - self.start).days


@dataclass(frozen=True)
class ReconciliationSummary:
    """Ledger totals alongside the issues found."""

    income_total: Decimal
    expense_total: Decimal
    income_count: int
    expense_count: int
    duplicate_count: int
    uncategorized_count: int
    issues: tuple[ReconciliationIssue, ...] = field(default_factory=tuple)

    @property
    def net_total(self) -> Decimal:
        return self.income_total - self.expense_total

    @property
    def all_clear(self) -> bool:
        return not self.issues


class ReconciliationAnalyzer:
    """Scans ledger records for data-quality issues."""

    def __init__(self, policy: Optional[ReconciliationPolicy] = None):
        """Initialize reconciliation analyzer.

        Args:
            policy: Thresholds for duplicates, categories and date gaps.
        """
        self.policy = policy or ReconciliationPolicy()

    def analyze(
        self, records: Sequence[LedgerRecord], today: Optional[date] = None
    ) -> list[ReconciliationIssue]:
        """Analyze one business's records.

        Args:
            records: Ledger records; tombstoned records are ignored.
            today: End of the coverage period, defaults to the current date.

        Returns:
            Issues ordered HIGH, MEDIUM, LOW.
        """
        today = today or date.today()
        live = [r for r in records if r.deleted_at is None]

        issues = [
            issue
            for issue in (
                self._duplicates_issue(live),
                self._missing_categories_issue(live),
                self._date_gaps_issue(live, today),
            )
            if issue is not None
        ]
        issues.sort(key=lambda issue: issue.severity.rank)
        logger.info(f"Reconciliation found {len(issues)} issues in {len(live)} records")
        return issues

    def find_duplicate_clusters(self, records: Sequence[LedgerRecord]) -> list[list[LedgerRecord]]:
        """Group records sharing direction, date and amount with similar descriptions.

        Returns:
            Clusters of two or more records, ordered by date then first ID.
        """
        groups: dict[tuple, list[LedgerRecord]] = defaultdict(list)
        for record in sorted(records, key=lambda r: (r.date, r.id)):
            groups[(record.direction, record.date, record.amount)].append(record)

        clusters: list[list[LedgerRecord]] = []
        for group in groups.values():
            if len(group) < 2:
                continue
            group_clusters: list[list[LedgerRecord]] = []
            for record in group:
                for cluster in group_clusters:
                    similarity = description_similarity(cluster[0].description, record.description)
                    if similarity >= self.policy.similarity_threshold:
                        cluster.append(record)
                        break
                else:
                    group_clusters.append([record])
            clusters.extend(c for c in group_clusters if len(c) > 1)

        clusters.sort(key=lambda c: (c[0].date, c[0].id))
        return clusters

    def _duplicates_issue(self, records: Sequence[LedgerRecord]) -> Optional[ReconciliationIssue]:
        clusters = self.find_duplicate_clusters(records)
        if not clusters:
            return None

        def is_exact(cluster: list[LedgerRecord]) -> bool:
            first = normalize_description(cluster[0].description)
            return any(normalize_description(r.description) == first for r in cluster[1:])

        extra = sum(len(c) - 1 for c in clusters)
        severity = IssueSeverity.HIGH if any(is_exact(c) for c in clusters) else IssueSeverity.MEDIUM
        samples = tuple(
            f"{_describe(c[0])} (x{len(c)})" for c in clusters[: self.policy.sample_size]
        )
        return ReconciliationIssue(
            category=IssueCategory.DUPLICATES,
            severity=severity,
            title=f"{extra} possible duplicate record{'s' if extra != 1 else ''}",
            affected_count=extra,
            action="Review the duplicate groups and delete or undo the extra copies",
            samples=samples,
        )

    def _missing_categories_issue(self, records: Sequence[LedgerRecord]) -> Optional[ReconciliationIssue]:
        uncategorized = [r for r in records if r.category is None]
        if not uncategorized:
            return None

        ratio = len(uncategorized) / len(records)
        if ratio >= self.policy.uncategorized_alert_ratio:
            severity = IssueSeverity.HIGH
        elif ratio >= self.policy.uncategorized_warning_ratio:
            severity = IssueSeverity.MEDIUM
        else:
            severity = IssueSeverity.LOW

        count = len(uncategorized)
        return ReconciliationIssue(
            category=IssueCategory.MISSING_CATEGORIES,
            severity=severity,
            title=f"{count} uncategorized record{'s' if count != 1 else ''}",
            affected_count=count,
            action="Assign a category so the records land in the right tax return box",
            samples=tuple(_describe(r) for r in uncategorized[: self.policy.sample_size]),
        )

    def find_date_gaps(self, records: Sequence[LedgerRecord], today: date) -> list[DateGap]:
        """Gaps between consecutive record dates (and up to ``today``) over the warning threshold."""
        dates = sorted({r.date for r in records})
        if not dates:
            return []
        gaps = [
            DateGap(start, end)
            for start, end in zip(dates, dates[1:])
            if (end - start).days > self.policy.date_gap_warning_days
        ]
        if self.policy.include_trailing_gap and (today - dates[-1]).days > self.policy.date_gap_warning_days:
            gaps.append(DateGap(dates[-1], today, trailing=True))
        return gaps

    def _date_gaps_issue(self, records: Sequence[LedgerRecord], today: date) -> Optional[ReconciliationIssue]:
        gaps = self.find_date_gaps(records, today)
        if not gaps:
            return None

        # A ledger covering only a past period is normal; the trailing gap stays LOW
        longest_between = max((gap.days for gap in gaps if not gap.trailing), default=0)
        if longest_between > 2 * self.policy.date_gap_alert_days:
            severity = IssueSeverity.HIGH
        elif longest_between > self.policy.date_gap_alert_days:
            severity = IssueSeverity.MEDIUM
        else:
            severity = IssueSeverity.LOW

        longest = max(gap.days for gap in gaps)
        ordered = sorted(gaps, key=lambda g: (-g.days, g.start))
        return ReconciliationIssue(
            category=IssueCategory.DATE_GAPS,
            severity=severity,
            title=f"{len(gaps)} gap{'s' if len(gaps) != 1 else ''} in transaction dates (longest {longest} days)",
            affected_count=len(gaps),
            action="Import the missing bank statements for these periods",
            samples=tuple(
                f"{g.start.isoformat()} to {g.end.isoformat()} ({g.days} days{', no records since' if g.trailing else ''})"
                for g in ordered[: self.policy.sample_size]
            ),
        )

    def summarize(
        self, records: Sequence[LedgerRecord], today: Optional[date] = None
    ) -> ReconciliationSummary:
        """Totals, counts and issues for a set of records."""
        live = [r for r in records if r.deleted_at is None]
        income = [r for r in live if r.direction == TransactionType.INCOME]
        expense = [r for r in live if r.direction == TransactionType.EXPENSE]
        clusters = self.find_duplicate_clusters(live)
        return ReconciliationSummary(
            income_total=sum((r.amount for r in income), Decimal("0")),
            expense_total=sum((r.amount for r in expense), Decimal("0")),
            income_count=len(income),
            expense_count=len(expense),
            duplicate_count=sum(len(c) - 1 for c in clusters),
            uncategorized_count=sum(1 for r in live if r.category is None),
            issues=tuple(self.analyze(live, today)),
        )


class ReconciliationService:
    """Runs the analyzer against a business's ledger."""

    def __init__(self, db: Database, policy: Optional[ReconciliationPolicy] = None):
        self.db = db
        self.analyzer = ReconciliationAnalyzer(policy)

    def _records(self, business_id: int) -> list[LedgerRecord]:
        if self.db.get_business(business_id) is None:
            raise NotFoundError(business_not_found(business_id))
        return self.db.list_records(business_id)

    def analyze(self, business_id: int, today: Optional[date] = None) -> list[ReconciliationIssue]:
        return self.analyzer.analyze(self._records(business_id), today)

    def summarize(self, business_id: int, today: Optional[date] = None) -> ReconciliationSummary:
        return self.analyzer.summarize(self._records(business_id), today)
