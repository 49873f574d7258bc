"""Tunable policy values for import, matching, undo and reconciliation."""

from dataclasses import dataclass, field
from decimal import Decimal


@dataclass
class MatchPolicy:
    """Thresholds used by the duplicate matcher.

    Attributes:
        date_tolerance_days: Max date difference for a LIKELY match.
        amount_tolerance_ratio: Relative amount difference for a LIKELY match.
        amount_tolerance_floor: Absolute amount difference always tolerated.
        similarity_threshold: Description similarity (0-1) for a LIKELY match.
    """

    date_tolerance_days: int = 2
    amount_tolerance_ratio: Decimal = field(default_factory=lambda: Decimal("0.01"))
    amount_tolerance_floor: Decimal = field(default_factory=lambda: Decimal("1.00"))
    similarity_threshold: float = 0.80

    def amount_tolerance(self, amount: Decimal) -> Decimal:
        """Largest amount difference still treated as the same payment."""
        return max(abs(amount) * self.amount_tolerance_ratio, self.amount_tolerance_floor)


@dataclass
class ConfidencePolicy:
    """Categorization confidence band boundaries (inclusive lower bounds)."""

    high_threshold: int = 80
    medium_threshold: int = 50


@dataclass
class UndoPolicy:
    """Retention window during which an unlocked import can be undone."""

    window_days: int = 7


@dataclass
class ReconciliationPolicy:
    """Thresholds for the post-commit ledger scan.

    Attributes:
        similarity_threshold: Description similarity for duplicate clusters.
        date_gap_warning_days: Gaps longer than this are reported (LOW).
        date_gap_alert_days: Gaps longer than this are MEDIUM; over twice this, HIGH.
        include_trailing_gap: Report the span from the last record to today.
            It is always LOW; only gaps between records raise the severity.
        uncategorized_alert_ratio: Share of uncategorized records that is HIGH.
        uncategorized_warning_ratio: Share of uncategorized records that is MEDIUM.
        sample_size: Number of evidence lines kept per issue.
    """

    similarity_threshold: float = 0.80
    date_gap_warning_days: int = 14
    date_gap_alert_days: int = 31
    include_trailing_gap: bool = True
    uncategorized_alert_ratio: float = 0.25
    uncategorized_warning_ratio: float = 0.05
    sample_size: int = 3


@dataclass
class ImportSettings:
    """All policy values used by the import engine."""

    matching: MatchPolicy = field(default_factory=MatchPolicy)
    confidence: ConfidencePolicy = field(default_factory=ConfidencePolicy)
    undo: UndoPolicy = field(default_factory=UndoPolicy)
    reconciliation: ReconciliationPolicy = field(default_factory=ReconciliationPolicy)
