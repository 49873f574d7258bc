"""Duplicate detection of incoming statement rows against the ledger.

Classification is driven by an explicit score over (date delta, amount
delta, description similarity):

- EXACT: same date, same amount and identical normalized description
- LIKELY: within the date tolerance and either within the amount tolerance
  or above the description similarity threshold
- NEW: nothing qualifies

Matching is direction-aware (income against income records, expenses
against expense records) and read-only.
"""

from dataclasses import dataclass
from datetime import date, timedelta
from decimal import Decimal
from typing import Iterable, Optional, Sequence

from rapidfuzz.distance import Levenshtein

from bankimport.domain.categorizer import normalize_description
from bankimport.domain.entities import (
    ImportedTransactionRow,
    LedgerRecord,
    MatchCandidate,
    MatchType,
    TransactionType,
)
from bankimport.domain.settings import MatchPolicy
from bankimport.utils.logging_config import get_logger

logger = get_logger(__name__)

_MATCH_RANK = {MatchType.EXACT: 0, MatchType.LIKELY: 1, MatchType.NEW: 2}


def description_similarity(first: Optional[str], second: Optional[str]) -> float:
    """Normalized Levenshtein similarity (0-1) of two descriptions."""
    a = normalize_description(first)
    b = normalize_description(second)
    if a == b:
        return 1.0
    return Levenshtein.normalized_similarity(a, b)


@dataclass(frozen=True)
class MatchScore:
    """Distance between an incoming row and one existing record."""

    date_delta_days: int
    amount_delta: Decimal
    similarity: float

    @property
    def is_exact(self) -> bool:
        return self.date_delta_days == 0 and self.amount_delta == 0 and self.similarity == 1.0


def score(row: ImportedTransactionRow, record: LedgerRecord) -> MatchScore:
    """Score an incoming row against an existing ledger record."""
    return MatchScore(
        date_delta_days=abs((row.date - record.date).days),
        amount_delta=abs(row.amount - record.amount),
        similarity=description_similarity(row.description, record.description),
    )


def classify(match_score: MatchScore, amount: Decimal, policy: MatchPolicy) -> MatchType:
    """Map a score to a MatchType under the given policy."""
    if match_score.is_exact:
        return MatchType.EXACT
    if match_score.date_delta_days > policy.date_tolerance_days:
        return MatchType.NEW
    if match_score.amount_delta <= policy.amount_tolerance(amount):
        return MatchType.LIKELY
    if match_score.similarity >= policy.similarity_threshold:
        return MatchType.LIKELY
    return MatchType.NEW


class LedgerSnapshot:
    """Immutable view of a business's ledger taken once per import session."""

    def __init__(self, records: Iterable[LedgerRecord]):
        self._records: tuple[LedgerRecord, ...] = tuple(
            sorted(records, key=lambda r: (r.date, r.id))
        )
        self._by_direction: dict[TransactionType, tuple[LedgerRecord, ...]] = {
            direction: tuple(r for r in self._records if r.direction == direction)
            for direction in TransactionType
        }

    def __len__(self) -> int:
        return len(self._records)

    @property
    def records(self) -> tuple[LedgerRecord, ...]:
        return self._records

    def near(self, on: date, direction: TransactionType, tolerance_days: int) -> list[LedgerRecord]:
        """Records of one direction dated within ``tolerance_days`` of ``on``."""
        start = on - timedelta(days=tolerance_days)
        end = on + timedelta(days=tolerance_days)
        return [r for r in self._by_direction[direction] if start <= r.date <= end]


def snapshot_date_range(
    rows: Sequence[ImportedTransactionRow], policy: Optional[MatchPolicy] = None
) -> Optional[tuple[date, date]]:
    """Date range of ledger records needed to match ``rows``, or None if no dates."""
    policy = policy or MatchPolicy()
    dates = [row.date for row in rows if row.date is not None]
    if not dates:
        return None
    tolerance = timedelta(days=policy.date_tolerance_days)
    return (min(dates) - tolerance, max(dates) + tolerance)


class DuplicateMatcher:
    """Classifies incoming rows as NEW, LIKELY or EXACT duplicates."""

    def __init__(self, policy: Optional[MatchPolicy] = None):
        self.policy = policy or MatchPolicy()

    def match(self, row: ImportedTransactionRow, snapshot: LedgerSnapshot) -> MatchCandidate:
        """Classify one row against a ledger snapshot.

        Deterministic: the best candidate is chosen by match type, then
        similarity, date delta, amount delta and finally record id.
        """
        if not row.is_parsed or row.date is None:
            return MatchCandidate(row=row)

        best: Optional[tuple[tuple, MatchType, LedgerRecord, MatchScore]] = None
        for record in snapshot.near(row.date, row.direction, self.policy.date_tolerance_days):
            match_score = score(row, record)
            match_type = classify(match_score, row.amount, self.policy)
            if match_type == MatchType.NEW:
                continue
            rank = (
                _MATCH_RANK[match_type],
                -match_score.similarity,
                match_score.date_delta_days,
                match_score.amount_delta,
                record.id,
            )
            if best is None or rank < best[0]:
                best = (rank, match_type, record, match_score)

        if best is None:
            return MatchCandidate(row=row.with_duplicate(False))

        _, match_type, record, match_score = best
        return MatchCandidate(
            row=row.with_duplicate(True),
            match_type=match_type,
            matched_record_id=record.id,
            matched_record=record,
            similarity=match_score.similarity,
        )

    def match_all(
        self, rows: Sequence[ImportedTransactionRow], snapshot: LedgerSnapshot
    ) -> list[MatchCandidate]:
        """Classify rows in order and log a count per match type."""
        candidates = [self.match(row, snapshot) for row in rows]
        counts = {t: sum(1 for c in candidates if c.match_type == t) for t in MatchType}
        logger.info(
            f"Matched {len(candidates)} rows against {len(snapshot)} records: "
            + ", ".join(f"{t.value}={n}" for t, n in counts.items())
        )
        return candidates
