"""Keyword-based category suggestions with a confidence score."""

import re
from dataclasses import dataclass, field
from functools import lru_cache
from typing import Optional

from bankimport.domain.entities import (
    Category,
    ConfidenceBand,
    ExpenseCategory,
    ImportedTransactionRow,
    IncomeCategory,
    TransactionType,
)
from bankimport.domain.settings import ConfidencePolicy

KEYWORD_HIT_SCORE = 85
AGREEING_KEYWORD_BONUS = 5
CONFLICT_CAP = 65
DEFAULT_INCOME_SCORE = 60


# Ordered by priority: the first matching keyword decides the category.
# Entries with a trailing space only match as a whole word.
EXPENSE_KEYWORDS: tuple[tuple[str, ExpenseCategory], ...] = (
    # Office costs - Box 23
    ("amazon", ExpenseCategory.OFFICE_COSTS),
    ("office", ExpenseCategory.OFFICE_COSTS),
    ("software", ExpenseCategory.OFFICE_COSTS),
    ("microsoft", ExpenseCategory.OFFICE_COSTS),
    ("adobe", ExpenseCategory.OFFICE_COSTS),
    ("stationery", ExpenseCategory.OFFICE_COSTS),
    ("staples", ExpenseCategory.OFFICE_COSTS),
    ("ryman", ExpenseCategory.OFFICE_COSTS),
    ("phone", ExpenseCategory.OFFICE_COSTS),
    ("vodafone", ExpenseCategory.OFFICE_COSTS),
    ("ee ", ExpenseCategory.OFFICE_COSTS),
    ("o2 ", ExpenseCategory.OFFICE_COSTS),
    ("bt ", ExpenseCategory.OFFICE_COSTS),
    ("broadband", ExpenseCategory.OFFICE_COSTS),
    ("internet", ExpenseCategory.OFFICE_COSTS),
    ("virgin media", ExpenseCategory.OFFICE_COSTS),
    # Travel - Box 20
    ("uber", ExpenseCategory.TRAVEL),
    ("trainline", ExpenseCategory.TRAVEL),
    ("train", ExpenseCategory.TRAVEL),
    ("national rail", ExpenseCategory.TRAVEL),
    ("tfl", ExpenseCategory.TRAVEL),
    ("travel", ExpenseCategory.TRAVEL),
    ("hotel", ExpenseCategory.TRAVEL),
    ("premier inn", ExpenseCategory.TRAVEL),
    ("travelodge", ExpenseCategory.TRAVEL),
    ("airways", ExpenseCategory.TRAVEL),
    ("airlines", ExpenseCategory.TRAVEL),
    ("easyjet", ExpenseCategory.TRAVEL),
    ("ryanair", ExpenseCategory.TRAVEL),
    ("parking", ExpenseCategory.TRAVEL),
    # Fuel - Box 20
    ("petrol", ExpenseCategory.TRAVEL_MILEAGE),
    ("diesel", ExpenseCategory.TRAVEL_MILEAGE),
    ("fuel", ExpenseCategory.TRAVEL_MILEAGE),
    ("shell", ExpenseCategory.TRAVEL_MILEAGE),
    ("bp ", ExpenseCategory.TRAVEL_MILEAGE),
    ("esso", ExpenseCategory.TRAVEL_MILEAGE),
    ("texaco", ExpenseCategory.TRAVEL_MILEAGE),
    # Premises - Box 21
    ("electricity", ExpenseCategory.PREMISES),
    ("british gas", ExpenseCategory.PREMISES),
    ("gas bill", ExpenseCategory.PREMISES),
    ("edf", ExpenseCategory.PREMISES),
    ("octopus energy", ExpenseCategory.PREMISES),
    ("rent", ExpenseCategory.PREMISES),
    ("water", ExpenseCategory.PREMISES),
    ("business rates", ExpenseCategory.PREMISES),
    ("business insurance", ExpenseCategory.PREMISES),
    # Repairs - Box 22
    ("repair", ExpenseCategory.REPAIRS),
    ("maintenance", ExpenseCategory.REPAIRS),
    # Professional fees - Box 28
    ("accountant", ExpenseCategory.PROFESSIONAL_FEES),
    ("accounting", ExpenseCategory.PROFESSIONAL_FEES),
    ("solicitor", ExpenseCategory.PROFESSIONAL_FEES),
    ("legal", ExpenseCategory.PROFESSIONAL_FEES),
    ("lawyer", ExpenseCategory.PROFESSIONAL_FEES),
    # Financial charges - Box 26
    ("bank charge", ExpenseCategory.FINANCIAL_CHARGES),
    ("bank fee", ExpenseCategory.FINANCIAL_CHARGES),
    ("transaction fee", ExpenseCategory.FINANCIAL_CHARGES),
    ("card fee", ExpenseCategory.FINANCIAL_CHARGES),
    ("overdraft", ExpenseCategory.FINANCIAL_CHARGES),
    # Advertising - Box 24
    ("advertising", ExpenseCategory.ADVERTISING),
    ("marketing", ExpenseCategory.ADVERTISING),
    ("google ads", ExpenseCategory.ADVERTISING),
    ("facebook ads", ExpenseCategory.ADVERTISING),
    ("linkedin ads", ExpenseCategory.ADVERTISING),
    # Interest - Box 25
    ("loan interest", ExpenseCategory.INTEREST),
    # Staff costs - Box 19
    ("salary", ExpenseCategory.STAFF_COSTS),
    ("wages", ExpenseCategory.STAFF_COSTS),
    ("payroll", ExpenseCategory.STAFF_COSTS),
    ("pension", ExpenseCategory.STAFF_COSTS),
    # Subcontractors - Box 18
    ("subcontract", ExpenseCategory.SUBCONTRACTOR_COSTS),
    ("freelancer", ExpenseCategory.SUBCONTRACTOR_COSTS),
    # Cost of goods - Box 17
    ("wholesale", ExpenseCategory.COST_OF_GOODS),
    ("stock purchase", ExpenseCategory.COST_OF_GOODS),
)

INCOME_KEYWORDS: tuple[tuple[str, IncomeCategory], ...] = (
    ("interest", IncomeCategory.OTHER_INCOME),
    ("dividend", IncomeCategory.OTHER_INCOME),
    ("refund", IncomeCategory.OTHER_INCOME),
    ("cashback", IncomeCategory.OTHER_INCOME),
    ("invoice", IncomeCategory.SALES),
    ("stripe", IncomeCategory.SALES),
    ("paypal", IncomeCategory.SALES),
    ("sumup", IncomeCategory.SALES),
)


def normalize_description(description: Optional[str]) -> str:
    """Lowercase, trim and collapse whitespace."""
    if description is None:
        return ""
    return re.sub(r"\s+", " ", description.lower().strip())


@dataclass(frozen=True)
class CategoryRuleset:
    """Read-only keyword table consulted by the categorizer."""

    expense_keywords: tuple[tuple[str, ExpenseCategory], ...] = EXPENSE_KEYWORDS
    income_keywords: tuple[tuple[str, IncomeCategory], ...] = INCOME_KEYWORDS
    default_income_category: Optional[IncomeCategory] = IncomeCategory.SALES

    def keywords_for(self, direction: TransactionType) -> tuple[tuple[str, Category], ...]:
        if direction == TransactionType.INCOME:
            return self.income_keywords
        return self.expense_keywords


@dataclass(frozen=True)
class CategorySuggestion:
    """Suggested category (None when uncategorized) and confidence 0-100."""

    category: Optional[Category]
    confidence: int
    matched_keywords: tuple[str, ...] = field(default_factory=tuple)


@lru_cache(maxsize=None)
def _keyword_pattern(keyword: str) -> re.Pattern:
    # Keywords match at the start of a word; a trailing space also pins the end
    pattern = r"(?<![a-z0-9])" + re.escape(keyword.strip())
    if keyword.endswith(" "):
        pattern += r"(?![a-z0-9])"
    return re.compile(pattern)


def _contains_keyword(text: str, keyword: str) -> bool:
    return _keyword_pattern(keyword).search(text) is not None


class Categorizer:
    """Assigns a category and confidence score to parsed rows."""

    def __init__(
        self,
        ruleset: Optional[CategoryRuleset] = None,
        policy: Optional[ConfidencePolicy] = None,
    ):
        self.ruleset = ruleset or CategoryRuleset()
        self.policy = policy or ConfidencePolicy()

    def suggest(self, description: Optional[str], direction: TransactionType) -> CategorySuggestion:
        """Suggest a category for a description.

        A single keyword hit scores 85; each further keyword agreeing on the
        same category adds 5 (max 100). Hits that point at different
        categories keep the highest-priority one but cap the score at 65.
        """
        text = normalize_description(description)
        hits = [
            (keyword, category)
            for keyword, category in self.ruleset.keywords_for(direction)
            if text and _contains_keyword(text, keyword)
        ]

        if not hits:
            if direction == TransactionType.INCOME and self.ruleset.default_income_category:
                return CategorySuggestion(self.ruleset.default_income_category, DEFAULT_INCOME_SCORE)
            return CategorySuggestion(None, 0)

        category = hits[0][1]
        agreeing = [keyword for keyword, cat in hits if cat == category]
        score = min(100, KEYWORD_HIT_SCORE + AGREEING_KEYWORD_BONUS * (len(agreeing) - 1))
        if len(agreeing) != len(hits):
            score = min(score, CONFLICT_CAP)
        return CategorySuggestion(category, score, tuple(agreeing))

    def categorize(self, row: ImportedTransactionRow) -> ImportedTransactionRow:
        """Return the row with its suggested category and confidence applied."""
        suggestion = self.suggest(row.description, row.direction)
        return row.with_category(suggestion.category, suggestion.confidence)

    def band(self, confidence: int) -> ConfidenceBand:
        return confidence_band(confidence, self.policy)


def confidence_band(confidence: int, policy: Optional[ConfidencePolicy] = None) -> ConfidenceBand:
    """Map a 0-100 score to HIGH (>=80), MEDIUM (50-79) or LOW (<50)."""
    policy = policy or ConfidencePolicy()
    if confidence >= policy.high_threshold:
        return ConfidenceBand.HIGH
    if confidence >= policy.medium_threshold:
        return ConfidenceBand.MEDIUM
    return ConfidenceBand.LOW
