"""Tests for the keyword categorizer."""

import pytest

from bankimport.domain.categorizer import (
    CategoryRuleset,
    Categorizer,
    confidence_band,
    normalize_description,
)
from bankimport.domain.entities import (
    ConfidenceBand,
    ExpenseCategory,
    IncomeCategory,
    TransactionType,
)
from bankimport.domain.settings import ConfidencePolicy


@pytest.fixture
def categorizer():
    return Categorizer()


class TestSuggest:
    """Tests for Categorizer.suggest."""

    @pytest.mark.parametrize(
        "description,category",
        [
            ("AMAZON MARKETPLACE", ExpenseCategory.OFFICE_COSTS),
            ("Uber trip 12 Jan", ExpenseCategory.TRAVEL),
            ("SHELL PETROL STATION", ExpenseCategory.TRAVEL_MILEAGE),
            ("Smith & Co Accountants", ExpenseCategory.PROFESSIONAL_FEES),
            ("GOOGLE ADS", ExpenseCategory.ADVERTISING),
        ],
    )
    def test_expense_keywords(self, categorizer, description, category):
        """Known merchants map to their SA103F box."""
        suggestion = categorizer.suggest(description, TransactionType.EXPENSE)

        assert suggestion.category == category
        assert suggestion.confidence >= 85

    def test_single_hit_scores_85(self, categorizer):
        """A single keyword hit scores 85."""
        suggestion = categorizer.suggest("Uber", TransactionType.EXPENSE)

        assert suggestion.confidence == 85
        assert suggestion.matched_keywords == ("uber",)

    def test_agreeing_keywords_raise_score(self, categorizer):
        """Each further keyword for the same category adds 5."""
        suggestion = categorizer.suggest("Trainline travel", TransactionType.EXPENSE)

        assert suggestion.category == ExpenseCategory.TRAVEL
        assert suggestion.confidence == 95
        assert suggestion.matched_keywords == ("trainline", "train", "travel")

    def test_conflicting_keywords_cap_score(self, categorizer):
        """Hits for different categories keep the first but score at most 65."""
        suggestion = categorizer.suggest("Amazon Uber voucher", TransactionType.EXPENSE)

        assert suggestion.category == ExpenseCategory.OFFICE_COSTS
        assert suggestion.confidence == 65

    def test_keywords_match_word_starts(self, categorizer):
        """Keywords don't match inside other words."""
        assert categorizer.suggest("Coffee", TransactionType.EXPENSE).category is None
        assert categorizer.suggest("Current account transfer", TransactionType.EXPENSE).category is None

    def test_whole_word_keywords(self, categorizer):
        """Short keywords with a trailing space must stand alone."""
        assert categorizer.suggest("EE mobile", TransactionType.EXPENSE).category == ExpenseCategory.OFFICE_COSTS
        assert categorizer.suggest("BT", TransactionType.EXPENSE).category == ExpenseCategory.OFFICE_COSTS
        assert categorizer.suggest("BTXYZ", TransactionType.EXPENSE).category is None

    def test_uncategorized_expense(self, categorizer):
        """Expenses with no keyword hit are uncategorized."""
        suggestion = categorizer.suggest("Local cafe", TransactionType.EXPENSE)

        assert suggestion.category is None
        assert suggestion.confidence == 0

    def test_income_keywords(self, categorizer):
        """Income keywords map to income categories."""
        assert categorizer.suggest("Interest paid", TransactionType.INCOME).category == IncomeCategory.OTHER_INCOME
        assert categorizer.suggest("STRIPE PAYOUT", TransactionType.INCOME).category == IncomeCategory.SALES

    def test_income_defaults_to_sales(self, categorizer):
        """Income with no keyword hit defaults to SALES at medium confidence."""
        suggestion = categorizer.suggest("Client payment", TransactionType.INCOME)

        assert suggestion.category == IncomeCategory.SALES
        assert suggestion.confidence == 60

    def test_direction_selects_keyword_table(self, categorizer):
        """Expense keywords are not applied to income."""
        suggestion = categorizer.suggest("Amazon refund", TransactionType.INCOME)
        assert suggestion.category == IncomeCategory.OTHER_INCOME

    def test_custom_ruleset(self):
        """A ruleset can replace the keyword tables."""
        ruleset = CategoryRuleset(
            expense_keywords=(("widget", ExpenseCategory.COST_OF_GOODS),),
            income_keywords=(),
            default_income_category=None,
        )
        categorizer = Categorizer(ruleset=ruleset)

        assert categorizer.suggest("Widget supplies", TransactionType.EXPENSE).category == ExpenseCategory.COST_OF_GOODS
        assert categorizer.suggest("Amazon", TransactionType.EXPENSE).category is None
        assert categorizer.suggest("Client", TransactionType.INCOME).category is None

    def test_empty_description(self, categorizer):
        """Blank descriptions are uncategorized."""
        assert categorizer.suggest("", TransactionType.EXPENSE).category is None
        assert categorizer.suggest(None, TransactionType.EXPENSE).category is None


class TestCategorize:
    """Tests for Categorizer.categorize."""

    def test_returns_updated_copy(self, categorizer, row_factory):
        """categorize returns a new row with category and confidence."""
        row = row_factory(description="UBER TRIP")

        result = categorizer.categorize(row)

        assert result.category == ExpenseCategory.TRAVEL
        assert result.confidence == 85
        assert result.id == row.id
        assert row.category is None


class TestConfidenceBand:
    """Tests for confidence bands."""

    @pytest.mark.parametrize(
        "score,band",
        [
            (100, ConfidenceBand.HIGH),
            (80, ConfidenceBand.HIGH),
            (79, ConfidenceBand.MEDIUM),
            (50, ConfidenceBand.MEDIUM),
            (49, ConfidenceBand.LOW),
            (0, ConfidenceBand.LOW),
        ],
    )
    def test_default_bands(self, score, band):
        """Default thresholds are 80 and 50."""
        assert confidence_band(score) == band

    def test_custom_policy(self):
        """Band thresholds come from the policy."""
        policy = ConfidencePolicy(high_threshold=90, medium_threshold=70)

        assert confidence_band(85, policy) == ConfidenceBand.MEDIUM
        assert Categorizer(policy=policy).band(65) == ConfidenceBand.LOW


def test_normalize_description():
    """Descriptions are lowercased with collapsed whitespace."""
    assert normalize_description("  AMAZON   Marketplace ") == "amazon marketplace"
    assert normalize_description(None) == ""
