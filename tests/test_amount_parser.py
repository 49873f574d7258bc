"""Tests for amount parsing."""

import pytest
from decimal import Decimal

from bankimport.utils.amount_parser import parse_amount


@pytest.mark.parametrize(
    "value, expected",
    [
        ("123.45", Decimal("123.45")),
        ("-123.45", Decimal("-123.45")),
        ("£1,234.56", Decimal("1234.56")),
        ("-£45.50", Decimal("-45.50")),
        ("(45.50)", Decimal("-45.50")),
        ("100.00 CR", Decimal("100.00")),
        ("100.00 DR", Decimal("-100.00")),
        ("  7 ", Decimal("7")),
        ("45.50-", Decimal("-45.50")),
        ("+£12", Decimal("12")),
        (".99", Decimal("0.99")),
        ("£ 1,000.00 dr", Decimal("-1000.00")),
    ],
)
def test_parse_amount(value, expected):
    assert parse_amount(value) == expected


@pytest.mark.parametrize("value", [None, "", "   "])
def test_empty_amount(value):
    with pytest.raises(ValueError, match="Empty amount"):
        parse_amount(value)


@pytest.mark.parametrize("value", ["abc", "12.3.4", "NaN", "Infinity", "(45.50", "45.50)", "1e5"])
def test_invalid_amount(value):
    """Non-numeric and non-finite values are rejected."""
    with pytest.raises(ValueError, match="Could not parse amount"):
        parse_amount(value)
