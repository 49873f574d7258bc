"""Amount parsing utilities."""

from decimal import Decimal, InvalidOperation
import re

# Sign may lead the currency symbol ("-£5") or trail the number ("5.00-")
_AMOUNT_PATTERN = re.compile(
    r"""
    ^(?P<open>\()?
    (?P<lead>[-+])?
    [$€£¥]?
    (?P<number>\d[\d,]*(?:\.\d+)?|\.\d+)
    (?P<trail>-)?
    (?P<close>\))?
    (?P<marker>CR|DR)?$
    """,
    re.IGNORECASE | re.VERBOSE,
)


def parse_amount(amount_str: str) -> Decimal:
    """Parse an amount string into a signed Decimal.

    Handles the shapes UK bank exports use:
    - "123.45", "-123.45", "£1,234.56", "-£45.50"
    - "(123.45)" (negative in parentheses)
    - "123.45-" (trailing minus)
    - "123.45 CR" / "123.45 DR" (credit positive, debit negative)

    Raises:
        ValueError: If amount string cannot be parsed
    """
    if amount_str is None or not amount_str.strip():
        raise ValueError("Empty amount string")

    compact = re.sub(r"\s+", "", amount_str)
    match = _AMOUNT_PATTERN.match(compact)
    if match is None or bool(match["open"]) != bool(match["close"]):
        raise ValueError(f"Could not parse amount '{amount_str.strip()}'")

    try:
        amount = Decimal(match["number"].replace(",", ""))
    except InvalidOperation:
        raise ValueError(f"Could not parse amount '{amount_str.strip()}'")

    negatives = [
        match["open"] is not None,
        match["lead"] == "-",
        match["trail"] is not None,
        (match["marker"] or "").upper() == "DR",
    ]
    return -amount if any(negatives) else amount
