"""Date parsing utilities."""

from datetime import date, datetime, timedelta
from typing import Optional

from dateutil import parser as date_parser
from dateutil.relativedelta import relativedelta

# Pseudo-format: let dateutil work it out, reading ambiguous dates day-first (UK)
AUTO_DATE_FORMAT = "auto"

_PERIOD_LENGTHS = {
    "week": relativedelta(weeks=1),
    "month": relativedelta(months=1),
    "year": relativedelta(years=1),
    "tax-year": relativedelta(years=1),
}

PERIODS = [f"{which}-{unit}" for which in ("this", "last") for unit in _PERIOD_LENGTHS]

_DAY_OFFSETS = {"today": 0, "yesterday": -1, "tomorrow": 1}


def _parse_iso(value: str) -> Optional[date]:
    # ISO dates are year-first; dayfirst parsing would swap day and month
    if len(value) < 10 or value[4] != "-":
        return None
    try:
        return date.fromisoformat(value[:10])
    except ValueError:
        return None


def tax_year_start(day: date) -> date:
    """First day of the UK tax year (6 April) containing ``day``."""
    start_year = day.year if (day.month, day.day) >= (4, 6) else day.year - 1
    return date(start_year, 4, 6)


def _period_start(unit: str, day: date) -> date:
    if unit == "week":
        return day - timedelta(days=day.weekday())
    if unit == "month":
        return day.replace(day=1)
    if unit == "year":
        return day.replace(month=1, day=1)
    return tax_year_start(day)


def parse_statement_date(date_str: str, date_format: str) -> date:
    """Parse a date cell from a bank statement.

    Args:
        date_str: Raw cell value
        date_format: strptime pattern (e.g. "%d/%m/%Y") or AUTO_DATE_FORMAT

    Returns:
        Date object

    Raises:
        ValueError: If the cell is empty or does not match the format
    """
    if date_str is None or not date_str.strip():
        raise ValueError("Missing date")

    value = date_str.strip()
    if date_format == AUTO_DATE_FORMAT:
        iso = _parse_iso(value)
        if iso is not None:
            return iso
        try:
            return date_parser.parse(value, dayfirst=True).date()
        except (ValueError, OverflowError) as e:
            raise ValueError(f"Could not parse date '{value}': {e}")

    try:
        return datetime.strptime(value, date_format).date()
    except ValueError:
        raise ValueError(f"Could not parse date '{value}' with format '{date_format}'")


def parse_date(date_str: str, today: Optional[date] = None) -> date:
    """Parse a user-supplied date string into a date object.

    Accepts "today", "yesterday" and "tomorrow", "this <period>" and
    "last <period>" (the first day of that period, where period is week,
    month, year or tax year), ISO dates, and anything dateutil reads, with
    ambiguous numeric dates read day-first.

    Raises:
        ValueError: If date string cannot be parsed
    """
    value = date_str.strip().lower()
    today = today or date.today()

    if value in _DAY_OFFSETS:
        return today + timedelta(days=_DAY_OFFSETS[value])

    which, _, unit = value.partition(" ")
    if which in ("this", "last") and unit:
        unit = "-".join(unit.split())
        if unit not in _PERIOD_LENGTHS:
            raise ValueError(f"Could not parse date '{date_str}': unknown period '{unit}'")
        return get_date_range(f"{which}-{unit}", today)[0]

    iso = _parse_iso(value)
    if iso is not None:
        return iso

    try:
        return date_parser.parse(value, dayfirst=True).date()
    except (ValueError, TypeError, OverflowError) as e:
        raise ValueError(f"Could not parse date '{date_str}': {e}")


def get_date_range(period: str, today: Optional[date] = None) -> tuple[date, date]:
    """Get start and end dates for a named period.

    "this-*" periods run from the start of the period to ``today``;
    "last-*" periods are the whole previous period. "tax-year" is an
    alias for "this-tax-year".

    Raises:
        ValueError: If period string is not recognized
    """
    period = period.strip().lower()
    today = today or date.today()
    if period == "tax-year":
        period = "this-tax-year"

    which, _, unit = period.partition("-")
    if which not in ("this", "last") or unit not in _PERIOD_LENGTHS:
        raise ValueError(f"Unknown period: '{period}'. Supported periods: {', '.join(PERIODS)}, tax-year")

    current_start = _period_start(unit, today)
    if which == "this":
        return (current_start, today)
    return (current_start - _PERIOD_LENGTHS[unit], current_start - timedelta(days=1))
