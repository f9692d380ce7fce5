"""Date parsing utilities."""

import re
from datetime import date, timedelta
from typing import Optional

from dateutil import parser as date_parser
from dateutil.relativedelta import relativedelta

ISO_DATE_PATTERN = re.compile(r"^\d{4}-\d{2}-\d{2}$")
MONTH_KEY_PATTERN = re.compile(r"^(\d{4})-(\d{2})$")


def parse_date(date_str: str) -> date:
    """Parse a date string into a date object.

    Supports absolute dates ("2024-01-15", "January 15, 2024") and the
    relative words "today", "yesterday" and "tomorrow".

    Args:
        date_str: Date string in various formats

    Returns:
        Date object

    Raises:
        ValueError: If date string cannot be parsed
    """
    date_str = date_str.strip().lower()
    today = date.today()

    relative_dates = {
        "today": today,
        "yesterday": today - timedelta(days=1),
        "tomorrow": today + timedelta(days=1),
    }

    if date_str in relative_dates:
        return relative_dates[date_str]

    try:
        dt = date_parser.parse(date_str)
        return dt.date()
    except (ValueError, TypeError, OverflowError) as e:
        raise ValueError(f"Could not parse date '{date_str}': {e}")


def parse_iso_date(date_str: str) -> date:
    """Parse a strict YYYY-MM-DD date as used by card statements.

    Raises:
        ValueError: If the string is not a valid YYYY-MM-DD date
    """
    value = date_str.strip()
    if not ISO_DATE_PATTERN.match(value):
        raise ValueError(f"Expected date as YYYY-MM-DD, got '{value}'")
    return date.fromisoformat(value)


def month_key(value: date) -> str:
    """Return the "YYYY-MM" key of a date."""
    return f"{value.year:04d}-{value.month:02d}"


def current_month_key(today: Optional[date] = None) -> str:
    """Return the "YYYY-MM" key of the current month."""
    return month_key(today or date.today())


def parse_month_key(key: str) -> date:
    """Parse a "YYYY-MM" key into the first day of that month.

    Raises:
        ValueError: If the key is malformed or the month is out of range
    """
    match = MONTH_KEY_PATTERN.match(key.strip())
    if match is None:
        raise ValueError(f"Expected month as YYYY-MM, got '{key}'")
    year, month = int(match.group(1)), int(match.group(2))
    if not 1 <= month <= 12:
        raise ValueError(f"Month out of range in '{key}'")
    return date(year, month, 1)


def month_bounds(key: str) -> tuple[date, date]:
    """Return the first and last day of a "YYYY-MM" month."""
    start = parse_month_key(key)
    end = start + relativedelta(months=1) - timedelta(days=1)
    return (start, end)
