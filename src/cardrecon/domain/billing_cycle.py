"""Billing cycle derivation.

One statement import produces one billing cycle. Its key is the month of the
issuer's payment marker line; statements without a marker fall back to the
month of their newest line, and empty statements to the current month.
"""

from datetime import date
from decimal import Decimal
from typing import Optional, Sequence

from cardrecon.domain.entities import CreditCardLineItem, CycleTotals
from cardrecon.domain.errors import ValidationError
from cardrecon.utils.amount_parser import quantize_money
from cardrecon.utils.date_parser import current_month_key, month_key, parse_month_key

MONTH_ABBREVIATIONS = (
    "Jan", "Feb", "Mar", "Apr", "May", "Jun",
    "Jul", "Aug", "Sep", "Oct", "Nov", "Dec",
)


def find_payment_marker(lines: Sequence[CreditCardLineItem]) -> Optional[CreditCardLineItem]:
    """Return the first payment marker line, if any."""
    for line in lines:
        if line.is_payment_marker:
            return line
    return None


def derive_cycle_key(lines: Sequence[CreditCardLineItem], today: Optional[date] = None) -> str:
    """Derive the "YYYY-MM" key for a statement."""
    marker = find_payment_marker(lines)
    if marker is not None:
        return month_key(marker.date)
    if lines:
        return month_key(max(line.date for line in lines))
    return current_month_key(today)


def build_cycle_totals(
    lines: Sequence[CreditCardLineItem], today: Optional[date] = None
) -> CycleTotals:
    """Compute key, reference date and totals for a statement.

    The total is the sum of absolute amounts over non-marker lines, so
    refunds add to it like expenses do.
    """
    spending = [line for line in lines if not line.is_payment_marker]
    marker = find_payment_marker(lines)

    if marker is not None:
        reference_date: Optional[date] = marker.date
    elif lines:
        reference_date = max(line.date for line in lines)
    else:
        reference_date = None

    total = sum((abs(line.amount) for line in spending), Decimal("0"))
    dates = [line.date for line in spending]

    return CycleTotals(
        key=derive_cycle_key(lines, today),
        reference_date=reference_date,
        total_amount=quantize_money(total),
        transaction_count=len(spending),
        oldest_date=min(dates) if dates else None,
        newest_date=max(dates) if dates else None,
    )


def parse_cycle_key(key: str) -> str:
    """Validate a "YYYY-MM" key and return it normalized.

    Raises:
        ValidationError: If the key is not a valid month
    """
    try:
        first_day = parse_month_key(key)
    except ValueError as e:
        raise ValidationError(str(e))
    return month_key(first_day)


def format_cycle_display(key: str) -> str:
    """Render a cycle key for display, e.g. "2024-11" -> "Nov/2024"."""
    first_day = parse_month_key(key)
    return f"{MONTH_ABBREVIATIONS[first_day.month - 1]}/{first_day.year}"
