"""Card statement normalization.

Turns the raw CSV export of a card issuer into ``CreditCardLineItem`` values.
The expected layout is a header row followed by ``date,title,amount`` rows,
where dates are ``YYYY-MM-DD`` and amounts are positive for expenses and
negative for payments or refunds. Column order may vary; columns are found by
name.
"""

import csv
import io
import re
from decimal import Decimal
from pathlib import Path
from typing import Any, Optional, Sequence

from cardrecon.domain.entities import CreditCardLineItem
from cardrecon.domain.errors import ValidationError
from cardrecon.logger import get_logger
from cardrecon.utils.amount_parser import parse_amount, quantize_money
from cardrecon.utils.date_parser import parse_iso_date

logger = get_logger(__name__)

INSTALLMENT_PATTERN = re.compile(r"parcela\s*(\d+)\s*/\s*(\d+)", re.IGNORECASE)
PAYMENT_MARKER_TEXT = "pagamento recebido"
SNIFF_DELIMITERS = ",;\t|"


def parse_installment(description: str) -> tuple[Optional[int], Optional[int]]:
    """Extract "Parcela n/m" installment numbers from a description.

    Returns:
        (current, total), or (None, None) when absent or when current > total
    """
    match = INSTALLMENT_PATTERN.search(description)
    if match is None:
        return (None, None)
    current, total = int(match.group(1)), int(match.group(2))
    if current < 1 or current > total:
        return (None, None)
    return (current, total)


def is_payment_marker(description: str) -> bool:
    """Return True for the issuer's "payment received" line."""
    return PAYMENT_MARKER_TEXT in description.lower()


def _read_rows(content: str) -> list[list[str]]:
    try:
        delimiter = csv.Sniffer().sniff(content[:1024], delimiters=SNIFF_DELIMITERS).delimiter
    except csv.Error:
        delimiter = ","
    reader = csv.reader(io.StringIO(content.strip()), delimiter=delimiter)
    return [row for row in reader if any(cell.strip() for cell in row)]


def _locate_columns(header: Sequence[str]) -> dict[str, int]:
    """Map date/description/amount to header positions by substring."""
    columns: dict[str, int] = {}
    for index, name in enumerate(header):
        name = name.strip().lower()
        if "date" in name and "date" not in columns:
            columns["date"] = index
        elif ("title" in name or "description" in name) and "description" not in columns:
            columns["description"] = index
        elif "amount" in name and "amount" not in columns:
            columns["amount"] = index
    return columns


def validate_statement(content: str) -> None:
    """Check that content looks like a card statement export.

    Raises:
        ValidationError: If the content is empty or header-only, the header
            lacks a date, title/description or amount column, or the first
            data row is malformed
    """
    rows = _read_rows(content) if content else []
    if len(rows) < 2:
        raise ValidationError("Statement is empty or has only a header row")

    columns = _locate_columns(rows[0])
    missing = [name for name in ("date", "description", "amount") if name not in columns]
    if missing:
        raise ValidationError(
            f"Statement header is missing columns: {', '.join(missing)} "
            "(expected date,title,amount)"
        )

    first = rows[1]
    if len(first) < 3 or len(first) <= max(columns.values()):
        raise ValidationError("First statement row is malformed")

    try:
        parse_iso_date(first[columns["date"]])
    except ValueError:
        raise ValidationError(
            f"Invalid date '{first[columns['date']].strip()}' in statement, expected YYYY-MM-DD"
        )

    try:
        parse_amount(first[columns["amount"]])
    except ValueError:
        raise ValidationError(
            f"Amount '{first[columns['amount']].strip()}' in statement is not numeric"
        )


def parse_statement(content: str) -> list[CreditCardLineItem]:
    """Parse statement content into line items, in statement order.

    Rows whose date or amount cannot be parsed are skipped. Call
    ``validate_statement`` first to reject malformed files.
    """
    rows = _read_rows(content) if content else []
    if not rows:
        return []

    columns = _locate_columns(rows[0])
    if len(columns) < 3:
        return []
    width = max(columns.values())

    lines: list[CreditCardLineItem] = []
    for row_num, row in enumerate(rows[1:], start=2):
        if len(row) <= width:
            logger.debug("statement_row_skipped", row=row_num, reason="too few fields")
            continue
        try:
            line_date = parse_iso_date(row[columns["date"]])
            amount = quantize_money(parse_amount(row[columns["amount"]]))
        except ValueError as e:
            logger.debug("statement_row_skipped", row=row_num, reason=str(e))
            continue

        description = row[columns["description"]].strip()
        current, total = parse_installment(description)
        lines.append(
            CreditCardLineItem(
                date=line_date,
                description=description,
                amount=amount,
                installment_current=current,
                installment_total=total,
                is_payment_marker=is_payment_marker(description),
            )
        )

    return lines


def load_statement(path: str | Path) -> list[CreditCardLineItem]:
    """Read, validate and parse a statement file.

    Raises:
        FileNotFoundError: If the file doesn't exist
        ValidationError: If the file is not a valid statement
    """
    statement_path = Path(path)
    if not statement_path.exists():
        raise FileNotFoundError(f"Statement file not found: {path}")

    content = statement_path.read_text(encoding="utf-8-sig")
    validate_statement(content)
    lines = parse_statement(content)
    logger.info("statement_loaded", path=str(statement_path), lines=len(lines))
    return lines


def summarize_lines(lines: Sequence[CreditCardLineItem]) -> dict[str, Any]:
    """Summarize statement lines.

    Returns:
        Dict with total_expenses, total_payments, transaction_count,
        payment_received_count and installment_count
    """
    total_expenses = Decimal("0.00")
    total_payments = Decimal("0.00")
    payment_received_count = 0
    installment_count = 0

    for line in lines:
        if line.is_payment_marker:
            payment_received_count += 1
            total_payments += abs(line.amount)
        else:
            total_expenses += abs(line.amount)
        if line.has_installment:
            installment_count += 1

    return {
        "total_expenses": total_expenses,
        "total_payments": total_payments,
        "transaction_count": len(lines),
        "payment_received_count": payment_received_count,
        "installment_count": installment_count,
    }
