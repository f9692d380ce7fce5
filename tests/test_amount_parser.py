"""Tests for amount parsing."""

import pytest
from decimal import Decimal

from cardrecon.utils.amount_parser import parse_amount, quantize_money


@pytest.mark.parametrize(
    "raw,expected",
    [
        ("123.45", Decimal("123.45")),
        ("-123.45", Decimal("-123.45")),
        ("R$123.45", Decimal("123.45")),
        ("$1,234.56", Decimal("1234.56")),
        ("(50.00)", Decimal("-50.00")),
        (" 7 ", Decimal("7")),
    ],
)
def test_parse_amount(raw, expected):
    assert parse_amount(raw) == expected


@pytest.mark.parametrize("raw", ["", "   ", "abc", "NaN", "Infinity"])
def test_parse_amount_invalid(raw):
    with pytest.raises(ValueError):
        parse_amount(raw)


def test_quantize_money():
    assert quantize_money(Decimal("10.005")) == Decimal("10.01")
    assert quantize_money(Decimal("10")) == Decimal("10.00")
    assert str(quantize_money(Decimal("-0.125"))) == "-0.13"
