"""Utility functions for cardrecon."""

from cardrecon.utils.date_parser import parse_date
from cardrecon.utils.amount_parser import parse_amount
from cardrecon.utils.account_resolver import resolve_account

__all__ = ["parse_date", "parse_amount", "resolve_account"]
