"""Parsing helpers shared by the command line interface."""

from balancekit.utils.date_parser import parse_date, get_date_range
from balancekit.utils.amount_parser import parse_amount, parse_ratio
from balancekit.utils.account_resolver import resolve_account

__all__ = ["parse_date", "get_date_range", "parse_amount", "parse_ratio", "resolve_account"]
