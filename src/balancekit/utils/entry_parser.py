"""Parsing of entry and destination arguments given on the command line.

Entries are written ``ACCOUNT:TYPE:AMOUNT`` (``Checking:debit:100.00``).
Destinations are written ``ACCOUNT:RATIO`` (``Groceries:0.6`` or
``Groceries:60%``) or ``ACCOUNT=AMOUNT`` for a fixed amount
(``Fees=2.50``). ACCOUNT is a name or an ID; names may contain colons.
"""

from dataclasses import dataclass
from decimal import Decimal
from typing import Optional

from balancekit.domain.entities import ENTRY_TYPES
from balancekit.domain.errors import ValidationError
from balancekit.utils.amount_parser import parse_amount, parse_ratio


@dataclass(frozen=True)
class ParsedEntry:
    account: str
    type: str
    amount: Decimal


@dataclass(frozen=True)
class ParsedDestination:
    account: str
    ratio: Optional[Decimal] = None
    absolute_amount: Optional[Decimal] = None


def parse_entry(text: str) -> ParsedEntry:
    """Parse ``ACCOUNT:TYPE:AMOUNT``.

    Raises:
        ValidationError: If a part is missing or malformed
    """
    parts = text.rsplit(":", 2)
    if len(parts) != 3 or not parts[0].strip():
        raise ValidationError(f"Invalid entry '{text}'. Expected ACCOUNT:debit|credit:AMOUNT")
    account, entry_type, amount = (p.strip() for p in parts)
    entry_type = entry_type.lower()
    if entry_type not in ENTRY_TYPES:
        raise ValidationError(f"Invalid entry type '{entry_type}' in '{text}'. Expected debit or credit")
    return ParsedEntry(account=account, type=entry_type, amount=parse_amount(amount))


def parse_destination(text: str) -> ParsedDestination:
    """Parse ``ACCOUNT:RATIO`` or ``ACCOUNT=AMOUNT``.

    Raises:
        ValidationError: If the destination is malformed
    """
    if "=" in text:
        account, amount = text.rsplit("=", 1)
        if not account.strip():
            raise ValidationError(f"Invalid destination '{text}'. Expected ACCOUNT=AMOUNT")
        return ParsedDestination(account=account.strip(), absolute_amount=parse_amount(amount))

    account, sep, ratio = text.rpartition(":")
    if not sep or not account.strip():
        raise ValidationError(f"Invalid destination '{text}'. Expected ACCOUNT:RATIO or ACCOUNT=AMOUNT")
    return ParsedDestination(account=account.strip(), ratio=parse_ratio(ratio))
