"""Balance evaluation for lists of entries.

Tolerances:
- ``BALANCE_TOLERANCE`` (0.01) decides whether a transaction is balanced.
  It is used for the cached ``is_balanced`` flag, rule application, the
  match finder and merge preconditions.
- ``ZERO_TOLERANCE`` (0.0001) decides whether one side of a transaction is
  empty; it is only used by the "fully unbalanced" eligibility test of the
  mass engine.
"""

from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_UP
from typing import Iterable, Optional, Protocol

from balancekit.domain.entities import CREDIT, DEBIT

BALANCE_TOLERANCE = Decimal("0.01")
ZERO_TOLERANCE = Decimal("0.0001")
RATIO_TOLERANCE = Decimal("0.0001")

CENT = Decimal("0.01")


class _Posting(Protocol):
    amount: Decimal
    type: str


@dataclass(frozen=True)
class BalanceSummary:
    """Totals of one entry list."""

    total_debits: Decimal
    total_credits: Decimal
    net_balance: Decimal
    is_balanced: bool

    @property
    def net_type(self) -> Optional[str]:
        """Side that outweighs the other, or None when balanced."""
        if self.is_balanced:
            return None
        return DEBIT if self.net_balance > 0 else CREDIT

    @property
    def imbalance(self) -> Decimal:
        return abs(self.net_balance)


def to_decimal(value) -> Decimal:
    """Coerce ints, floats and strings to Decimal without float artefacts."""
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def quantize_amount(value) -> Decimal:
    """Round a monetary amount to cents."""
    return to_decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


def opposite_type(entry_type: str) -> str:
    """Return credit for debit and vice versa."""
    if entry_type == DEBIT:
        return CREDIT
    if entry_type == CREDIT:
        return DEBIT
    raise ValueError(f"Unknown entry type '{entry_type}'")


def evaluate(
    entries: Iterable[_Posting], tolerance: Decimal = BALANCE_TOLERANCE
) -> BalanceSummary:
    """Sum debits and credits.

    An empty list is balanced. ``net_balance`` is debits minus credits.
    """
    total_debits = Decimal("0")
    total_credits = Decimal("0")
    for entry in entries:
        amount = to_decimal(entry.amount)
        if entry.type == DEBIT:
            total_debits += amount
        else:
            total_credits += amount

    net_balance = total_debits - total_credits
    return BalanceSummary(
        total_debits=total_debits,
        total_credits=total_credits,
        net_balance=net_balance,
        is_balanced=abs(net_balance) < tolerance,
    )


def is_balanced(entries: Iterable[_Posting], tolerance: Decimal = BALANCE_TOLERANCE) -> bool:
    return evaluate(entries, tolerance).is_balanced


def is_fully_unbalanced(entries: Iterable[_Posting]) -> bool:
    """True if one side is (almost) zero and the other strictly positive."""
    summary = evaluate(entries)
    no_debits = abs(summary.total_debits) < ZERO_TOLERANCE
    no_credits = abs(summary.total_credits) < ZERO_TOLERANCE
    return (no_debits and summary.total_credits > ZERO_TOLERANCE) or (
        no_credits and summary.total_debits > ZERO_TOLERANCE
    )


def offsets(first: BalanceSummary, second: BalanceSummary) -> bool:
    """True if the two imbalances cancel out exactly (to the cent)."""
    if first.is_balanced or second.is_balanced:
        return False
    return quantize_amount(first.net_balance) == -quantize_amount(second.net_balance)
