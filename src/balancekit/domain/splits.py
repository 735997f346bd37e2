"""Destination split calculation for complementary entries."""

from dataclasses import dataclass
from decimal import ROUND_DOWN, Decimal
from typing import Mapping, Optional, Sequence

from balancekit.domain.balance import (
    CENT,
    RATIO_TOLERANCE,
    opposite_type,
    quantize_amount,
    to_decimal,
)
from balancekit.domain.entities import (
    DEFAULT_UNIT,
    DestinationSpec,
    Entry,
    GeneratedMarker,
)
from balancekit.domain.errors import ValidationError

ZERO = Decimal("0")


@dataclass(frozen=True)
class SplitAmount:
    """Positive amount destined for one account."""

    account_id: int
    amount: Decimal


def _ratio(destination: DestinationSpec) -> Decimal:
    return to_decimal(destination.ratio) if destination.ratio is not None else ZERO


def _absolute(destination: DestinationSpec) -> Decimal:
    if destination.absolute_amount is None:
        return ZERO
    return to_decimal(destination.absolute_amount)


def validate_destinations(destinations: Sequence[DestinationSpec]) -> None:
    """Check a destination list at rule or action creation time.

    Raises:
        ValidationError: If the list is empty, holds negative or empty specs,
            or ratios are used and do not sum to 1
    """
    if not destinations:
        raise ValidationError("At least one destination account is required")

    for destination in destinations:
        ratio = _ratio(destination)
        absolute = _absolute(destination)
        if ratio < 0 or absolute < 0:
            raise ValidationError(
                f"Destination account {destination.account_id}: ratio and amount must not be negative"
            )
        if ratio == 0 and absolute == 0:
            raise ValidationError(
                f"Destination account {destination.account_id} needs a ratio or an absolute amount"
            )

    if any(_ratio(d) > 0 for d in destinations):
        total_ratio = sum((_ratio(d) for d in destinations), ZERO)
        if abs(total_ratio - 1) > RATIO_TOLERANCE:
            raise ValidationError(f"Destination ratios must sum to 1 (got {total_ratio})")


def compute_destination_entries(
    source_amount, destinations: Sequence[DestinationSpec]
) -> list[SplitAmount]:
    """Turn a source amount and destination specs into concrete amounts.

    A positive absolute amount wins over a ratio. Ratio shares are
    ``ratio / total_ratio * source_amount``, allocated in cents by largest
    remainder: every share is floored to the cent, then the cents still
    missing from the rounded total go one at a time to the shares with the
    largest dropped fraction (later destinations first on ties). The ratio
    shares therefore add up exactly and none goes negative. Zero amounts are
    dropped.
    """
    source_amount = to_decimal(source_amount)
    total_ratio = sum((_ratio(d) for d in destinations), ZERO)

    amounts: list[Decimal] = []
    fractions: dict[int, Decimal] = {}
    raw_ratio_total = ZERO
    for position, destination in enumerate(destinations):
        absolute = _absolute(destination)
        ratio = _ratio(destination)
        if absolute > 0:
            amounts.append(quantize_amount(absolute))
        elif ratio > 0 and total_ratio > 0:
            raw = ratio / total_ratio * source_amount
            raw_ratio_total += raw
            floored = raw.quantize(CENT, rounding=ROUND_DOWN)
            amounts.append(floored)
            fractions[position] = raw - floored
        else:
            amounts.append(ZERO)

    if fractions:
        floored_total = sum((amounts[p] for p in fractions), ZERO)
        missing_cents = int((quantize_amount(raw_ratio_total) - floored_total) / CENT)
        by_fraction = sorted(fractions, key=lambda p: (fractions[p], p), reverse=True)
        for position in by_fraction[:missing_cents]:
            amounts[position] += CENT

    return [
        SplitAmount(account_id=destination.account_id, amount=amount)
        for destination, amount in zip(destinations, amounts)
        if amount > 0
    ]


def build_generated_entries(
    splits: Sequence[SplitAmount],
    source_type: str,
    units: Mapping[int, str],
    description: Optional[str],
    kind: Optional[str],
) -> list[Entry]:
    """Create unsaved entries on the opposite side of ``source_type``.

    Each entry takes its unit from ``units`` (destination account units),
    defaulting to USD.
    """
    entry_type = opposite_type(source_type)
    return [
        Entry(
            account_id=split.account_id,
            amount=split.amount,
            type=entry_type,
            unit=units.get(split.account_id) or DEFAULT_UNIT,
            description=description,
            generated=GeneratedMarker(kind) if kind else None,
        )
        for split in splits
    ]
