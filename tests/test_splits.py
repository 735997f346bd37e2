"""Tests for destination split calculation."""

from decimal import Decimal

import pytest

from balancekit.domain.entities import CREDIT, DEBIT, GENERATED_COMPLEMENTARY, DestinationSpec
from balancekit.domain.errors import ValidationError
from balancekit.domain.splits import (
    SplitAmount,
    build_generated_entries,
    compute_destination_entries,
    validate_destinations,
)


def ratio(account_id, value):
    return DestinationSpec(account_id=account_id, ratio=Decimal(value))


def test_sixty_forty_split():
    splits = compute_destination_entries(Decimal("100"), [ratio(1, "0.6"), ratio(2, "0.4")])
    assert splits == [SplitAmount(1, Decimal("60.00")), SplitAmount(2, Decimal("40.00"))]


def test_ratio_split_conserves_the_source_amount():
    destinations = [ratio(1, "0.3333"), ratio(2, "0.3333"), ratio(3, "0.3334")]
    for amount in ("100.00", "0.10", "99.99", "1234.57"):
        splits = compute_destination_entries(Decimal(amount), destinations)
        assert sum(s.amount for s in splits) == Decimal(amount)


def test_leftover_cent_goes_to_largest_fraction():
    splits = compute_destination_entries(
        Decimal("10.00"), [ratio(1, "0.3333"), ratio(2, "0.3333"), ratio(3, "0.3334")]
    )
    assert [s.amount for s in splits] == [Decimal("3.33"), Decimal("3.33"), Decimal("3.34")]


def test_sub_cent_shares_never_go_negative():
    """Tiny amounts spread over many ratios still add up exactly."""
    splits = compute_destination_entries(Decimal("0.02"), [ratio(i, "0.25") for i in range(1, 5)])
    assert sum(s.amount for s in splits) == Decimal("0.02")
    assert all(s.amount > 0 for s in splits)
    assert [s.account_id for s in splits] == [3, 4]

    splits = compute_destination_entries(Decimal("0.05"), [ratio(i, "1") for i in range(1, 8)])
    assert sum(s.amount for s in splits) == Decimal("0.05")
    assert [s.amount for s in splits] == [Decimal("0.01")] * 5


def test_absolute_amount_wins_over_ratio():
    destinations = [
        DestinationSpec(account_id=1, absolute_amount=Decimal("5.00")),
        ratio(2, "1"),
    ]
    splits = compute_destination_entries(Decimal("50"), destinations)
    assert splits == [SplitAmount(1, Decimal("5.00")), SplitAmount(2, Decimal("50.00"))]


def test_empty_destinations_are_dropped():
    destinations = [DestinationSpec(account_id=1), ratio(2, "1")]
    splits = compute_destination_entries(Decimal("20"), destinations)
    assert splits == [SplitAmount(2, Decimal("20.00"))]


def test_ratios_are_normalised_by_their_total():
    splits = compute_destination_entries(Decimal("90"), [ratio(1, "2"), ratio(2, "1")])
    assert [s.amount for s in splits] == [Decimal("60.00"), Decimal("30.00")]


def test_generated_entries_take_the_opposite_type_and_destination_unit():
    splits = [SplitAmount(1, Decimal("60.00")), SplitAmount(2, Decimal("40.00"))]
    entries = build_generated_entries(
        splits, DEBIT, {1: "EUR"}, "Auto-generated", GENERATED_COMPLEMENTARY
    )
    assert [e.type for e in entries] == [CREDIT, CREDIT]
    assert [e.unit for e in entries] == ["EUR", "USD"]
    assert all(e.is_generated(GENERATED_COMPLEMENTARY) for e in entries)


def test_validate_destinations_accepts_ratios_summing_to_one():
    validate_destinations([ratio(1, "0.6"), ratio(2, "0.4")])
    validate_destinations([ratio(1, "0.33335"), ratio(2, "0.66670")])


@pytest.mark.parametrize(
    "destinations, message",
    [
        ([], "At least one destination"),
        ([ratio(1, "0.5"), ratio(2, "0.4")], "must sum to 1"),
        ([ratio(1, "-0.5"), ratio(2, "1.5")], "must not be negative"),
        ([DestinationSpec(account_id=1)], "needs a ratio or an absolute amount"),
    ],
)
def test_validate_destinations_rejects(destinations, message):
    with pytest.raises(ValidationError, match=message):
        validate_destinations(destinations)
