"""Tests for merging, moving and splitting transactions."""

from datetime import date
from decimal import Decimal

import pytest

from balancekit.domain.balance import evaluate
from balancekit.domain.entities import CREDIT, DEBIT
from balancekit.domain.errors import NotFoundError, ValidationError
from balancekit.domain.restructure import merged_description, merged_notes


@pytest.mark.parametrize(
    "first, second, expected",
    [
        ("Card", "Bank", "Card + Bank"),
        ("Same", "Same", "Same"),
        (None, "Bank", "Bank"),
        ("Card", "", "Card"),
    ],
)
def test_merged_description(first, second, expected):
    assert merged_description(first, second) == expected


def test_merged_notes():
    assert merged_notes("a", "b") == "a\n---\nb"
    assert merged_notes(None, "b") == "b"
    assert merged_notes("a", None) == "a"


class TestMerge:
    def test_merge_moves_entries_and_deletes_target(
        self, restructure_service, transaction_service, one_sided_debit, make_transaction
    ):
        target = make_transaction(
            "Bank transfer", [("Groceries", CREDIT, "100")], txn_date=date(2024, 3, 12), notes="from bank"
        )
        transaction_service.update_transaction(one_sided_debit, notes="from card")
        before = evaluate(
            transaction_service.get_transaction(one_sided_debit).entries
            + transaction_service.get_transaction(target).entries
        )

        merged = restructure_service.merge(one_sided_debit, target)

        assert merged.id == one_sided_debit
        assert merged.is_balanced
        assert len(merged.entries) == 2
        assert merged.description == "GROCER OUTLET #12 + Bank transfer"
        assert merged.notes == "from card\n---\nfrom bank"
        assert merged.date == date(2024, 3, 10)
        assert transaction_service.get_transaction(target) is None

        after = evaluate(merged.entries)
        assert (after.total_debits, after.total_credits) == (before.total_debits, before.total_credits)

    def test_same_direction_is_rejected(
        self, restructure_service, transaction_service, one_sided_debit, make_transaction
    ):
        other = make_transaction("Another debit", [("Groceries", DEBIT, "100")])

        with pytest.raises(ValidationError, match="opposite types required"):
            restructure_service.merge(one_sided_debit, other)
        assert transaction_service.get_transaction(other) is not None

    def test_balanced_pair_is_rejected(self, restructure_service, make_transaction):
        first = make_transaction("A", [("Checking", DEBIT, "5"), ("Groceries", CREDIT, "5")])
        second = make_transaction("B", [("Checking", DEBIT, "7"), ("Groceries", CREDIT, "7")])

        with pytest.raises(ValidationError, match="already balanced"):
            restructure_service.merge(first, second)

    def test_one_balanced_side_is_rejected(self, restructure_service, one_sided_debit, make_transaction):
        balanced = make_transaction("A", [("Checking", DEBIT, "5"), ("Groceries", CREDIT, "5")])

        with pytest.raises(ValidationError, match="opposite types required"):
            restructure_service.merge(one_sided_debit, balanced)

    def test_self_and_missing(self, restructure_service, one_sided_debit):
        with pytest.raises(ValidationError):
            restructure_service.merge(one_sided_debit, one_sided_debit)
        with pytest.raises(NotFoundError):
            restructure_service.merge(one_sided_debit, 404)


class TestMoveEntry:
    def test_moving_last_entry_deletes_source(
        self, restructure_service, transaction_service, one_sided_debit, one_sided_credit
    ):
        entry_id = transaction_service.get_transaction(one_sided_credit).entries[0].id

        result = restructure_service.move_entry(entry_id, one_sided_debit)

        assert result.source_deleted
        assert result.source_transaction_id == one_sided_credit
        assert result.transaction.is_balanced
        assert transaction_service.get_transaction(one_sided_credit) is None

    def test_source_with_entries_left_survives(
        self, restructure_service, transaction_service, one_sided_debit, make_transaction
    ):
        source = make_transaction(
            "Two lines", [("Groceries", CREDIT, "100"), ("Household", DEBIT, "20")]
        )
        entry_id = transaction_service.get_transaction(source).entries[0].id

        result = restructure_service.move_entry(entry_id, one_sided_debit)

        assert not result.source_deleted
        remaining = transaction_service.get_transaction(source)
        assert [e.amount for e in remaining.entries] == [Decimal("20.00")]
        assert not remaining.is_balanced

    def test_errors(self, restructure_service, transaction_service, one_sided_debit):
        entry_id = transaction_service.get_transaction(one_sided_debit).entries[0].id

        with pytest.raises(ValidationError):
            restructure_service.move_entry(entry_id, one_sided_debit)
        with pytest.raises(NotFoundError):
            restructure_service.move_entry(entry_id, 404)
        with pytest.raises(NotFoundError):
            restructure_service.move_entry(9999, one_sided_debit)


class TestSplit:
    @pytest.fixture
    def three_lines(self, make_transaction):
        return make_transaction(
            "Weekly shop",
            [("Checking", CREDIT, "90"), ("Groceries", DEBIT, "60"), ("Household", DEBIT, "30")],
        )

    def test_split_creates_transaction_on_same_date(
        self, restructure_service, transaction_service, three_lines
    ):
        household = transaction_service.get_transaction(three_lines).entries[2].id

        result = restructure_service.split_transaction(three_lines, [household, household])

        assert result.created.description == "Split from: Weekly shop"
        assert result.created.date == date(2024, 3, 10)
        assert [e.id for e in result.created.entries] == [household]
        assert len(result.source.entries) == 2
        assert not result.source.is_balanced
        assert not result.created.is_balanced

    def test_split_needs_a_remaining_entry(self, restructure_service, transaction_service, three_lines):
        ids = [e.id for e in transaction_service.get_transaction(three_lines).entries]

        with pytest.raises(ValidationError):
            restructure_service.split_transaction(three_lines, ids)
        with pytest.raises(ValidationError):
            restructure_service.split_transaction(three_lines, [])

    def test_split_rejects_foreign_entry(
        self, restructure_service, transaction_service, three_lines, one_sided_debit
    ):
        foreign = transaction_service.get_transaction(one_sided_debit).entries[0].id

        with pytest.raises(NotFoundError):
            restructure_service.split_transaction(three_lines, [foreign])
