"""Tests for the mass edit engine."""

from datetime import date
from decimal import Decimal

import pytest

from balancekit.domain.entities import (
    CREDIT,
    DEBIT,
    GENERATED_COMPLEMENTARY,
    ComplementaryAdd,
    DestinationSpec,
    EditFields,
    MassQuery,
    MergeInto,
)
from balancekit.domain.errors import NotFoundError, ValidationError
from balancekit.domain.mass_edit import GENERATED_DESCRIPTION, is_eligible, validate_query

MARCH = MassQuery(start_date=date(2024, 3, 1), end_date=date(2024, 3, 31))


@pytest.fixture
def to_groceries(accounts):
    return ComplementaryAdd(
        destination=(DestinationSpec(account_id=accounts["Groceries"], ratio=Decimal("1")),)
    )


class TestValidation:
    def test_query_span_over_a_year(self):
        with pytest.raises(ValidationError, match="cannot exceed 1 year"):
            validate_query(MassQuery(start_date=date(2023, 1, 1), end_date=date(2024, 1, 3)))

    def test_leap_year_span_is_allowed(self):
        validate_query(MassQuery(start_date=date(2024, 1, 1), end_date=date(2024, 12, 31)))

    @pytest.mark.parametrize(
        "query",
        [
            MassQuery(start_date=None, end_date=date(2024, 3, 1)),
            MassQuery(start_date=date(2024, 3, 2), end_date=date(2024, 3, 1)),
            MassQuery(start_date=date(2024, 3, 1), end_date=date(2024, 3, 2), pattern="[oops"),
        ],
    )
    def test_bad_queries(self, query):
        with pytest.raises(ValidationError):
            validate_query(query)

    def test_actions(self, mass_edit_service):
        with pytest.raises(ValidationError):
            mass_edit_service.validate_action(EditFields(fields={}))
        with pytest.raises(ValidationError, match="Cannot edit field"):
            mass_edit_service.validate_action(EditFields(fields={"date": "2024-01-01"}))
        with pytest.raises(ValidationError):
            mass_edit_service.validate_action(MergeInto(max_date_difference=0))
        with pytest.raises(ValidationError):
            mass_edit_service.validate_action(ComplementaryAdd(destination=()))
        with pytest.raises(NotFoundError):
            mass_edit_service.validate_action(
                ComplementaryAdd(destination=(DestinationSpec(account_id=999, ratio=Decimal("1")),))
            )


class TestEligibility:
    def test_fully_unbalanced_is_eligible_for_complementary(
        self, transaction_service, make_transaction, to_groceries
    ):
        one_sided = make_transaction("One side", [("Checking", DEBIT, "100")])
        both_sides = make_transaction(
            "Both sides", [("Checking", DEBIT, "100"), ("Groceries", CREDIT, "100")]
        )
        partial = make_transaction(
            "Partly offset", [("Checking", DEBIT, "100"), ("Groceries", CREDIT, "40")]
        )

        assert is_eligible(transaction_service.get_transaction(one_sided), to_groceries)
        assert not is_eligible(transaction_service.get_transaction(both_sides), to_groceries)
        assert not is_eligible(transaction_service.get_transaction(partial), to_groceries)

    def test_edit_fields_needs_a_real_change(self, transaction_service, make_transaction):
        txn = transaction_service.get_transaction(
            make_transaction("Rent", [("Checking", CREDIT, "900")], reference="R-1")
        )

        assert not is_eligible(txn, EditFields(fields={"reference": "R-1"}))
        assert not is_eligible(txn, EditFields(fields={"notes": ""}))
        assert is_eligible(txn, EditFields(fields={"notes": "checked"}))

    def test_preview_counts(self, mass_edit_service, make_transaction, to_groceries):
        make_transaction("GROCER one", [("Checking", DEBIT, "10")])
        make_transaction("GROCER two", [("Checking", DEBIT, "5"), ("Household", CREDIT, "5")])
        make_transaction("Rent", [("Checking", CREDIT, "900")])
        make_transaction("GROCER april", [("Checking", DEBIT, "10")], txn_date=date(2024, 4, 2))

        preview = mass_edit_service.preview_eligible(
            MassQuery(start_date=date(2024, 3, 1), end_date=date(2024, 3, 31), pattern="grocer"),
            to_groceries,
        )

        assert preview.total_candidates == 2
        assert preview.eligible_count == 1


class TestApply:
    def test_complementary_add_balances_one_sided(
        self, mass_edit_service, transaction_service, accounts, make_transaction, to_groceries
    ):
        one_sided = make_transaction("GROCER", [("Checking", DEBIT, "100")])
        balanced = make_transaction("Paid", [("Checking", DEBIT, "100"), ("Household", CREDIT, "100")])

        result = mass_edit_service.apply(MARCH, to_groceries)

        assert (result.processed, result.eligible, result.modified, result.failed) == (2, 1, 1, 0)
        txn = transaction_service.get_transaction(one_sided)
        assert txn.is_balanced
        generated = [e for e in txn.entries if e.is_generated(GENERATED_COMPLEMENTARY)]
        assert [(e.account_id, e.type, e.amount, e.description) for e in generated] == [
            (accounts["Groceries"], CREDIT, Decimal("100.00"), GENERATED_DESCRIPTION)
        ]
        assert len(transaction_service.get_transaction(balanced).entries) == 2

    def test_complementary_add_uses_destination_unit(
        self, mass_edit_service, transaction_service, accounts, make_transaction
    ):
        txn_id = make_transaction("Deposit", [("Checking", CREDIT, "40")])
        action = ComplementaryAdd(
            destination=(DestinationSpec(account_id=accounts["Savings EUR"], ratio=Decimal("1")),)
        )

        mass_edit_service.apply(MARCH, action)

        generated = transaction_service.get_transaction(txn_id).entries[-1]
        assert generated.type == DEBIT
        assert generated.unit == "EUR"

    def test_edit_fields(self, mass_edit_service, transaction_service, make_transaction):
        first = make_transaction("Rent", [("Checking", CREDIT, "900")])
        second = make_transaction("Rent", [("Checking", CREDIT, "900")], notes="reviewed")

        result = mass_edit_service.apply(
            MassQuery(start_date=date(2024, 3, 1), end_date=date(2024, 3, 31), pattern="^Rent$"),
            EditFields(fields={"notes": "reviewed", "reference": ""}),
        )

        assert result.eligible == 1
        assert result.modified == 1
        assert transaction_service.get_transaction(first).notes == "reviewed"
        assert transaction_service.get_transaction(first).reference is None
        assert transaction_service.get_transaction(second).notes == "reviewed"

    def test_merge_into_replaces_generated_entries(
        self, mass_edit_service, transaction_service, make_transaction, to_groceries
    ):
        card = make_transaction("Card payment", [("Checking", DEBIT, "75")])
        mass_edit_service.apply(MARCH, to_groceries)
        assert transaction_service.get_transaction(card).is_balanced

        statement = make_transaction(
            "Statement line", [("Household", CREDIT, "75")], txn_date=date(2024, 3, 14)
        )

        result = mass_edit_service.apply(
            MassQuery(start_date=date(2024, 3, 1), end_date=date(2024, 3, 12)),
            MergeInto(max_date_difference=5),
        )

        assert result.modified == 1
        merged = transaction_service.get_transaction(card)
        assert merged.is_balanced
        assert not merged.has_generated_entries()
        assert merged.description == "Card payment + Statement line"
        assert transaction_service.get_transaction(statement) is None

    def test_merge_into_counterpart_is_consumed_once(
        self, mass_edit_service, transaction_service, make_transaction
    ):
        debit = make_transaction("Out", [("Checking", DEBIT, "20")])
        credit = make_transaction("In", [("Household", CREDIT, "20")], txn_date=date(2024, 3, 11))

        result = mass_edit_service.apply(MARCH, MergeInto(max_date_difference=3))

        assert result.processed == 1
        assert result.modified == 1
        assert transaction_service.get_transaction(debit).is_balanced
        assert transaction_service.get_transaction(credit) is None

    def test_failure_is_isolated(
        self, temp_db, monkeypatch, mass_edit_service, transaction_service, make_transaction
    ):
        first = make_transaction("Rent", [("Checking", CREDIT, "900")])
        second = make_transaction("Rent", [("Checking", CREDIT, "900")], txn_date=date(2024, 3, 11))

        original_update = temp_db.update_transaction

        def update_transaction(transaction_id, **fields):
            if transaction_id == first:
                raise RuntimeError("locked")
            return original_update(transaction_id, **fields)

        monkeypatch.setattr(temp_db, "update_transaction", update_transaction)

        result = mass_edit_service.apply(MARCH, EditFields(fields={"notes": "reviewed"}))

        assert (result.eligible, result.modified, result.failed) == (2, 1, 1)
        assert [(e.transaction_id, e.message) for e in result.errors] == [(first, "locked")]
        assert transaction_service.get_transaction(second).notes == "reviewed"

    def test_cancel_and_progress(self, mass_edit_service, make_transaction):
        for day in (1, 2, 3):
            make_transaction("Rent", [("Checking", CREDIT, "900")], txn_date=date(2024, 3, day))

        snapshots = []
        result = mass_edit_service.apply(
            MARCH,
            EditFields(fields={"notes": "x"}),
            progress=snapshots.append,
            should_cancel=lambda: len(snapshots) == 1,
        )

        assert result.cancelled
        assert result.modified == 1
        assert [(s.processed, s.matched, s.modified) for s in snapshots] == [(1, 1, 1)]

    def test_invalid_query_raises_before_writing(
        self, mass_edit_service, transaction_service, make_transaction, to_groceries
    ):
        txn_id = make_transaction("GROCER", [("Checking", DEBIT, "100")])

        with pytest.raises(ValidationError):
            mass_edit_service.apply(
                MassQuery(start_date=date(2023, 1, 1), end_date=date(2024, 6, 1)), to_groceries
            )
        assert len(transaction_service.get_transaction(txn_id).entries) == 1
