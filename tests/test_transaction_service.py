"""Tests for TransactionService."""

from datetime import date
from decimal import Decimal

import pytest

from balancekit.domain.entities import CREDIT, DEBIT, Entry, RULE_COMPLEMENTARY, DestinationSpec
from balancekit.domain.errors import NotFoundError, ValidationError


def test_create_transaction_defaults_unit_and_description(transaction_service, accounts):
    txn_id = transaction_service.create_transaction(
        date=date(2024, 1, 5),
        description="Transfer to savings",
        entries=[
            Entry(account_id=accounts["Checking"], amount=Decimal("10"), type=CREDIT),
            Entry(
                account_id=accounts["Savings EUR"],
                amount=Decimal("10"),
                type=DEBIT,
                description="Into savings",
            ),
        ],
    )

    txn = transaction_service.get_transaction(txn_id)
    assert txn.is_balanced
    assert [e.unit for e in txn.entries] == ["USD", "EUR"]
    assert [e.description for e in txn.entries] == ["Transfer to savings", "Into savings"]
    assert [e.amount for e in txn.entries] == [Decimal("10.00"), Decimal("10.00")]
    assert not any(e.generated for e in txn.entries)


def test_create_transaction_without_entries_is_balanced(transaction_service):
    txn_id = transaction_service.create_transaction(date=date(2024, 1, 5), description="Empty")
    assert transaction_service.get_transaction(txn_id).is_balanced


def test_create_transaction_rejects_non_positive_amount(transaction_service, accounts):
    with pytest.raises(ValidationError, match="positive"):
        transaction_service.create_transaction(
            date=date(2024, 1, 5),
            entries=[Entry(account_id=accounts["Checking"], amount=Decimal("0"), type=DEBIT)],
        )
    assert transaction_service.list_transactions() == []


def test_create_transaction_rejects_unknown_account(transaction_service):
    with pytest.raises(NotFoundError, match="Account 999 not found"):
        transaction_service.create_transaction(
            date=date(2024, 1, 5),
            entries=[Entry(account_id=999, amount=Decimal("1"), type=DEBIT)],
        )


def test_create_transaction_rejects_bad_entry_type(transaction_service, accounts):
    with pytest.raises(ValidationError, match="Invalid entry type"):
        transaction_service.create_transaction(
            date=date(2024, 1, 5),
            entries=[Entry(account_id=accounts["Checking"], amount=Decimal("1"), type="both")],
        )


def test_create_transaction_applies_auto_rules(transaction_service, rule_service, accounts):
    rule_service.create_rule(
        name="Groceries",
        rule_type=RULE_COMPLEMENTARY,
        pattern="GROCER",
        auto_apply=True,
        destinations=[DestinationSpec(account_id=accounts["Groceries"], ratio=Decimal("1"))],
    )
    rule_service.create_rule(
        name="Manual",
        rule_type=RULE_COMPLEMENTARY,
        pattern="PHARMA",
        destinations=[DestinationSpec(account_id=accounts["Household"], ratio=Decimal("1"))],
    )

    grocer = transaction_service.create_transaction(
        date=date(2024, 1, 5),
        description="GROCER OUTLET",
        entries=[Entry(account_id=accounts["Checking"], amount=Decimal("25"), type=CREDIT)],
        apply_rules=True,
    )
    pharma = transaction_service.create_transaction(
        date=date(2024, 1, 5),
        description="PHARMACY",
        entries=[Entry(account_id=accounts["Checking"], amount=Decimal("9"), type=CREDIT)],
        apply_rules=True,
    )

    assert transaction_service.get_transaction(grocer).is_balanced
    assert not transaction_service.get_transaction(pharma).is_balanced


def test_list_transactions_filters(make_transaction, transaction_service, accounts):
    make_transaction("Rent March", [("Checking", CREDIT, "900")], txn_date=date(2024, 3, 1))
    make_transaction(
        "Salary",
        [("Checking", DEBIT, "2000"), ("Salary", CREDIT, "2000")],
        txn_date=date(2024, 3, 25),
    )
    make_transaction("Rent April", [("Checking", CREDIT, "900")], txn_date=date(2024, 4, 1))

    march = transaction_service.list_transactions(
        start_date=date(2024, 3, 1), end_date=date(2024, 3, 31)
    )
    assert [t.description for t in march] == ["Rent March", "Salary"]

    rent = transaction_service.list_transactions(pattern="^rent")
    assert [t.description for t in rent] == ["Rent March", "Rent April"]

    salary_account = transaction_service.list_transactions(account_id=accounts["Salary"])
    assert [t.description for t in salary_account] == ["Salary"]

    unbalanced = transaction_service.list_transactions(unbalanced_only=True)
    assert [t.description for t in unbalanced] == ["Rent March", "Rent April"]


def test_add_entry_recomputes_balance(transaction_service, one_sided_debit, accounts):
    assert not transaction_service.get_transaction(one_sided_debit).is_balanced

    transaction_service.add_entry(
        one_sided_debit,
        Entry(account_id=accounts["Groceries"], amount=Decimal("100"), type=CREDIT),
    )

    txn = transaction_service.get_transaction(one_sided_debit)
    assert txn.is_balanced
    assert txn.entries[-1].description == "GROCER OUTLET #12"


def test_delete_last_entry_deletes_transaction(transaction_service, one_sided_debit):
    entry_id = transaction_service.get_transaction(one_sided_debit).entries[0].id

    assert transaction_service.delete_entry(entry_id) is True
    assert transaction_service.get_transaction(one_sided_debit) is None


def test_delete_entry_keeps_transaction_with_remaining_entries(transaction_service, make_transaction):
    txn_id = make_transaction("Pair", [("Checking", DEBIT, "5"), ("Groceries", CREDIT, "5")])
    entry_id = transaction_service.get_transaction(txn_id).entries[1].id

    assert transaction_service.delete_entry(entry_id) is False
    txn = transaction_service.get_transaction(txn_id)
    assert len(txn.entries) == 1
    assert not txn.is_balanced


def test_delete_missing_entry(transaction_service):
    with pytest.raises(NotFoundError, match="Entry 42 not found"):
        transaction_service.delete_entry(42)


def test_update_transaction_header(transaction_service, one_sided_debit):
    transaction_service.update_transaction(one_sided_debit, description="Groceries", notes="weekly")
    txn = transaction_service.get_transaction(one_sided_debit)
    assert txn.description == "Groceries"
    assert txn.notes == "weekly"
    assert txn.date == date(2024, 3, 10)


def test_delete_transaction(transaction_service, one_sided_debit):
    transaction_service.delete_transaction(one_sided_debit)
    assert transaction_service.get_transaction(one_sided_debit) is None
    with pytest.raises(NotFoundError):
        transaction_service.delete_transaction(one_sided_debit)
