"""Tests for rule-to-transaction matching."""

from datetime import date, datetime
from decimal import Decimal

import pytest

from balancekit.domain.entities import (
    BOTH,
    CREDIT,
    DEBIT,
    RULE_EDIT,
    EditPayload,
    Entry,
    MassQuery,
    MatchCriteria,
    Rule,
    Transaction,
)
from balancekit.domain.errors import ValidationError
from balancekit.domain.matching import (
    compile_pattern,
    description_matches,
    find_source_entry,
    matches,
)


def make_txn(description, entries):
    return Transaction(
        id=1,
        date=date(2024, 1, 1),
        description=description,
        reference=None,
        notes=None,
        entries=tuple(entries),
        is_balanced=False,
        created_at=datetime(2024, 1, 1),
    )


def make_rule(pattern, source_accounts=(), entry_type=BOTH):
    return Rule(
        id=1,
        name="rule",
        rule_type=RULE_EDIT,
        pattern=pattern,
        payload=EditPayload("x"),
        source_accounts=tuple(source_accounts),
        entry_type=entry_type,
    )


def make_criteria(pattern, source_accounts=(), entry_type=BOTH):
    return make_rule(pattern, source_accounts, entry_type).criteria


TXN = make_txn(
    "Grocery Store 42",
    [
        Entry(account_id=1, amount=Decimal("30.00"), type=DEBIT, id=10),
        Entry(account_id=2, amount=Decimal("30.00"), type=CREDIT, id=11),
    ],
)


def test_pattern_is_case_insensitive():
    assert matches(make_criteria("grocery"), TXN)
    assert matches(make_criteria("STORE \\d+"), TXN)
    assert not matches(make_criteria("pharmacy"), TXN)


def test_fast_path_without_filters():
    assert matches(make_criteria("Grocery"), make_txn("Grocery", []))


def test_source_account_filter():
    assert matches(make_criteria("Grocery", source_accounts=[2]), TXN)
    assert not matches(make_criteria("Grocery", source_accounts=[3]), TXN)


def test_entry_type_filter():
    only_debits = make_txn("Grocery", [Entry(account_id=1, amount=Decimal("5"), type=DEBIT)])
    assert matches(make_criteria("Grocery", entry_type=DEBIT), only_debits)
    assert not matches(make_criteria("Grocery", entry_type=CREDIT), only_debits)


def test_filters_apply_to_the_same_entry():
    # Account 1 only carries a debit, so "credit on account 1" matches nothing
    assert not matches(make_criteria("Grocery", source_accounts=[1], entry_type=CREDIT), TXN)
    assert matches(make_criteria("Grocery", source_accounts=[2], entry_type=CREDIT), TXN)


def test_missing_description_never_matches_a_pattern():
    assert not matches(make_criteria("anything"), make_txn(None, []))
    assert description_matches(None, None)
    assert description_matches("", "whatever")


def test_rule_and_criteria_and_query_agree():
    rule = make_rule("store", source_accounts=[2])
    criteria = MatchCriteria(pattern="store", source_accounts=(2,))
    query = MassQuery(date(2024, 1, 1), date(2024, 2, 1), pattern="store", source_accounts=(2,))
    assert matches(rule.criteria, TXN) == matches(criteria, TXN) == matches(query.criteria, TXN) is True


def test_find_source_entry_respects_filters():
    assert find_source_entry(make_criteria("x", source_accounts=[2]), TXN).id == 11
    assert find_source_entry(make_criteria("x", entry_type=DEBIT), TXN).id == 10
    assert find_source_entry(make_criteria("x", source_accounts=[9]), TXN) is None


def test_invalid_pattern_raises_validation_error():
    with pytest.raises(ValidationError, match="Invalid pattern"):
        compile_pattern("([unclosed")
