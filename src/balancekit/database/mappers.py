"""Mapper functions to convert between domain models and SQLAlchemy models.

This layer isolates the conversion logic: rule rows are folded into the
tagged ``Rule`` entity here, and entry provenance columns into
``GeneratedMarker``.
"""

from balancekit.domain import entities as domain
from balancekit.database.models import (
    Account as ORMAccount,
    Entry as ORMEntry,
    Rule as ORMRule,
    Transaction as ORMTransaction,
)


def account_to_domain(orm_account: ORMAccount) -> domain.Account:
    """Convert SQLAlchemy Account model to domain Account entity."""
    return domain.Account(
        id=orm_account.id,
        name=orm_account.name,
        type=orm_account.type,
        unit=orm_account.unit or domain.DEFAULT_UNIT,
        parent_id=orm_account.parent_id,
        created_at=orm_account.created_at,
    )


def entry_to_domain(orm_entry: ORMEntry) -> domain.Entry:
    """Convert SQLAlchemy Entry model to domain Entry entity."""
    generated = None
    if orm_entry.generated_kind:
        generated = domain.GeneratedMarker(kind=orm_entry.generated_kind)
    return domain.Entry(
        id=orm_entry.id,
        transaction_id=orm_entry.transaction_id,
        account_id=orm_entry.account_id,
        amount=orm_entry.amount,
        type=orm_entry.type,
        unit=orm_entry.unit,
        description=orm_entry.description,
        generated=generated,
    )


def transaction_to_domain(orm_transaction: ORMTransaction) -> domain.Transaction:
    """Convert SQLAlchemy Transaction model to domain Transaction entity."""
    return domain.Transaction(
        id=orm_transaction.id,
        date=orm_transaction.date,
        description=orm_transaction.description,
        reference=orm_transaction.reference,
        notes=orm_transaction.notes,
        entries=tuple(entry_to_domain(e) for e in orm_transaction.entries),
        is_balanced=orm_transaction.is_balanced,
        created_at=orm_transaction.created_at,
    )


def rule_payload_to_domain(orm_rule: ORMRule) -> domain.RulePayload:
    """Build the variant payload selected by the rule's discriminator."""
    if orm_rule.type == domain.RULE_EDIT:
        return domain.EditPayload(new_description=orm_rule.new_description or "")
    if orm_rule.type == domain.RULE_MERGE:
        return domain.MergePayload(max_date_difference=orm_rule.max_date_difference or 1)
    if orm_rule.type == domain.RULE_COMPLEMENTARY:
        return domain.ComplementaryPayload(
            destination_accounts=tuple(
                domain.DestinationSpec(
                    account_id=d.account_id,
                    ratio=d.ratio,
                    absolute_amount=d.absolute_amount,
                )
                for d in orm_rule.destinations
            )
        )
    raise ValueError(f"Unknown rule type '{orm_rule.type}' on rule {orm_rule.id}")


def rule_to_domain(orm_rule: ORMRule) -> domain.Rule:
    """Convert SQLAlchemy Rule model to domain Rule entity."""
    return domain.Rule(
        id=orm_rule.id,
        name=orm_rule.name,
        rule_type=orm_rule.type,
        pattern=orm_rule.pattern,
        payload=rule_payload_to_domain(orm_rule),
        source_accounts=tuple(s.account_id for s in orm_rule.source_accounts),
        entry_type=orm_rule.entry_type,
        auto_apply=orm_rule.auto_apply,
        priority=orm_rule.priority,
        is_enabled=orm_rule.is_enabled,
        is_invalid=orm_rule.is_invalid,
        invalid_reason=orm_rule.invalid_reason,
        description=orm_rule.description,
        created_at=orm_rule.created_at,
    )
