"""Applying stored rules to one transaction or to every unbalanced one."""

import logging
from dataclasses import dataclass
from datetime import timedelta
from typing import Callable, Optional, Sequence

from balancekit.database.base import Database
from balancekit.domain.balance import evaluate, offsets
from balancekit.domain.entities import (
    GENERATED_COMPLEMENTARY,
    RULE_COMPLEMENTARY,
    RULE_EDIT,
    RULE_MERGE,
    ApplyResult,
    BulkApplyResult,
    BulkDetail,
    Entry,
    MergePayload,
    ProgressSnapshot,
    Rule,
    Transaction,
)
from balancekit.domain.errors import (
    NotFoundError,
    ValidationError,
    rule_not_found,
    transaction_not_found,
)
from balancekit.domain.matching import find_source_entry, matches
from balancekit.domain.restructure import TransactionRestructureService
from balancekit.domain.splits import (
    SplitAmount,
    build_generated_entries,
    compute_destination_entries,
)

logger = logging.getLogger(__name__)

ALREADY_BALANCED = "Transaction is already balanced"
NO_APPLICABLE_RULE = "No applicable rule found for this transaction"

STATUS_APPLIED = "applied"
STATUS_SKIPPED = "skipped"
STATUS_FAILED = "failed"


@dataclass(frozen=True)
class RuleMatch:
    """The rule chosen for a transaction and what it would produce."""

    rule: Rule
    source_entry: Optional[Entry] = None
    splits: tuple[SplitAmount, ...] = ()


def select_applicable_rule(rules: Sequence[Rule], transaction: Transaction) -> Optional[RuleMatch]:
    """Return the first rule in ``rules`` that would change ``transaction``.

    ``rules`` must already be sorted by priority. Disabled, invalid and
    merge rules are skipped; merge rules only run through
    ``RuleApplicationService.apply_merge_rule``. A complementary rule
    applies when a positive source entry passes its filters and the split
    is non-empty. An edit rule applies when its new description differs
    from the current one.
    """
    for rule in rules:
        if not rule.is_enabled or rule.is_invalid or rule.rule_type == RULE_MERGE:
            continue
        if not matches(rule.criteria, transaction):
            continue

        if rule.rule_type == RULE_COMPLEMENTARY:
            source_entry = find_source_entry(rule.criteria, transaction)
            if source_entry is None:
                logger.debug("Rule %s: no source entry in transaction %s", rule.id, transaction.id)
                continue
            splits = compute_destination_entries(
                source_entry.amount, rule.payload.destination_accounts
            )
            if not splits:
                continue
            return RuleMatch(rule=rule, source_entry=source_entry, splits=tuple(splits))

        if rule.rule_type == RULE_EDIT:
            if rule.payload.new_description == transaction.description:
                continue
            return RuleMatch(rule=rule)

    return None


class RuleApplicationService:
    """Service applying rules to stored transactions."""

    def __init__(self, db: Database):
        """Initialize rule application service.

        Args:
            db: Database instance
        """
        self.db = db

    def _require_transaction(self, transaction_id: int) -> Transaction:
        transaction = self.db.get_transaction(transaction_id)
        if transaction is None:
            raise NotFoundError(transaction_not_found(transaction_id))
        return transaction

    def _apply(self, transaction: Transaction, rules: Sequence[Rule]) -> ApplyResult:
        if evaluate(transaction.entries).is_balanced:
            return ApplyResult(
                success=True,
                message=ALREADY_BALANCED,
                transaction_id=transaction.id,
                is_now_balanced=True,
            )

        match = select_applicable_rule(rules, transaction)
        if match is None:
            return ApplyResult(success=False, message=NO_APPLICABLE_RULE, transaction_id=transaction.id)

        return self._execute(transaction, match)

    def _execute(self, transaction: Transaction, match: RuleMatch) -> ApplyResult:
        rule = match.rule
        entry_ids: list[int] = []

        with self.db.unit_of_work(f"apply rule {rule.id} to transaction {transaction.id}"):
            if rule.rule_type == RULE_COMPLEMENTARY:
                units = self.db.get_account_units(s.account_id for s in match.splits)
                generated = build_generated_entries(
                    match.splits,
                    source_type=match.source_entry.type,
                    units=units,
                    description=f"Auto-generated by rule: {rule.name}",
                    kind=GENERATED_COMPLEMENTARY,
                )
                entry_ids = self.db.add_entries(transaction.id, generated)
            else:
                self.db.update_transaction(transaction.id, description=rule.payload.new_description)

        updated = self._require_transaction(transaction.id)
        logger.info(
            "Applied %s rule %s to transaction %s (balanced=%s)",
            rule.rule_type,
            rule.id,
            transaction.id,
            updated.is_balanced,
        )
        return ApplyResult(
            success=True,
            message=f"Applied rule '{rule.name}'",
            transaction_id=transaction.id,
            applied_rule=rule.id,
            created_entries=tuple(updated.entry(entry_id) for entry_id in entry_ids),
            is_now_balanced=updated.is_balanced,
        )

    def apply_rule(self, transaction_id: int, auto_apply_only: bool = False) -> ApplyResult:
        """Apply the first applicable enabled rule to one transaction.

        Balanced transactions are left alone, so applying twice is a no-op.
        "Already balanced" and "no applicable rule" are returned as results,
        not raised.

        Args:
            transaction_id: Transaction to balance or edit
            auto_apply_only: Only consider rules flagged for automatic application

        Returns:
            ApplyResult describing what happened

        Raises:
            NotFoundError: If the transaction doesn't exist
            InternalError: If storage fails; nothing is written in that case
        """
        transaction = self._require_transaction(transaction_id)
        rules = self.db.list_rules(enabled_only=True, auto_apply_only=auto_apply_only)
        return self._apply(transaction, rules)

    def apply_to_all(
        self,
        progress: Optional[Callable[[ProgressSnapshot], None]] = None,
        should_cancel: Optional[Callable[[], bool]] = None,
    ) -> BulkApplyResult:
        """Apply rules to every unbalanced transaction.

        A failure on one transaction is recorded in the report and the
        run continues with the next one.

        Args:
            progress: Called with a snapshot after each transaction
            should_cancel: Checked before each transaction; True stops the run

        Returns:
            BulkApplyResult with counters and per-transaction details
        """
        rules = self.db.list_rules(enabled_only=True)
        transactions = self.db.list_transactions(is_balanced=False)
        result = BulkApplyResult(total=len(transactions))
        logger.info("Applying %d rule(s) to %d unbalanced transaction(s)", len(rules), result.total)

        matched = 0
        for processed, transaction in enumerate(transactions, start=1):
            if should_cancel is not None and should_cancel():
                result.cancelled = True
                logger.info("Bulk rule application cancelled after %d transaction(s)", processed - 1)
                break

            try:
                outcome = self._apply(transaction, rules)
            except Exception as e:
                logger.exception("Applying rules to transaction %s failed", transaction.id)
                result.failed += 1
                result.details.append(BulkDetail(transaction.id, STATUS_FAILED, str(e)))
            else:
                if outcome.success and outcome.applied_rule is not None:
                    matched += 1
                    result.successful += 1
                    result.details.append(
                        BulkDetail(transaction.id, STATUS_APPLIED, outcome.message, outcome.applied_rule)
                    )
                else:
                    result.skipped += 1
                    result.details.append(BulkDetail(transaction.id, STATUS_SKIPPED, outcome.message))

            if progress is not None:
                progress(ProgressSnapshot(processed=processed, matched=matched, modified=result.successful))

        logger.info(
            "Bulk rule application done: %d applied, %d skipped, %d failed",
            result.successful,
            result.skipped,
            result.failed,
        )
        return result

    def apply_merge_rule(self, rule_id: int, transaction_id: int) -> ApplyResult:
        """Merge a transaction with its single counterpart under a merge rule.

        The counterpart must match the rule, lie within the rule's
        ``max_date_difference`` days and carry an imbalance that exactly
        cancels this transaction's. Zero or several such counterparts is
        an unsuccessful result, not an error.

        Raises:
            NotFoundError: If the rule or transaction doesn't exist
            ValidationError: If the rule is not a merge rule
        """
        rule = self.db.get_rule(rule_id)
        if rule is None:
            raise NotFoundError(rule_not_found(rule_id))
        if not isinstance(rule.payload, MergePayload):
            raise ValidationError(f"Rule {rule_id} is not a merge rule")

        transaction = self._require_transaction(transaction_id)
        summary = evaluate(transaction.entries)
        if summary.is_balanced:
            return ApplyResult(
                success=True,
                message=ALREADY_BALANCED,
                transaction_id=transaction_id,
                is_now_balanced=True,
            )
        if not rule.is_enabled or rule.is_invalid:
            return ApplyResult(
                success=False,
                message=f"Rule '{rule.name}' is disabled or invalid",
                transaction_id=transaction_id,
            )
        if not matches(rule.criteria, transaction):
            return ApplyResult(
                success=False,
                message=f"Transaction does not match rule '{rule.name}'",
                transaction_id=transaction_id,
            )

        window = timedelta(days=rule.payload.max_date_difference)
        counterparts = [
            candidate
            for candidate in self.db.list_transactions(
                start_date=transaction.date - window,
                end_date=transaction.date + window,
                is_balanced=False,
                exclude_ids=[transaction_id],
            )
            if matches(rule.criteria, candidate) and offsets(summary, evaluate(candidate.entries))
        ]
        if len(counterparts) != 1:
            return ApplyResult(
                success=False,
                message=f"Expected exactly one counterpart transaction, found {len(counterparts)}",
                transaction_id=transaction_id,
            )

        merged = TransactionRestructureService(self.db).merge(transaction_id, counterparts[0].id)
        return ApplyResult(
            success=True,
            message=f"Merged transaction {counterparts[0].id} using rule '{rule.name}'",
            transaction_id=transaction_id,
            applied_rule=rule.id,
            is_now_balanced=merged.is_balanced,
        )
