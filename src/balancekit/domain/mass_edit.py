"""Mass actions over a date-bounded selection of transactions."""

import logging
from datetime import timedelta
from typing import Callable, Optional

from balancekit.database.base import Database
from balancekit.domain.balance import evaluate, is_fully_unbalanced, offsets
from balancekit.domain.entities import (
    CREDIT,
    DEBIT,
    GENERATED_COMPLEMENTARY,
    ComplementaryAdd,
    EditFields,
    EligibilityPreview,
    MassAction,
    MassApplyResult,
    MassError,
    MassQuery,
    MergeInto,
    ProgressSnapshot,
    Transaction,
)
from balancekit.domain.errors import NotFoundError, ValidationError, account_not_found
from balancekit.domain.matching import compile_pattern, matches
from balancekit.domain.restructure import TransactionRestructureService
from balancekit.domain.rule import MAX_MERGE_DAYS, MIN_MERGE_DAYS
from balancekit.domain.splits import (
    build_generated_entries,
    compute_destination_entries,
    validate_destinations,
)

logger = logging.getLogger(__name__)

MAX_QUERY_SPAN_DAYS = 366
EDITABLE_FIELDS = ("description", "reference", "notes")
GENERATED_DESCRIPTION = "Auto-generated complementary"


def validate_query(query: MassQuery) -> None:
    """Check the date window and pattern of a mass query.

    Raises:
        ValidationError: If a date is missing, the range is reversed or
            longer than a year, or the pattern doesn't compile
    """
    if query.start_date is None or query.end_date is None:
        raise ValidationError("Start date and end date are required")
    if query.end_date < query.start_date:
        raise ValidationError("End date must not be before start date")
    if (query.end_date - query.start_date).days > MAX_QUERY_SPAN_DAYS:
        raise ValidationError("Date range cannot exceed 1 year")
    if query.pattern:
        compile_pattern(query.pattern)


def _field_changes(transaction: Transaction, action: EditFields) -> dict:
    # Empty values never overwrite anything
    return {
        name: value
        for name, value in action.fields.items()
        if value not in (None, "") and (getattr(transaction, name) or "") != value
    }


def is_eligible(transaction: Transaction, action: MassAction) -> bool:
    """Decide whether ``action`` would touch ``transaction``."""
    if isinstance(action, ComplementaryAdd):
        return is_fully_unbalanced(transaction.entries)
    if isinstance(action, EditFields):
        return bool(_field_changes(transaction, action))
    if isinstance(action, MergeInto):
        return is_fully_unbalanced(transaction.entries) or transaction.has_generated_entries(
            GENERATED_COMPLEMENTARY
        )
    raise ValidationError(f"Unknown mass action: {action!r}")


class MassEditService:
    """Service running ad-hoc actions over many transactions.

    Candidates are the transactions inside the query's date window that
    pass the shared rule matcher with the query's pattern and accounts.
    Each modified transaction is its own unit of work; one failing
    transaction is reported and the batch carries on.
    """

    def __init__(self, db: Database):
        """Initialize mass edit service.

        Args:
            db: Database instance
        """
        self.db = db

    def validate_action(self, action: MassAction) -> None:
        """Check an action before anything is read or written.

        Raises:
            ValidationError: If the action is malformed
            NotFoundError: If a destination account doesn't exist
        """
        if isinstance(action, ComplementaryAdd):
            validate_destinations(action.destination)
            wanted = {d.account_id for d in action.destination}
            missing = sorted(wanted - set(self.db.get_account_units(wanted)))
            if missing:
                raise NotFoundError(account_not_found(missing[0]))
        elif isinstance(action, EditFields):
            if not action.fields:
                raise ValidationError("At least one field is required")
            unknown = sorted(set(action.fields) - set(EDITABLE_FIELDS))
            if unknown:
                raise ValidationError(
                    f"Cannot edit field(s) {', '.join(unknown)}. "
                    f"Editable fields: {', '.join(EDITABLE_FIELDS)}"
                )
        elif isinstance(action, MergeInto):
            if not MIN_MERGE_DAYS <= action.max_date_difference <= MAX_MERGE_DAYS:
                raise ValidationError(
                    f"Max date difference must be between {MIN_MERGE_DAYS} and {MAX_MERGE_DAYS} days"
                )
        else:
            raise ValidationError(f"Unknown mass action: {action!r}")

    def find_candidates(self, query: MassQuery) -> list[Transaction]:
        """Validate ``query`` and return the transactions it selects, oldest first."""
        validate_query(query)
        transactions = self.db.list_transactions(
            start_date=query.start_date, end_date=query.end_date
        )
        return [t for t in transactions if matches(query.criteria, t)]

    def preview_eligible(self, query: MassQuery, action: MassAction) -> EligibilityPreview:
        """Count the candidates and how many the action would modify.

        Nothing is written.
        """
        self.validate_action(action)
        candidates = self.find_candidates(query)
        return EligibilityPreview(
            total_candidates=len(candidates),
            eligible_count=sum(1 for t in candidates if is_eligible(t, action)),
        )

    def apply(
        self,
        query: MassQuery,
        action: MassAction,
        progress: Optional[Callable[[ProgressSnapshot], None]] = None,
        should_cancel: Optional[Callable[[], bool]] = None,
    ) -> MassApplyResult:
        """Run ``action`` on every eligible candidate.

        Args:
            query: Selection of transactions
            action: What to do with each eligible transaction
            progress: Called with a snapshot after each candidate
            should_cancel: Checked before each candidate; True stops the run

        Returns:
            MassApplyResult with counters and the errors of failed transactions

        Raises:
            ValidationError: If the query or action is malformed
        """
        self.validate_action(action)
        candidates = self.find_candidates(query)
        result = MassApplyResult()
        consumed: set[int] = set()
        logger.info("Mass %s over %d candidate(s)", action.type, len(candidates))

        for candidate in candidates:
            if should_cancel is not None and should_cancel():
                result.cancelled = True
                logger.info("Mass %s cancelled after %d transaction(s)", action.type, result.processed)
                break

            # Merged away by an earlier iteration
            if candidate.id in consumed:
                continue
            current = self.db.get_transaction(candidate.id)
            if current is None:
                continue

            result.processed += 1
            if is_eligible(current, action):
                result.eligible += 1
                try:
                    if self._apply_one(current, action, consumed):
                        result.modified += 1
                except Exception as e:
                    logger.exception("Mass %s failed for transaction %s", action.type, current.id)
                    result.failed += 1
                    result.errors.append(MassError(current.id, str(e)))

            if progress is not None:
                progress(
                    ProgressSnapshot(
                        processed=result.processed,
                        matched=result.eligible,
                        modified=result.modified,
                    )
                )

        logger.info(
            "Mass %s done: %d processed, %d eligible, %d modified, %d failed",
            action.type,
            result.processed,
            result.eligible,
            result.modified,
            result.failed,
        )
        return result

    def _apply_one(self, transaction: Transaction, action: MassAction, consumed: set[int]) -> bool:
        if isinstance(action, ComplementaryAdd):
            return self._add_complementary(transaction, action)
        if isinstance(action, EditFields):
            changes = _field_changes(transaction, action)
            self.db.update_transaction(transaction.id, **changes)
            return True
        return self._merge_into(transaction, action, consumed)

    def _add_complementary(self, transaction: Transaction, action: ComplementaryAdd) -> bool:
        summary = evaluate(transaction.entries)
        if summary.total_debits > summary.total_credits:
            source_type, source_amount = DEBIT, summary.total_debits
        else:
            source_type, source_amount = CREDIT, summary.total_credits

        splits = compute_destination_entries(source_amount, action.destination)
        if not splits:
            return False
        units = self.db.get_account_units(s.account_id for s in splits)
        generated = build_generated_entries(
            splits,
            source_type=source_type,
            units=units,
            description=GENERATED_DESCRIPTION,
            kind=GENERATED_COMPLEMENTARY,
        )
        with self.db.unit_of_work(f"add complementary entries to transaction {transaction.id}"):
            self.db.add_entries(transaction.id, generated)
        return True

    def _merge_into(self, transaction: Transaction, action: MergeInto, consumed: set[int]) -> bool:
        """Strip generated entries, then merge in the one exact counterpart if any."""
        generated_ids = [
            e.id for e in transaction.entries if e.is_generated(GENERATED_COMPLEMENTARY)
        ]
        remaining = [e for e in transaction.entries if not e.is_generated(GENERATED_COMPLEMENTARY)]
        summary = evaluate(remaining)

        counterpart = None
        if remaining and not summary.is_balanced:
            window = timedelta(days=action.max_date_difference)
            found = [
                t
                for t in self.db.list_transactions(
                    start_date=transaction.date - window,
                    end_date=transaction.date + window,
                    is_balanced=False,
                    exclude_ids=[transaction.id, *consumed],
                )
                if offsets(summary, evaluate(t.entries))
            ]
            if len(found) == 1:
                counterpart = found[0]

        if not generated_ids and counterpart is None:
            return False

        with self.db.unit_of_work(f"merge into transaction {transaction.id}"):
            if generated_ids:
                self.db.remove_entries(transaction.id, generated_ids)
            if counterpart is not None:
                TransactionRestructureService(self.db).merge(transaction.id, counterpart.id)

        if counterpart is not None:
            consumed.add(counterpart.id)
            logger.info("Merged transaction %s into %s", counterpart.id, transaction.id)
        return True
