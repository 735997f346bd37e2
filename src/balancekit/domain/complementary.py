"""Finding unbalanced counterparts for an entry or a whole transaction."""

import logging
from datetime import timedelta
from typing import Optional

from balancekit.database.base import Database
from balancekit.domain.balance import evaluate, offsets, opposite_type, quantize_amount
from balancekit.domain.entities import Entry, Transaction
from balancekit.domain.errors import (
    NotFoundError,
    ValidationError,
    entry_not_found,
    transaction_not_found,
)

logger = logging.getLogger(__name__)

DEFAULT_DATE_WINDOW_DAYS = 15
DEFAULT_MAX_RESULTS = 10


def _check_limits(date_window_days: int, max_results: int) -> None:
    if date_window_days < 0:
        raise ValidationError("Date window must not be negative")
    if max_results < 1:
        raise ValidationError("Maximum number of results must be at least 1")


class ComplementaryMatchService:
    """Service suggesting counterparts that would balance each other.

    Amounts are compared exactly, to the cent. Candidates are unbalanced
    transactions within the date window around the target, nearest first.
    """

    def __init__(self, db: Database):
        """Initialize match service.

        Args:
            db: Database instance
        """
        self.db = db

    def _candidates(self, target: Transaction, date_window_days: int, pattern: Optional[str] = None):
        window = timedelta(days=date_window_days)
        return self.db.list_transactions(
            start_date=target.date - window,
            end_date=target.date + window,
            pattern=pattern,
            is_balanced=False,
            exclude_ids=[target.id],
        )

    def find_matches(
        self,
        entry_id: int,
        date_window_days: int = DEFAULT_DATE_WINDOW_DAYS,
        max_results: int = DEFAULT_MAX_RESULTS,
        pattern: Optional[str] = None,
    ) -> list[Entry]:
        """Find entries of the opposite type with the same amount.

        Args:
            entry_id: Entry to balance
            date_window_days: Days before and after the entry's transaction date
            max_results: Maximum number of entries returned
            pattern: Optional regex on the candidate transaction descriptions

        Returns:
            Matching entries, closest in date first

        Raises:
            NotFoundError: If the entry doesn't exist
            ValidationError: If the window or limit is out of range
        """
        _check_limits(date_window_days, max_results)

        owner = self.db.get_transaction_for_entry(entry_id)
        if owner is None:
            raise NotFoundError(entry_not_found(entry_id))
        target = owner.entry(entry_id)
        wanted_type = opposite_type(target.type)
        wanted_amount = quantize_amount(target.amount)

        found = []
        for candidate in self._candidates(owner, date_window_days, pattern):
            distance = abs((candidate.date - owner.date).days)
            for entry in candidate.entries:
                if entry.type == wanted_type and quantize_amount(entry.amount) == wanted_amount:
                    found.append((distance, candidate.date, entry.id, entry))

        found.sort(key=lambda item: item[:3])
        logger.debug("Entry %s: %d candidate entries", entry_id, len(found))
        return [item[3] for item in found[:max_results]]

    def find_transaction_matches(
        self,
        transaction_id: int,
        date_window_days: int = DEFAULT_DATE_WINDOW_DAYS,
        max_results: int = DEFAULT_MAX_RESULTS,
    ) -> list[Transaction]:
        """Find unbalanced transactions whose net imbalance cancels this one.

        A balanced transaction has nothing to match and yields an empty list.

        Raises:
            NotFoundError: If the transaction doesn't exist
            ValidationError: If the window or limit is out of range
        """
        _check_limits(date_window_days, max_results)

        target = self.db.get_transaction(transaction_id)
        if target is None:
            raise NotFoundError(transaction_not_found(transaction_id))
        summary = evaluate(target.entries)
        if summary.is_balanced:
            return []

        found = [
            candidate
            for candidate in self._candidates(target, date_window_days)
            if offsets(summary, evaluate(candidate.entries))
        ]
        found.sort(key=lambda t: (abs((t.date - target.date).days), t.date, t.id))
        logger.debug("Transaction %s: %d candidate transactions", transaction_id, len(found))
        return found[:max_results]
