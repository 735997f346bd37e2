"""Moving entries between transactions: merge, move and split."""

import logging
from typing import Optional, Sequence

from balancekit.database.base import Database
from balancekit.domain.balance import evaluate
from balancekit.domain.entities import MoveResult, SplitResult, Transaction
from balancekit.domain.errors import (
    NotFoundError,
    ValidationError,
    entry_not_found,
    opposite_types_required,
    transaction_not_found,
)

logger = logging.getLogger(__name__)

NOTES_SEPARATOR = "\n---\n"
DESCRIPTION_SEPARATOR = " + "
SPLIT_PREFIX = "Split from: "


def merged_description(first: Optional[str], second: Optional[str]) -> Optional[str]:
    """Join two descriptions with " + " unless they are equal or one is empty."""
    if not first:
        return second
    if not second or first == second:
        return first
    return f"{first}{DESCRIPTION_SEPARATOR}{second}"


def merged_notes(first: Optional[str], second: Optional[str]) -> Optional[str]:
    if first and second:
        return f"{first}{NOTES_SEPARATOR}{second}"
    return first or second


class TransactionRestructureService:
    """Service that reassigns entries between transactions.

    Every operation here runs as a single unit of work, so a half-moved
    set of entries is never persisted.
    """

    def __init__(self, db: Database):
        """Initialize restructure service.

        Args:
            db: Database instance
        """
        self.db = db

    def _require(self, transaction_id: int) -> Transaction:
        transaction = self.db.get_transaction(transaction_id)
        if transaction is None:
            raise NotFoundError(transaction_not_found(transaction_id))
        return transaction

    def merge(self, source_id: int, target_id: int) -> Transaction:
        """Move every entry of ``target`` into ``source`` and delete ``target``.

        Descriptions are joined with " + " when they differ, notes with a
        "---" separator line when both are set.

        Args:
            source_id: Transaction that survives the merge
            target_id: Transaction whose entries are taken over

        Returns:
            The merged source transaction

        Raises:
            NotFoundError: If either transaction doesn't exist
            ValidationError: If both are balanced or they lean the same way
        """
        if source_id == target_id:
            raise ValidationError("Cannot merge a transaction with itself")

        source = self._require(source_id)
        target = self._require(target_id)

        source_summary = evaluate(source.entries)
        target_summary = evaluate(target.entries)
        if source_summary.is_balanced and target_summary.is_balanced:
            raise ValidationError(
                f"Cannot merge transactions {source_id} and {target_id}: both are already balanced"
            )
        if (
            source_summary.net_type is None
            or target_summary.net_type is None
            or source_summary.net_type == target_summary.net_type
        ):
            raise ValidationError(opposite_types_required(source_id, target_id))

        description = merged_description(source.description, target.description)
        notes = merged_notes(source.notes, target.notes)

        with self.db.unit_of_work(f"merge transactions {source_id} and {target_id}"):
            self.db.move_entries([e.id for e in target.entries], source_id)
            self.db.update_transaction(source_id, description=description, notes=notes)
            self.db.delete_transaction(target_id)

        merged = self._require(source_id)
        logger.info(
            "Merged transaction %s into %s (%d entries, balanced=%s)",
            target_id,
            source_id,
            len(merged.entries),
            merged.is_balanced,
        )
        return merged

    def move_entry(self, entry_id: int, destination_transaction_id: int) -> MoveResult:
        """Move one entry to another transaction.

        The source transaction is deleted when it is left without entries.

        Raises:
            NotFoundError: If the entry or destination doesn't exist
            ValidationError: If the entry already belongs to the destination
        """
        source = self.db.get_transaction_for_entry(entry_id)
        if source is None:
            raise NotFoundError(entry_not_found(entry_id))
        self._require(destination_transaction_id)
        if source.id == destination_transaction_id:
            raise ValidationError(
                f"Entry {entry_id} already belongs to transaction {destination_transaction_id}"
            )

        source_deleted = len(source.entries) == 1
        with self.db.unit_of_work(f"move entry {entry_id}"):
            self.db.move_entries([entry_id], destination_transaction_id)
            if source_deleted:
                self.db.delete_transaction(source.id)

        logger.info(
            "Moved entry %s from transaction %s to %s",
            entry_id,
            source.id,
            destination_transaction_id,
        )
        return MoveResult(
            transaction=self._require(destination_transaction_id),
            source_transaction_id=source.id,
            source_deleted=source_deleted,
        )

    def split_transaction(self, transaction_id: int, entry_ids: Sequence[int]) -> SplitResult:
        """Move the selected entries into a new transaction on the same date.

        Raises:
            NotFoundError: If the transaction or an entry doesn't exist
            ValidationError: If nothing is selected or nothing would remain
        """
        source = self._require(transaction_id)
        selected = list(dict.fromkeys(entry_ids))
        if not selected:
            raise ValidationError("Select at least one entry to split off")
        for entry_id in selected:
            if source.entry(entry_id) is None:
                raise NotFoundError(entry_not_found(entry_id))
        if len(selected) >= len(source.entries):
            raise ValidationError("At least one entry must remain in the original transaction")

        with self.db.unit_of_work(f"split transaction {transaction_id}"):
            created_id = self.db.create_transaction(
                date=source.date,
                description=f"{SPLIT_PREFIX}{source.description or ''}",
            )
            self.db.move_entries(selected, created_id)

        logger.info(
            "Split %d entries off transaction %s into %s",
            len(selected),
            transaction_id,
            created_id,
        )
        return SplitResult(source=self._require(transaction_id), created=self._require(created_id))
