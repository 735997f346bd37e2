"""Transaction domain service."""

import logging
from datetime import date
from typing import Optional, Sequence

from balancekit.database.base import Database
from balancekit.domain.balance import quantize_amount, to_decimal
from balancekit.domain.entities import (
    DEFAULT_UNIT,
    ENTRY_TYPES,
    Entry,
    Transaction as TransactionEntity,
)
from balancekit.domain.errors import (
    NotFoundError,
    ValidationError,
    account_not_found,
    entry_not_found,
    transaction_not_found,
)
from balancekit.domain.rule_application import RuleApplicationService

logger = logging.getLogger(__name__)


class TransactionService:
    """Service for managing transactions and their entries."""

    def __init__(self, db: Database):
        """Initialize transaction service.

        Args:
            db: Database instance
        """
        self.db = db

    def _prepare_entries(
        self, entries: Sequence[Entry], default_description: Optional[str]
    ) -> list[Entry]:
        """Validate user entries and fill in unit and description defaults.

        User input never carries a provenance marker; it is stripped here.
        """
        units = self.db.get_account_units(e.account_id for e in entries)
        prepared = []
        for entry in entries:
            if entry.account_id not in units:
                raise NotFoundError(account_not_found(entry.account_id))
            if entry.type not in ENTRY_TYPES:
                raise ValidationError(
                    f"Invalid entry type '{entry.type}'. Expected debit or credit"
                )
            amount = quantize_amount(to_decimal(entry.amount))
            if amount <= 0:
                raise ValidationError("All entry amounts must be positive")
            prepared.append(
                Entry(
                    account_id=entry.account_id,
                    amount=amount,
                    type=entry.type,
                    unit=units[entry.account_id] or DEFAULT_UNIT,
                    description=entry.description or default_description,
                )
            )
        return prepared

    def create_transaction(
        self,
        date: date,
        description: Optional[str] = None,
        entries: Sequence[Entry] = (),
        reference: Optional[str] = None,
        notes: Optional[str] = None,
        apply_rules: bool = False,
    ) -> int:
        """Create a transaction with its entries in one unit of work.

        Args:
            date: Transaction date
            description: Optional description
            entries: Entries to post (unit and description default from the
                account and the transaction)
            reference: Optional reference
            notes: Optional notes
            apply_rules: Run auto-apply rules on the new transaction

        Returns:
            Transaction ID

        Raises:
            NotFoundError: If an entry references an unknown account
            ValidationError: If an entry has a non-positive amount or bad type
        """
        prepared = self._prepare_entries(entries, description)
        with self.db.unit_of_work("create transaction"):
            transaction_id = self.db.create_transaction(
                date=date,
                description=description,
                reference=reference,
                notes=notes,
                entries=prepared,
            )

        if apply_rules:
            RuleApplicationService(self.db).apply_rule(transaction_id, auto_apply_only=True)

        return transaction_id

    def get_transaction(self, transaction_id: int) -> Optional[TransactionEntity]:
        """Get transaction by ID, or None."""
        return self.db.get_transaction(transaction_id)

    def require_transaction(self, transaction_id: int) -> TransactionEntity:
        """Get transaction by ID.

        Raises:
            NotFoundError: If the transaction doesn't exist
        """
        transaction = self.db.get_transaction(transaction_id)
        if transaction is None:
            raise NotFoundError(transaction_not_found(transaction_id))
        return transaction

    def list_transactions(
        self,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        pattern: Optional[str] = None,
        account_id: Optional[int] = None,
        unbalanced_only: bool = False,
    ) -> list[TransactionEntity]:
        """List transactions with filters.

        Args:
            start_date: Optional start date filter
            end_date: Optional end date filter
            pattern: Optional description regex
            account_id: Optional account ID filter
            unbalanced_only: Only transactions whose entries don't balance

        Returns:
            List of transaction entities, oldest first
        """
        return self.db.list_transactions(
            start_date=start_date,
            end_date=end_date,
            pattern=pattern,
            account_ids=[account_id] if account_id is not None else None,
            is_balanced=False if unbalanced_only else None,
        )

    def update_transaction(
        self,
        transaction_id: int,
        date: Optional[date] = None,
        description: Optional[str] = None,
        reference: Optional[str] = None,
        notes: Optional[str] = None,
    ) -> None:
        """Update transaction header fields.

        Raises:
            NotFoundError: If the transaction doesn't exist
        """
        self.require_transaction(transaction_id)
        self.db.update_transaction(
            transaction_id,
            date=date,
            description=description,
            reference=reference,
            notes=notes,
        )

    def delete_transaction(self, transaction_id: int) -> None:
        """Delete a transaction.

        Raises:
            NotFoundError: If the transaction doesn't exist
        """
        self.require_transaction(transaction_id)
        self.db.delete_transaction(transaction_id)

    def add_entry(self, transaction_id: int, entry: Entry) -> int:
        """Append one user entry.

        Returns:
            Entry ID

        Raises:
            NotFoundError: If the transaction or account doesn't exist
            ValidationError: If the entry is malformed
        """
        transaction = self.require_transaction(transaction_id)
        prepared = self._prepare_entries([entry], transaction.description)
        return self.db.add_entries(transaction_id, prepared)[0]

    def delete_entry(self, entry_id: int) -> bool:
        """Remove one entry.

        Returns:
            True if it was the last entry and the transaction was deleted

        Raises:
            NotFoundError: If the entry doesn't exist
        """
        transaction = self.db.get_transaction_for_entry(entry_id)
        if transaction is None:
            raise NotFoundError(entry_not_found(entry_id))
        deleted = self.db.remove_entries(transaction.id, [entry_id])
        if deleted:
            logger.info("Transaction %s deleted after its last entry was removed", transaction.id)
        return deleted
