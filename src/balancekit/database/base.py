"""Abstract database interface."""

from abc import ABC, abstractmethod
from contextlib import AbstractContextManager
from datetime import date
from typing import Iterable, Optional, Sequence

# Import entities directly to avoid circular import through domain/__init__.py
from balancekit.domain.entities import (
    Account,
    DestinationSpec,
    Entry,
    Rule,
    Transaction,
)


class Database(ABC):
    """Abstract database interface for balancekit.

    Write methods commit immediately unless called inside ``unit_of_work()``,
    in which case everything is committed once when the outermost unit of
    work exits and rolled back if it raises.
    """

    @abstractmethod
    def connect(self) -> None:
        """Connect to the database."""
        pass

    @abstractmethod
    def disconnect(self) -> None:
        """Disconnect from the database."""
        pass

    @abstractmethod
    def initialize_schema(self) -> None:
        """Initialize database schema (create tables)."""
        pass

    @abstractmethod
    def unit_of_work(self, operation: str = "unit of work") -> AbstractContextManager[None]:
        """Group writes into one all-or-nothing commit."""
        pass

    # Account operations
    @abstractmethod
    def create_account(
        self, name: str, type: str, unit: str = "USD", parent_id: Optional[int] = None
    ) -> int:
        """Create a new account. Returns account ID."""
        pass

    @abstractmethod
    def get_account(self, account_id: int) -> Optional[Account]:
        """Get account by ID."""
        pass

    @abstractmethod
    def list_accounts(self) -> list[Account]:
        """List all accounts."""
        pass

    @abstractmethod
    def get_account_units(self, account_ids: Iterable[int]) -> dict[int, str]:
        """Map existing account IDs to their units. Unknown IDs are left out."""
        pass

    @abstractmethod
    def get_account_entry_count(self, account_id: int) -> int:
        """Count entries posted to an account."""
        pass

    @abstractmethod
    def delete_account(self, account_id: int) -> None:
        """Delete an account."""
        pass

    # Transaction operations
    @abstractmethod
    def create_transaction(
        self,
        date: date,
        description: Optional[str] = None,
        reference: Optional[str] = None,
        notes: Optional[str] = None,
        entries: Sequence[Entry] = (),
    ) -> int:
        """Create a transaction with its entries. Returns transaction ID."""
        pass

    @abstractmethod
    def get_transaction(self, transaction_id: int) -> Optional[Transaction]:
        """Get transaction by ID."""
        pass

    @abstractmethod
    def get_transaction_for_entry(self, entry_id: int) -> Optional[Transaction]:
        """Get the transaction owning an entry."""
        pass

    @abstractmethod
    def list_transactions(
        self,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        pattern: Optional[str] = None,
        account_ids: Optional[Sequence[int]] = None,
        is_balanced: Optional[bool] = None,
        exclude_ids: Optional[Sequence[int]] = None,
    ) -> list[Transaction]:
        """List transactions with optional filters, oldest first.

        Args:
            start_date: Optional inclusive start date
            end_date: Optional inclusive end date
            pattern: Optional case-insensitive regex on the description
            account_ids: Only transactions with an entry on one of these accounts
            is_balanced: Filter on the cached balance flag
            exclude_ids: Transaction IDs to leave out
        """
        pass

    @abstractmethod
    def update_transaction(
        self,
        transaction_id: int,
        date: Optional[date] = None,
        description: Optional[str] = None,
        reference: Optional[str] = None,
        notes: Optional[str] = None,
    ) -> None:
        """Update header fields that are not None."""
        pass

    @abstractmethod
    def delete_transaction(self, transaction_id: int) -> None:
        """Delete a transaction and its entries."""
        pass

    # Entry operations
    @abstractmethod
    def add_entries(self, transaction_id: int, entries: Sequence[Entry]) -> list[int]:
        """Append entries and recompute the balance flag. Returns entry IDs."""
        pass

    @abstractmethod
    def remove_entries(self, transaction_id: int, entry_ids: Sequence[int]) -> bool:
        """Remove entries and recompute the balance flag.

        Returns True if the transaction lost its last entry and was deleted.
        """
        pass

    @abstractmethod
    def move_entries(self, entry_ids: Sequence[int], destination_transaction_id: int) -> None:
        """Reassign entries to another transaction.

        Balance flags of every affected transaction are recomputed. Source
        transactions left empty are not deleted here.
        """
        pass

    # Rule operations
    @abstractmethod
    def create_rule(
        self,
        name: str,
        rule_type: str,
        pattern: str,
        source_accounts: Sequence[int] = (),
        entry_type: str = "both",
        auto_apply: bool = False,
        priority: int = 0,
        is_enabled: bool = True,
        description: Optional[str] = None,
        new_description: Optional[str] = None,
        max_date_difference: Optional[int] = None,
        destinations: Sequence[DestinationSpec] = (),
    ) -> int:
        """Create a rule. Returns rule ID."""
        pass

    @abstractmethod
    def get_rule(self, rule_id: int) -> Optional[Rule]:
        """Get rule by ID."""
        pass

    @abstractmethod
    def list_rules(
        self,
        enabled_only: bool = False,
        auto_apply_only: bool = False,
        rule_type: Optional[str] = None,
    ) -> list[Rule]:
        """List rules by priority (highest first), then by ID."""
        pass

    @abstractmethod
    def update_rule(
        self,
        rule_id: int,
        name: Optional[str] = None,
        pattern: Optional[str] = None,
        source_accounts: Optional[Sequence[int]] = None,
        entry_type: Optional[str] = None,
        auto_apply: Optional[bool] = None,
        priority: Optional[int] = None,
        is_enabled: Optional[bool] = None,
        description: Optional[str] = None,
        new_description: Optional[str] = None,
        max_date_difference: Optional[int] = None,
        destinations: Optional[Sequence[DestinationSpec]] = None,
    ) -> None:
        """Update rule fields that are not None."""
        pass

    @abstractmethod
    def set_rule_invalid(self, rule_id: int, is_invalid: bool, reason: Optional[str] = None) -> None:
        """Flag or unflag a rule as invalid."""
        pass

    @abstractmethod
    def delete_rule(self, rule_id: int) -> None:
        """Delete a rule."""
        pass
